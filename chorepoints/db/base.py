from ..models.family import Family
from ..models.user import User, UserRole
from ..models.action import ActionTemplate, AssignedAction, ActionSuggestion, SuggestionStatus
from ..models.invite import Invitation
from ..db.base_class import Base


def init_db(bind) -> list[str]:
    """Create missing tables; returns every table name in dependency order."""
    Base.metadata.create_all(bind=bind)
    return [t.name for t in Base.metadata.sorted_tables]
