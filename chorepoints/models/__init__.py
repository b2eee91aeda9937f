from datetime import datetime, timezone
def utcnow():
    return datetime.now(timezone.utc)
from .family import Family
from .user import User, UserRole
from .action import ActionTemplate, AssignedAction, ActionSuggestion, SuggestionStatus
from .invite import Invitation
