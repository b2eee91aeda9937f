"""Ownership checks and response enrichment for actions and suggestions.

Related templates and users are fetched with one batched lookup per relation
instead of one lookup per row.
"""
import logging
from typing import Iterable

from ..models.action import ActionSuggestion, ActionTemplate, AssignedAction
from ..models.user import User, UserRole
from ..schemas.action import (
    ActionTemplateOut,
    AssignedActionDetail,
    AssignedActionOut,
    ReportActionOut,
    SuggestionDetail,
    SuggestionOut,
)
from ..schemas.user import UserOut
from ..storage import Storage

logger = logging.getLogger(__name__)


def family_template(storage: Storage, template_id: int, family_id: int) -> ActionTemplate | None:
    """The template if it belongs to ``family_id``."""
    t = storage.get_action_template(template_id)
    if not t or t.family_id != family_id:
        return None
    return t


def family_child(storage: Storage, child_id: int, family_id: int) -> User | None:
    """The user if it is a child of ``family_id``."""
    child = storage.get_user(child_id)
    if not child or child.family_id != family_id or child.role != UserRole.CHILD:
        return None
    return child


def action_family_id(storage: Storage, action: AssignedAction | ActionSuggestion) -> int | None:
    """Actions and suggestions belong to the family of their child."""
    child = storage.get_user(action.child_id)
    return child.family_id if child else None


def _user_out(users: dict[int, User], user_id: int | None) -> UserOut | None:
    u = users.get(user_id) if user_id is not None else None
    return UserOut.model_validate(u) if u else None


def _template_out(templates: dict[int, ActionTemplate], template_id: int) -> ActionTemplateOut | None:
    t = templates.get(template_id)
    return ActionTemplateOut.model_validate(t) if t else None


def enrich_assigned_actions(storage: Storage, actions: Iterable[AssignedAction]) -> list[AssignedActionDetail]:
    actions = list(actions)
    templates = storage.get_action_templates_by_ids(a.action_template_id for a in actions)
    users = storage.get_users([a.assigned_by for a in actions] + [a.child_id for a in actions])
    return [
        AssignedActionDetail(
            **AssignedActionOut.model_validate(a).model_dump(),
            action_template=_template_out(templates, a.action_template_id),
            assigned_by_user=_user_out(users, a.assigned_by),
            child=_user_out(users, a.child_id),
        )
        for a in actions
    ]


def enrich_report_actions(storage: Storage, actions: Iterable[AssignedAction]) -> list[ReportActionOut]:
    out = []
    for detail in enrich_assigned_actions(storage, actions):
        t = detail.action_template
        out.append(ReportActionOut(
            **detail.model_dump(),
            total_points=t.points * detail.quantity if t else 0,
        ))
    return out


def enrich_suggestions(storage: Storage, suggestions: Iterable[ActionSuggestion]) -> list[SuggestionDetail]:
    suggestions = list(suggestions)
    templates = storage.get_action_templates_by_ids(s.action_template_id for s in suggestions)
    users = storage.get_users([s.child_id for s in suggestions] + [s.decided_by for s in suggestions])
    return [
        SuggestionDetail(
            **SuggestionOut.model_validate(s).model_dump(),
            action_template=_template_out(templates, s.action_template_id),
            child=_user_out(users, s.child_id),
            decided_by_user=_user_out(users, s.decided_by),
        )
        for s in suggestions
    ]
