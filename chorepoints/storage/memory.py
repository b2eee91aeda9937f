import itertools
import logging
import threading
from datetime import datetime
from typing import Any, Iterable

from ..core.errors import ConflictError, NotFoundError
from ..db.types import as_utc
from ..models import utcnow
from ..models.action import ActionSuggestion, ActionTemplate, AssignedAction, SuggestionStatus
from ..models.family import Family
from ..models.invite import Invitation
from ..models.user import User, UserRole
from .base import ALREADY_ACCEPTED, ALREADY_DECIDED, ALREADY_USED, Storage

logger = logging.getLogger(__name__)


def _newest_first(rows, key):
    return sorted(rows, key=lambda r: (key(r), r.id), reverse=True)


class MemStorage(Storage):
    """In-process access layer backed by dicts keyed by auto-incrementing ids.

    Rows are transient ORM instances, so callers see the same types as with
    ``SqlStorage``. Only meant for tests; nothing survives the process.
    """

    def __init__(self):
        self.users: dict[int, User] = {}
        self.families: dict[int, Family] = {}
        self.action_templates: dict[int, ActionTemplate] = {}
        self.assigned_actions: dict[int, AssignedAction] = {}
        self.action_suggestions: dict[int, ActionSuggestion] = {}
        self.invitations: dict[int, Invitation] = {}
        self._ids = {name: itertools.count(1) for name in
                     ("user", "family", "template", "action", "suggestion", "invitation")}
        # guards the compare-and-set paths (decisions, invitation acceptance)
        self._lock = threading.Lock()

    def _next_id(self, kind: str) -> int:
        return next(self._ids[kind])

    def _child_ids(self, family_id: int) -> set[int]:
        return {u.id for u in self.users.values() if u.family_id == family_id and u.role == UserRole.CHILD}

    @staticmethod
    def _apply(row, data: dict[str, Any]):
        for key, value in data.items():
            if isinstance(value, datetime):
                value = as_utc(value)
            setattr(row, key, value)
        return row

    @staticmethod
    def _in_window(row, start: datetime, end: datetime) -> bool:
        return as_utc(start) <= row.date <= as_utc(end)

    # --- users ---
    def get_user(self, user_id: int) -> User | None:
        return self.users.get(user_id)

    def get_user_by_username(self, username: str) -> User | None:
        return next((u for u in self.users.values() if u.username == username), None)

    def get_users(self, user_ids: Iterable[int]) -> dict[int, User]:
        return {i: self.users[i] for i in set(user_ids) if i in self.users}

    def _insert_user(self, *, username, hashed_password, name, email, role, family_id) -> User:
        if self.get_user_by_username(username):
            raise ConflictError("Record conflicts with an existing one")
        if role == UserRole.HEAD and any(
            u.family_id == family_id and u.role == UserRole.HEAD for u in self.users.values()
        ):
            raise ConflictError("Record conflicts with an existing one")
        user = User(id=self._next_id("user"), username=username, hashed_password=hashed_password, name=name,
                    email=email, role=role, family_id=family_id, created_at=utcnow())
        self.users[user.id] = user
        return user

    def create_user(self, *, username, hashed_password, name, email, role, family_id) -> User:
        with self._lock:
            return self._insert_user(username=username, hashed_password=hashed_password, name=name,
                                     email=email, role=role, family_id=family_id)

    def update_user(self, user_id: int, data: dict[str, Any]) -> User:
        user = self.users.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        return self._apply(user, data)

    # --- families ---
    def get_family(self, family_id: int) -> Family | None:
        return self.families.get(family_id)

    def create_family_with_head(self, *, family_name, username, hashed_password, name, email) -> User:
        with self._lock:
            if self.get_user_by_username(username):
                raise ConflictError("Record conflicts with an existing one")
            fam = Family(id=self._next_id("family"), name=family_name, created_at=utcnow())
            self.families[fam.id] = fam
            return self._insert_user(username=username, hashed_password=hashed_password, name=name,
                                     email=email, role=UserRole.HEAD, family_id=fam.id)

    def get_family_members(self, family_id: int) -> list[User]:
        return sorted((u for u in self.users.values() if u.family_id == family_id), key=lambda u: u.id)

    def remove_family_member(self, user_id: int) -> None:
        if self.users.pop(user_id, None) is None:
            return
        for table in (self.assigned_actions, self.action_suggestions):
            for row_id in [r.id for r in table.values() if r.child_id == user_id]:
                del table[row_id]
        for a in self.assigned_actions.values():
            if a.assigned_by == user_id:
                a.assigned_by = None
        for s in self.action_suggestions.values():
            if s.decided_by == user_id:
                s.decided_by = None
        for row in list(self.action_templates.values()) + list(self.invitations.values()):
            if row.created_by == user_id:
                row.created_by = None

    # --- action templates ---
    def get_action_templates(self, family_id: int) -> list[ActionTemplate]:
        rows = [t for t in self.action_templates.values() if t.family_id == family_id]
        return sorted(rows, key=lambda t: (t.name, t.id))

    def get_action_template(self, template_id: int) -> ActionTemplate | None:
        return self.action_templates.get(template_id)

    def get_action_templates_by_ids(self, template_ids: Iterable[int]) -> dict[int, ActionTemplate]:
        return {i: self.action_templates[i] for i in set(template_ids) if i in self.action_templates}

    def create_action_template(self, *, family_id, name, points, description, created_by) -> ActionTemplate:
        t = ActionTemplate(id=self._next_id("template"), family_id=family_id, name=name, points=points,
                           description=description, created_by=created_by, created_at=utcnow())
        self.action_templates[t.id] = t
        return t

    def update_action_template(self, template_id: int, data: dict[str, Any]) -> ActionTemplate:
        t = self.action_templates.get(template_id)
        if not t:
            raise NotFoundError("Action template not found")
        return self._apply(t, data)

    def delete_action_template(self, template_id: int) -> None:
        if self.action_templates.pop(template_id, None) is None:
            return
        for table in (self.assigned_actions, self.action_suggestions):
            for row_id in [r.id for r in table.values() if r.action_template_id == template_id]:
                del table[row_id]

    # --- assigned actions ---
    def get_assigned_actions(self, child_id: int) -> list[AssignedAction]:
        rows = [a for a in self.assigned_actions.values() if a.child_id == child_id]
        return _newest_first(rows, lambda a: a.date)

    def get_assigned_actions_for_family(self, family_id: int) -> list[AssignedAction]:
        children = self._child_ids(family_id)
        rows = [a for a in self.assigned_actions.values() if a.child_id in children]
        return _newest_first(rows, lambda a: a.date)

    def get_family_actions_for_period(self, family_id: int, start: datetime, end: datetime) -> list[AssignedAction]:
        return [a for a in self.get_assigned_actions_for_family(family_id) if self._in_window(a, start, end)]

    def get_assigned_action(self, action_id: int) -> AssignedAction | None:
        return self.assigned_actions.get(action_id)

    def create_assigned_action(self, *, action_template_id, child_id, assigned_by, quantity, description,
                               date, completed=False) -> AssignedAction:
        a = AssignedAction(id=self._next_id("action"), action_template_id=action_template_id, child_id=child_id,
                           assigned_by=assigned_by, quantity=quantity, description=description,
                           date=as_utc(date), completed=completed, created_at=utcnow())
        self.assigned_actions[a.id] = a
        return a

    def update_assigned_action(self, action_id: int, data: dict[str, Any]) -> AssignedAction:
        a = self.assigned_actions.get(action_id)
        if not a:
            raise NotFoundError("Assigned action not found")
        return self._apply(a, data)

    def delete_assigned_action(self, action_id: int) -> None:
        self.assigned_actions.pop(action_id, None)

    # --- suggestions ---
    def get_action_suggestions(self, family_id: int, status: str | None = None,
                               child_id: int | None = None) -> list[ActionSuggestion]:
        children = self._child_ids(family_id)
        rows = [s for s in self.action_suggestions.values() if s.child_id in children]
        if status:
            rows = [s for s in rows if s.status == status]
        if child_id is not None:
            rows = [s for s in rows if s.child_id == child_id]
        return _newest_first(rows, lambda s: s.created_at)

    def get_action_suggestion(self, suggestion_id: int) -> ActionSuggestion | None:
        return self.action_suggestions.get(suggestion_id)

    def create_action_suggestion(self, *, action_template_id, child_id, quantity, description, date) -> ActionSuggestion:
        s = ActionSuggestion(id=self._next_id("suggestion"), action_template_id=action_template_id,
                             child_id=child_id, quantity=quantity, description=description, date=as_utc(date),
                             status=SuggestionStatus.PENDING, created_at=utcnow())
        self.action_suggestions[s.id] = s
        return s

    def _pending(self, suggestion_id: int) -> ActionSuggestion:
        s = self.action_suggestions.get(suggestion_id)
        if not s:
            raise NotFoundError("Action suggestion not found")
        if s.status != SuggestionStatus.PENDING:
            raise ConflictError(ALREADY_DECIDED)
        return s

    def approve_action_suggestion(self, suggestion_id: int, decider_id: int) -> ActionSuggestion:
        with self._lock:
            s = self._pending(suggestion_id)
            # spawned action first; the suggestion is only marked once it exists
            self.create_assigned_action(action_template_id=s.action_template_id, child_id=s.child_id,
                                        assigned_by=decider_id, quantity=s.quantity,
                                        description=s.description, date=s.date, completed=False)
            s.status = SuggestionStatus.APPROVED
            s.decided_by = decider_id
            s.decided_at = utcnow()
            return s

    def decline_action_suggestion(self, suggestion_id: int, decider_id: int) -> ActionSuggestion:
        with self._lock:
            s = self._pending(suggestion_id)
            s.status = SuggestionStatus.DECLINED
            s.decided_by = decider_id
            s.decided_at = utcnow()
            return s

    # --- invitations ---
    def get_invitations(self, family_id: int) -> list[Invitation]:
        rows = [i for i in self.invitations.values() if i.family_id == family_id]
        return _newest_first(rows, lambda i: i.created_at)

    def create_invitation(self, *, family_id, email, role, token, created_by) -> Invitation:
        inv = Invitation(id=self._next_id("invitation"), family_id=family_id, email=email, role=role,
                         token=token, created_by=created_by, created_at=utcnow(), accepted=False,
                         used_at=None)
        self.invitations[inv.id] = inv
        return inv

    def get_invitation_by_token(self, token: str) -> Invitation | None:
        return next((i for i in self.invitations.values() if i.token == token), None)

    def _flip_accepted(self, token: str) -> Invitation:
        inv = self.get_invitation_by_token(token)
        if not inv:
            raise NotFoundError("Invitation not found")
        if inv.accepted:
            raise ConflictError(ALREADY_ACCEPTED)
        inv.accepted = True
        return inv

    def accept_invitation(self, token: str) -> Invitation:
        with self._lock:
            return self._flip_accepted(token)

    def create_user_from_invitation(self, token: str, *, username, hashed_password, name, email) -> User:
        with self._lock:
            inv = self.get_invitation_by_token(token)
            if not inv:
                raise NotFoundError("Invitation not found")
            if inv.used_at is not None:
                raise ConflictError(ALREADY_USED)
            # insert first so a username clash leaves the invitation unused
            user = self._insert_user(username=username, hashed_password=hashed_password, name=name,
                                     email=email, role=inv.role, family_id=inv.family_id)
            inv.used_at = utcnow()
            inv.accepted = True
            return user

    # --- reporting ---
    def get_child_points_for_period(self, child_id: int, start: datetime, end: datetime) -> float:
        total = 0.0
        for a in self.get_child_actions_for_period(child_id, start, end):
            if not a.completed:
                continue
            t = self.action_templates.get(a.action_template_id)
            if t:
                total += t.points * a.quantity
        return total

    def get_child_actions_for_period(self, child_id: int, start: datetime, end: datetime) -> list[AssignedAction]:
        return [a for a in self.get_assigned_actions(child_id) if self._in_window(a, start, end)]
