"""Access layer interface.

Route handlers and services depend on this interface, never on a specific
store. ``SqlStorage`` is the durable implementation; ``MemStorage`` keeps
everything in process-wide dicts and exists for tests.

Contracts shared by every implementation:

* ``update_*`` raises ``NotFoundError`` when the row is absent and merges only
  the keys present in ``data``.
* ``delete_*`` / ``remove_*`` are no-ops when the row is already gone.
* assigned actions are listed by ``date`` descending, then id descending;
  suggestions and invitations by ``created_at`` descending, then id descending.
* ``approve_action_suggestion`` / ``decline_action_suggestion`` are
  compare-and-set on ``status == pending`` and raise ``ConflictError`` otherwise.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Iterable

from ..models.action import ActionSuggestion, ActionTemplate, AssignedAction
from ..models.family import Family
from ..models.invite import Invitation
from ..models.user import User

ALREADY_DECIDED = "This suggestion has already been processed"
ALREADY_ACCEPTED = "Invitation already accepted"
ALREADY_USED = "Invitation has already been used"


class Storage(ABC):
    # --- users ---
    @abstractmethod
    def get_user(self, user_id: int) -> User | None: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> User | None: ...

    @abstractmethod
    def get_users(self, user_ids: Iterable[int]) -> dict[int, User]: ...

    @abstractmethod
    def create_user(self, *, username: str, hashed_password: str, name: str, email: str | None,
                    role: str, family_id: int | None) -> User: ...

    @abstractmethod
    def update_user(self, user_id: int, data: dict[str, Any]) -> User: ...

    # --- families ---
    @abstractmethod
    def get_family(self, family_id: int) -> Family | None: ...

    @abstractmethod
    def create_family_with_head(self, *, family_name: str, username: str, hashed_password: str,
                                name: str, email: str | None) -> User:
        """Create a family and its head user together; both or neither."""

    @abstractmethod
    def get_family_members(self, family_id: int) -> list[User]: ...

    @abstractmethod
    def remove_family_member(self, user_id: int) -> None:
        """Hard-delete a user with their own actions and suggestions.

        Rows the user authored (templates, assignments, decisions, invitations)
        are kept with the author reference cleared.
        """

    # --- action templates ---
    @abstractmethod
    def get_action_templates(self, family_id: int) -> list[ActionTemplate]: ...

    @abstractmethod
    def get_action_template(self, template_id: int) -> ActionTemplate | None: ...

    @abstractmethod
    def get_action_templates_by_ids(self, template_ids: Iterable[int]) -> dict[int, ActionTemplate]: ...

    @abstractmethod
    def create_action_template(self, *, family_id: int, name: str, points: float,
                               description: str | None, created_by: int | None) -> ActionTemplate: ...

    @abstractmethod
    def update_action_template(self, template_id: int, data: dict[str, Any]) -> ActionTemplate: ...

    @abstractmethod
    def delete_action_template(self, template_id: int) -> None: ...

    # --- assigned actions ---
    @abstractmethod
    def get_assigned_actions(self, child_id: int) -> list[AssignedAction]: ...

    @abstractmethod
    def get_assigned_actions_for_family(self, family_id: int) -> list[AssignedAction]: ...

    @abstractmethod
    def get_family_actions_for_period(self, family_id: int, start: datetime, end: datetime) -> list[AssignedAction]: ...

    @abstractmethod
    def get_assigned_action(self, action_id: int) -> AssignedAction | None: ...

    @abstractmethod
    def create_assigned_action(self, *, action_template_id: int, child_id: int, assigned_by: int | None,
                               quantity: int, description: str | None, date: datetime,
                               completed: bool = False) -> AssignedAction: ...

    @abstractmethod
    def update_assigned_action(self, action_id: int, data: dict[str, Any]) -> AssignedAction: ...

    @abstractmethod
    def delete_assigned_action(self, action_id: int) -> None: ...

    # --- suggestions ---
    @abstractmethod
    def get_action_suggestions(self, family_id: int, status: str | None = None,
                               child_id: int | None = None) -> list[ActionSuggestion]: ...

    @abstractmethod
    def get_action_suggestion(self, suggestion_id: int) -> ActionSuggestion | None: ...

    @abstractmethod
    def create_action_suggestion(self, *, action_template_id: int, child_id: int, quantity: int,
                                 description: str | None, date: datetime) -> ActionSuggestion: ...

    @abstractmethod
    def approve_action_suggestion(self, suggestion_id: int, decider_id: int) -> ActionSuggestion:
        """Mark approved and spawn the assigned action atomically."""

    @abstractmethod
    def decline_action_suggestion(self, suggestion_id: int, decider_id: int) -> ActionSuggestion: ...

    # --- invitations ---
    @abstractmethod
    def get_invitations(self, family_id: int) -> list[Invitation]: ...

    @abstractmethod
    def create_invitation(self, *, family_id: int, email: str, role: str, token: str,
                          created_by: int | None) -> Invitation: ...

    @abstractmethod
    def get_invitation_by_token(self, token: str) -> Invitation | None: ...

    @abstractmethod
    def accept_invitation(self, token: str) -> Invitation:
        """Flip ``accepted`` false -> true; ``ConflictError`` if already accepted."""

    @abstractmethod
    def create_user_from_invitation(self, token: str, *, username: str, hashed_password: str,
                                    name: str, email: str | None) -> User:
        """Claim an unused invitation and create the invited user in one transaction.

        Works whether or not the link was accepted first. Marks ``used_at``
        (and ``accepted``); a second claim raises ``ConflictError``.
        """

    # --- reporting ---
    @abstractmethod
    def get_child_points_for_period(self, child_id: int, start: datetime, end: datetime) -> float:
        """Sum of ``points * quantity`` over completed actions in ``[start, end]``."""

    @abstractmethod
    def get_child_actions_for_period(self, child_id: int, start: datetime, end: datetime) -> list[AssignedAction]: ...
