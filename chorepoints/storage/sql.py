import logging
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.errors import ConflictError, NotFoundError
from ..models import utcnow
from ..models.action import ActionSuggestion, ActionTemplate, AssignedAction, SuggestionStatus
from ..models.family import Family
from ..models.invite import Invitation
from ..models.user import User, UserRole
from .base import ALREADY_ACCEPTED, ALREADY_DECIDED, ALREADY_USED, Storage

logger = logging.getLogger(__name__)

_ACTION_ORDER = (AssignedAction.date.desc(), AssignedAction.id.desc())


class SqlStorage(Storage):
    """Durable access layer over a SQLAlchemy session (one per request)."""

    def __init__(self, db: Session):
        self.db = db

    def _commit(self):
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Integrity error on commit: {e.orig}")
            raise ConflictError("Record conflicts with an existing one") from e
        except Exception:
            self.db.rollback()
            raise

    def _child_ids(self, family_id: int):
        return select(User.id).where(User.family_id == family_id, User.role == UserRole.CHILD)

    # --- users ---
    def get_user(self, user_id: int) -> User | None:
        return self.db.get(User, user_id)

    def get_user_by_username(self, username: str) -> User | None:
        return self.db.execute(select(User).where(User.username == username)).scalar_one_or_none()

    def get_users(self, user_ids: Iterable[int]) -> dict[int, User]:
        ids = {i for i in user_ids if i is not None}
        if not ids:
            return {}
        return {u.id: u for u in self.db.execute(select(User).where(User.id.in_(ids))).scalars()}

    def create_user(self, *, username, hashed_password, name, email, role, family_id) -> User:
        user = User(username=username, hashed_password=hashed_password, name=name, email=email,
                    role=role, family_id=family_id)
        self.db.add(user)
        self._commit()
        self.db.refresh(user)
        return user

    def update_user(self, user_id: int, data: dict[str, Any]) -> User:
        user = self.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        for key, value in data.items():
            setattr(user, key, value)
        self._commit()
        self.db.refresh(user)
        return user

    # --- families ---
    def get_family(self, family_id: int) -> Family | None:
        return self.db.get(Family, family_id)

    def create_family_with_head(self, *, family_name, username, hashed_password, name, email) -> User:
        fam = Family(name=family_name)
        self.db.add(fam)
        self.db.flush()                   # get fam.id without a full commit
        user = User(username=username, hashed_password=hashed_password, name=name, email=email,
                    role=UserRole.HEAD, family_id=fam.id)
        self.db.add(user)
        self._commit()
        self.db.refresh(user)
        return user

    def get_family_members(self, family_id: int) -> list[User]:
        q = select(User).where(User.family_id == family_id).order_by(User.id)
        return list(self.db.execute(q).scalars())

    def remove_family_member(self, user_id: int) -> None:
        if not self.get_user(user_id):
            return
        try:
            self.db.execute(delete(AssignedAction).where(AssignedAction.child_id == user_id))
            self.db.execute(delete(ActionSuggestion).where(ActionSuggestion.child_id == user_id))
            self.db.execute(update(AssignedAction).where(AssignedAction.assigned_by == user_id).values(assigned_by=None))
            self.db.execute(update(ActionSuggestion).where(ActionSuggestion.decided_by == user_id).values(decided_by=None))
            self.db.execute(update(ActionTemplate).where(ActionTemplate.created_by == user_id).values(created_by=None))
            self.db.execute(update(Invitation).where(Invitation.created_by == user_id).values(created_by=None))
            self.db.execute(delete(User).where(User.id == user_id))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.expire_all()

    # --- action templates ---
    def get_action_templates(self, family_id: int) -> list[ActionTemplate]:
        q = select(ActionTemplate).where(ActionTemplate.family_id == family_id).order_by(ActionTemplate.name, ActionTemplate.id)
        return list(self.db.execute(q).scalars())

    def get_action_template(self, template_id: int) -> ActionTemplate | None:
        return self.db.get(ActionTemplate, template_id)

    def get_action_templates_by_ids(self, template_ids: Iterable[int]) -> dict[int, ActionTemplate]:
        ids = set(template_ids)
        if not ids:
            return {}
        q = select(ActionTemplate).where(ActionTemplate.id.in_(ids))
        return {t.id: t for t in self.db.execute(q).scalars()}

    def create_action_template(self, *, family_id, name, points, description, created_by) -> ActionTemplate:
        t = ActionTemplate(family_id=family_id, name=name, points=points, description=description, created_by=created_by)
        self.db.add(t)
        self._commit()
        self.db.refresh(t)
        return t

    def update_action_template(self, template_id: int, data: dict[str, Any]) -> ActionTemplate:
        t = self.get_action_template(template_id)
        if not t:
            raise NotFoundError("Action template not found")
        for key, value in data.items():
            setattr(t, key, value)
        self._commit()
        self.db.refresh(t)
        return t

    def delete_action_template(self, template_id: int) -> None:
        t = self.get_action_template(template_id)
        if not t:
            return
        self.db.delete(t)
        self._commit()

    # --- assigned actions ---
    def get_assigned_actions(self, child_id: int) -> list[AssignedAction]:
        q = select(AssignedAction).where(AssignedAction.child_id == child_id).order_by(*_ACTION_ORDER)
        return list(self.db.execute(q).scalars())

    def get_assigned_actions_for_family(self, family_id: int) -> list[AssignedAction]:
        q = (
            select(AssignedAction)
            .where(AssignedAction.child_id.in_(self._child_ids(family_id)))
            .order_by(*_ACTION_ORDER)
        )
        return list(self.db.execute(q).scalars())

    def get_family_actions_for_period(self, family_id: int, start: datetime, end: datetime) -> list[AssignedAction]:
        q = (
            select(AssignedAction)
            .where(
                AssignedAction.child_id.in_(self._child_ids(family_id)),
                AssignedAction.date >= start,
                AssignedAction.date <= end,
            )
            .order_by(*_ACTION_ORDER)
        )
        return list(self.db.execute(q).scalars())

    def get_assigned_action(self, action_id: int) -> AssignedAction | None:
        return self.db.get(AssignedAction, action_id)

    def create_assigned_action(self, *, action_template_id, child_id, assigned_by, quantity, description,
                               date, completed=False) -> AssignedAction:
        a = AssignedAction(action_template_id=action_template_id, child_id=child_id, assigned_by=assigned_by,
                           quantity=quantity, description=description, date=date, completed=completed)
        self.db.add(a)
        self._commit()
        self.db.refresh(a)
        return a

    def update_assigned_action(self, action_id: int, data: dict[str, Any]) -> AssignedAction:
        a = self.get_assigned_action(action_id)
        if not a:
            raise NotFoundError("Assigned action not found")
        for key, value in data.items():
            setattr(a, key, value)
        self._commit()
        self.db.refresh(a)
        return a

    def delete_assigned_action(self, action_id: int) -> None:
        self.db.execute(delete(AssignedAction).where(AssignedAction.id == action_id))
        self._commit()

    # --- suggestions ---
    def get_action_suggestions(self, family_id: int, status: str | None = None,
                               child_id: int | None = None) -> list[ActionSuggestion]:
        q = select(ActionSuggestion).where(ActionSuggestion.child_id.in_(self._child_ids(family_id)))
        if status:
            q = q.where(ActionSuggestion.status == status)
        if child_id is not None:
            q = q.where(ActionSuggestion.child_id == child_id)
        q = q.order_by(ActionSuggestion.created_at.desc(), ActionSuggestion.id.desc())
        return list(self.db.execute(q).scalars())

    def get_action_suggestion(self, suggestion_id: int) -> ActionSuggestion | None:
        return self.db.get(ActionSuggestion, suggestion_id)

    def create_action_suggestion(self, *, action_template_id, child_id, quantity, description, date) -> ActionSuggestion:
        s = ActionSuggestion(action_template_id=action_template_id, child_id=child_id, quantity=quantity,
                             description=description, date=date, status=SuggestionStatus.PENDING)
        self.db.add(s)
        self._commit()
        self.db.refresh(s)
        return s

    def _decide(self, suggestion_id: int, decider_id: int, status: SuggestionStatus) -> ActionSuggestion:
        # compare-and-set: only a pending row is updated, so two concurrent
        # deciders cannot both win
        result = self.db.execute(
            update(ActionSuggestion)
            .where(ActionSuggestion.id == suggestion_id, ActionSuggestion.status == SuggestionStatus.PENDING)
            .values(status=status, decided_by=decider_id, decided_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            if not self.get_action_suggestion(suggestion_id):
                raise NotFoundError("Action suggestion not found")
            raise ConflictError(ALREADY_DECIDED)
        return self.get_action_suggestion(suggestion_id)

    def approve_action_suggestion(self, suggestion_id: int, decider_id: int) -> ActionSuggestion:
        try:
            s = self._decide(suggestion_id, decider_id, SuggestionStatus.APPROVED)
            self.db.add(AssignedAction(
                action_template_id=s.action_template_id,
                child_id=s.child_id,
                assigned_by=decider_id,
                quantity=s.quantity,
                description=s.description,
                date=s.date,
                completed=False,
            ))
            # status flip and spawned action land in the same transaction
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(s)
        return s

    def decline_action_suggestion(self, suggestion_id: int, decider_id: int) -> ActionSuggestion:
        try:
            s = self._decide(suggestion_id, decider_id, SuggestionStatus.DECLINED)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(s)
        return s

    # --- invitations ---
    def get_invitations(self, family_id: int) -> list[Invitation]:
        q = select(Invitation).where(Invitation.family_id == family_id).order_by(Invitation.created_at.desc(), Invitation.id.desc())
        return list(self.db.execute(q).scalars())

    def create_invitation(self, *, family_id, email, role, token, created_by) -> Invitation:
        inv = Invitation(family_id=family_id, email=email, role=role, token=token, created_by=created_by, accepted=False)
        self.db.add(inv)
        self._commit()
        self.db.refresh(inv)
        return inv

    def get_invitation_by_token(self, token: str) -> Invitation | None:
        return self.db.execute(select(Invitation).where(Invitation.token == token)).scalar_one_or_none()

    def _flip_accepted(self, token: str) -> Invitation:
        result = self.db.execute(
            update(Invitation)
            .where(Invitation.token == token, Invitation.accepted.is_(False))
            .values(accepted=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            if not self.get_invitation_by_token(token):
                raise NotFoundError("Invitation not found")
            raise ConflictError(ALREADY_ACCEPTED)
        return self.get_invitation_by_token(token)

    def accept_invitation(self, token: str) -> Invitation:
        try:
            inv = self._flip_accepted(token)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(inv)
        return inv

    def _claim(self, token: str) -> Invitation:
        result = self.db.execute(
            update(Invitation)
            .where(Invitation.token == token, Invitation.used_at.is_(None))
            .values(used_at=utcnow(), accepted=True)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.db.rollback()
            if not self.get_invitation_by_token(token):
                raise NotFoundError("Invitation not found")
            raise ConflictError(ALREADY_USED)
        return self.get_invitation_by_token(token)

    def create_user_from_invitation(self, token: str, *, username, hashed_password, name, email) -> User:
        # a failed user insert rolls the claim back with it
        inv = self._claim(token)
        user = User(username=username, hashed_password=hashed_password, name=name, email=email,
                    role=inv.role, family_id=inv.family_id)
        self.db.add(user)
        self._commit()
        self.db.refresh(user)
        return user

    # --- reporting ---
    def get_child_points_for_period(self, child_id: int, start: datetime, end: datetime) -> float:
        q = (
            select(func.coalesce(func.sum(ActionTemplate.points * AssignedAction.quantity), 0.0))
            .select_from(AssignedAction)
            .join(ActionTemplate, ActionTemplate.id == AssignedAction.action_template_id)
            .where(
                AssignedAction.child_id == child_id,
                AssignedAction.completed.is_(True),
                AssignedAction.date >= start,
                AssignedAction.date <= end,
            )
        )
        return float(self.db.execute(q).scalar_one())

    def get_child_actions_for_period(self, child_id: int, start: datetime, end: datetime) -> list[AssignedAction]:
        q = (
            select(AssignedAction)
            .where(
                AssignedAction.child_id == child_id,
                AssignedAction.date >= start,
                AssignedAction.date <= end,
            )
            .order_by(*_ACTION_ORDER)
        )
        return list(self.db.execute(q).scalars())
