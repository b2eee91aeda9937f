import logging
import secrets

from ..core.errors import DomainError, NotFoundError, PermissionDeniedError
from ..models.invite import Invitation
from ..models.user import User, UserRole
from ..storage import Storage

logger = logging.getLogger(__name__)


def _token() -> str:
    return secrets.token_urlsafe(24)


def create_invitation(storage: Storage, *, inviter: User, email: str, role: str) -> Invitation:
    if role not in (UserRole.PARENT, UserRole.CHILD):
        raise DomainError("Invalid role")
    inv = storage.create_invitation(
        family_id=inviter.family_id,
        email=email,
        role=role,
        token=_token(),
        created_by=inviter.id,
    )
    logger.info(f"Invitation {inv.id} created for family {inv.family_id} by user {inviter.id} (role={role})")
    return inv


def accept_invitation(storage: Storage, token: str) -> Invitation:
    inv = storage.accept_invitation(token)
    logger.info(f"Invitation {inv.id} accepted for family {inv.family_id}")
    return inv


def remove_member(storage: Storage, *, caller: User, member_id: int) -> None:
    """Remove a member of the caller's family. Heads can never be removed."""
    member = storage.get_user(member_id)
    if not member:
        raise NotFoundError("Member not found")
    if member.family_id != caller.family_id:
        raise PermissionDeniedError("You don't have permission to remove this member")
    if member.id == caller.id:
        raise DomainError("You cannot remove yourself")
    if member.role == UserRole.HEAD:
        raise DomainError("You cannot remove another head")

    storage.remove_family_member(member_id)
    logger.info(f"User {member_id} removed from family {caller.family_id} by {caller.id}")
