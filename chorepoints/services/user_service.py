import logging
from typing import Any

from ..core.errors import DomainError
from ..models.user import User
from ..schemas.auth import RegisterIn
from ..schemas.user import UserUpdate
from ..storage import Storage
from .security import hash_password, verify_password

logger = logging.getLogger(__name__)

def register(storage: Storage, payload: RegisterIn) -> User:
    """Found a new family with the caller as head, or join one by invitation."""
    if storage.get_user_by_username(payload.username):
        logger.warning(f"Registration failed: username already exists - {payload.username}")
        raise DomainError("Username already exists")

    hashed = hash_password(payload.password)
    if payload.invitation_token:
        user = storage.create_user_from_invitation(
            payload.invitation_token,
            username=payload.username,
            hashed_password=hashed,
            name=payload.name,
            email=payload.email,
        )
        logger.info(f"User {user.id} joined family {user.family_id} as {user.role} by invitation")
        return user

    user = storage.create_family_with_head(
        family_name=payload.family_name,
        username=payload.username,
        hashed_password=hashed,
        name=payload.name,
        email=payload.email,
    )
    logger.info(f"Family {user.family_id} created with head user {user.id}")
    return user

def authenticate(storage: Storage, username: str, password: str) -> User | None:
    user = storage.get_user_by_username(username)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user

def update_profile(storage: Storage, user: User, payload: UserUpdate) -> User:
    # role and family are not editable here
    data: dict[str, Any] = {}
    fields = payload.model_dump(exclude_unset=True)
    if fields.get("name") is not None:
        data["name"] = fields["name"]
    if "email" in fields:
        data["email"] = fields["email"]
    if fields.get("password") is not None:
        data["hashed_password"] = hash_password(fields["password"])
    if not data:
        return user
    return storage.update_user(user.id, data)
