"""Request dependencies: store access, current principal, role gates."""
from typing import Annotated, Generator, Optional
from fastapi import Depends, HTTPException, Path, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
import jwt
from ..db.session import SessionLocal
from ..models.user import User, UserRole
from ..schemas.common import MAX_ID
from ..services.security import decode_access_token
from ..storage import SqlStorage, Storage

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/token")

IdPath = Annotated[int, Path(gt=0, le=MAX_ID)]

def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_storage(db: Session = Depends(get_db)) -> Storage:
    return SqlStorage(db)

def get_current_user(token: str = Depends(oauth2_scheme), storage: Storage = Depends(get_storage)) -> User:
    """The user behind the bearer token, else 401."""
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated",
                            headers={"WWW-Authenticate": "Bearer"})
    sub: Optional[str] = payload.get("sub")
    if not sub or not sub.isdigit():
        raise HTTPException(status_code=401, detail="Invalid token payload")
    user = storage.get_user(int(sub))
    if not user:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user

def require_head_or_parent(user: User = Depends(get_current_user)) -> User:
    """Heads and parents pass; children get 403."""
    if user.role not in (UserRole.HEAD, UserRole.PARENT):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    return user

def require_head(user: User = Depends(get_current_user)) -> User:
    """Only the family head passes."""
    if user.role != UserRole.HEAD:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
    return user
