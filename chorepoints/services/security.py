from datetime import datetime, timedelta, timezone
from passlib.context import CryptContext
import jwt
from ..core.config import settings
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.PASSWORD_HASH_ROUNDS)

def hash_password(p: str) -> str:
    # Ensure bcrypt compatibility (72-byte limit)
    p = p.encode("utf-8")[:72].decode("utf-8", errors="ignore")
    return pwd_context.hash(p)

def verify_password(p: str, hashed: str) -> bool:
    p = p.encode("utf-8")[:72].decode("utf-8", errors="ignore")
    return pwd_context.verify(p, hashed)

def create_access_token(sub: int | str, minutes: int | None = None) -> str:
    exp_min = minutes if minutes is not None else settings.ACCESS_TOKEN_MIN
    expire = datetime.now(timezone.utc) + timedelta(minutes=exp_min)
    payload = {"sub": str(sub), "exp": expire}
    return jwt.encode(payload, settings.SECRET_KEY, algorithm="HS256")

def decode_access_token(token: str) -> dict:
    """Raises ``jwt.PyJWTError`` for bad signatures and expired tokens."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=["HS256"])
