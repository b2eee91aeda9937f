import logging
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from ...schemas.auth import LoginIn, RegisterIn, TokenOut
from ...schemas.user import UserOut, UserUpdate
from ...services.user_service import authenticate, register, update_profile
from ...services.security import create_access_token
from ...models.user import User
from ...storage import Storage
from ..deps import get_storage, get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()

def _token_out(user: User) -> TokenOut:
    return TokenOut(access_token=create_access_token(user.id), user=UserOut.model_validate(user))

@router.post("/register", response_model=TokenOut, status_code=status.HTTP_201_CREATED)
def register_user(payload: RegisterIn, storage: Storage = Depends(get_storage)):
    logger.info(f"Registration attempt for username: {payload.username}")
    user = register(storage, payload)
    return _token_out(user)

@router.post("/login", response_model=TokenOut)
def login(payload: LoginIn, storage: Storage = Depends(get_storage)):
    user = authenticate(storage, payload.username, payload.password)
    if not user:
        logger.warning(f"Failed login for username: {payload.username}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect credentials")
    return _token_out(user)

@router.post("/token", response_model=TokenOut)
def token(form: OAuth2PasswordRequestForm = Depends(), storage: Storage = Depends(get_storage)):
    user = authenticate(storage, form.username, form.password)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect credentials")
    return _token_out(user)

@router.get("/user", response_model=UserOut)
def me(current: User = Depends(get_current_user)):
    return current

@router.patch("/user", response_model=UserOut)
def update_me(payload: UserUpdate, storage: Storage = Depends(get_storage), current: User = Depends(get_current_user)):
    return update_profile(storage, current, payload)
