from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from .common import CamelModel, ORMModel


class UserOut(ORMModel):
    id: int
    username: str
    name: str
    email: Optional[str] = None
    role: str
    family_id: Optional[int] = None
    created_at: datetime


class UserUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6)
