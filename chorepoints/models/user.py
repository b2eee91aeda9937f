from __future__ import annotations
from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Optional
from sqlalchemy import ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..db.base_class import Base
from ..db.types import UTCDateTime
from . import utcnow

if TYPE_CHECKING:
    from .family import Family

class UserRole(StrEnum):
    HEAD = "head"
    PARENT = "parent"
    CHILD = "child"

class User(Base):
    __tablename__ = "user"
    __table_args__ = (
        # at most one head per family
        Index(
            "uq_user_family_head",
            "family_id",
            unique=True,
            sqlite_where=text("role = 'head'"),
            postgresql_where=text("role = 'head'"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255))
    role: Mapped[UserRole] = mapped_column(String(16), nullable=False)
    family_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("family.id"), index=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    family: Mapped[Optional["Family"]] = relationship(back_populates="members")
