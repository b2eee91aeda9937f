from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING
from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.base_class import Base
from ..db.types import UTCDateTime
from . import utcnow

if TYPE_CHECKING:
    from .family import Family

class SuggestionStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"

class ActionTemplate(Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    family_id: Mapped[int] = mapped_column(Integer, ForeignKey("family.id", ondelete="CASCADE"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    # signed; negative values are penalties
    points: Mapped[float] = mapped_column(Float, nullable=False)
    created_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("user.id", ondelete="SET NULL"))
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    family: Mapped["Family"] = relationship(back_populates="action_templates")
    assigned_actions: Mapped[list["AssignedAction"]] = relationship(back_populates="action_template", cascade="all,delete-orphan")
    suggestions: Mapped[list["ActionSuggestion"]] = relationship(back_populates="action_template", cascade="all,delete-orphan")

class AssignedAction(Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    action_template_id: Mapped[int] = mapped_column(Integer, ForeignKey("actiontemplate.id", ondelete="CASCADE"), index=True, nullable=False)
    child_id: Mapped[int] = mapped_column(Integer, ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)
    assigned_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("user.id", ondelete="SET NULL"))
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    date: Mapped[datetime] = mapped_column(UTCDateTime(), index=True, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    action_template: Mapped["ActionTemplate"] = relationship(back_populates="assigned_actions")

class ActionSuggestion(Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    action_template_id: Mapped[int] = mapped_column(Integer, ForeignKey("actiontemplate.id", ondelete="CASCADE"), index=True, nullable=False)
    child_id: Mapped[int] = mapped_column(Integer, ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    status: Mapped[SuggestionStatus] = mapped_column(String(16), default=SuggestionStatus.PENDING, index=True, nullable=False)
    decided_by: Mapped[int | None] = mapped_column(Integer, ForeignKey("user.id", ondelete="SET NULL"))
    decided_at: Mapped[datetime | None] = mapped_column(UTCDateTime())
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)

    action_template: Mapped["ActionTemplate"] = relationship(back_populates="suggestions")
