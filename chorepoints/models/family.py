from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from ..db.base_class import Base
from ..db.types import UTCDateTime
from . import utcnow

if TYPE_CHECKING:
    from .user import User
    from .action import ActionTemplate
    from .invite import Invitation

class Family(Base):
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), default=utcnow, nullable=False)
    members: Mapped[list["User"]] = relationship(back_populates="family")
    action_templates: Mapped[list["ActionTemplate"]] = relationship(back_populates="family", cascade="all,delete-orphan")
    invitations: Mapped[list["Invitation"]] = relationship(back_populates="family", cascade="all,delete-orphan")
