from datetime import datetime
from typing import Literal
from pydantic import EmailStr
from .common import CamelModel, ORMModel
class InvitationCreate(CamelModel):
    email: EmailStr
    role: Literal["parent", "child"]
class InvitationOut(ORMModel):
    id: int
    family_id: int
    email: str
    role: str
    token: str
    created_by: int | None
    created_at: datetime
    accepted: bool
    used_at: datetime | None = None
class InvitationLinkOut(InvitationOut):
    invite_url: str
class InvitationAcceptOut(CamelModel):
    message: str
    invitation_token: str
