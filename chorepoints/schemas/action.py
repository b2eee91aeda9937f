from datetime import datetime
from typing import Optional

from pydantic import ConfigDict, Field

from .common import CamelModel, Id, ORMModel, Points, Quantity
from .user import UserOut


class ActionTemplateCreate(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    points: Points
    description: Optional[str] = None


class ActionTemplateUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    points: Optional[Points] = None
    description: Optional[str] = None


class ActionTemplateOut(ORMModel):
    id: int
    family_id: int
    name: str
    description: Optional[str] = None
    points: float
    created_by: Optional[int] = None
    created_at: datetime


class AssignedActionCreate(CamelModel):
    action_template_id: Id
    child_id: Id
    quantity: Quantity = 1
    description: Optional[str] = None
    date: datetime
    completed: bool = False


class AssignedActionUpdate(CamelModel):
    model_config = ConfigDict(extra="forbid")

    action_template_id: Optional[Id] = None
    child_id: Optional[Id] = None
    quantity: Optional[Quantity] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    completed: Optional[bool] = None


class AssignedActionOut(ORMModel):
    id: int
    action_template_id: int
    child_id: int
    assigned_by: Optional[int] = None
    quantity: int
    description: Optional[str] = None
    date: datetime
    completed: bool
    created_at: datetime


class AssignedActionDetail(AssignedActionOut):
    action_template: Optional[ActionTemplateOut] = None
    assigned_by_user: Optional[UserOut] = None
    child: Optional[UserOut] = None


class ReportActionOut(AssignedActionDetail):
    # template points x quantity, whether completed or not
    total_points: float


class SuggestionCreate(CamelModel):
    action_template_id: Id
    child_id: Optional[Id] = None
    quantity: Quantity = 1
    description: Optional[str] = None
    date: datetime


class SuggestionOut(ORMModel):
    id: int
    action_template_id: int
    child_id: int
    quantity: int
    description: Optional[str] = None
    date: datetime
    status: str
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    created_at: datetime


class SuggestionDetail(SuggestionOut):
    action_template: Optional[ActionTemplateOut] = None
    child: Optional[UserOut] = None
    decided_by_user: Optional[UserOut] = None
