from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ...models.user import User
from ...schemas.action import ReportActionOut
from ...schemas.common import MAX_ID
from ...schemas.report import PointsOut, SummaryOut
from ...services.report_service import actions_report, points_report, summary
from ...storage import Storage
from ..deps import get_current_user, get_storage

router = APIRouter()


def _check_child(storage: Storage, child_id: int, current: User, what: str) -> None:
    child = storage.get_user(child_id)
    if not child or child.family_id != current.family_id:
        raise HTTPException(403, f"You don't have permission to view this child's {what}")


@router.get("/reports/points", response_model=PointsOut)
def points(
    child_id: int = Query(alias="childId", gt=0, le=MAX_ID),
    start_date: datetime = Query(alias="startDate"),
    end_date: datetime = Query(alias="endDate"),
    storage: Storage = Depends(get_storage),
    current: User = Depends(get_current_user),
):
    _check_child(storage, child_id, current, "points")
    return PointsOut(points=points_report(storage, child_id, start_date, end_date))


@router.get("/reports/actions", response_model=List[ReportActionOut])
def actions(
    child_id: int = Query(alias="childId", gt=0, le=MAX_ID),
    start_date: datetime = Query(alias="startDate"),
    end_date: datetime = Query(alias="endDate"),
    storage: Storage = Depends(get_storage),
    current: User = Depends(get_current_user),
):
    _check_child(storage, child_id, current, "actions")
    return actions_report(storage, child_id, start_date, end_date)


@router.get("/summary", response_model=SummaryOut)
def dashboard_summary(
    child_id: Optional[int] = Query(default=None, alias="childId", gt=0, le=MAX_ID),
    storage: Storage = Depends(get_storage),
    current: User = Depends(get_current_user),
):
    if child_id:
        _check_child(storage, child_id, current, "data")
    return summary(storage, current, child_id=child_id)
