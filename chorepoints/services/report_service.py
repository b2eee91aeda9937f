"""Point totals and action lists for children over date windows."""
import logging
from datetime import datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo

from ..core.config import settings
from ..models import utcnow
from ..models.user import User, UserRole
from ..schemas.action import ReportActionOut
from ..schemas.report import SummaryOut
from ..storage import Storage
from .action_service import enrich_report_actions

logger = logging.getLogger(__name__)


def local_zone() -> tzinfo:
    return ZoneInfo(settings.TIMEZONE)


def _midnight(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def day_window(now: datetime, tz: tzinfo | None = None) -> tuple[datetime, datetime]:
    """The calendar day containing ``now`` in ``tz``, inclusive on both ends."""
    local = now.astimezone(tz or local_zone())
    start = _midnight(local)
    end = start + timedelta(days=1) - timedelta(microseconds=1)
    return start, end


def week_start(now: datetime, tz: tzinfo | None = None) -> datetime:
    """Midnight of the most recent Sunday (weeks start on Sunday)."""
    local = now.astimezone(tz or local_zone())
    days_since_sunday = (local.weekday() + 1) % 7
    return _midnight(local) - timedelta(days=days_since_sunday)


def month_start(now: datetime, tz: tzinfo | None = None) -> datetime:
    local = now.astimezone(tz or local_zone())
    return _midnight(local).replace(day=1)


def points_report(storage: Storage, child_id: int, start: datetime, end: datetime) -> float:
    return storage.get_child_points_for_period(child_id, start, end)


def actions_report(storage: Storage, child_id: int, start: datetime, end: datetime) -> list[ReportActionOut]:
    return enrich_report_actions(storage, storage.get_child_actions_for_period(child_id, start, end))


def summary(storage: Storage, caller: User, child_id: int | None = None,
            now: datetime | None = None) -> SummaryOut:
    """Weekly/monthly points and completed actions for one child or all of them.

    ``pendingSuggestions`` is only counted for head/parent callers.
    """
    now = now or utcnow()
    w_start = week_start(now)
    m_start = month_start(now)

    if child_id:
        children = [child_id]
    elif caller.role == UserRole.CHILD:
        children = [caller.id]
    else:
        children = [m.id for m in storage.get_family_members(caller.family_id) if m.role == UserRole.CHILD]

    weekly = 0.0
    monthly = 0.0
    completed = 0
    for cid in children:
        weekly += storage.get_child_points_for_period(cid, w_start, now)
        monthly += storage.get_child_points_for_period(cid, m_start, now)
        completed += sum(1 for a in storage.get_child_actions_for_period(cid, m_start, now) if a.completed)

    pending = 0
    if caller.role != UserRole.CHILD:
        pending = len(storage.get_action_suggestions(caller.family_id, status="pending"))

    return SummaryOut(
        weekly_points=weekly,
        monthly_points=monthly,
        completed_actions=completed,
        pending_suggestions=pending,
    )
