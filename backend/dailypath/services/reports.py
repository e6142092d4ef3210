# dailypath/services/reports.py
"""
Daily report: logged and planned minutes per UTC day for one user, with a
count of the referenced tasks by status.
"""
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Set

from dailypath.core.errors import ForbiddenError, ValidationError
from dailypath.db import crud
from dailypath.models.report import DailyReport, DailyReportQuery, TaskStatusCount
from dailypath.models.user import CurrentUser
from dailypath.services.access import can_manage_user, get_active_department_id
from dailypath.services.tasks import get_tasks_by_ids
from dailypath.utils.periods import day_bounds, duration_minutes

logger = logging.getLogger(__name__)

DEFAULT_RANGE_DAYS = 7
UNKNOWN_STATUS = "unknown"


class _DayTotals:
    def __init__(self):
        self.logged = 0
        self.planned = 0
        self.task_ids: Set[str] = set()


def _day_key(value: datetime) -> str:
    return value.astimezone(timezone.utc).date().isoformat()


async def daily_report(actor: CurrentUser, query: DailyReportQuery, today: Optional[date] = None) -> List[DailyReport]:
    today = today or datetime.now(timezone.utc).date()
    first_day = date.fromisoformat(query.start_date) if query.start_date else today - timedelta(days=DEFAULT_RANGE_DAYS)
    last_day = date.fromisoformat(query.end_date) if query.end_date else today
    if last_day < first_day:
        raise ValidationError(field_errors={"end_date": ["End date must not be before start date"]})
    range_start, _ = day_bounds(first_day)
    _, range_end = day_bounds(last_day)

    user_id = query.user_id or actor.id
    if not await can_manage_user(actor, user_id):
        raise ForbiddenError("You do not have permission to view this user's report")

    user = await crud.get_user_by_id(user_id)
    user_name = (user.full_name or user.email) if user else user_id

    department_id = query.department_id
    if department_id is None:
        if user_id == actor.id and actor.active_department:
            department_id = actor.active_department.id
        else:
            department_id = await get_active_department_id(user_id)
    department = await crud.get_department_by_id(department_id) if department_id else None

    days: Dict[str, _DayTotals] = defaultdict(_DayTotals)
    for log in await crud.get_time_logs_touching(user_id, range_start, range_end):
        totals = days[_day_key(log.start)]
        totals.logged += duration_minutes(log.start, log.end)
        totals.task_ids.add(log.task_id)
    for slot in await crud.get_plan_slots_touching(user_id, range_start, range_end):
        totals = days[_day_key(slot.start)]
        totals.planned += duration_minutes(slot.start, slot.end)
        totals.task_ids.add(slot.task_id)

    all_task_ids = set().union(*(t.task_ids for t in days.values())) if days else set()
    # Statuses come through the visibility rules of the requester
    visible = await get_tasks_by_ids(actor, all_task_ids) if all_task_ids else []
    status_by_task = {t.id: t.status for t in visible}

    reports = []
    for day in sorted(days):
        totals = days[day]
        counts: Dict[str, int] = defaultdict(int)
        for task_id in totals.task_ids:
            counts[status_by_task.get(task_id, UNKNOWN_STATUS)] += 1
        reports.append(DailyReport(
            date=day,
            user_id=user_id,
            user_name=user_name,
            department_id=department_id,
            department_name=department.name if department else None,
            logged_minutes=totals.logged,
            plan_minutes=totals.planned,
            task_summary=[TaskStatusCount(status=s, count=c) for s, c in sorted(counts.items())],
        ))
    logger.info(f"Daily report for user {user_id}: {len(reports)} days between {first_day} and {last_day}")
    return reports
