# dailypath/services/time_logs.py
"""
Time log operations.

Logged periods are rounded to the nearest 15 minutes on save. A user may only
change or remove their own logs, and only while the log started within the
edit window (TIME_LOG_EDIT_WINDOW_DAYS).
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from dailypath.core.config import settings
from dailypath.core.errors import ForbiddenError, NotFoundError, ValidationError
from dailypath.db import crud
from dailypath.models.time_log import TimeLog, TimeLogCreate, TimeLogInDB, TimeLogQuery, TimeLogUpdate
from dailypath.models.user import CurrentUser
from dailypath.utils.periods import parse_period, round_to_interval

logger = logging.getLogger(__name__)


def rounded_period(period: str) -> Tuple[datetime, datetime]:
    try:
        start, end = parse_period(period)
    except ValueError as e:
        raise ValidationError(field_errors={"period": [str(e)]})
    start, end = round_to_interval(start), round_to_interval(end)
    if end <= start:
        raise ValidationError(
            field_errors={"period": ["Time log must span at least 15 minutes after rounding"]}
        )
    return start, end


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


async def list_time_logs(actor: CurrentUser, query: TimeLogQuery) -> List[TimeLog]:
    user_id = query.user_id or actor.id
    logs = await crud.get_time_logs(
        user_id,
        task_id=query.task_id,
        start_from=_as_utc(query.start_date),
        end_to=_as_utc(query.end_date),
    )
    return [TimeLog.from_db(log) for log in logs]


async def create_time_log(actor: CurrentUser, data: TimeLogCreate) -> str:
    start, end = rounded_period(data.period)
    task = await crud.get_task_by_id(data.task_id)
    if task is None:
        raise NotFoundError("Task not found")
    log = await crud.create_time_log({
        "task_id": data.task_id,
        "user_id": actor.id,
        "start": start,
        "end": end,
        "created_by_user_id": actor.id,
    })
    logger.info(f"Time log {log.id} created by user {actor.id} for task {data.task_id}")
    return log.id


async def _load_editable(actor: CurrentUser, log_id: str, now: Optional[datetime] = None) -> TimeLogInDB:
    log = await crud.get_time_log_by_id(log_id)
    if log is None:
        raise NotFoundError("Time log not found")
    if log.user_id != actor.id:
        raise ForbiddenError("You do not have access to this time log")
    now = now or datetime.now(timezone.utc)
    window = timedelta(days=settings.TIME_LOG_EDIT_WINDOW_DAYS)
    if log.start < now - window:
        raise ForbiddenError(
            f"Time logs can only be changed within {settings.TIME_LOG_EDIT_WINDOW_DAYS} days"
        )
    return log


async def update_time_log(actor: CurrentUser, log_id: str, data: TimeLogUpdate) -> TimeLog:
    await _load_editable(actor, log_id)
    start, end = rounded_period(data.period)
    updated = await crud.update_time_log(log_id, {"start": start, "end": end})
    if updated is None:
        raise NotFoundError("Time log not found")
    logger.info(f"Time log {log_id} updated by user {actor.id}")
    return TimeLog.from_db(updated)


async def delete_time_log(actor: CurrentUser, log_id: str) -> None:
    await _load_editable(actor, log_id)
    await crud.delete_time_log(log_id)
    logger.info(f"Time log {log_id} deleted by user {actor.id}")
