# dailypath/services/plan_slots.py
"""
Plan slot operations.

A slot is a half-open range `[start,end)` on 15-minute boundaries. Slots of
one user may not overlap unless either side was saved with allow_overlap.
"""
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from dailypath.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from dailypath.db import crud
from dailypath.models.plan_slot import PlanSlot, PlanSlotCreate, PlanSlotInDB, PlanSlotQuery, PlanSlotUpdate
from dailypath.models.user import CurrentUser
from dailypath.services.access import can_manage_user
from dailypath.utils.periods import SLOT_MINUTES, day_bounds, is_aligned, parse_period

logger = logging.getLogger(__name__)

OVERLAP_CODE = "PLAN_SLOT_OVERLAP"
# Widened on both sides so clients in any timezone get their whole local days
LIST_BUFFER = timedelta(hours=24)


def parse_slot_period(period: str) -> Tuple[datetime, datetime]:
    """Parse and check a slot period; raises ValidationError naming the `period` field."""
    try:
        start, end = parse_period(period)
    except ValueError as e:
        raise ValidationError(field_errors={"period": [str(e)]})
    if end <= start:
        raise ValidationError(field_errors={"period": ["Plan slot end time must be after start time"]})
    if not is_aligned(start) or not is_aligned(end):
        raise ValidationError(field_errors={"period": ["Plan slot times must be aligned to 15-minute intervals"]})
    if end - start < timedelta(minutes=SLOT_MINUTES):
        raise ValidationError(field_errors={"period": ["Plan slot duration must be at least 15 minutes"]})
    return start, end


async def _check_overlap(user_id: str, start: datetime, end: datetime, exclude_id: Optional[str] = None) -> None:
    clashes = await crud.find_overlapping_plan_slots(user_id, start, end, exclude_id=exclude_id)
    if clashes:
        logger.info(f"Plan slot for user {user_id} overlaps {len(clashes)} existing slot(s)")
        raise ConflictError(
            "Plan slot overlaps with existing slot. Set allow_overlap to true to force.",
            code=OVERLAP_CODE,
            details={"suggest_overlap": True, "conflicting_slot_ids": [s.id for s in clashes]},
        )


def _parse_day(value: str, field: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(field_errors={field: ["Invalid date"]})


async def list_plan_slots(actor: CurrentUser, query: PlanSlotQuery) -> List[PlanSlot]:
    if not await can_manage_user(actor, query.user_id):
        raise ForbiddenError("You do not have permission to view this user's plan")

    first_day = _parse_day(query.start_date, "start_date")
    last_day = _parse_day(query.end_date, "end_date")
    range_start, _ = day_bounds(first_day)
    _, range_end = day_bounds(last_day)

    slots = await crud.get_plan_slots_for_user(
        query.user_id, range_start - LIST_BUFFER, range_end + LIST_BUFFER
    )
    logger.info(f"Found {len(slots)} plan slots for user {query.user_id} between {query.start_date} and {query.end_date}")
    return [PlanSlot.from_db(s) for s in slots]


async def create_plan_slot(actor: CurrentUser, data: PlanSlotCreate) -> str:
    if data.user_id != actor.id and not (actor.is_manager or actor.is_admin):
        raise ForbiddenError("Only managers can create plan slots for other users")

    start, end = parse_slot_period(data.period)
    if not data.allow_overlap:
        await _check_overlap(data.user_id, start, end)

    task = await crud.get_task_by_id(data.task_id)
    if task is None:
        raise NotFoundError("Task not found")

    slot = await crud.create_plan_slot({
        "task_id": data.task_id,
        "user_id": data.user_id,
        "start": start,
        "end": end,
        "allow_overlap": data.allow_overlap,
        "created_by_user_id": actor.id,
    })
    logger.info(f"Plan slot {slot.id} created by user {actor.id} for user {data.user_id}")
    return slot.id


async def _load_editable(actor: CurrentUser, slot_id: str) -> PlanSlotInDB:
    slot = await crud.get_plan_slot_by_id(slot_id)
    if slot is None:
        raise NotFoundError("Plan slot not found")
    if actor.id in (slot.user_id, slot.created_by_user_id):
        return slot
    if not await can_manage_user(actor, slot.user_id):
        raise ForbiddenError("You do not have permission to modify this plan slot")
    return slot


async def update_plan_slot(actor: CurrentUser, slot_id: str, data: PlanSlotUpdate) -> PlanSlot:
    slot = await _load_editable(actor, slot_id)

    update = {}
    start, end = slot.start, slot.end
    if data.period is not None:
        start, end = parse_slot_period(data.period)
        update["start"], update["end"] = start, end
    allow_overlap = slot.allow_overlap
    if data.allow_overlap is not None:
        allow_overlap = data.allow_overlap
        update["allow_overlap"] = allow_overlap

    if update and not allow_overlap:
        await _check_overlap(slot.user_id, start, end, exclude_id=slot.id)

    updated = await crud.update_plan_slot(slot_id, update)
    if updated is None:
        raise NotFoundError("Plan slot not found")
    logger.info(f"Plan slot {slot_id} updated by user {actor.id}")
    return PlanSlot.from_db(updated)


async def delete_plan_slot(actor: CurrentUser, slot_id: str) -> None:
    await _load_editable(actor, slot_id)
    await crud.delete_plan_slot(slot_id)
    logger.info(f"Plan slot {slot_id} deleted by user {actor.id}")
