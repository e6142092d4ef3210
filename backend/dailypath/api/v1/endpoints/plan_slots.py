# dailypath/api/v1/endpoints/plan_slots.py

import logging
from typing import Annotated, List

from fastapi import APIRouter, Query, Response, status

from dailypath.api.deps import CurrentUserDep
from dailypath.models.common import CreatedResponse, MessageResponse, UUIDStr
from dailypath.models.plan_slot import PlanSlot, PlanSlotCreate, PlanSlotQuery, PlanSlotUpdate
from dailypath.services import plan_slots as plan_slot_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/plan-slots",
    tags=["Plan Slots"]
)


@router.get(
    "",
    response_model=List[PlanSlot],
    summary="List a user's plan slots in a date range",
    description="Slots starting within the range, widened by one day on both sides to cover time zones.",
)
async def list_plan_slots(params: Annotated[PlanSlotQuery, Query()], current_user: CurrentUserDep):
    return await plan_slot_service.list_plan_slots(current_user, params)


@router.post(
    "",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a plan slot",
    responses={409: {"description": "Overlaps an existing slot; retry with allow_overlap=true"}},
)
async def create_plan_slot(data: PlanSlotCreate, current_user: CurrentUserDep):
    slot_id = await plan_slot_service.create_plan_slot(current_user, data)
    return CreatedResponse(id=slot_id, message="Plan slot created successfully")


@router.patch("/{slot_id}", response_model=MessageResponse, summary="Update a plan slot")
async def update_plan_slot(slot_id: UUIDStr, data: PlanSlotUpdate, current_user: CurrentUserDep):
    await plan_slot_service.update_plan_slot(current_user, slot_id, data)
    return MessageResponse(message="Plan slot updated successfully")


@router.delete("/{slot_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a plan slot")
async def delete_plan_slot(slot_id: UUIDStr, current_user: CurrentUserDep):
    await plan_slot_service.delete_plan_slot(current_user, slot_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
