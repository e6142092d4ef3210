# dailypath/api/v1/endpoints/time_logs.py

import logging
from typing import Annotated, List

from fastapi import APIRouter, Query, status

from dailypath.api.deps import CurrentUserDep
from dailypath.models.common import CreatedResponse, MessageResponse, UUIDStr
from dailypath.models.task import Task
from dailypath.models.time_log import TimeLog, TimeLogCreate, TimeLogQuery, TimeLogUpdate
from dailypath.services import tasks as task_service
from dailypath.services import time_logs as time_log_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/time-logs",
    tags=["Time Logs"]
)


@router.get("", response_model=List[TimeLog], summary="List the current user's time logs")
async def list_time_logs(params: Annotated[TimeLogQuery, Query()], current_user: CurrentUserDep):
    # Logs are always scoped to the caller, whatever user_id was sent
    scoped = params.model_copy(update={"user_id": current_user.id})
    return await time_log_service.list_time_logs(current_user, scoped)


@router.post(
    "",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Log time against a task",
    description="Both bounds are rounded to the nearest 15 minutes.",
)
async def create_time_log(data: TimeLogCreate, current_user: CurrentUserDep):
    log_id = await time_log_service.create_time_log(current_user, data)
    return CreatedResponse(id=log_id, message="Time log created successfully")


@router.get("/tasks", response_model=List[Task], summary="Tasks the current user can log time against")
async def list_loggable_tasks(current_user: CurrentUserDep):
    return await task_service.list_loggable_tasks(current_user)


@router.patch("/{log_id}", response_model=MessageResponse, summary="Update a time log")
async def update_time_log(log_id: UUIDStr, data: TimeLogUpdate, current_user: CurrentUserDep):
    await time_log_service.update_time_log(current_user, log_id, data)
    return MessageResponse(message="Time log updated successfully")


@router.delete("/{log_id}", response_model=MessageResponse, summary="Delete a time log")
async def delete_time_log(log_id: UUIDStr, current_user: CurrentUserDep):
    await time_log_service.delete_time_log(current_user, log_id)
    return MessageResponse(message="Time log deleted successfully")
