# dailypath/api/v1/endpoints/tasks.py

import logging
from typing import Annotated, List

from fastapi import APIRouter, Query, status

from dailypath.api.deps import CurrentUserDep
from dailypath.models.common import CreatedResponse, MessageResponse, UUIDStr
from dailypath.models.task import Task, TaskCreate, TaskIdsQuery, TaskQuery, TaskUpdate
from dailypath.services import tasks as task_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/tasks",
    tags=["Tasks"]
)


@router.get(
    "",
    response_model=List[Task],
    status_code=status.HTTP_200_OK,
    summary="List tasks visible to the current user",
    description="Optional filters: status, priority, department_id, assigned_to_user_id, is_private.",
)
async def list_tasks(filters: Annotated[TaskQuery, Query()], current_user: CurrentUserDep):
    return await task_service.list_tasks(current_user, filters)


@router.post(
    "",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a task",
)
async def create_task(data: TaskCreate, current_user: CurrentUserDep):
    task_id = await task_service.create_task(current_user, data)
    return CreatedResponse(id=task_id, message="Task created successfully")


# Registered before /{task_id} so "by-ids" is not read as an id
@router.get(
    "/by-ids",
    response_model=List[Task],
    summary="Fetch several tasks by id",
    description="`ids` is a comma-separated list of 1 to 200 UUIDs. Unknown or invisible ids are omitted.",
)
async def read_tasks_by_ids(params: Annotated[TaskIdsQuery, Query()], current_user: CurrentUserDep):
    return await task_service.get_tasks_by_ids(current_user, params.ids)


@router.get("/{task_id}", response_model=Task, summary="Get a task")
async def read_task(task_id: UUIDStr, current_user: CurrentUserDep):
    return await task_service.get_task(current_user, task_id)


@router.patch("/{task_id}", response_model=MessageResponse, summary="Update a task")
async def update_task(task_id: UUIDStr, data: TaskUpdate, current_user: CurrentUserDep):
    await task_service.update_task(current_user, task_id, data)
    return MessageResponse(message="Task updated successfully")


@router.delete("/{task_id}", response_model=MessageResponse, summary="Delete a task")
async def delete_task(task_id: UUIDStr, current_user: CurrentUserDep):
    await task_service.delete_task(current_user, task_id)
    return MessageResponse(message="Task deleted successfully")
