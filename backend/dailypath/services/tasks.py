# dailypath/services/tasks.py
"""
Task operations: visibility narrowing, privacy masking of descriptions and
ETA (end of the latest plan slot) on every returned task.
"""
import logging
from typing import Any, Dict, Iterable, List, Optional, Set

from dailypath.core.errors import ConflictError, ForbiddenError, NotFoundError
from dailypath.db import crud
from dailypath.models.enums import AssignedToType, TaskStatus
from dailypath.models.task import Task, TaskCreate, TaskInDB, TaskQuery, TaskUpdate
from dailypath.models.user import CurrentUser
from dailypath.services.access import get_managed_department_ids
from dailypath.utils.periods import format_timestamp

logger = logging.getLogger(__name__)


async def _visibility_filter(actor: CurrentUser) -> Dict[str, Any]:
    """Mongo filter limiting tasks to what the actor may read."""
    if actor.is_admin:
        return {}
    clauses: List[Dict[str, Any]] = [
        {"assigned_user_id": actor.id},
        {"created_by_user_id": actor.id},
    ]
    if actor.active_department:
        clauses.append({"assigned_department_id": actor.active_department.id})
    if actor.is_manager:
        managed = await get_managed_department_ids(actor.id)
        if managed:
            clauses.append({"assigned_department_id": {"$in": managed}})
    return {"$or": clauses}


def _is_visible(task: TaskInDB, actor: CurrentUser, managed: Set[str]) -> bool:
    if actor.is_admin:
        return True
    if actor.id in (task.assigned_user_id, task.created_by_user_id):
        return True
    department_id = task.assigned_department_id
    if department_id is None:
        return False
    if actor.active_department and actor.active_department.id == department_id:
        return True
    return department_id in managed


def _mask_description(task: TaskInDB, actor: CurrentUser, managed: Set[str]) -> Optional[str]:
    if not task.is_private:
        return task.description
    if task.assigned_user_id == actor.id or actor.is_admin:
        return task.description
    if task.assigned_department_id and task.assigned_department_id in managed:
        return task.description
    return None


async def _to_dtos(actor: CurrentUser, tasks: List[TaskInDB], managed: Optional[Set[str]] = None) -> List[Task]:
    if not tasks:
        return []
    if managed is None:
        needs_managed = actor.is_manager and any(t.is_private for t in tasks)
        managed = set(await get_managed_department_ids(actor.id)) if needs_managed else set()

    eta_by_task = await crud.get_latest_slot_end_by_task(t.id for t in tasks)
    assigners = await crud.get_users_by_ids(t.assigned_by_user_id for t in tasks if t.assigned_by_user_id)
    assigner_names = {u.id: u.full_name or u.email for u in assigners}

    dtos = []
    for task in tasks:
        eta = eta_by_task.get(task.id)
        dtos.append(Task(
            id=task.id,
            title=task.title,
            description=_mask_description(task, actor, managed),
            priority=task.priority,
            status=task.status,
            estimate_minutes=task.estimate_minutes,
            due_date=task.due_date,
            assigned_to_type=task.assigned_to_type,
            assigned_user_id=task.assigned_user_id,
            assigned_department_id=task.assigned_department_id,
            assigned_by_user_id=task.assigned_by_user_id,
            assigned_by_user_name=assigner_names.get(task.assigned_by_user_id),
            created_by_user_id=task.created_by_user_id,
            is_private=task.is_private,
            eta=format_timestamp(eta) if eta else None,
        ))
    return dtos


async def list_tasks(actor: CurrentUser, filters: TaskQuery) -> List[Task]:
    query = await _visibility_filter(actor)
    if filters.status:
        query["status"] = filters.status
    if filters.priority:
        query["priority"] = filters.priority
    if filters.department_id:
        query["assigned_department_id"] = filters.department_id
    if filters.assigned_to_user_id:
        query["assigned_user_id"] = filters.assigned_to_user_id
    if filters.is_private is not None:
        query["is_private"] = filters.is_private
    tasks = await crud.find_tasks(query)
    logger.info(f"User {actor.id} listed {len(tasks)} tasks")
    return await _to_dtos(actor, tasks)


async def get_tasks_by_ids(actor: CurrentUser, ids: Iterable[str]) -> List[Task]:
    tasks = await crud.get_tasks_by_ids(ids)
    managed = set(await get_managed_department_ids(actor.id)) if actor.is_manager else set()
    visible = [t for t in tasks if _is_visible(t, actor, managed)]
    return await _to_dtos(actor, visible, managed)


async def _load_visible(actor: CurrentUser, task_id: str) -> tuple:
    task = await crud.get_task_by_id(task_id)
    managed = set(await get_managed_department_ids(actor.id)) if actor.is_manager else set()
    if task is None or not _is_visible(task, actor, managed):
        raise NotFoundError("Task not found")
    return task, managed


async def get_task(actor: CurrentUser, task_id: str) -> Task:
    task, managed = await _load_visible(actor, task_id)
    return (await _to_dtos(actor, [task], managed))[0]


async def create_task(actor: CurrentUser, data: TaskCreate) -> str:
    doc: Dict[str, Any] = {
        "title": data.title,
        "description": data.description or None,
        "priority": data.priority,
        "estimate_minutes": data.estimate_minutes,
        "assigned_to_type": data.assigned_to_type,
        "is_private": data.is_private,
        "due_date": data.due_date,
        "status": TaskStatus.TODO.value,
        "created_by_user_id": actor.id,
        "assigned_by_user_id": actor.id,
        "assigned_user_id": None,
        "assigned_department_id": None,
    }
    if data.assigned_to_type == AssignedToType.USER.value:
        doc["assigned_user_id"] = data.assigned_id or actor.id
    else:
        doc["assigned_department_id"] = data.assigned_id
    task = await crud.create_task(doc)
    logger.info(f"Task {task.id} created by user {actor.id}")
    return task.id


def _can_edit(task: TaskInDB, actor: CurrentUser, managed: Set[str]) -> bool:
    if actor.is_admin or actor.id in (task.created_by_user_id, task.assigned_user_id):
        return True
    return bool(task.assigned_department_id and task.assigned_department_id in managed)


async def update_task(actor: CurrentUser, task_id: str, data: TaskUpdate) -> None:
    task = await crud.get_task_by_id(task_id)
    if task is None:
        raise NotFoundError("Task not found")
    managed = set(await get_managed_department_ids(actor.id)) if actor.is_manager else set()
    if not _can_edit(task, actor, managed):
        raise ForbiddenError("You do not have permission to update this task")

    update = data.model_dump(exclude_unset=True)
    previous_assignee = task.assigned_user_id if task.assigned_to_type == AssignedToType.USER.value else None
    next_type = update.get("assigned_to_type", task.assigned_to_type)
    if next_type == AssignedToType.USER.value:
        next_assignee = update.get("assigned_user_id", task.assigned_user_id)
    else:
        next_assignee = None
        update["assigned_user_id"] = None

    await crud.update_task(task_id, update)
    logger.info(f"Task {task_id} updated by user {actor.id}: {sorted(update)}")

    # Plan slots follow the direct assignee
    if previous_assignee != next_assignee:
        if next_assignee:
            await crud.reassign_plan_slots(task_id, next_assignee)
        else:
            await crud.delete_plan_slots_for_task(task_id)


async def delete_task(actor: CurrentUser, task_id: str) -> None:
    task = await crud.get_task_by_id(task_id)
    if task is None:
        raise NotFoundError("Task not found")
    managed = set(await get_managed_department_ids(actor.id)) if actor.is_manager else set()
    allowed = actor.is_admin or task.created_by_user_id == actor.id or (
        task.assigned_department_id is not None and task.assigned_department_id in managed
    )
    if not allowed:
        raise ForbiddenError("You do not have permission to delete this task")

    logs, slots = await crud.count_task_references(task_id)
    if logs or slots:
        raise ConflictError("Task has time logs or plan slots and cannot be deleted")
    await crud.delete_task(task_id)
    logger.info(f"Task {task_id} deleted by user {actor.id}")


async def list_loggable_tasks(actor: CurrentUser) -> List[Task]:
    """Tasks assigned to the actor plus tasks of the actor's active department, without duplicates."""
    own = await crud.find_tasks({"assigned_user_id": actor.id})
    department: List[TaskInDB] = []
    if actor.active_department:
        department = await crud.find_tasks({"assigned_department_id": actor.active_department.id})
    merged: Dict[str, TaskInDB] = {}
    for task in own + department:
        merged.setdefault(task.id, task)
    return await _to_dtos(actor, list(merged.values()))
