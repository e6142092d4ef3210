# dailypath/services/departments.py
import logging
from typing import List, Optional

from dailypath.core.errors import ConflictError, NotFoundError, ValidationError
from dailypath.db import crud
from dailypath.models.department import (
    AdminDepartment,
    Department,
    DepartmentInDB,
    DepartmentMember,
    ManagerRef,
    MemberAssign,
    MemberRemove,
)
from dailypath.utils.periods import today_iso

logger = logging.getLogger(__name__)


async def list_departments() -> List[Department]:
    return [Department(id=d.id, name=d.name) for d in await crud.get_all_departments()]


async def _get_or_404(department_id: str) -> DepartmentInDB:
    department = await crud.get_department_by_id(department_id)
    if department is None:
        raise NotFoundError("Department not found")
    return department


# --- Admin ---

async def admin_list_departments() -> List[AdminDepartment]:
    departments = await crud.get_all_departments()
    counts = await crud.count_active_members_by_department(today_iso())
    mappings = await crud.get_managers_for_departments(d.id for d in departments)
    managers = {u.id: u for u in await crud.get_users_by_ids(m.manager_user_id for m in mappings)}

    manager_by_department = {}
    for mapping in mappings:
        user = managers.get(mapping.manager_user_id)
        # One manager is shown per department; the first mapping wins
        if user and mapping.department_id not in manager_by_department:
            manager_by_department[mapping.department_id] = ManagerRef(id=user.id, full_name=user.full_name)

    return [
        AdminDepartment(
            id=d.id,
            name=d.name,
            member_count=counts.get(d.id, 0),
            manager=manager_by_department.get(d.id),
        )
        for d in departments
    ]


async def create_department(name: str) -> Department:
    name = name.strip()
    if await crud.get_department_by_name(name):
        raise ConflictError("Department with this name already exists")
    department = await crud.create_department(name)
    logger.info(f"Department {department.id} ({department.name}) created")
    return Department(id=department.id, name=department.name)


async def update_department(department_id: str, name: str) -> Department:
    await _get_or_404(department_id)
    name = name.strip()
    existing = await crud.get_department_by_name(name)
    if existing and existing.id != department_id:
        raise ConflictError("Department with this name already exists")
    department = await crud.update_department(department_id, name)
    if department is None:
        raise NotFoundError("Department not found")
    return Department(id=department.id, name=department.name)


async def delete_department(department_id: str) -> None:
    await _get_or_404(department_id)
    active = await crud.get_active_memberships_for_department(department_id, today_iso())
    if active:
        raise ConflictError("Cannot delete a department that has active members")
    await crud.delete_department(department_id)
    logger.info(f"Department {department_id} deleted")


async def list_department_members(department_id: str) -> List[DepartmentMember]:
    await _get_or_404(department_id)
    memberships = await crud.get_active_memberships_for_department(department_id, today_iso())
    users = await crud.get_users_by_ids(m.user_id for m in memberships)
    return sorted(
        (DepartmentMember(id=u.id, full_name=u.full_name, email=u.email) for u in users),
        key=lambda member: member.full_name,
    )


async def assign_member(data: MemberAssign, today: Optional[str] = None) -> tuple:
    """
    Move a user into a department from `start_date` (default today).

    Returns (department, already_member). The membership active at start_date
    is closed there; a fresh open-ended membership starts at start_date.
    """
    if await crud.get_user_by_id(data.user_id) is None:
        raise NotFoundError("User does not exist")
    department = await _get_or_404(data.department_id)
    start_date = data.start_date or today or today_iso()

    current = await crud.get_active_membership(data.user_id, start_date)
    if current and current.department_id == data.department_id:
        return Department(id=department.id, name=department.name), True

    if current:
        if start_date <= current.valid_from:
            raise ValidationError(
                "Start date must be after the start of the current membership",
                field_errors={"start_date": ["Start date must be after the start of the current membership"]},
            )
        await crud.close_membership(current.id, start_date)
        logger.info(f"Closed membership {current.id} of user {data.user_id} at {start_date}")

    await crud.create_membership(data.user_id, data.department_id, start_date)
    return Department(id=department.id, name=department.name), False


async def remove_member(data: MemberRemove, today: Optional[str] = None) -> None:
    await _get_or_404(data.department_id)
    today = today or today_iso()
    memberships = await crud.get_active_memberships_for_department(data.department_id, today)
    membership = next((m for m in memberships if m.user_id == data.user_id), None)
    if membership is None:
        raise NotFoundError("No active membership in this department")

    if membership.valid_from == today:
        # Closing at today would leave an empty range
        await crud.delete_membership(membership.id)
        logger.info(f"Deleted same-day membership {membership.id} of user {data.user_id}")
    else:
        await crud.close_membership(membership.id, today)
        logger.info(f"Closed membership {membership.id} of user {data.user_id} at {today}")
