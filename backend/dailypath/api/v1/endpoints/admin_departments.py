# dailypath/api/v1/endpoints/admin_departments.py

import logging
from typing import List

from fastapi import APIRouter, Depends, status

from dailypath.api.deps import AdminUserDep, require_admin
from dailypath.models.common import MessageResponse, UUIDStr
from dailypath.models.department import (
    AdminDepartment,
    DepartmentCreate,
    DepartmentMember,
    DepartmentSaved,
    DepartmentUpdate,
    MemberAssign,
    MemberRemove,
)
from dailypath.services import departments as department_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/departments",
    tags=["Admin - Departments"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=List[AdminDepartment], summary="List departments with member counts")
async def list_departments():
    return await department_service.admin_list_departments()


@router.post(
    "",
    response_model=DepartmentSaved,
    status_code=status.HTTP_201_CREATED,
    summary="Create a department",
)
async def create_department(data: DepartmentCreate, current_user: AdminUserDep):
    department = await department_service.create_department(data.name)
    logger.info(f"Admin {current_user.id} created department {department.id}")
    return DepartmentSaved(message="Department created successfully", department=department)


# Registered before the /{department_id} routes so the literal path wins
@router.post("/assign-member", response_model=DepartmentSaved, summary="Assign a user to a department")
async def assign_member(data: MemberAssign, current_user: AdminUserDep):
    department, already_member = await department_service.assign_member(data)
    if already_member:
        return DepartmentSaved(message="User is already a member of this department", department=department)
    logger.info(f"Admin {current_user.id} assigned user {data.user_id} to department {department.id}")
    return DepartmentSaved(message="User assigned to department", department=department)


@router.delete("/assign-member", response_model=MessageResponse, summary="Remove a user from a department")
async def remove_member(data: MemberRemove, current_user: AdminUserDep):
    await department_service.remove_member(data)
    logger.info(f"Admin {current_user.id} removed user {data.user_id} from department {data.department_id}")
    return MessageResponse(message="Member removed from department")


@router.get("/{department_id}", response_model=List[DepartmentMember], summary="List active members of a department")
async def list_members(department_id: UUIDStr):
    return await department_service.list_department_members(department_id)


@router.patch("/{department_id}", response_model=DepartmentSaved, summary="Rename a department")
async def update_department(department_id: UUIDStr, data: DepartmentUpdate):
    department = await department_service.update_department(department_id, data.name)
    return DepartmentSaved(message="Department updated successfully", department=department)


@router.delete("/{department_id}", response_model=MessageResponse, summary="Delete a department without active members")
async def delete_department(department_id: UUIDStr, current_user: AdminUserDep):
    await department_service.delete_department(department_id)
    logger.info(f"Admin {current_user.id} deleted department {department_id}")
    return MessageResponse(message="Department deleted successfully")
