# dailypath/api/v1/endpoints/admin_users.py

import logging
from typing import List

from fastapi import APIRouter, Depends, status

from dailypath.api.deps import AdminUserDep, require_admin
from dailypath.models.common import MessageResponse, UUIDStr
from dailypath.models.user import AdminUserCreate, AdminUserCreated, AdminUserListItem, AdminUserUpdate
from dailypath.services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/users",
    tags=["Admin - Users"],
    dependencies=[Depends(require_admin)],
)


@router.get("", response_model=List[AdminUserListItem], summary="List users with their active department")
async def list_users():
    return await user_service.admin_list_users()


@router.post(
    "",
    response_model=AdminUserCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Create a user account",
)
async def create_user(data: AdminUserCreate, current_user: AdminUserDep):
    logger.info(f"Admin {current_user.id} creating user {data.email}")
    user = await user_service.admin_create_user(data)
    return AdminUserCreated(message="User created successfully", user=user)


@router.patch("/{user_id}", response_model=MessageResponse, summary="Update a user")
async def update_user(user_id: UUIDStr, data: AdminUserUpdate, current_user: AdminUserDep):
    await user_service.admin_update_user(user_id, data)
    return MessageResponse(message="User updated successfully")


@router.delete("/{user_id}", response_model=MessageResponse, summary="Deactivate a user")
async def delete_user(user_id: UUIDStr, current_user: AdminUserDep):
    """
    Soft delete: the user is deactivated and downgraded to employee, current
    memberships are closed today and manager mappings removed.
    """
    logger.info(f"Admin {current_user.id} deactivating user {user_id}")
    await user_service.deactivate_user(user_id)
    return MessageResponse(message="User deleted successfully")
