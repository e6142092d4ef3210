# dailypath/api/v1/endpoints/users.py

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status

from dailypath.api.deps import CurrentUserDep, users_list_access
from dailypath.models.common import MessageResponse
from dailypath.models.user import CurrentUser, PasswordChange, ProfileUpdate, UserListItem, UserMe
from dailypath.services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["Users"]
)


@router.get(
    "",
    response_model=List[UserListItem],
    status_code=status.HTTP_200_OK,
    summary="List all users",
)
async def list_users(current_user: Optional[CurrentUser] = Depends(users_list_access)):
    return await user_service.list_users()


@router.get("/me", response_model=UserMe, summary="Get the current user's profile")
async def read_me(current_user: CurrentUserDep):
    return await user_service.get_profile(current_user)


@router.patch("/me", response_model=UserMe, summary="Update the current user's profile")
async def update_me(data: ProfileUpdate, current_user: CurrentUserDep):
    logger.info(f"User {current_user.id} updating profile fields {list(data.model_fields_set)}")
    return await user_service.update_profile(current_user, data)


@router.post("/change-password", response_model=MessageResponse, summary="Change the current user's password")
async def change_password(data: PasswordChange, current_user: CurrentUserDep):
    await user_service.change_password(current_user, data)
    return MessageResponse(message="Password changed successfully")
