# dailypath/api/v1/endpoints/auth.py

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response, status

from dailypath.api.deps import enforce_auth_rate_limit, require_manager_or_admin
from dailypath.core.config import settings
from dailypath.core.security import get_request_token
from dailypath.models.auth import (
    InvitationCreate,
    InvitationCreated,
    LoginRequest,
    LoginResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    RegisterRequest,
    RegisterResponse,
    SuccessMessage,
)
from dailypath.models.user import CurrentUser
from dailypath.services import auth as auth_service
from dailypath.services import invitations

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Auth"]
)


def _set_session_cookie(response: Response, access_token: str, max_age: Optional[int]) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=access_token,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
        max_age=max_age or settings.SESSION_COOKIE_MAX_AGE,
        path="/",
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="Log in with email and password",
    dependencies=[Depends(enforce_auth_rate_limit)],
)
async def login(data: LoginRequest, response: Response):
    """Signs in through the auth provider and sets the session cookie."""
    session, user = await auth_service.login(data)
    _set_session_cookie(response, session.access_token, session.expires_in)
    return LoginResponse(user=user)


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register from an invitation",
    dependencies=[Depends(enforce_auth_rate_limit)],
)
async def register(data: RegisterRequest):
    user = await auth_service.register(data)
    return RegisterResponse(message="Registration completed successfully. You can now log in.", user=user)


@router.post("/logout", response_model=SuccessMessage, summary="Log out and clear the session cookie")
async def logout(response: Response, token: Optional[str] = Depends(get_request_token)):
    if token:
        await auth_service.logout(token)
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/")
    return SuccessMessage(message="Logged out successfully")


@router.post(
    "/request-password-reset",
    response_model=SuccessMessage,
    summary="Send a password reset link",
    dependencies=[Depends(enforce_auth_rate_limit)],
)
async def request_password_reset(data: PasswordResetRequest):
    await auth_service.request_password_reset(data.email)
    return SuccessMessage(message="If an account with this email exists, a password reset link has been sent.")


@router.post(
    "/reset-password",
    response_model=SuccessMessage,
    summary="Set a new password with a recovery token",
    dependencies=[Depends(enforce_auth_rate_limit)],
)
async def reset_password(data: PasswordResetConfirm):
    await auth_service.reset_password(data)
    return SuccessMessage(message="Password has been reset successfully")


@router.post(
    "/invite",
    response_model=InvitationCreated,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    summary="Invite a new user (manager or admin)",
)
async def invite(data: InvitationCreate, current_user: CurrentUser = Depends(require_manager_or_admin)):
    invitation = await invitations.create_invitation(current_user, data)
    return InvitationCreated(invitation=invitation, message="Invitation created successfully")
