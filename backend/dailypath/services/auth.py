# dailypath/services/auth.py
"""Login, registration by invitation, password reset and logout."""
import logging
from typing import Tuple

from dailypath.core.config import settings
from dailypath.core.errors import (
    AuthProviderError,
    ConflictError,
    InternalError,
    UnauthorizedError,
    ValidationError,
)
from dailypath.db import crud
from dailypath.models.auth import (
    AuthSession,
    LoginRequest,
    PasswordResetConfirm,
    RegisterRequest,
)
from dailypath.models.enums import AppRole
from dailypath.models.user import UserSummary
from dailypath.services import auth_provider
from dailypath.services.invitations import get_valid_invitation
from dailypath.services.users import summary_of
from dailypath.utils.periods import today_iso

logger = logging.getLogger(__name__)


async def login(data: LoginRequest) -> Tuple[AuthSession, UserSummary]:
    session = await auth_provider.sign_in_with_password(data.email, data.password)
    if session is None:
        raise UnauthorizedError("Invalid email or password")

    # Looked up by email so a profile saved under another id is reported, not missed
    user = await crud.get_user_by_email(data.email)
    if user is None:
        logger.error(f"Provider accepted {data.email} but no user profile exists")
        raise InternalError("User profile not found")
    if not user.is_active:
        raise UnauthorizedError("Account is deactivated")
    if user.id != session.user_id:
        # Requests resolve identity by the token subject, so this session could never be used
        logger.error(f"User id mismatch for {data.email}: profile {user.id} != provider {session.user_id}")
        raise InternalError("User profile does not match the sign-in account")

    logger.info(f"User logged in: {user.email}")
    return session, summary_of(user)


async def register(data: RegisterRequest) -> UserSummary:
    if not data.token:
        raise ValidationError("Invitation token is required", field_errors={"token": ["Invitation token is required"]})
    invitation = await get_valid_invitation(data.token, data.email)

    if await crud.get_user_by_email(data.email):
        raise ConflictError("User with this email already exists")

    provider_id = await auth_provider.admin_create_user(
        data.email, data.password, metadata={"full_name": data.full_name}
    )
    try:
        user = await crud.create_user(provider_id, {
            "email": data.email,
            "full_name": data.full_name,
            "app_role": invitation.app_role or AppRole.EMPLOYEE.value,
            "timezone": "UTC",
            "is_active": True,
        })
    except Exception:
        logger.error(f"Profile insert failed for {data.email}; removing provider account {provider_id}")
        await auth_provider.admin_delete_user(provider_id)
        raise

    if invitation.department_id:
        try:
            await crud.create_membership(user.id, invitation.department_id, today_iso())
        except Exception as e:
            # Registration stands; an admin can assign the department later
            logger.error(f"Could not create membership for new user {user.id}: {e}", exc_info=True)

    await crud.mark_invitation_accepted(invitation.id)
    logger.info(f"User {user.id} registered from invitation {invitation.id}")
    return summary_of(user)


async def request_password_reset(email: str) -> None:
    """Never reveals whether the address is registered."""
    try:
        await auth_provider.send_password_recovery(
            email, redirect_to=f"{settings.APP_BASE_URL.rstrip('/')}/reset-password"
        )
    except AuthProviderError as e:
        logger.error(f"Password reset request for {email} failed: {e.message}")


async def reset_password(data: PasswordResetConfirm) -> None:
    session = await auth_provider.verify_recovery_token(data.token)
    if session is None:
        raise ValidationError(
            "Password reset token is invalid or has expired",
            field_errors={"token": ["Password reset token is invalid or has expired"]},
        )
    await auth_provider.update_password(session.access_token, data.password)
    logger.info(f"Password reset completed for user {session.user_id}")


async def logout(access_token: str) -> None:
    try:
        await auth_provider.sign_out(access_token)
    except AuthProviderError as e:
        logger.warning(f"Provider logout failed: {e.message}")
