# dailypath/api/deps.py
import logging
from typing import Any, Annotated, Dict, Optional

from fastapi import Depends, Request

from dailypath.core.config import settings
from dailypath.core.errors import ForbiddenError, RateLimitedError, UnauthorizedError
from dailypath.core.security import auth_rate_limiter, get_client_ip, get_token_payload
from dailypath.models.user import CurrentUser
from dailypath.services import users

logger = logging.getLogger(__name__)


async def get_current_user_optional(
    payload: Annotated[Optional[Dict[str, Any]], Depends(get_token_payload)],
) -> Optional[CurrentUser]:
    """Acting user for the request, or None when no valid token was presented."""
    if payload is None:
        return None
    return await users.build_current_user(payload["sub"])


async def get_current_user(
    current_user: Annotated[Optional[CurrentUser], Depends(get_current_user_optional)],
) -> CurrentUser:
    """Get current authenticated user."""
    if current_user is None:
        raise UnauthorizedError("Authentication required")
    return current_user


async def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    if not current_user.is_admin:
        raise ForbiddenError("Admin access required")
    return current_user


async def require_manager_or_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    if not (current_user.is_admin or current_user.is_manager):
        raise ForbiddenError("Manager or admin access required")
    return current_user


async def users_list_access(
    current_user: Annotated[Optional[CurrentUser], Depends(get_current_user_optional)],
) -> Optional[CurrentUser]:
    """The user directory is public unless USERS_LIST_REQUIRES_AUTH is set."""
    if settings.USERS_LIST_REQUIRES_AUTH and current_user is None:
        raise UnauthorizedError("Authentication required")
    return current_user


async def enforce_auth_rate_limit(request: Request) -> None:
    client_ip = get_client_ip(request)
    if not auth_rate_limiter.check(client_ip):
        logger.warning(f"Auth rate limit exceeded for {client_ip} on {request.url.path}")
        raise RateLimitedError("Too many attempts. Please try again later.")


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
AdminUserDep = Annotated[CurrentUser, Depends(require_admin)]
