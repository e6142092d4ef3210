# dailypath/services/users.py
import logging
from typing import List, Optional

from pymongo import ASCENDING, DESCENDING

from dailypath.core.errors import NotFoundError, UnauthorizedError
from dailypath.db import crud
from dailypath.models.user import (
    AdminUserCreate,
    AdminUserListItem,
    AdminUserUpdate,
    CurrentUser,
    DepartmentRef,
    PasswordChange,
    ProfileUpdate,
    UserInDB,
    UserListItem,
    UserMe,
    UserSummary,
)
from dailypath.services import auth_provider
from dailypath.utils.periods import date_in_period, today_iso

logger = logging.getLogger(__name__)


async def get_active_department(user_id: str, day: Optional[str] = None) -> Optional[DepartmentRef]:
    membership = await crud.get_active_membership(user_id, day or today_iso())
    if membership is None:
        return None
    department = await crud.get_department_by_id(membership.department_id)
    if department is None:
        logger.warning(f"Membership {membership.id} points at missing department {membership.department_id}")
        return None
    return DepartmentRef(id=department.id, name=department.name)


async def build_current_user(user_id: str) -> Optional[CurrentUser]:
    """Acting identity for a token subject; None for unknown or deactivated users."""
    user = await crud.get_user_by_id(user_id)
    if user is None:
        logger.warning(f"Token subject {user_id} has no user profile")
        return None
    if not user.is_active:
        logger.warning(f"Deactivated user {user_id} presented a valid token")
        return None
    return CurrentUser(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        app_role=user.app_role,
        timezone=user.timezone,
        active_department=await get_active_department(user.id),
    )


def summary_of(user: UserInDB) -> UserSummary:
    return UserSummary(id=user.id, email=user.email, full_name=user.full_name, app_role=user.app_role)


# --- Self-service ---

async def list_users() -> List[UserListItem]:
    # Role names sort admin < employee < manager, so descending puts managers first
    users = await crud.get_all_users(sort=[("app_role", DESCENDING), ("email", ASCENDING)])
    return [
        UserListItem(id=u.id, email=u.email, full_name=u.full_name, app_role=u.app_role, is_active=u.is_active)
        for u in users
    ]


async def get_profile(actor: CurrentUser) -> UserMe:
    return UserMe(
        id=actor.id,
        email=actor.email,
        full_name=actor.full_name,
        app_role=actor.app_role,
        timezone=actor.timezone,
        active_department=actor.active_department,
    )


async def update_profile(actor: CurrentUser, data: ProfileUpdate) -> UserMe:
    update = data.model_dump(exclude_unset=True, exclude_none=True)
    user = await crud.update_user(actor.id, update) if update else await crud.get_user_by_id(actor.id)
    if user is None:
        raise NotFoundError("User not found")
    return UserMe(
        id=user.id,
        email=user.email,
        full_name=user.full_name,
        app_role=user.app_role,
        timezone=user.timezone,
        active_department=actor.active_department,
    )


async def change_password(actor: CurrentUser, data: PasswordChange) -> None:
    session = await auth_provider.sign_in_with_password(actor.email, data.current_password)
    if session is None:
        raise UnauthorizedError("Current password is incorrect")
    await auth_provider.update_password(session.access_token, data.new_password)
    logger.info(f"User {actor.id} changed their password")


# --- Admin ---

async def admin_list_users() -> List[AdminUserListItem]:
    users = await crud.get_all_users(sort=[("created_at", DESCENDING)])
    today = today_iso()
    memberships = await crud.get_active_memberships_for_users([u.id for u in users], today)
    departments = await crud.get_departments_by_ids(m.department_id for m in memberships)
    names = {d.id: d.name for d in departments}
    active_by_user = {
        m.user_id: DepartmentRef(id=m.department_id, name=names.get(m.department_id, ""))
        for m in memberships
        if date_in_period(today, m.valid_from, m.valid_to)
    }
    return [
        AdminUserListItem(
            id=u.id,
            email=u.email,
            full_name=u.full_name,
            app_role=u.app_role,
            is_active=u.is_active,
            active_department=active_by_user.get(u.id),
        )
        for u in users
    ]


async def admin_create_user(data: AdminUserCreate) -> UserSummary:
    provider_id = await auth_provider.admin_create_user(
        data.email, data.password, metadata={"full_name": data.full_name}
    )
    try:
        user = await crud.create_user(provider_id, {
            "email": data.email,
            "full_name": data.full_name,
            "app_role": data.app_role,
            "timezone": data.timezone or "UTC",
            "is_active": True,
        })
    except Exception:
        logger.error(f"Profile insert failed for {data.email}; removing provider account {provider_id}")
        await auth_provider.admin_delete_user(provider_id)
        raise
    logger.info(f"Admin created user {user.id} ({user.email}) with role {user.app_role}")
    return summary_of(user)


async def admin_update_user(user_id: str, data: AdminUserUpdate) -> UserSummary:
    existing = await crud.get_user_by_id(user_id)
    if existing is None:
        raise NotFoundError("User not found")
    update = data.model_dump(exclude_unset=True, exclude_none=True)
    user = await crud.update_user(user_id, update) if update else existing
    if user is None:
        raise NotFoundError("User not found")
    return summary_of(user)


async def deactivate_user(user_id: str, today: Optional[str] = None) -> None:
    """
    Soft-delete a user.

    Memberships that are open-ended or end after today are closed at today,
    except those starting today, which are deleted since closing them would
    leave an empty range. Memberships that start after today are left
    untouched; already closed ones are left as they are. Manager mappings of
    the user are removed.
    """
    user = await crud.get_user_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")

    today = today or today_iso()
    to_close: List[str] = []
    to_drop: List[str] = []
    for membership in await crud.get_memberships_for_user(user_id):
        upper = membership.valid_to
        if upper is not None and upper <= today:
            continue
        if membership.valid_from > today:
            logger.info(f"Skipping future membership {membership.id} ({membership.period}) of user {user_id}")
            continue
        if membership.valid_from == today:
            to_drop.append(membership.id)
        else:
            to_close.append(membership.id)

    await crud.deactivate_user_records(user_id, to_close, today, drop_membership_ids=to_drop)
    logger.info(f"User {user_id} deactivated; closed {len(to_close)} and deleted {len(to_drop)} memberships")
