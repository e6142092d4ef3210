# dailypath/services/access.py
"""Row-level access rules shared by the resource services."""
import logging
from typing import List, Optional

from dailypath.db import crud
from dailypath.models.user import CurrentUser
from dailypath.utils.periods import today_iso

logger = logging.getLogger(__name__)


async def get_managed_department_ids(user_id: str) -> List[str]:
    return await crud.get_managed_department_ids(user_id)


async def get_active_department_id(user_id: str, on: Optional[str] = None) -> Optional[str]:
    membership = await crud.get_active_membership(user_id, on or today_iso())
    return membership.department_id if membership else None


async def can_manage_user(actor: CurrentUser, target_user_id: str) -> bool:
    """Admins manage everyone, managers the active members of their departments, everyone themselves."""
    if actor.id == target_user_id or actor.is_admin:
        return True
    if not actor.is_manager:
        return False
    managed = await get_managed_department_ids(actor.id)
    if not managed:
        return False
    target_department = await get_active_department_id(target_user_id)
    allowed = target_department in managed
    if not allowed:
        logger.debug(f"Manager {actor.id} does not manage user {target_user_id}")
    return allowed
