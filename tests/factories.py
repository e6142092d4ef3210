# tests/factories.py
"""Stored-record builders shared by the functional tests."""
from datetime import datetime, timezone
from typing import Optional

from dailypath.models.department import DepartmentInDB, MembershipInDB
from dailypath.models.plan_slot import PlanSlotInDB
from dailypath.models.task import TaskInDB
from dailypath.models.time_log import TimeLogInDB
from dailypath.models.user import UserInDB

EMPLOYEE_ID = "11111111-1111-4111-8111-111111111111"
MANAGER_ID = "22222222-2222-4222-8222-222222222222"
ADMIN_ID = "33333333-3333-4333-8333-333333333333"
OTHER_USER_ID = "44444444-4444-4444-8444-444444444444"
DEPARTMENT_ID = "aaaaaaaa-aaaa-4aaa-8aaa-aaaaaaaaaaaa"
OTHER_DEPARTMENT_ID = "cccccccc-cccc-4ccc-8ccc-cccccccccccc"
TASK_ID = "bbbbbbbb-bbbb-4bbb-8bbb-bbbbbbbbbbbb"
SLOT_ID = "dddddddd-dddd-4ddd-8ddd-dddddddddddd"
LOG_ID = "eeeeeeee-eeee-4eee-8eee-eeeeeeeeeeee"


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def make_user(user_id: str = EMPLOYEE_ID, app_role: str = "employee", **overrides) -> UserInDB:
    data = {
        "_id": user_id,
        "email": f"{app_role}-{user_id[:4]}@example.com",
        "full_name": f"Test {app_role.title()}",
        "app_role": app_role,
    }
    data.update(overrides)
    return UserInDB(**data)


def make_department(department_id: str = DEPARTMENT_ID, name: str = "Support") -> DepartmentInDB:
    return DepartmentInDB(_id=department_id, name=name)


def make_membership(
    membership_id: str,
    user_id: str = EMPLOYEE_ID,
    department_id: str = DEPARTMENT_ID,
    valid_from: str = "2026-01-01",
    valid_to: Optional[str] = None,
) -> MembershipInDB:
    return MembershipInDB(
        _id=membership_id, user_id=user_id, department_id=department_id, valid_from=valid_from, valid_to=valid_to
    )


def make_task(task_id: str = TASK_ID, **overrides) -> TaskInDB:
    data = {
        "_id": task_id,
        "title": "Prepare monthly report",
        "description": "Numbers for the board",
        "priority": "medium",
        "status": "todo",
        "estimate_minutes": 60,
        "assigned_to_type": "user",
        "assigned_user_id": EMPLOYEE_ID,
        "assigned_by_user_id": EMPLOYEE_ID,
        "created_by_user_id": EMPLOYEE_ID,
    }
    data.update(overrides)
    return TaskInDB(**data)


def make_slot(
    slot_id: str = SLOT_ID,
    start: datetime = utc(2026, 3, 2, 9, 0),
    end: datetime = utc(2026, 3, 2, 10, 0),
    **overrides,
) -> PlanSlotInDB:
    data = {
        "_id": slot_id,
        "task_id": TASK_ID,
        "user_id": EMPLOYEE_ID,
        "start": start,
        "end": end,
        "allow_overlap": False,
        "created_by_user_id": EMPLOYEE_ID,
    }
    data.update(overrides)
    return PlanSlotInDB(**data)


def make_time_log(
    log_id: str = LOG_ID,
    start: datetime = utc(2026, 3, 2, 9, 0),
    end: datetime = utc(2026, 3, 2, 10, 0),
    **overrides,
) -> TimeLogInDB:
    data = {
        "_id": log_id,
        "task_id": TASK_ID,
        "user_id": EMPLOYEE_ID,
        "start": start,
        "end": end,
        "created_by_user_id": EMPLOYEE_ID,
    }
    data.update(overrides)
    return TimeLogInDB(**data)
