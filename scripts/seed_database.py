"""
Seed a development database with departments, manager mappings, memberships,
tasks, plan slots and time logs.

Users are not created here: create them first (POST /api/admin/users) so that
the provider account and the profile share one id. The script looks them up
by email and skips any that are missing.

Usage:
    python scripts/seed_database.py
"""
import asyncio
import os
import sys
import uuid
from datetime import datetime, timedelta, timezone

# --- START: Path Logic ---
script_path = os.path.abspath(__file__)
scripts_dir = os.path.dirname(script_path)
project_root = os.path.dirname(scripts_dir)
backend_dir = os.path.join(project_root, "backend")

# Makes `dailypath` importable without installing the project
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)
# --- END: Path Logic ---

from dailypath.db import crud  # noqa: E402
from dailypath.db.database import close_mongo_connection, connect_to_mongo, get_database  # noqa: E402
from dailypath.utils.periods import today_iso  # noqa: E402

DEPARTMENTS = ["Engineering", "Product", "Marketing"]

# email -> department name (None: no membership)
SEED_USERS = {
    "admin@test.com": None,
    "manager1@test.com": "Engineering",
    "manager2@test.com": "Product",
    "employee1@test.com": "Engineering",
    "employee2@test.com": "Engineering",
    "employee3@test.com": "Product",
}

MANAGERS = {
    "manager1@test.com": "Engineering",
    "manager2@test.com": "Product",
}


async def seed_departments() -> dict:
    departments = {}
    for name in DEPARTMENTS:
        department = await crud.get_department_by_name(name)
        if department is None:
            department = await crud.create_department(name)
            print(f"  Created department {name} ({department.id})")
        else:
            print(f"  Department {name} already exists")
        departments[name] = department.id
    return departments


async def seed_managers(users: dict, departments: dict) -> None:
    collection = get_database()[crud.DEPARTMENT_MANAGER_COLLECTION]
    for email, department_name in MANAGERS.items():
        user = users.get(email)
        if user is None:
            continue
        department_id = departments[department_name]
        await collection.update_one(
            {"manager_user_id": user.id, "department_id": department_id},
            {"$setOnInsert": {"_id": str(uuid.uuid4())}},
            upsert=True,
        )
        print(f"  {email} manages {department_name}")


async def seed_memberships(users: dict, departments: dict) -> None:
    today = today_iso()
    for email, department_name in SEED_USERS.items():
        user = users.get(email)
        if user is None or department_name is None:
            continue
        if await crud.get_active_membership(user.id, today):
            print(f"  {email} already has an active membership")
            continue
        await crud.create_membership(user.id, departments[department_name], "2026-01-01")
        print(f"  {email} joined {department_name}")


async def seed_tasks(users: dict, departments: dict) -> list:
    manager = users.get("manager1@test.com")
    employee = users.get("employee1@test.com")
    if manager is None or employee is None:
        print("  Skipping tasks: manager1@test.com and employee1@test.com are required")
        return []

    task_fields = [
        {
            "title": "Implement user authentication",
            "description": "Wire the login form to the auth provider",
            "priority": "high",
            "status": "in_progress",
            "estimate_minutes": 240,
            "assigned_to_type": "user",
            "assigned_user_id": employee.id,
            "assigned_department_id": None,
            "assigned_by_user_id": manager.id,
            "created_by_user_id": manager.id,
            "is_private": False,
        },
        {
            "title": "Personal development task",
            "description": "This description is only visible to the assignee",
            "priority": "medium",
            "status": "todo",
            "estimate_minutes": 120,
            "assigned_to_type": "user",
            "assigned_user_id": employee.id,
            "assigned_department_id": None,
            "assigned_by_user_id": employee.id,
            "created_by_user_id": employee.id,
            "is_private": True,
        },
        {
            "title": "Refactor database schema",
            "description": "Update collections and add indexes",
            "priority": "high",
            "status": "todo",
            "estimate_minutes": 480,
            "assigned_to_type": "department",
            "assigned_user_id": None,
            "assigned_department_id": departments["Engineering"],
            "assigned_by_user_id": manager.id,
            "created_by_user_id": manager.id,
            "is_private": False,
        },
    ]

    tasks = []
    for fields in task_fields:
        existing = await crud.find_tasks({"title": fields["title"]})
        if existing:
            print(f"  Task '{fields['title']}' already exists")
            tasks.append(existing[0])
            continue
        task = await crud.create_task(fields)
        print(f"  Created task '{task.title}'")
        tasks.append(task)
    return tasks


async def seed_schedule(users: dict, tasks: list) -> None:
    """Plan slots and matching time logs on each of the last three days."""
    employee = users.get("employee1@test.com")
    if employee is None or not tasks:
        return
    task = tasks[0]
    midnight = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    for days_ago in (3, 2, 1):
        start = midnight - timedelta(days=days_ago) + timedelta(hours=9)
        end = start + timedelta(hours=2)
        if await crud.find_overlapping_plan_slots(employee.id, start, end):
            print(f"  Slot on {start.date()} already planned")
            continue
        await crud.create_plan_slot({
            "task_id": task.id,
            "user_id": employee.id,
            "start": start,
            "end": end,
            "allow_overlap": False,
            "created_by_user_id": employee.id,
        })
        await crud.create_time_log({
            "task_id": task.id,
            "user_id": employee.id,
            "start": start,
            "end": end - timedelta(minutes=30),
            "created_by_user_id": employee.id,
        })
        print(f"  Planned and logged {task.title!r} on {start.date()}")


async def main():
    print("Connecting using application's database module...")
    if not await connect_to_mongo():
        print("Could not connect to the database. Check MONGODB_URL in backend/.env.")
        return
    try:
        await crud.ensure_indexes()

        users = {}
        for email in SEED_USERS:
            user = await crud.get_user_by_email(email)
            if user is None:
                print(f"Warning: {email} not found, create it first via the admin API")
            else:
                users[email] = user

        print("Seeding departments...")
        departments = await seed_departments()
        print("Seeding department managers...")
        await seed_managers(users, departments)
        print("Seeding memberships...")
        await seed_memberships(users, departments)
        print("Seeding tasks...")
        tasks = await seed_tasks(users, departments)
        print("Seeding plan slots and time logs...")
        await seed_schedule(users, tasks)
        print("Seed complete.")
    finally:
        await close_mongo_connection()


if __name__ == "__main__":
    # For Windows compatibility with asyncio + Motor
    if sys.platform == "win32":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

    asyncio.run(main())
