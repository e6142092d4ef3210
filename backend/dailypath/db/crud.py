# dailypath/db/crud.py

# --- Core Imports ---
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument, ASCENDING, DESCENDING, DeleteOne, UpdateOne
from pymongo.errors import DuplicateKeyError, PyMongoError
import uuid
from typing import List, Optional, Dict, Any, Iterable, Tuple
from datetime import date, datetime, timezone
import logging
from functools import wraps

# --- Database Access ---
from .database import get_database

# --- Pydantic Models ---
from dailypath.models.user import UserInDB
from dailypath.models.department import DepartmentInDB, DepartmentManagerInDB, MembershipInDB
from dailypath.models.task import TaskInDB
from dailypath.models.plan_slot import PlanSlotInDB
from dailypath.models.time_log import TimeLogInDB
from dailypath.models.auth import InvitationInDB
from dailypath.core.errors import ConflictError, DatabaseError

# --- Logging Setup ---
logger = logging.getLogger(__name__)

# --- MongoDB Collection Names ---
USER_COLLECTION = "users"
DEPARTMENT_COLLECTION = "departments"
DEPARTMENT_MANAGER_COLLECTION = "department_managers"
MEMBERSHIP_COLLECTION = "memberships"
TASK_COLLECTION = "tasks"
PLAN_SLOT_COLLECTION = "plan_slots"
TIME_LOG_COLLECTION = "time_logs"
INVITATION_COLLECTION = "invitations"

ALL_COLLECTIONS = (
    USER_COLLECTION,
    DEPARTMENT_COLLECTION,
    DEPARTMENT_MANAGER_COLLECTION,
    MEMBERSHIP_COLLECTION,
    TASK_COLLECTION,
    PLAN_SLOT_COLLECTION,
    TIME_LOG_COLLECTION,
    INVITATION_COLLECTION,
)


# --- Helper Functions ---
def db_operation(func):
    """Log pymongo failures and re-raise them as DatabaseError."""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except PyMongoError as e:
            logger.error(f"Database operation {func.__name__} failed: {e}", exc_info=True)
            raise DatabaseError() from e
    return wrapper

def _get_collection(collection_name: str) -> AsyncIOMotorCollection:
    db = get_database()
    if db is not None: return db[collection_name]
    logger.error("Database connection is not available (db object is None). Cannot get collection.")
    raise DatabaseError()

def _new_id() -> str:
    return str(uuid.uuid4())

def _now() -> datetime:
    return datetime.now(timezone.utc)

def _active_on(day: str) -> Dict[str, Any]:
    """Membership filter: valid_from <= day < valid_to (valid_to None = open-ended)."""
    return {
        "valid_from": {"$lte": day},
        "$or": [{"valid_to": None}, {"valid_to": {"$gt": day}}],
    }

def _date_to_str(value: Any) -> Any:
    # Mongo has no date-only type; ISO strings keep ordering and round-trip cleanly
    return value.isoformat() if isinstance(value, date) and not isinstance(value, datetime) else value


# --- User CRUD Functions ---
@db_operation
async def get_user_by_id(user_id: str) -> Optional[UserInDB]:
    collection = _get_collection(USER_COLLECTION)
    doc = await collection.find_one({"_id": user_id})
    return UserInDB(**doc) if doc else None

@db_operation
async def get_user_by_email(email: str) -> Optional[UserInDB]:
    collection = _get_collection(USER_COLLECTION)
    doc = await collection.find_one({"email": email.lower()})
    return UserInDB(**doc) if doc else None

@db_operation
async def get_users_by_ids(user_ids: Iterable[str]) -> List[UserInDB]:
    ids = list(set(user_ids))
    if not ids: return []
    collection = _get_collection(USER_COLLECTION)
    return [UserInDB(**doc) async for doc in collection.find({"_id": {"$in": ids}})]

@db_operation
async def get_all_users(sort: Optional[List[Tuple[str, int]]] = None) -> List[UserInDB]:
    collection = _get_collection(USER_COLLECTION)
    cursor = collection.find({})
    if sort: cursor = cursor.sort(sort)
    return [UserInDB(**doc) async for doc in cursor]

@db_operation
async def create_user(user_id: str, data: Dict[str, Any]) -> UserInDB:
    """Insert a user profile under the auth provider's id. Raises ConflictError on duplicate email."""
    collection = _get_collection(USER_COLLECTION); now = _now()
    doc = {**data, "_id": user_id, "email": data["email"].lower(), "created_at": now, "updated_at": now}
    logger.info(f"Inserting user: {user_id}")
    try:
        await collection.insert_one(doc)
    except DuplicateKeyError:
        logger.warning(f"User insert rejected, duplicate email or id: {doc['email']}")
        raise ConflictError("User with this email already exists")
    return UserInDB(**doc)

@db_operation
async def update_user(user_id: str, update_data: Dict[str, Any]) -> Optional[UserInDB]:
    collection = _get_collection(USER_COLLECTION)
    update_data = {k: v for k, v in update_data.items() if k not in ("_id", "id", "created_at")}
    update_data["updated_at"] = _now()
    logger.info(f"Updating user {user_id}: {sorted(update_data)}")
    doc = await collection.find_one_and_update(
        {"_id": user_id}, {"$set": update_data}, return_document=ReturnDocument.AFTER
    )
    if doc is None: logger.warning(f"User {user_id} not found for update.")
    return UserInDB(**doc) if doc else None

@db_operation
async def deactivate_user_records(
    user_id: str,
    close_membership_ids: List[str],
    today: str,
    drop_membership_ids: Optional[List[str]] = None,
) -> Optional[UserInDB]:
    """
    Soft-delete a user in one batched step per collection: close the given
    memberships at `today` and delete `drop_membership_ids` (memberships that
    start today), drop every department-manager mapping of the user, then mark
    the profile inactive with the employee role.
    """
    db_memberships = _get_collection(MEMBERSHIP_COLLECTION)
    db_managers = _get_collection(DEPARTMENT_MANAGER_COLLECTION)

    ops = [UpdateOne({"_id": mid}, {"$set": {"valid_to": today}}) for mid in close_membership_ids]
    ops += [DeleteOne({"_id": mid}) for mid in drop_membership_ids or []]
    if ops:
        result = await db_memberships.bulk_write(ops, ordered=False)
        logger.info(
            f"Closed {result.modified_count} and deleted {result.deleted_count} memberships of user {user_id} at {today}"
        )

    removed = await db_managers.delete_many({"manager_user_id": user_id})
    logger.info(f"Removed {removed.deleted_count} department-manager mappings of user {user_id}")

    return await update_user(user_id, {"is_active": False, "app_role": "employee"})

# --- Department CRUD Functions ---
@db_operation
async def get_department_by_id(department_id: str) -> Optional[DepartmentInDB]:
    collection = _get_collection(DEPARTMENT_COLLECTION)
    doc = await collection.find_one({"_id": department_id})
    return DepartmentInDB(**doc) if doc else None

@db_operation
async def get_department_by_name(name: str) -> Optional[DepartmentInDB]:
    collection = _get_collection(DEPARTMENT_COLLECTION)
    doc = await collection.find_one({"name": name})
    return DepartmentInDB(**doc) if doc else None

@db_operation
async def get_departments_by_ids(department_ids: Iterable[str]) -> List[DepartmentInDB]:
    ids = list(set(department_ids))
    if not ids: return []
    collection = _get_collection(DEPARTMENT_COLLECTION)
    return [DepartmentInDB(**doc) async for doc in collection.find({"_id": {"$in": ids}})]

@db_operation
async def get_all_departments() -> List[DepartmentInDB]:
    collection = _get_collection(DEPARTMENT_COLLECTION)
    return [DepartmentInDB(**doc) async for doc in collection.find({}).sort("name", ASCENDING)]

@db_operation
async def create_department(name: str) -> DepartmentInDB:
    collection = _get_collection(DEPARTMENT_COLLECTION); now = _now()
    doc = {"_id": _new_id(), "name": name, "created_at": now, "updated_at": now}
    logger.info(f"Inserting department: {doc['_id']} ({name})")
    try:
        await collection.insert_one(doc)
    except DuplicateKeyError:
        raise ConflictError("Department with this name already exists")
    return DepartmentInDB(**doc)

@db_operation
async def update_department(department_id: str, name: str) -> Optional[DepartmentInDB]:
    collection = _get_collection(DEPARTMENT_COLLECTION)
    try:
        doc = await collection.find_one_and_update(
            {"_id": department_id},
            {"$set": {"name": name, "updated_at": _now()}},
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        raise ConflictError("Department with this name already exists")
    return DepartmentInDB(**doc) if doc else None

@db_operation
async def delete_department(department_id: str) -> bool:
    collection = _get_collection(DEPARTMENT_COLLECTION)
    await _get_collection(DEPARTMENT_MANAGER_COLLECTION).delete_many({"department_id": department_id})
    result = await collection.delete_one({"_id": department_id})
    logger.info(f"Deleted department {department_id}: {result.deleted_count}")
    return result.deleted_count == 1


# --- Department manager mappings ---
@db_operation
async def get_managed_department_ids(user_id: str) -> List[str]:
    collection = _get_collection(DEPARTMENT_MANAGER_COLLECTION)
    return [doc["department_id"] async for doc in collection.find({"manager_user_id": user_id})]

@db_operation
async def get_managers_for_departments(department_ids: Iterable[str]) -> List[DepartmentManagerInDB]:
    ids = list(set(department_ids))
    if not ids: return []
    collection = _get_collection(DEPARTMENT_MANAGER_COLLECTION)
    return [DepartmentManagerInDB(**doc) async for doc in collection.find({"department_id": {"$in": ids}})]


# --- Membership CRUD Functions ---
@db_operation
async def get_memberships_for_user(user_id: str) -> List[MembershipInDB]:
    collection = _get_collection(MEMBERSHIP_COLLECTION)
    cursor = collection.find({"user_id": user_id}).sort("valid_from", ASCENDING)
    return [MembershipInDB(**doc) async for doc in cursor]

@db_operation
async def get_active_membership(user_id: str, day: str) -> Optional[MembershipInDB]:
    collection = _get_collection(MEMBERSHIP_COLLECTION)
    query = {"user_id": user_id, **_active_on(day)}
    docs = await collection.find(query).sort("valid_from", DESCENDING).limit(1).to_list(length=1)
    return MembershipInDB(**docs[0]) if docs else None

@db_operation
async def get_active_memberships_for_users(user_ids: Iterable[str], day: str) -> List[MembershipInDB]:
    ids = list(set(user_ids))
    if not ids: return []
    collection = _get_collection(MEMBERSHIP_COLLECTION)
    query = {"user_id": {"$in": ids}, **_active_on(day)}
    return [MembershipInDB(**doc) async for doc in collection.find(query)]

@db_operation
async def get_active_memberships_for_department(department_id: str, day: str) -> List[MembershipInDB]:
    collection = _get_collection(MEMBERSHIP_COLLECTION)
    query = {"department_id": department_id, **_active_on(day)}
    return [MembershipInDB(**doc) async for doc in collection.find(query)]

@db_operation
async def count_active_members_by_department(day: str) -> Dict[str, int]:
    collection = _get_collection(MEMBERSHIP_COLLECTION)
    pipeline = [
        {"$match": _active_on(day)},
        {"$group": {"_id": "$department_id", "count": {"$sum": 1}}},
    ]
    counts: Dict[str, int] = {}
    async for row in collection.aggregate(pipeline):
        counts[row["_id"]] = row["count"]
    return counts

@db_operation
async def create_membership(user_id: str, department_id: str, valid_from: str) -> MembershipInDB:
    collection = _get_collection(MEMBERSHIP_COLLECTION)
    doc = {"_id": _new_id(), "user_id": user_id, "department_id": department_id,
           "valid_from": valid_from, "valid_to": None}
    logger.info(f"Inserting membership {doc['_id']}: user {user_id} -> department {department_id} from {valid_from}")
    await collection.insert_one(doc)
    return MembershipInDB(**doc)

@db_operation
async def close_membership(membership_id: str, valid_to: str) -> bool:
    collection = _get_collection(MEMBERSHIP_COLLECTION)
    result = await collection.update_one({"_id": membership_id}, {"$set": {"valid_to": valid_to}})
    return result.matched_count == 1

@db_operation
async def delete_membership(membership_id: str) -> bool:
    collection = _get_collection(MEMBERSHIP_COLLECTION)
    result = await collection.delete_one({"_id": membership_id})
    return result.deleted_count == 1


# --- Task CRUD Functions ---
@db_operation
async def get_task_by_id(task_id: str) -> Optional[TaskInDB]:
    collection = _get_collection(TASK_COLLECTION)
    doc = await collection.find_one({"_id": task_id})
    return TaskInDB(**doc) if doc else None

@db_operation
async def find_tasks(query: Dict[str, Any], newest_first: bool = True) -> List[TaskInDB]:
    """Run a prepared filter (visibility and user filters combined by the caller)."""
    collection = _get_collection(TASK_COLLECTION)
    cursor = collection.find(query)
    if newest_first: cursor = cursor.sort("created_at", DESCENDING)
    return [TaskInDB(**doc) async for doc in cursor]

@db_operation
async def get_tasks_by_ids(task_ids: Iterable[str]) -> List[TaskInDB]:
    ids = list(dict.fromkeys(task_ids))
    if not ids: return []
    collection = _get_collection(TASK_COLLECTION)
    return [TaskInDB(**doc) async for doc in collection.find({"_id": {"$in": ids}})]

@db_operation
async def create_task(data: Dict[str, Any]) -> TaskInDB:
    collection = _get_collection(TASK_COLLECTION); now = _now()
    doc = {k: _date_to_str(v) for k, v in data.items()}
    doc.update({"_id": _new_id(), "created_at": now, "updated_at": now})
    logger.info(f"Inserting task: {doc['_id']}")
    await collection.insert_one(doc)
    return TaskInDB(**doc)

@db_operation
async def update_task(task_id: str, update_data: Dict[str, Any]) -> Optional[TaskInDB]:
    collection = _get_collection(TASK_COLLECTION)
    update = {k: _date_to_str(v) for k, v in update_data.items() if k not in ("_id", "id", "created_at")}
    update["updated_at"] = _now()
    doc = await collection.find_one_and_update(
        {"_id": task_id}, {"$set": update}, return_document=ReturnDocument.AFTER
    )
    if doc is None: logger.warning(f"Task {task_id} not found for update.")
    return TaskInDB(**doc) if doc else None

@db_operation
async def delete_task(task_id: str) -> bool:
    collection = _get_collection(TASK_COLLECTION)
    result = await collection.delete_one({"_id": task_id})
    return result.deleted_count == 1

@db_operation
async def count_task_references(task_id: str) -> Tuple[int, int]:
    """Number of (time logs, plan slots) pointing at the task."""
    logs = await _get_collection(TIME_LOG_COLLECTION).count_documents({"task_id": task_id}, limit=1)
    slots = await _get_collection(PLAN_SLOT_COLLECTION).count_documents({"task_id": task_id}, limit=1)
    return logs, slots


# --- Plan Slot CRUD Functions ---
@db_operation
async def get_plan_slot_by_id(slot_id: str) -> Optional[PlanSlotInDB]:
    collection = _get_collection(PLAN_SLOT_COLLECTION)
    doc = await collection.find_one({"_id": slot_id})
    return PlanSlotInDB(**doc) if doc else None

@db_operation
async def get_plan_slots_for_user(user_id: str, start_from: datetime, start_to: datetime) -> List[PlanSlotInDB]:
    """Slots of a user whose start lies in [start_from, start_to], earliest first."""
    collection = _get_collection(PLAN_SLOT_COLLECTION)
    query = {"user_id": user_id, "start": {"$gte": start_from, "$lte": start_to}}
    return [PlanSlotInDB(**doc) async for doc in collection.find(query).sort("start", ASCENDING)]

@db_operation
async def get_plan_slots_touching(user_id: str, range_start: datetime, range_end: datetime) -> List[PlanSlotInDB]:
    """Slots of a user with either bound inside [range_start, range_end]."""
    collection = _get_collection(PLAN_SLOT_COLLECTION)
    query = {"user_id": user_id, "$or": [
        {"start": {"$gte": range_start, "$lte": range_end}},
        {"end": {"$gte": range_start, "$lte": range_end}},
    ]}
    return [PlanSlotInDB(**doc) async for doc in collection.find(query).sort("start", ASCENDING)]

@db_operation
async def find_overlapping_plan_slots(
    user_id: str, start: datetime, end: datetime, exclude_id: Optional[str] = None
) -> List[PlanSlotInDB]:
    """Non-overlap slots of the user intersecting the half-open range [start, end)."""
    collection = _get_collection(PLAN_SLOT_COLLECTION)
    query: Dict[str, Any] = {
        "user_id": user_id,
        "allow_overlap": {"$ne": True},
        "start": {"$lt": end},
        "end": {"$gt": start},
    }
    if exclude_id: query["_id"] = {"$ne": exclude_id}
    return [PlanSlotInDB(**doc) async for doc in collection.find(query)]

@db_operation
async def get_latest_slot_end_by_task(task_ids: Iterable[str]) -> Dict[str, datetime]:
    """Upper bound of the latest plan slot per task."""
    ids = list(set(task_ids))
    if not ids: return {}
    collection = _get_collection(PLAN_SLOT_COLLECTION)
    pipeline = [
        {"$match": {"task_id": {"$in": ids}}},
        {"$group": {"_id": "$task_id", "end": {"$max": "$end"}}},
    ]
    return {row["_id"]: row["end"] async for row in collection.aggregate(pipeline)}

@db_operation
async def create_plan_slot(data: Dict[str, Any]) -> PlanSlotInDB:
    collection = _get_collection(PLAN_SLOT_COLLECTION)
    doc = {**data, "_id": _new_id(), "created_at": _now()}
    logger.info(f"Inserting plan slot {doc['_id']} for user {doc['user_id']}")
    await collection.insert_one(doc)
    return PlanSlotInDB(**doc)

@db_operation
async def update_plan_slot(slot_id: str, update_data: Dict[str, Any]) -> Optional[PlanSlotInDB]:
    collection = _get_collection(PLAN_SLOT_COLLECTION)
    update = {k: v for k, v in update_data.items() if k not in ("_id", "id", "created_at")}
    if not update: return await get_plan_slot_by_id(slot_id)
    doc = await collection.find_one_and_update(
        {"_id": slot_id}, {"$set": update}, return_document=ReturnDocument.AFTER
    )
    return PlanSlotInDB(**doc) if doc else None

@db_operation
async def delete_plan_slot(slot_id: str) -> bool:
    collection = _get_collection(PLAN_SLOT_COLLECTION)
    result = await collection.delete_one({"_id": slot_id})
    return result.deleted_count == 1

@db_operation
async def reassign_plan_slots(task_id: str, user_id: str) -> int:
    collection = _get_collection(PLAN_SLOT_COLLECTION)
    result = await collection.update_many({"task_id": task_id}, {"$set": {"user_id": user_id}})
    logger.info(f"Moved {result.modified_count} plan slots of task {task_id} to user {user_id}")
    return result.modified_count

@db_operation
async def delete_plan_slots_for_task(task_id: str) -> int:
    collection = _get_collection(PLAN_SLOT_COLLECTION)
    result = await collection.delete_many({"task_id": task_id})
    logger.info(f"Deleted {result.deleted_count} plan slots of task {task_id}")
    return result.deleted_count


# --- Time Log CRUD Functions ---
@db_operation
async def get_time_log_by_id(log_id: str) -> Optional[TimeLogInDB]:
    collection = _get_collection(TIME_LOG_COLLECTION)
    doc = await collection.find_one({"_id": log_id})
    return TimeLogInDB(**doc) if doc else None

@db_operation
async def get_time_logs(
    user_id: str,
    task_id: Optional[str] = None,
    start_from: Optional[datetime] = None,
    end_to: Optional[datetime] = None,
) -> List[TimeLogInDB]:
    """Logs of a user, optionally for one task and within bounds; latest end first."""
    collection = _get_collection(TIME_LOG_COLLECTION)
    query: Dict[str, Any] = {"user_id": user_id}
    if task_id: query["task_id"] = task_id
    if start_from: query["start"] = {"$gte": start_from}
    if end_to: query["end"] = {"$lte": end_to}
    return [TimeLogInDB(**doc) async for doc in collection.find(query).sort("end", DESCENDING)]

@db_operation
async def get_time_logs_touching(user_id: str, range_start: datetime, range_end: datetime) -> List[TimeLogInDB]:
    collection = _get_collection(TIME_LOG_COLLECTION)
    query = {"user_id": user_id, "$or": [
        {"start": {"$gte": range_start, "$lte": range_end}},
        {"end": {"$gte": range_start, "$lte": range_end}},
    ]}
    return [TimeLogInDB(**doc) async for doc in collection.find(query).sort("start", ASCENDING)]

@db_operation
async def create_time_log(data: Dict[str, Any]) -> TimeLogInDB:
    collection = _get_collection(TIME_LOG_COLLECTION); now = _now()
    doc = {**data, "_id": _new_id(), "created_at": now, "updated_at": now}
    logger.info(f"Inserting time log {doc['_id']} for user {doc['user_id']}")
    await collection.insert_one(doc)
    return TimeLogInDB(**doc)

@db_operation
async def update_time_log(log_id: str, update_data: Dict[str, Any]) -> Optional[TimeLogInDB]:
    collection = _get_collection(TIME_LOG_COLLECTION)
    update = {k: v for k, v in update_data.items() if k not in ("_id", "id", "created_at")}
    update["updated_at"] = _now()
    doc = await collection.find_one_and_update(
        {"_id": log_id}, {"$set": update}, return_document=ReturnDocument.AFTER
    )
    return TimeLogInDB(**doc) if doc else None

@db_operation
async def delete_time_log(log_id: str) -> bool:
    collection = _get_collection(TIME_LOG_COLLECTION)
    result = await collection.delete_one({"_id": log_id})
    return result.deleted_count == 1


# --- Invitation CRUD Functions ---
@db_operation
async def get_invitation_by_token(token: str) -> Optional[InvitationInDB]:
    collection = _get_collection(INVITATION_COLLECTION)
    doc = await collection.find_one({"token": token})
    return InvitationInDB(**doc) if doc else None

@db_operation
async def get_pending_invitation(email: str, now: datetime) -> Optional[InvitationInDB]:
    collection = _get_collection(INVITATION_COLLECTION)
    doc = await collection.find_one({"email": email.lower(), "accepted_at": None, "expires_at": {"$gt": now}})
    return InvitationInDB(**doc) if doc else None

@db_operation
async def create_invitation(data: Dict[str, Any]) -> InvitationInDB:
    collection = _get_collection(INVITATION_COLLECTION)
    doc = {**data, "_id": _new_id(), "email": data["email"].lower(), "accepted_at": None, "created_at": _now()}
    logger.info(f"Inserting invitation {doc['_id']} for {doc['email']}")
    await collection.insert_one(doc)
    return InvitationInDB(**doc)

@db_operation
async def mark_invitation_accepted(invitation_id: str) -> bool:
    collection = _get_collection(INVITATION_COLLECTION)
    result = await collection.update_one({"_id": invitation_id}, {"$set": {"accepted_at": _now()}})
    return result.modified_count == 1


# --- Indexes ---
async def ensure_indexes() -> None:
    """Create the indexes the queries above rely on. Safe to call on every startup."""
    db = get_database()
    if db is None:
        logger.error("Could not get database instance to ensure indexes.")
        return
    specs = [
        (USER_COLLECTION, [("email", ASCENDING)], {"unique": True, "name": "idx_user_email"}),
        (DEPARTMENT_COLLECTION, [("name", ASCENDING)], {"unique": True, "name": "idx_department_name"}),
        (MEMBERSHIP_COLLECTION, [("user_id", ASCENDING)], {"name": "idx_membership_user"}),
        (DEPARTMENT_MANAGER_COLLECTION, [("manager_user_id", ASCENDING)], {"name": "idx_manager_user"}),
        (PLAN_SLOT_COLLECTION, [("user_id", ASCENDING), ("start", ASCENDING)], {"name": "idx_slot_user_start"}),
        (TIME_LOG_COLLECTION, [("user_id", ASCENDING), ("end", DESCENDING)], {"name": "idx_log_user_end"}),
        (INVITATION_COLLECTION, [("token", ASCENDING)], {"unique": True, "name": "idx_invitation_token"}),
    ]
    for collection_name, keys, options in specs:
        try:
            await db[collection_name].create_index(keys, **options)
            logger.info(f"Index '{options['name']}' on {collection_name} ensured.")
        except PyMongoError as e:
            # Cosmos DB refuses unique indexes on non-empty collections; startup continues
            logger.warning(f"Could not create index '{options['name']}' on {collection_name}: {e}")
