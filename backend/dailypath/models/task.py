# dailypath/models/task.py
from pydantic import BaseModel, Field, ConfigDict, ValidationInfo, field_validator
from typing import List, Optional
from datetime import date, datetime, timezone

from .common import UUIDStr
from .enums import AssignedToType, TaskPriority, TaskStatus

MAX_TASK_IDS = 200


# Shared base properties
class TaskBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    priority: TaskPriority
    estimate_minutes: int = Field(..., ge=15)
    assigned_to_type: AssignedToType
    is_private: bool = False
    due_date: Optional[date] = None

    model_config = ConfigDict(
        use_enum_values=True,
        from_attributes=True,
        populate_by_name=True,
    )


class TaskCreate(TaskBase):
    # User id or department id, depending on assigned_to_type
    assigned_id: Optional[UUIDStr] = None

    @field_validator("estimate_minutes")
    @classmethod
    def estimate_in_slots(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value % 15 != 0:
            raise ValueError("Estimate must be a multiple of 15 minutes")
        return value

    @field_validator("title", mode="before")
    @classmethod
    def title_messages(cls, value):
        if isinstance(value, str):
            if not value:
                raise ValueError("Title is required")
            if len(value) > 255:
                raise ValueError("Title is too long")
        return value

    model_config = ConfigDict(
        use_enum_values=True,
        json_schema_extra={
            "example": {
                "title": "Prepare monthly report",
                "description": "Numbers for the board meeting",
                "priority": "high",
                "estimate_minutes": 90,
                "assigned_to_type": "user",
                "is_private": False,
                "due_date": "2026-01-31",
            }
        },
    )


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    estimate_minutes: Optional[int] = Field(None, ge=15)
    assigned_to_type: Optional[AssignedToType] = None
    assigned_user_id: Optional[UUIDStr] = None
    assigned_department_id: Optional[UUIDStr] = None
    is_private: Optional[bool] = None
    due_date: Optional[date] = None

    @field_validator(
        "title", "priority", "status", "estimate_minutes", "assigned_to_type", "is_private",
        mode="before",
    )
    @classmethod
    def reject_null(cls, value, info: ValidationInfo):
        # Omit a field to leave it unchanged; only the nullable columns accept null
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value

    @field_validator("estimate_minutes")
    @classmethod
    def estimate_in_slots(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value % 15 != 0:
            raise ValueError("Estimate must be a multiple of 15 minutes")
        return value

    model_config = ConfigDict(use_enum_values=True)


# Properties stored in DB
class TaskInDB(TaskBase):
    id: str = Field(..., alias="_id")
    status: TaskStatus = TaskStatus.TODO
    assigned_user_id: Optional[str] = None
    assigned_department_id: Optional[str] = None
    assigned_by_user_id: Optional[str] = None
    created_by_user_id: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Stored documents are trusted; skip request-level limits on read
    title: str
    estimate_minutes: int


class Task(BaseModel):
    """Task as returned by the API, with computed ETA and privacy masking applied."""
    id: str
    title: str
    description: Optional[str] = None
    priority: TaskPriority
    status: TaskStatus
    estimate_minutes: int
    due_date: Optional[date] = None
    assigned_to_type: AssignedToType
    assigned_user_id: Optional[str] = None
    assigned_department_id: Optional[str] = None
    assigned_by_user_id: Optional[str] = None
    assigned_by_user_name: Optional[str] = None
    created_by_user_id: str
    is_private: bool
    eta: Optional[str] = None

    model_config = ConfigDict(use_enum_values=True)


# --- Query parameters ---

class TaskQuery(BaseModel):
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    department_id: Optional[UUIDStr] = None
    assigned_to_user_id: Optional[UUIDStr] = None
    is_private: Optional[bool] = None

    model_config = ConfigDict(use_enum_values=True)


class TaskIdsQuery(BaseModel):
    ids: List[UUIDStr]

    @field_validator("ids", mode="before")
    @classmethod
    def split_ids(cls, value):
        if isinstance(value, str):
            value = [value]
        items: List[str] = []
        for raw in value or []:
            items.extend(part.strip() for part in str(raw).split(","))
        items = [item for item in items if item]
        if not items:
            raise ValueError("ids must include at least one UUID")
        if len(items) > MAX_TASK_IDS:
            raise ValueError("Too many ids")
        return items
