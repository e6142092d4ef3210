# dailypath/models/department.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime, timezone

from .common import DateStr, UUIDStr
from dailypath.utils.periods import format_date_period


class DepartmentBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Unique department name")

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class DepartmentCreate(DepartmentBase):
    pass


class DepartmentUpdate(DepartmentBase):
    pass


class DepartmentInDB(DepartmentBase):
    id: str = Field(..., alias="_id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Department(BaseModel):
    """Public department entry (GET /api/departments)."""
    id: str
    name: str


class ManagerRef(BaseModel):
    id: str
    full_name: str


class AdminDepartment(Department):
    member_count: int = 0
    manager: Optional[ManagerRef] = None


class DepartmentMember(BaseModel):
    id: str
    full_name: str
    email: str


class DepartmentSaved(BaseModel):
    message: str
    department: Department


# --- Memberships ---

class MembershipInDB(BaseModel):
    """A user's stay in a department. valid_to None means open-ended."""
    id: str = Field(..., alias="_id")
    user_id: str
    department_id: str
    valid_from: str
    valid_to: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)

    @property
    def period(self) -> str:
        return format_date_period(self.valid_from, self.valid_to)


class DepartmentManagerInDB(BaseModel):
    id: str = Field(..., alias="_id")
    department_id: str
    manager_user_id: str

    model_config = ConfigDict(populate_by_name=True)


class MemberAssign(BaseModel):
    user_id: UUIDStr
    department_id: UUIDStr
    start_date: Optional[DateStr] = None


class MemberRemove(BaseModel):
    user_id: UUIDStr
    department_id: UUIDStr
