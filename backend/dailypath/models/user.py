# dailypath/models/user.py
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional
from datetime import datetime, timezone

from .enums import AppRole


# Shared base properties
class UserBase(BaseModel):
    email: EmailStr = Field(..., description="Login email, unique across users")
    full_name: str = Field(..., min_length=1, max_length=200)
    app_role: AppRole = Field(default=AppRole.EMPLOYEE)
    timezone: str = Field(default="UTC", description="IANA timezone name used by calendar views")
    is_active: bool = Field(default=True, description="False once an admin deactivates the user")

    model_config = ConfigDict(
        use_enum_values=True,
        from_attributes=True,
        populate_by_name=True,
    )


# Properties stored in DB. The id is the auth provider's user id.
class UserInDB(UserBase):
    id: str = Field(..., alias="_id")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class DepartmentRef(BaseModel):
    id: str
    name: str


class CurrentUser(BaseModel):
    """Acting identity attached to a request."""
    id: str
    email: str
    full_name: str
    app_role: AppRole
    timezone: str = "UTC"
    active_department: Optional[DepartmentRef] = None

    model_config = ConfigDict(use_enum_values=True)

    @property
    def is_admin(self) -> bool:
        return self.app_role == AppRole.ADMIN.value

    @property
    def is_manager(self) -> bool:
        return self.app_role == AppRole.MANAGER.value


# --- Response DTOs ---

class UserListItem(BaseModel):
    id: str
    email: str
    full_name: str
    app_role: AppRole
    is_active: bool

    model_config = ConfigDict(use_enum_values=True)


class UserMe(BaseModel):
    id: str
    email: str
    full_name: str
    app_role: AppRole
    timezone: str
    active_department: Optional[DepartmentRef] = None

    model_config = ConfigDict(use_enum_values=True)


class AdminUserListItem(UserListItem):
    active_department: Optional[DepartmentRef] = None


class UserSummary(BaseModel):
    id: str
    email: str
    full_name: str
    app_role: AppRole

    model_config = ConfigDict(use_enum_values=True)


# --- Request bodies ---

class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    timezone: Optional[str] = Field(None, min_length=1)


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class AdminUserCreate(BaseModel):
    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=200)
    password: str = Field(..., min_length=10)
    app_role: AppRole
    timezone: Optional[str] = None

    model_config = ConfigDict(
        use_enum_values=True,
        json_schema_extra={
            "example": {
                "email": "jan.kowalski@example.com",
                "full_name": "Jan Kowalski",
                "password": "a-long-password",
                "app_role": "employee",
                "timezone": "Europe/Warsaw",
            }
        },
    )


class AdminUserUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    app_role: Optional[AppRole] = None
    timezone: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None

    model_config = ConfigDict(use_enum_values=True)


class AdminUserCreated(BaseModel):
    message: str
    user: UserSummary
