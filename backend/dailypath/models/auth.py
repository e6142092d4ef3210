# dailypath/models/auth.py
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional
from datetime import datetime

from .common import UUIDStr
from .enums import AppRole
from .user import UserSummary


# --- Request bodies ---

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., min_length=2, max_length=200)
    # Invitation token; enforced by the register endpoint
    token: Optional[str] = None


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6)


class InvitationCreate(BaseModel):
    email: EmailStr
    app_role: AppRole
    department_id: Optional[UUIDStr] = None

    model_config = ConfigDict(use_enum_values=True)


# --- Stored records ---

class InvitationInDB(BaseModel):
    id: str = Field(..., alias="_id")
    email: str
    token: str
    app_role: AppRole
    department_id: Optional[str] = None
    invited_by: Optional[str] = None
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True)


# --- Responses ---

class AuthSession(BaseModel):
    """Tokens returned by the auth provider after a password or recovery grant."""
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    user_id: str
    email: Optional[str] = None


class LoginResponse(BaseModel):
    success: bool = True
    user: UserSummary


class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    user: UserSummary


class SuccessMessage(BaseModel):
    success: bool = True
    message: str


class InvitationOut(BaseModel):
    id: str
    email: str
    expires_at: datetime
    token: Optional[str] = None


class InvitationCreated(BaseModel):
    success: bool = True
    invitation: InvitationOut
    message: str
