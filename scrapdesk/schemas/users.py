import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class _EmailLower(BaseModel):
    @field_validator("email", check_fields=False)
    @classmethod
    def _lower(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class AdminCreate(_EmailLower):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str
    organization_id: uuid.UUID

    class Config:
        extra = "forbid"


class StaffCreate(_EmailLower):
    """Staff always join the creating admin's organization."""
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str

    class Config:
        extra = "forbid"


class UserUpdate(_EmailLower):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    is_active: Optional[bool] = None

    class Config:
        extra = "forbid"


class PasswordReset(BaseModel):
    new_password: str

    class Config:
        extra = "forbid"


class UserOut(BaseModel):
    id: uuid.UUID
    name: str
    email: str
    role: str
    organization_id: Optional[uuid.UUID] = None
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
