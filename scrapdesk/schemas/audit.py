import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..models.enums import AuditAction, AuditStatus


class AuditLogCreate(BaseModel):
    action: AuditAction
    resource: str = Field(min_length=1, max_length=512)
    resource_id: Optional[str] = Field(default=None, max_length=64)
    status: AuditStatus
    error_message: Optional[str] = None
    payload: Optional[dict] = None

    class Config:
        extra = "forbid"


class AuditLogOut(BaseModel):
    id: uuid.UUID
    actor_id: Optional[uuid.UUID] = None
    actor_role: str
    organization_id: Optional[uuid.UUID] = None
    action: str
    resource: str
    resource_id: Optional[str] = None
    status: str
    error_message: Optional[str] = None
    ip: Optional[str] = None
    user_agent: Optional[str] = None
    browser: Optional[str] = None
    os: Optional[str] = None
    device: Optional[str] = None
    payload: Optional[dict] = None
    created_at: datetime
    expire_at: datetime

    class Config:
        from_attributes = True
