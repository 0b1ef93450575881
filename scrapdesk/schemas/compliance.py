import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from ..models.enums import RtoStatus


class VehicleCodRecordCreate(BaseModel):
    vehicle_id: uuid.UUID
    invoice_id: uuid.UUID
    cod_generated: bool
    cod_inward_number: Optional[str] = Field(default=None, max_length=100)
    cod_issue_date: Optional[date] = None
    rto_office: Optional[str] = Field(default=None, max_length=255)
    rto_status: RtoStatus = RtoStatus.NOT_APPLIED
    remarks: Optional[str] = None
    cod_document_url: Optional[str] = None

    class Config:
        extra = "forbid"


class VehicleCodTrackingUpdate(BaseModel):
    rto_office: Optional[str] = Field(default=None, max_length=255)
    rto_status: Optional[RtoStatus] = None
    remarks: Optional[str] = None
    cod_document_url: Optional[str] = None

    class Config:
        extra = "forbid"


class VehicleCodRecordOut(BaseModel):
    id: uuid.UUID
    organization_id: uuid.UUID
    vehicle_id: uuid.UUID
    invoice_id: uuid.UUID
    cod_generated: bool
    cod_inward_number: Optional[str] = None
    cod_issue_date: Optional[date] = None
    rto_office: Optional[str] = None
    rto_status: str
    remarks: Optional[str] = None
    cod_document_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
