import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.enums import PartType, Condition, InventoryStatus


class PartDocument(BaseModel):
    url: str = Field(min_length=1)
    storage_key: str = Field(min_length=1)
    provider: str = Field(min_length=1)
    file_name: str = Field(min_length=1)
    mime_type: str = Field(min_length=1)
    size: int = Field(ge=0)
    uploaded_by: Optional[uuid.UUID] = None
    uploaded_at: Optional[datetime] = None

    class Config:
        extra = "forbid"


class InventoryPartCreate(BaseModel):
    # Negative counters are rejected by the ledger with a per-part message
    part_name: str = Field(min_length=1, max_length=255)
    part_type: PartType
    opening_stock: int
    quantity_received: int = 0
    quantity_issued: int = 0
    unit_price: Optional[float] = None
    condition: Condition
    documents: List[PartDocument] = Field(default_factory=list)

    class Config:
        extra = "forbid"


class InventoryBatchCreate(BaseModel):
    invoice_id: uuid.UUID
    vehicle_id: uuid.UUID
    parts: List[InventoryPartCreate] = Field(min_length=1)

    class Config:
        extra = "forbid"


class InventoryUpdate(BaseModel):
    part_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    part_type: Optional[PartType] = None
    opening_stock: Optional[int] = None
    quantity_received: Optional[int] = None
    quantity_issued: Optional[int] = None
    unit_price: Optional[float] = None
    condition: Optional[Condition] = None
    documents: Optional[List[PartDocument]] = None

    class Config:
        extra = "forbid"


class InventoryOut(BaseModel):
    id: uuid.UUID
    batch_id: uuid.UUID
    invoice_id: uuid.UUID
    vehicle_id: uuid.UUID
    purchase_invoice_number: str
    vehicle_model: str
    part_name: str
    part_type: str
    opening_stock: int
    quantity_received: int
    quantity_issued: int
    available_quantity: int
    unit_price: Optional[float] = None
    condition: str
    status: InventoryStatus
    documents: list = Field(default_factory=list)
    created_by: Optional[uuid.UUID] = None
    updated_by: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
