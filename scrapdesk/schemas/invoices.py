import uuid
from datetime import date, datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, EmailStr, Field, RootModel, TypeAdapter, model_validator

from ..models.enums import LeadSource, VehicleType, FuelType


class _InvoiceCommon(BaseModel):
    seller_name: str = Field(min_length=1, max_length=255)
    invoice_number: Optional[str] = Field(default=None, max_length=100)
    seller_gstin: Optional[str] = Field(default=None, max_length=20)
    purchase_amount: float = Field(ge=0)
    purchase_date: date
    gst_applicable: bool = True
    gst_rate: Optional[float] = Field(default=None, ge=0, le=100)
    gst_amount: Optional[float] = Field(default=None, ge=0)
    reverse_charge_applicable: bool

    class Config:
        extra = "forbid"

    @model_validator(mode="after")
    def _gst(self):
        if self.gst_applicable and self.gst_rate is None:
            raise ValueError("gst_rate is required when GST is applicable")
        return self


class DirectSellerInvoice(_InvoiceCommon):
    seller_type: Literal["DIRECT"]
    mobile: str = Field(min_length=1, max_length=20)
    email: EmailStr
    aadhaar_number: str = Field(min_length=1, max_length=20)
    pan_number: str = Field(min_length=1, max_length=20)
    lead_source: LeadSource


class MstcSellerInvoice(_InvoiceCommon):
    seller_type: Literal["MSTC"]
    auction_number: str = Field(min_length=1, max_length=100)
    auction_date: date
    source: str = Field(min_length=1, max_length=255)
    lot_number: str = Field(min_length=1, max_length=100)


class GemSellerInvoice(_InvoiceCommon):
    seller_type: Literal["GEM"]


InvoiceCreate = Annotated[
    Union[DirectSellerInvoice, MstcSellerInvoice, GemSellerInvoice],
    Field(discriminator="seller_type"),
]
invoice_adapter = TypeAdapter(InvoiceCreate)

# Columns owned by one seller type; cleared when the type changes
SELLER_FIELDS = {
    "DIRECT": ("mobile", "email", "aadhaar_number", "pan_number", "lead_source"),
    "MSTC": ("auction_number", "auction_date", "source", "lot_number"),
    "GEM": (),
}
COMMON_FIELDS = tuple(_InvoiceCommon.model_fields.keys())


class InvoiceUpdate(BaseModel):
    """Partial update; the merged record is re-validated as an InvoiceCreate."""
    seller_name: Optional[str] = None
    seller_type: Optional[Literal["DIRECT", "MSTC", "GEM"]] = None
    invoice_number: Optional[str] = None
    seller_gstin: Optional[str] = None
    purchase_amount: Optional[float] = None
    purchase_date: Optional[date] = None
    gst_applicable: Optional[bool] = None
    gst_rate: Optional[float] = None
    gst_amount: Optional[float] = None
    reverse_charge_applicable: Optional[bool] = None
    mobile: Optional[str] = None
    email: Optional[str] = None
    aadhaar_number: Optional[str] = None
    pan_number: Optional[str] = None
    lead_source: Optional[str] = None
    auction_number: Optional[str] = None
    auction_date: Optional[date] = None
    source: Optional[str] = None
    lot_number: Optional[str] = None

    class Config:
        extra = "forbid"


class InvoiceOut(BaseModel):
    id: uuid.UUID
    invoice_number: str
    seller_name: str
    seller_type: str
    seller_gstin: Optional[str] = None
    organization_id: uuid.UUID
    mobile: Optional[str] = None
    email: Optional[str] = None
    aadhaar_number: Optional[str] = None
    pan_number: Optional[str] = None
    lead_source: Optional[str] = None
    auction_number: Optional[str] = None
    auction_date: Optional[date] = None
    source: Optional[str] = None
    lot_number: Optional[str] = None
    purchase_amount: float
    purchase_date: date
    gst_applicable: bool
    gst_rate: Optional[float] = None
    gst_amount: Optional[float] = None
    reverse_charge_applicable: bool
    status: str
    created_by: Optional[uuid.UUID] = None
    updated_by: Optional[uuid.UUID] = None
    deleted_by: Optional[uuid.UUID] = None
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class VehicleInvoiceCreate(BaseModel):
    invoice_id: uuid.UUID
    owner_name: str = Field(min_length=1, max_length=255)
    vehicle_type: VehicleType
    make: str = Field(min_length=1, max_length=100)
    model: str = Field(min_length=1, max_length=100)
    variant: str = Field(min_length=1, max_length=100)
    fuel_type: FuelType
    registration_number: str = Field(min_length=1, max_length=50)
    chassis_number: str = Field(min_length=1, max_length=100)
    engine_number: str = Field(min_length=1, max_length=100)
    color: str = Field(min_length=1, max_length=50)
    year_of_manufacture: int = Field(ge=1900, le=2100)
    vehicle_purchase_date: date

    class Config:
        extra = "forbid"


class VehicleInvoiceUpdate(BaseModel):
    owner_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    vehicle_type: Optional[VehicleType] = None
    make: Optional[str] = Field(default=None, min_length=1, max_length=100)
    model: Optional[str] = Field(default=None, min_length=1, max_length=100)
    variant: Optional[str] = Field(default=None, min_length=1, max_length=100)
    fuel_type: Optional[FuelType] = None
    registration_number: Optional[str] = Field(default=None, min_length=1, max_length=50)
    chassis_number: Optional[str] = Field(default=None, min_length=1, max_length=100)
    engine_number: Optional[str] = Field(default=None, min_length=1, max_length=100)
    color: Optional[str] = Field(default=None, min_length=1, max_length=50)
    year_of_manufacture: Optional[int] = Field(default=None, ge=1900, le=2100)
    vehicle_purchase_date: Optional[date] = None

    class Config:
        extra = "forbid"


class VehicleInvoiceOut(BaseModel):
    id: uuid.UUID
    invoice_id: uuid.UUID
    organization_id: uuid.UUID
    owner_name: str
    vehicle_type: str
    make: str
    model: str
    variant: str
    fuel_type: str
    registration_number: str
    chassis_number: str
    engine_number: str
    color: str
    year_of_manufacture: int
    vehicle_purchase_date: date
    vehicle_status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PurchaseDocumentOut(BaseModel):
    id: uuid.UUID
    invoice_id: uuid.UUID
    vehicle_invoice_id: Optional[uuid.UUID] = None
    organization_id: uuid.UUID
    uploaded_by: Optional[uuid.UUID] = None
    document_type: str
    file_name: str
    mime_type: Optional[str] = None
    size: int
    url: str
    storage_key: str
    provider: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvoiceCreateRequest(RootModel[Union[DirectSellerInvoice, MstcSellerInvoice, GemSellerInvoice]]):
    root: Union[DirectSellerInvoice, MstcSellerInvoice, GemSellerInvoice] = Field(discriminator="seller_type")
