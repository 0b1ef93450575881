import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from ..auth.security import require_roles
from ..db import get_db
from ..models.enums import Role, InvoiceStatus, SellerType, VehicleStatus, DocumentType
from ..models.models import User
from ..schemas.invoices import (
    InvoiceCreateRequest,
    InvoiceUpdate,
    InvoiceOut,
    VehicleInvoiceCreate,
    VehicleInvoiceUpdate,
    VehicleInvoiceOut,
    PurchaseDocumentOut,
)
from ..services import invoices as svc
from ..services.errors import bad_request
from ..storage.factory import get_storage
from ..storage.provider import StorageProvider


router = APIRouter(prefix="/invoice", tags=["invoice"])

org_member = require_roles(Role.ADMIN, Role.STAFF)


def _page(result: dict, schema) -> dict:
    result["items"] = [schema.model_validate(r).model_dump(mode="json") for r in result["items"]]
    return result


@router.post("", status_code=201, response_model=InvoiceOut)
def create_invoice(payload: InvoiceCreateRequest, db: Session = Depends(get_db), user: User = Depends(org_member)):
    return svc.create_invoice(db, payload.root, user)


@router.get("")
def list_invoices(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    status: Optional[InvoiceStatus] = None,
    seller_type: Optional[SellerType] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(org_member),
):
    result = svc.list_invoices(
        db, user, page, limit,
        status=status.value if status else None,
        seller_type=seller_type.value if seller_type else None,
        search=search,
    )
    return _page(result, InvoiceOut)


# Static paths are declared before /{invoice_id}
@router.post("/vechile", status_code=201, response_model=VehicleInvoiceOut)
def create_vehicle_invoice(payload: VehicleInvoiceCreate, db: Session = Depends(get_db), user: User = Depends(org_member)):
    return svc.create_vehicle_invoice(db, payload, user)


@router.get("/vechile")
def list_vehicle_invoices(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    invoice_id: Optional[uuid.UUID] = None,
    vehicle_status: Optional[VehicleStatus] = None,
    registration_number: Optional[str] = None,
    db: Session = Depends(get_db),
    user: User = Depends(org_member),
):
    result = svc.list_vehicle_invoices(
        db, user, page, limit,
        invoice_id=invoice_id,
        vehicle_status=vehicle_status.value if vehicle_status else None,
        registration_number=registration_number,
    )
    return _page(result, VehicleInvoiceOut)


@router.get("/vechile/{vehicle_id}", response_model=VehicleInvoiceOut)
def get_vehicle_invoice(vehicle_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(org_member)):
    return svc.get_vehicle_invoice(db, vehicle_id, user)


@router.patch("/vechile/{vehicle_id}", response_model=VehicleInvoiceOut)
def update_vehicle_invoice(
    vehicle_id: uuid.UUID,
    payload: VehicleInvoiceUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(org_member),
):
    return svc.update_vehicle_invoice(db, vehicle_id, payload, user)


@router.delete("/vechile/{vehicle_id}")
def delete_vehicle_invoice(vehicle_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(org_member)):
    return svc.delete_vehicle_invoice(db, vehicle_id, user)


def _single(files: Optional[List[UploadFile]], slot: str) -> Optional[UploadFile]:
    if not files:
        return None
    if len(files) > 1:
        raise bad_request(f"Only one file is allowed for {slot}")
    return files[0]


@router.post("/purchase-documents", status_code=201, response_model=List[PurchaseDocumentOut])
def upload_purchase_documents(
    invoice_id: uuid.UUID = Form(...),
    vehicle_invoice_id: Optional[uuid.UUID] = Form(None),
    rc: Optional[List[UploadFile]] = File(None),
    owner_id: Optional[List[UploadFile]] = File(None),
    other_document: Optional[List[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    user: User = Depends(org_member),
    storage: StorageProvider = Depends(get_storage),
):
    files = {
        "rc": _single(rc, "rc"),
        "owner_id": _single(owner_id, "owner_id"),
        "other_document": _single(other_document, "other_document"),
    }
    return svc.upload_purchase_documents(db, user, storage, invoice_id, files, vehicle_invoice_id=vehicle_invoice_id)


@router.get("/purchase-documents", response_model=List[PurchaseDocumentOut])
def list_purchase_documents(
    invoice_id: Optional[uuid.UUID] = None,
    vehicle_invoice_id: Optional[uuid.UUID] = None,
    document_type: Optional[DocumentType] = None,
    db: Session = Depends(get_db),
    user: User = Depends(org_member),
):
    return svc.list_purchase_documents(
        db, user, invoice_id, vehicle_invoice_id, document_type.value if document_type else None
    )


@router.get("/{invoice_id}", response_model=InvoiceOut)
def get_invoice(invoice_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(org_member)):
    return svc.get_invoice(db, invoice_id, user)


@router.patch("/{invoice_id}", response_model=InvoiceOut)
def update_invoice(
    invoice_id: uuid.UUID,
    payload: InvoiceUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(org_member),
):
    return svc.update_invoice(db, invoice_id, payload, user)


@router.delete("/{invoice_id}")
def delete_invoice(
    invoice_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(org_member),
    storage: StorageProvider = Depends(get_storage),
):
    return svc.delete_invoice(db, invoice_id, user, storage)
