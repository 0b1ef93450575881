"""
Invoice lifecycle: purchase invoices, their single vehicle sub-invoice and
purchase documents.

An invoice is created DRAFT and becomes CONFIRMED in the same commit that
stores its vehicle. Confirmed invoices are write-protected and only ever
soft-deleted.
"""
import enum
import os
import time
import uuid
from typing import BinaryIO, Dict, Optional

import structlog
from pydantic import ValidationError
from slugify import slugify
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import utcnow
from ..models.enums import InvoiceStatus, DocumentType
from ..models.models import (
    Invoice,
    VehicleInvoice,
    PurchaseDocument,
    InventoryBatch,
    VehicleCodRecord,
    User,
)
from ..schemas.invoices import (
    invoice_adapter,
    COMMON_FIELDS,
    SELLER_FIELDS,
    VehicleInvoiceCreate,
    VehicleInvoiceUpdate,
)
from ..storage.provider import StorageProvider
from .errors import (
    service_errors,
    bad_request,
    conflict,
    forbidden,
    not_found,
    validation_message,
)
from .organizations import get_organization_or_404
from .pagination import paginate
from .security import sanitize_object


logger = structlog.get_logger(__name__)

PURCHASE_DOCUMENTS_FOLDER = "purchase-documents"

# Upload form field -> stored document type
DOCUMENT_SLOTS = {
    "rc": DocumentType.RC,
    "owner_id": DocumentType.OWNER_ID,
    "other_document": DocumentType.OTHER,
}


def _plain(value):
    return value.value if isinstance(value, enum.Enum) else value


def require_actor_org(db: Session, actor: User) -> uuid.UUID:
    if not actor.organization_id:
        raise forbidden("User is not linked to an organization")
    get_organization_or_404(db, actor.organization_id)
    return actor.organization_id


def get_invoice_for_org(db: Session, invoice_id: uuid.UUID, organization_id: uuid.UUID) -> Invoice:
    invoice = (
        db.query(Invoice)
        .filter(
            Invoice.id == invoice_id,
            Invoice.organization_id == organization_id,
            Invoice.is_deleted.is_(False),
        )
        .first()
    )
    if not invoice:
        raise not_found("Invoice not found")
    return invoice


def get_vehicle_for_org(db: Session, vehicle_id: uuid.UUID, organization_id: uuid.UUID) -> VehicleInvoice:
    vehicle = (
        db.query(VehicleInvoice)
        .filter(VehicleInvoice.id == vehicle_id, VehicleInvoice.organization_id == organization_id)
        .first()
    )
    if not vehicle:
        raise not_found("Vehicle invoice not found")
    return vehicle


def _validate_invoice(data: dict):
    try:
        return invoice_adapter.validate_python(data)
    except ValidationError as e:
        raise bad_request(validation_message(e))


def _invoice_values(model) -> dict:
    values = {k: _plain(v) for k, v in model.model_dump().items()}
    if not values.get("gst_applicable"):
        values["gst_rate"] = None
        values["gst_amount"] = None
    elif values.get("gst_amount") is None and values.get("gst_rate") is not None:
        values["gst_amount"] = round(values["purchase_amount"] * values["gst_rate"] / 100, 2)
    return values


def _ensure_invoice_number_free(db: Session, number: str, exclude_id: Optional[uuid.UUID] = None) -> None:
    q = db.query(Invoice.id).filter(Invoice.invoice_number == number)
    if exclude_id is not None:
        q = q.filter(Invoice.id != exclude_id)
    if q.first():
        raise conflict("Invoice number already exists")


def _ensure_registration_free(db: Session, number: str, exclude_id: Optional[uuid.UUID] = None) -> None:
    q = db.query(VehicleInvoice.id).filter(VehicleInvoice.registration_number == number)
    if exclude_id is not None:
        q = q.filter(VehicleInvoice.id != exclude_id)
    if q.first():
        raise conflict("Vehicle with this registration number already exists")


def _soft_delete(invoice: Invoice, actor: User) -> None:
    invoice.is_deleted = True
    invoice.deleted_at = utcnow()
    invoice.deleted_by = actor.id


@service_errors("Failed to create invoice")
def create_invoice(db: Session, payload, actor: User) -> Invoice:
    org_id = require_actor_org(db, actor)
    model = _validate_invoice(sanitize_object(payload.model_dump()))
    values = _invoice_values(model)
    number = values.pop("invoice_number", None) or f"INV-{int(time.time() * 1000)}"
    _ensure_invoice_number_free(db, number)
    invoice = Invoice(
        **values,
        invoice_number=number,
        organization_id=org_id,
        status=InvoiceStatus.DRAFT.value,
        created_by=actor.id,
        updated_by=actor.id,
    )
    db.add(invoice)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise conflict("Invoice number already exists")
    db.refresh(invoice)
    return invoice


@service_errors("Failed to create vehicle invoice")
def create_vehicle_invoice(db: Session, payload: VehicleInvoiceCreate, actor: User) -> VehicleInvoice:
    org_id = require_actor_org(db, actor)
    try:
        data = VehicleInvoiceCreate.model_validate(sanitize_object(payload.model_dump()))
    except ValidationError as e:
        raise bad_request(validation_message(e))
    invoice = get_invoice_for_org(db, data.invoice_id, org_id)
    if invoice.status == InvoiceStatus.CONFIRMED.value or invoice.vehicle is not None:
        raise bad_request("Other vehicle exist in this invoice")

    values = {k: _plain(v) for k, v in data.model_dump().items()}
    values["registration_number"] = values["registration_number"].upper()
    _ensure_registration_free(db, values["registration_number"])

    vehicle = VehicleInvoice(**values, organization_id=org_id, created_by=actor.id, updated_by=actor.id)
    db.add(vehicle)
    # Vehicle row and confirmation are committed together
    invoice.status = InvoiceStatus.CONFIRMED.value
    invoice.updated_by = actor.id
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if db.query(VehicleInvoice.id).filter(VehicleInvoice.invoice_id == data.invoice_id).first():
            raise bad_request("Other vehicle exist in this invoice")
        raise conflict("Vehicle with this registration number already exists")
    db.refresh(vehicle)
    return vehicle


@service_errors("Failed to update invoice")
def update_invoice(db: Session, invoice_id: uuid.UUID, payload, actor: User) -> Invoice:
    org_id = require_actor_org(db, actor)
    invoice = get_invoice_for_org(db, invoice_id, org_id)
    if invoice.status == InvoiceStatus.CONFIRMED.value:
        raise bad_request("Confirmed invoice cannot be updated")

    changes = sanitize_object(payload.model_dump(exclude_unset=True))
    seller_type = changes.get("seller_type") or invoice.seller_type
    merged = {f: getattr(invoice, f) for f in COMMON_FIELDS}
    merged.update({f: getattr(invoice, f) for f in SELLER_FIELDS[seller_type]})
    merged["seller_type"] = seller_type
    merged.update(changes)
    merged = {k: v for k, v in merged.items() if v is not None or k in COMMON_FIELDS}
    if {"purchase_amount", "gst_rate", "gst_applicable"} & changes.keys() and "gst_amount" not in changes:
        merged["gst_amount"] = None

    values = _invoice_values(_validate_invoice(merged))
    number = values.pop("invoice_number", None) or invoice.invoice_number
    if number != invoice.invoice_number:
        _ensure_invoice_number_free(db, number, exclude_id=invoice.id)

    for fields in SELLER_FIELDS.values():
        for f in fields:
            setattr(invoice, f, None)
    for key, value in values.items():
        setattr(invoice, key, value)
    invoice.invoice_number = number
    invoice.updated_by = actor.id
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise conflict("Invoice number already exists")
    db.refresh(invoice)
    return invoice


@service_errors("Failed to update vehicle invoice")
def update_vehicle_invoice(db: Session, vehicle_id: uuid.UUID, payload: VehicleInvoiceUpdate, actor: User) -> VehicleInvoice:
    org_id = require_actor_org(db, actor)
    vehicle = get_vehicle_for_org(db, vehicle_id, org_id)
    invoice = vehicle.invoice
    if invoice is None or invoice.is_deleted:
        raise not_found("Invoice not found")
    if invoice.status == InvoiceStatus.CONFIRMED.value:
        raise bad_request("Vehicle invoice cannot be updated once the invoice is confirmed")

    changes = sanitize_object(payload.model_dump(exclude_unset=True, exclude_none=True))
    if "registration_number" in changes:
        changes["registration_number"] = changes["registration_number"].upper()
        _ensure_registration_free(db, changes["registration_number"], exclude_id=vehicle.id)
    for key, value in changes.items():
        setattr(vehicle, key, _plain(value))
    vehicle.updated_by = actor.id
    db.commit()
    db.refresh(vehicle)
    return vehicle


def purchase_documents_folder(org_id, invoice_id=None) -> str:
    folder = f"{PURCHASE_DOCUMENTS_FOLDER}/{org_id}"
    return f"{folder}/{invoice_id}" if invoice_id is not None else folder


def discard_stored_files(storage: Optional[StorageProvider], keys) -> None:
    """Best-effort removal of stored objects whose rows are gone or were never written."""
    if storage is None:
        return
    for key in keys:
        try:
            storage.delete(key)
        except Exception:
            logger.warning("storage_delete_failed", provider=storage.name, storage_key=key, exc_info=True)


@service_errors("Failed to delete invoice")
def delete_invoice(db: Session, invoice_id: uuid.UUID, actor: User, storage: Optional[StorageProvider] = None) -> dict:
    org_id = require_actor_org(db, actor)
    invoice = get_invoice_for_org(db, invoice_id, org_id)
    if invoice.status == InvoiceStatus.CONFIRMED.value:
        _soft_delete(invoice, actor)
        db.commit()
        return {"id": str(invoice.id), "deleted": "soft"}
    docs = db.query(PurchaseDocument).filter(PurchaseDocument.invoice_id == invoice.id)
    keys = [d.storage_key for d in docs if storage is not None and d.provider == storage.name]
    docs.delete(synchronize_session=False)
    db.delete(invoice)
    db.commit()
    # Files go only after the rows are gone
    discard_stored_files(storage, keys)
    return {"id": str(invoice_id), "deleted": "hard"}


@service_errors("Failed to delete vehicle invoice")
def delete_vehicle_invoice(db: Session, vehicle_id: uuid.UUID, actor: User) -> dict:
    org_id = require_actor_org(db, actor)
    vehicle = get_vehicle_for_org(db, vehicle_id, org_id)
    if db.query(InventoryBatch.id).filter(InventoryBatch.vehicle_id == vehicle.id).first():
        raise bad_request("Vehicle has inventory records and cannot be deleted")
    if db.query(VehicleCodRecord.id).filter(VehicleCodRecord.vehicle_id == vehicle.id).first():
        raise bad_request("Vehicle has a COD record and cannot be deleted")
    invoice = vehicle.invoice
    db.query(PurchaseDocument).filter(PurchaseDocument.vehicle_invoice_id == vehicle.id).update(
        {PurchaseDocument.vehicle_invoice_id: None}, synchronize_session=False
    )
    db.delete(vehicle)
    # Parent invoice is archived in the same commit
    if invoice is not None and not invoice.is_deleted:
        _soft_delete(invoice, actor)
    db.commit()
    return {"id": str(vehicle_id), "deleted": "hard", "invoice_id": str(invoice.id) if invoice else None}


def get_invoice(db: Session, invoice_id: uuid.UUID, actor: User) -> Invoice:
    return get_invoice_for_org(db, invoice_id, require_actor_org(db, actor))


def get_vehicle_invoice(db: Session, vehicle_id: uuid.UUID, actor: User) -> VehicleInvoice:
    return get_vehicle_for_org(db, vehicle_id, require_actor_org(db, actor))


def list_invoices(
    db: Session,
    actor: User,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    status: Optional[str] = None,
    seller_type: Optional[str] = None,
    search: Optional[str] = None,
) -> dict:
    org_id = require_actor_org(db, actor)
    q = db.query(Invoice).filter(Invoice.organization_id == org_id, Invoice.is_deleted.is_(False))
    if status:
        q = q.filter(Invoice.status == status)
    if seller_type:
        q = q.filter(Invoice.seller_type == seller_type)
    if search:
        like = f"%{search}%"
        q = q.filter(Invoice.invoice_number.ilike(like) | Invoice.seller_name.ilike(like))
    return paginate(q.order_by(Invoice.created_at.desc()), page, limit)


def list_vehicle_invoices(
    db: Session,
    actor: User,
    page: Optional[int] = None,
    limit: Optional[int] = None,
    invoice_id: Optional[uuid.UUID] = None,
    vehicle_status: Optional[str] = None,
    registration_number: Optional[str] = None,
) -> dict:
    org_id = require_actor_org(db, actor)
    q = db.query(VehicleInvoice).filter(VehicleInvoice.organization_id == org_id)
    if invoice_id:
        q = q.filter(VehicleInvoice.invoice_id == invoice_id)
    if vehicle_status:
        q = q.filter(VehicleInvoice.vehicle_status == vehicle_status)
    if registration_number:
        q = q.filter(VehicleInvoice.registration_number == registration_number.strip().upper())
    return paginate(q.order_by(VehicleInvoice.created_at.desc()), page, limit)


def _safe_file_name(file_name: Optional[str], fallback: str) -> str:
    stem, ext = os.path.splitext(os.path.basename(file_name or ""))
    stem = slugify(stem, lowercase=True, max_length=80) or fallback
    ext = slugify(ext, lowercase=True, separator="")
    return f"{stem}.{ext}" if ext else stem


def _stream_size(stream: BinaryIO) -> int:
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


@service_errors("Failed to upload purchase documents")
def upload_purchase_documents(
    db: Session,
    actor: User,
    storage: StorageProvider,
    invoice_id: uuid.UUID,
    files: Dict[str, object],
    vehicle_invoice_id: Optional[uuid.UUID] = None,
) -> list:
    """Store up to one file per slot and record one PurchaseDocument each.

    ``files`` maps a slot in DOCUMENT_SLOTS to an UploadFile-like object
    (``filename``, ``content_type``, ``file``) or None.
    """
    org_id = require_actor_org(db, actor)
    invoice = get_invoice_for_org(db, invoice_id, org_id)
    if vehicle_invoice_id is not None:
        vehicle = get_vehicle_for_org(db, vehicle_invoice_id, org_id)
        if vehicle.invoice_id != invoice.id:
            raise bad_request("Vehicle does not belong to invoice")

    provided = [(slot, f) for slot, f in files.items() if f is not None and slot in DOCUMENT_SLOTS]
    if not provided:
        raise bad_request("At least one document is required")

    folder = purchase_documents_folder(org_id, invoice.id)
    rows = []
    stored_keys = []
    try:
        for slot, upload in provided:
            doc_type = DOCUMENT_SLOTS[slot]
            size = _stream_size(upload.file)
            key = f"{folder}/{doc_type.value}-{uuid.uuid4().hex[:12]}-{_safe_file_name(upload.filename, slot)}"
            stored = storage.upload(upload.file, key, upload.content_type)
            stored_keys.append(stored["storage_key"])
            rows.append(
                PurchaseDocument(
                    invoice_id=invoice.id,
                    vehicle_invoice_id=vehicle_invoice_id,
                    organization_id=org_id,
                    uploaded_by=actor.id,
                    document_type=doc_type.value,
                    file_name=os.path.basename(upload.filename or slot),
                    mime_type=upload.content_type,
                    size=size,
                    url=stored["url"],
                    storage_key=stored["storage_key"],
                    provider=stored["provider"],
                )
            )
        db.add_all(rows)
        db.commit()
    except Exception:
        db.rollback()
        discard_stored_files(storage, stored_keys)
        raise
    for row in rows:
        db.refresh(row)
    return rows


def list_purchase_documents(
    db: Session,
    actor: User,
    invoice_id: Optional[uuid.UUID] = None,
    vehicle_invoice_id: Optional[uuid.UUID] = None,
    document_type: Optional[str] = None,
) -> list:
    org_id = require_actor_org(db, actor)
    q = db.query(PurchaseDocument).filter(PurchaseDocument.organization_id == org_id)
    if invoice_id:
        q = q.filter(PurchaseDocument.invoice_id == invoice_id)
    if vehicle_invoice_id:
        q = q.filter(PurchaseDocument.vehicle_invoice_id == vehicle_invoice_id)
    if document_type:
        q = q.filter(PurchaseDocument.document_type == document_type)
    return q.order_by(PurchaseDocument.created_at.desc()).all()
