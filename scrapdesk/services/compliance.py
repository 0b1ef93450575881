"""Certificate of Destruction (COD) records, one per vehicle, and RTO tracking."""
import uuid
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.enums import VehicleStatus
from ..models.models import VehicleCodRecord, User
from .errors import service_errors, bad_request, not_found
from .invoices import require_actor_org, get_invoice_for_org, get_vehicle_for_org
from .pagination import paginate
from .security import sanitize_object


def has_generated_cod_for_vehicle(db: Session, vehicle_id: uuid.UUID) -> bool:
    return (
        db.query(VehicleCodRecord.id)
        .filter(VehicleCodRecord.vehicle_id == vehicle_id, VehicleCodRecord.cod_generated.is_(True))
        .first()
        is not None
    )


@service_errors("Failed to create vehicle COD record")
def create_vehicle_cod_record(db: Session, payload, actor: User) -> VehicleCodRecord:
    org_id = require_actor_org(db, actor)
    data = sanitize_object(payload.model_dump())

    invoice = get_invoice_for_org(db, data["invoice_id"], org_id)
    vehicle = get_vehicle_for_org(db, data["vehicle_id"], org_id)
    if vehicle.invoice_id != invoice.id:
        raise bad_request("Vehicle does not belong to invoice")
    if db.query(VehicleCodRecord.id).filter(VehicleCodRecord.vehicle_id == vehicle.id).first():
        raise bad_request("COD already exists for this vehicle")

    inward = data.get("cod_inward_number") or None
    issue_date = data.get("cod_issue_date")
    if data["cod_generated"]:
        if vehicle.vehicle_status != VehicleStatus.DISMANTLED.value:
            raise bad_request("COD can be generated only after vehicle is DISMANTLED")
        if not inward or issue_date is None:
            raise bad_request("COD inward number and issue date are required when COD is generated")
    elif inward or issue_date is not None:
        raise bad_request("COD inward number and issue date are allowed only when COD is generated")

    record = VehicleCodRecord(
        organization_id=org_id,
        vehicle_id=vehicle.id,
        invoice_id=invoice.id,
        cod_generated=data["cod_generated"],
        cod_inward_number=inward,
        cod_issue_date=issue_date,
        rto_office=data.get("rto_office") or None,
        rto_status=data.get("rto_status"),
        remarks=data.get("remarks") or None,
        cod_document_url=data.get("cod_document_url") or None,
        created_by=actor.id,
        updated_by=actor.id,
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise bad_request("COD already exists for this vehicle")
    db.refresh(record)
    return record


def _get_record_for_org(db: Session, record_id: uuid.UUID, organization_id: uuid.UUID) -> VehicleCodRecord:
    record = (
        db.query(VehicleCodRecord)
        .filter(VehicleCodRecord.id == record_id, VehicleCodRecord.organization_id == organization_id)
        .first()
    )
    if not record:
        raise not_found("Vehicle COD record not found")
    return record


@service_errors("Failed to update vehicle COD tracking")
def update_vehicle_cod_tracking(db: Session, record_id: uuid.UUID, payload, actor: User) -> VehicleCodRecord:
    """Patch RTO/document tracking fields; the COD gating fields are fixed at creation."""
    org_id = require_actor_org(db, actor)
    record = _get_record_for_org(db, record_id, org_id)
    changes = sanitize_object(payload.model_dump(exclude_unset=True))
    if "rto_status" in changes and changes["rto_status"] is None:
        raise bad_request("rto_status cannot be null")
    for key, value in changes.items():
        setattr(record, key, value)
    record.updated_by = actor.id
    db.commit()
    db.refresh(record)
    return record


def get_vehicle_cod_record(db: Session, record_id: uuid.UUID, actor: User) -> VehicleCodRecord:
    return _get_record_for_org(db, record_id, require_actor_org(db, actor))


def get_vehicle_cod_record_by_vehicle_id(db: Session, vehicle_id: uuid.UUID, actor: User) -> VehicleCodRecord:
    org_id = require_actor_org(db, actor)
    record = (
        db.query(VehicleCodRecord)
        .filter(VehicleCodRecord.vehicle_id == vehicle_id, VehicleCodRecord.organization_id == org_id)
        .first()
    )
    if not record:
        raise not_found("Vehicle COD record not found")
    return record


def get_vehicle_cod_records(
    db: Session,
    actor: User,
    invoice_id: Optional[uuid.UUID] = None,
    vehicle_id: Optional[uuid.UUID] = None,
    cod_generated: Optional[bool] = None,
    rto_status: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> dict:
    org_id = require_actor_org(db, actor)
    q = db.query(VehicleCodRecord).filter(VehicleCodRecord.organization_id == org_id)
    if invoice_id:
        q = q.filter(VehicleCodRecord.invoice_id == invoice_id)
    if vehicle_id:
        q = q.filter(VehicleCodRecord.vehicle_id == vehicle_id)
    if cod_generated is not None:
        q = q.filter(VehicleCodRecord.cod_generated.is_(cod_generated))
    if rto_status:
        q = q.filter(VehicleCodRecord.rto_status == rto_status)
    return paginate(q.order_by(VehicleCodRecord.created_at.desc()), page, limit)
