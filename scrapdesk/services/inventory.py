"""
Dismantled-parts ledger.

Each vehicle is dismantled once; its parts are recorded as one batch. For
every line ``available_quantity = opening_stock + quantity_received -
quantity_issued`` and the status are derived on write, never taken from
input.
"""
import uuid
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import utcnow
from ..models.enums import Condition, InventoryStatus, VehicleStatus
from ..models.models import InventoryBatch, InventoryItem, User
from .compliance import has_generated_cod_for_vehicle
from .errors import service_errors, bad_request, not_found
from .invoices import require_actor_org, get_invoice_for_org, get_vehicle_for_org
from .pagination import paginate
from .security import sanitize_object


UNPAGINATED_CAP = 100

_COUNTERS = (
    ("opening_stock", "Opening stock"),
    ("quantity_received", "Quantity received"),
    ("quantity_issued", "Quantity issued"),
)


def calculate_available(opening_stock: int, quantity_received: int, quantity_issued: int) -> int:
    return opening_stock + quantity_received - quantity_issued


def calculate_status(condition: str, available_quantity: int, quantity_issued: int) -> str:
    if condition == Condition.DAMAGED.value:
        return InventoryStatus.DAMAGE_ONLY.value
    if available_quantity <= 0:
        return InventoryStatus.SOLD_OUT.value
    if quantity_issued > 0:
        return InventoryStatus.PARTIAL_SOLD.value
    return InventoryStatus.AVAILABLE.value


def _ensure_number(value, label: str, part_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise bad_request(f"{label} must be a number for part {part_name}")
    if value < 0:
        raise bad_request(f"{label} cannot be negative for part {part_name}")
    return value


def _ledger(part_name: str, condition: str, opening: int, received: int, issued: int):
    """Validate one line's counters; returns (available_quantity, status)."""
    opening = _ensure_number(opening, "Opening stock", part_name)
    received = _ensure_number(received, "Quantity received", part_name)
    issued = _ensure_number(issued, "Quantity issued", part_name)
    if issued > opening + received:
        raise bad_request(f"Quantity issued exceeds available for part {part_name}")
    if condition == Condition.DAMAGED.value and issued > 0:
        raise bad_request(f"Damaged part cannot be issued: {part_name}")
    available = calculate_available(opening, received, issued)
    return available, calculate_status(condition, available, issued)


def _normalize_documents(documents: Optional[list], actor: User) -> list:
    out = []
    for doc in documents or []:
        uploaded_at = doc.get("uploaded_at") or utcnow()
        out.append({
            "url": doc["url"],
            "storage_key": doc["storage_key"],
            "provider": doc["provider"],
            "file_name": doc["file_name"],
            "mime_type": doc["mime_type"],
            "size": doc["size"],
            "uploaded_by": str(doc.get("uploaded_by") or actor.id),
            "uploaded_at": uploaded_at.isoformat() if isinstance(uploaded_at, datetime) else str(uploaded_at),
        })
    return out


def _value(v):
    return v.value if hasattr(v, "value") else v


@service_errors("Failed to create inventory")
def create_batch(db: Session, payload, actor: User) -> List[InventoryItem]:
    org_id = require_actor_org(db, actor)
    data = sanitize_object(payload.model_dump())
    if not data.get("parts"):
        raise bad_request("At least one part is required")

    invoice = get_invoice_for_org(db, data["invoice_id"], org_id)
    vehicle = get_vehicle_for_org(db, data["vehicle_id"], org_id)
    if vehicle.invoice_id != invoice.id:
        raise bad_request("Vehicle does not belong to invoice")
    if db.query(InventoryBatch.id).filter(InventoryBatch.vehicle_id == vehicle.id).first():
        raise bad_request("Dismantling already completed")

    batch = InventoryBatch(invoice_id=invoice.id, vehicle_id=vehicle.id, organization_id=org_id, created_by=actor.id)
    db.add(batch)
    items = []
    for part in data["parts"]:
        name = part["part_name"]
        if not name:
            raise bad_request("Part name is required")
        condition = _value(part["condition"])
        available, status = _ledger(
            name, condition, part["opening_stock"], part.get("quantity_received") or 0, part.get("quantity_issued") or 0
        )
        if part.get("unit_price") is not None and part["unit_price"] < 0:
            raise bad_request(f"Unit price cannot be negative for part {name}")
        items.append(
            InventoryItem(
                batch=batch,
                invoice_id=invoice.id,
                vehicle_id=vehicle.id,
                organization_id=org_id,
                purchase_invoice_number=invoice.invoice_number,
                vehicle_model=vehicle.model or "UNKNOWN",
                part_name=name,
                part_type=_value(part["part_type"]),
                opening_stock=part["opening_stock"],
                quantity_received=part.get("quantity_received") or 0,
                quantity_issued=part.get("quantity_issued") or 0,
                available_quantity=available,
                unit_price=part.get("unit_price"),
                condition=condition,
                status=status,
                documents=_normalize_documents(part.get("documents"), actor),
                created_by=actor.id,
            )
        )
    db.add_all(items)
    # Recording the parts completes dismantling
    vehicle.vehicle_status = VehicleStatus.DISMANTLED.value
    vehicle.updated_by = actor.id
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise bad_request("Dismantling already completed")
    for item in items:
        db.refresh(item)
    return items


def get_item_for_org(db: Session, item_id: uuid.UUID, organization_id: uuid.UUID) -> InventoryItem:
    item = (
        db.query(InventoryItem)
        .filter(InventoryItem.id == item_id, InventoryItem.organization_id == organization_id)
        .first()
    )
    if not item:
        raise not_found("Inventory not found")
    return item


def find_all(
    db: Session,
    actor: User,
    invoice_id: Optional[uuid.UUID] = None,
    vehicle_id: Optional[uuid.UUID] = None,
    status: Optional[str] = None,
    condition: Optional[str] = None,
    page: Optional[int] = None,
    limit: Optional[int] = None,
) -> Union[dict, list]:
    """Paginated when both page and limit are given, else the first 100 rows."""
    org_id = require_actor_org(db, actor)
    q = db.query(InventoryItem).filter(InventoryItem.organization_id == org_id)
    if invoice_id:
        q = q.filter(InventoryItem.invoice_id == invoice_id)
    if vehicle_id:
        q = q.filter(InventoryItem.vehicle_id == vehicle_id)
    if status:
        q = q.filter(InventoryItem.status == status)
    if condition:
        q = q.filter(InventoryItem.condition == condition)
    q = q.order_by(InventoryItem.created_at.desc(), InventoryItem.part_name)
    if page is not None and limit is not None:
        return paginate(q, page, limit)
    return q.limit(UNPAGINATED_CAP).all()


def find_one(db: Session, item_id: uuid.UUID, actor: User) -> InventoryItem:
    return get_item_for_org(db, item_id, require_actor_org(db, actor))


@service_errors("Failed to update inventory")
def update(db: Session, item_id: uuid.UUID, payload, actor: User) -> InventoryItem:
    org_id = require_actor_org(db, actor)
    item = get_item_for_org(db, item_id, org_id)
    if has_generated_cod_for_vehicle(db, item.vehicle_id):
        raise bad_request("Inventory cannot be changed after COD is generated")

    changes = sanitize_object(payload.model_dump(exclude_unset=True))
    for key in ("part_name", "part_type", "condition", "opening_stock", "quantity_received", "quantity_issued"):
        if key in changes and changes[key] is None:
            raise bad_request(f"{key} cannot be null")

    opening = changes.get("opening_stock", item.opening_stock)
    received = changes.get("quantity_received", item.quantity_received)
    issued = changes.get("quantity_issued", item.quantity_issued)
    condition = _value(changes.get("condition", item.condition))
    part_name = changes.get("part_name") or item.part_name

    available, status = _ledger(part_name, condition, opening, received, issued)
    if "unit_price" in changes and ("quantity_issued" not in changes or issued <= item.quantity_issued):
        raise bad_request("Unit price can be updated only during sales")
    if changes.get("unit_price") is not None and changes["unit_price"] < 0:
        raise bad_request(f"Unit price cannot be negative for part {part_name}")

    item.part_name = part_name
    if "part_type" in changes:
        item.part_type = _value(changes["part_type"])
    if "unit_price" in changes:
        item.unit_price = changes["unit_price"]
    if "documents" in changes:
        item.documents = _normalize_documents(changes["documents"], actor)
    item.opening_stock = opening
    item.quantity_received = received
    item.quantity_issued = issued
    item.condition = condition
    item.available_quantity = available
    item.status = status
    item.updated_by = actor.id
    db.commit()
    db.refresh(item)
    return item


@service_errors("Failed to delete inventory")
def remove(db: Session, item_id: uuid.UUID, actor: User) -> dict:
    org_id = require_actor_org(db, actor)
    item = get_item_for_org(db, item_id, org_id)
    if has_generated_cod_for_vehicle(db, item.vehicle_id):
        raise bad_request("Inventory cannot be changed after COD is generated")
    db.delete(item)
    db.commit()
    return {"message": "Inventory deleted successfully"}
