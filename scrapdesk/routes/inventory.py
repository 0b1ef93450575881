import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth.security import require_roles
from ..db import get_db
from ..models.enums import Role, InventoryStatus, Condition
from ..models.models import User
from ..schemas.inventory import InventoryBatchCreate, InventoryUpdate, InventoryOut
from ..services import inventory as svc


router = APIRouter(prefix="/inventory", tags=["inventory"])

org_member = require_roles(Role.ADMIN, Role.STAFF)


def _out(item) -> dict:
    return InventoryOut.model_validate(item).model_dump(mode="json")


@router.post("", status_code=201, response_model=List[InventoryOut])
def create_batch(payload: InventoryBatchCreate, db: Session = Depends(get_db), user: User = Depends(org_member)):
    return svc.create_batch(db, payload, user)


@router.get("")
def list_inventory(
    invoice_id: Optional[uuid.UUID] = None,
    vehicle_id: Optional[uuid.UUID] = None,
    status: Optional[InventoryStatus] = None,
    condition: Optional[Condition] = None,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    user: User = Depends(org_member),
):
    result = svc.find_all(
        db, user,
        invoice_id=invoice_id,
        vehicle_id=vehicle_id,
        status=status.value if status else None,
        condition=condition.value if condition else None,
        page=page,
        limit=limit,
    )
    if isinstance(result, dict):
        result["items"] = [_out(i) for i in result["items"]]
        return result
    return [_out(i) for i in result]


@router.get("/{item_id}", response_model=InventoryOut)
def get_inventory(item_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(org_member)):
    return svc.find_one(db, item_id, user)


@router.patch("/{item_id}", response_model=InventoryOut)
def update_inventory(
    item_id: uuid.UUID,
    payload: InventoryUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(org_member),
):
    return svc.update(db, item_id, payload, user)


@router.delete("/{item_id}")
def delete_inventory(
    item_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(Role.ADMIN)),
):
    return svc.remove(db, item_id, user)
