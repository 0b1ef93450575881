import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth.security import require_roles
from ..db import get_db
from ..models.enums import Role, RtoStatus
from ..models.models import User
from ..schemas.compliance import VehicleCodRecordCreate, VehicleCodTrackingUpdate, VehicleCodRecordOut
from ..services import compliance as svc


router = APIRouter(prefix="/vehicle-compliance", tags=["vehicle-compliance"])

org_member = require_roles(Role.ADMIN, Role.STAFF)


@router.post("/vechile-cod", status_code=201, response_model=VehicleCodRecordOut)
def create_vehicle_cod_record(
    payload: VehicleCodRecordCreate,
    db: Session = Depends(get_db),
    user: User = Depends(org_member),
):
    return svc.create_vehicle_cod_record(db, payload, user)


@router.get("/vechile-cod")
def list_vehicle_cod_records(
    invoice_id: Optional[uuid.UUID] = None,
    vehicle_id: Optional[uuid.UUID] = None,
    cod_generated: Optional[bool] = None,
    rto_status: Optional[RtoStatus] = None,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    user: User = Depends(org_member),
):
    result = svc.get_vehicle_cod_records(
        db, user,
        invoice_id=invoice_id,
        vehicle_id=vehicle_id,
        cod_generated=cod_generated,
        rto_status=rto_status.value if rto_status else None,
        page=page,
        limit=limit,
    )
    result["items"] = [VehicleCodRecordOut.model_validate(r).model_dump(mode="json") for r in result["items"]]
    return result


@router.get("/vechile-cod/vehicle/{vehicle_id}", response_model=VehicleCodRecordOut)
def get_vehicle_cod_record_by_vehicle(vehicle_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(org_member)):
    return svc.get_vehicle_cod_record_by_vehicle_id(db, vehicle_id, user)


@router.get("/vechile-cod/{record_id}", response_model=VehicleCodRecordOut)
def get_vehicle_cod_record(record_id: uuid.UUID, db: Session = Depends(get_db), user: User = Depends(org_member)):
    return svc.get_vehicle_cod_record(db, record_id, user)


@router.patch("/vechile-cod/{record_id}/rto", response_model=VehicleCodRecordOut)
def update_vehicle_cod_tracking(
    record_id: uuid.UUID,
    payload: VehicleCodTrackingUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(org_member),
):
    return svc.update_vehicle_cod_tracking(db, record_id, payload, user)
