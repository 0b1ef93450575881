import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_roles
from ..db import get_db
from ..models.enums import Role, AuditAction, AuditStatus
from ..models.models import User
from ..schemas.audit import AuditLogCreate, AuditLogOut
from ..services import audit as svc
from ..services.request_meta import extract_metadata


router = APIRouter(prefix="/audit-logs", tags=["audit-logs"])


def _filters(
    action: Optional[AuditAction] = None,
    resource: Optional[str] = None,
    status: Optional[AuditStatus] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> dict:
    return {
        "action": action.value if action else None,
        "resource": resource,
        "status": status.value if status else None,
        "start_date": start_date,
        "end_date": end_date,
    }


def _page(result: dict) -> dict:
    result["items"] = [AuditLogOut.model_validate(r).model_dump(mode="json") for r in result["items"]]
    return result


@router.post("", response_model=AuditLogOut, status_code=201)
def create_audit_log(
    payload: AuditLogCreate,
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    meta = extract_metadata(request.headers, request.client.host if request.client else None)
    return svc.record_entry(db, payload, user, meta)


@router.get("")
def list_audit_logs(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    filters: dict = Depends(_filters),
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(Role.SUPER_ADMIN)),
):
    return _page(svc.find_all_for_super_admin(db, page, limit, **filters))


@router.get("/staff")
def list_staff_audit_logs(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    filters: dict = Depends(_filters),
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(Role.ADMIN)),
):
    return _page(svc.find_all_for_admin(db, user, page, limit, **filters))


@router.get("/{log_id}", response_model=AuditLogOut)
def get_audit_log(
    log_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(Role.SUPER_ADMIN, Role.ADMIN)),
):
    return svc.find_by_id(db, log_id, user)
