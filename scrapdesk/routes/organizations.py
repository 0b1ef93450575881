import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth.security import get_current_user, require_roles
from ..db import get_db
from ..models.enums import Role
from ..models.models import User
from ..schemas.organizations import OrganizationCreate, OrganizationUpdate, OrganizationOut
from ..services import organizations as svc


router = APIRouter(prefix="/organizations", tags=["organizations"])


def _out(org) -> dict:
    return OrganizationOut.model_validate(org).model_dump(mode="json")


@router.post("", status_code=201, response_model=OrganizationOut)
def create_organization(
    payload: OrganizationCreate,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(Role.SUPER_ADMIN)),
):
    return svc.create_organization(db, payload.name, payload.is_active)


@router.get("")
def list_organizations(
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    is_active: Optional[bool] = None,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(Role.SUPER_ADMIN)),
):
    result = svc.list_organizations(db, page, limit, is_active)
    if isinstance(result, dict):
        result["items"] = [_out(o) for o in result["items"]]
        return result
    return [_out(o) for o in result]


@router.get("/{organization_id}", response_model=OrganizationOut)
def get_organization(
    organization_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return svc.get_organization(db, organization_id, user)


@router.patch("/{organization_id}", response_model=OrganizationOut)
def update_organization(
    organization_id: uuid.UUID,
    payload: OrganizationUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(Role.SUPER_ADMIN)),
):
    return svc.update_organization(db, organization_id, payload.model_dump(exclude_unset=True))


@router.delete("/{organization_id}")
def delete_organization(
    organization_id: uuid.UUID,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(Role.SUPER_ADMIN)),
):
    svc.delete_organization(db, organization_id)
    return {"message": "Organization deleted successfully"}
