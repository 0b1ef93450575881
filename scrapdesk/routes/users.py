import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth.security import require_roles
from ..db import get_db
from ..models.enums import Role
from ..models.models import User
from ..schemas.users import AdminCreate, StaffCreate, UserUpdate, PasswordReset, UserOut
from ..services import users as svc


router = APIRouter(prefix="/users", tags=["users"])


def _out(user) -> dict:
    return UserOut.model_validate(user).model_dump(mode="json")


def _page_or_list(result):
    if isinstance(result, dict):
        result["items"] = [_out(u) for u in result["items"]]
        return result
    return [_out(u) for u in result]


@router.post("", status_code=201, response_model=UserOut)
def create_admin(
    payload: AdminCreate,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(Role.SUPER_ADMIN)),
):
    return svc.create_admin(db, payload.name, payload.email, payload.password, payload.organization_id)


@router.post("/create-staff", status_code=201, response_model=UserOut)
def create_staff(
    payload: StaffCreate,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(Role.ADMIN)),
):
    return svc.create_staff(db, payload.name, payload.email, payload.password, user)


@router.get("")
def list_admins(
    organization_id: Optional[uuid.UUID] = None,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(Role.SUPER_ADMIN)),
):
    return _page_or_list(svc.list_admins(db, organization_id, page, limit))


@router.get("/organization/{organization_id}/staff")
def list_staff_by_organization(
    organization_id: uuid.UUID,
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(Role.SUPER_ADMIN, Role.ADMIN)),
):
    return _page_or_list(svc.list_staff_by_organization(db, organization_id, user, page, limit))


@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(Role.SUPER_ADMIN, Role.ADMIN)),
):
    return svc.get_user(db, user_id, user)


@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: uuid.UUID,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    _: User = Depends(require_roles(Role.SUPER_ADMIN)),
):
    return svc.update_user(db, user_id, payload.model_dump(exclude_unset=True))


@router.delete("/{user_id}")
def delete_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(Role.SUPER_ADMIN)),
):
    svc.delete_user(db, user_id, user)
    return {"message": "User deleted successfully"}


@router.post("/{user_id}/reset-password")
def reset_password(
    user_id: uuid.UUID,
    payload: PasswordReset,
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(Role.SUPER_ADMIN, Role.ADMIN)),
):
    svc.reset_password(db, user_id, payload.new_password, user)
    return {"message": "Password reset successfully"}
