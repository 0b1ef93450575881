import uuid
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..models.enums import Role
from ..models.models import Organization, User, Invoice
from .errors import service_errors, bad_request, conflict, forbidden, not_found
from .pagination import paginate
from .security import sanitize_string


def get_organization_or_404(db: Session, organization_id: uuid.UUID) -> Organization:
    org = db.query(Organization).filter(Organization.id == organization_id).first()
    if not org:
        raise not_found("Organization not found")
    return org


def _ensure_name_free(db: Session, name: str, exclude_id: Optional[uuid.UUID] = None) -> None:
    q = db.query(Organization).filter(Organization.name == name)
    if exclude_id is not None:
        q = q.filter(Organization.id != exclude_id)
    if q.first():
        raise conflict("Organization with this name already exists")


@service_errors("Failed to create organization")
def create_organization(db: Session, name: str, is_active: bool = True) -> Organization:
    name = sanitize_string(name)
    if not name:
        raise bad_request("Organization name is required")
    _ensure_name_free(db, name)
    org = Organization(name=name, is_active=is_active)
    db.add(org)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise conflict("Organization with this name already exists")
    db.refresh(org)
    return org


def list_organizations(db: Session, page: Optional[int] = None, limit: Optional[int] = None, is_active: Optional[bool] = None):
    q = db.query(Organization)
    if is_active is not None:
        q = q.filter(Organization.is_active == is_active)
    q = q.order_by(Organization.created_at.desc())
    if page is None and limit is None:
        return q.all()
    return paginate(q, page, limit)


def get_organization(db: Session, organization_id: uuid.UUID, actor: User) -> Organization:
    if actor.role != Role.SUPER_ADMIN.value and actor.organization_id != organization_id:
        raise forbidden()
    return get_organization_or_404(db, organization_id)


@service_errors("Failed to update organization")
def update_organization(db: Session, organization_id: uuid.UUID, changes: dict) -> Organization:
    org = get_organization_or_404(db, organization_id)
    if changes.get("name") is not None:
        name = sanitize_string(changes["name"])
        if not name:
            raise bad_request("Organization name is required")
        _ensure_name_free(db, name, exclude_id=org.id)
        org.name = name
    if changes.get("is_active") is not None:
        org.is_active = changes["is_active"]
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise conflict("Organization with this name already exists")
    db.refresh(org)
    return org


@service_errors("Failed to delete organization")
def delete_organization(db: Session, organization_id: uuid.UUID) -> None:
    org = get_organization_or_404(db, organization_id)
    if db.query(User.id).filter(User.organization_id == org.id).first():
        raise bad_request("Organization still has users")
    if db.query(Invoice.id).filter(Invoice.organization_id == org.id).first():
        raise bad_request("Organization still has invoices")
    db.delete(org)
    db.commit()
