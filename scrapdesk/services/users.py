import uuid
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..auth.security import get_password_hash
from ..config import settings
from ..models.enums import Role
from ..models.models import User, RefreshToken
from .errors import service_errors, bad_request, conflict, forbidden, not_found
from .organizations import get_organization_or_404
from .pagination import paginate
from .security import sanitize_string, validate_password_strength


logger = structlog.get_logger(__name__)


def _ensure_email_free(db: Session, email: str, exclude_id: Optional[uuid.UUID] = None) -> None:
    q = db.query(User).filter(User.email == email)
    if exclude_id is not None:
        q = q.filter(User.id != exclude_id)
    if q.first():
        raise conflict("User with this email already exists")


def _new_user(db: Session, name: str, email: str, password: str, role: Role, organization_id: Optional[uuid.UUID]) -> User:
    email = email.strip().lower()
    validate_password_strength(password)
    _ensure_email_free(db, email)
    user = User(
        name=sanitize_string(name),
        email=email,
        password_hash=get_password_hash(password),
        role=role.value,
        organization_id=organization_id,
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise conflict("User with this email already exists")
    db.refresh(user)
    return user


def get_user_or_404(db: Session, user_id: uuid.UUID) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise not_found("User not found")
    return user


def bootstrap_super_admin(db: Session) -> Optional[User]:
    """Create the configured super admin once; no-op when it already exists."""
    email = settings.super_admin_email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        return None
    user = User(
        name=settings.super_admin_name,
        email=email,
        password_hash=get_password_hash(settings.super_admin_password),
        role=Role.SUPER_ADMIN.value,
        organization_id=None,
        is_active=True,
    )
    db.add(user)
    db.commit()
    logger.info("super_admin_bootstrapped", email=email)
    return user


@service_errors("Failed to create admin")
def create_admin(db: Session, name: str, email: str, password: str, organization_id: uuid.UUID) -> User:
    get_organization_or_404(db, organization_id)
    return _new_user(db, name, email, password, Role.ADMIN, organization_id)


@service_errors("Failed to create staff")
def create_staff(db: Session, name: str, email: str, password: str, actor: User) -> User:
    if not actor.organization_id:
        raise forbidden("Admin is not linked to an organization")
    return _new_user(db, name, email, password, Role.STAFF, actor.organization_id)


def list_admins(db: Session, organization_id: Optional[uuid.UUID] = None, page: Optional[int] = None, limit: Optional[int] = None):
    q = db.query(User).filter(User.role == Role.ADMIN.value)
    if organization_id:
        q = q.filter(User.organization_id == organization_id)
    q = q.order_by(User.created_at.desc())
    if page is None and limit is None:
        return q.all()
    return paginate(q, page, limit)


def list_staff_by_organization(
    db: Session, organization_id: uuid.UUID, actor: User, page: Optional[int] = None, limit: Optional[int] = None
):
    if actor.role == Role.ADMIN.value and actor.organization_id != organization_id:
        raise forbidden("You can only view staff of your own organization")
    get_organization_or_404(db, organization_id)
    q = (
        db.query(User)
        .filter(User.role == Role.STAFF.value, User.organization_id == organization_id)
        .order_by(User.created_at.desc())
    )
    if page is None and limit is None:
        return q.all()
    return paginate(q, page, limit)


def get_user(db: Session, user_id: uuid.UUID, actor: User) -> User:
    user = get_user_or_404(db, user_id)
    if actor.role == Role.ADMIN.value and (user.organization_id is None or user.organization_id != actor.organization_id):
        raise forbidden()
    return user


@service_errors("Failed to update user")
def update_user(db: Session, user_id: uuid.UUID, changes: dict) -> User:
    user = get_user_or_404(db, user_id)
    if changes.get("name") is not None:
        user.name = sanitize_string(changes["name"])
    if changes.get("email") is not None:
        email = changes["email"].strip().lower()
        _ensure_email_free(db, email, exclude_id=user.id)
        user.email = email
    if changes.get("is_active") is not None:
        if user.role == Role.SUPER_ADMIN.value and not changes["is_active"]:
            raise bad_request("Super admin cannot be deactivated")
        user.is_active = changes["is_active"]
        if not user.is_active:
            db.query(RefreshToken).filter(RefreshToken.user_id == user.id).delete(synchronize_session=False)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise conflict("User with this email already exists")
    db.refresh(user)
    return user


@service_errors("Failed to delete user")
def delete_user(db: Session, user_id: uuid.UUID, actor: User) -> None:
    user = get_user_or_404(db, user_id)
    if user.id == actor.id or user.role == Role.SUPER_ADMIN.value:
        raise bad_request("Super admin cannot be deleted")
    db.delete(user)
    db.commit()


@service_errors("Failed to reset password")
def reset_password(db: Session, user_id: uuid.UUID, new_password: str, actor: User) -> User:
    user = get_user_or_404(db, user_id)
    if user.role == Role.SUPER_ADMIN.value:
        raise forbidden("Super admin password cannot be reset here")
    if actor.role == Role.ADMIN.value and (
        user.role != Role.STAFF.value or user.organization_id != actor.organization_id
    ):
        raise forbidden("You can only reset passwords of your own staff")
    validate_password_strength(new_password)
    user.password_hash = get_password_hash(new_password)
    # Existing sessions end with the old password
    db.query(RefreshToken).filter(RefreshToken.user_id == user.id).delete(synchronize_session=False)
    db.commit()
    db.refresh(user)
    return user
