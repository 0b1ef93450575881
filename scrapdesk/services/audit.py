"""
Audit trail service.

Every request is recorded once with a redacted payload and a role-based
retention window. Rows past ``expire_at`` are hidden from reads and removed
by ``delete_expired``.
"""
import re
import uuid
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..db import utcnow
from ..models.enums import AuditAction, AuditStatus, Role
from ..models.models import AuditLog, User
from ..schemas.audit import AuditLogCreate
from .errors import service_errors, forbidden, not_found
from .pagination import paginate


RETENTION_DAYS = {
    Role.SUPER_ADMIN.value: 30,
    Role.ADMIN.value: 30,
    Role.STAFF.value: 15,
    Role.SYSTEM.value: 7,
}

SENSITIVE_TERMS = ("password", "refreshtoken", "accesstoken", "token", "authorization", "secret", "otp", "pin")
REDACTED = "[REDACTED]"
OMITTED = "[omitted]"

_ID = r"[^/]+"
# First match wins
ACTION_RULES = [
    ("POST", re.compile(r"^/auth/logout$"), AuditAction.LOGOUT),
    ("POST", re.compile(r"^/auth/refresh$"), AuditAction.REFRESH_TOKEN),
    ("POST", re.compile(r"^/users/create-staff$"), AuditAction.CREATE_STAFF),
    ("POST", re.compile(rf"^/users/{_ID}/reset-password$"), AuditAction.RESET_PASSWORD),
    ("POST", re.compile(r"^/users$"), AuditAction.CREATE_ADMIN),
    ("PATCH", re.compile(rf"^/users/{_ID}$"), AuditAction.UPDATE_USER),
    ("DELETE", re.compile(rf"^/users/{_ID}$"), AuditAction.DELETE_USER),
    ("POST", re.compile(r"^/organizations$"), AuditAction.CREATE_ORGANIZATION),
    ("POST", re.compile(r"^/invoice/purchase-documents$"), AuditAction.UPLOAD_PURCHASE_DOCUMENT),
    ("POST", re.compile(r"^/invoice/vechile$"), AuditAction.CREATE_VEHICLE_INVOICE),
    ("PATCH", re.compile(rf"^/invoice/vechile/{_ID}$"), AuditAction.UPDATE_VEHICLE_INVOICE),
    ("DELETE", re.compile(rf"^/invoice/vechile/{_ID}$"), AuditAction.DELETE_VEHICLE_INVOICE),
    ("POST", re.compile(r"^/invoice$"), AuditAction.CREATE_INVOICE),
    ("PATCH", re.compile(rf"^/invoice/{_ID}$"), AuditAction.UPDATE_INVOICE),
    ("DELETE", re.compile(rf"^/invoice/{_ID}$"), AuditAction.DELETE_INVOICE),
]

_UUID_SEGMENT = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")


def retention_days(role: Optional[str]) -> int:
    return RETENTION_DAYS.get(role or Role.SYSTEM.value, RETENTION_DAYS[Role.SYSTEM.value])


def classify_action(method: str, path: str, status_code: int) -> AuditAction:
    method = method.upper()
    path = path.rstrip("/") or "/"
    if method == "POST" and path == "/auth/login":
        return AuditAction.LOGIN_SUCCESS if status_code < 400 else AuditAction.LOGIN_FAILED
    for rule_method, pattern, action in ACTION_RULES:
        if rule_method == method and pattern.match(path):
            return action
    return AuditAction.API_CALL


def extract_resource_id(path: str) -> Optional[str]:
    for segment in reversed(path.strip("/").split("/")):
        if _UUID_SEGMENT.match(segment):
            return segment.lower()
    return None


def _is_sensitive(key: Any) -> bool:
    lowered = str(key).lower()
    return any(term in lowered for term in SENSITIVE_TERMS)


def redact(value: Any) -> Any:
    """Replace values of sensitive keys, recursively through dicts and lists."""
    if isinstance(value, dict):
        return {k: (REDACTED if _is_sensitive(k) else redact(v)) for k, v in value.items()}
    if isinstance(value, list):
        return [redact(v) for v in value]
    return value


def build_payload(params: Optional[dict], query: Optional[dict], body: Any, multipart: bool = False) -> dict:
    return {
        "params": redact(params or {}),
        "query": redact(query or {}),
        "body": OMITTED if multipart else redact(body),
    }


def create_audit_log(
    db: Session,
    action: str,
    resource: str,
    status: str,
    actor_id: Optional[uuid.UUID] = None,
    actor_role: Optional[str] = None,
    organization_id: Optional[uuid.UUID] = None,
    resource_id: Optional[str] = None,
    error_message: Optional[str] = None,
    meta: Optional[dict] = None,
    payload: Optional[dict] = None,
) -> AuditLog:
    """Persist one audit entry; expiry is fixed now from the actor's role."""
    now = utcnow()
    role = actor_role or Role.SYSTEM.value
    meta = meta or {}
    log = AuditLog(
        actor_id=actor_id,
        actor_role=role,
        organization_id=organization_id,
        action=action.value if isinstance(action, AuditAction) else action,
        resource=resource[:512],
        resource_id=resource_id,
        status=status.value if isinstance(status, AuditStatus) else status,
        error_message=error_message,
        ip=meta.get("ip"),
        user_agent=meta.get("user_agent"),
        browser=meta.get("browser"),
        os=meta.get("os"),
        device=meta.get("device"),
        payload=payload,
        created_at=now,
        expire_at=now + timedelta(days=retention_days(role)),
    )
    db.add(log)
    db.commit()
    db.refresh(log)
    return log


def _live(db: Session):
    return db.query(AuditLog).filter(AuditLog.expire_at > utcnow())


def _apply_filters(q, action=None, resource=None, status=None, start_date=None, end_date=None):
    if action:
        q = q.filter(AuditLog.action == action)
    if resource:
        q = q.filter(AuditLog.resource.ilike(f"%{resource}%"))
    if status:
        q = q.filter(AuditLog.status == status)
    if start_date:
        q = q.filter(AuditLog.created_at >= _naive(start_date))
    if end_date:
        q = q.filter(AuditLog.created_at <= _naive(end_date))
    return q


def _naive(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return (value - value.utcoffset()).replace(tzinfo=None)
    return value


def find_all_for_super_admin(db: Session, page: Optional[int] = None, limit: Optional[int] = None, **filters) -> dict:
    q = _apply_filters(_live(db), **filters)
    return paginate(q.order_by(AuditLog.created_at.desc()), page, limit)


def find_all_for_admin(db: Session, actor: User, page: Optional[int] = None, limit: Optional[int] = None, **filters) -> dict:
    """STAFF-authored entries of the admin's own organization."""
    if not actor.organization_id:
        raise forbidden("Admin is not linked to an organization")
    q = _live(db).filter(
        AuditLog.organization_id == actor.organization_id,
        AuditLog.actor_role == Role.STAFF.value,
    )
    q = _apply_filters(q, **filters)
    return paginate(q.order_by(AuditLog.created_at.desc()), page, limit)


def find_by_id(db: Session, log_id: uuid.UUID, actor: User) -> AuditLog:
    log = _live(db).filter(AuditLog.id == log_id).first()
    if not log:
        raise not_found("Audit log not found")
    if actor.role == Role.SUPER_ADMIN.value:
        return log
    if actor.role == Role.ADMIN.value:
        if log.actor_role == Role.STAFF.value and actor.organization_id and log.organization_id == actor.organization_id:
            return log
        raise forbidden("You can only view audit logs of staff in your organization")
    raise forbidden()


def delete_expired(db: Session) -> int:
    deleted = db.query(AuditLog).filter(AuditLog.expire_at <= utcnow()).delete(synchronize_session=False)
    db.commit()
    return deleted


@service_errors("Failed to create audit log")
def record_entry(db: Session, data: AuditLogCreate, actor: User, meta: Optional[dict] = None) -> AuditLog:
    """Client-reported entry; the caller's own role decides its retention."""
    return create_audit_log(
        db,
        action=data.action,
        resource=data.resource,
        status=data.status,
        actor_id=actor.id,
        actor_role=actor.role,
        organization_id=actor.organization_id,
        resource_id=data.resource_id,
        error_message=data.error_message,
        meta=meta,
        payload=redact(data.payload) if data.payload is not None else None,
    )
