import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from passlib.context import CryptContext
import bcrypt
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db, utcnow
from ..models.enums import Role
from ..models.models import User, RefreshToken


pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
http_bearer = HTTPBearer(auto_error=False)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    # Legacy bcrypt ($2a$/$2b$/$2y$) hashes are checked with the bcrypt module directly
    if hashed.startswith("$2a$") or hashed.startswith("$2b$") or hashed.startswith("$2y$"):
        pb = plain.encode("utf-8")[:72]
        try:
            return bcrypt.checkpw(pb, hashed.encode("utf-8"))
        except ValueError:
            return False
    try:
        return pwd_context.verify(plain, hashed)
    except (ValueError, TypeError):
        return False


def token_claims(user: User) -> dict:
    return {
        "email": user.email,
        "role": user.role,
        "org_id": str(user.organization_id) if user.organization_id else None,
        "name": user.name,
    }


def _create_token(sub: str, ttl_seconds: int, secret: str, extra: Optional[dict] = None) -> str:
    now = datetime.now(tz=timezone.utc)
    payload = {
        "sub": sub,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
        "jti": str(uuid.uuid4()),
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def create_access_token(user: User) -> str:
    return _create_token(
        str(user.id), settings.jwt_ttl_seconds, settings.jwt_secret, extra={**token_claims(user), "type": "access"}
    )


def create_refresh_token(user: User) -> str:
    return _create_token(
        str(user.id), settings.refresh_ttl_seconds, settings.jwt_refresh_secret, extra={**token_claims(user), "type": "refresh"}
    )


def decode_token(token: str, secret: Optional[str] = None) -> dict:
    try:
        return jwt.decode(token, secret or settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def peek_access_claims(token: Optional[str]) -> Optional[dict]:
    """Decode an access token without raising; None when absent or invalid."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.InvalidTokenError:
        return None
    if payload.get("type") == "refresh":
        return None
    return payload


def store_refresh_token(db: Session, user: User, token: str, meta: Optional[dict] = None) -> RefreshToken:
    meta = meta or {}
    row = RefreshToken(
        user_id=user.id,
        token=token,
        ip=meta.get("ip"),
        user_agent=meta.get("user_agent"),
        browser=meta.get("browser"),
        os=meta.get("os"),
        device=meta.get("device"),
        country=meta.get("country"),
        expires_at=utcnow() + timedelta(seconds=settings.refresh_ttl_seconds),
    )
    db.add(row)
    return row


def issue_token_pair(db: Session, user: User, meta: Optional[dict] = None) -> Tuple[str, str]:
    access = create_access_token(user)
    refresh = create_refresh_token(user)
    store_refresh_token(db, user, refresh, meta)
    return access, refresh


def delete_expired_refresh_tokens(db: Session) -> int:
    deleted = db.query(RefreshToken).filter(RefreshToken.expires_at <= utcnow()).delete(synchronize_session=False)
    db.commit()
    return deleted


def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
) -> User:
    if creds is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    payload = decode_token(creds.credentials)
    if payload.get("type") == "refresh":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    try:
        user_uuid = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid subject")
    user = db.query(User).filter(User.id == user_uuid).first()
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not active")
    return user


def require_roles(*allowed_roles: Role):
    """Dependency that admits the caller only if its role is in ``allowed_roles``."""
    allowed = {r.value if isinstance(r, Role) else r for r in allowed_roles}

    def _dep(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user

    return _dep
