from typing import Optional

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from ..config import settings
from ..db import get_db, utcnow
from ..models.enums import Role
from ..models.models import User, RefreshToken
from ..schemas.auth import LoginRequest, LoginResponse, RefreshRequest, TokenResponse, AuthUser
from ..services.request_meta import extract_metadata
from .security import (
    verify_password,
    decode_token,
    issue_token_pair,
    get_current_user,
)


router = APIRouter(prefix="/auth", tags=["auth"])
logger = structlog.get_logger(__name__)


def _auth_user(user: User) -> AuthUser:
    return AuthUser(
        id=str(user.id),
        role=user.role,
        org_id=str(user.organization_id) if user.organization_id else None,
        email=user.email,
        name=user.name,
    )


def _set_refresh_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.refresh_cookie_name,
        value=token,
        max_age=settings.refresh_ttl_seconds,
        httponly=True,
        secure=settings.refresh_cookie_secure,
        samesite="lax",
        path="/auth",
    )


def _request_meta(request: Request) -> dict:
    return extract_metadata(request.headers, request.client.host if request.client else None)


@router.post("/login", response_model=LoginResponse)
def login(req: LoginRequest, request: Request, response: Response, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == req.email).first()
    if not user or not verify_password(req.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")
    if user.role != Role.SUPER_ADMIN.value and not user.organization_id:
        raise HTTPException(status_code=403, detail="User is not linked to an organization")

    access, refresh = issue_token_pair(db, user, _request_meta(request))
    user.last_login_at = utcnow()
    db.commit()
    _set_refresh_cookie(response, refresh)

    body = _auth_user(user)
    # Login is the one handler allowed to name its actor to the audit trail
    request.state.audit_actor = {"id": body.id, "role": body.role, "org_id": body.org_id}
    logger.info("login_success", user_id=body.id, role=body.role)
    return LoginResponse(access_token=access, user=body)


@router.post("/refresh", response_model=TokenResponse)
def refresh(
    request: Request,
    response: Response,
    req: Optional[RefreshRequest] = Body(default=None),
    db: Session = Depends(get_db),
):
    token = request.cookies.get(settings.refresh_cookie_name) or (req.refresh_token if req else None)
    if not token:
        raise HTTPException(status_code=400, detail="Refresh token is required")

    payload = decode_token(token, settings.jwt_refresh_secret)
    if payload.get("type") != "refresh":
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    stored = db.query(RefreshToken).filter(RefreshToken.token == token).first()
    if not stored or str(stored.user_id) != str(payload.get("sub")):
        raise HTTPException(status_code=401, detail="Invalid refresh token")
    if stored.expires_at <= utcnow():
        db.delete(stored)
        db.commit()
        raise HTTPException(status_code=401, detail="Refresh token expired")
    user = stored.user
    if not user or not user.is_active:
        raise HTTPException(status_code=403, detail="Account is deactivated")

    # Rotation: the presented token is consumed
    db.delete(stored)
    access, new_refresh = issue_token_pair(db, user, _request_meta(request))
    db.commit()
    _set_refresh_cookie(response, new_refresh)
    return TokenResponse(access_token=access)


@router.post("/logout")
def logout(
    request: Request,
    response: Response,
    req: Optional[RefreshRequest] = Body(default=None),
    db: Session = Depends(get_db),
):
    token = request.cookies.get(settings.refresh_cookie_name) or (req.refresh_token if req else None)
    if token:
        deleted = db.query(RefreshToken).filter(RefreshToken.token == token).delete(synchronize_session=False)
        db.commit()
        if not deleted:
            logger.info("logout_unknown_token")
    response.delete_cookie(settings.refresh_cookie_name, path="/auth")
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=AuthUser)
def me(user: User = Depends(get_current_user)):
    return _auth_user(user)
