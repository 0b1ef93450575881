"""
Pure ASGI middleware that records one audit entry per request.

The request body is captured as the app reads it and the status as the
response starts. The entry is written after the response has been sent.
Write failures are logged and never reach the client.
"""
import json
import uuid
from typing import Callable, Optional
from urllib.parse import parse_qsl

import structlog
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .auth.security import peek_access_claims
from .db import SessionLocal
from .models.enums import AuditStatus, Role
from .services.audit import classify_action, extract_resource_id, build_payload, create_audit_log
from .services.request_meta import extract_metadata


logger = structlog.get_logger(__name__)

SKIP_PATHS = {"/metrics", "/docs", "/docs/oauth2-redirect", "/redoc", "/openapi.json", "/health"}
SKIP_PREFIXES = ("/files/local/",)
MAX_BODY_BYTES = 64 * 1024
MAX_ERROR_BYTES = 4 * 1024


def _uuid_or_none(value) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _decode_body(raw: bytes, content_type: str):
    if not raw:
        return None
    if len(raw) > MAX_BODY_BYTES:
        return "[truncated]"
    if "json" in content_type:
        try:
            return json.loads(raw)
        except ValueError:
            return None
    if "application/x-www-form-urlencoded" in content_type:
        return dict(parse_qsl(raw.decode("utf-8", "replace")))
    return None


def _error_detail(raw: bytes) -> Optional[str]:
    if not raw:
        return None
    try:
        detail = json.loads(raw).get("detail")
    except (ValueError, AttributeError):
        return raw[:500].decode("utf-8", "replace")
    if detail is None:
        return None
    return detail if isinstance(detail, str) else json.dumps(detail, default=str)[:1000]


class AuditMiddleware:
    def __init__(self, app: ASGIApp, session_factory: Callable = SessionLocal) -> None:
        self.app = app
        self.session_factory = session_factory

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        path = scope.get("path", "")
        if (
            scope["type"] != "http"
            or scope.get("method") == "OPTIONS"
            or path in SKIP_PATHS
            or path.startswith(SKIP_PREFIXES)
        ):
            await self.app(scope, receive, send)
            return

        scope.setdefault("state", {})
        headers = Headers(scope=scope)
        auth = headers.get("authorization", "")
        claims = peek_access_claims(auth[7:] if auth.lower().startswith("bearer ") else None)

        body = bytearray()
        error_body = bytearray()
        status = {"code": 500}

        async def receive_wrapper() -> Message:
            message = await receive()
            if message["type"] == "http.request" and len(body) <= MAX_BODY_BYTES:
                body.extend(message.get("body", b""))
            return message

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                status["code"] = message["status"]
            elif message["type"] == "http.response.body" and status["code"] >= 400:
                if len(error_body) < MAX_ERROR_BYTES:
                    error_body.extend(message.get("body", b""))
            await send(message)

        failure = None
        try:
            await self.app(scope, receive_wrapper, send_wrapper)
        except Exception as exc:
            failure = exc
            status["code"] = 500
            raise
        finally:
            record = self._build_record(scope, headers, claims, bytes(body), bytes(error_body), status["code"], failure)
            await run_in_threadpool(self._write, record)

    def _build_record(self, scope, headers, claims, raw_body, error_body, status_code, failure) -> dict:
        method = scope.get("method", "GET")
        path = scope.get("path", "")
        content_type = headers.get("content-type", "")

        actor_id = organization_id = None
        actor_role = Role.SYSTEM.value
        if claims:
            actor_id = _uuid_or_none(claims.get("sub"))
            actor_role = claims.get("role") or actor_role
            organization_id = _uuid_or_none(claims.get("org_id"))
        else:
            # Only handlers that opt in may name the actor after the fact
            backfill = (scope.get("state") or {}).get("audit_actor")
            if backfill:
                actor_id = _uuid_or_none(backfill.get("id"))
                actor_role = backfill.get("role") or actor_role
                organization_id = _uuid_or_none(backfill.get("org_id"))

        client = scope.get("client")
        ok = failure is None and status_code < 400
        return {
            "action": classify_action(method, path, status_code),
            "resource": f"{method} {path}",
            "resource_id": extract_resource_id(path),
            "status": AuditStatus.SUCCESS if ok else AuditStatus.FAILURE,
            "error_message": None if ok else (str(failure) if failure else _error_detail(error_body)),
            "actor_id": actor_id,
            "actor_role": actor_role,
            "organization_id": organization_id,
            "meta": extract_metadata(headers, client[0] if client else None),
            "payload": build_payload(
                scope.get("path_params") or {},
                dict(parse_qsl(scope.get("query_string", b"").decode("latin-1"))),
                _decode_body(raw_body, content_type),
                multipart="multipart/form-data" in content_type,
            ),
        }

    def _write(self, record: dict) -> None:
        db = None
        try:
            db = self.session_factory()
            create_audit_log(db, **record)
        except Exception:
            if db is not None:
                db.rollback()
            logger.error("audit_write_failed", action=str(record.get("action")), resource=record.get("resource"), exc_info=True)
        finally:
            if db is not None:
                db.close()
