from functools import wraps

import structlog
from fastapi import HTTPException
from sqlalchemy.orm import Session


logger = structlog.get_logger(__name__)


def service_errors(message: str):
    """Wrap a service call that takes the session first.

    HTTPExceptions raised by business rules pass through unchanged. Anything
    else rolls back, is logged with the traceback and surfaces as a 400
    carrying only ``message``.
    """

    def decorator(fn):
        @wraps(fn)
        def wrapper(db: Session, *args, **kwargs):
            try:
                return fn(db, *args, **kwargs)
            except HTTPException:
                db.rollback()
                raise
            except Exception:
                db.rollback()
                logger.error("service_failed", operation=fn.__name__, error=message, exc_info=True)
                raise HTTPException(status_code=400, detail=message)

        return wrapper

    return decorator


def bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=400, detail=detail)


def not_found(detail: str) -> HTTPException:
    return HTTPException(status_code=404, detail=detail)


def forbidden(detail: str = "Forbidden") -> HTTPException:
    return HTTPException(status_code=403, detail=detail)


def conflict(detail: str) -> HTTPException:
    return HTTPException(status_code=409, detail=detail)


def validation_message(exc) -> str:
    """Flatten a pydantic ValidationError into one client-facing line."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body",))
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid input"
