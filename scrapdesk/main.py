import asyncio
import os

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.concurrency import run_in_threadpool

from .config import settings
from .db import Base, engine, SessionLocal
from .logging import setup_logging, RequestIdMiddleware
from .audit_middleware import AuditMiddleware
from .auth.router import router as auth_router
from .routes.organizations import router as organizations_router
from .routes.users import router as users_router
from .routes.invoices import router as invoices_router
from .routes.inventory import router as inventory_router
from .routes.compliance import router as compliance_router
from .routes.audit_logs import router as audit_logs_router
from .routes.files import router as files_router
from .services.errors import validation_message
from .services.maintenance import purge_expired
from .services.users import bootstrap_super_admin


logger = structlog.get_logger(__name__)


def _purge_once() -> None:
    db = SessionLocal()
    try:
        purge_expired(db)
    finally:
        db.close()


async def _purge_loop(interval_s: int) -> None:
    while True:
        await asyncio.sleep(interval_s)
        try:
            await run_in_threadpool(_purge_once)
        except Exception:
            logger.error("purge_failed", exc_info=True)


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.app_name)

    # Middlewares (last added runs first)
    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[settings.rate_limit],
        enabled=settings.rate_limit_enabled,
    )
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(AuditMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": validation_message(exc), "errors": jsonable_encoder(exc.errors())},
        )

    # Routers
    app.include_router(auth_router)
    app.include_router(organizations_router)
    app.include_router(users_router)
    app.include_router(invoices_router)
    app.include_router(inventory_router)
    app.include_router(compliance_router)
    app.include_router(audit_logs_router)
    app.include_router(files_router)

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "ok"}

    # Metrics
    Instrumentator().instrument(app).expose(app)

    @app.on_event("startup")
    async def _startup():
        logger.info("startup", environment=settings.environment)
        # Ensure local SQLite directory exists
        if settings.database_url.startswith("sqlite:///./"):
            os.makedirs("var", exist_ok=True)
        if settings.auto_create_db:
            Base.metadata.create_all(bind=engine)
        db = SessionLocal()
        try:
            bootstrap_super_admin(db)
        finally:
            db.close()
        if settings.audit_purge_interval_seconds > 0:
            app.state.purge_task = asyncio.create_task(_purge_loop(settings.audit_purge_interval_seconds))

    @app.on_event("shutdown")
    async def _shutdown():
        task = getattr(app.state, "purge_task", None)
        if task is not None:
            task.cancel()

    return app


app = create_app()
