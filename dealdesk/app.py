"""FastAPI application factory for DealDesk."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .config import settings
from .errors import ConflictError, DealDeskError, ValidationError

log = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    # Auto-create tables for SQLite (local dev); PostgreSQL uses Alembic migrations
    if settings.is_sqlite:
        from .database import engine
        from .models import Base
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    if not settings.auth_secret.strip():
        log.warning("DEALDESK_AUTH_SECRET is not set; API requests will be refused")
    yield


def _error(status_code: int, message: str, details: list | None = None) -> JSONResponse:
    body: dict = {"success": False, "error": message}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


async def dealdesk_error_handler(request: Request, exc: DealDeskError) -> JSONResponse:
    log.warning("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.message)
    return _error(exc.status_code, exc.message, getattr(exc, "details", None))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    log.warning("%s %s -> 400 validation: %s", request.method, request.url.path, details)
    return _error(ValidationError.status_code, ValidationError.default_message, details)


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    log.warning("%s %s -> 409 integrity: %s", request.method, request.url.path, exc.orig)
    return _error(ConflictError.status_code, ConflictError.default_message)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log.exception("Database error on %s %s", request.method, request.url.path)
    return _error(500, "Database operation failed")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


app = FastAPI(title=settings.app_title, lifespan=lifespan)

app.add_exception_handler(DealDeskError, dealdesk_error_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(IntegrityError, integrity_error_handler)
app.add_exception_handler(SQLAlchemyError, database_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

# Import and register routers
from .routers import activities, contacts, deals, health, leads, reports, users  # noqa: E402

app.include_router(users.router)
app.include_router(contacts.router)
app.include_router(leads.router)
app.include_router(deals.router)
app.include_router(activities.router)
app.include_router(reports.router)
app.include_router(health.router)
