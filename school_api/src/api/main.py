from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from src.core.errors import AppError
from src.core.logging import configure_logging, correlation_id_var, school_code_from_path, school_code_var
from src.core.settings import get_app_settings
from src.db.run_migrations import upgrade_central
from src.db.seed import seed_all
from src.db.session import dispose_engine
from src.db.tenant_manager import TenantNotFoundError, get_tenant_manager
from src.schemas.common import ErrorInfo, ErrorResponse, MessageResponse

# Routers
from src.api.routes.auth import router as auth_router
from src.api.routes.superadmin import router as superadmin_router
from src.api.routes.users import router as users_router
from src.api.routes.academics import router as academics_router
from src.api.routes.exams import router as exams_router
from src.api.routes.finance import router as finance_router
from src.api.routes.library import router as library_router
from src.api.routes.dormitory import router as dormitory_router
from src.api.routes.pharmacy import router as pharmacy_router
from src.api.routes.notifications import router as notifications_router
from src.api.routes.reports import router as reports_router
from src.api.routes.audit import router as audit_router
from src.api.routes.website import router as website_router

# Configure structured logging once at import
configure_logging()
logger = logging.getLogger(__name__)

settings = get_app_settings()

openapi_tags = [
    {"name": "Health", "description": "Liveness probe."},
    {"name": "Auth", "description": "Login, token refresh and the current principal."},
    {"name": "Super Admin", "description": "School registry, provisioning and platform operators."},
    {"name": "Users", "description": "School users, students, promotion and teacher assignments."},
    {"name": "Academics", "description": "Academic years, terms, classes, subjects, timetables and attendance."},
    {"name": "Exams", "description": "Exams, assessments and marks entry."},
    {"name": "Finance", "description": "Fee items, invoices, payments, expenses and finance reports."},
    {"name": "Library", "description": "Book catalogue and circulation."},
    {"name": "Dormitory", "description": "Dormitories, rooms and bed allocation."},
    {"name": "Pharmacy", "description": "Medication stock, sick-bay visits and health records."},
    {"name": "Notifications", "description": "In-app notifications and broadcasts."},
    {"name": "Reports", "description": "Class term reports and exportable registers (CSV/Excel/PDF)."},
    {"name": "Audit", "description": "Audit trail of each school."},
    {"name": "Website", "description": "Public school website content."},
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# CORS - avoid wildcard with credentials
cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
    logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
    cors_allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Enrich request context with correlation_id and school_code for logging and error responses.
    Adds 'X-Correlation-ID' to every response.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    school = school_code_from_path(request.url.path)
    token_corr = correlation_id_var.set(corr)
    token_school = school_code_var.set(school)
    request.state.correlation_id = corr
    request.state.school_code = school

    logger.info("Incoming request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
    finally:
        correlation_id_var.reset(token_corr)
        school_code_var.reset(token_school)

    response.headers["X-Correlation-ID"] = corr
    return response


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    ts = datetime.now(tz=timezone.utc)
    corr = getattr(request.state, "correlation_id", None)
    school = getattr(request.state, "school_code", None)
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=corr,
        school_code=school,
        path=request.url.path,
        method=request.method,
        timestamp=ts,
    )
    return JSONResponse(status_code=status_code, content=err.model_dump(mode="json"))


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Business-rule failures raised by services carry their own status and type."""
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type=exc.error_type,
        message=exc.message,
        details=exc.details,
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    """Uniqueness and foreign-key violations surface as 409."""
    logger.warning("Integrity error: %s", exc.orig)
    return _build_error_response(
        request=request,
        status_code=409,
        error_type="conflict",
        message="The request conflicts with existing data",
        details=None,
    )


@app.exception_handler(TenantNotFoundError)
async def tenant_not_found_handler(request: Request, exc: TenantNotFoundError):
    return _build_error_response(
        request=request,
        status_code=404,
        error_type="school_not_found",
        message=str(exc),
        details=None,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """
    Global handler for HTTPException to produce a standardized error envelope.
    """
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    response = _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type="http_error",
        message=str(detail),
        details=None if isinstance(exc.detail, str) else exc.detail,
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Global handler for request validation errors with a standard structure.
    """
    return _build_error_response(
        request=request,
        status_code=422,
        error_type="validation_error",
        message="Request validation failed",
        details=exc.errors(),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler to avoid leaking stack traces and to return a structured error.
    """
    logger.exception("Unhandled error processing request")
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="internal_error",
        message="An unexpected error occurred",
        details=None,
    )


@app.on_event("startup")
async def on_startup() -> None:
    """
    Run central migrations and optional super-admin seeding on service startup.

    School databases are not touched here; they are provisioned per school.
    """
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            logger.info("Running Alembic migrations: upgrade head")
            await asyncio.to_thread(upgrade_central)
            logger.info("Migrations completed.")
        except Exception as exc:
            logger.exception("Migration step failed: %s", exc)
            # Do not crash the app in case of transient DB issues; rely on retries or later readiness probes.

    if settings.AUTO_SEED:
        try:
            logger.info("Running database seeding...")
            await seed_all()
            logger.info("Seeding completed.")
        except Exception as exc:
            logger.exception("Seeding step failed: %s", exc)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    """Dispose every school engine and the central engine."""
    await get_tenant_manager().close_all()
    await dispose_engine()


# Build API v1 router and include sub-routers
api_v1 = APIRouter(prefix="/api/v1")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health",
    response_model=MessageResponse,
    summary="Health Check",
    tags=["Health"],
)
def health_check() -> MessageResponse:
    """
    Basic liveness health check endpoint.

    Returns:
        MessageResponse: Simple confirmation that the service is running.
    """
    return MessageResponse(message="Healthy")


# Include all routers under /api/v1
api_v1.include_router(auth_router)
api_v1.include_router(superadmin_router)
api_v1.include_router(users_router)
api_v1.include_router(academics_router)
api_v1.include_router(exams_router)
api_v1.include_router(finance_router)
api_v1.include_router(library_router)
api_v1.include_router(dormitory_router)
api_v1.include_router(pharmacy_router)
api_v1.include_router(notifications_router)
api_v1.include_router(reports_router)
api_v1.include_router(audit_router)
api_v1.include_router(website_router)

# Attach api_v1 to app
app.include_router(api_v1)
