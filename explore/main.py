import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine

from explore.db.connection import create_schema, dispose_engine
from explore.db.connection import get_database_type as _connection_get_database_type
from explore.db.connection import get_database_url as _connection_get_database_url
from explore.db.connection import get_engine as _connection_get_engine
from explore.errors import ErrorKind, ServiceError
from explore.settings import AppSettings, get_settings

from .api import decisions
from .schemas.error import ValidationErrorDetail
from .utils.error_responses import (
    build_error_response,
    build_service_error_response,
    build_validation_error_response,
)
from .utils.request_context import get_request_id, set_request_id

logging.basicConfig(
    level=get_settings().log_level_numeric,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def validate_environment(active_settings: AppSettings | None = None) -> None:
    """Log warnings for optional configuration that was left unset."""
    warnings = (active_settings or get_settings()).optional_config_warnings()
    if not warnings:
        return

    logger.warning("=" * 60)
    logger.warning("Environment Configuration Warnings:")
    for warning in warnings:
        logger.warning("  - %s", warning)
    logger.warning("=" * 60)


def _sanitize_database_url(url: str) -> str:
    """Hide the password component of a database URL for logging."""
    if "://" not in url:
        return url

    scheme, rest = url.split("://", 1)
    if "@" not in rest:
        return url

    auth, host_db = rest.split("@", 1)
    if ":" in auth:
        user, _ = auth.split(":", 1)
        return f"{scheme}://{user}:***@{host_db}"
    return f"{scheme}://{auth}@{host_db}"


def get_database_type() -> str:
    return _connection_get_database_type()


def get_database_url() -> str:
    return _connection_get_database_url()


def get_engine() -> AsyncEngine:
    return _connection_get_engine()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    validate_environment()

    db_type = get_database_type()
    logger.info("=" * 60)
    logger.info("Explore API - Database Preflight Check")
    logger.info("=" * 60)
    logger.info("Database Type: %s", db_type.upper())
    logger.info("Database URL: %s", _sanitize_database_url(get_database_url()))

    if db_type == "sqlite":
        logger.info("SQLite mode - creating missing tables from model metadata")
        await create_schema(get_engine())
    else:
        logger.info("PostgreSQL mode - using Alembic migrations")
        logger.info("Ensure migrations are up to date (run: alembic upgrade head)")
    logger.info("=" * 60)

    from explore.warmup import warmup_all

    await warmup_all(resolve_engine=get_engine)

    yield

    from explore.cache import close_redis

    logger.info("Shutting down Explore API")
    await close_redis()
    await dispose_engine()


app = FastAPI(
    title="Explore API",
    version="0.1.0",
    description="Records likes and passes between users and lists who liked whom.",
    lifespan=lifespan,
    redirect_slashes=False,
)

allow_origins = get_settings().cors_allow_origins
if allow_origins:
    logger.info("Configured CORS allow_origins: %s", ", ".join(allow_origins))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add unique request ID to each request for tracking."""
    request_id = str(uuid.uuid4())
    set_request_id(request_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(ServiceError)
async def service_exception_handler(request: Request, exc: ServiceError):
    """Translate a service failure into the status code matching its kind."""
    if exc.kind is ErrorKind.INTERNAL:
        logger.error(
            "Internal error for request %s to %s: %s",
            get_request_id(),
            request.url.path,
            exc.detail or exc.message,
        )
    else:
        logger.info(
            "%s for request %s to %s: %s",
            exc.kind.value,
            get_request_id(),
            request.url.path,
            exc.message,
        )

    error_response = build_service_error_response(exc, path=str(request.url.path))
    return JSONResponse(
        status_code=error_response.status_code,
        content=error_response.model_dump(mode="json"),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors."""
    errors = [
        ValidationErrorDetail(
            field=".".join(str(loc) for loc in error["loc"]),
            message=error["msg"],
            value=error.get("input"),
        )
        for error in exc.errors()
    ]

    logger.warning(
        "Validation error for request %s to %s: %s errors",
        get_request_id(),
        request.url.path,
        len(errors),
    )

    error_response = build_validation_error_response(
        message="Request validation failed",
        detail=f"{len(errors)} validation error(s)",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        path=str(request.url.path),
        errors=errors,
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response.model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    """Handle all other unhandled exceptions."""
    logger.exception(
        "Unhandled exception for request %s to %s: %s",
        get_request_id(),
        request.url.path,
        type(exc).__name__,
    )

    error_response = build_error_response(
        error_type=ErrorKind.INTERNAL,
        message="Internal server error",
        detail=f"An unexpected error occurred: {type(exc).__name__}",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        path=str(request.url.path),
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.model_dump(mode="json"),
    )


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    """Simple health endpoint for readiness checks."""
    return {"status": "ok"}


app.include_router(decisions.router, prefix="/explore", tags=["explore"])
