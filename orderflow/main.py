"""
FastAPI Application Entry Point

Restaurant order lifecycle and fulfillment scheduling.

Endpoints:
    - /api/orders: order creation, listing, history and lifecycle updates
    - /api/kitchen/queue: prioritised kitchen work queue
    - /api/tables: table registry and occupancy
    - /api/customers: returning-customer profiles
    - GET /health: system health check

Run with:
    uvicorn orderflow.main:app --reload --port 8001
"""

import asyncio
import logging
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

import redis
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from orderflow.core.config import get_settings, setup_logging
from orderflow.core.errors import AppError, ErrorCode
from orderflow.database import engine, get_db, init_db
from orderflow.routes import (
    customers_router,
    kitchen_router,
    orders_router,
    tables_router,
)
from orderflow.schemas import HealthResponse

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Transition policy: {settings.status_transition_policy.value}")
    logger.info(f"   History export: {'on' if settings.history_export_enabled else 'off'}")
    logger.info("=" * 60)

    await init_db()
    logger.info("Database initialized")

    problems = settings.validate_production_config()
    if problems:
        logger.warning(f"Unsafe production config: {problems}")

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    await engine.dispose()
    logger.info("Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Order lifecycle, kitchen scheduling and table management for a "
        "single restaurant. Clients stay in sync by polling."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag", "X-Poll-Interval"],
)


@app.middleware("http")
async def log_api_requests(request: Request, call_next):
    """Log each API call with its outcome and duration."""
    if not request.url.path.startswith("/api"):
        return await call_next(request)

    started = time.perf_counter()
    role = request.headers.get("x-staff-role", "anonymous")
    logger.info(f"REQUEST {request.method} {request.url.path} ({role})")
    # Cached by Starlette and replayed to the endpoint
    body = await request.body() if request.method in ("POST", "PATCH", "PUT") else b""
    try:
        response = await call_next(request)
    except Exception:
        logger.error(
            f"FAILED {request.method} {request.url.path} "
            f"query={dict(request.query_params)} role={role} "
            f"body={body.decode('utf-8', errors='replace')[:2000]}"
        )
        raise

    elapsed_ms = round((time.perf_counter() - started) * 1000, 1)
    logger.info(f"RESPONSE {request.method} {request.url.path} {response.status_code} in {elapsed_ms}ms")
    return response


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code} {exc.code.value}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_dict()))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query parameters are reported as 400s."""
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]
    logger.info(f"{request.method} {request.url.path} -> 400 validation: {details}")
    return JSONResponse(
        status_code=400,
        content={
            "message": "Validation error",
            "code": ErrorCode.VALIDATION_ERROR.value,
            "details": details,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "message": "Internal server error",
            "code": ErrorCode.INTERNAL_ERROR.value,
            "details": str(exc) if settings.debug else None,
        },
    )


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, Any]:
    """API root with navigation links."""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    db: AsyncSession = Depends(get_db)
) -> HealthResponse:
    """Verify the database and the task broker are reachable."""

    db_status = "healthy"
    try:
        await db.execute(select(1))
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"
        logger.error(f"Database health check failed: {e}")

    redis_status = "healthy"
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2, socket_connect_timeout=2)
        r.ping()
        r.close()
    except Exception as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.warning(f"Redis health check failed: {e}")

    overall = "operational" if db_status == "healthy" and redis_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        redis=redis_status,
        timestamp=datetime.now(timezone.utc),
    )


# =============================================================================
# API ROUTERS
# =============================================================================

app.include_router(orders_router)
app.include_router(kitchen_router)
app.include_router(tables_router)
app.include_router(customers_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "orderflow.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
    )
