"""
FastAPI Application Entry Point

Multi-tenant Restaurant Ordering Service
Customers order from a table's QR code; restaurant admins manage menu,
tables and order status, and watch changes live.

Endpoints:
    - /auth/*: Register, login, logout, me, password reset, profile
    - /restaurants, /menu, /tables: Tenant catalog CRUD
    - /orders: Place orders (public) and move them through their lifecycle
    - /reports/*: Sales report, dashboard summary, Excel export
    - /ws/{restaurant_id}/{collection}: Live snapshots
    - GET /health: System health check

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Internal imports
from restro.api.deps import get_change_feed
from restro.api.routes import auth, menu, orders, realtime, reports, restaurants, tables
from restro.core.config import get_settings, setup_logging
from restro.core.errors import RestroError, ValidationError
from restro.core.security import SessionSigner
from restro.database import async_session_maker, engine, get_db, init_db
from restro.schemas import HealthResponse
from restro.services.changes import BaseChangeFeed, StoreSnapshotLoader, create_change_feed
from restro.services.notifications import get_notification_service

# Initialize configuration and logging
settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

async def startup(app: FastAPI) -> None:
    """Create tables, the session signer and the change feed."""
    logger.info("=" * 60)
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    # Validate production config; a missing signing key is fatal
    if settings.use_real_services:
        missing = settings.validate_production_config()
        if missing:
            logger.warning(f"Missing production config: {missing}")
        if "SESSION_SECRET" in missing:
            raise RuntimeError("SESSION_SECRET is required outside development")

    # Initialize database
    await init_db()
    logger.info("Database initialized")

    app.state.signer = SessionSigner()

    feed = create_change_feed(settings, StoreSnapshotLoader(async_session_maker))
    await feed.start()
    app.state.change_feed = feed
    logger.info(f"Change Feed: {feed.provider_name}")

    notification_service = get_notification_service()
    logger.info(f"Notification Service: {notification_service.provider_name}")

    logger.info("=" * 60)
    logger.info("Application ready!")
    logger.info("=" * 60)


async def shutdown(app: FastAPI) -> None:
    logger.info("Shutting down...")
    feed = getattr(app.state, "change_feed", None)
    if feed is not None:
        await feed.stop()
        app.state.change_feed = None
    await engine.dispose()
    logger.info("Cleanup complete")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    await startup(app)
    yield  # Application runs
    await shutdown(app)


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Multi-tenant restaurant ordering: QR table ordering for customers, "
        "menu, table and order management for restaurant staff."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.public_base_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(restaurants.router)
app.include_router(menu.router)
app.include_router(tables.router)
app.include_router(orders.router)
app.include_router(reports.router)
app.include_router(realtime.router)


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
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
    db: AsyncSession = Depends(get_db),
    feed: BaseChangeFeed = Depends(get_change_feed),
) -> HealthResponse:
    """Verify store connectivity and report which settings are present."""

    # Check database
    db_status = "healthy"
    try:
        await asyncio.wait_for(db.execute(text("SELECT 1")), settings.store_timeout_seconds)
    except (SQLAlchemyError, asyncio.TimeoutError) as e:
        db_status = f"unhealthy: {str(e) or 'timeout'}"
        logger.error(f"Database health check failed: {e}")

    feed_status = "healthy" if await feed.health_check() else "unhealthy"

    notification_service = get_notification_service()
    notification_status = "healthy" if await notification_service.health_check() else "unhealthy"

    overall = "operational" if all(
        s == "healthy" for s in [db_status, feed_status, notification_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        database=db_status,
        change_feed=f"{feed.provider_name}: {feed_status}",
        notification_service=f"{notification_service.provider_name}: {notification_status}",
        config={
            "database_url": bool(settings.database_url),
            "session_secret": bool(settings.session_secret),
            "sendgrid_api_key": bool(settings.sendgrid_api_key),
            "redis_url": bool(settings.redis_url),
        },
        environment=settings.env_mode.value,
        timestamp=datetime.now(),
    )


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(RestroError)
async def restro_exception_handler(request: Request, exc: RestroError) -> JSONResponse:
    """Domain errors become a structured failure response."""
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.kind} on {request.method} {request.url.path}: {exc.message}")

    headers = {"Retry-After": "1"} if exc.retryable else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError.from_pydantic(exc)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    content: dict[str, Any] = {
        "success": False,
        "error": "internal_error",
        "message": str(exc) if settings.debug else "An unexpected error occurred",
    }
    return JSONResponse(status_code=500, content=content)


# =============================================================================
# MAIN
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "restro.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
    )
