"""
FastAPI Application Entry Point.

This is the main application file for the Transfer Booking Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from transfer_backend.app.core.config import settings
from transfer_backend.app.api.v1.router import router as api_v1_router
from transfer_backend.app.core.observability import ObservabilityMiddleware, configure_logging
from transfer_backend.app.core.redis_client import close_redis, ping_redis
from transfer_backend.app.db.session import engine, Base
from transfer_backend.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from transfer_backend.app.models.profile import Profile
from transfer_backend.app.models.vehicle_tariff import VehicleTariff
from transfer_backend.app.models.booking import Booking
from transfer_backend.app.models.driver import Driver
from transfer_backend.app.models.driver_assignment import DriverAssignment
from transfer_backend.app.models.admin_setting import AdminSetting
from transfer_backend.app.models.audit_log import AuditLog


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for application startup/shutdown.

    1. Configures logging.
    2. Creates database tables on startup.
    3. Closes the route cache and disposes the connection pool on shutdown.
    """
    configure_logging()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await close_redis()
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Airport and intercity transfer booking backend",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Returns:
        dict: Status, application information and cache reachability
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "redis": "up" if await ping_redis() else "down",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    """
    Root endpoint.

    Returns:
        dict: Welcome message and API documentation links
    """
    return {
        "message": "Welcome to Transfer Booking Backend API",
        "docs": "/docs",
        "health": "/health",
    }
