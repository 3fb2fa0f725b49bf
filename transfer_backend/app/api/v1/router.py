"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from transfer_backend.app.api.v1.endpoints import (
    quotes, vehicles, bookings,
    admin_bookings, driver_assignment, admin_settings
)

router = APIRouter()

# Customer-facing endpoints
router.include_router(quotes.router)
router.include_router(vehicles.router)
router.include_router(bookings.router)

# Admin endpoints
router.include_router(admin_bookings.router)
router.include_router(driver_assignment.router)
router.include_router(admin_settings.router)
