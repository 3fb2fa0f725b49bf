"""
Driver Availability & Assignment API Endpoints.

Admins look up free drivers around a booking's departure and assign them.
Availability is a snapshot; the assignment is re-validated when committed.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_backend.app.core.exceptions import UpstreamError
from transfer_backend.app.core.guards import require_admin
from transfer_backend.app.db.session import get_db
from transfer_backend.app.domain.dispatch.availability_resolver import AvailabilityResolver
from transfer_backend.app.models.driver import Driver
from transfer_backend.app.schemas.admin import AdminActionResponse
from transfer_backend.app.schemas.driver import (
    AvailableDriversResponse,
    DriverAssignmentCreate,
    DriverAssignmentResponse,
    DriverCreate,
    DriverResponse,
    assignment_response,
)
from transfer_backend.app.services.audit import log_admin_action, AuditAction

router = APIRouter(prefix="/admin", tags=["Admin - Drivers"])


@router.get("/drivers", response_model=List[DriverResponse])
async def list_drivers(
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """List active drivers ordered by name (Admin only)."""
    return await AvailabilityResolver.list_active_drivers(db)


@router.post("/drivers", response_model=DriverResponse, status_code=status.HTTP_201_CREATED)
async def create_driver(
    driver_data: DriverCreate,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Register a driver (Admin only)."""
    driver = Driver(**driver_data.model_dump(), is_active=True)
    db.add(driver)
    try:
        await db.commit()
        await db.refresh(driver)
    except SQLAlchemyError as e:
        await db.rollback()
        raise UpstreamError("Failed to create driver") from e

    await log_admin_action(
        db, current_user, AuditAction.DRIVER_CREATED,
        metadata={"driver_id": driver.id, "full_name": driver.full_name}
    )
    return driver


@router.get("/drivers/available", response_model=AvailableDriversResponse)
async def list_available_drivers(
    requested_time: Optional[datetime] = Query(
        None, alias="datetime", description="Departure time to check (ISO 8601)"
    ),
    booking_id: Optional[int] = Query(
        None, description="Booking being staffed; its own assignment is not a conflict"
    ),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Drivers free within 2 hours of a departure time (Admin only).

    Without ``datetime`` every active driver is returned.
    """
    all_drivers = await AvailabilityResolver.list_active_drivers(db)

    if requested_time is None:
        drivers = all_drivers
    else:
        drivers = await AvailabilityResolver.query_available(
            db, requested_time, exclude_booking_id=booking_id
        )

    return AvailableDriversResponse(
        drivers=[DriverResponse.model_validate(d) for d in drivers],
        requested_time=requested_time,
        total_drivers=len(all_drivers),
        available_drivers=len(drivers)
    )


@router.post(
    "/bookings/{booking_id}/assign-driver",
    response_model=DriverAssignmentResponse,
    status_code=status.HTTP_201_CREATED
)
async def assign_driver(
    booking_id: int = Path(..., description="Booking ID"),
    assignment: DriverAssignmentCreate = ...,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Assign a driver to a booking (Admin only).

    Validates:
    - Booking exists and is not cancelled or completed
    - Driver exists and is active
    - Driver has no other job within 2 hours of the departure

    Replaces any previous assignment. A pending booking becomes confirmed.
    """
    created = await AvailabilityResolver.assign(
        db,
        booking_id=booking_id,
        driver_id=assignment.driver_id,
        assigned_by=current_user["user_id"],
        notes=assignment.notes
    )
    driver = await db.get(Driver, created.driver_id)
    response = assignment_response(created, driver)

    await log_admin_action(
        db, current_user, AuditAction.DRIVER_ASSIGNED,
        booking_id=booking_id,
        metadata={"driver_id": driver.id, "driver_name": driver.full_name}
    )
    return response


@router.delete("/bookings/{booking_id}/assign-driver", response_model=AdminActionResponse)
async def unassign_driver(
    booking_id: int = Path(..., description="Booking ID"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Remove the driver from a booking (Admin only).

    A confirmed booking goes back to pending.
    """
    removed = await AvailabilityResolver.unassign(db, booking_id)

    if removed:
        await log_admin_action(db, current_user, AuditAction.DRIVER_UNASSIGNED, booking_id=booking_id)

    return AdminActionResponse(
        success=True,
        message="Driver unassigned" if removed else "Booking had no driver assigned",
        booking_id=booking_id,
        action=AuditAction.DRIVER_UNASSIGNED
    )
