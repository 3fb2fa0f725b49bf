"""
Admin Booking Management API Endpoints.

List, inspect and drive the lifecycle of any booking.
"""

from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_backend.app.core.guards import require_admin
from transfer_backend.app.db.session import get_db
from transfer_backend.app.domain.booking.booking_service import BookingService
from transfer_backend.app.domain.dispatch.availability_resolver import AvailabilityResolver
from transfer_backend.app.models.booking_enums import BookingStatus, PaymentStatus
from transfer_backend.app.models.driver import Driver
from transfer_backend.app.schemas.admin import AdminActionResponse, AuditLogResponse, AuditTrailResponse
from transfer_backend.app.schemas.booking import (
    BookingDetailResponse,
    BookingFilters,
    BookingListResponse,
    BookingResponse,
    PaymentOutcomeUpdate,
)
from transfer_backend.app.schemas.driver import assignment_response
from transfer_backend.app.services.audit import log_admin_action, get_booking_audit_trail, AuditAction
from transfer_backend.app.api.v1.endpoints.bookings import schedule_confirmation_sms

router = APIRouter(prefix="/admin/bookings", tags=["Admin - Bookings"])


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    payment_status: Optional[PaymentStatus] = Query(None),
    search: Optional[str] = Query(None, description="Customer name, phone or address"),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    sort_by: Literal["created_at", "departure_time", "total_price"] = Query("created_at"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    List all bookings with filtering and pagination (Admin only).

    Filters:
    - status / payment_status
    - search: substring of customer name, phone, pickup or destination
    - date_from / date_to: departure time range
    """
    filters = BookingFilters(
        status=status_filter,
        payment_status=payment_status,
        search=search,
        date_from=date_from,
        date_to=date_to,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        page_size=page_size
    )
    bookings, total = await BookingService.list_bookings(db, filters)

    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_booking_detail(
    booking_id: int = Path(..., description="Booking ID"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Get a booking with its current driver assignment (Admin only)."""
    booking = await BookingService.get_booking(db, booking_id)
    assignment = await AvailabilityResolver.get_active_assignment(db, booking_id)

    detail = BookingDetailResponse.model_validate(booking)
    if assignment:
        driver = await db.get(Driver, assignment.driver_id)
        detail.assignment = assignment_response(assignment, driver)
    return detail


@router.get("/{booking_id}/audit", response_model=AuditTrailResponse)
async def get_booking_audit(
    booking_id: int = Path(..., description="Booking ID"),
    limit: int = Query(50, ge=1, le=200),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Audit history of a booking, most recent first (Admin only)."""
    await BookingService.get_booking(db, booking_id)
    logs = await get_booking_audit_trail(db, booking_id, limit=limit)
    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs)
    )


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: int = Path(..., description="Booking ID"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Cancel a pending or confirmed booking (Admin only).

    The assigned driver is released and becomes free for that window.
    """
    booking = await BookingService.cancel_booking(db, booking_id)
    await log_admin_action(db, current_user, AuditAction.BOOKING_CANCELLED, booking_id=booking.id)
    return booking


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: int = Path(..., description="Booking ID"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Mark a booking completed (Admin only)."""
    booking = await BookingService.complete_booking(db, booking_id)
    await log_admin_action(db, current_user, AuditAction.BOOKING_COMPLETED, booking_id=booking.id)
    return booking


@router.put("/{booking_id}/payment", response_model=BookingResponse)
async def record_payment_outcome(
    background_tasks: BackgroundTasks,
    booking_id: int = Path(..., description="Booking ID"),
    outcome: PaymentOutcomeUpdate = ...,
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Record the payment processor outcome for a booking (Admin only).

    A successful payment confirms a pending booking and notifies admins.
    """
    previous = (await BookingService.get_booking(db, booking_id)).payment_status
    result = await BookingService.record_payment_outcome(db, booking_id, outcome.processor_status)
    booking = result.booking

    await log_admin_action(
        db, current_user, AuditAction.PAYMENT_STATUS_CHANGED,
        booking_id=booking.id,
        metadata={
            "processor_status": outcome.processor_status,
            "from": previous.value,
            "to": booking.payment_status.value,
        }
    )

    if result.became_confirmed:
        await schedule_confirmation_sms(background_tasks, db, booking)

    return booking


@router.delete("/{booking_id}", response_model=AdminActionResponse)
async def delete_booking(
    booking_id: int = Path(..., description="Booking ID"),
    current_user: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Delete a booking together with its driver assignments (Admin only)."""
    await BookingService.delete_booking(db, booking_id)
    await log_admin_action(db, current_user, AuditAction.BOOKING_DELETED, booking_id=booking_id)

    return AdminActionResponse(
        success=True,
        message=f"Booking {booking_id} deleted",
        booking_id=booking_id,
        action=AuditAction.BOOKING_DELETED
    )
