"""
Customer Booking API Endpoints.

Customers submit bookings and view their own.
"""

import logging
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, Path, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_backend.app.core.dependencies import get_current_user
from transfer_backend.app.core.guards import OwnershipGuard
from transfer_backend.app.db.session import get_db
from transfer_backend.app.domain.booking.booking_service import BookingService
from transfer_backend.app.models.vehicle_tariff import VehicleTariff
from transfer_backend.app.schemas.booking import BookingCreate, BookingResponse
from transfer_backend.app.schemas.routing import to_coordinates
from transfer_backend.app.services.notifications import (
    BookingConfirmedEvent, dispatch_booking_confirmation, load_notification_settings
)
from transfer_backend.app.services.routing import RoutingService, get_routing_service

router = APIRouter(prefix="/bookings", tags=["Bookings"])
logger = logging.getLogger("transfers.notifications")

ownership_guard = OwnershipGuard()


async def schedule_confirmation_sms(background_tasks: BackgroundTasks, db: AsyncSession, booking) -> None:
    """
    Queue the confirmation SMS to run after the response is sent.

    The booking is already committed, so a storage error here is logged
    and the SMS skipped.
    """
    try:
        recipients = await load_notification_settings(db)
        tariff = await db.get(VehicleTariff, booking.vehicle_tariff_id)
    except SQLAlchemyError:
        logger.exception("Could not schedule confirmation SMS for booking %s", booking.id)
        return
    event = BookingConfirmedEvent.from_booking(booking, vehicle_name=tariff.name if tariff else None)
    background_tasks.add_task(dispatch_booking_confirmation, event, recipients)


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    background_tasks: BackgroundTasks,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    routing: RoutingService = Depends(get_routing_service)
):
    """
    Submit a booking.

    The price is recomputed server-side from the tariff and the route.
    Cash bookings are confirmed immediately and notify admins by SMS;
    card bookings stay pending until the payment outcome arrives.
    """
    route = await routing.resolve(
        to_coordinates(data.pickup),
        to_coordinates(data.destination),
        data.distance_km,
        data.duration_minutes
    )

    result = await BookingService.create_booking(
        db,
        customer_id=current_user["user_id"],
        data=data,
        distance_km=route.distance_km,
        duration_minutes=route.duration_minutes
    )

    if result.became_confirmed:
        await schedule_confirmation_sms(background_tasks, db, result.booking)

    return result.booking


@router.get("", response_model=List[BookingResponse])
async def list_my_bookings(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """List the caller's bookings, latest departure first."""
    return await BookingService.list_customer_bookings(db, current_user["user_id"])


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_my_booking(
    booking_id: int = Path(..., description="Booking ID"),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get one of the caller's bookings."""
    booking = await BookingService.get_booking(db, booking_id)
    ownership_guard.enforce(booking.customer_id, current_user, "booking")
    return booking
