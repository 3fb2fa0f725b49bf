"""
Booking Service (Domain Logic).

Creates bookings and drives their lifecycle:

    pending --assign--> confirmed --unassign--> pending
    pending|confirmed --cancel--> cancelled            (terminal)
    confirmed --payment succeeds--> confirmed          (idempotent)
    any non-terminal --complete--> completed           (terminal)

Prices are always computed here from the tariff and the resolved route;
a client-supplied total is never trusted.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import select, update, delete, func, or_, asc, desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_backend.app.core.config import settings
from transfer_backend.app.core.exceptions import (
    InvalidInputError,
    InvalidStateError,
    ResourceNotFoundError,
    UpstreamError,
)
from transfer_backend.app.domain.dispatch.conflict_window import as_utc
from transfer_backend.app.domain.pricing.country_detection import detect_route_countries
from transfer_backend.app.domain.pricing.pricing_engine import price_breakdown, round_currency
from transfer_backend.app.models.booking import Booking
from transfer_backend.app.models.booking_enums import (
    AssignmentStatus,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
    TERMINAL_BOOKING_STATUSES,
)
from transfer_backend.app.models.driver_assignment import DriverAssignment
from transfer_backend.app.models.vehicle_tariff import VehicleTariff
from transfer_backend.app.schemas.booking import BookingCreate, BookingFilters

logger = logging.getLogger("transfers.bookings")

SORTABLE_COLUMNS = {
    "created_at": Booking.created_at,
    "departure_time": Booking.departure_time,
    "total_price": Booking.total_price,
}


@dataclass
class BookingTransition:
    """Result of a lifecycle change; ``became_confirmed`` drives notifications."""
    booking: Booking
    became_confirmed: bool = False


class BookingService:

    @staticmethod
    async def get_active_tariff(db: AsyncSession, tariff_id: int) -> VehicleTariff:
        tariff = await db.scalar(select(VehicleTariff).where(VehicleTariff.id == tariff_id))
        if not tariff or not tariff.is_active:
            raise ResourceNotFoundError("Vehicle tariff", tariff_id)
        return tariff

    @staticmethod
    async def create_booking(
        db: AsyncSession,
        customer_id: int,
        data: BookingCreate,
        distance_km: Decimal,
        duration_minutes: Decimal
    ) -> BookingTransition:
        """
        Persist a new booking.

        Cash bookings are confirmed immediately (payment collected by the
        driver); card bookings wait for the payment outcome.

        Raises:
            ResourceNotFoundError: Tariff missing or inactive
            InvalidInputError: Passenger or luggage count exceeds the vehicle
        """
        try:
            tariff = await BookingService.get_active_tariff(db, data.vehicle_tariff_id)

            if data.passenger_count > tariff.max_passengers:
                raise InvalidInputError(
                    f"{tariff.name} carries at most {tariff.max_passengers} passengers",
                    details={"field": "passenger_count", "max": tariff.max_passengers}
                )
            if data.luggage_count > tariff.max_luggage:
                raise InvalidInputError(
                    f"{tariff.name} carries at most {tariff.max_luggage} pieces of luggage",
                    details={"field": "luggage_count", "max": tariff.max_luggage}
                )

            departure_time = as_utc(data.departure_time)
            pickup_country, destination_country = detect_route_countries(
                data.pickup.address, data.destination.address
            )
            price = price_breakdown(
                tariff,
                distance_km,
                departure_time,
                pickup_country,
                destination_country,
                tz=ZoneInfo(settings.business_timezone),
            )

            is_cash = data.payment_method == PaymentMethod.CASH
            booking = Booking(
                customer_id=customer_id,
                customer_name=data.customer_name.strip(),
                customer_phone=data.customer_phone.strip(),
                pickup_address=data.pickup.address,
                pickup_latitude=data.pickup.latitude,
                pickup_longitude=data.pickup.longitude,
                destination_address=data.destination.address,
                destination_latitude=data.destination.latitude,
                destination_longitude=data.destination.longitude,
                distance_km=distance_km,
                duration_minutes=duration_minutes,
                vehicle_tariff_id=tariff.id,
                departure_time=departure_time,
                passenger_count=data.passenger_count,
                luggage_count=data.luggage_count,
                base_price=round_currency(price.base),
                total_price=round_currency(price.total),
                status=BookingStatus.CONFIRMED if is_cash else BookingStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                payment_method=data.payment_method,
                special_requirements=data.special_requirements,
                notes=data.notes.strip() if data.notes else None,
            )
            db.add(booking)
            await db.commit()
            await db.refresh(booking)
        except SQLAlchemyError as e:
            await db.rollback()
            raise UpstreamError("Failed to create booking") from e

        logger.info(
            "Booking %s created: %s, total %s (%s)",
            booking.id, data.payment_method.value, booking.total_price,
            ", ".join(s.name for s in price.surcharges) or "no surcharges"
        )
        return BookingTransition(booking=booking, became_confirmed=is_cash)

    @staticmethod
    async def get_booking(db: AsyncSession, booking_id: int) -> Booking:
        try:
            booking = await db.scalar(select(Booking).where(Booking.id == booking_id))
        except SQLAlchemyError as e:
            raise UpstreamError("Failed to load booking") from e
        if not booking:
            raise ResourceNotFoundError("Booking", booking_id)
        return booking

    @staticmethod
    async def list_customer_bookings(db: AsyncSession, customer_id: int) -> List[Booking]:
        try:
            result = await db.execute(
                select(Booking)
                .where(Booking.customer_id == customer_id)
                .order_by(Booking.departure_time.desc())
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise UpstreamError("Failed to load bookings") from e

    @staticmethod
    async def list_bookings(db: AsyncSession, filters: BookingFilters) -> Tuple[List[Booking], int]:
        """Admin listing with filters, search, sorting and pagination."""
        query = select(Booking)

        if filters.status:
            query = query.where(Booking.status == filters.status)
        if filters.payment_status:
            query = query.where(Booking.payment_status == filters.payment_status)
        if filters.date_from:
            query = query.where(Booking.departure_time >= as_utc(filters.date_from))
        if filters.date_to:
            query = query.where(Booking.departure_time <= as_utc(filters.date_to))
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            query = query.where(or_(
                Booking.customer_name.ilike(pattern),
                Booking.customer_phone.ilike(pattern),
                Booking.pickup_address.ilike(pattern),
                Booking.destination_address.ilike(pattern),
            ))

        sort_column = SORTABLE_COLUMNS.get(filters.sort_by, Booking.created_at)
        order = asc if filters.sort_order == "asc" else desc

        try:
            total = await db.scalar(select(func.count()).select_from(query.subquery()))

            offset = (filters.page - 1) * filters.page_size
            result = await db.execute(
                query.order_by(order(sort_column), order(Booking.id)).offset(offset).limit(filters.page_size)
            )
            return list(result.scalars().all()), total
        except SQLAlchemyError as e:
            raise UpstreamError("Failed to list bookings") from e

    @staticmethod
    async def cancel_booking(db: AsyncSession, booking_id: int) -> Booking:
        """
        Cancel a pending or confirmed booking and release its driver.

        Raises:
            InvalidStateError: Booking is in progress or already terminal
        """
        booking = await BookingService.get_booking(db, booking_id)

        if booking.status not in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
            raise InvalidStateError(
                f"Cannot cancel {booking.status.value} booking",
                details={"booking_id": booking_id, "status": booking.status.value}
            )

        try:
            await db.execute(
                update(DriverAssignment)
                .where(
                    DriverAssignment.booking_id == booking.id,
                    DriverAssignment.status == AssignmentStatus.ASSIGNED
                )
                .values(status=AssignmentStatus.RELEASED)
                .execution_options(synchronize_session="evaluate")
            )
            booking.status = BookingStatus.CANCELLED
            await db.commit()
            await db.refresh(booking)
        except SQLAlchemyError as e:
            await db.rollback()
            raise UpstreamError("Failed to cancel booking") from e

        logger.info("Booking %s cancelled", booking_id)
        return booking

    @staticmethod
    async def complete_booking(db: AsyncSession, booking_id: int) -> Booking:
        """
        Mark a booking completed. The assignment is kept as the trip record.

        Raises:
            InvalidStateError: Booking already cancelled or completed
        """
        booking = await BookingService.get_booking(db, booking_id)

        if booking.status in TERMINAL_BOOKING_STATUSES:
            raise InvalidStateError(
                f"Cannot complete {booking.status.value} booking",
                details={"booking_id": booking_id, "status": booking.status.value}
            )

        try:
            booking.status = BookingStatus.COMPLETED
            await db.commit()
            await db.refresh(booking)
        except SQLAlchemyError as e:
            await db.rollback()
            raise UpstreamError("Failed to complete booking") from e

        logger.info("Booking %s completed", booking_id)
        return booking

    @staticmethod
    async def record_payment_outcome(
        db: AsyncSession,
        booking_id: int,
        processor_status: str
    ) -> BookingTransition:
        """
        Apply a payment processor outcome to a booking.

        Mapping:
        - ``succeeded`` -> paid; a pending booking becomes confirmed
        - ``failed`` -> failed
        - ``refunded`` -> refunded
        - anything else (processing, requires_action, canceled...) -> pending

        Repeating a success is a no-op for the booking status.
        """
        booking = await BookingService.get_booking(db, booking_id)
        processor_status = processor_status.strip().lower()

        became_confirmed = False
        if processor_status == "succeeded":
            payment_status = PaymentStatus.PAID
            if booking.status == BookingStatus.PENDING:
                booking.status = BookingStatus.CONFIRMED
                became_confirmed = True
        elif processor_status == "failed":
            payment_status = PaymentStatus.FAILED
        elif processor_status == "refunded":
            payment_status = PaymentStatus.REFUNDED
        else:
            payment_status = PaymentStatus.PENDING

        try:
            booking.payment_status = payment_status
            await db.commit()
            await db.refresh(booking)
        except SQLAlchemyError as e:
            await db.rollback()
            raise UpstreamError("Failed to update payment status") from e

        logger.info("Booking %s payment %s -> %s", booking_id, processor_status, payment_status.value)
        return BookingTransition(booking=booking, became_confirmed=became_confirmed)

    @staticmethod
    async def delete_booking(db: AsyncSession, booking_id: int) -> None:
        """
        Delete a booking and its driver assignments in one transaction.

        Assignments go first; the store has no cascade on them.
        """
        booking = await BookingService.get_booking(db, booking_id)

        try:
            await db.execute(
                delete(DriverAssignment)
                .where(DriverAssignment.booking_id == booking.id)
                .execution_options(synchronize_session="evaluate")
            )
            await db.delete(booking)
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise UpstreamError("Failed to delete booking") from e

        logger.info("Booking %s deleted", booking_id)
