"""
Driver Availability & Assignment Resolver.

Finds drivers that are free around a departure and commits driver
assignments without double-booking anyone.

Availability is a snapshot: nothing is locked between the admin's query
and the commit. ``assign`` re-checks for conflicts at commit time and
claims the driver's schedule with a compare-and-set on
``drivers.schedule_version`` inside the same transaction as the insert,
so two concurrent commits for the same driver cannot both succeed.
"""

import logging
from datetime import datetime
from typing import List, Optional, Set

from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_backend.app.core.exceptions import (
    ConflictError,
    InvalidStateError,
    ResourceNotFoundError,
    UpstreamError,
)
from transfer_backend.app.domain.dispatch.conflict_window import ConflictWindow
from transfer_backend.app.models.booking import Booking
from transfer_backend.app.models.booking_enums import (
    AssignmentStatus,
    BookingStatus,
    TERMINAL_BOOKING_STATUSES,
)
from transfer_backend.app.models.driver import Driver
from transfer_backend.app.models.driver_assignment import DriverAssignment

logger = logging.getLogger("transfers.dispatch")

# Schedule claims lost to concurrent commits before giving up
MAX_CLAIM_ATTEMPTS = 3


async def conflicting_driver_ids(
    db: AsyncSession,
    window: ConflictWindow,
    exclude_booking_id: Optional[int] = None,
    driver_id: Optional[int] = None
) -> Set[int]:
    """
    Drivers holding an active assignment whose booking departs inside the window.

    Cancelled and completed bookings never conflict.

    Args:
        db: Database session
        window: Conflict window to check
        exclude_booking_id: Booking to ignore (the one being staffed)
        driver_id: Restrict the check to one driver
    """
    query = (
        select(DriverAssignment.driver_id)
        .join(Booking, Booking.id == DriverAssignment.booking_id)
        .where(
            DriverAssignment.status == AssignmentStatus.ASSIGNED,
            Booking.departure_time >= window.start,
            Booking.departure_time <= window.end,
            Booking.status.not_in(TERMINAL_BOOKING_STATUSES),
        )
    )

    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)

    if driver_id is not None:
        query = query.where(DriverAssignment.driver_id == driver_id)

    result = await db.execute(query)
    return set(result.scalars().all())


async def claim_driver_schedule(db: AsyncSession, driver_id: int, expected_version: int) -> bool:
    """
    Compare-and-set the driver's schedule version.

    Returns:
        True if the version still matched and was bumped, False if another
        assignment for this driver committed in the meantime
    """
    result = await db.execute(
        update(Driver)
        .where(Driver.id == driver_id, Driver.schedule_version == expected_version)
        .values(schedule_version=expected_version + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


class AvailabilityResolver:

    @staticmethod
    async def list_active_drivers(db: AsyncSession) -> List[Driver]:
        try:
            result = await db.execute(
                select(Driver).where(Driver.is_active == True).order_by(Driver.full_name, Driver.id)
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise UpstreamError("Failed to load drivers") from e

    @staticmethod
    async def query_available(
        db: AsyncSession,
        target_time: datetime,
        exclude_booking_id: Optional[int] = None
    ) -> List[Driver]:
        """
        Active drivers with no conflicting job within 2 hours of ``target_time``.

        Args:
            db: Database session
            target_time: Departure instant of the booking being staffed
            exclude_booking_id: Booking whose own assignment must not count
                as a conflict (re-checking an existing assignment)

        Returns:
            Free drivers ordered by name
        """
        drivers = await AvailabilityResolver.list_active_drivers(db)

        try:
            busy = await conflicting_driver_ids(
                db, ConflictWindow.around(target_time), exclude_booking_id=exclude_booking_id
            )
        except SQLAlchemyError as e:
            raise UpstreamError("Failed to load driver assignments") from e

        return [driver for driver in drivers if driver.id not in busy]

    @staticmethod
    async def assign(
        db: AsyncSession,
        booking_id: int,
        driver_id: int,
        assigned_by: Optional[int],
        notes: Optional[str] = None
    ) -> DriverAssignment:
        """
        Assign a driver to a booking.

        Flow:
        1. Booking must exist
        2. Booking must not be cancelled or completed
        3. Driver must exist and be active
        4. Re-check the driver's schedule around the departure
        5. Replace any existing assignment, confirm a pending booking and
           claim the driver's schedule in one transaction

        A lost schedule claim only means another assignment for the driver
        committed meanwhile. The transaction is rolled back and steps 1-5
        run again against fresh data, so only a real overlap is a conflict.

        Raises:
            ResourceNotFoundError: Booking or driver missing (or driver inactive)
            InvalidStateError: Booking is in a terminal state
            ConflictError: Driver is busy within the conflict window, or the
                schedule kept changing for MAX_CLAIM_ATTEMPTS attempts
            UpstreamError: Storage failure
        """
        for attempt in range(1, MAX_CLAIM_ATTEMPTS + 1):
            try:
                assignment = await AvailabilityResolver._try_assign(
                    db, booking_id, driver_id, assigned_by, notes
                )
                if assignment is not None:
                    await db.commit()
                    break
                await db.rollback()
                logger.info(
                    "Schedule of driver %s changed during assignment to booking %s, re-checking (attempt %d)",
                    driver_id, booking_id, attempt
                )
            except IntegrityError as e:
                # Another admin replaced this booking's assignment first
                await db.rollback()
                raise ConflictError(details={"booking_id": booking_id, "driver_id": driver_id}) from e
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error("Driver assignment failed for booking %s: %s", booking_id, e)
                raise UpstreamError("Failed to assign driver") from e
        else:
            logger.warning("Gave up assigning driver %s to booking %s: schedule kept changing", driver_id, booking_id)
            raise ConflictError(details={"booking_id": booking_id, "driver_id": driver_id})

        await db.refresh(assignment)
        logger.info("Driver %s assigned to booking %s", driver_id, booking_id)
        return assignment

    @staticmethod
    async def _try_assign(
        db: AsyncSession,
        booking_id: int,
        driver_id: int,
        assigned_by: Optional[int],
        notes: Optional[str]
    ) -> Optional[DriverAssignment]:
        """One validated attempt, flushed but not committed. None if the schedule claim was lost."""
        booking = await db.scalar(
            select(Booking).where(Booking.id == booking_id).execution_options(populate_existing=True)
        )
        if not booking:
            raise ResourceNotFoundError("Booking", booking_id)

        if booking.status in TERMINAL_BOOKING_STATUSES:
            raise InvalidStateError(
                f"Cannot assign driver to {booking.status.value} booking",
                details={"booking_id": booking_id, "status": booking.status.value}
            )

        driver = await db.scalar(
            select(Driver).where(Driver.id == driver_id).execution_options(populate_existing=True)
        )
        if not driver or not driver.is_active:
            raise ResourceNotFoundError("Driver", driver_id)

        # Read the version before the conflict query so a commit landing
        # in between is caught by one check or the other
        expected_version = driver.schedule_version

        window = ConflictWindow.around(booking.departure_time)
        busy = await conflicting_driver_ids(
            db, window, exclude_booking_id=booking.id, driver_id=driver.id
        )
        if busy:
            raise ConflictError(details={"booking_id": booking_id, "driver_id": driver_id})

        await db.execute(
            delete(DriverAssignment)
            .where(DriverAssignment.booking_id == booking.id)
            .execution_options(synchronize_session="evaluate")
        )

        assignment = DriverAssignment(
            booking_id=booking.id,
            driver_id=driver.id,
            assigned_by=assigned_by,
            status=AssignmentStatus.ASSIGNED,
            notes=notes or None
        )
        db.add(assignment)

        if booking.status == BookingStatus.PENDING:
            booking.status = BookingStatus.CONFIRMED

        await db.flush()

        if not await claim_driver_schedule(db, driver.id, expected_version):
            return None
        return assignment

    @staticmethod
    async def unassign(db: AsyncSession, booking_id: int) -> bool:
        """
        Remove the booking's driver assignment.

        A booking left ``confirmed`` by the assignment goes back to ``pending``.
        The confirmation is not traced to its cause, so a booking confirmed
        by payment also reverts.

        Returns:
            True if an assignment was removed, False if there was none

        Raises:
            ResourceNotFoundError: Booking missing
            InvalidStateError: Booking is in a terminal state
            UpstreamError: Storage failure
        """
        try:
            booking = await db.scalar(select(Booking).where(Booking.id == booking_id))
            if not booking:
                raise ResourceNotFoundError("Booking", booking_id)

            if booking.status in TERMINAL_BOOKING_STATUSES:
                raise InvalidStateError(
                    f"Cannot unassign driver from {booking.status.value} booking",
                    details={"booking_id": booking_id, "status": booking.status.value}
                )

            result = await db.execute(
                delete(DriverAssignment)
                .where(DriverAssignment.booking_id == booking.id)
                .execution_options(synchronize_session="evaluate")
            )
            removed = result.rowcount > 0

            if removed and booking.status == BookingStatus.CONFIRMED:
                booking.status = BookingStatus.PENDING

            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error("Driver unassignment failed for booking %s: %s", booking_id, e)
            raise UpstreamError("Failed to remove driver assignment") from e

        if removed:
            logger.info("Driver unassigned from booking %s", booking_id)
        return removed

    @staticmethod
    async def get_active_assignment(db: AsyncSession, booking_id: int) -> Optional[DriverAssignment]:
        try:
            return await db.scalar(
                select(DriverAssignment).where(
                    DriverAssignment.booking_id == booking_id,
                    DriverAssignment.status == AssignmentStatus.ASSIGNED
                )
            )
        except SQLAlchemyError as e:
            raise UpstreamError("Failed to load driver assignment") from e
