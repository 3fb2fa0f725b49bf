"""
Booking Service Tests.

Creation (server-side pricing, capacity), lifecycle transitions, payment
outcomes, admin listing and cascade delete.
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from sqlalchemy import select

from transfer_backend.app.core.exceptions import InvalidInputError, InvalidStateError, ResourceNotFoundError
from transfer_backend.app.domain.booking.booking_service import BookingService
from transfer_backend.app.domain.dispatch.availability_resolver import AvailabilityResolver
from transfer_backend.app.models.booking import Booking
from transfer_backend.app.models.booking_enums import BookingStatus, PaymentMethod, PaymentStatus
from transfer_backend.app.models.driver_assignment import DriverAssignment
from transfer_backend.app.schemas.booking import BookingCreate, BookingFilters, Location

# 13:00 in Riga
DAYTIME = datetime(2026, 7, 1, 10, 0, tzinfo=timezone.utc)
# 23:00 in Riga
NIGHT = datetime(2026, 7, 1, 20, 0, tzinfo=timezone.utc)

RIGA = Location(address="Brivibas iela 1, Riga, LV-1010, Latvia", latitude=56.9496, longitude=24.1052)
AIRPORT = Location(address="Riga International Airport, Marupe, Latvia", latitude=56.9236, longitude=23.9711)
TALLINN = Location(address="Viru valjak 4, Tallinn, Estonia", latitude=59.4370, longitude=24.7536)


def booking_payload(tariff, **overrides) -> BookingCreate:
    fields = dict(
        pickup=AIRPORT,
        destination=RIGA,
        vehicle_tariff_id=tariff.id,
        departure_time=DAYTIME,
        passenger_count=2,
        luggage_count=2,
        customer_name="  Liga Berzina ",
        customer_phone="+37120000001",
        payment_method=PaymentMethod.CARD,
    )
    fields.update(overrides)
    return BookingCreate(**fields)


@pytest.mark.asyncio
async def test_card_booking_starts_pending(db_session, customer_profile, tariff):
    result = await BookingService.create_booking(
        db_session, customer_profile.id, booking_payload(tariff),
        distance_km=Decimal("40"), duration_minutes=Decimal("35")
    )
    booking = result.booking

    assert result.became_confirmed is False
    assert booking.status == BookingStatus.PENDING
    assert booking.payment_status == PaymentStatus.PENDING
    assert booking.total_price == Decimal("80.00")
    assert booking.base_price == Decimal("80.00")
    assert booking.customer_name == "Liga Berzina"


@pytest.mark.asyncio
async def test_cash_booking_is_confirmed_immediately(db_session, customer_profile, tariff):
    result = await BookingService.create_booking(
        db_session, customer_profile.id, booking_payload(tariff, payment_method=PaymentMethod.CASH),
        distance_km=Decimal("40"), duration_minutes=Decimal("35")
    )

    assert result.became_confirmed is True
    assert result.booking.status == BookingStatus.CONFIRMED
    assert result.booking.payment_status == PaymentStatus.PENDING


@pytest.mark.asyncio
async def test_price_recomputed_with_surcharges(db_session, customer_profile, tariff):
    result = await BookingService.create_booking(
        db_session, customer_profile.id,
        booking_payload(tariff, pickup=RIGA, destination=TALLINN, departure_time=NIGHT),
        distance_km=Decimal("300"), duration_minutes=Decimal("270")
    )

    assert result.booking.base_price == Decimal("470.00")
    assert result.booking.total_price == Decimal("843.18")


@pytest.mark.asyncio
async def test_naive_departure_is_stored_as_utc(db_session, customer_profile, tariff):
    result = await BookingService.create_booking(
        db_session, customer_profile.id,
        booking_payload(tariff, departure_time=datetime(2026, 7, 1, 20, 0)),
        distance_km=Decimal("40"), duration_minutes=Decimal("35")
    )

    # 20:00 UTC is night in Riga: 80.00 * 1.30
    assert result.booking.total_price == Decimal("104.00")


@pytest.mark.asyncio
@pytest.mark.parametrize("field,value", [("passenger_count", 4), ("luggage_count", 4)])
async def test_capacity_validation(db_session, customer_profile, tariff, field, value):
    with pytest.raises(InvalidInputError) as exc_info:
        await BookingService.create_booking(
            db_session, customer_profile.id, booking_payload(tariff, **{field: value}),
            distance_km=Decimal("40"), duration_minutes=Decimal("35")
        )
    assert exc_info.value.details["field"] == field

    count = len((await db_session.execute(select(Booking))).scalars().all())
    assert count == 0


@pytest.mark.asyncio
async def test_inactive_tariff_rejected(db_session, customer_profile, tariff):
    tariff.is_active = False
    await db_session.commit()

    with pytest.raises(ResourceNotFoundError):
        await BookingService.create_booking(
            db_session, customer_profile.id, booking_payload(tariff),
            distance_km=Decimal("40"), duration_minutes=Decimal("35")
        )


@pytest.mark.asyncio
@pytest.mark.parametrize("start", [BookingStatus.PENDING, BookingStatus.CONFIRMED])
async def test_cancel_from_pending_or_confirmed(db_session, make_booking, start):
    booking = await make_booking(status=start)

    cancelled = await BookingService.cancel_booking(db_session, booking.id)
    assert cancelled.status == BookingStatus.CANCELLED


@pytest.mark.asyncio
@pytest.mark.parametrize("start", [BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED, BookingStatus.COMPLETED])
async def test_cancel_rejected_for_other_states(db_session, make_booking, start):
    booking = await make_booking(status=start)

    with pytest.raises(InvalidStateError):
        await BookingService.cancel_booking(db_session, booking.id)


@pytest.mark.asyncio
@pytest.mark.parametrize("start", [BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS])
async def test_complete_from_non_terminal(db_session, make_booking, start):
    booking = await make_booking(status=start)

    completed = await BookingService.complete_booking(db_session, booking.id)
    assert completed.status == BookingStatus.COMPLETED


@pytest.mark.asyncio
@pytest.mark.parametrize("start", [BookingStatus.CANCELLED, BookingStatus.COMPLETED])
async def test_complete_rejected_for_terminal(db_session, make_booking, start):
    booking = await make_booking(status=start)

    with pytest.raises(InvalidStateError):
        await BookingService.complete_booking(db_session, booking.id)


@pytest.mark.asyncio
async def test_payment_success_confirms_pending_booking(db_session, make_booking):
    booking = await make_booking(status=BookingStatus.PENDING)

    result = await BookingService.record_payment_outcome(db_session, booking.id, "succeeded")
    assert result.became_confirmed is True
    assert result.booking.status == BookingStatus.CONFIRMED
    assert result.booking.payment_status == PaymentStatus.PAID

    # Repeating the success changes nothing
    again = await BookingService.record_payment_outcome(db_session, booking.id, "Succeeded")
    assert again.became_confirmed is False
    assert again.booking.status == BookingStatus.CONFIRMED
    assert again.booking.payment_status == PaymentStatus.PAID


@pytest.mark.asyncio
@pytest.mark.parametrize("processor_status,expected", [
    ("failed", PaymentStatus.FAILED),
    ("refunded", PaymentStatus.REFUNDED),
    ("requires_action", PaymentStatus.PENDING),
    ("processing", PaymentStatus.PENDING),
])
async def test_payment_outcome_mapping(db_session, make_booking, processor_status, expected):
    booking = await make_booking(status=BookingStatus.PENDING)

    result = await BookingService.record_payment_outcome(db_session, booking.id, processor_status)
    assert result.booking.payment_status == expected
    assert result.booking.status == BookingStatus.PENDING
    assert result.became_confirmed is False


@pytest.mark.asyncio
async def test_payment_for_missing_booking(db_session):
    with pytest.raises(ResourceNotFoundError):
        await BookingService.record_payment_outcome(db_session, 9999, "succeeded")


@pytest.mark.asyncio
async def test_delete_removes_assignments_too(db_session, drivers, admin_profile, make_booking):
    booking = await make_booking()
    booking_id = booking.id
    await AvailabilityResolver.assign(db_session, booking_id, drivers[0].id, admin_profile.id)

    await BookingService.delete_booking(db_session, booking_id)

    assert await db_session.scalar(select(Booking).where(Booking.id == booking_id)) is None
    rows = (await db_session.execute(
        select(DriverAssignment).where(DriverAssignment.booking_id == booking_id)
    )).scalars().all()
    assert rows == []

    with pytest.raises(ResourceNotFoundError):
        await BookingService.get_booking(db_session, booking_id)


@pytest.mark.asyncio
async def test_customer_listing_only_returns_own_bookings(
    db_session, make_booking, other_customer_profile, customer_profile
):
    await make_booking(departure_time=DAYTIME)
    await make_booking(departure_time=DAYTIME + timedelta(days=1))
    await make_booking(customer_id=other_customer_profile.id)

    mine = await BookingService.list_customer_bookings(db_session, customer_profile.id)
    assert len(mine) == 2
    # Latest departure first
    assert mine[0].departure_time > mine[1].departure_time


@pytest.mark.asyncio
async def test_admin_listing_filters(db_session, make_booking):
    await make_booking(status=BookingStatus.PENDING, customer_name="Anna Liepa", departure_time=DAYTIME)
    await make_booking(status=BookingStatus.CONFIRMED, customer_name="Peteris Kalns",
                       departure_time=DAYTIME + timedelta(days=2))
    await make_booking(status=BookingStatus.CANCELLED, destination_address="Tallinn, Estonia",
                       departure_time=DAYTIME + timedelta(days=5))

    bookings, total = await BookingService.list_bookings(db_session, BookingFilters(status=BookingStatus.CONFIRMED))
    assert total == 1
    assert bookings[0].customer_name == "Peteris Kalns"

    bookings, total = await BookingService.list_bookings(db_session, BookingFilters(search="tallinn"))
    assert total == 1
    assert bookings[0].status == BookingStatus.CANCELLED

    bookings, total = await BookingService.list_bookings(db_session, BookingFilters(
        date_from=DAYTIME + timedelta(days=1), date_to=DAYTIME + timedelta(days=3)
    ))
    assert [b.customer_name for b in bookings] == ["Peteris Kalns"]


@pytest.mark.asyncio
async def test_admin_listing_sorting_and_pagination(db_session, make_booking):
    for days in range(5):
        await make_booking(departure_time=DAYTIME + timedelta(days=days), total_price=Decimal(100 + days))

    page, total = await BookingService.list_bookings(db_session, BookingFilters(
        sort_by="departure_time", sort_order="asc", page=2, page_size=2
    ))
    assert total == 5
    assert [b.total_price for b in page] == [Decimal("102.00"), Decimal("103.00")]

    page, total = await BookingService.list_bookings(db_session, BookingFilters(
        sort_by="total_price", sort_order="desc", page=1, page_size=1
    ))
    assert page[0].total_price == Decimal("104.00")
