"""
Pricing Engine.

Turns a vehicle tariff, a route distance, a departure instant and the
detected route countries into a transfer price.

Surcharges compound (each multiplies the running total) in fixed order:
1. Night (22:00-06:00 local time)
2. Cross-border (pickup and destination in different known countries)
3. Long-distance cross-border (cross-border and over 250 km)

Nothing is rounded while computing. ``round_currency`` is applied only
when a price is stored or displayed. There is no peak-hour surcharge.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, List, Optional
from zoneinfo import ZoneInfo

from transfer_backend.app.core.exceptions import InvalidInputError


# Configuration
NIGHT_SURCHARGE = Decimal("1.30")
CROSS_BORDER_SURCHARGE = Decimal("1.20")
LONG_DISTANCE_CROSS_BORDER_SURCHARGE = Decimal("1.15")
LONG_DISTANCE_THRESHOLD_KM = Decimal("250")
NIGHT_START_HOUR = 22
NIGHT_END_HOUR = 6
BUSINESS_TIMEZONE = ZoneInfo("Europe/Riga")

CENT = Decimal("0.01")


@dataclass(frozen=True)
class AppliedSurcharge:
    name: str
    multiplier: Decimal


@dataclass(frozen=True)
class PriceBreakdown:
    """Unrounded result of a price computation."""
    base: Decimal
    surcharges: List[AppliedSurcharge] = field(default_factory=list)
    total: Decimal = Decimal("0")

    @property
    def is_night(self) -> bool:
        return any(s.name == "night" for s in self.surcharges)

    @property
    def is_cross_border(self) -> bool:
        return any(s.name == "cross_border" for s in self.surcharges)


def _to_decimal(value: Any, field_name: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise InvalidInputError(f"{field_name} is required", details={"field": field_name})

    if isinstance(value, float):
        if not math.isfinite(value):
            raise InvalidInputError(f"{field_name} must be a finite number", details={"field": field_name})
        # str() keeps the decimal literal the caller meant (0.1 -> "0.1")
        value = str(value)

    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidInputError(f"{field_name} must be a number", details={"field": field_name})

    if not result.is_finite():
        raise InvalidInputError(f"{field_name} must be a finite number", details={"field": field_name})
    if result < 0:
        raise InvalidInputError(f"{field_name} must not be negative", details={"field": field_name})
    return result


def local_hour(departure_time: datetime, tz: tzinfo = BUSINESS_TIMEZONE) -> int:
    """
    Hour of day of ``departure_time`` in the business timezone.

    Naive datetimes are taken to be UTC instants.
    """
    if departure_time.tzinfo is None:
        departure_time = departure_time.replace(tzinfo=timezone.utc)
    return departure_time.astimezone(tz).hour


def is_night_time(departure_time: datetime, tz: tzinfo = BUSINESS_TIMEZONE) -> bool:
    hour = local_hour(departure_time, tz)
    return hour >= NIGHT_START_HOUR or hour < NIGHT_END_HOUR


def is_cross_border(pickup_country: Optional[str], destination_country: Optional[str]) -> bool:
    """Both countries detected and different. Unknown sides never count."""
    if not pickup_country or not destination_country:
        return False
    return pickup_country.upper() != destination_country.upper()


def price_breakdown(
    tariff: Any,
    distance_km: Any,
    departure_time: datetime,
    pickup_country: Optional[str] = None,
    destination_country: Optional[str] = None,
    tz: tzinfo = BUSINESS_TIMEZONE,
) -> PriceBreakdown:
    """
    Compute the full-precision price and the surcharges that produced it.

    Args:
        tariff: Any object exposing ``base_fare`` and ``per_kilometer``
            (ORM ``VehicleTariff`` or a schema)
        distance_km: Route distance, already resolved by the caller
        departure_time: Departure instant
        pickup_country: ISO-style code detected for the pickup, or None
        destination_country: ISO-style code detected for the destination, or None
        tz: Timezone whose local hour drives the night surcharge

    Raises:
        InvalidInputError: Missing tariff, missing/negative distance or fares,
            or missing departure time
    """
    if tariff is None:
        raise InvalidInputError("tariff is required", details={"field": "tariff"})
    if not isinstance(departure_time, datetime):
        raise InvalidInputError("departure_time is required", details={"field": "departure_time"})

    base_fare = _to_decimal(getattr(tariff, "base_fare", None), "base_fare")
    per_kilometer = _to_decimal(getattr(tariff, "per_kilometer", None), "per_kilometer")
    distance = _to_decimal(distance_km, "distance_km")

    base = base_fare + distance * per_kilometer
    total = base
    surcharges: List[AppliedSurcharge] = []

    if is_night_time(departure_time, tz):
        total *= NIGHT_SURCHARGE
        surcharges.append(AppliedSurcharge("night", NIGHT_SURCHARGE))

    if is_cross_border(pickup_country, destination_country):
        total *= CROSS_BORDER_SURCHARGE
        surcharges.append(AppliedSurcharge("cross_border", CROSS_BORDER_SURCHARGE))

        if distance > LONG_DISTANCE_THRESHOLD_KM:
            total *= LONG_DISTANCE_CROSS_BORDER_SURCHARGE
            surcharges.append(
                AppliedSurcharge("long_distance_cross_border", LONG_DISTANCE_CROSS_BORDER_SURCHARGE)
            )

    return PriceBreakdown(base=base, surcharges=surcharges, total=total)


def compute_price(
    tariff: Any,
    distance_km: Any,
    departure_time: datetime,
    pickup_country: Optional[str] = None,
    destination_country: Optional[str] = None,
    tz: tzinfo = BUSINESS_TIMEZONE,
) -> Decimal:
    """Total transfer price at full precision. See ``price_breakdown``."""
    return price_breakdown(
        tariff, distance_km, departure_time, pickup_country, destination_country, tz
    ).total


def round_currency(amount: Decimal) -> Decimal:
    """Round to cents, half-up. Only for persistence and display."""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
