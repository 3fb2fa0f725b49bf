"""
Routing schemas.
"""

from pydantic import BaseModel, Field
from decimal import Decimal


class Coordinates(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class RouteRequest(BaseModel):
    pickup: Coordinates
    destination: Coordinates


class RouteQuote(BaseModel):
    """Resolved route. ``is_fallback`` marks a great-circle estimate."""
    pickup: Coordinates
    destination: Coordinates
    distance_km: Decimal
    duration_minutes: Decimal
    is_fallback: bool = False


def to_coordinates(location) -> Coordinates:
    """Coordinates of anything with ``latitude``/``longitude`` (e.g. a booking ``Location``)."""
    return Coordinates(latitude=location.latitude, longitude=location.longitude)
