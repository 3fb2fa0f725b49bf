"""
Quote and vehicle tariff schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from transfer_backend.app.schemas.booking import Location


class QuoteRequest(BaseModel):
    """Price a route before booking."""
    vehicle_tariff_id: int
    departure_time: datetime
    pickup: Location
    destination: Location
    distance_km: Optional[Decimal] = Field(None, ge=0)
    duration_minutes: Optional[Decimal] = Field(None, ge=0)


class SurchargeResponse(BaseModel):
    name: str
    multiplier: Decimal


class QuoteResponse(BaseModel):
    """Quoted price. ``total_price`` is rounded to cents."""
    vehicle_tariff_id: int
    distance_km: Decimal
    duration_minutes: Decimal
    pickup_country: Optional[str]
    destination_country: Optional[str]
    base_price: Decimal
    surcharges: List[SurchargeResponse]
    total_price: Decimal
    route_fallback: bool = False


class VehicleTariffCreate(BaseModel):
    """Schema for creating a vehicle tariff."""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    base_fare: Decimal = Field(..., ge=0, decimal_places=2)
    per_kilometer: Decimal = Field(..., ge=0, decimal_places=2)
    max_passengers: int = Field(..., ge=1)
    max_luggage: int = Field(..., ge=0)


class VehicleTariffUpdate(BaseModel):
    """Partial tariff update."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    base_fare: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    per_kilometer: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    max_passengers: Optional[int] = Field(None, ge=1)
    max_luggage: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class VehicleTariffResponse(BaseModel):
    """Schema for displaying a vehicle tariff."""
    id: int
    name: str
    description: Optional[str]
    base_fare: Decimal
    per_kilometer: Decimal
    max_passengers: int
    max_luggage: int
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
