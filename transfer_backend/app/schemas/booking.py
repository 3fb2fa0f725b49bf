"""
Booking schemas.

Schemas for booking creation, visibility and admin management.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from transfer_backend.app.models.booking_enums import BookingStatus, PaymentStatus, PaymentMethod
from transfer_backend.app.schemas.driver import DriverAssignmentResponse


class Location(BaseModel):
    """A formatted address with its coordinates."""
    address: str = Field(..., min_length=1, max_length=500)
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class BookingCreate(BaseModel):
    """Schema for submitting a booking."""
    pickup: Location
    destination: Location
    vehicle_tariff_id: int
    departure_time: datetime
    passenger_count: int = Field(1, ge=1)
    luggage_count: int = Field(0, ge=0)
    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_phone: str = Field(..., min_length=3, max_length=32)
    payment_method: PaymentMethod = PaymentMethod.CARD
    # Resolved by the client from /directions; looked up server-side when missing
    distance_km: Optional[Decimal] = Field(None, ge=0)
    duration_minutes: Optional[Decimal] = Field(None, ge=0)
    special_requirements: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)


class BookingResponse(BaseModel):
    """Schema for booking response."""
    id: int
    customer_id: int
    customer_name: str
    customer_phone: str
    pickup_address: str
    pickup_latitude: float
    pickup_longitude: float
    destination_address: str
    destination_latitude: float
    destination_longitude: float
    vehicle_tariff_id: int
    departure_time: datetime
    passenger_count: int
    luggage_count: int
    distance_km: Decimal
    duration_minutes: Decimal
    base_price: Decimal
    total_price: Decimal
    status: BookingStatus
    payment_status: PaymentStatus
    payment_method: PaymentMethod
    special_requirements: Optional[str]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class BookingDetailResponse(BookingResponse):
    """Booking with its active driver assignment (admin view)."""
    assignment: Optional[DriverAssignmentResponse] = None


class BookingListResponse(BaseModel):
    """Schema for paginated booking list."""
    bookings: List[BookingResponse]
    total: int
    page: int
    page_size: int


class BookingFilters(BaseModel):
    """Admin listing filters."""
    status: Optional[BookingStatus] = None
    payment_status: Optional[PaymentStatus] = None
    search: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    page: int = 1
    page_size: int = 10


class PaymentOutcomeUpdate(BaseModel):
    """Payment processor outcome, e.g. ``succeeded`` or ``requires_action``."""
    processor_status: str = Field(..., min_length=1, max_length=50)
