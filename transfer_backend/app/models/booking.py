"""
Booking database model.

A customer's point-to-point transfer request.
"""

from sqlalchemy import Column, Integer, String, Text, Float, Numeric, ForeignKey, DateTime, Enum
from sqlalchemy.sql import func
from transfer_backend.app.db.session import Base
from transfer_backend.app.models.booking_enums import BookingStatus, PaymentStatus, PaymentMethod


class Booking(Base):
    """
    Booking model.

    Owned by the customer who created it. Cancelled and completed
    bookings no longer accept driver assignment changes.
    """
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Ownership
    customer_id = Column(Integer, ForeignKey('profiles.id'), nullable=False, index=True)
    customer_name = Column(String(200), nullable=False)
    customer_phone = Column(String(32), nullable=False)

    # Route
    pickup_address = Column(String(500), nullable=False)
    pickup_latitude = Column(Float, nullable=False)
    pickup_longitude = Column(Float, nullable=False)
    destination_address = Column(String(500), nullable=False)
    destination_latitude = Column(Float, nullable=False)
    destination_longitude = Column(Float, nullable=False)
    distance_km = Column(Numeric(10, 2), nullable=False, default=0)
    duration_minutes = Column(Numeric(10, 2), nullable=False, default=0)

    # Vehicle and schedule
    vehicle_tariff_id = Column(Integer, ForeignKey('vehicle_tariffs.id'), nullable=False, index=True)
    departure_time = Column(DateTime(timezone=True), nullable=False, index=True)
    passenger_count = Column(Integer, nullable=False, default=1)
    luggage_count = Column(Integer, nullable=False, default=0)

    # Pricing (rounded to cents when stored)
    base_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    # Lifecycle
    status = Column(Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False, index=True)
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False, index=True)
    payment_method = Column(Enum(PaymentMethod), default=PaymentMethod.CARD, nullable=False)

    special_requirements = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Booking(id={self.id}, departure={self.departure_time}, status='{self.status.value}')>"
