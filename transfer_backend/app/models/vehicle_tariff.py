"""
Vehicle Tariff database model.

Per-vehicle-class pricing: base fare plus a per-kilometer rate.
"""

from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, Boolean
from sqlalchemy.sql import func
from transfer_backend.app.db.session import Base


class VehicleTariff(Base):
    """
    Vehicle Tariff model.

    Reference data edited by admins and read by the pricing engine.
    """
    __tablename__ = "vehicle_tariffs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)

    # Pricing
    base_fare = Column(Numeric(10, 2), nullable=False)
    per_kilometer = Column(Numeric(10, 2), nullable=False)

    # Capacity
    max_passengers = Column(Integer, nullable=False)
    max_luggage = Column(Integer, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<VehicleTariff(id={self.id}, name='{self.name}', base_fare={self.base_fare})>"
