"""
Audit Log Database Model.

Tracks admin actions on bookings, drivers, tariffs and settings.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from sqlalchemy.sql import func
from transfer_backend.app.db.session import Base


class AuditLog(Base):
    """
    Audit log model for tracking admin actions.

    Events logged:
    - DRIVER_ASSIGNED / DRIVER_UNASSIGNED
    - BOOKING_CANCELLED / BOOKING_COMPLETED / BOOKING_DELETED
    - PAYMENT_STATUS_CHANGED
    - TARIFF_CREATED / TARIFF_UPDATED
    - NOTIFICATION_SETTINGS_UPDATED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for system actions)
    actor_id = Column(Integer, index=True, nullable=True)
    actor_email = Column(String(255), nullable=True)

    # What action was performed
    action = Column(String(100), nullable=False, index=True)

    # Booking the action concerns, if any
    booking_id = Column(Integer, index=True, nullable=True)

    # Additional context (JSON for flexibility)
    meta_data = Column(JSON, nullable=True)

    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_email}, booking={self.booking_id})>"
