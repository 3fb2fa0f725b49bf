"""
Driver Assignment database model.

Ensures at most one active assignment per booking through a partial
unique index.
"""

from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Enum, Index, text
from sqlalchemy.sql import func
from transfer_backend.app.db.session import Base
from transfer_backend.app.models.booking_enums import AssignmentStatus


class DriverAssignment(Base):
    """
    Driver Assignment model.

    Owned by the booking. Replaced (delete-then-insert) on reassignment;
    its absence means the booking is unassigned.
    """
    __tablename__ = "driver_assignments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # References
    booking_id = Column(Integer, ForeignKey('bookings.id'), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey('drivers.id'), nullable=False, index=True)
    assigned_by = Column(Integer, ForeignKey('profiles.id'), nullable=True)

    status = Column(Enum(AssignmentStatus), default=AssignmentStatus.ASSIGNED, nullable=False, index=True)
    notes = Column(Text, nullable=True)

    assigned_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Unique constraint: only one active assignment per booking
    __table_args__ = (
        Index(
            'ix_driver_assignments_active_booking', 'booking_id', unique=True,
            postgresql_where=text("status = 'ASSIGNED'"),
            sqlite_where=text("status = 'ASSIGNED'"),
        ),
    )

    def __repr__(self):
        return f"<DriverAssignment(booking_id={self.booking_id}, driver_id={self.driver_id}, status='{self.status.value}')>"
