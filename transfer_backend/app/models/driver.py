"""
Driver database model.

Availability is derived from assignments, never stored on the driver.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from transfer_backend.app.db.session import Base


class Driver(Base):
    """
    Driver model.

    ``schedule_version`` is bumped by every committed assignment. The
    assignment commit updates it with a compare-and-set so two concurrent
    commits for the same driver cannot both succeed.
    """
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    profile_id = Column(Integer, ForeignKey('profiles.id'), nullable=True, index=True)

    full_name = Column(String(200), nullable=False, index=True)
    phone = Column(String(32), nullable=True)
    email = Column(String(255), nullable=True)
    license_number = Column(String(64), nullable=True)
    vehicle_info = Column(String(255), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False, index=True)
    schedule_version = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Driver(id={self.id}, name='{self.full_name}', active={self.is_active})>"
