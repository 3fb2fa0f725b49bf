"""
Booking-related enumerations.
"""

import enum


class BookingStatus(str, enum.Enum):
    """Booking status enumeration."""
    PENDING = "pending"  # Awaiting payment or driver assignment
    CONFIRMED = "confirmed"  # Driver assigned or paid
    IN_PROGRESS = "in_progress"  # Transfer under way
    COMPLETED = "completed"  # Terminal
    CANCELLED = "cancelled"  # Terminal


TERMINAL_BOOKING_STATUSES = (BookingStatus.CANCELLED, BookingStatus.COMPLETED)


class PaymentStatus(str, enum.Enum):
    """Payment status enumeration."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    """Payment method enumeration."""
    CARD = "card"
    CASH = "cash"


class AssignmentStatus(str, enum.Enum):
    """Driver assignment status enumeration."""
    ASSIGNED = "assigned"
    RELEASED = "released"
