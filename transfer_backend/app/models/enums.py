"""
User roles enumeration.

Defines the role types for the transfer booking system.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Manages bookings, drivers, tariffs and notification settings
        CUSTOMER: Books transfers (default role)
        DRIVER: Drives assigned transfers
    """
    ADMIN = "admin"
    CUSTOMER = "customer"
    DRIVER = "driver"
