"""
Conflict window around a booking's departure.

A driver with another job departing within 2 hours before or after a
booking cannot take that booking.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

# Configuration
CONFLICT_BUFFER = timedelta(hours=2)


def as_utc(moment: datetime) -> datetime:
    """Normalize to an aware UTC datetime. Naive values are taken as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


@dataclass(frozen=True)
class ConflictWindow:
    start: datetime
    end: datetime

    @classmethod
    def around(cls, departure_time: datetime, buffer: timedelta = CONFLICT_BUFFER) -> "ConflictWindow":
        departure = as_utc(departure_time)
        return cls(start=departure - buffer, end=departure + buffer)

    def contains(self, moment: datetime) -> bool:
        """Inclusive on both ends."""
        return self.start <= as_utc(moment) <= self.end
