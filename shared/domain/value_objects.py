"""
Common Value Objects

Value objects used across multiple domains:
- TimeInterval: A half-open range of instants [start, end)
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

from shared.domain.base import ValueObject


@dataclass(frozen=True)
class TimeInterval(ValueObject):
    """
    Time interval value object

    Represents a range from start (inclusive) to end (exclusive).
    Used for working shifts, appointment slots and free time.
    A zero-length or inverted interval cannot be constructed.
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        if not isinstance(self.start, datetime) or not isinstance(self.end, datetime):
            raise TypeError("TimeInterval bounds must be datetimes")
        if self.start >= self.end:
            raise ValueError(f"Interval start ({self.start}) must be before end ({self.end})")

    def overlaps_with(self, other: 'TimeInterval') -> bool:
        """
        Check if this interval overlaps with another

        End is exclusive, so touching intervals don't overlap.

        Examples:
            - [10:00, 10:30) overlaps with [10:15, 10:45) -> True
            - [10:00, 10:30) overlaps with [10:30, 11:00) -> False (adjacent)
        """
        if not isinstance(other, TimeInterval):
            raise TypeError("Can only check overlap with another TimeInterval")

        return self.start < other.end and other.start < self.end

    def contains(self, other: 'TimeInterval') -> bool:
        """Check if other lies entirely inside this interval"""
        return self.start <= other.start and other.end <= self.end

    def contains_instant(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def clip(self, bounds: 'TimeInterval') -> 'TimeInterval | None':
        """Return the part of this interval inside bounds, or None"""
        start = max(self.start, bounds.start)
        end = min(self.end, bounds.end)
        if start >= end:
            return None
        return TimeInterval(start, end)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def minutes(self) -> int:
        return int(self.duration.total_seconds() // 60)

    def __str__(self):
        return f"[{self.start.isoformat()}, {self.end.isoformat()})"

    def __repr__(self):
        return f"TimeInterval({self.start!r}, {self.end!r})"
