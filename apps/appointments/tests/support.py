"""Test helpers: fixed ids, the test day and a settable clock."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from uuid import UUID

from apps.appointments.domain.entities import WorkingShift

UTC = timezone.utc

# 2030-01-07 is a Monday
DAY = date(2030, 1, 7)

BARBER_A = UUID("00000000-0000-0000-0000-00000000000a")
BARBER_B = UUID("00000000-0000-0000-0000-00000000000b")
HAIRCUT = UUID("00000000-0000-0000-0000-0000000000c1")
COLORING = UUID("00000000-0000-0000-0000-0000000000c2")


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=UTC)


def all_week(start: time = time(9), end: time = time(17)):
    return tuple(WorkingShift(weekday=weekday, start=start, end=end) for weekday in range(7))


class Clock:
    """Settable clock for handlers and the sweeper"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
