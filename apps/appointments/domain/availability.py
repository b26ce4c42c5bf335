"""
Availability Calculator

Derives free time per barber for one date and classifies the day:

- NO_AVAILABILITY: no free time at all (also when nobody works that day)
- FREE: free time reaches ``free_threshold`` of capacity (1.0 = untouched day)
- PARTIALLY_AVAILABLE: anything in between

Results are plain values, recomputed on every call and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional, Sequence
from uuid import UUID

from shared.domain.value_objects import TimeInterval

from .entities import Appointment, BarberSchedule
from .intervals import align_to_grid, merge, subtract_all, total_duration, trim_before


class AvailabilityStatus(Enum):
    FREE = 'free'
    PARTIALLY_AVAILABLE = 'partially_available'
    NO_AVAILABILITY = 'no_availability'


@dataclass(frozen=True)
class BarberAvailability:
    barber_id: UUID
    shifts: List[TimeInterval]
    free: List[TimeInterval]  # still bookable
    capacity: timedelta
    free_time: timedelta  # shifts minus appointments


@dataclass(frozen=True)
class DayAvailability:
    date: date
    status: AvailabilityStatus
    barbers: List[BarberAvailability] = field(default_factory=list)
    barber_id: Optional[UUID] = None  # None means the whole shop
    total_free: timedelta = timedelta(0)
    total_capacity: timedelta = timedelta(0)

    @property
    def free_intervals(self) -> List[TimeInterval]:
        """Shop-wide free time: union of every barber's free intervals"""
        return merge(interval for barber in self.barbers for interval in barber.free)


@dataclass(frozen=True)
class SlotAvailability:
    interval: TimeInterval
    available: bool
    barber_ids: List[UUID] = field(default_factory=list)


class AvailabilityCalculator:
    """
    Usage:
        calculator = AvailabilityCalculator(free_threshold=Decimal('1'))
        summary = calculator.summarize(day, barbers, appointments, now=now)
    """

    def __init__(self, free_threshold=Decimal('1'), tz: Optional[tzinfo] = None):
        threshold = Decimal(str(free_threshold))
        if not Decimal('0') < threshold <= Decimal('1'):
            raise ValueError(f"free_threshold must be in (0, 1], got {free_threshold}")
        self.free_threshold = threshold
        self.tz = tz

    def barber_availability(
        self,
        barber: BarberSchedule,
        day: date,
        appointments: Iterable[Appointment],
        now: Optional[datetime] = None,
    ) -> BarberAvailability:
        shifts = barber.shifts_on(day, self.tz)
        busy = [
            appointment.interval
            for appointment in appointments
            if appointment.barber_id == barber.id and appointment.is_active
        ]
        unbooked = subtract_all(shifts, busy)
        # Time already gone cannot be booked, but it is not taken either
        free = trim_before(unbooked, now) if now is not None else unbooked

        return BarberAvailability(
            barber_id=barber.id,
            shifts=shifts,
            free=free,
            capacity=total_duration(shifts),
            free_time=total_duration(unbooked),
        )

    def classify(self, total_free: timedelta, total_capacity: timedelta) -> AvailabilityStatus:
        if total_free <= timedelta(0) or total_capacity <= timedelta(0):
            return AvailabilityStatus.NO_AVAILABILITY

        free_seconds = Decimal(int(total_free.total_seconds()))
        capacity_seconds = Decimal(int(total_capacity.total_seconds()))
        if free_seconds >= capacity_seconds * self.free_threshold:
            return AvailabilityStatus.FREE
        return AvailabilityStatus.PARTIALLY_AVAILABLE

    def summarize(
        self,
        day: date,
        barbers: Sequence[BarberSchedule],
        appointments: Iterable[Appointment],
        *,
        now: Optional[datetime] = None,
        slot: Optional[timedelta] = None,
        barber_id: Optional[UUID] = None,
    ) -> DayAvailability:
        """
        Day-level summary for the given barbers.

        ``slot`` only affects the reported free intervals (they shrink to
        slot boundaries); the status is computed from exact free time.
        ``now`` trims the reported intervals as well; the status of today
        still counts only appointments, and earlier dates have no
        availability.
        """
        appointments = list(appointments)
        per_barber = [
            self.barber_availability(barber, day, appointments, now)
            for barber in barbers
            if barber.is_active
        ]

        total_free = sum((b.free_time for b in per_barber), timedelta(0))
        total_capacity = sum((b.capacity for b in per_barber), timedelta(0))
        status = self.classify(total_free, total_capacity)
        if now is not None and day < now.date():
            status = AvailabilityStatus.NO_AVAILABILITY

        if slot is not None:
            origin = self._midnight(day)
            per_barber = [
                BarberAvailability(
                    barber_id=b.barber_id,
                    shifts=b.shifts,
                    free=align_to_grid(b.free, slot, origin),
                    capacity=b.capacity,
                    free_time=b.free_time,
                )
                for b in per_barber
            ]

        return DayAvailability(
            date=day,
            status=status,
            barbers=per_barber,
            barber_id=barber_id,
            total_free=total_free,
            total_capacity=total_capacity,
        )

    def slot_grid(
        self,
        day: date,
        barbers: Sequence[BarberSchedule],
        appointments: Iterable[Appointment],
        slot: timedelta,
        *,
        now: Optional[datetime] = None,
    ) -> List[SlotAvailability]:
        """
        Fixed-size slots from the earliest shift start to the latest shift end.

        A slot is available when at least one barber has the whole slot free.
        """
        if slot <= timedelta(0):
            raise ValueError("Slot size must be positive")

        appointments = list(appointments)
        per_barber = [
            self.barber_availability(barber, day, appointments, now)
            for barber in barbers
            if barber.is_active
        ]
        all_shifts = [shift for b in per_barber for shift in b.shifts]
        if not all_shifts:
            return []

        opening = min(shift.start for shift in all_shifts)
        closing = max(shift.end for shift in all_shifts)

        slots = []
        cursor = opening
        while cursor < closing:
            candidate = TimeInterval(cursor, min(cursor + slot, closing))
            free_barbers = [
                b.barber_id for b in per_barber
                if any(interval.contains(candidate) for interval in b.free)
            ]
            slots.append(SlotAvailability(
                interval=candidate,
                available=bool(free_barbers),
                barber_ids=free_barbers,
            ))
            cursor += slot
        return slots

    def _midnight(self, day: date) -> datetime:
        return datetime.combine(day, time(0), tzinfo=self.tz)
