"""
Availability read side.

Queries never take the barber locks: they read current appointments and
working hours and recompute the summary on every call.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional
from uuid import UUID

from shared.domain.value_objects import TimeInterval

from ..domain.availability import AvailabilityCalculator, DayAvailability, SlotAvailability
from ..domain.entities import BarberSchedule
from ..domain.exceptions import ProviderInactiveError
from .context import BookingContext, BookingPolicy
from .validators import validate_date_range, validate_slot_minutes

logger = logging.getLogger(__name__)


class AvailabilityQueries:
    """
    Usage:
        queries = AvailabilityQueries(context)
        summary = queries.day(date(2025, 3, 14), barber_id=barber.id, slot_minutes=15)
    """

    def __init__(self, context: BookingContext):
        self.context = context

    def day(
        self,
        day: date,
        barber_id: Optional[UUID] = None,
        slot_minutes: Optional[int] = None,
    ) -> DayAvailability:
        policy = self.context.policy
        slot = None
        if slot_minutes is not None:
            validate_slot_minutes(slot_minutes)
            slot = timedelta(minutes=slot_minutes)

        barbers = self._scope(barber_id)
        appointments = self.context.appointments.list_for_barbers(
            [b.id for b in barbers], self._window(day, day, policy),
        )
        return self._calculator(policy).summarize(
            day, barbers, appointments,
            now=self._now(policy), slot=slot, barber_id=barber_id,
        )

    def range(self, start: date, end: date, barber_id: Optional[UUID] = None) -> List[DayAvailability]:
        """One summary per date in [start, end]"""
        policy = self.context.policy
        validate_date_range(start, end, policy)

        barbers = self._scope(barber_id)
        # One read for the whole range, split per date by the calculator
        appointments = self.context.appointments.list_for_barbers(
            [b.id for b in barbers], self._window(start, end, policy),
        )
        calculator = self._calculator(policy)
        now = self._now(policy)

        days = []
        current = start
        while current <= end:
            days.append(calculator.summarize(current, barbers, appointments, now=now, barber_id=barber_id))
            current += timedelta(days=1)
        return days

    def slots(
        self,
        day: date,
        barber_id: Optional[UUID] = None,
        slot_minutes: Optional[int] = None,
    ) -> List[SlotAvailability]:
        policy = self.context.policy
        if slot_minutes is None:
            slot_minutes = policy.default_slot_minutes
        validate_slot_minutes(slot_minutes)

        barbers = self._scope(barber_id)
        appointments = self.context.appointments.list_for_barbers(
            [b.id for b in barbers], self._window(day, day, policy),
        )
        return self._calculator(policy).slot_grid(
            day, barbers, appointments, timedelta(minutes=slot_minutes), now=self._now(policy),
        )

    def _scope(self, barber_id: Optional[UUID]) -> List[BarberSchedule]:
        if barber_id is None:
            return self.context.barbers.list_active_barbers()
        barber = self.context.barbers.get_barber(barber_id)
        if barber is None or not barber.is_active:
            raise ProviderInactiveError(f"Barber {barber_id} not found or not active")
        return [barber]

    def _calculator(self, policy: BookingPolicy) -> AvailabilityCalculator:
        return AvailabilityCalculator(free_threshold=policy.free_threshold, tz=policy.timezone)

    def _now(self, policy: BookingPolicy) -> Optional[datetime]:
        if not policy.hide_past:
            return None
        now = self.context.now()
        if policy.timezone is None and now.tzinfo is not None:
            # Naive deployments keep every datetime naive
            return now.replace(tzinfo=None)
        return policy.localize(now)

    @staticmethod
    def _window(start: date, end: date, policy: BookingPolicy) -> TimeInterval:
        return TimeInterval(
            datetime.combine(start, time(0), tzinfo=policy.timezone),
            datetime.combine(end + timedelta(days=1), time(0), tzinfo=policy.timezone),
        )
