"""
Appointment Domain Entities

Core business entities for the appointment domain:
- Appointment: Aggregate representing one booked service with one barber
- BarberSchedule: Read snapshot of a barber and their weekly working hours
- ServiceOffering: Read snapshot of a catalog service
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import List, Optional, Tuple
from uuid import UUID, uuid4

from shared.domain.base import Aggregate
from shared.domain.value_objects import TimeInterval

from .intervals import merge
from .state_machine import (
    Actor,
    AppointmentStatus,
    UNATTENDED_STATUSES,
    ensure_transition,
)


@dataclass(frozen=True)
class WorkingShift:
    """Recurring working hours of a barber on one weekday (0 = Monday)"""
    weekday: int
    start: time
    end: time

    def __post_init__(self):
        if not 0 <= self.weekday <= 6:
            raise ValueError(f"Weekday must be 0..6, got {self.weekday}")
        if self.start >= self.end:
            raise ValueError(f"Shift start ({self.start}) must be before end ({self.end})")

    def on(self, day: date, tz: Optional[tzinfo] = None) -> TimeInterval:
        return TimeInterval(
            datetime.combine(day, self.start, tzinfo=tz),
            datetime.combine(day, self.end, tzinfo=tz),
        )


@dataclass(frozen=True)
class BarberSchedule:
    """
    Barber as seen by the booking core.

    Supplied by the provider directory and never mutated here.
    """
    id: UUID
    working_hours: Tuple[WorkingShift, ...] = ()
    is_active: bool = True
    name: str = ''

    def shifts_on(self, day: date, tz: Optional[tzinfo] = None) -> List[TimeInterval]:
        """Merged, ordered working intervals for a calendar date"""
        return merge(
            shift.on(day, tz)
            for shift in self.working_hours
            if shift.weekday == day.weekday()
        )

    def covers(self, interval: TimeInterval, tz: Optional[tzinfo] = None) -> bool:
        """True if the interval fits entirely inside one shift of its date"""
        day = interval.start.date()
        return any(shift.contains(interval) for shift in self.shifts_on(day, tz))


@dataclass(frozen=True)
class ServiceOffering:
    id: UUID
    duration_minutes: int
    is_active: bool = True
    name: str = ''

    @property
    def duration(self) -> timedelta:
        return timedelta(minutes=self.duration_minutes)


@dataclass(eq=False)
class Appointment(Aggregate):
    """
    Appointment Aggregate Root

    Key invariants:
    - The interval never changes after creation (rescheduling books a new
      appointment and cancels this one)
    - The interval lies within a single calendar day
    - Terminal statuses (COMPLETED, CANCELLED, NO_SHOW) are final
    """

    barber_id: UUID = None
    client_id: str = ''
    service_id: UUID = None
    interval: TimeInterval = None
    status: AppointmentStatus = AppointmentStatus.SCHEDULED

    cancellation_reason: str = ''
    rescheduled_from_id: Optional[UUID] = None

    confirmed_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    no_show_at: Optional[datetime] = None

    def __post_init__(self):
        if self.interval is None:
            raise ValueError("Appointment must have an interval")
        if self.barber_id is None or self.service_id is None:
            raise ValueError("Appointment must reference a barber and a service")

        start, end = self.interval.start, self.interval.end
        ends_at_midnight = end.time() == time(0) and end.date() == start.date() + timedelta(days=1)
        if end.date() != start.date() and not ends_at_midnight:
            raise ValueError(f"Appointment {self.interval} spans more than one day")

    @classmethod
    def book(
        cls,
        *,
        barber_id: UUID,
        client_id: str,
        service_id: UUID,
        start: datetime,
        duration: timedelta,
        now: datetime,
        rescheduled_from_id: Optional[UUID] = None,
    ) -> 'Appointment':
        """
        Create a SCHEDULED appointment.

        ``duration`` is the service duration at booking time; later catalog
        changes never touch existing appointments.
        """
        from .events import AppointmentScheduled

        interval = TimeInterval(start, start + duration)
        appointment = cls(
            id=uuid4(),
            created_at=now,
            updated_at=now,
            barber_id=barber_id,
            client_id=client_id,
            service_id=service_id,
            interval=interval,
            status=AppointmentStatus.SCHEDULED,
            rescheduled_from_id=rescheduled_from_id,
        )
        appointment.add_event(AppointmentScheduled(
            aggregate_id=appointment.id,
            appointment_id=appointment.id,
            barber_id=barber_id,
            client_id=client_id,
            service_id=service_id,
            interval=interval,
        ))
        return appointment

    @property
    def start_time(self) -> datetime:
        return self.interval.start

    @property
    def end_time(self) -> datetime:
        return self.interval.end

    @property
    def duration(self) -> timedelta:
        return self.interval.duration

    @property
    def is_active(self) -> bool:
        return self.status.blocks_time

    def _move_to(self, target: AppointmentStatus, now: datetime, **guard) -> AppointmentStatus:
        ensure_transition(self.status, target, **guard)
        previous = self.status
        self.status = target
        self.updated_at = now
        return previous

    def confirm(self, now: datetime):
        """SCHEDULED -> CONFIRMED"""
        from .events import AppointmentConfirmed

        self._move_to(AppointmentStatus.CONFIRMED, now)
        self.confirmed_at = now
        self.add_event(AppointmentConfirmed(
            aggregate_id=self.id, appointment_id=self.id, barber_id=self.barber_id,
        ))

    def start(self, now: datetime):
        """CONFIRMED -> IN_PROGRESS (client checked in)"""
        from .events import AppointmentStarted

        self._move_to(AppointmentStatus.IN_PROGRESS, now)
        self.started_at = now
        self.add_event(AppointmentStarted(
            aggregate_id=self.id, appointment_id=self.id, barber_id=self.barber_id,
        ))

    def complete(self, now: datetime, allow_fast_path: bool = False):
        """IN_PROGRESS -> COMPLETED, or straight from SCHEDULED/CONFIRMED on the fast path"""
        from .events import AppointmentCompleted

        self._move_to(AppointmentStatus.COMPLETED, now, allow_fast_path=allow_fast_path)
        self.completed_at = now
        self.add_event(AppointmentCompleted(
            aggregate_id=self.id,
            appointment_id=self.id,
            barber_id=self.barber_id,
            client_id=self.client_id,
        ))

    def cancel(self, reason: str, now: datetime, actor: Actor = Actor.CLIENT) -> bool:
        """
        Cancel the appointment and free its slot.

        Returns False without touching anything when it is already
        cancelled, so repeated cancellation is harmless.
        """
        from .events import AppointmentCancelled

        if self.status is AppointmentStatus.CANCELLED:
            return False

        previous = self._move_to(AppointmentStatus.CANCELLED, now, actor=actor)
        self.cancellation_reason = reason
        self.cancelled_at = now
        self.add_event(AppointmentCancelled(
            aggregate_id=self.id,
            appointment_id=self.id,
            barber_id=self.barber_id,
            reason=reason,
            old_status=previous.value,
        ))
        return True

    def mark_no_show(self, now: datetime):
        """Expire an unattended appointment (system only)"""
        from .events import AppointmentMarkedNoShow

        previous = self._move_to(AppointmentStatus.NO_SHOW, now, actor=Actor.SYSTEM)
        self.no_show_at = now
        self.add_event(AppointmentMarkedNoShow(
            aggregate_id=self.id,
            appointment_id=self.id,
            barber_id=self.barber_id,
            old_status=previous.value,
        ))

    def is_unattended(self, now: datetime, grace: timedelta) -> bool:
        """The slot (plus grace) has passed and the client never checked in"""
        return self.status in UNATTENDED_STATUSES and self.interval.end + grace <= now

    def __str__(self):
        return f"Appointment {self.id} ({self.status.value}) {self.interval}"

    def __repr__(self):
        return (
            f"Appointment(id={self.id}, barber_id={self.barber_id}, "
            f"status={self.status.value}, interval={self.interval})"
        )
