"""
Booking Engine Command Handlers

These are the use cases for the appointment domain.
They orchestrate domain operations inside the barber's critical section.

Commands:
- CreateAppointmentCommand: Book a new appointment
- CancelAppointmentCommand: Cancel an appointment (idempotent)
- RescheduleAppointmentCommand: Atomically replace an appointment with a new slot
- ConfirmAppointmentCommand / StartAppointmentCommand / CompleteAppointmentCommand:
  forward transitions of the status machine
- RecordPaymentCommand: Payment collaborator reports a completed payment
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID
import logging

from shared.domain.value_objects import TimeInterval

from ..domain.entities import Appointment
from ..domain.events import AppointmentRescheduled, PaymentRecorded
from ..domain.exceptions import (
    AppointmentNotFoundError,
    BusyError,
    InvalidStateTransitionError,
    OutsideWorkingHoursError,
    PaymentRequiredError,
    ProviderInactiveError,
    ServiceInactiveError,
    SlotConflictError,
)
from ..domain.state_machine import Actor, AppointmentStatus, ensure_transition
from .context import BookingContext
from .validators import validate_appointment_id, validate_cancel, validate_create, validate_reschedule

logger = logging.getLogger(__name__)

RESCHEDULABLE_STATUSES = frozenset({AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED})
RESCHEDULE_REASON = 'rescheduled'


# ===== Commands =====

@dataclass
class CreateAppointmentCommand:
    """
    Command to book a new appointment

    The end time is derived from the service duration.
    """
    barber_id: UUID
    service_id: UUID
    client_id: str
    start_time: datetime


@dataclass
class CancelAppointmentCommand:
    appointment_id: UUID
    reason: str = ''
    actor: Actor = Actor.CLIENT


@dataclass
class RescheduleAppointmentCommand:
    """Move an appointment to a new start time, optionally with another barber"""
    appointment_id: UUID
    new_start_time: datetime
    new_barber_id: Optional[UUID] = None


@dataclass
class ConfirmAppointmentCommand:
    appointment_id: UUID


@dataclass
class StartAppointmentCommand:
    """Client checked in"""
    appointment_id: UUID


@dataclass
class CompleteAppointmentCommand:
    appointment_id: UUID


@dataclass
class RecordPaymentCommand:
    """Payment collaborator notification: payment for the appointment succeeded"""
    appointment_id: UUID
    reference: str = ''


# ===== Command Handlers =====

class AppointmentHandler:

    def __init__(self, context: BookingContext):
        self.context = context

    def _get(self, appointment_id: UUID) -> Appointment:
        appointment = self.context.appointments.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundError(f"Appointment {appointment_id} not found")
        return appointment

    def _active_barber(self, barber_id: UUID):
        barber = self.context.barbers.get_barber(barber_id)
        if barber is None or not barber.is_active:
            raise ProviderInactiveError(f"Barber {barber_id} not found or not active")
        return barber

    def _ensure_within_shift(self, barber, interval: TimeInterval, policy):
        if not barber.covers(interval, policy.timezone):
            raise OutsideWorkingHoursError(
                f"{interval} is outside the working hours of barber {barber.id}"
            )

    def _ensure_slot_free(self, barber_id: UUID, interval: TimeInterval, exclude_id: Optional[UUID] = None):
        """Must be called inside context.writing() for the barber"""
        conflicts = [
            appointment
            for appointment in self.context.appointments.list_for_barbers([barber_id], interval)
            if appointment.id != exclude_id and appointment.interval.overlaps_with(interval)
        ]
        if conflicts:
            raise SlotConflictError(
                f"Barber {barber_id} is not available for {interval}. "
                f"Overlaps with appointment {conflicts[0].id}",
                conflicting_ids=[a.id for a in conflicts],
            )

    def _save(self, appointment: Appointment, expected_status: AppointmentStatus):
        if not self.context.appointments.save(appointment, expected_status=expected_status):
            raise BusyError(
                f"Appointment {appointment.id} was changed by another request, retry",
                appointment_id=appointment.id,
            )


class CreateAppointmentHandler(AppointmentHandler):
    """
    Handler for CreateAppointment command

    1. Validate input (no lock yet)
    2. Barber and service must be active; end = start + service duration
    3. Interval must fit one of the barber's shifts for that weekday
    4. Inside the barber's lock: re-check the barber is active, re-read
       active appointments, reject overlaps
    5. Insert as SCHEDULED; events are published after commit
    """

    def handle(self, command: CreateAppointmentCommand) -> Appointment:
        context = self.context
        policy = context.policy
        now = context.now()

        start = validate_create(command, policy, now)
        barber = self._active_barber(command.barber_id)
        service = context.services.get_service(command.service_id)
        if service is None or not service.is_active:
            raise ServiceInactiveError(f"Service {command.service_id} not found or not active")

        interval = TimeInterval(start, start + service.duration)
        self._ensure_within_shift(barber, interval, policy)

        logger.info(
            f"Creating appointment for barber {barber.id}, client {command.client_id}, "
            f"service {service.id}, interval {interval}"
        )

        with context.writing(barber.id, policy=policy) as uow:
            # Deactivation takes the same lock; it may have won the race
            self._active_barber(barber.id)
            self._ensure_slot_free(barber.id, interval)

            appointment = Appointment.book(
                barber_id=barber.id,
                client_id=command.client_id.strip(),
                service_id=service.id,
                start=start,
                duration=service.duration,
                now=now,
            )
            uow.collect_events(appointment)
            context.appointments.add(appointment)

        logger.info(f"Appointment created successfully: {appointment.id}")
        return appointment


class CancelAppointmentHandler(AppointmentHandler):
    """Cancel; an already cancelled appointment is returned unchanged"""

    def handle(self, command: CancelAppointmentCommand) -> Appointment:
        reason = validate_cancel(command)
        appointment = self._get(validate_appointment_id(command.appointment_id))
        if appointment.status is AppointmentStatus.CANCELLED:
            return appointment

        logger.info(f"Cancelling appointment {appointment.id}, reason: {reason!r}")

        with self.context.writing(appointment.barber_id) as uow:
            current = self._get(appointment.id)
            expected = current.status
            if current.cancel(reason, self.context.now(), actor=command.actor):
                uow.collect_events(current)
                self._save(current, expected)

        logger.info(f"Appointment {current.id} is {current.status.value}")
        return current


class RescheduleAppointmentHandler(AppointmentHandler):
    """
    Cancel-then-create as one critical section.

    Locks of the old and new barber are taken in ascending id order. The
    original appointment is excluded from the conflict check; on any
    failure it is left untouched.
    """

    def handle(self, command: RescheduleAppointmentCommand) -> Appointment:
        context = self.context
        policy = context.policy
        now = context.now()

        start = validate_reschedule(command, policy, now)
        original = self._get(validate_appointment_id(command.appointment_id))
        self._ensure_reschedulable(original)

        barber = self._active_barber(command.new_barber_id or original.barber_id)
        # Keeps the booked length; a later change to the service duration does not apply
        interval = TimeInterval(start, start + original.duration)
        self._ensure_within_shift(barber, interval, policy)

        logger.info(f"Rescheduling appointment {original.id} to barber {barber.id} at {interval}")

        with context.writing(original.barber_id, barber.id, policy=policy) as uow:
            current = self._get(original.id)
            self._ensure_reschedulable(current)
            self._active_barber(barber.id)
            self._ensure_slot_free(barber.id, interval, exclude_id=current.id)

            replacement = Appointment.book(
                barber_id=barber.id,
                client_id=current.client_id,
                service_id=current.service_id,
                start=start,
                duration=current.duration,
                now=now,
                rescheduled_from_id=current.id,
            )

            expected = current.status
            current.cancel(RESCHEDULE_REASON, now, actor=Actor.SHOP)
            current.add_event(AppointmentRescheduled(
                aggregate_id=current.id,
                appointment_id=current.id,
                replacement_id=replacement.id,
                barber_id=barber.id,
                new_start=start,
            ))
            uow.collect_events(current)
            uow.collect_events(replacement)
            self._save(current, expected)
            context.appointments.add(replacement)

        logger.info(f"Appointment {original.id} rescheduled as {replacement.id}")
        return replacement

    def _ensure_reschedulable(self, appointment: Appointment):
        if appointment.status not in RESCHEDULABLE_STATUSES:
            raise InvalidStateTransitionError(
                appointment.status, AppointmentStatus.CANCELLED,
                f"Cannot reschedule an appointment that is {appointment.status.value}",
            )


class _TransitionHandler(AppointmentHandler):

    def _apply(self, appointment_id: UUID, change) -> Appointment:
        appointment_id = validate_appointment_id(appointment_id)
        appointment = self._get(appointment_id)

        with self.context.writing(appointment.barber_id) as uow:
            current = self._get(appointment_id)
            expected = current.status
            change(current)
            uow.collect_events(current)
            self._save(current, expected)

        logger.info(f"Appointment {current.id}: {expected.value} -> {current.status.value}")
        return current


class ConfirmAppointmentHandler(_TransitionHandler):

    def handle(self, command: ConfirmAppointmentCommand) -> Appointment:
        return self._apply(command.appointment_id, lambda a: a.confirm(self.context.now()))


class StartAppointmentHandler(_TransitionHandler):

    def handle(self, command: StartAppointmentCommand) -> Appointment:
        return self._apply(command.appointment_id, lambda a: a.start(self.context.now()))


class CompleteAppointmentHandler(_TransitionHandler):
    """
    Complete requires a recorded payment unless the pay-later policy is on.

    The transition itself is checked first, so a terminal appointment
    reports InvalidStateTransition rather than PaymentRequired.
    """

    def handle(self, command: CompleteAppointmentCommand) -> Appointment:
        policy = self.context.policy

        def complete(appointment: Appointment):
            ensure_transition(
                appointment.status, AppointmentStatus.COMPLETED,
                allow_fast_path=policy.allow_fast_path_completion,
            )
            if not policy.pay_later and not self.context.payments.has_payment(appointment.id):
                raise PaymentRequiredError(
                    f"No completed payment recorded for appointment {appointment.id}"
                )
            appointment.complete(self.context.now(), allow_fast_path=policy.allow_fast_path_completion)

        return self._apply(command.appointment_id, complete)


class RecordPaymentHandler(AppointmentHandler):

    def handle(self, command: RecordPaymentCommand) -> Appointment:
        appointment_id = validate_appointment_id(command.appointment_id)
        appointment = self._get(appointment_id)

        with self.context.uow_factory() as uow:
            created = self.context.payments.record_payment(
                appointment.id, command.reference or '', self.context.now(),
            )
            if created:
                uow.add_event(PaymentRecorded(
                    aggregate_id=appointment.id,
                    appointment_id=appointment.id,
                    reference=command.reference or '',
                ))

        if created:
            logger.info(f"Payment recorded for appointment {appointment.id}")
        else:
            logger.info(f"Duplicate payment notification for appointment {appointment.id} ignored")
        return appointment


HANDLERS = {
    CreateAppointmentCommand: CreateAppointmentHandler,
    CancelAppointmentCommand: CancelAppointmentHandler,
    RescheduleAppointmentCommand: RescheduleAppointmentHandler,
    ConfirmAppointmentCommand: ConfirmAppointmentHandler,
    StartAppointmentCommand: StartAppointmentHandler,
    CompleteAppointmentCommand: CompleteAppointmentHandler,
    RecordPaymentCommand: RecordPaymentHandler,
}
