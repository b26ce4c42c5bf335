"""Booking engine against the in-memory adapters."""

from dataclasses import replace
from datetime import timedelta
from uuid import uuid4

import pytest

from apps.appointments.application.command_handlers import (
    CancelAppointmentCommand,
    CancelAppointmentHandler,
    CompleteAppointmentCommand,
    CompleteAppointmentHandler,
    ConfirmAppointmentCommand,
    ConfirmAppointmentHandler,
    CreateAppointmentCommand,
    CreateAppointmentHandler,
    RecordPaymentCommand,
    RecordPaymentHandler,
    RescheduleAppointmentCommand,
    RescheduleAppointmentHandler,
    StartAppointmentCommand,
    StartAppointmentHandler,
)
from apps.appointments.application.memory import InMemoryBarberDirectory, in_memory_context
from apps.appointments.domain.entities import ServiceOffering
from apps.appointments.domain import events
from apps.appointments.domain.exceptions import (
    AppointmentNotFoundError,
    BookingValidationError,
    InvalidStateTransitionError,
    OutsideWorkingHoursError,
    PaymentRequiredError,
    ProviderInactiveError,
    ServiceInactiveError,
    SlotConflictError,
)
from apps.appointments.domain.state_machine import AppointmentStatus

from support import BARBER_A, BARBER_B, COLORING, HAIRCUT, at


def create(context, start, barber_id=BARBER_A, service_id=HAIRCUT, client_id="client-1"):
    return CreateAppointmentHandler(context).handle(CreateAppointmentCommand(
        barber_id=barber_id,
        service_id=service_id,
        client_id=client_id,
        start_time=start,
    ))


def cancel(context, appointment_id, reason=""):
    return CancelAppointmentHandler(context).handle(CancelAppointmentCommand(appointment_id, reason))


def reschedule(context, appointment_id, start, barber_id=None):
    return RescheduleAppointmentHandler(context).handle(
        RescheduleAppointmentCommand(appointment_id, start, new_barber_id=barber_id)
    )


def stored_status(context, appointment_id):
    return context.appointments.get(appointment_id).status


class DeactivatedOnSecondRead(InMemoryBarberDirectory):
    """Reports ``barber_id`` inactive from the second lookup on"""

    def __init__(self, barbers, barber_id):
        super().__init__(barbers)
        self.barber_id = barber_id
        self.reads = 0

    def get_barber(self, barber_id):
        barber = super().get_barber(barber_id)
        if barber_id != self.barber_id:
            return barber
        self.reads += 1
        return barber if self.reads == 1 else replace(barber, is_active=False)


# ===== create =====

def test_create_books_a_scheduled_appointment(context):
    appointment = create(context, at(10))

    assert appointment.status is AppointmentStatus.SCHEDULED
    assert appointment.end_time == at(10, 30)
    assert context.appointments.get(appointment.id) is not None


def test_end_time_follows_service_duration(context):
    appointment = create(context, at(10), service_id=COLORING)

    assert appointment.end_time == at(11, 30)


def test_overlapping_request_is_a_slot_conflict(context):
    existing = create(context, at(10))

    with pytest.raises(SlotConflictError) as excinfo:
        create(context, at(10, 15), client_id="client-2")

    assert excinfo.value.context["conflicting_ids"] == [existing.id]
    assert len(context.appointments.all()) == 1


def test_adjacent_appointments_are_allowed(context):
    create(context, at(10))
    create(context, at(10, 30))
    create(context, at(9, 30))

    assert len(context.appointments.all()) == 3


def test_other_barbers_do_not_conflict(context):
    create(context, at(10), barber_id=BARBER_A)
    create(context, at(10), barber_id=BARBER_B)


def test_cancel_then_rebook_identical_slot(context):
    first = create(context, at(10))
    cancel(context, first.id, "changed plans")

    second = create(context, at(10), client_id="client-2")

    assert second.status is AppointmentStatus.SCHEDULED
    assert stored_status(context, first.id) is AppointmentStatus.CANCELLED


@pytest.mark.parametrize("start", [at(8, 45), at(16, 45)])
def test_outside_working_hours(context, start):
    with pytest.raises(OutsideWorkingHoursError):
        create(context, start)


def test_inactive_service(context):
    context.services.put(ServiceOffering(id=HAIRCUT, duration_minutes=30, is_active=False))

    with pytest.raises(ServiceInactiveError):
        create(context, at(10))


def test_unknown_service(context):
    with pytest.raises(ServiceInactiveError):
        create(context, at(10), service_id=uuid4())


def test_inactive_barber(context, barbers):
    context.barbers.put(replace(barbers[0], is_active=False))

    with pytest.raises(ProviderInactiveError):
        create(context, at(10))


def test_barber_deactivated_while_waiting_for_the_lock(context, barbers):
    context.barbers = DeactivatedOnSecondRead(barbers, BARBER_A)

    with pytest.raises(ProviderInactiveError):
        create(context, at(10))

    assert context.appointments.all() == []


def test_validation_errors_are_collected(context):
    with pytest.raises(BookingValidationError) as excinfo:
        create(context, at(10, 0).replace(second=30), barber_id="not-a-uuid", client_id="  ")

    assert set(excinfo.value.errors) == {"barber_id", "client_id", "start_time"}
    assert excinfo.value.status_code == 400


def test_past_start_is_rejected(context):
    with pytest.raises(BookingValidationError) as excinfo:
        create(context, at(7))

    assert "start_time" in excinfo.value.errors


def test_naive_start_is_rejected_when_timezone_is_configured(context):
    with pytest.raises(BookingValidationError):
        create(context, at(10).replace(tzinfo=None))


def test_validation_happens_before_locking(context):
    with context.locks.hold(BARBER_A):
        with pytest.raises(BookingValidationError):
            create(context, at(7))


def test_scheduled_event_is_published_after_commit(context, bus):
    received = []
    bus.register_event_handler(events.AppointmentScheduled, received.append)

    appointment = create(context, at(10))

    assert [e.appointment_id for e in received] == [appointment.id]


# ===== cancel =====

def test_cancel_is_idempotent(context, bus):
    received = []
    bus.register_event_handler(events.AppointmentCancelled, received.append)
    appointment = create(context, at(10))

    first = cancel(context, appointment.id, "sick")
    second = cancel(context, appointment.id, "again")

    assert first.status is second.status is AppointmentStatus.CANCELLED
    assert second.cancellation_reason == "sick"
    assert len(received) == 1


def test_cancel_completed_is_invalid(context, policy):
    context.policy_factory = lambda: replace(policy, pay_later=True)
    appointment = create(context, at(10))
    ConfirmAppointmentHandler(context).handle(ConfirmAppointmentCommand(appointment.id))
    StartAppointmentHandler(context).handle(StartAppointmentCommand(appointment.id))
    CompleteAppointmentHandler(context).handle(CompleteAppointmentCommand(appointment.id))

    with pytest.raises(InvalidStateTransitionError):
        cancel(context, appointment.id)

    assert stored_status(context, appointment.id) is AppointmentStatus.COMPLETED


def test_cancel_unknown_appointment(context):
    with pytest.raises(AppointmentNotFoundError):
        cancel(context, uuid4())


# ===== reschedule =====

def test_reschedule_replaces_the_appointment(context, bus):
    received = []
    bus.register_event_handler(events.AppointmentRescheduled, received.append)
    original = create(context, at(10))

    replacement = reschedule(context, original.id, at(14))

    assert replacement.id != original.id
    assert replacement.interval.start == at(14)
    assert replacement.rescheduled_from_id == original.id
    assert replacement.status is AppointmentStatus.SCHEDULED

    stored = context.appointments.get(original.id)
    assert stored.status is AppointmentStatus.CANCELLED
    assert stored.cancellation_reason == "rescheduled"
    assert [e.replacement_id for e in received] == [replacement.id]


def test_reschedule_conflict_leaves_original_untouched(context):
    original = create(context, at(10))
    create(context, at(11), client_id="client-2")

    with pytest.raises(SlotConflictError):
        reschedule(context, original.id, at(11))

    assert stored_status(context, original.id) is AppointmentStatus.SCHEDULED
    assert len(context.appointments.all()) == 2


def test_reschedule_to_barber_deactivated_while_waiting_for_the_lock(context, barbers):
    original = create(context, at(10))
    context.barbers = DeactivatedOnSecondRead(barbers, BARBER_B)

    with pytest.raises(ProviderInactiveError):
        reschedule(context, original.id, at(14), barber_id=BARBER_B)

    assert stored_status(context, original.id) is AppointmentStatus.SCHEDULED
    assert len(context.appointments.all()) == 1


def test_reschedule_may_overlap_its_own_old_slot(context):
    original = create(context, at(10))

    replacement = reschedule(context, original.id, at(10, 15))

    assert replacement.interval.start == at(10, 15)


def test_reschedule_keeps_duration_even_if_service_changed(context):
    original = create(context, at(10), service_id=COLORING)
    context.services.put(ServiceOffering(id=COLORING, duration_minutes=30, is_active=False))

    replacement = reschedule(context, original.id, at(13))

    assert replacement.duration == timedelta(minutes=90)


def test_reschedule_to_another_barber(context):
    original = create(context, at(10), barber_id=BARBER_A)

    replacement = reschedule(context, original.id, at(10), barber_id=BARBER_B)

    assert replacement.barber_id == BARBER_B
    assert stored_status(context, original.id) is AppointmentStatus.CANCELLED


def test_reschedule_outside_hours(context):
    original = create(context, at(10))

    with pytest.raises(OutsideWorkingHoursError):
        reschedule(context, original.id, at(16, 45))

    assert stored_status(context, original.id) is AppointmentStatus.SCHEDULED


def test_reschedule_in_progress_is_invalid(context):
    original = create(context, at(10))
    ConfirmAppointmentHandler(context).handle(ConfirmAppointmentCommand(original.id))
    StartAppointmentHandler(context).handle(StartAppointmentCommand(original.id))

    with pytest.raises(InvalidStateTransitionError):
        reschedule(context, original.id, at(14))


# ===== confirm / start / complete =====

def test_forward_transitions_record_timestamps(context, clock):
    appointment = create(context, at(10))

    clock.now = at(9)
    confirmed = ConfirmAppointmentHandler(context).handle(ConfirmAppointmentCommand(appointment.id))
    clock.now = at(10, 2)
    started = StartAppointmentHandler(context).handle(StartAppointmentCommand(appointment.id))

    assert confirmed.confirmed_at == at(9)
    assert started.status is AppointmentStatus.IN_PROGRESS
    assert started.started_at == at(10, 2)


def test_start_requires_confirmation(context):
    appointment = create(context, at(10))

    with pytest.raises(InvalidStateTransitionError):
        StartAppointmentHandler(context).handle(StartAppointmentCommand(appointment.id))


def _in_progress(context):
    appointment = create(context, at(10))
    ConfirmAppointmentHandler(context).handle(ConfirmAppointmentCommand(appointment.id))
    StartAppointmentHandler(context).handle(StartAppointmentCommand(appointment.id))
    return appointment


def test_complete_requires_payment(context):
    appointment = _in_progress(context)

    with pytest.raises(PaymentRequiredError):
        CompleteAppointmentHandler(context).handle(CompleteAppointmentCommand(appointment.id))
    assert stored_status(context, appointment.id) is AppointmentStatus.IN_PROGRESS

    RecordPaymentHandler(context).handle(RecordPaymentCommand(appointment.id, "pay-1"))
    completed = CompleteAppointmentHandler(context).handle(CompleteAppointmentCommand(appointment.id))

    assert completed.status is AppointmentStatus.COMPLETED


def test_complete_with_pay_later(context, policy):
    context.policy_factory = lambda: replace(policy, pay_later=True)
    appointment = _in_progress(context)

    completed = CompleteAppointmentHandler(context).handle(CompleteAppointmentCommand(appointment.id))

    assert completed.status is AppointmentStatus.COMPLETED


def test_complete_checks_transition_before_payment(context):
    appointment = create(context, at(10))

    with pytest.raises(InvalidStateTransitionError):
        CompleteAppointmentHandler(context).handle(CompleteAppointmentCommand(appointment.id))


def test_fast_path_completion(barbers, services, clock, policy):
    context = in_memory_context(
        barbers, services, clock=clock,
        policy=replace(policy, allow_fast_path_completion=True, pay_later=True),
    )
    appointment = create(context, at(10))

    completed = CompleteAppointmentHandler(context).handle(CompleteAppointmentCommand(appointment.id))

    assert completed.status is AppointmentStatus.COMPLETED


def test_duplicate_payment_notification_is_ignored(context, bus):
    received = []
    bus.register_event_handler(events.PaymentRecorded, received.append)
    appointment = create(context, at(10))

    RecordPaymentHandler(context).handle(RecordPaymentCommand(appointment.id, "pay-1"))
    RecordPaymentHandler(context).handle(RecordPaymentCommand(appointment.id, "pay-1"))

    assert len(received) == 1
    assert context.payments.has_payment(appointment.id)


def test_payment_for_unknown_appointment(context):
    with pytest.raises(AppointmentNotFoundError):
        RecordPaymentHandler(context).handle(RecordPaymentCommand(uuid4(), "pay-1"))
