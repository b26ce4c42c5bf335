import threading
import time
from dataclasses import replace

from apps.appointments.application.command_handlers import (
    CancelAppointmentCommand,
    CancelAppointmentHandler,
    ConfirmAppointmentCommand,
    ConfirmAppointmentHandler,
    CreateAppointmentCommand,
    CreateAppointmentHandler,
    StartAppointmentCommand,
    StartAppointmentHandler,
)
from apps.appointments.application.context import BookingPolicy
from apps.appointments.application.memory import in_memory_context
from apps.appointments.application.sweeper import NoShowSweeper
from apps.appointments.domain.events import AppointmentMarkedNoShow
from apps.appointments.domain.state_machine import AppointmentStatus

from support import BARBER_A, BARBER_B, HAIRCUT, at


def book(context, start, barber_id=BARBER_A):
    return CreateAppointmentHandler(context).handle(CreateAppointmentCommand(
        barber_id=barber_id, service_id=HAIRCUT, client_id="client", start_time=start,
    ))


def status_of(context, appointment):
    return context.appointments.get(appointment.id).status


def test_unattended_appointment_expires_once(context, clock, bus):
    received = []
    bus.register_event_handler(AppointmentMarkedNoShow, received.append)
    appointment = book(context, at(10))
    sweeper = NoShowSweeper(context)

    clock.now = at(10, 46)
    first = sweeper.sweep_once()
    second = sweeper.sweep_once()

    assert first.expired == [appointment.id]
    assert second.checked == 0
    assert second.expired_count == 0
    assert status_of(context, appointment) is AppointmentStatus.NO_SHOW
    assert len(received) == 1
    assert received[0].old_status == "scheduled"


def test_grace_period_boundary(context, clock):
    appointment = book(context, at(10))
    sweeper = NoShowSweeper(context)

    assert sweeper.sweep_once(now=at(10, 44)).expired == []
    assert sweeper.sweep_once(now=at(10, 45)).expired == [appointment.id]


def test_confirmed_appointments_expire_too(context, clock):
    appointment = book(context, at(10))
    ConfirmAppointmentHandler(context).handle(ConfirmAppointmentCommand(appointment.id))

    result = NoShowSweeper(context).sweep_once(now=at(11))

    assert result.expired == [appointment.id]


def test_cancelled_and_checked_in_appointments_are_left_alone(context, clock):
    cancelled = book(context, at(10))
    CancelAppointmentHandler(context).handle(CancelAppointmentCommand(cancelled.id, "sick"))
    checked_in = book(context, at(11))
    ConfirmAppointmentHandler(context).handle(ConfirmAppointmentCommand(checked_in.id))
    StartAppointmentHandler(context).handle(StartAppointmentCommand(checked_in.id))

    result = NoShowSweeper(context).sweep_once(now=at(16))

    assert result.checked == 0
    assert status_of(context, cancelled) is AppointmentStatus.CANCELLED
    assert status_of(context, checked_in) is AppointmentStatus.IN_PROGRESS


def test_lost_write_counts_as_skipped(context, monkeypatch):
    appointment = book(context, at(10))
    monkeypatch.setattr(context.appointments, "save", lambda appointment, expected_status=None: False)

    result = NoShowSweeper(context).sweep_once(now=at(11))

    assert result.skipped == 1
    assert result.expired == []
    assert status_of(context, appointment) is AppointmentStatus.SCHEDULED


def test_one_failing_row_does_not_stop_the_sweep(context, monkeypatch):
    broken = book(context, at(10), barber_id=BARBER_A)
    healthy = book(context, at(10), barber_id=BARBER_B)
    save = context.appointments.save

    def flaky_save(appointment, expected_status=None):
        if appointment.id == broken.id:
            raise RuntimeError("disk on fire")
        return save(appointment, expected_status=expected_status)

    monkeypatch.setattr(context.appointments, "save", flaky_save)

    result = NoShowSweeper(context).sweep_once(now=at(11))

    assert result.checked == 2
    assert result.failed == 1
    assert result.expired == [healthy.id]
    assert status_of(context, broken) is AppointmentStatus.SCHEDULED


def test_busy_barber_is_reported_and_retried_next_pass(barbers, services, clock):
    context = in_memory_context(barbers, services, clock=clock, policy=BookingPolicy(lock_timeout=0.05))
    appointment = book(context, at(10))
    sweeper = NoShowSweeper(context)

    with context.locks.hold(BARBER_A):
        outcome = {}
        worker = threading.Thread(target=lambda: outcome.update(result=sweeper.sweep_once(now=at(11))))
        worker.start()
        worker.join(5)

    assert outcome["result"].failed == 1
    assert sweeper.sweep_once(now=at(11)).expired == [appointment.id]


def test_sweep_prunes_locks_of_departed_barbers(context, barbers):
    book(context, at(10), barber_id=BARBER_B)
    context.barbers.put(replace(barbers[1], is_active=False))

    result = NoShowSweeper(context).sweep_once(now=at(9))

    assert result.pruned_locks == 1
    assert BARBER_B not in context.locks


def test_background_loop_sweeps_until_stopped(context, clock):
    appointment = book(context, at(10))
    clock.now = at(12)
    sweeper = NoShowSweeper(context, interval=0.01)

    thread = sweeper.start()
    deadline = time.monotonic() + 5
    while status_of(context, appointment) is not AppointmentStatus.NO_SHOW and time.monotonic() < deadline:
        time.sleep(0.01)
    sweeper.stop(timeout=5)

    assert status_of(context, appointment) is AppointmentStatus.NO_SHOW
    assert not thread.is_alive()


def test_run_returns_immediately_when_already_stopped(context):
    stop = threading.Event()
    stop.set()

    NoShowSweeper(context, interval=60).run(stop)
