from dataclasses import replace
from datetime import timedelta
from uuid import uuid4

import pytest

from apps.appointments.application.command_handlers import CreateAppointmentCommand, CreateAppointmentHandler
from apps.appointments.application.queries import AvailabilityQueries
from apps.appointments.domain.availability import AvailabilityStatus
from apps.appointments.domain.exceptions import BookingValidationError, ProviderInactiveError

from support import BARBER_A, BARBER_B, DAY, HAIRCUT, at


@pytest.fixture
def queries(context):
    return AvailabilityQueries(context)


def book(context, start, barber_id=BARBER_A):
    return CreateAppointmentHandler(context).handle(CreateAppointmentCommand(
        barber_id=barber_id, service_id=HAIRCUT, client_id="client", start_time=start,
    ))


def test_day_for_one_barber(context, queries):
    book(context, at(10))

    mine = queries.day(DAY, barber_id=BARBER_A)
    theirs = queries.day(DAY, barber_id=BARBER_B)

    assert mine.status is AvailabilityStatus.PARTIALLY_AVAILABLE
    assert mine.barber_id == BARBER_A
    assert theirs.status is AvailabilityStatus.FREE


def test_shop_wide_free_time_is_the_union_of_barbers(context, queries):
    book(context, at(10))

    summary = queries.day(DAY)

    assert summary.status is AvailabilityStatus.PARTIALLY_AVAILABLE
    assert summary.free_intervals[0].start == at(9)
    assert summary.free_intervals[-1].end == at(17)


def test_booking_is_reflected_immediately(context, queries):
    assert queries.day(DAY, barber_id=BARBER_A).status is AvailabilityStatus.FREE

    book(context, at(10))

    assert queries.day(DAY, barber_id=BARBER_A).status is AvailabilityStatus.PARTIALLY_AVAILABLE


def test_day_with_slot_rounding(context, queries):
    book(context, at(10, 10))

    summary = queries.day(DAY, barber_id=BARBER_A, slot_minutes=30)

    assert [iv.start for iv in summary.barbers[0].free] == [at(9), at(11)]


def test_untouched_day_stays_free_after_opening(context, clock, queries):
    clock.now = at(12)

    summary = queries.day(DAY, barber_id=BARBER_A)

    assert summary.status is AvailabilityStatus.FREE
    assert summary.total_free == summary.total_capacity
    assert summary.barbers[0].free[0].start == at(12)


def test_earlier_dates_have_no_availability(context, clock, queries):
    clock.now = at(9, day=DAY + timedelta(days=1))

    assert queries.day(DAY, barber_id=BARBER_A).status is AvailabilityStatus.NO_AVAILABILITY


def test_past_hours_can_be_shown(context, clock, policy, queries):
    context.policy_factory = lambda: replace(policy, hide_past=False)
    clock.now = at(12)

    assert queries.day(DAY, barber_id=BARBER_A).status is AvailabilityStatus.FREE


def test_range_returns_one_summary_per_day(context, queries):
    book(context, at(10, day=DAY + timedelta(days=1)))

    days = queries.range(DAY, DAY + timedelta(days=2), barber_id=BARBER_A)

    assert [d.date for d in days] == [DAY, DAY + timedelta(days=1), DAY + timedelta(days=2)]
    assert [d.status for d in days] == [
        AvailabilityStatus.FREE,
        AvailabilityStatus.PARTIALLY_AVAILABLE,
        AvailabilityStatus.FREE,
    ]


def test_range_validation(queries, policy):
    with pytest.raises(BookingValidationError) as excinfo:
        queries.range(DAY, DAY - timedelta(days=1))
    assert "start" in excinfo.value.errors

    with pytest.raises(BookingValidationError) as excinfo:
        queries.range(DAY, DAY + timedelta(days=policy.max_range_days))
    assert "end" in excinfo.value.errors


def test_slots_default_to_policy_length(context, queries):
    book(context, at(9), barber_id=BARBER_A)

    slots = queries.slots(DAY)

    assert len(slots) == 16
    assert slots[0].barber_ids == [BARBER_B]
    assert slots[0].available


@pytest.mark.parametrize("slot_minutes", [0, -15, 24 * 60 + 1])
def test_invalid_slot_length(queries, slot_minutes):
    with pytest.raises(BookingValidationError):
        queries.slots(DAY, slot_minutes=slot_minutes)
    with pytest.raises(BookingValidationError):
        queries.day(DAY, slot_minutes=slot_minutes)


def test_unknown_barber(queries):
    with pytest.raises(ProviderInactiveError):
        queries.day(DAY, barber_id=uuid4())


def test_inactive_barber_is_hidden(context, barbers, queries):
    context.barbers.put(replace(barbers[1], is_active=False))

    assert [b.barber_id for b in queries.day(DAY).barbers] == [BARBER_A]
    with pytest.raises(ProviderInactiveError):
        queries.slots(DAY, barber_id=BARBER_B)
