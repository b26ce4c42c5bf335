from datetime import time, timedelta
from decimal import Decimal

import pytest

from apps.appointments.domain.availability import AvailabilityCalculator, AvailabilityStatus
from apps.appointments.domain.entities import Appointment, BarberSchedule, WorkingShift
from shared.domain.value_objects import TimeInterval

from support import BARBER_A, BARBER_B, DAY, HAIRCUT, UTC, all_week, at


def appointment(barber_id, start, minutes=30):
    return Appointment.book(
        barber_id=barber_id,
        client_id="client",
        service_id=HAIRCUT,
        start=start,
        duration=timedelta(minutes=minutes),
        now=at(7),
    )


@pytest.fixture
def calculator():
    return AvailabilityCalculator(tz=UTC)


@pytest.fixture
def barber():
    return BarberSchedule(id=BARBER_A, working_hours=all_week())


def test_no_appointments_is_free(calculator, barber):
    summary = calculator.summarize(DAY, [barber], [])

    assert summary.status is AvailabilityStatus.FREE
    assert summary.total_free == timedelta(hours=8)
    assert summary.free_intervals == [TimeInterval(at(9), at(17))]


def test_back_to_back_full_day_is_no_availability(calculator, barber):
    booked = [appointment(BARBER_A, at(9) + timedelta(minutes=30 * i)) for i in range(16)]

    summary = calculator.summarize(DAY, [barber], booked)

    assert summary.status is AvailabilityStatus.NO_AVAILABILITY
    assert summary.total_free == timedelta(0)


def test_one_appointment_makes_the_day_partial(calculator, barber):
    summary = calculator.summarize(DAY, [barber], [appointment(BARBER_A, at(10))])

    assert summary.status is AvailabilityStatus.PARTIALLY_AVAILABLE
    assert summary.barbers[0].free == [
        TimeInterval(at(9), at(10)),
        TimeInterval(at(10, 30), at(17)),
    ]


def test_cancelled_appointments_do_not_block(calculator, barber):
    cancelled = appointment(BARBER_A, at(10))
    cancelled.cancel("", at(8))

    assert calculator.summarize(DAY, [barber], [cancelled]).status is AvailabilityStatus.FREE


def test_threshold_widens_free(barber):
    booked = [appointment(BARBER_A, at(10))]

    exact = AvailabilityCalculator(tz=UTC).summarize(DAY, [barber], booked)
    lenient = AvailabilityCalculator(free_threshold=Decimal("0.9"), tz=UTC).summarize(DAY, [barber], booked)

    assert exact.status is AvailabilityStatus.PARTIALLY_AVAILABLE
    assert lenient.status is AvailabilityStatus.FREE


@pytest.mark.parametrize("threshold", ["0", "1.5", "-0.1"])
def test_threshold_must_be_a_fraction(threshold):
    with pytest.raises(ValueError):
        AvailabilityCalculator(free_threshold=threshold)


def test_nobody_working_is_no_availability(calculator):
    weekend_only = BarberSchedule(
        id=BARBER_A,
        working_hours=(WorkingShift(weekday=5, start=time(10), end=time(14)),),
    )
    summary = calculator.summarize(DAY, [weekend_only], [])

    assert summary.status is AvailabilityStatus.NO_AVAILABILITY
    assert summary.total_capacity == timedelta(0)


def test_inactive_barbers_are_ignored(calculator, barber):
    retired = BarberSchedule(id=BARBER_B, working_hours=all_week(), is_active=False)

    summary = calculator.summarize(DAY, [barber, retired], [])

    assert [b.barber_id for b in summary.barbers] == [BARBER_A]
    assert summary.total_capacity == timedelta(hours=8)


def test_shop_wide_summary_unions_free_time(calculator):
    morning = BarberSchedule(id=BARBER_A, working_hours=all_week(time(9), time(13)))
    evening = BarberSchedule(id=BARBER_B, working_hours=all_week(time(12), time(18)))

    summary = calculator.summarize(DAY, [morning, evening], [appointment(BARBER_B, at(12))])

    assert summary.status is AvailabilityStatus.PARTIALLY_AVAILABLE
    assert summary.free_intervals == [TimeInterval(at(9), at(18))]
    assert summary.total_capacity == timedelta(hours=10)
    assert summary.total_free == timedelta(hours=9, minutes=30)


def test_slot_rounding_shrinks_reported_intervals_only(calculator, barber):
    booked = [appointment(BARBER_A, at(10), minutes=20)]

    summary = calculator.summarize(DAY, [barber], booked, slot=timedelta(minutes=15))

    assert summary.barbers[0].free == [
        TimeInterval(at(9), at(10)),
        TimeInterval(at(10, 30), at(17)),
    ]
    # status and totals come from exact free time
    assert summary.total_free == timedelta(hours=7, minutes=40)


def test_elapsed_time_is_not_offered_but_does_not_change_status(calculator, barber):
    summary = calculator.summarize(DAY, [barber], [], now=at(12))

    assert summary.barbers[0].free == [TimeInterval(at(12), at(17))]
    assert summary.status is AvailabilityStatus.FREE
    assert summary.total_free == summary.total_capacity == timedelta(hours=8)

    after_closing = calculator.summarize(DAY, [barber], [], now=at(18))
    assert after_closing.barbers[0].free == []
    assert after_closing.status is AvailabilityStatus.FREE

    booked = calculator.summarize(DAY, [barber], [appointment(BARBER_A, at(14))], now=at(12))
    assert booked.status is AvailabilityStatus.PARTIALLY_AVAILABLE

    past_day = calculator.summarize(DAY, [barber], [], now=at(9, day=DAY + timedelta(days=1)))
    assert past_day.status is AvailabilityStatus.NO_AVAILABILITY


def test_slot_grid(calculator, barber):
    other = BarberSchedule(id=BARBER_B, working_hours=all_week(time(9), time(11)))
    booked = [appointment(BARBER_A, at(9)), appointment(BARBER_B, at(9))]

    slots = calculator.slot_grid(DAY, [barber, other], booked, timedelta(minutes=30))

    assert len(slots) == 16
    assert slots[0].interval == TimeInterval(at(9), at(9, 30))
    assert not slots[0].available
    assert slots[1].available
    assert sorted(slots[1].barber_ids) == sorted([BARBER_A, BARBER_B])
    assert slots[-1].barber_ids == [BARBER_A]


def test_slot_grid_marks_started_slots_unavailable(calculator, barber):
    slots = calculator.slot_grid(DAY, [barber], [], timedelta(minutes=60), now=at(10, 15))

    assert [s.available for s in slots[:3]] == [False, False, True]
