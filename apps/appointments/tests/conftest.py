"""Shared fixtures for the booking core tests (in-memory adapters, fixed clock)."""

from __future__ import annotations

import pytest

from apps.appointments.application.context import BookingPolicy
from apps.appointments.application.memory import in_memory_context
from apps.appointments.domain.entities import BarberSchedule, ServiceOffering
from shared.application.message_bus import MessageBus

from support import BARBER_A, BARBER_B, COLORING, HAIRCUT, Clock, all_week, at


@pytest.fixture
def clock() -> Clock:
    return Clock(at(8))


@pytest.fixture
def policy() -> BookingPolicy:
    return BookingPolicy(lock_timeout=2.0)


@pytest.fixture
def bus() -> MessageBus:
    return MessageBus()


@pytest.fixture
def barbers():
    return [
        BarberSchedule(id=BARBER_A, name="Arman", working_hours=all_week()),
        BarberSchedule(id=BARBER_B, name="Bolat", working_hours=all_week()),
    ]


@pytest.fixture
def services():
    return [
        ServiceOffering(id=HAIRCUT, name="Haircut", duration_minutes=30),
        ServiceOffering(id=COLORING, name="Coloring", duration_minutes=90),
    ]


@pytest.fixture
def context(barbers, services, policy, clock, bus):
    return in_memory_context(barbers, services, policy=policy, clock=clock, bus=bus)
