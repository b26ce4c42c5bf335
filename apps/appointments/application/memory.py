"""
In-memory adapters for every port.

Used by the pure-Python test suite and the concurrency tests. Stored
appointments are copied on the way in and out, so callers never share
mutable state with the store.
"""

from __future__ import annotations

import copy
import threading
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional
from uuid import UUID

from shared.application.uow import InMemoryUnitOfWork
from shared.domain.base import utcnow
from shared.domain.value_objects import TimeInterval

from ..domain.entities import Appointment, BarberSchedule, ServiceOffering
from ..domain.state_machine import ACTIVE_STATUSES, UNATTENDED_STATUSES, AppointmentStatus
from .context import BookingContext, BookingPolicy
from .locks import ProviderLockTable
from .ports import AbstractAppointmentRepository, BarberDirectory, PaymentLedger, ServiceCatalog


def _detached(appointment: Appointment) -> Appointment:
    clone = copy.deepcopy(appointment)
    clone.clear_events()
    return clone


class InMemoryAppointmentRepository(AbstractAppointmentRepository):

    def __init__(self, appointments: Iterable[Appointment] = ()):
        self._rows: Dict[UUID, Appointment] = {}
        self._lock = threading.RLock()
        for appointment in appointments:
            self._rows[appointment.id] = _detached(appointment)

    def get(self, appointment_id: UUID) -> Optional[Appointment]:
        with self._lock:
            row = self._rows.get(appointment_id)
            return _detached(row) if row is not None else None

    def add(self, appointment: Appointment) -> None:
        with self._lock:
            if appointment.id in self._rows:
                raise ValueError(f"Appointment {appointment.id} already exists")
            self._rows[appointment.id] = _detached(appointment)

    def save(self, appointment: Appointment, expected_status: Optional[AppointmentStatus] = None) -> bool:
        with self._lock:
            stored = self._rows.get(appointment.id)
            if stored is None:
                return False
            if expected_status is not None and stored.status is not expected_status:
                return False
            self._rows[appointment.id] = _detached(appointment)
            return True

    def list_for_barbers(
        self,
        barber_ids: Iterable[UUID],
        window: TimeInterval,
        statuses: Iterable[AppointmentStatus] = ACTIVE_STATUSES,
    ) -> List[Appointment]:
        barber_ids = set(barber_ids)
        statuses = set(statuses)
        with self._lock:
            rows = [
                _detached(row) for row in self._rows.values()
                if row.barber_id in barber_ids
                and row.status in statuses
                and row.interval.overlaps_with(window)
            ]
        return sorted(rows, key=lambda a: a.start_time)

    def list_unattended(self, cutoff: datetime) -> List[Appointment]:
        with self._lock:
            rows = [
                _detached(row) for row in self._rows.values()
                if row.status in UNATTENDED_STATUSES and row.end_time <= cutoff
            ]
        return sorted(rows, key=lambda a: a.end_time)

    def has_active_appointments(self, barber_id: UUID) -> bool:
        with self._lock:
            return any(row.barber_id == barber_id and row.is_active for row in self._rows.values())

    def all(self) -> List[Appointment]:
        with self._lock:
            return [_detached(row) for row in self._rows.values()]


class InMemoryBarberDirectory(BarberDirectory):

    def __init__(self, barbers: Iterable[BarberSchedule] = ()):
        self._barbers: Dict[UUID, BarberSchedule] = {b.id: b for b in barbers}

    def put(self, barber: BarberSchedule):
        self._barbers[barber.id] = barber

    def get_barber(self, barber_id: UUID) -> Optional[BarberSchedule]:
        return self._barbers.get(barber_id)

    def list_active_barbers(self) -> List[BarberSchedule]:
        return [b for b in self._barbers.values() if b.is_active]


class InMemoryServiceCatalog(ServiceCatalog):

    def __init__(self, services: Iterable[ServiceOffering] = ()):
        self._services: Dict[UUID, ServiceOffering] = {s.id: s for s in services}

    def put(self, service: ServiceOffering):
        self._services[service.id] = service

    def get_service(self, service_id: UUID) -> Optional[ServiceOffering]:
        return self._services.get(service_id)


class InMemoryPaymentLedger(PaymentLedger):

    def __init__(self):
        self._payments: Dict[UUID, tuple] = {}
        self._lock = threading.Lock()

    def record_payment(self, appointment_id: UUID, reference: str, received_at: datetime) -> bool:
        with self._lock:
            if appointment_id in self._payments:
                return False
            self._payments[appointment_id] = (reference, received_at)
            return True

    def has_payment(self, appointment_id: UUID) -> bool:
        return appointment_id in self._payments


def in_memory_context(
    barbers: Iterable[BarberSchedule] = (),
    services: Iterable[ServiceOffering] = (),
    *,
    policy: Optional[BookingPolicy] = None,
    clock: Callable[[], datetime] = utcnow,
    bus=None,
) -> BookingContext:
    """A fully wired context backed by the in-memory adapters"""
    policy = policy or BookingPolicy()
    return BookingContext(
        appointments=InMemoryAppointmentRepository(),
        barbers=InMemoryBarberDirectory(barbers),
        services=InMemoryServiceCatalog(services),
        payments=InMemoryPaymentLedger(),
        uow_factory=lambda: InMemoryUnitOfWork(bus),
        locks=ProviderLockTable(default_timeout=policy.lock_timeout),
        policy_factory=lambda: policy,
        clock=clock,
    )
