"""
Interfaces of the collaborators the booking core consumes.

Django adapters live in ``apps.appointments.repositories``,
``apps.barbers.directory`` and ``apps.catalog.catalog``; in-memory ones in
``apps.appointments.application.memory``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from shared.domain.value_objects import TimeInterval

from ..domain.entities import Appointment, BarberSchedule, ServiceOffering
from ..domain.state_machine import ACTIVE_STATUSES, AppointmentStatus


class AbstractAppointmentRepository(ABC):

    @abstractmethod
    def get(self, appointment_id: UUID) -> Optional[Appointment]:
        pass

    @abstractmethod
    def add(self, appointment: Appointment) -> None:
        pass

    @abstractmethod
    def save(self, appointment: Appointment, expected_status: Optional[AppointmentStatus] = None) -> bool:
        """
        Persist status changes of an existing appointment.

        With ``expected_status`` the write is a compare-and-set: it only
        happens if the stored status still equals it. Returns whether the
        row was written.
        """

    @abstractmethod
    def list_for_barbers(
        self,
        barber_ids: Iterable[UUID],
        window: TimeInterval,
        statuses: Iterable[AppointmentStatus] = ACTIVE_STATUSES,
    ) -> List[Appointment]:
        """Appointments of the barbers whose interval overlaps ``window``"""

    @abstractmethod
    def list_unattended(self, cutoff: datetime) -> List[Appointment]:
        """SCHEDULED or CONFIRMED appointments that ended at or before ``cutoff``"""

    @abstractmethod
    def has_active_appointments(self, barber_id: UUID) -> bool:
        """Any non-terminal appointment, past or future, still references the barber"""

    def lock_barber(self, barber_id: UUID) -> None:
        """Take a storage-level lock for the barber inside the current transaction"""
        return None


class BarberDirectory(ABC):

    @abstractmethod
    def get_barber(self, barber_id: UUID) -> Optional[BarberSchedule]:
        """The barber with working hours, active or not; None if unknown"""

    @abstractmethod
    def list_active_barbers(self) -> List[BarberSchedule]:
        pass


class ServiceCatalog(ABC):

    @abstractmethod
    def get_service(self, service_id: UUID) -> Optional[ServiceOffering]:
        pass


class PaymentLedger(ABC):
    """Receives payment-completed notifications from the payment collaborator"""

    @abstractmethod
    def record_payment(self, appointment_id: UUID, reference: str, received_at: datetime) -> bool:
        """Store the notification; returns False if one was already stored"""

    @abstractmethod
    def has_payment(self, appointment_id: UUID) -> bool:
        pass
