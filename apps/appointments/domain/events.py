"""
Appointment Domain Events

Events that represent things that have happened to appointments.
These are published after successful transaction commits.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from shared.domain.base import DomainEvent
from shared.domain.value_objects import TimeInterval


@dataclass
class AppointmentScheduled(DomainEvent):
    """
    Event: A new appointment was booked (initial status SCHEDULED)

    Triggers:
    - Send booking confirmation to the client
    - Notify the barber
    """
    appointment_id: UUID = None
    barber_id: UUID = None
    client_id: str = ''
    service_id: UUID = None
    interval: TimeInterval = None

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload.update({
            'appointment_id': str(self.appointment_id),
            'barber_id': str(self.barber_id),
            'client_id': self.client_id,
            'start_time': self.interval.start.isoformat() if self.interval else None,
            'end_time': self.interval.end.isoformat() if self.interval else None,
        })
        return payload


@dataclass
class AppointmentConfirmed(DomainEvent):
    """Event: SCHEDULED -> CONFIRMED"""
    appointment_id: UUID = None
    barber_id: UUID = None


@dataclass
class AppointmentStarted(DomainEvent):
    """Event: Client checked in (CONFIRMED -> IN_PROGRESS)"""
    appointment_id: UUID = None
    barber_id: UUID = None


@dataclass
class AppointmentCompleted(DomainEvent):
    """
    Event: Service delivered (-> COMPLETED)

    Triggers:
    - Request a review from the client
    """
    appointment_id: UUID = None
    barber_id: UUID = None
    client_id: str = ''


@dataclass
class AppointmentCancelled(DomainEvent):
    """
    Event: Appointment was cancelled, its slot is free again

    Triggers:
    - Notify client and barber
    """
    appointment_id: UUID = None
    barber_id: UUID = None
    reason: str = ''
    old_status: str = ''  # Status before cancellation


@dataclass
class AppointmentRescheduled(DomainEvent):
    """Event: Appointment replaced by a new one at another time or barber"""
    appointment_id: UUID = None
    replacement_id: UUID = None
    barber_id: UUID = None
    new_start: datetime = None


@dataclass
class AppointmentMarkedNoShow(DomainEvent):
    """Event: The no-show sweep expired an unattended appointment"""
    appointment_id: UUID = None
    barber_id: UUID = None
    old_status: str = ''


@dataclass
class PaymentRecorded(DomainEvent):
    """Event: The payment collaborator reported a successful payment"""
    appointment_id: UUID = None
    reference: str = ''
