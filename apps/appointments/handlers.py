"""
Event handlers for appointment domain events.

Notification delivery is owned by an external collaborator; here every
event is written to the structured log so the collaborator (or an
operator) can follow the appointment lifecycle.
"""

from __future__ import annotations

from dataclasses import fields
from datetime import datetime

import structlog

from shared.domain.base import DomainEvent

from .domain import events

logger = structlog.get_logger(__name__)

EVENT_NAMES = {
    events.AppointmentScheduled: "appointment.scheduled",
    events.AppointmentConfirmed: "appointment.confirmed",
    events.AppointmentStarted: "appointment.started",
    events.AppointmentCompleted: "appointment.completed",
    events.AppointmentCancelled: "appointment.cancelled",
    events.AppointmentRescheduled: "appointment.rescheduled",
    events.AppointmentMarkedNoShow: "appointment.no_show",
    events.PaymentRecorded: "appointment.payment_recorded",
}


def _plain(value):
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def log_event(event: DomainEvent) -> None:
    payload = {f.name: _plain(getattr(event, f.name)) for f in fields(event)}
    logger.info(EVENT_NAMES.get(type(event), type(event).__name__), **payload)


def warn_on_no_show(event: events.AppointmentMarkedNoShow) -> None:
    logger.warning(
        "appointment.no_show_detected",
        appointment_id=str(event.appointment_id),
        barber_id=str(event.barber_id),
        previous_status=event.old_status,
    )
