"""Domain services for the provider directory."""

from __future__ import annotations

import logging
from uuid import UUID

from apps.appointments.bootstrap import get_context
from apps.appointments.domain.exceptions import (
    AppointmentNotFoundError,
    ProviderHasActiveAppointmentsError,
)

from .models import Barber

logger = logging.getLogger(__name__)


def deactivate_barber(barber_id: UUID, context=None) -> Barber:
    """
    Mark a barber inactive.

    Refused while any non-terminal appointment still references the
    barber. The check and the write run under the barber's booking
    lock, so no appointment can slip in between them.
    """

    context = context or get_context()
    barber = Barber.objects.filter(pk=barber_id).first()
    if barber is None:
        raise AppointmentNotFoundError(f"Barber {barber_id} not found", barber_id=barber_id)
    if not barber.is_active:
        return barber

    with context.writing(barber.id):
        if context.appointments.has_active_appointments(barber.id):
            raise ProviderHasActiveAppointmentsError(
                f"Barber {barber.id} still has unfinished appointments; cancel, complete or reassign them first",
                barber_id=barber.id,
            )
        Barber.objects.filter(pk=barber.id).update(is_active=False)

    barber.refresh_from_db()
    logger.info(f"Barber {barber.id} deactivated")
    return barber
