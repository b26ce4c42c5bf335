"""Django adapter exposing barbers to the booking core."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from apps.appointments.application.ports import BarberDirectory
from apps.appointments.domain.entities import BarberSchedule, WorkingShift

from .models import Barber


def to_schedule(barber: Barber) -> BarberSchedule:
    return BarberSchedule(
        id=barber.id,
        name=barber.name,
        is_active=barber.is_active,
        working_hours=tuple(
            WorkingShift(weekday=wh.weekday, start=wh.start_time, end=wh.end_time)
            for wh in barber.working_hours.all()
        ),
    )


class DjangoProviderDirectory(BarberDirectory):

    def get_barber(self, barber_id: UUID) -> Optional[BarberSchedule]:
        barber = Barber.objects.prefetch_related("working_hours").filter(pk=barber_id).first()
        if barber is None:
            return None
        return to_schedule(barber)

    def list_active_barbers(self) -> List[BarberSchedule]:
        queryset = Barber.objects.filter(is_active=True).prefetch_related("working_hours")
        return [to_schedule(barber) for barber in queryset]
