"""Django adapter exposing the service catalog to the booking core."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from apps.appointments.application.ports import ServiceCatalog
from apps.appointments.domain.entities import ServiceOffering

from .models import Service


class DjangoServiceCatalog(ServiceCatalog):

    def get_service(self, service_id: UUID) -> Optional[ServiceOffering]:
        service = Service.objects.filter(pk=service_id).first()
        if service is None:
            return None
        return ServiceOffering(
            id=service.id,
            name=service.name,
            duration_minutes=service.duration_minutes,
            is_active=service.is_active,
        )
