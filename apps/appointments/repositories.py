"""Django ORM adapters for the appointment and payment ports."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional
from uuid import UUID

from django.db import IntegrityError, OperationalError, transaction  # type: ignore
from django.db.utils import NotSupportedError  # type: ignore
from django.utils import timezone  # type: ignore

from apps.barbers.models import Barber
from shared.domain.value_objects import TimeInterval

from .application.ports import AbstractAppointmentRepository, PaymentLedger
from .domain.entities import Appointment
from .domain.exceptions import BusyError
from .domain.state_machine import ACTIVE_STATUSES, UNATTENDED_STATUSES, AppointmentStatus
from .models import Appointment as AppointmentModel
from .models import PaymentNotification

logger = logging.getLogger(__name__)

# Fields a status change may touch; the interval and references never change
MUTABLE_FIELDS = (
    "status",
    "cancellation_reason",
    "confirmed_at",
    "started_at",
    "completed_at",
    "cancelled_at",
    "no_show_at",
    "updated_at",
)


def _lock_queryset_if_possible(queryset):
    """Apply select_for_update when inside transaction.atomic()."""

    if not transaction.get_connection().in_atomic_block:
        return queryset

    try:
        return queryset.select_for_update()
    except NotSupportedError:
        return queryset


def _local(value: Optional[datetime]) -> Optional[datetime]:
    # Calendar dates and weekdays are always judged in the shop's timezone
    if value is None or timezone.is_naive(value):
        return value
    return timezone.localtime(value)


def to_entity(row: AppointmentModel) -> Appointment:
    return Appointment(
        id=row.id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        barber_id=row.barber_id,
        client_id=row.client_id,
        service_id=row.service_id,
        interval=TimeInterval(_local(row.start_time), _local(row.end_time)),
        status=AppointmentStatus(row.status),
        cancellation_reason=row.cancellation_reason,
        rescheduled_from_id=row.rescheduled_from_id,
        confirmed_at=row.confirmed_at,
        started_at=row.started_at,
        completed_at=row.completed_at,
        cancelled_at=row.cancelled_at,
        no_show_at=row.no_show_at,
    )


def _mutable_values(appointment: Appointment) -> dict:
    values = {name: getattr(appointment, name) for name in MUTABLE_FIELDS}
    values["status"] = appointment.status.value
    return values


class DjangoAppointmentRepository(AbstractAppointmentRepository):

    def get(self, appointment_id: UUID) -> Optional[Appointment]:
        row = AppointmentModel.objects.filter(pk=appointment_id).first()
        return to_entity(row) if row is not None else None

    def add(self, appointment: Appointment) -> None:
        AppointmentModel.objects.create(
            id=appointment.id,
            barber_id=appointment.barber_id,
            service_id=appointment.service_id,
            client_id=appointment.client_id,
            start_time=appointment.start_time,
            end_time=appointment.end_time,
            rescheduled_from_id=appointment.rescheduled_from_id,
            created_at=appointment.created_at,
            **_mutable_values(appointment),
        )

    def save(self, appointment: Appointment, expected_status: Optional[AppointmentStatus] = None) -> bool:
        queryset = AppointmentModel.objects.filter(pk=appointment.id)
        if expected_status is not None:
            queryset = queryset.filter(status=expected_status.value)
        updated = queryset.update(**_mutable_values(appointment))
        if not updated:
            logger.info(
                f"Compare-and-set lost for appointment {appointment.id} "
                f"(expected {getattr(expected_status, 'value', None)})"
            )
        return bool(updated)

    def list_for_barbers(
        self,
        barber_ids: Iterable[UUID],
        window: TimeInterval,
        statuses: Iterable[AppointmentStatus] = ACTIVE_STATUSES,
    ) -> List[Appointment]:
        queryset = AppointmentModel.objects.filter(
            barber_id__in=list(barber_ids),
            status__in=[status.value for status in statuses],
            start_time__lt=window.end,
            end_time__gt=window.start,
        ).order_by("start_time")
        return [to_entity(row) for row in queryset]

    def list_unattended(self, cutoff: datetime) -> List[Appointment]:
        queryset = AppointmentModel.objects.filter(
            status__in=[status.value for status in UNATTENDED_STATUSES],
            end_time__lte=cutoff,
        ).order_by("end_time")
        return [to_entity(row) for row in queryset]

    def has_active_appointments(self, barber_id: UUID) -> bool:
        return AppointmentModel.objects.filter(
            barber_id=barber_id,
            status__in=AppointmentModel.ACTIVE_STATUS_VALUES,
        ).exists()

    def lock_barber(self, barber_id: UUID) -> None:
        """Row lock on the barber so writers in other processes queue behind us"""
        queryset = _lock_queryset_if_possible(Barber.objects.filter(pk=barber_id))
        try:
            list(queryset.values_list("pk", flat=True))
        except OperationalError as exc:
            # statement_timeout / lock_timeout / SQLite busy timeout
            raise BusyError(
                f"Timed out waiting for the schedule of barber {barber_id}, retry shortly",
                barber_id=barber_id,
            ) from exc


class DjangoPaymentLedger(PaymentLedger):

    def record_payment(self, appointment_id: UUID, reference: str, received_at: datetime) -> bool:
        try:
            with transaction.atomic():
                _, created = PaymentNotification.objects.get_or_create(
                    appointment_id=appointment_id,
                    defaults={"reference": reference, "received_at": received_at},
                )
        except IntegrityError:
            # A concurrent notification for the same appointment won
            return False
        return created

    def has_payment(self, appointment_id: UUID) -> bool:
        return PaymentNotification.objects.filter(appointment_id=appointment_id).exists()
