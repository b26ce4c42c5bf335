"""Appointment persistence models."""

from __future__ import annotations

import uuid

from django.db import models  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain.state_machine import ACTIVE_STATUSES, AppointmentStatus


class Appointment(models.Model):
    """One booked service with one barber over [start_time, end_time)."""

    class Status(models.TextChoices):
        SCHEDULED = AppointmentStatus.SCHEDULED.value, _("Scheduled")
        CONFIRMED = AppointmentStatus.CONFIRMED.value, _("Confirmed")
        IN_PROGRESS = AppointmentStatus.IN_PROGRESS.value, _("In progress")
        COMPLETED = AppointmentStatus.COMPLETED.value, _("Completed")
        CANCELLED = AppointmentStatus.CANCELLED.value, _("Cancelled")
        NO_SHOW = AppointmentStatus.NO_SHOW.value, _("No show")

    ACTIVE_STATUS_VALUES = tuple(status.value for status in ACTIVE_STATUSES)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    barber = models.ForeignKey(
        "barbers.Barber",
        on_delete=models.PROTECT,
        related_name="appointments",
    )
    service = models.ForeignKey(
        "catalog.Service",
        on_delete=models.PROTECT,
        related_name="appointments",
    )
    client_id = models.CharField(
        max_length=64,
        db_index=True,
        help_text=_("Opaque client identifier issued by the identity collaborator."),
    )
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.SCHEDULED,
    )
    cancellation_reason = models.CharField(max_length=255, blank=True)
    rescheduled_from = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="rescheduled_to",
    )
    confirmed_at = models.DateTimeField(null=True, blank=True)
    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    no_show_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _("Appointment")
        verbose_name_plural = _("Appointments")
        ordering = ["start_time"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F("start_time")),
                name="appointment_end_after_start",
            ),
        ]
        indexes = [
            models.Index(fields=["barber", "start_time"], name="appointment_barber_start_idx"),
            models.Index(fields=["status", "end_time"], name="appointment_status_end_idx"),
        ]

    def __str__(self) -> str:
        return f"Appointment {self.id} ({self.status}) {self.start_time:%Y-%m-%d %H:%M}"

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUS_VALUES


class PaymentNotification(models.Model):
    """Payment-completed notification received from the payment collaborator."""

    appointment = models.OneToOneField(
        Appointment,
        on_delete=models.CASCADE,
        related_name="payment",
    )
    reference = models.CharField(max_length=128, blank=True)
    received_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _("Payment notification")
        verbose_name_plural = _("Payment notifications")
        ordering = ["-received_at"]

    def __str__(self) -> str:
        return f"Payment for {self.appointment_id} ({self.reference or 'no reference'})"
