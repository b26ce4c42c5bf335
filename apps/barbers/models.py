"""Provider directory models."""

from __future__ import annotations

import uuid

from django.core.exceptions import ValidationError  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Barber(models.Model):
    """A barber whose time can be booked."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=120)
    is_active = models.BooleanField(
        default=True,
        help_text=_("Inactive barbers cannot be booked and are hidden from availability."),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Barber")
        verbose_name_plural = _("Barbers")
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active"], name="barber_active_idx"),
        ]

    def __str__(self) -> str:
        return self.name


class WorkingHours(models.Model):
    """Recurring working interval of a barber on one weekday."""

    class Weekday(models.IntegerChoices):
        MONDAY = 0, _("Monday")
        TUESDAY = 1, _("Tuesday")
        WEDNESDAY = 2, _("Wednesday")
        THURSDAY = 3, _("Thursday")
        FRIDAY = 4, _("Friday")
        SATURDAY = 5, _("Saturday")
        SUNDAY = 6, _("Sunday")

    barber = models.ForeignKey(
        Barber,
        on_delete=models.CASCADE,
        related_name="working_hours",
    )
    weekday = models.PositiveSmallIntegerField(choices=Weekday.choices)
    start_time = models.TimeField()
    end_time = models.TimeField()

    class Meta:
        verbose_name = _("Working hours")
        verbose_name_plural = _("Working hours")
        ordering = ["barber", "weekday", "start_time"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_time__gt=models.F("start_time")),
                name="working_hours_end_after_start",
            ),
            models.UniqueConstraint(
                fields=["barber", "weekday", "start_time"],
                name="working_hours_unique_shift_start",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.barber} {self.get_weekday_display()} {self.start_time:%H:%M}-{self.end_time:%H:%M}"

    def clean(self) -> None:
        if self.start_time and self.end_time and self.start_time >= self.end_time:
            raise ValidationError(_("Shift end must be after its start."))
