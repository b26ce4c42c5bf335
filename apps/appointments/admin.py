"""Admin registration for appointments."""

from __future__ import annotations

from django.contrib import admin  # type: ignore

from .models import Appointment, PaymentNotification


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    """Read-only: status changes must go through the booking engine."""

    list_display = (
        "id",
        "barber",
        "service",
        "client_id",
        "start_time",
        "end_time",
        "status",
        "created_at",
    )
    list_filter = ("status", "barber", "start_time")
    search_fields = ("client_id", "barber__name", "service__name")

    def has_add_permission(self, request):  # type: ignore
        return False

    def has_change_permission(self, request, obj=None):  # type: ignore
        return False


@admin.register(PaymentNotification)
class PaymentNotificationAdmin(admin.ModelAdmin):
    list_display = ("appointment", "reference", "received_at")
    search_fields = ("reference",)
    readonly_fields = ("appointment", "reference", "received_at")
