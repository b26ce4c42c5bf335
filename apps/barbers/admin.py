"""Admin registration for barbers."""

from __future__ import annotations

from django.contrib import admin, messages  # type: ignore

from apps.appointments.domain.exceptions import BookingError

from .models import Barber, WorkingHours
from .services import deactivate_barber


class WorkingHoursInline(admin.TabularInline):
    model = WorkingHours
    extra = 0


@admin.register(Barber)
class BarberAdmin(admin.ModelAdmin):
    list_display = ("name", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name",)
    readonly_fields = ("created_at", "updated_at")
    inlines = [WorkingHoursInline]
    actions = ["deactivate"]

    @admin.action(description="Deactivate selected barbers")
    def deactivate(self, request, queryset):  # type: ignore
        for barber in queryset:
            try:
                deactivate_barber(barber.id)
            except BookingError as exc:
                self.message_user(request, f"{barber}: {exc}", level=messages.ERROR)
