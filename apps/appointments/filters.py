"""FilterSet definitions for appointment listing."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Appointment


class AppointmentFilterSet(django_filters.FilterSet):

    barber = django_filters.UUIDFilter(field_name="barber_id")
    client_id = django_filters.CharFilter(field_name="client_id", lookup_expr="exact")
    status = django_filters.MultipleChoiceFilter(choices=Appointment.Status.choices)
    start_after = django_filters.IsoDateTimeFilter(field_name="start_time", lookup_expr="gte")
    start_before = django_filters.IsoDateTimeFilter(field_name="start_time", lookup_expr="lt")

    class Meta:
        model = Appointment
        fields = ["barber", "client_id", "status"]
