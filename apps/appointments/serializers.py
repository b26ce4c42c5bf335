"""Serializers for the appointment API."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Appointment


class AppointmentSerializer(serializers.ModelSerializer):
    """Read representation of an appointment."""

    barber_id = serializers.UUIDField(read_only=True)
    service_id = serializers.UUIDField(read_only=True)
    rescheduled_from_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = Appointment
        fields = [
            "id",
            "barber_id",
            "service_id",
            "client_id",
            "start_time",
            "end_time",
            "status",
            "cancellation_reason",
            "rescheduled_from_id",
            "confirmed_at",
            "started_at",
            "completed_at",
            "cancelled_at",
            "no_show_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class AppointmentCreateSerializer(serializers.Serializer):
    """Input of a booking request; business checks happen in the booking engine."""

    barber = serializers.UUIDField()
    service = serializers.UUIDField()
    client_id = serializers.CharField(max_length=64)
    start_time = serializers.DateTimeField()


class AppointmentCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class AppointmentRescheduleSerializer(serializers.Serializer):
    start_time = serializers.DateTimeField()
    barber = serializers.UUIDField(required=False, allow_null=True, default=None)


class PaymentCompletedSerializer(serializers.Serializer):
    reference = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")


# ===== Availability =====

class DayQuerySerializer(serializers.Serializer):
    date = serializers.DateField()
    barber = serializers.UUIDField(required=False, allow_null=True, default=None)
    slot_minutes = serializers.IntegerField(required=False, allow_null=True, default=None, min_value=1)


class RangeQuerySerializer(serializers.Serializer):
    start = serializers.DateField()
    end = serializers.DateField()
    barber = serializers.UUIDField(required=False, allow_null=True, default=None)


class IntervalSerializer(serializers.Serializer):
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()


def _minutes(value) -> int:
    return int(value.total_seconds() // 60)


class BarberAvailabilitySerializer(serializers.Serializer):
    barber_id = serializers.UUIDField()
    free = IntervalSerializer(many=True)
    free_minutes = serializers.SerializerMethodField()
    capacity_minutes = serializers.SerializerMethodField()

    def get_free_minutes(self, obj) -> int:  # type: ignore
        return _minutes(obj.free_time)

    def get_capacity_minutes(self, obj) -> int:  # type: ignore
        return _minutes(obj.capacity)


class DayAvailabilitySerializer(serializers.Serializer):
    date = serializers.DateField()
    status = serializers.SerializerMethodField()
    barber = serializers.UUIDField(source="barber_id", allow_null=True)
    free_minutes = serializers.SerializerMethodField()
    capacity_minutes = serializers.SerializerMethodField()
    free_intervals = IntervalSerializer(many=True)
    barbers = BarberAvailabilitySerializer(many=True)

    def get_status(self, obj) -> str:  # type: ignore
        return obj.status.value

    def get_free_minutes(self, obj) -> int:  # type: ignore
        return _minutes(obj.total_free)

    def get_capacity_minutes(self, obj) -> int:  # type: ignore
        return _minutes(obj.total_capacity)


class SlotSerializer(serializers.Serializer):
    start = serializers.DateTimeField(source="interval.start")
    end = serializers.DateTimeField(source="interval.end")
    available = serializers.BooleanField()
    barber_ids = serializers.ListField(child=serializers.UUIDField())
