"""API views for the appointment domain."""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend  # type: ignore
from drf_spectacular.utils import extend_schema  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.application.message_bus import message_bus

from .application.command_handlers import (
    CancelAppointmentCommand,
    CompleteAppointmentCommand,
    ConfirmAppointmentCommand,
    CreateAppointmentCommand,
    RecordPaymentCommand,
    RescheduleAppointmentCommand,
    StartAppointmentCommand,
)
from .application.queries import AvailabilityQueries
from .bootstrap import get_context
from .domain.state_machine import Actor
from .filters import AppointmentFilterSet
from .models import Appointment
from .serializers import (
    AppointmentCancelSerializer,
    AppointmentCreateSerializer,
    AppointmentRescheduleSerializer,
    AppointmentSerializer,
    DayAvailabilitySerializer,
    DayQuerySerializer,
    PaymentCompletedSerializer,
    RangeQuerySerializer,
    SlotSerializer,
)


class AppointmentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Booking and lifecycle of appointments.

    Every write goes through the booking engine on the message bus; the
    response is re-read from the database after commit.
    """

    queryset = Appointment.objects.all()
    serializer_class = AppointmentSerializer
    permission_classes = [permissions.AllowAny]
    filter_backends = [DjangoFilterBackend]
    filterset_class = AppointmentFilterSet

    def _respond(self, appointment, status_code=status.HTTP_200_OK) -> Response:
        row = Appointment.objects.get(pk=appointment.id)
        return Response(AppointmentSerializer(row).data, status=status_code)

    @extend_schema(request=AppointmentCreateSerializer, responses={201: AppointmentSerializer})
    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = AppointmentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        appointment = message_bus.handle_command(CreateAppointmentCommand(
            barber_id=data["barber"],
            service_id=data["service"],
            client_id=data["client_id"],
            start_time=data["start_time"],
        ))
        return self._respond(appointment, status.HTTP_201_CREATED)

    @extend_schema(request=AppointmentCancelSerializer, responses=AppointmentSerializer)
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        serializer = AppointmentCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        appointment = message_bus.handle_command(CancelAppointmentCommand(
            appointment_id=pk,
            reason=serializer.validated_data["reason"],
            actor=Actor.CLIENT,
        ))
        return self._respond(appointment)

    @extend_schema(request=AppointmentRescheduleSerializer, responses={201: AppointmentSerializer})
    @action(detail=True, methods=["post"])
    def reschedule(self, request, pk=None):  # type: ignore
        serializer = AppointmentRescheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        replacement = message_bus.handle_command(RescheduleAppointmentCommand(
            appointment_id=pk,
            new_start_time=serializer.validated_data["start_time"],
            new_barber_id=serializer.validated_data["barber"],
        ))
        return self._respond(replacement, status.HTTP_201_CREATED)

    @extend_schema(request=None, responses=AppointmentSerializer)
    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):  # type: ignore
        return self._respond(message_bus.handle_command(ConfirmAppointmentCommand(appointment_id=pk)))

    @extend_schema(request=None, responses=AppointmentSerializer)
    @action(detail=True, methods=["post"])
    def start(self, request, pk=None):  # type: ignore
        return self._respond(message_bus.handle_command(StartAppointmentCommand(appointment_id=pk)))

    @extend_schema(request=None, responses=AppointmentSerializer)
    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):  # type: ignore
        return self._respond(message_bus.handle_command(CompleteAppointmentCommand(appointment_id=pk)))

    @extend_schema(request=PaymentCompletedSerializer, responses=AppointmentSerializer)
    @action(detail=True, methods=["post"], url_path="payment-completed")
    def payment_completed(self, request, pk=None):  # type: ignore
        serializer = PaymentCompletedSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        appointment = message_bus.handle_command(RecordPaymentCommand(
            appointment_id=pk,
            reference=serializer.validated_data["reference"],
        ))
        return self._respond(appointment)


class AvailabilityViewSet(viewsets.ViewSet):
    """Read-only availability; never waits on booking locks."""

    permission_classes = [permissions.AllowAny]

    def _queries(self) -> AvailabilityQueries:
        return AvailabilityQueries(get_context())

    @extend_schema(parameters=[DayQuerySerializer], responses=DayAvailabilitySerializer)
    @action(detail=False, methods=["get"])
    def day(self, request):  # type: ignore
        params = DayQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        summary = self._queries().day(
            params.validated_data["date"],
            barber_id=params.validated_data["barber"],
            slot_minutes=params.validated_data["slot_minutes"],
        )
        return Response(DayAvailabilitySerializer(summary).data)

    @extend_schema(parameters=[RangeQuerySerializer], responses=DayAvailabilitySerializer(many=True))
    @action(detail=False, methods=["get"], url_path="range", url_name="range")
    def date_range(self, request):  # type: ignore
        params = RangeQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        days = self._queries().range(
            params.validated_data["start"],
            params.validated_data["end"],
            barber_id=params.validated_data["barber"],
        )
        return Response(DayAvailabilitySerializer(days, many=True).data)

    @extend_schema(parameters=[DayQuerySerializer], responses=SlotSerializer(many=True))
    @action(detail=False, methods=["get"])
    def slots(self, request):  # type: ignore
        params = DayQuerySerializer(data=request.query_params)
        params.is_valid(raise_exception=True)
        slots = self._queries().slots(
            params.validated_data["date"],
            barber_id=params.validated_data["barber"],
            slot_minutes=params.validated_data["slot_minutes"],
        )
        return Response(SlotSerializer(slots, many=True).data)
