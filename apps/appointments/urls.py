"""URL routing for the appointment domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import AppointmentViewSet, AvailabilityViewSet

router = DefaultRouter()
router.register(r"appointments", AppointmentViewSet, basename="appointment")
router.register(r"availability", AvailabilityViewSet, basename="availability")

urlpatterns = [
    path("", include(router.urls)),
]
