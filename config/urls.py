"""URL configuration for the barbershop booking project.

The `urlpatterns` list routes URLs to views. It includes the Django admin,
the versioned REST API and the OpenAPI schema.
"""
from django.contrib import admin  # type: ignore
from django.urls import path, include  # type: ignore
from drf_spectacular.views import SpectacularAPIView  # type: ignore

# API versioning. v1 is our initial version; future versions can be added here.

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/v1/', include('apps.appointments.urls')),
]
