"""
Appointment Domain Errors

Every failure the booking core can report is one of these classes, so
callers can tell retryable conditions (``BusyError``) from terminal ones
(``SlotConflictError``, ``InvalidStateTransitionError``) without parsing
messages. ``status_code`` is the HTTP-equivalent used by the API layer.
"""

from __future__ import annotations


class BookingError(Exception):
    """Base exception for all booking core errors."""

    code = "booking_error"
    status_code = 400
    retryable = False

    def __init__(self, message: str = "", **context):
        super().__init__(message or self.__class__.__doc__)
        self.context = context

    @property
    def detail(self) -> str:
        return str(self)

    def to_dict(self) -> dict:
        return {"code": self.code, "detail": self.detail}


class SlotConflictError(BookingError):
    """The requested interval overlaps an active appointment of the barber."""

    code = "slot_conflict"
    status_code = 409


class OutsideWorkingHoursError(BookingError):
    """The requested interval is not inside one of the barber's shifts."""

    code = "outside_working_hours"
    status_code = 422


class ServiceInactiveError(BookingError):
    """The service does not exist or is not active."""

    code = "service_inactive"
    status_code = 422


class ProviderInactiveError(BookingError):
    """The barber does not exist or is not active."""

    code = "provider_inactive"
    status_code = 422


class InvalidStateTransitionError(BookingError):
    """The appointment cannot move to the requested status."""

    code = "invalid_state_transition"
    status_code = 422

    def __init__(self, current, target, message: str = ""):
        self.current = current
        self.target = target
        super().__init__(
            message or f"Cannot move appointment from {_label(current)} to {_label(target)}",
            current=current,
            target=target,
        )


class PaymentRequiredError(BookingError):
    """No successful payment has been recorded for the appointment."""

    code = "payment_required"
    status_code = 402


class AppointmentNotFoundError(BookingError):
    """The appointment does not exist."""

    code = "not_found"
    status_code = 404


class BusyError(BookingError):
    """The barber's schedule is locked by another request; retry later."""

    code = "busy"
    status_code = 503
    retryable = True


class ProviderHasActiveAppointmentsError(BookingError):
    """The barber still has upcoming appointments that are not finished."""

    code = "provider_has_active_appointments"
    status_code = 409


class BookingValidationError(BookingError):
    """Malformed input, rejected before any lock is taken."""

    code = "validation_error"
    status_code = 400

    def __init__(self, errors: dict[str, list[str]]):
        self.errors = errors
        summary = "; ".join(f"{field}: {', '.join(msgs)}" for field, msgs in errors.items())
        super().__init__(summary or "Invalid input")

    def to_dict(self) -> dict:
        payload = super().to_dict()
        payload["errors"] = self.errors
        return payload


def _label(status) -> str:
    return getattr(status, "value", str(status))
