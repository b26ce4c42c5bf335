"""DRF exception handler rendering booking errors as ``{"code", "detail"[, "errors"]}``."""

from __future__ import annotations

import logging

from rest_framework import exceptions as drf_exceptions  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import exception_handler as drf_exception_handler  # type: ignore

from .domain.exceptions import BookingError, BookingValidationError

logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = 1


def booking_exception_handler(exc, context):  # type: ignore
    if isinstance(exc, BookingError):
        if exc.status_code >= 500:
            logger.warning(f"{exc.code}: {exc}")
        response = Response(exc.to_dict(), status=exc.status_code)
        if exc.retryable:
            response["Retry-After"] = str(RETRY_AFTER_SECONDS)
        return response

    response = drf_exception_handler(exc, context)
    if response is not None and isinstance(exc, drf_exceptions.ValidationError):
        errors = response.data if isinstance(response.data, dict) else {"non_field_errors": response.data}
        response.data = BookingValidationError(
            {field: [str(m) for m in (msgs if isinstance(msgs, list) else [msgs])] for field, msgs in errors.items()}
        ).to_dict()
    return response
