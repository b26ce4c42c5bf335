"""
Input validation for booking commands.

Each function collects problems into a ``{field: [messages]}`` dict and
the ``validate_*`` entry points raise a single BookingValidationError.
All of this runs before any lock is taken.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, List, Optional
from uuid import UUID

from ..domain.exceptions import BookingValidationError
from .context import BookingPolicy

Errors = Dict[str, List[str]]

MAX_REASON_LENGTH = 255
MAX_CLIENT_ID_LENGTH = 64


def _add(errors: Errors, field: str, message: str) -> None:
    errors.setdefault(field, []).append(message)


def raise_if_errors(errors: Errors) -> None:
    if errors:
        raise BookingValidationError(errors)


def check_uuid(value, field: str, errors: Errors, required: bool = True) -> Optional[UUID]:
    if value is None:
        if required:
            _add(errors, field, "This field is required.")
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        _add(errors, field, "Must be a valid UUID.")
        return None


def check_client_id(value, errors: Errors) -> str:
    if not isinstance(value, str) or not value.strip():
        _add(errors, 'client_id', "This field is required.")
        return ''
    value = value.strip()
    if len(value) > MAX_CLIENT_ID_LENGTH:
        _add(errors, 'client_id', f"Must be at most {MAX_CLIENT_ID_LENGTH} characters.")
    return value


def check_start_time(
    value,
    policy: BookingPolicy,
    now: datetime,
    errors: Errors,
    field: str = 'start_time',
) -> Optional[datetime]:
    """Returns the start expressed in the shop's timezone"""
    if not isinstance(value, datetime):
        _add(errors, field, "Must be a datetime.")
        return None

    aware = value.tzinfo is not None and value.utcoffset() is not None
    if policy.timezone is not None and not aware:
        _add(errors, field, "Must include a timezone offset.")
        return None
    if policy.timezone is None and aware:
        _add(errors, field, "Must be a local time without timezone offset.")
        return None

    if value.second or value.microsecond:
        _add(errors, field, "Must be aligned to whole minutes.")
    if value < now:
        _add(errors, field, "Must not be in the past.")
    return policy.localize(value)


def check_reason(value, errors: Errors) -> str:
    if value is None:
        return ''
    if not isinstance(value, str):
        _add(errors, 'reason', "Must be a string.")
        return ''
    value = value.strip()
    if len(value) > MAX_REASON_LENGTH:
        _add(errors, 'reason', f"Must be at most {MAX_REASON_LENGTH} characters.")
    return value


def validate_create(command, policy: BookingPolicy, now: datetime) -> datetime:
    errors: Errors = {}
    check_uuid(command.barber_id, 'barber_id', errors)
    check_uuid(command.service_id, 'service_id', errors)
    check_client_id(command.client_id, errors)
    start = check_start_time(command.start_time, policy, now, errors)
    raise_if_errors(errors)
    return start


def validate_reschedule(command, policy: BookingPolicy, now: datetime) -> datetime:
    errors: Errors = {}
    check_uuid(command.appointment_id, 'appointment_id', errors)
    check_uuid(command.new_barber_id, 'new_barber_id', errors, required=False)
    start = check_start_time(command.new_start_time, policy, now, errors, field='new_start_time')
    raise_if_errors(errors)
    return start


def validate_cancel(command) -> str:
    errors: Errors = {}
    check_uuid(command.appointment_id, 'appointment_id', errors)
    reason = check_reason(command.reason, errors)
    raise_if_errors(errors)
    return reason


def validate_appointment_id(value) -> UUID:
    errors: Errors = {}
    appointment_id = check_uuid(value, 'appointment_id', errors)
    raise_if_errors(errors)
    return appointment_id


def validate_date_range(start: date, end: date, policy: BookingPolicy) -> None:
    errors: Errors = {}
    if start > end:
        _add(errors, 'start', "Start date must not be after end date.")
    elif (end - start).days + 1 > policy.max_range_days:
        _add(errors, 'end', f"Range must not exceed {policy.max_range_days} days.")
    raise_if_errors(errors)


def validate_slot_minutes(value: int) -> None:
    errors: Errors = {}
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        _add(errors, 'slot_minutes', "Must be a positive number of minutes.")
    elif value > 24 * 60:
        _add(errors, 'slot_minutes', "Must not exceed one day.")
    raise_if_errors(errors)
