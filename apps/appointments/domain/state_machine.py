"""
Appointment Status Finite State Machine

Forward path:
    SCHEDULED -> CONFIRMED -> IN_PROGRESS -> COMPLETED

Side exits:
    SCHEDULED | CONFIRMED | IN_PROGRESS -> CANCELLED   (client or shop)
    SCHEDULED | CONFIRMED | IN_PROGRESS -> NO_SHOW     (system only)

Fast path (only when the policy enables it):
    SCHEDULED | CONFIRMED -> COMPLETED

COMPLETED, CANCELLED and NO_SHOW are terminal: nothing leaves them.
"""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet

from .exceptions import InvalidStateTransitionError


class AppointmentStatus(Enum):
    SCHEDULED = 'scheduled'
    CONFIRMED = 'confirmed'
    IN_PROGRESS = 'in_progress'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    NO_SHOW = 'no_show'

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def blocks_time(self) -> bool:
        """Whether an appointment in this status occupies the barber's time"""
        return self in ACTIVE_STATUSES


class Actor(Enum):
    """Who asks for a transition"""
    CLIENT = 'client'
    SHOP = 'shop'
    SYSTEM = 'system'


ACTIVE_STATUSES: FrozenSet[AppointmentStatus] = frozenset({
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.IN_PROGRESS,
})

TERMINAL_STATUSES: FrozenSet[AppointmentStatus] = frozenset({
    AppointmentStatus.COMPLETED,
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
})

# Statuses the no-show sweep may expire: the client never checked in.
UNATTENDED_STATUSES: FrozenSet[AppointmentStatus] = frozenset({
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
})

_TRANSITIONS = {
    AppointmentStatus.SCHEDULED: frozenset({
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }),
    AppointmentStatus.CONFIRMED: frozenset({
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }),
    AppointmentStatus.IN_PROGRESS: frozenset({
        AppointmentStatus.COMPLETED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    }),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

_FAST_PATH = {
    AppointmentStatus.SCHEDULED: frozenset({AppointmentStatus.COMPLETED}),
    AppointmentStatus.CONFIRMED: frozenset({AppointmentStatus.COMPLETED}),
}

_SYSTEM_ONLY = frozenset({AppointmentStatus.NO_SHOW})


def allowed_targets(
    current: AppointmentStatus,
    *,
    actor: Actor = Actor.SHOP,
    allow_fast_path: bool = False,
) -> FrozenSet[AppointmentStatus]:
    targets = set(_TRANSITIONS[current])
    if allow_fast_path:
        targets |= _FAST_PATH.get(current, frozenset())
    if actor is not Actor.SYSTEM:
        targets -= _SYSTEM_ONLY
    return frozenset(targets)


def can_transition(
    current: AppointmentStatus,
    target: AppointmentStatus,
    *,
    actor: Actor = Actor.SHOP,
    allow_fast_path: bool = False,
) -> bool:
    return target in allowed_targets(current, actor=actor, allow_fast_path=allow_fast_path)


def ensure_transition(
    current: AppointmentStatus,
    target: AppointmentStatus,
    *,
    actor: Actor = Actor.SHOP,
    allow_fast_path: bool = False,
) -> None:
    """
    Raise InvalidStateTransitionError unless current -> target is allowed.

    Pure check with no side effects; callers mutate state only after it passes.
    """
    if current.is_terminal:
        raise InvalidStateTransitionError(
            current, target,
            f"Appointment is already {current.value}; terminal statuses are final",
        )
    if target in _SYSTEM_ONLY and actor is not Actor.SYSTEM:
        raise InvalidStateTransitionError(
            current, target,
            f"Only the system may mark an appointment as {target.value}",
        )
    if not can_transition(current, target, actor=actor, allow_fast_path=allow_fast_path):
        raise InvalidStateTransitionError(current, target)
