"""
Wiring of the booking core.

One ``BookingContext`` per process: its lock table is what serializes
writes to the same barber, so every entry point (API, Celery task,
management command, admin) must go through ``get_context()``.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from django.utils import timezone  # type: ignore

from shared.application.message_bus import MessageBus, message_bus
from shared.application.uow import DjangoUnitOfWork

from .application.command_handlers import HANDLERS
from .application.context import BookingContext, BookingPolicy
from .application.locks import ProviderLockTable
from .domain import events
from .handlers import EVENT_NAMES, log_event, warn_on_no_show

logger = logging.getLogger(__name__)

_context: Optional[BookingContext] = None
_context_guard = threading.Lock()
_registered_buses = set()


def build_context(bus: Optional[MessageBus] = None) -> BookingContext:
    from apps.barbers.directory import DjangoProviderDirectory
    from apps.catalog.catalog import DjangoServiceCatalog

    from .repositories import DjangoAppointmentRepository, DjangoPaymentLedger

    return BookingContext(
        appointments=DjangoAppointmentRepository(),
        barbers=DjangoProviderDirectory(),
        services=DjangoServiceCatalog(),
        payments=DjangoPaymentLedger(),
        uow_factory=lambda: DjangoUnitOfWork(bus),
        locks=ProviderLockTable(default_timeout=BookingPolicy.from_settings().lock_timeout),
        policy_factory=BookingPolicy.from_settings,
        clock=timezone.now,
    )


def get_context() -> BookingContext:
    global _context
    if _context is None:
        with _context_guard:
            if _context is None:
                _context = build_context()
    return _context


def register_handlers(bus: MessageBus, context: BookingContext) -> None:
    """Register command handlers and event handlers on the bus"""
    for command_type, handler_class in HANDLERS.items():
        if not bus.has_command_handler(command_type):
            bus.register_command_handler(command_type, handler_class(context).handle)

    for event_type in EVENT_NAMES:
        bus.register_event_handler(event_type, log_event)
    bus.register_event_handler(events.AppointmentMarkedNoShow, warn_on_no_show)


def bootstrap(bus: MessageBus = message_bus) -> BookingContext:
    """Idempotent; called from AppConfig.ready()"""
    context = get_context()
    with _context_guard:
        if id(bus) in _registered_buses:
            return context
        register_handlers(bus, context)
        _registered_buses.add(id(bus))
    logger.info("Booking core handlers registered")
    return context
