"""
Booking configuration and the collaborators every handler works with.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone as dt_timezone, tzinfo
from decimal import Decimal
from typing import Callable, Iterator, Optional
from uuid import UUID

from shared.application.uow import AbstractUnitOfWork
from shared.domain.base import utcnow

from .locks import ProviderLockTable
from .ports import AbstractAppointmentRepository, BarberDirectory, PaymentLedger, ServiceCatalog

DEFAULTS = {
    'LOCK_TIMEOUT_SECONDS': 5.0,
    'PAY_LATER': False,
    'ALLOW_FAST_PATH_COMPLETION': False,
    'NO_SHOW_GRACE_MINUTES': 15,
    'NO_SHOW_SWEEP_INTERVAL_SECONDS': 60.0,
    'FREE_THRESHOLD': '1.0',
    'DEFAULT_SLOT_MINUTES': 30,
    'MAX_RANGE_DAYS': 62,
    'HIDE_PAST': True,
}


@dataclass(frozen=True)
class BookingPolicy:
    lock_timeout: float = 5.0
    pay_later: bool = False
    allow_fast_path_completion: bool = False
    no_show_grace: timedelta = timedelta(minutes=15)
    sweep_interval: float = 60.0
    free_threshold: Decimal = Decimal('1')
    default_slot_minutes: int = 30
    max_range_days: int = 62
    hide_past: bool = True
    timezone: Optional[tzinfo] = dt_timezone.utc

    def __post_init__(self):
        if self.lock_timeout <= 0:
            raise ValueError("lock_timeout must be positive; lock waits are always bounded")

    @classmethod
    def from_settings(cls) -> 'BookingPolicy':
        """Build the policy from ``settings.BARBERSHOP`` (read on every call)"""
        from django.conf import settings
        from django.utils import timezone

        conf = {**DEFAULTS, **getattr(settings, 'BARBERSHOP', {})}
        return cls(
            lock_timeout=float(conf['LOCK_TIMEOUT_SECONDS']),
            pay_later=bool(conf['PAY_LATER']),
            allow_fast_path_completion=bool(conf['ALLOW_FAST_PATH_COMPLETION']),
            no_show_grace=timedelta(minutes=int(conf['NO_SHOW_GRACE_MINUTES'])),
            sweep_interval=float(conf['NO_SHOW_SWEEP_INTERVAL_SECONDS']),
            free_threshold=Decimal(str(conf['FREE_THRESHOLD'])),
            default_slot_minutes=int(conf['DEFAULT_SLOT_MINUTES']),
            max_range_days=int(conf['MAX_RANGE_DAYS']),
            hide_past=bool(conf['HIDE_PAST']),
            timezone=timezone.get_current_timezone() if settings.USE_TZ else None,
        )

    def localize(self, moment: datetime) -> datetime:
        """Express an instant in the shop's timezone (calendar date, weekday)"""
        if self.timezone is None or moment.tzinfo is None:
            return moment
        return moment.astimezone(self.timezone)


@dataclass
class BookingContext:
    """
    Everything a handler needs.

    ``policy_factory`` is called on every access so configuration changes
    apply to the next request without rebuilding the context.
    """
    appointments: AbstractAppointmentRepository
    barbers: BarberDirectory
    services: ServiceCatalog
    payments: PaymentLedger
    uow_factory: Callable[[], AbstractUnitOfWork]
    locks: ProviderLockTable = field(default_factory=ProviderLockTable)
    policy_factory: Callable[[], BookingPolicy] = BookingPolicy
    clock: Callable[[], datetime] = utcnow

    @property
    def policy(self) -> BookingPolicy:
        return self.policy_factory()

    def now(self) -> datetime:
        return self.clock()

    @contextmanager
    def writing(self, *barber_ids: UUID, policy: Optional[BookingPolicy] = None) -> Iterator[AbstractUnitOfWork]:
        """
        Critical section for changes to the barbers' appointment sets.

        Takes the in-process barber locks (ascending id order), opens a unit
        of work, then the storage-level barber locks. Every check-then-write
        sequence must run inside this block.
        """
        policy = policy or self.policy
        with self.locks.hold(*barber_ids, timeout=policy.lock_timeout):
            with self.uow_factory() as uow:
                for barber_id in sorted(set(barber_ids)):
                    self.appointments.lock_barber(barber_id)
                yield uow
