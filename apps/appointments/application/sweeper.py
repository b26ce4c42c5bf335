"""
No-show sweeper.

Expires SCHEDULED or CONFIRMED appointments whose end time plus the grace
period has passed without a check-in. Each row is handled under its
barber's lock with a compare-and-set write, so a cancel or complete that
got there first always wins. Running the sweep twice in a row changes
nothing the second time.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from uuid import UUID

import structlog

from ..domain.exceptions import BookingError
from .context import BookingContext

logger = structlog.get_logger(__name__)


@dataclass
class SweepResult:
    checked: int = 0
    expired: List[UUID] = field(default_factory=list)
    skipped: int = 0
    failed: int = 0
    pruned_locks: int = 0

    @property
    def expired_count(self) -> int:
        return len(self.expired)


class NoShowSweeper:
    """
    Usage:
        sweeper = NoShowSweeper(context)
        sweeper.sweep_once()            # one pass (Celery task)
        sweeper.run(stop_event)         # timer-driven loop (management command)
    """

    def __init__(self, context: BookingContext, interval: Optional[float] = None):
        self.context = context
        self.interval = interval
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def sweep_once(self, now: Optional[datetime] = None) -> SweepResult:
        context = self.context
        policy = context.policy
        now = now or context.now()
        cutoff = now - policy.no_show_grace

        result = SweepResult()
        for candidate in context.appointments.list_unattended(cutoff):
            result.checked += 1
            try:
                if self._expire(candidate.id, candidate.barber_id, now):
                    result.expired.append(candidate.id)
                else:
                    result.skipped += 1
            except BookingError as exc:
                result.failed += 1
                logger.warning(
                    "no_show.row_failed",
                    appointment_id=str(candidate.id),
                    code=exc.code,
                    error=str(exc),
                )
            except Exception:
                result.failed += 1
                logger.error("no_show.row_failed", appointment_id=str(candidate.id), exc_info=True)

        result.pruned_locks = context.locks.prune(
            barber.id for barber in context.barbers.list_active_barbers()
        )

        logger.info(
            "no_show.sweep_done",
            checked=result.checked,
            expired=result.expired_count,
            skipped=result.skipped,
            failed=result.failed,
            pruned_locks=result.pruned_locks,
        )
        return result

    def _expire(self, appointment_id: UUID, barber_id: UUID, now: datetime) -> bool:
        context = self.context
        grace = context.policy.no_show_grace

        with context.writing(barber_id) as uow:
            current = context.appointments.get(appointment_id)
            # Re-check: a cancel or check-in may have happened since the scan
            if current is None or not current.is_unattended(now, grace):
                return False

            expected = current.status
            current.mark_no_show(now)
            uow.collect_events(current)
            if not context.appointments.save(current, expected_status=expected):
                current.clear_events()
                uow.rollback()
                return False

        logger.info("no_show.marked", appointment_id=str(appointment_id), barber_id=str(barber_id))
        return True

    def run(self, stop_event: Optional[threading.Event] = None):
        """Sweep every ``interval`` seconds until ``stop_event`` is set"""
        stop_event = stop_event or self._stop_event
        logger.info("no_show.loop_started", interval=self._interval())

        while not stop_event.is_set():
            try:
                self.sweep_once()
            except Exception:
                # Only the listing itself can fail here; try again next tick
                logger.error("no_show.sweep_failed", exc_info=True)
            stop_event.wait(self._interval())

        logger.info("no_show.loop_stopped")

    def start(self) -> threading.Thread:
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run, name='no-show-sweeper', daemon=True)
        self._thread.start()
        return self._thread

    def stop(self, timeout: Optional[float] = None):
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _interval(self) -> float:
        if self.interval is not None:
            return self.interval
        return self.context.policy.sweep_interval
