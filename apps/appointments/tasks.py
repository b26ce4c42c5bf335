"""Celery tasks for the appointment domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .application.sweeper import NoShowSweeper
from .bootstrap import get_context

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (run by Celery Beat)
# ============================================================================

@shared_task(name="appointments.mark_no_shows")
def mark_no_shows() -> dict[str, int]:
    """
    Expire unattended appointments.

    Finds SCHEDULED or CONFIRMED appointments whose end time plus the
    grace period has passed and moves them to NO_SHOW. Safe to run
    concurrently with bookings and with itself.

    Returns:
        dict: counters of the sweep
    """
    result = NoShowSweeper(get_context()).sweep_once()
    return {
        "checked": result.checked,
        "expired": result.expired_count,
        "skipped": result.skipped,
        "failed": result.failed,
    }
