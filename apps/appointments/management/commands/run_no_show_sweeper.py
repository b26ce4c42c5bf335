from __future__ import annotations

import signal
import threading

from django.core.management.base import BaseCommand  # type: ignore

from apps.appointments.application.sweeper import NoShowSweeper
from apps.appointments.bootstrap import get_context


class Command(BaseCommand):
    help = "Runs the no-show sweep in a loop until SIGINT/SIGTERM"

    def add_arguments(self, parser):  # type: ignore
        parser.add_argument(
            "--interval",
            type=float,
            default=None,
            help="Seconds between sweeps (defaults to BARBERSHOP['NO_SHOW_SWEEP_INTERVAL_SECONDS'])",
        )
        parser.add_argument("--once", action="store_true", help="Run a single sweep and exit")

    def handle(self, *args, **options):  # type: ignore
        sweeper = NoShowSweeper(get_context(), interval=options["interval"])

        if options["once"]:
            result = sweeper.sweep_once()
            self.stdout.write(
                f"checked={result.checked} expired={result.expired_count} "
                f"skipped={result.skipped} failed={result.failed}"
            )
            return

        stop_event = threading.Event()

        def _stop(signum, frame):  # type: ignore
            self.stdout.write(f"Received signal {signum}, stopping after the current sweep")
            stop_event.set()

        signal.signal(signal.SIGINT, _stop)
        signal.signal(signal.SIGTERM, _stop)

        self.stdout.write("No-show sweeper started")
        sweeper.run(stop_event)
        self.stdout.write("No-show sweeper stopped")
