"""
Run the notification dispatcher.

Usage:
    # One sweep + dispatch cycle ("force a dispatch cycle now")
    python3 manage.py run_dispatcher --once

    # Standing scheduled process, one cycle every N seconds
    python3 manage.py run_dispatcher --interval 5

    # Queue counts for the last 24 hours
    python3 manage.py run_dispatcher --stats
"""

import logging
import time

from django.core.management.base import BaseCommand

from order_webhooks.conf import get_setting
from order_webhooks.dispatcher import Dispatcher, sweep_stale_notifications
from order_webhooks.queue import queue_stats

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Dispatch queued order notifications once or on a fixed interval"

    def add_arguments(self, parser):
        parser.add_argument(
            "--once",
            action="store_true",
            help="Run a single sweep + dispatch cycle and exit.",
        )
        parser.add_argument(
            "--interval",
            type=float,
            default=None,
            help="Seconds between cycles (default: DISPATCH_INTERVAL_SECONDS).",
        )
        parser.add_argument(
            "--batch-size",
            type=int,
            default=None,
            help="Notifications per cycle (default: DISPATCH_BATCH_SIZE).",
        )
        parser.add_argument(
            "--max-cycles",
            type=int,
            default=None,
            help="Stop after this many cycles (for supervised one-off runs).",
        )
        parser.add_argument(
            "--stats",
            action="store_true",
            help="Print queue counts for the last 24 hours and exit.",
        )

    def handle(self, *args, **options):
        if options["stats"]:
            self._print_stats()
            return

        dispatcher = Dispatcher(batch_size=options["batch_size"])
        if options["once"]:
            self._cycle(dispatcher)
            return

        interval = options["interval"] or get_setting("DISPATCH_INTERVAL_SECONDS")
        max_cycles = options["max_cycles"]
        cycles = 0
        print(f"Dispatching every {interval}s (batch size {dispatcher.batch_size})")
        try:
            while max_cycles is None or cycles < max_cycles:
                self._cycle(dispatcher)
                cycles += 1
                if max_cycles is None or cycles < max_cycles:
                    time.sleep(interval)
        except KeyboardInterrupt:
            print("\nStopped.")

    def _cycle(self, dispatcher):
        reset, failed_stale = sweep_stale_notifications()
        summary = dispatcher.run_once()
        print(
            f"claimed={summary.claimed} succeeded={summary.succeeded} "
            f"retried={summary.retried} failed={summary.failed} "
            f"skipped={summary.skipped} stale_reset={reset} "
            f"stale_failed={failed_stale}"
        )
        return summary

    def _print_stats(self):
        stats = queue_stats()
        print("Notifications in the last 24h:")
        for name, count in stats.items():
            print(f"  {name:<12} {count}")
