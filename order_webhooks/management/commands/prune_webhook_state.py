"""
Delete expired idempotency records and old succeeded notifications.

Usage:
    python3 manage.py prune_webhook_state
    python3 manage.py prune_webhook_state --retention-days 14
"""

from django.core.management.base import BaseCommand

from order_webhooks.ledger import IdempotencyLedger
from order_webhooks.queue import prune_notifications


class Command(BaseCommand):
    help = "Prune expired idempotency records and succeeded notifications"

    def add_arguments(self, parser):
        parser.add_argument(
            "--retention-days",
            type=int,
            default=None,
            help="Keep succeeded notifications this many days "
            "(default: NOTIFICATION_RETENTION_DAYS).",
        )

    def handle(self, *args, **options):
        records = IdempotencyLedger().prune_expired()
        notifications = prune_notifications(options["retention_days"])
        print(
            f"Pruned {records} idempotency record(s) and "
            f"{notifications} notification(s)"
        )
