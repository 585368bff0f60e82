"""Dispatcher / retry engine for queued notifications.

Each :meth:`Dispatcher.run_once` call processes one bounded batch of due
``pending`` notifications and returns. Rows are claimed with a conditional
``pending -> processing`` update, so the ``processing`` status is the lease:
two concurrent runs can never both work on the same row. Every write after
the claim is conditional on ``status = processing`` for the same reason.
"""

import logging
import time
from dataclasses import asdict, dataclass
from datetime import timedelta

from datadog import statsd
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .conf import get_setting
from .exceptions import IntegrationNotFound, PermanentError, UnknownTopic, is_transient
from .models import Integration, Notification
from .router import get_handler
from .utils import truncate_error

logger = logging.getLogger(__name__)


def backoff_seconds(attempts):
    """Delay before the next try after ``attempts`` failed attempts.

    ``min(base * 2 ** (attempts - 1), cap)``: 60, 120, 240, 480, 960, 960...
    """
    base = get_setting("BACKOFF_BASE_SECONDS")
    cap = get_setting("BACKOFF_CAP_SECONDS")
    return min(base * 2 ** (max(attempts, 1) - 1), cap)


@dataclass
class DispatchSummary:
    claimed: int = 0
    succeeded: int = 0
    retried: int = 0
    failed: int = 0
    skipped: int = 0

    def as_dict(self):
        return asdict(self)


class Dispatcher:
    SUCCEEDED = "succeeded"
    RETRIED = "retried"
    FAILED = "failed"
    SKIPPED = "skipped"

    def __init__(self, batch_size=None):
        self.batch_size = batch_size or get_setting("DISPATCH_BATCH_SIZE")

    def due_notification_ids(self):
        return list(
            Notification.objects.filter(
                status=Notification.Status.PENDING,
                next_attempt_at__lte=timezone.now(),
            )
            .order_by("created_at", "id")
            .values_list("pk", flat=True)[: self.batch_size]
        )

    def run_once(self):
        """Process one batch of due notifications; never raises for handler errors."""
        summary = DispatchSummary()
        for pk in self.due_notification_ids():
            notification = self.claim(pk)
            if notification is None:
                summary.skipped += 1
                continue
            summary.claimed += 1
            outcome = self.process(notification)
            setattr(summary, outcome, getattr(summary, outcome) + 1)

        if summary.claimed or summary.skipped:
            logger.info("Dispatch cycle finished: %s", summary.as_dict())
        return summary

    def claim(self, pk):
        """Move ``pk`` from pending to processing. Returns None on a lost race."""
        now = timezone.now()
        claimed = Notification.objects.filter(
            pk=pk, status=Notification.Status.PENDING
        ).update(
            status=Notification.Status.PROCESSING,
            claimed_at=now,
            updated_at=now,
        )
        if not claimed:
            logger.debug("Notification %s claimed by another worker", pk)
            return None
        return Notification.objects.select_related("integration").get(pk=pk)

    def process(self, notification):
        tags = [
            f"topic:{notification.topic}",
            f"shop_domain:{notification.shop_domain}",
        ]
        start = time.monotonic()
        try:
            integration = self.resolve_integration(notification)
            handler = get_handler(notification.topic)
            if handler is None:
                raise UnknownTopic(f"No handler for topic: {notification.topic}")
            with transaction.atomic():
                handler(notification, integration)
        except Exception as exc:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            return self.record_failure(notification, exc, elapsed_ms, tags)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        return self.record_success(notification, elapsed_ms, tags)

    def resolve_integration(self, notification):
        integration = Integration.objects.filter(
            shop_domain=notification.shop_domain,
            status=Integration.Status.ACTIVE,
        ).first()
        if integration is None:
            raise IntegrationNotFound(
                f"integration not found for shop {notification.shop_domain}"
            )
        return integration

    def _processing(self, notification):
        return Notification.objects.filter(
            pk=notification.pk, status=Notification.Status.PROCESSING
        )

    def record_success(self, notification, elapsed_ms, tags):
        now = timezone.now()
        updated = self._processing(notification).update(
            status=Notification.Status.SUCCEEDED,
            processed_at=now,
            processing_time_ms=elapsed_ms,
            last_error="",
            updated_at=now,
        )
        if not updated:
            logger.warning(
                "Notification %s left processing before it could be marked succeeded",
                notification.pk,
            )
            return self.SKIPPED

        result_tags = tags + [f"status:{Notification.Status.SUCCEEDED}"]
        statsd.increment("orders.webhook.processed", tags=result_tags)
        statsd.histogram("orders.webhook.processing_time_ms", elapsed_ms, tags=result_tags)
        logger.info(
            "Processed notification %s (topic=%s, shop=%s) in %dms",
            notification.pk,
            notification.topic,
            notification.shop_domain,
            elapsed_ms,
        )
        return self.SUCCEEDED

    def record_failure(self, notification, exc, elapsed_ms, tags):
        now = timezone.now()
        attempts = notification.attempt_count + 1
        error_text = truncate_error(exc)
        permanent = not is_transient(exc)

        if permanent or attempts >= notification.max_attempts:
            updated = self._processing(notification).update(
                status=Notification.Status.FAILED,
                attempt_count=attempts,
                last_error=error_text,
                processed_at=now,
                processing_time_ms=elapsed_ms,
                updated_at=now,
            )
            outcome = self.FAILED
        else:
            delay = backoff_seconds(attempts)
            updated = self._processing(notification).update(
                status=Notification.Status.PENDING,
                attempt_count=attempts,
                last_error=error_text,
                next_attempt_at=now + timedelta(seconds=delay),
                claimed_at=None,
                processing_time_ms=elapsed_ms,
                updated_at=now,
            )
            outcome = self.RETRIED

        if isinstance(exc, PermanentError):
            logger.warning(
                "Notification %s (topic=%s) failed permanently: %s",
                notification.pk,
                notification.topic,
                exc,
            )
        else:
            logger.exception(
                "Failed to process notification %s (topic=%s, attempt %d/%d)",
                notification.pk,
                notification.topic,
                attempts,
                notification.max_attempts,
            )

        if not updated:
            return self.SKIPPED

        result_tags = tags + [f"status:{outcome}"]
        if outcome == self.FAILED:
            statsd.increment("orders.webhook.failed", tags=result_tags)
        else:
            statsd.increment("orders.webhook.retried", tags=result_tags)
        statsd.histogram("orders.webhook.processing_time_ms", elapsed_ms, tags=result_tags)
        return outcome


def sweep_stale_notifications(stale_minutes=None):
    """Recover notifications abandoned in ``processing`` by a crashed worker.

    Each recovered row is charged one attempt. Rows whose budget is spent are
    failed; the rest go back to ``pending``, due immediately. Returns
    ``(reset, failed)`` counts.
    """
    now = timezone.now()
    minutes = stale_minutes or get_setting("STALE_PROCESSING_MINUTES")
    stale = Notification.objects.filter(
        status=Notification.Status.PROCESSING,
        claimed_at__lt=now - timedelta(minutes=minutes),
    )
    failed = stale.filter(attempt_count__gte=F("max_attempts") - 1).update(
        status=Notification.Status.FAILED,
        attempt_count=F("attempt_count") + 1,
        last_error=f"Abandoned in processing for more than {minutes} minutes",
        processed_at=now,
        updated_at=now,
    )
    reset = stale.update(
        status=Notification.Status.PENDING,
        attempt_count=F("attempt_count") + 1,
        next_attempt_at=now,
        claimed_at=None,
        updated_at=now,
    )
    if reset or failed:
        logger.warning(
            "Stale sweep recovered %d notifications and failed %d", reset, failed
        )
    return reset, failed
