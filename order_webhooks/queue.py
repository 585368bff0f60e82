"""Durable notification queue backed by the ``Notification`` table."""

import logging
from datetime import timedelta

from django.db.models import Count
from django.utils import timezone

from .conf import get_setting
from .models import Notification

logger = logging.getLogger(__name__)


def enqueue_notification(
    integration,
    topic,
    payload,
    idempotency_key,
    headers=None,
    resource_id="",
    payload_hash="",
):
    """Insert a pending notification due immediately.

    Returns ``(notification, created)``. A second insert with the same
    ``(integration, idempotency_key)`` returns the existing row.
    """
    defaults = {
        "store": integration.store,
        "shop_domain": integration.shop_domain,
        "topic": topic,
        "payload": payload,
        "headers": headers or {},
        "resource_id": resource_id,
        "payload_hash": payload_hash,
        "status": Notification.Status.PENDING,
        "max_attempts": get_setting("MAX_ATTEMPTS"),
        "next_attempt_at": timezone.now(),
    }
    # get_or_create falls back to the lookup when it loses an insert race.
    return Notification.objects.get_or_create(
        integration=integration,
        idempotency_key=idempotency_key,
        defaults=defaults,
    )


def requeue_notification(notification):
    """Operator retry: put a failed notification back in the queue.

    Attempts are reset so the full retry budget applies again. Rows that are
    not ``failed`` are left alone; returns whether the row was requeued.
    """
    updated = Notification.objects.filter(
        pk=notification.pk, status=Notification.Status.FAILED
    ).update(
        status=Notification.Status.PENDING,
        attempt_count=0,
        next_attempt_at=timezone.now(),
        claimed_at=None,
        processed_at=None,
        updated_at=timezone.now(),
    )
    if updated:
        logger.info(
            "Requeued notification %s (topic=%s, shop=%s)",
            notification.pk,
            notification.topic,
            notification.shop_domain,
        )
    return bool(updated)


def prune_notifications(retention_days=None):
    """Delete succeeded notifications older than the retention window."""
    days = retention_days or get_setting("NOTIFICATION_RETENTION_DAYS")
    cutoff = timezone.now() - timedelta(days=days)
    deleted, _ = Notification.objects.filter(
        status=Notification.Status.SUCCEEDED, processed_at__lt=cutoff
    ).delete()
    if deleted:
        logger.info("Pruned %d succeeded notifications older than %s", deleted, cutoff)
    return deleted


def forget_resource_notifications(shop_domain, resource_id):
    """Remove queue entries for a resource, except ones a worker holds."""
    if not resource_id:
        return 0
    deleted, _ = (
        Notification.objects.filter(shop_domain=shop_domain, resource_id=resource_id)
        .exclude(status=Notification.Status.PROCESSING)
        .delete()
    )
    return deleted


def queue_stats(hours=24):
    """Return ``{status: count}`` for notifications created in the window."""
    since = timezone.now() - timedelta(hours=hours)
    stats = {choice: 0 for choice in Notification.Status.values}
    rows = (
        Notification.objects.filter(created_at__gte=since)
        .values("status")
        .annotate(count=Count("id"))
    )
    for row in rows:
        stats[row["status"]] = row["count"]
    stats["total"] = sum(stats[choice] for choice in Notification.Status.values)
    return stats
