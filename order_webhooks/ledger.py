"""Idempotency ledger for inbound platform events.

The ledger answers one question, "has this event id already been accepted?",
and answers it with a single atomic statement so two concurrent deliveries of
the same event can never both be treated as new.
"""

import logging
from datetime import timedelta

from django.db import IntegrityError, transaction
from django.utils import timezone

from .conf import get_setting
from .models import IdempotencyRecord

logger = logging.getLogger(__name__)

NEW = "new"
DUPLICATE = "duplicate"


class IdempotencyLedger:
    def __init__(self, ttl_hours=None):
        self.ttl = timedelta(hours=ttl_hours or get_setting("IDEMPOTENCY_TTL_HOURS"))

    def observe(
        self, event_id, shop_domain="", topic="", resource_id="", response_status=200
    ):
        """Record ``event_id`` and return ``NEW`` or ``DUPLICATE``.

        The insert runs in a savepoint so a unique-key collision does not
        poison the caller's transaction. A collision with an expired record
        reclaims it with one conditional update; only the caller whose update
        lands gets ``NEW``.
        """
        now = timezone.now()
        values = {
            "shop_domain": shop_domain,
            "topic": topic,
            "resource_id": resource_id,
            "processed_at": now,
            "response_status": response_status,
            "expires_at": now + self.ttl,
        }
        try:
            with transaction.atomic():
                IdempotencyRecord.objects.create(event_id=event_id, **values)
            return NEW
        except IntegrityError:
            pass

        reclaimed = IdempotencyRecord.objects.filter(
            event_id=event_id, expires_at__lte=now
        ).update(**values)
        if reclaimed:
            logger.info("Reclaimed expired idempotency record %s", event_id)
            return NEW
        return DUPLICATE

    def is_known(self, event_id):
        return IdempotencyRecord.objects.filter(
            event_id=event_id, expires_at__gt=timezone.now()
        ).exists()

    def prune_expired(self):
        """Delete every expired record. Returns the number removed."""
        deleted, _ = IdempotencyRecord.objects.filter(
            expires_at__lte=timezone.now()
        ).delete()
        if deleted:
            logger.info("Pruned %d expired idempotency records", deleted)
        return deleted

    def forget_resource(self, shop_domain, resource_id):
        """Drop records tied to a platform resource (e.g. a hard-deleted order)."""
        if not resource_id:
            return 0
        deleted, _ = IdempotencyRecord.objects.filter(
            shop_domain=shop_domain, resource_id=resource_id
        ).delete()
        return deleted
