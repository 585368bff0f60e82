import logging

import dramatiq

from .dispatcher import Dispatcher, sweep_stale_notifications
from .exceptions import TransientError, is_transient
from .ledger import IdempotencyLedger
from .models import Product, Store
from .queue import prune_notifications
from .services.inventory_sync import sync_inventory_to_platform

logger = logging.getLogger(__name__)

ORDER_WEBHOOK_QUEUE = "order_webhooks"


def should_retry(retries_so_far, exception):
    """Return True for transient errors, False for permanent ones.

    Transient (retry): ConnectionError, Timeout, HTTP 5xx, HTTP 429, and
    anything not known to be permanent.
    Permanent (fail):  PermanentError subclasses, HTTP 4xx (except 429).
    """
    return is_transient(exception)


@dramatiq.actor(queue_name=ORDER_WEBHOOK_QUEUE, max_retries=0)
def dispatch_notifications(batch_size=None):
    """Run one dispatch cycle. Retries are handled by the dispatcher itself."""
    summary = Dispatcher(batch_size=batch_size).run_once()
    return summary.as_dict()


@dramatiq.actor(queue_name=ORDER_WEBHOOK_QUEUE, max_retries=0)
def sweep_stale_notifications_task():
    reset, failed = sweep_stale_notifications()
    return {"reset": reset, "failed": failed}


@dramatiq.actor(queue_name=ORDER_WEBHOOK_QUEUE, max_retries=0)
def prune_webhook_state():
    """Drop expired idempotency records and old succeeded notifications."""
    records = IdempotencyLedger().prune_expired()
    notifications = prune_notifications()
    logger.info(
        "Pruned webhook state: %d idempotency records, %d notifications",
        records,
        notifications,
    )
    return {"idempotency_records": records, "notifications": notifications}


@dramatiq.actor(
    queue_name=ORDER_WEBHOOK_QUEUE,
    max_retries=5,
    min_backoff=30_000,
    max_backoff=600_000,
    retry_when=should_retry,
)
def sync_inventory_task(store_pk, product_ids):
    """Push the current stock of ``product_ids`` to the platform.

    Retried with backoff only when no product synced and every platform
    error was transient; partial syncs and rejected requests are final.
    """
    store = Store.objects.filter(pk=store_pk).first()
    if store is None:
        logger.error("Store %s not found for inventory sync", store_pk)
        return
    products = Product.objects.filter(store=store, pk__in=product_ids).order_by("pk")
    result = sync_inventory_to_platform(
        store, [(product, product.stock) for product in products]
    )
    if not result.synced and result.failures and all(map(is_transient, result.failures)):
        raise TransientError(
            f"inventory sync for store {store_pk} failed: {result.failures[-1]}"
        )
    return {"synced": result.synced, "warnings": result.warnings}
