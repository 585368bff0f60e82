"""Push local stock levels to the platform after a local mutation.

Local state is authoritative. The bridge is best-effort: per-product failures
become warnings in the returned :class:`SyncResult`, the local mutation that
already committed is never rolled back, and no platform error escapes. HTTP
errors are kept in ``SyncResult.failures`` so a caller can decide to retry.
"""

import logging
import time
from dataclasses import dataclass, field

import requests
from datadog import statsd
from django.db import transaction
from django.utils import timezone

from ..conf import get_setting
from ..models import Integration, Product
from .platform_api import PlatformClient

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    synced: list = field(default_factory=list)
    skipped: list = field(default_factory=list)
    warnings: list = field(default_factory=list)
    failures: list = field(default_factory=list)

    @property
    def ok(self):
        return not self.warnings

    def warn(self, message, store=None):
        self.warnings.append(message)
        tags = [f"store:{store.store_id}"] if store is not None else []
        statsd.increment("orders.inventory_sync.warning", tags=tags)
        logger.warning("Inventory sync: %s", message)


def _resolve_location_id(integration, client):
    """Pinned ``extra_data["location_id"]``, else the first active location."""
    pinned = (integration.extra_data or {}).get("location_id")
    if pinned:
        return str(pinned)
    for location in client.list_locations():
        if location.get("active", True):
            return str(location["id"])
    return None


def _resolve_inventory_item_id(product, client):
    if product.external_inventory_item_id:
        return product.external_inventory_item_id
    variant = client.get_variant(product.external_variant_id)
    inventory_item_id = variant.get("inventory_item_id")
    if not inventory_item_id:
        return None
    inventory_item_id = str(inventory_item_id)
    Product.objects.filter(pk=product.pk).update(
        external_inventory_item_id=inventory_item_id
    )
    product.external_inventory_item_id = inventory_item_id
    return inventory_item_id


def _mark(product, sync_status):
    now = timezone.now()
    Product.objects.filter(pk=product.pk).update(
        sync_status=sync_status, last_synced_at=now, updated_at=now
    )
    product.sync_status = sync_status


def sync_inventory_to_platform(store, updates, client=None, delay=None):
    """Set the platform's available quantity for each ``(product, new_stock)``.

    Args:
        store: The :class:`~order_webhooks.models.Store` the products belong to.
        updates: Iterable of ``(product, new_stock)`` pairs.
        client: Optional :class:`PlatformClient`; built from the store's
            integration when omitted.
        delay: Seconds to wait between platform calls. Defaults to
            ``INVENTORY_SYNC_DELAY_SECONDS``.

    Returns:
        SyncResult with the synced and skipped product ids and any warnings.
    """
    result = SyncResult()
    updates = list(updates)
    if not updates:
        return result

    integration = Integration.objects.filter(
        store=store, status=Integration.Status.ACTIVE
    ).first()
    if integration is None or not integration.api_access_token:
        result.warn("store has no active platform integration; stock not synced", store)
        result.skipped.extend(product.pk for product, _ in updates)
        return result

    client = client or PlatformClient(integration)
    delay = get_setting("INVENTORY_SYNC_DELAY_SECONDS") if delay is None else delay
    location_id = None
    calls_made = 0

    for product, new_stock in updates:
        if not product.external_variant_id and not product.external_inventory_item_id:
            result.skipped.append(product.pk)
            result.warn(f"product {product.pk} ({product.name}) is not linked to the platform", store)
            continue

        if calls_made and delay:
            time.sleep(delay)
        calls_made += 1

        try:
            if location_id is None:
                location_id = _resolve_location_id(integration, client)
                if location_id is None:
                    result.warn("no active platform location found", store)
                    result.skipped.extend(
                        p.pk for p, _ in updates if p.pk not in result.skipped
                    )
                    return result

            inventory_item_id = _resolve_inventory_item_id(product, client)
            if inventory_item_id is None:
                _mark(product, Product.SyncStatus.ERROR)
                result.skipped.append(product.pk)
                result.warn(f"product {product.pk} has no platform inventory item", store)
                continue

            client.set_inventory_level(inventory_item_id, location_id, new_stock)
        except (requests.RequestException, ValueError, KeyError) as exc:
            if isinstance(exc, requests.RequestException):
                result.failures.append(exc)
            _mark(product, Product.SyncStatus.ERROR)
            result.skipped.append(product.pk)
            result.warn(f"product {product.pk} ({product.name}) failed to sync: {exc}", store)
            continue

        _mark(product, Product.SyncStatus.SYNCED)
        result.synced.append(product.pk)

    logger.info(
        "Inventory sync for store %s: %d synced, %d skipped",
        store.store_id,
        len(result.synced),
        len(result.skipped),
    )
    return result


def schedule_inventory_sync(store, product_ids):
    """Queue a background sync for ``product_ids`` once the transaction commits."""
    product_ids = sorted({pk for pk in product_ids if pk is not None})
    if not product_ids:
        return

    def _send():
        from ..tasks import sync_inventory_task

        sync_inventory_task.send(store.pk, product_ids)

    transaction.on_commit(_send)
