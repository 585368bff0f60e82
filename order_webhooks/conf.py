"""App settings for order_webhooks.

Host projects override any of these through a single dict::

    ORDER_WEBHOOKS = {
        "DISPATCH_BATCH_SIZE": 25,
        "SHARED_WEBHOOK_SECRET": env("SHOPIFY_API_SECRET"),
    }
"""

from django.conf import settings

DEFAULTS = {
    # Idempotency ledger horizon. Shopify stops redelivering well before this.
    "IDEMPOTENCY_TTL_HOURS": 24,
    # Dispatcher / retry engine.
    "MAX_ATTEMPTS": 5,
    "BACKOFF_BASE_SECONDS": 60,
    "BACKOFF_CAP_SECONDS": 960,
    "DISPATCH_BATCH_SIZE": 10,
    "DISPATCH_INTERVAL_SECONDS": 5,
    "DISPATCH_ON_RECEIVE": True,
    "STALE_PROCESSING_MINUTES": 10,
    "NOTIFICATION_RETENTION_DAYS": 7,
    "MAX_ERROR_LENGTH": 2000,
    # Used when an integration has no per-shop webhook secret.
    "SHARED_WEBHOOK_SECRET": "",
    # Platform API.
    "PLATFORM_API_TIMEOUT": 20,
    "INVENTORY_SYNC_DELAY_SECONDS": 0.5,
    # Customer placeholder when the payload carries no usable name.
    "DEFAULT_CUSTOMER_FIRST_NAME": "Cliente",
    "DEFAULT_CUSTOMER_LAST_NAME": "",
}


def get_setting(name):
    """Return ``settings.ORDER_WEBHOOKS[name]`` or the app default."""
    overrides = getattr(settings, "ORDER_WEBHOOKS", {}) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
