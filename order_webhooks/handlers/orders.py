"""Handlers for order topics.

Each handler receives the claimed :class:`~order_webhooks.models.Notification`
and the active integration, and runs inside the dispatcher's per-notification
transaction. Errors propagate to the dispatcher, which decides whether to
retry.
"""

import logging

from ..payloads import parse_payload
from ..router import register_handler
from ..services.order_sync import OrderNormalizer

logger = logging.getLogger(__name__)


def handle_order_create(notification, integration):
    data = parse_payload(notification.topic, notification.payload)
    order, created = OrderNormalizer(integration).create_order(
        data, raw=notification.payload
    )
    logger.info(
        "orders/create %s -> order %s (created=%s)",
        data["id"],
        order.pk,
        created,
    )
    return order


def handle_order_update(notification, integration):
    data = parse_payload(notification.topic, notification.payload)
    order, created = OrderNormalizer(integration).update_order(
        data, raw=notification.payload
    )
    logger.info(
        "orders/updated %s -> order %s (created=%s)",
        data["id"],
        order.pk,
        created,
    )
    return order


def handle_order_cancel(notification, integration):
    data = parse_payload(notification.topic, notification.payload)
    return OrderNormalizer(integration).cancel_order(data)


register_handler("orders/create", handle_order_create)
register_handler("orders/updated", handle_order_update)
register_handler("orders/cancelled", handle_order_cancel)
