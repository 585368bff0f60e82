"""Hard and soft deletion of orders.

``hard_delete_order`` is the only path that removes an order row. It runs the
whole cascade in one transaction: restore consumed stock, delete dependent
rows (children before parents), detach the inventory ledger, forget webhook
state for the order's platform id, then delete the order. Any failure rolls
everything back and surfaces as :class:`CascadeError`.
"""

import logging

from django.db import transaction
from django.utils import timezone

from ..exceptions import CascadeError
from ..ledger import IdempotencyLedger
from ..models import (
    DeliveryAttempt,
    FollowUpLog,
    Integration,
    InventoryMovement,
    Order,
    OrderLineItem,
    OrderStatusHistory,
    PackingProgress,
    PickingSession,
    PickingSessionOrder,
    ReturnSession,
    ReturnSessionOrder,
    SettlementOrder,
)
from ..queue import forget_resource_notifications
from .fulfillment import move_stock
from .inventory_sync import schedule_inventory_sync

logger = logging.getLogger(__name__)


def restore_consumed_stock(order, line_items):
    if order.status not in Order.STOCK_CONSUMED_STATUSES:
        return []
    return move_stock(
        order,
        line_items,
        1,
        InventoryMovement.MovementType.HARD_DELETE_RESTORATION,
        status_from=order.status,
        reason="order_hard_delete",
        notes=f"Stock restored by hard delete of order {order.pk} (status: {order.status})",
    )


def delete_dependents(order):
    """Delete rows that only make sense while the order exists.

    Picking and return sessions are removed only when this order was their
    last member. Settlements are kept; only the membership row goes.
    """
    picking_ids = set(
        PickingSessionOrder.objects.filter(order=order).values_list("session_id", flat=True)
    )
    return_ids = set(
        ReturnSessionOrder.objects.filter(order=order).values_list("session_id", flat=True)
    )

    PackingProgress.objects.filter(order=order).delete()
    PickingSessionOrder.objects.filter(order=order).delete()
    ReturnSessionOrder.objects.filter(order=order).delete()
    SettlementOrder.objects.filter(order=order).delete()
    OrderStatusHistory.objects.filter(order=order).delete()
    FollowUpLog.objects.filter(order=order).delete()
    DeliveryAttempt.objects.filter(order=order).delete()
    OrderLineItem.objects.filter(order=order).delete()

    orphan_picking = PickingSession.objects.filter(
        pk__in=picking_ids, session_orders__isnull=True
    )
    orphan_returns = ReturnSession.objects.filter(
        pk__in=return_ids, session_orders__isnull=True
    )
    removed_picking, _ = orphan_picking.delete()
    removed_returns, _ = orphan_returns.delete()
    return removed_picking, removed_returns


def forget_webhook_state(order):
    """Drop ledger and queue entries for the order's platform id."""
    if not order.external_order_id:
        return
    shop_domain = (
        Integration.objects.filter(store_id=order.store_id)
        .values_list("shop_domain", flat=True)
        .first()
    )
    if shop_domain is None:
        return
    IdempotencyLedger().forget_resource(shop_domain, order.external_order_id)
    forget_resource_notifications(shop_domain, order.external_order_id)


def hard_delete_order(order_id, deleted_by=None):
    """Delete an order and everything derived from it, atomically.

    Returns the ids of products whose stock was restored. Raises
    ``Order.DoesNotExist`` for an unknown id and :class:`CascadeError` when
    any step fails, in which case nothing has changed.
    """
    try:
        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order_id)
            prior_status = order.status
            line_items = list(order.line_items.all())

            restored = restore_consumed_stock(order, line_items)
            delete_dependents(order)
            InventoryMovement.objects.filter(order=order).update(
                order=None, order_reference=str(order.pk)
            )
            forget_webhook_state(order)
            order.delete()

            schedule_inventory_sync(order.store, restored)
    except Order.DoesNotExist:
        raise
    except Exception as exc:
        logger.exception("Hard delete of order %s aborted", order_id)
        raise CascadeError(f"Could not delete order {order_id}: {exc}") from exc

    logger.info(
        "Hard-deleted order %s (status=%s, by=%s, products restored=%d)",
        order_id,
        prior_status,
        getattr(deleted_by, "pk", None),
        len(restored),
    )
    return restored


def soft_delete_order(order, deleted_by=None):
    """Hide an order without touching anything derived from it."""
    now = timezone.now()
    updated = Order.objects.filter(pk=order.pk, deleted_at__isnull=True).update(
        deleted_at=now, deleted_by=deleted_by, updated_at=now
    )
    if updated:
        order.deleted_at = now
        order.deleted_by = deleted_by
    return bool(updated)
