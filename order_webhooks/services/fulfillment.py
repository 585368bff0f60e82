"""Order status changes and the stock ledger they drive.

Stock leaves the shelf when an order enters a consuming status
(``Order.STOCK_CONSUMED_STATUSES``) and comes back when a consuming order is
cancelled or returned. Every stock change writes an
:class:`~order_webhooks.models.InventoryMovement` row and is pushed to the
platform after commit through the inventory sync bridge.
"""

import logging
from dataclasses import dataclass, field

from django.db import transaction
from django.utils import timezone

from ..exceptions import InvalidStatusTransition
from ..models import (
    InventoryMovement,
    Order,
    OrderStatusHistory,
    PackingProgress,
    PickingSession,
    PickingSessionOrder,
    Product,
)
from .inventory_sync import schedule_inventory_sync, sync_inventory_to_platform

logger = logging.getLogger(__name__)

RESTORING_STATUSES = frozenset({Order.Status.CANCELLED, Order.Status.RETURNED})
FINAL_STATUSES = frozenset({Order.Status.CANCELLED, Order.Status.RETURNED})


def status_timestamp_field(status):
    if status == Order.Status.PENDING:
        return None
    return f"{status}_at"


def move_stock(
    order,
    line_items,
    direction,
    movement_type,
    status_from="",
    status_to="",
    reason="",
    notes="",
):
    """Apply ``direction * quantity`` to every mapped line item's product.

    Product rows are locked in primary-key order. Unmapped line items are
    skipped. Returns the ids of the products whose stock changed.
    """
    product_ids = {item.product_id for item in line_items if item.product_id}
    if not product_ids:
        return []

    products = {
        product.pk: product
        for product in Product.objects.select_for_update()
        .filter(pk__in=product_ids)
        .order_by("pk")
    }
    touched = []
    for item in line_items:
        product = products.get(item.product_id)
        if product is None:
            continue
        before = product.stock
        product.stock = before + direction * item.quantity
        product.save(update_fields=["stock", "updated_at"])
        if product.stock < 0:
            logger.warning(
                "Product %s stock went negative (%d) for order %s",
                product.pk,
                product.stock,
                order.pk,
            )
        InventoryMovement.objects.create(
            product=product,
            store_id=order.store_id,
            order=order,
            order_reference=str(order.pk),
            movement_type=movement_type,
            quantity_change=direction * item.quantity,
            stock_before=before,
            stock_after=product.stock,
            order_status_from=status_from,
            order_status_to=status_to,
            reason=reason,
            notes=notes,
        )
        if product.pk not in touched:
            touched.append(product.pk)
    return touched


def _check_transition(previous, new_status):
    if new_status not in Order.Status.values:
        raise InvalidStatusTransition(f"Unknown order status: {new_status}")
    if previous in FINAL_STATUSES:
        raise InvalidStatusTransition(
            f"Order is {previous}; it cannot move to {new_status}"
        )
    if previous == Order.Status.DELIVERED and new_status != Order.Status.RETURNED:
        raise InvalidStatusTransition(
            f"A delivered order can only be returned, not moved to {new_status}"
        )


def remove_from_active_sessions(order):
    """Drop the order from picking sessions that are still open."""
    active = PickingSessionOrder.objects.filter(order=order).exclude(
        session__status=PickingSession.Status.COMPLETED
    )
    session_ids = list(active.values_list("session_id", flat=True))
    if not session_ids:
        return 0
    PackingProgress.objects.filter(order=order, session_id__in=session_ids).delete()
    removed, _ = active.delete()
    return removed


def change_order_status(order, new_status, changed_by=None, source="manual", notes=""):
    """Move ``order`` to ``new_status`` and apply the matching stock changes.

    Returns the ids of the products whose stock changed. Raises
    :class:`InvalidStatusTransition` for moves out of a final status.
    Moving to the current status is a no-op.
    """
    with transaction.atomic():
        locked = Order.objects.select_for_update().get(pk=order.pk)
        previous = locked.status
        if previous == new_status:
            return []
        _check_transition(previous, new_status)

        line_items = list(locked.line_items.all())
        was_consumed = previous in Order.STOCK_CONSUMED_STATUSES
        consumes = new_status in Order.STOCK_CONSUMED_STATUSES
        touched = []
        if consumes and not was_consumed:
            touched = move_stock(
                locked,
                line_items,
                -1,
                InventoryMovement.MovementType.ORDER_STOCK_DEDUCTION,
                status_from=previous,
                status_to=new_status,
                reason="order_status_change",
            )
        elif was_consumed and new_status in RESTORING_STATUSES:
            touched = move_stock(
                locked,
                line_items,
                1,
                InventoryMovement.MovementType.ORDER_STOCK_RESTORATION,
                status_from=previous,
                status_to=new_status,
                reason="order_status_change",
            )

        now = timezone.now()
        locked.status = new_status
        update_fields = ["status", "updated_at"]
        timestamp_field = status_timestamp_field(new_status)
        if timestamp_field:
            setattr(locked, timestamp_field, now)
            update_fields.append(timestamp_field)
        locked.save(update_fields=update_fields)

        OrderStatusHistory.objects.create(
            order=locked,
            previous_status=previous,
            new_status=new_status,
            changed_by=changed_by,
            source=source,
            notes=notes,
        )
        if new_status == Order.Status.CANCELLED:
            remove_from_active_sessions(locked)

        schedule_inventory_sync(locked.store, touched)

    order.status = locked.status
    if timestamp_field:
        setattr(order, timestamp_field, getattr(locked, timestamp_field))
    logger.info(
        "Order %s moved %s -> %s (source=%s, stock touched=%d)",
        order.pk,
        previous,
        new_status,
        source,
        len(touched),
    )
    return touched


@dataclass
class StockAdjustmentResult:
    products: list = field(default_factory=list)
    warnings: list = field(default_factory=list)


def adjust_stock(store, adjustments, reason="manual_adjustment", notes=""):
    """Set absolute stock levels and push them to the platform.

    ``adjustments`` is an iterable of ``(product_id, new_stock)``. The local
    change commits first; platform sync failures come back as warnings.
    """
    adjustments = dict(adjustments)
    with transaction.atomic():
        products = list(
            Product.objects.select_for_update()
            .filter(store=store, pk__in=adjustments)
            .order_by("pk")
        )
        for product in products:
            new_stock = int(adjustments[product.pk])
            before = product.stock
            if before == new_stock:
                continue
            product.stock = new_stock
            product.save(update_fields=["stock", "updated_at"])
            InventoryMovement.objects.create(
                product=product,
                store=store,
                movement_type=InventoryMovement.MovementType.MANUAL_ADJUSTMENT,
                quantity_change=new_stock - before,
                stock_before=before,
                stock_after=new_stock,
                reason=reason,
                notes=notes,
            )

    result = StockAdjustmentResult(products=products)
    missing = set(adjustments) - {product.pk for product in products}
    for pk in sorted(missing):
        result.warnings.append(f"product {pk} not found in store {store.store_id}")

    sync = sync_inventory_to_platform(
        store, [(product, product.stock) for product in products]
    )
    result.warnings.extend(sync.warnings)
    return result
