"""Tests for order status changes and the stock ledger."""

import pytest

from order_webhooks.exceptions import InvalidStatusTransition
from order_webhooks.models import (
    InventoryMovement,
    Order,
    PackingProgress,
    PickingSession,
    PickingSessionOrder,
)
from order_webhooks.services.fulfillment import adjust_stock, change_order_status
from order_webhooks.services.inventory_sync import SyncResult
from order_webhooks.tests.factories import (
    OrderFactory,
    OrderLineItemFactory,
    ProductFactory,
)

pytestmark = pytest.mark.django_db


@pytest.fixture
def order(store):
    order = OrderFactory(store=store, status=Order.Status.CONFIRMED)
    OrderLineItemFactory(order=order, quantity=2, product__stock=10)
    return order


def _product(order):
    return order.line_items.get().product


class TestChangeOrderStatus:
    def test_entering_consuming_status_deducts_stock(self, order):
        touched = change_order_status(order, Order.Status.READY_TO_SHIP)

        product = _product(order)
        product.refresh_from_db()
        assert product.stock == 8
        assert touched == [product.pk]
        assert order.status == Order.Status.READY_TO_SHIP
        assert order.ready_to_ship_at is not None

        movement = InventoryMovement.objects.get()
        assert movement.movement_type == InventoryMovement.MovementType.ORDER_STOCK_DEDUCTION
        assert movement.quantity_change == -2
        assert (movement.stock_before, movement.stock_after) == (10, 8)
        assert movement.order_status_from == Order.Status.CONFIRMED
        assert movement.order_status_to == Order.Status.READY_TO_SHIP

    def test_moving_between_consuming_statuses_deducts_once(self, order):
        for status in (
            Order.Status.READY_TO_SHIP,
            Order.Status.SHIPPED,
            Order.Status.IN_TRANSIT,
            Order.Status.DELIVERED,
        ):
            change_order_status(order, status)

        product = _product(order)
        product.refresh_from_db()
        assert product.stock == 8
        assert InventoryMovement.objects.count() == 1
        assert order.status_history.count() == 4

    def test_returning_consumed_order_restores_stock(self, order):
        change_order_status(order, Order.Status.SHIPPED)
        change_order_status(order, Order.Status.DELIVERED)
        change_order_status(order, Order.Status.RETURNED)

        product = _product(order)
        product.refresh_from_db()
        assert product.stock == 10
        kinds = list(InventoryMovement.objects.values_list("movement_type", flat=True))
        assert kinds == [
            InventoryMovement.MovementType.ORDER_STOCK_DEDUCTION,
            InventoryMovement.MovementType.ORDER_STOCK_RESTORATION,
        ]

    def test_cancelling_unconsumed_order_leaves_stock(self, order):
        assert change_order_status(order, Order.Status.CANCELLED) == []
        product = _product(order)
        product.refresh_from_db()
        assert product.stock == 10

    def test_same_status_is_noop(self, order):
        assert change_order_status(order, Order.Status.CONFIRMED) == []
        assert order.status_history.count() == 0

    def test_final_status_cannot_change(self, order):
        change_order_status(order, Order.Status.CANCELLED)
        with pytest.raises(InvalidStatusTransition):
            change_order_status(order, Order.Status.CONFIRMED)

    def test_delivered_order_can_only_be_returned(self, order):
        change_order_status(order, Order.Status.DELIVERED)
        with pytest.raises(InvalidStatusTransition):
            change_order_status(order, Order.Status.PENDING)

    def test_unknown_status_rejected(self, order):
        with pytest.raises(InvalidStatusTransition):
            change_order_status(order, "lost_in_space")

    def test_unmapped_line_items_are_skipped(self, store):
        order = OrderFactory(store=store, status=Order.Status.CONFIRMED)
        OrderLineItemFactory(order=order, product=None)

        assert change_order_status(order, Order.Status.SHIPPED) == []
        assert InventoryMovement.objects.count() == 0

    def test_cancel_removes_order_from_open_picking_sessions(self, order, store):
        open_session = PickingSession.objects.create(store=store, code="PICK-1")
        done_session = PickingSession.objects.create(
            store=store, code="PICK-0", status=PickingSession.Status.COMPLETED
        )
        PickingSessionOrder.objects.create(session=open_session, order=order)
        PickingSessionOrder.objects.create(session=done_session, order=order)
        PackingProgress.objects.create(
            session=open_session, order=order, line_item=order.line_items.get()
        )

        change_order_status(order, Order.Status.CANCELLED)

        assert not PickingSessionOrder.objects.filter(session=open_session).exists()
        assert PickingSessionOrder.objects.filter(session=done_session).exists()
        assert not PackingProgress.objects.exists()

    def test_sync_is_scheduled_after_commit(self, order, mocker, django_capture_on_commit_callbacks):
        send = mocker.patch("order_webhooks.tasks.sync_inventory_task.send")

        with django_capture_on_commit_callbacks(execute=True):
            touched = change_order_status(order, Order.Status.SHIPPED)

        send.assert_called_once_with(order.store.pk, touched)


class TestAdjustStock:
    def test_sets_stock_and_returns_sync_warnings(self, store, mocker):
        product = ProductFactory(store=store, stock=5)
        sync = mocker.patch(
            "order_webhooks.services.fulfillment.sync_inventory_to_platform",
            return_value=SyncResult(warnings=["product not linked"]),
        )

        result = adjust_stock(store, [(product.pk, 12), (999999, 1)])

        product.refresh_from_db()
        assert product.stock == 12
        movement = InventoryMovement.objects.get()
        assert movement.movement_type == InventoryMovement.MovementType.MANUAL_ADJUSTMENT
        assert movement.quantity_change == 7
        assert "product not linked" in result.warnings
        assert any("999999" in warning for warning in result.warnings)
        sync.assert_called_once()
        synced_product, new_stock = sync.call_args[0][1][0]
        assert synced_product.pk == product.pk
        assert new_stock == 12
