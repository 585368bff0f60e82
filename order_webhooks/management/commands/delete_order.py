"""
Delete an order.

Usage:
    # Hard delete with cascade (restores consumed stock)
    python3 manage.py delete_order --order-id <uuid>

    # Soft delete: only hides the order
    python3 manage.py delete_order --order-id <uuid> --soft
"""

from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from order_webhooks.exceptions import CascadeError
from order_webhooks.models import Order
from order_webhooks.services.order_cascade import hard_delete_order, soft_delete_order


class Command(BaseCommand):
    help = "Hard-delete (with cascade) or soft-delete a single order"

    def add_arguments(self, parser):
        parser.add_argument(
            "--order-id",
            type=str,
            required=True,
            help="The local order UUID.",
        )
        parser.add_argument(
            "--soft",
            action="store_true",
            help="Only mark the order as deleted.",
        )

    def handle(self, *args, **options):
        order_id = options["order_id"]
        try:
            order = Order.objects.get(pk=order_id)
        except (Order.DoesNotExist, ValidationError):
            raise CommandError(f"No order with id={order_id}")

        if options["soft"]:
            if soft_delete_order(order):
                print(f"Soft-deleted order {order_id}")
            else:
                print(f"Order {order_id} was already soft-deleted")
            return

        try:
            restored = hard_delete_order(order.pk)
        except CascadeError as exc:
            raise CommandError(str(exc)) from exc
        print(f"Deleted order {order_id}; restored stock for {len(restored)} product(s)")
