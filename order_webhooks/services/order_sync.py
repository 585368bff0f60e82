"""Apply platform order notifications to the local order tables.

:class:`OrderNormalizer` is safe to run more than once for the same
notification: ``create_order`` checks for an existing (external order id,
store) row first, and the order plus its line items are written as one
atomic unit so a failure never leaves an order without its items.

Usage from a topic handler::

    normalizer = OrderNormalizer(integration)
    order, created = normalizer.create_order(parse_payload(topic, payload), raw=payload)
"""

import logging
from decimal import Decimal

from datadog import statsd
from django.db import IntegrityError, transaction

from ..conf import get_setting
from ..models import Customer, Order, OrderLineItem
from ..utils import external_id
from .fulfillment import change_order_status
from .product_directory import ProductDirectory

logger = logging.getLogger(__name__)

# Platform payment gateway -> local payment method.
PAYMENT_METHODS = {
    "shopify_payments": "online",
    "paypal": "online",
    "stripe": "online",
    "mercadopago": "online",
    "unknown": "online",
    "manual": "cash",
    "cash_on_delivery": "cash_on_delivery",
    "pending": "pending",
}

# Nothing is left to collect on delivery for these.
PAID_FINANCIAL_STATUSES = frozenset({"paid", "authorized"})

# Fields refreshed by orders/updated on an existing order.
REFRESHABLE_FIELDS = (
    "external_order_number",
    "external_order_name",
    "total_price",
    "subtotal_price",
    "total_tax",
    "total_discounts",
    "shipping_cost",
    "cod_amount",
    "currency",
    "payment_gateway",
    "payment_method",
    "financial_status",
    "customer_email",
    "customer_phone",
    "customer_first_name",
    "customer_last_name",
    "shipping_address1",
    "shipping_address2",
    "shipping_city",
    "shipping_province",
    "shipping_country",
    "shipping_zip",
    "delivery_notes",
    "tags",
    "platform_data",
)


def map_payment_method(gateway):
    return PAYMENT_METHODS.get((gateway or "").lower(), "online")


def _first(*values):
    for value in values:
        if value:
            return value
    return ""


def _decimal(value):
    if value in (None, ""):
        return Decimal("0")
    return Decimal(str(value))


class OrderNormalizer:
    def __init__(self, integration, directory=None):
        self.integration = integration
        self.store = integration.store
        self.directory = directory or ProductDirectory(self.store)

    @property
    def tags(self):
        return [f"shop_domain:{self.integration.shop_domain}"]

    def find_order(self, external_order_id):
        return Order.objects.filter(
            store=self.store, external_order_id=external_order_id
        ).first()

    # ------------------------------------------------------------------
    # Topic operations
    # ------------------------------------------------------------------

    def create_order(self, data, raw=None):
        """Create the order and its line items. Returns ``(order, created)``."""
        order_id = external_id(data["id"])
        existing = self.find_order(order_id)
        if existing is not None:
            logger.info(
                "Order %s already exists for store %s; nothing to do",
                order_id,
                self.store.store_id,
            )
            return existing, False

        try:
            with transaction.atomic():
                customer = self.resolve_customer(data)
                order = Order.objects.create(
                    store=self.store,
                    customer=customer,
                    external_order_id=order_id,
                    status=Order.Status.PENDING,
                    placed_at=data.get("created_at"),
                    **self.order_fields(data, raw),
                )
                self.create_line_items(order, data.get("line_items") or [])
        except IntegrityError:
            # A concurrent delivery inserted the same order first.
            existing = self.find_order(order_id)
            if existing is None:
                raise
            return existing, False

        logger.info(
            "Created order %s (external=%s, store=%s, line items=%d)",
            order.pk,
            order_id,
            self.store.store_id,
            len(data.get("line_items") or []),
        )
        return order, True

    def update_order(self, data, raw=None):
        """Upsert: create when unknown, otherwise refresh the mutable fields.

        Line items are only replaced while the order is still pending; once
        picking starts they belong to the warehouse.
        """
        order_id = external_id(data["id"])
        order = self.find_order(order_id)
        if order is None:
            return self.create_order(data, raw=raw)

        fields = self.order_fields(data, raw)
        for name in REFRESHABLE_FIELDS:
            setattr(order, name, fields[name])
        order.save(update_fields=list(REFRESHABLE_FIELDS) + ["updated_at"])

        if order.status == Order.Status.PENDING:
            order.line_items.all().delete()
            self.create_line_items(order, data.get("line_items") or [])
        logger.info("Updated order %s (external=%s)", order.pk, order_id)
        return order, False

    def cancel_order(self, data):
        """Cancel the local order. Unknown or already-final orders are a no-op."""
        order_id = external_id(data["id"])
        order = self.find_order(order_id)
        if order is None:
            logger.info("Cancellation for unknown order %s ignored", order_id)
            return None
        if order.status in Order.TERMINAL_STATUSES:
            logger.info(
                "Order %s is already %s; cancellation ignored", order.pk, order.status
            )
            return order
        change_order_status(
            order,
            Order.Status.CANCELLED,
            source="platform_webhook",
            notes=data.get("cancel_reason") or "",
        )
        return order

    # ------------------------------------------------------------------
    # Mapping helpers
    # ------------------------------------------------------------------

    def resolve_customer(self, data):
        """Find or create the customer by email, else by phone, else None."""
        customer_data = data.get("customer") or {}
        billing = data.get("billing_address") or {}
        shipping = data.get("shipping_address") or {}

        email = _first(
            data.get("contact_email"), data.get("email"), customer_data.get("email")
        ).strip().lower()
        phone = _first(
            data.get("phone"),
            billing.get("phone"),
            shipping.get("phone"),
            customer_data.get("phone"),
        ).strip()
        if not email and not phone:
            logger.warning(
                "Order %s carries neither email nor phone; no customer linked",
                data["id"],
            )
            return None

        defaults = {
            "phone": phone,
            "email": email,
            "first_name": _first(
                customer_data.get("first_name"),
                billing.get("first_name"),
                shipping.get("first_name"),
                get_setting("DEFAULT_CUSTOMER_FIRST_NAME"),
            ),
            "last_name": _first(
                customer_data.get("last_name"),
                billing.get("last_name"),
                shipping.get("last_name"),
                get_setting("DEFAULT_CUSTOMER_LAST_NAME"),
            ),
            "external_customer_id": external_id(customer_data.get("id")),
            "accepts_marketing": bool(customer_data.get("accepts_marketing")),
        }

        if email:
            customer, created = Customer.objects.get_or_create(
                store=self.store, email=email, defaults=defaults
            )
        else:
            customer = Customer.objects.filter(store=self.store, phone=phone).first()
            created = customer is None
            if created:
                customer = Customer.objects.create(store=self.store, **defaults)

        if not created:
            changed = []
            for name in ("phone", "external_customer_id"):
                if not getattr(customer, name) and defaults[name]:
                    setattr(customer, name, defaults[name])
                    changed.append(name)
            if changed:
                customer.save(update_fields=changed + ["updated_at"])
        return customer

    def order_fields(self, data, raw=None):
        customer_data = data.get("customer") or {}
        billing = data.get("billing_address") or {}
        shipping = data.get("shipping_address") or {}

        financial_status = (data.get("financial_status") or "pending").lower()
        gateway_names = [name for name in data.get("payment_gateway_names") or [] if name]
        gateway = _first(
            gateway_names[0] if gateway_names else "",
            data.get("gateway"),
            "pending" if financial_status == "pending" else "unknown",
        )
        total = _decimal(data.get("total_price"))
        cod_amount = Decimal("0") if financial_status in PAID_FINANCIAL_STATUSES else total
        shipping_cost = sum(
            (_decimal(line.get("price")) for line in data.get("shipping_lines") or []),
            Decimal("0"),
        )
        order_number = external_id(data.get("order_number"))

        return {
            "external_order_number": order_number,
            "external_order_name": _first(
                data.get("name"), f"#{order_number}" if order_number else ""
            ),
            "total_price": total,
            "subtotal_price": _decimal(_first(data.get("subtotal_price"), total)),
            "total_tax": _decimal(data.get("total_tax")),
            "total_discounts": _decimal(data.get("total_discounts")),
            "shipping_cost": shipping_cost,
            "cod_amount": cod_amount,
            "currency": (data.get("currency") or "USD")[:3].upper(),
            "payment_gateway": gateway,
            "payment_method": map_payment_method(gateway),
            "financial_status": financial_status,
            "customer_email": _first(data.get("email"), customer_data.get("email")),
            "customer_phone": _first(
                data.get("phone"), customer_data.get("phone"), shipping.get("phone")
            ),
            "customer_first_name": _first(
                customer_data.get("first_name"), billing.get("first_name")
            ),
            "customer_last_name": _first(
                customer_data.get("last_name"), billing.get("last_name")
            ),
            "shipping_address1": shipping.get("address1") or "",
            "shipping_address2": shipping.get("address2") or "",
            "shipping_city": shipping.get("city") or "",
            "shipping_province": shipping.get("province") or "",
            "shipping_country": shipping.get("country") or "",
            "shipping_zip": shipping.get("zip") or "",
            "delivery_notes": data.get("note") or "",
            "tags": data.get("tags") or "",
            "platform_data": raw if raw is not None else {},
        }

    def create_line_items(self, order, items):
        line_items = []
        for item in items:
            product_id = external_id(item.get("product_id"))
            variant_id = external_id(item.get("variant_id"))
            sku = item.get("sku") or ""
            product = self.directory.resolve(product_id, variant_id, sku)
            if product is None:
                logger.warning(
                    "Unmapped line item on order %s: product_id=%s variant_id=%s sku=%s",
                    order.pk,
                    product_id,
                    variant_id,
                    sku,
                )
                statsd.increment("orders.line_item.unmapped", tags=self.tags)

            quantity = item["quantity"]
            unit_price = _decimal(item.get("price"))
            tax_lines = item.get("tax_lines") or []
            line_items.append(
                OrderLineItem(
                    order=order,
                    product=product,
                    external_product_id=product_id,
                    external_variant_id=variant_id,
                    external_line_item_id=external_id(item.get("id")),
                    sku=sku,
                    name=_first(item.get("name"), item.get("title"), "Unknown product"),
                    variant_title=item.get("variant_title") or "",
                    quantity=quantity,
                    unit_price=unit_price,
                    total_price=unit_price * quantity,
                    discount_amount=_decimal(item.get("total_discount")),
                    tax_amount=sum(
                        (_decimal(line.get("price")) for line in tax_lines), Decimal("0")
                    ),
                )
            )
        OrderLineItem.objects.bulk_create(line_items)
        return line_items
