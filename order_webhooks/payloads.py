"""Typed parsing of platform notification payloads.

Every dispatched topic has a serializer describing the shape its handler
relies on. Parsing fails closed: a payload that does not validate raises
:class:`~order_webhooks.exceptions.PayloadError`, which the dispatcher treats
as a terminal failure instead of applying partial data.
"""

from rest_framework import serializers

from .exceptions import PayloadError, UnknownTopic


def _text(**kwargs):
    kwargs.setdefault("required", False)
    return serializers.CharField(allow_blank=True, allow_null=True, **kwargs)


def _money(**kwargs):
    kwargs.setdefault("required", False)
    return serializers.DecimalField(
        max_digits=14, decimal_places=2, allow_null=True, **kwargs
    )


class AddressSerializer(serializers.Serializer):
    first_name = _text()
    last_name = _text()
    name = _text()
    phone = _text()
    address1 = _text()
    address2 = _text()
    city = _text()
    province = _text()
    country = _text()
    zip = _text()


class CustomerSerializer(serializers.Serializer):
    id = _text()
    email = _text()
    phone = _text()
    first_name = _text()
    last_name = _text()
    accepts_marketing = serializers.BooleanField(required=False, allow_null=True)


class LineItemSerializer(serializers.Serializer):
    id = _text()
    product_id = _text()
    variant_id = _text()
    sku = _text()
    name = _text()
    title = _text()
    variant_title = _text()
    quantity = serializers.IntegerField(min_value=1)
    price = _money(default=0)
    total_discount = _money()
    tax_lines = serializers.ListField(
        child=serializers.DictField(), required=False, allow_empty=True
    )


class ShippingLineSerializer(serializers.Serializer):
    title = _text()
    price = _money(default=0)


class OrderPayloadSerializer(serializers.Serializer):
    """orders/create and orders/updated."""

    id = serializers.CharField()
    order_number = _text()
    name = _text()
    email = _text()
    contact_email = _text()
    phone = _text()
    currency = _text()
    financial_status = _text()
    gateway = _text()
    payment_gateway_names = serializers.ListField(
        child=serializers.CharField(allow_blank=True), required=False
    )
    total_price = serializers.DecimalField(max_digits=14, decimal_places=2)
    subtotal_price = _money()
    total_tax = _money()
    total_discounts = _money()
    shipping_lines = ShippingLineSerializer(many=True, required=False)
    line_items = LineItemSerializer(many=True)
    customer = CustomerSerializer(required=False, allow_null=True)
    billing_address = AddressSerializer(required=False, allow_null=True)
    shipping_address = AddressSerializer(required=False, allow_null=True)
    note = _text()
    tags = _text()
    created_at = serializers.DateTimeField(required=False, allow_null=True)
    cancelled_at = serializers.DateTimeField(required=False, allow_null=True)
    cancel_reason = _text()


class OrderCancelledSerializer(serializers.Serializer):
    """orders/cancelled only needs to identify the order."""

    id = serializers.CharField()
    cancelled_at = serializers.DateTimeField(required=False, allow_null=True)
    cancel_reason = _text()


PAYLOAD_SERIALIZERS = {
    "orders/create": OrderPayloadSerializer,
    "orders/updated": OrderPayloadSerializer,
    "orders/cancelled": OrderCancelledSerializer,
}


def parse_payload(topic, data):
    """Validate ``data`` for ``topic`` and return the validated dict."""
    serializer_class = PAYLOAD_SERIALIZERS.get(topic)
    if serializer_class is None:
        raise UnknownTopic(f"No payload shape registered for topic: {topic}")
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise PayloadError(topic, serializer.errors)
    return serializer.validated_data
