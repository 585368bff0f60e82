"""Data-subject and shop lifecycle requests from the platform.

Customer redaction masks personal data but keeps orders and their money
fields, which are needed for accounting. Shop erasure and uninstall revoke the
integration; a revoked integration still answers compliance webhooks.
"""

import logging

from django.db.models import Q
from django.utils import timezone

from ..models import Customer, Integration, Order
from ..utils import external_id

logger = logging.getLogger(__name__)

REDACTED = "REDACTED"


def _redacted_email(reference):
    return f"redacted-{reference}@deleted.local"


def redact_customer(integration, payload):
    """Anonymise one customer of ``integration``'s store and their orders.

    The customer is matched by platform customer id, or by email when the
    payload carries no id. Returns ``{"customers": n, "orders": n}``.
    """
    customer_data = payload.get("customer") or {}
    customer_id = external_id(customer_data.get("id"))
    email = (customer_data.get("email") or "").strip()
    store = integration.store

    if customer_id:
        match = Q(external_customer_id=customer_id)
    elif email:
        match = Q(email__iexact=email)
    else:
        logger.warning(
            "customers/redact for %s carries no customer id or email",
            integration.shop_domain,
        )
        return {"customers": 0, "orders": 0}

    customers = list(Customer.objects.filter(match, store=store))
    now = timezone.now()
    for customer in customers:
        # Unique per (store, email); the local pk keeps masked emails distinct.
        Customer.objects.filter(pk=customer.pk).update(
            first_name=REDACTED,
            last_name="",
            email=_redacted_email(customer.pk),
            phone=REDACTED,
            updated_at=now,
        )

    order_match = Q(customer__in=[customer.pk for customer in customers])
    if email:
        order_match |= Q(customer_email__iexact=email)
    orders = Order.objects.filter(order_match, store=store).update(
        customer_first_name=REDACTED,
        customer_last_name="",
        customer_email=_redacted_email(customer_id or "customer"),
        customer_phone=REDACTED,
        shipping_address1=REDACTED,
        shipping_address2="",
        delivery_notes="",
        updated_at=now,
    )

    counts = {"customers": len(customers), "orders": orders}
    logger.info(
        "Customer redaction for shop %s (customer_id=%s): %s",
        integration.shop_domain,
        customer_id or "-",
        counts,
    )
    return counts


def revoke_integration(integration, topic):
    """Mark the integration revoked; repeated calls keep the first ``revoked_at``."""
    now = timezone.now()
    Integration.objects.filter(pk=integration.pk).update(
        status=Integration.Status.REVOKED, updated_at=now
    )
    Integration.objects.filter(pk=integration.pk, revoked_at__isnull=True).update(
        revoked_at=now
    )
    if topic == "shop/redact":
        Integration.objects.filter(pk=integration.pk).update(api_access_token="")
    logger.warning(
        "Integration for %s revoked by %s", integration.shop_domain, topic
    )
