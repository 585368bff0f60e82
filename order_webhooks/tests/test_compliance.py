"""Tests for customer redaction and integration revocation."""

from decimal import Decimal

import pytest

from order_webhooks.models import Integration
from order_webhooks.services.compliance import redact_customer, revoke_integration
from order_webhooks.tests.factories import CustomerFactory, OrderFactory, StoreFactory

pytestmark = pytest.mark.django_db


class TestRedactCustomer:
    def test_matches_by_email_without_id(self, integration):
        customer = CustomerFactory(store=integration.store, email="ana@example.com")
        order = OrderFactory(
            store=integration.store,
            customer_email="ANA@example.com",
            customer_first_name="Ana",
            total_price=Decimal("80000.00"),
        )

        counts = redact_customer(integration, {"customer": {"email": "ana@example.com"}})

        assert counts == {"customers": 1, "orders": 1}
        customer.refresh_from_db()
        assert customer.first_name == "REDACTED"
        order.refresh_from_db()
        assert order.customer_first_name == "REDACTED"
        assert order.total_price == Decimal("80000.00")

    def test_other_stores_are_untouched(self, integration):
        other = CustomerFactory(store=StoreFactory(), external_customer_id="777")

        counts = redact_customer(integration, {"customer": {"id": 777}})

        assert counts == {"customers": 0, "orders": 0}
        other.refresh_from_db()
        assert other.first_name == "Ana"

    def test_masked_emails_stay_unique_per_store(self, integration):
        first = CustomerFactory(store=integration.store, external_customer_id="777")
        second = CustomerFactory(store=integration.store, external_customer_id="777")

        redact_customer(integration, {"customer": {"id": 777}})

        first.refresh_from_db()
        second.refresh_from_db()
        assert first.email != second.email

    def test_payload_without_identifiers_changes_nothing(self, integration):
        customer = CustomerFactory(store=integration.store)

        assert redact_customer(integration, {"customer": {}}) == {"customers": 0, "orders": 0}

        customer.refresh_from_db()
        assert customer.first_name == "Ana"


class TestRevokeIntegration:
    def test_uninstall_keeps_token(self, integration):
        revoke_integration(integration, "app/uninstalled")

        integration.refresh_from_db()
        assert integration.status == Integration.Status.REVOKED
        assert integration.api_access_token == "shpat_test"

    def test_shop_redact_clears_token_and_keeps_first_revocation(self, integration):
        revoke_integration(integration, "app/uninstalled")
        integration.refresh_from_db()
        first_revoked_at = integration.revoked_at

        revoke_integration(integration, "shop/redact")

        integration.refresh_from_db()
        assert integration.revoked_at == first_revoked_at
        assert integration.api_access_token == ""
