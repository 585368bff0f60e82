"""Tests for webhook views: security, idempotency, routing and hand-off."""

import hashlib
import json
import uuid
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from order_webhooks.dispatcher import Dispatcher
from order_webhooks.models import (
    IdempotencyRecord,
    Integration,
    Notification,
    Order,
    OrderLineItem,
)
from order_webhooks.tests.conftest import sign
from order_webhooks.tests.factories import (
    WEBHOOK_SECRET,
    CustomerFactory,
    OrderFactory,
    ProductFactory,
)
from order_webhooks.tests.payloads import ORDER_ID, order_payload

pytestmark = pytest.mark.django_db

SHOP_DOMAIN = "test-shop.myshopify.com"
CREATE_URL = "/webhooks/shopify/orders-create/"
UPDATED_URL = "/webhooks/shopify/orders-updated/"
CANCELLED_URL = "/webhooks/shopify/orders-cancelled/"
SHOP_REDACT_URL = "/webhooks/shopify/shop-redact/"
UNINSTALLED_URL = "/webhooks/shopify/app-uninstalled/"
DATA_REQUEST_URL = "/webhooks/shopify/customers-data-request/"
CUSTOMERS_REDACT_URL = "/webhooks/shopify/customers-redact/"


def _post_raw(client, url, body, topic="orders/create", shop_domain=SHOP_DOMAIN,
              webhook_id=None, secret=WEBHOOK_SECRET, **extra):
    """POST raw bytes with correct Shopify headers."""
    if webhook_id is None:
        webhook_id = f"wh_{uuid.uuid4().hex[:12]}"
    headers = {
        "HTTP_X_SHOPIFY_SHOP_DOMAIN": shop_domain,
        "HTTP_X_SHOPIFY_HMAC_SHA256": sign(body, secret),
        "HTTP_X_SHOPIFY_TOPIC": topic,
        "HTTP_X_SHOPIFY_WEBHOOK_ID": webhook_id,
    }
    headers.update(extra)
    return client.post(url, data=body, content_type="application/json", **headers)


def _post_webhook(client, url, payload, **kwargs):
    """Helper to POST a webhook with correct Shopify headers."""
    return _post_raw(client, url, json.dumps(payload).encode("utf-8"), **kwargs)


class TestBaseWebhookViewSecurity:
    """Security-critical tests for the base webhook view."""

    def setup_method(self):
        self.client = APIClient()

    def test_missing_shop_domain_returns_400(self, integration):
        response = _post_webhook(self.client, CREATE_URL, {"id": 1}, shop_domain="")
        assert response.status_code == 400
        assert "Missing" in response.json()["error"]

    def test_malformed_shop_domain_returns_400(self, integration):
        response = _post_webhook(
            self.client, CREATE_URL, {"id": 1}, shop_domain="not a shop"
        )
        assert response.status_code == 400

    def test_unknown_shop_domain_returns_401(self, integration):
        response = _post_webhook(
            self.client, CREATE_URL, {"id": 1}, shop_domain="unknown-shop.myshopify.com"
        )
        assert response.status_code == 401
        assert Notification.objects.count() == 0

    def test_revoked_integration_returns_401(self, integration):
        integration.status = Integration.Status.REVOKED
        integration.save()
        response = _post_webhook(self.client, CREATE_URL, {"id": 1})
        assert response.status_code == 401

    def test_invalid_hmac_returns_401(self, integration):
        response = _post_webhook(
            self.client,
            CREATE_URL,
            {"id": 1},
            HTTP_X_SHOPIFY_HMAC_SHA256="invalid-hmac-value",
        )
        assert response.status_code == 401
        assert IdempotencyRecord.objects.count() == 0

    def test_wrong_secret_hmac_returns_401(self, integration):
        response = _post_webhook(
            self.client, CREATE_URL, {"id": 1}, secret="wrong-secret"
        )
        assert response.status_code == 401

    def test_shared_secret_used_when_integration_has_none(self, integration, settings):
        integration.webhook_secret = ""
        integration.save()
        settings.ORDER_WEBHOOKS = {"SHARED_WEBHOOK_SECRET": "app-shared-secret"}

        response = _post_webhook(
            self.client, CREATE_URL, {"id": 1}, secret="app-shared-secret"
        )
        assert response.status_code == 200

    def test_no_secret_anywhere_returns_401(self, integration):
        integration.webhook_secret = ""
        integration.save()
        response = _post_webhook(self.client, CREATE_URL, {"id": 1}, secret="")
        assert response.status_code == 401

    def test_missing_webhook_id_returns_400(self, integration):
        response = _post_webhook(self.client, CREATE_URL, {"id": 1}, webhook_id="")
        assert response.status_code == 400

    def test_event_id_header_is_accepted_as_fallback(self, integration):
        response = _post_webhook(
            self.client,
            CREATE_URL,
            {"id": 1},
            webhook_id="",
            HTTP_X_SHOPIFY_EVENT_ID="evt_fallback",
        )
        assert response.status_code == 200
        assert IdempotencyRecord.objects.filter(event_id="evt_fallback").exists()

    def test_invalid_json_returns_400(self, integration):
        response = _post_raw(self.client, CREATE_URL, b"{not json")
        assert response.status_code == 400
        assert Notification.objects.count() == 0

    def test_non_object_json_returns_400(self, integration):
        response = _post_raw(self.client, CREATE_URL, b"[1, 2, 3]")
        assert response.status_code == 400


class TestWebhookTopicRouting:
    """Tests for topic validation on each endpoint."""

    def setup_method(self):
        self.client = APIClient()

    @pytest.mark.parametrize(
        "url,topic",
        [
            (CREATE_URL, "orders/create"),
            (UPDATED_URL, "orders/updated"),
            (CANCELLED_URL, "orders/cancelled"),
        ],
    )
    def test_order_endpoints_accept_their_topic(self, integration, url, topic):
        response = _post_webhook(self.client, url, {"id": 1}, topic=topic)
        assert response.status_code == 200, f"Failed for topic {topic}"
        assert Notification.objects.get().topic == topic

    def test_create_endpoint_rejects_other_topic(self, integration):
        response = _post_webhook(
            self.client, CREATE_URL, {"id": 1}, topic="orders/cancelled"
        )
        assert response.status_code == 400

    def test_missing_topic_returns_400(self, integration):
        response = _post_webhook(self.client, CREATE_URL, {"id": 1}, topic="")
        assert response.status_code == 400


class TestWebhookIdempotency:
    """Tests for duplicate webhook rejection and queueing."""

    def setup_method(self):
        self.client = APIClient()

    def test_valid_webhook_enqueues_notification(self, integration, no_statsd):
        payload = order_payload()
        body = json.dumps(payload).encode("utf-8")

        response = _post_raw(self.client, CREATE_URL, body, webhook_id="wh_new_event")

        assert response.status_code == 200
        assert response.json() == {"status": "accepted"}
        notification = Notification.objects.get()
        assert notification.idempotency_key == "wh_new_event"
        assert notification.topic == "orders/create"
        assert notification.shop_domain == SHOP_DOMAIN
        assert notification.integration == integration
        assert notification.store == integration.store
        assert notification.status == Notification.Status.PENDING
        assert notification.resource_id == str(ORDER_ID)
        assert notification.payload == payload
        assert notification.payload_hash == hashlib.sha256(body).hexdigest()
        assert notification.headers["X-Shopify-Webhook-Id"] == "wh_new_event"
        assert "X-Shopify-Hmac-Sha256" not in notification.headers
        no_statsd["views"].increment.assert_called_once_with(
            "orders.webhook.received",
            tags=["topic:orders/create", f"shop_domain:{SHOP_DOMAIN}"],
        )

    def test_duplicate_webhook_id_returns_200_no_new_record(self, integration, no_statsd):
        first = _post_webhook(self.client, CREATE_URL, {"id": 456}, webhook_id="wh_dup")
        second = _post_webhook(self.client, CREATE_URL, {"id": 456}, webhook_id="wh_dup")

        assert first.status_code == 200
        assert second.status_code == 200
        assert second.json() == {"status": "duplicate"}
        assert Notification.objects.count() == 1
        assert IdempotencyRecord.objects.count() == 1
        no_statsd["views"].increment.assert_any_call(
            "orders.webhook.duplicate",
            tags=["topic:orders/create", f"shop_domain:{SHOP_DOMAIN}"],
        )

    def test_dispatch_is_kicked_after_commit(
        self, integration, mocker, django_capture_on_commit_callbacks
    ):
        send = mocker.patch("order_webhooks.views.dispatch_notifications.send")

        with django_capture_on_commit_callbacks(execute=True):
            _post_webhook(self.client, CREATE_URL, {"id": 1})

        send.assert_called_once_with()

    def test_dispatch_on_receive_can_be_disabled(
        self, integration, mocker, settings, django_capture_on_commit_callbacks
    ):
        settings.ORDER_WEBHOOKS = {"DISPATCH_ON_RECEIVE": False}
        send = mocker.patch("order_webhooks.views.dispatch_notifications.send")

        with django_capture_on_commit_callbacks(execute=True):
            _post_webhook(self.client, CREATE_URL, {"id": 1})

        send.assert_not_called()
        assert Notification.objects.count() == 1

    def test_enqueue_failure_releases_the_event_id(self, integration, mocker):
        mocker.patch(
            "order_webhooks.views.enqueue_notification",
            side_effect=RuntimeError("db unavailable"),
        )

        with pytest.raises(RuntimeError):
            _post_webhook(self.client, CREATE_URL, {"id": 1}, webhook_id="wh_lost")

        assert not IdempotencyRecord.objects.filter(event_id="wh_lost").exists()


class TestComplianceWebhooks:
    def setup_method(self):
        self.client = APIClient()

    @pytest.mark.parametrize(
        "url,topic",
        [(SHOP_REDACT_URL, "shop/redact"), (UNINSTALLED_URL, "app/uninstalled")],
    )
    def test_shop_lifecycle_revokes_integration(self, integration, url, topic):
        response = _post_webhook(self.client, url, {"shop_domain": SHOP_DOMAIN}, topic=topic)

        assert response.status_code == 200
        integration.refresh_from_db()
        assert integration.status == Integration.Status.REVOKED
        assert integration.revoked_at is not None

        followup = _post_webhook(self.client, CREATE_URL, {"id": 1})
        assert followup.status_code == 401

    def test_data_request_is_acknowledged(self, integration):
        response = _post_webhook(
            self.client,
            DATA_REQUEST_URL,
            {"customer": {"id": 777}, "orders_requested": [ORDER_ID]},
            topic="customers/data_request",
        )

        assert response.status_code == 200
        integration.refresh_from_db()
        assert integration.is_active
        assert Notification.objects.count() == 0

    def test_shop_redact_after_uninstall_is_accepted(self, integration):
        uninstall = _post_webhook(
            self.client, UNINSTALLED_URL, {"shop_domain": SHOP_DOMAIN}, topic="app/uninstalled"
        )
        integration.refresh_from_db()
        revoked_at = integration.revoked_at

        redact = _post_webhook(
            self.client, SHOP_REDACT_URL, {"shop_domain": SHOP_DOMAIN}, topic="shop/redact"
        )

        assert uninstall.status_code == 200
        assert redact.status_code == 200
        assert redact.json() == {"status": "accepted"}
        integration.refresh_from_db()
        assert integration.status == Integration.Status.REVOKED
        assert integration.revoked_at == revoked_at
        assert integration.api_access_token == ""

    def test_revoked_integration_still_checks_signature(self, integration):
        integration.status = Integration.Status.REVOKED
        integration.save()

        response = _post_webhook(
            self.client,
            SHOP_REDACT_URL,
            {"shop_domain": SHOP_DOMAIN},
            topic="shop/redact",
            secret="wrong-secret",
        )

        assert response.status_code == 401

    def test_customers_redact_masks_customer_and_orders(self, integration):
        store = integration.store
        customer = CustomerFactory(
            store=store,
            external_customer_id="777",
            email="ana@example.com",
            phone="+595981000111",
        )
        order = OrderFactory(
            store=store,
            customer=customer,
            customer_email="ana@example.com",
            customer_phone="+595981000111",
            customer_first_name="Ana",
            customer_last_name="Pérez",
            shipping_address1="Av. Mariscal López 1234",
            delivery_notes="Portón verde",
            total_price=Decimal("150000.00"),
            cod_amount=Decimal("150000.00"),
        )
        bystander = OrderFactory(store=store, customer_email="otro@example.com")

        response = _post_webhook(
            self.client,
            CUSTOMERS_REDACT_URL,
            {"customer": {"id": 777, "email": "ana@example.com"}, "orders_to_redact": []},
            topic="customers/redact",
        )

        assert response.status_code == 200
        customer.refresh_from_db()
        assert customer.first_name == "REDACTED"
        assert customer.last_name == ""
        assert customer.phone == "REDACTED"
        assert "ana@example.com" not in customer.email
        order.refresh_from_db()
        assert order.customer_first_name == "REDACTED"
        assert order.customer_last_name == ""
        assert order.customer_phone == "REDACTED"
        assert "ana@example.com" not in order.customer_email
        assert order.shipping_address1 == "REDACTED"
        assert order.delivery_notes == ""
        assert order.total_price == Decimal("150000.00")
        assert order.cod_amount == Decimal("150000.00")
        bystander.refresh_from_db()
        assert bystander.customer_email == "otro@example.com"

    def test_customers_redact_after_uninstall_is_accepted(self, integration):
        customer = CustomerFactory(store=integration.store, external_customer_id="777")
        _post_webhook(
            self.client, UNINSTALLED_URL, {"shop_domain": SHOP_DOMAIN}, topic="app/uninstalled"
        )

        response = _post_webhook(
            self.client,
            CUSTOMERS_REDACT_URL,
            {"customer": {"id": 777}},
            topic="customers/redact",
        )

        assert response.status_code == 200
        customer.refresh_from_db()
        assert customer.first_name == "REDACTED"

    def test_redaction_rolls_back_with_the_ledger(self, integration, mocker):
        customer = CustomerFactory(store=integration.store, external_customer_id="777")
        mocker.patch(
            "order_webhooks.services.compliance.logger.info",
            side_effect=RuntimeError("db gone"),
        )

        with pytest.raises(RuntimeError):
            _post_webhook(
                self.client,
                CUSTOMERS_REDACT_URL,
                {"customer": {"id": 777}},
                topic="customers/redact",
            )

        customer.refresh_from_db()
        assert customer.first_name == "Ana"
        assert IdempotencyRecord.objects.count() == 0


class TestDoubleDeliveryEndToEnd:
    """The same orders/create delivered twice yields exactly one order."""

    def setup_method(self):
        self.client = APIClient()

    def test_one_order_one_line_item(self, integration, no_statsd):
        product = ProductFactory(
            store=integration.store, external_product_id="111", stock=10
        )
        payload = order_payload()

        first = _post_webhook(self.client, CREATE_URL, payload, webhook_id="wh_6938797637825")
        second = _post_webhook(self.client, CREATE_URL, payload, webhook_id="wh_6938797637825")
        summary = Dispatcher().run_once()

        assert first.json() == {"status": "accepted"}
        assert second.json() == {"status": "duplicate"}
        assert Notification.objects.count() == 1
        assert summary.succeeded == 1

        order = Order.objects.get(external_order_id=str(ORDER_ID))
        assert order.store == integration.store
        item = OrderLineItem.objects.get(order=order)
        assert item.product == product
        assert item.quantity == 2
        product.refresh_from_db()
        assert product.stock == 10
        assert Notification.objects.get().status == Notification.Status.SUCCEEDED

    def test_redelivery_under_new_event_id_still_one_order(self, integration, no_statsd):
        ProductFactory(store=integration.store, external_product_id="111")

        _post_webhook(self.client, CREATE_URL, order_payload(), webhook_id="wh_a")
        _post_webhook(self.client, CREATE_URL, order_payload(), webhook_id="wh_b")
        summary = Dispatcher().run_once()

        assert summary.succeeded == 2
        assert Order.objects.count() == 1
        assert OrderLineItem.objects.count() == 1

    def test_update_then_cancel_flow(self, integration, no_statsd):
        ProductFactory(store=integration.store, external_product_id="111")

        _post_webhook(self.client, CREATE_URL, order_payload())
        Dispatcher().run_once()
        _post_webhook(
            self.client,
            CANCELLED_URL,
            {"id": ORDER_ID, "cancel_reason": "customer"},
            topic="orders/cancelled",
        )
        Dispatcher().run_once()

        order = Order.objects.get()
        assert order.status == Order.Status.CANCELLED
