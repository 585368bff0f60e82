import json
import logging

from datadog import statsd
from django.db import transaction
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .conf import get_setting
from .ledger import DUPLICATE, IdempotencyLedger
from .middleware import verify_shopify_hmac
from .models import Integration
from .queue import enqueue_notification
from .router import APP_TOPICS, COMPLIANCE_TOPICS, ORDER_TOPICS
from .services.compliance import redact_customer, revoke_integration
from .tasks import dispatch_notifications
from .utils import external_id, normalize_shop_domain, payload_sha256

logger = logging.getLogger(__name__)

SIGNATURE_META_KEY = "HTTP_X_SHOPIFY_HMAC_SHA256"


def _transport_headers(request):
    """X-Shopify-* headers worth keeping with the notification, minus the signature."""
    headers = {}
    for key, value in request.META.items():
        if key.startswith("HTTP_X_SHOPIFY_") and key != SIGNATURE_META_KEY:
            name = key[len("HTTP_"):].replace("_", "-").title()
            headers[name] = value
    return headers


class BaseShopifyWebhookView(APIView):
    """Base view for all inbound webhook endpoints.

    Verifies the signature over the raw body before anything is parsed,
    records the event id in the idempotency ledger and hands the event to
    :meth:`accept`. Concrete subclasses define ``allowed_topics`` to validate
    that the incoming topic matches the endpoint.
    """

    authentication_classes = []
    permission_classes = [AllowAny]
    allowed_topics = frozenset()
    require_active = True

    def post(self, request):
        # 1. Extract shop domain
        raw_domain = request.META.get("HTTP_X_SHOPIFY_SHOP_DOMAIN", "")
        shop_domain = normalize_shop_domain(raw_domain)
        if not shop_domain:
            return Response(
                {"error": "Missing or malformed X-Shopify-Shop-Domain header"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        # 2. Look up the integration for this shop; revoked ones only where allowed
        integration = (
            Integration.objects.select_related("store")
            .filter(shop_domain=shop_domain)
            .first()
        )
        if integration is None or (self.require_active and not integration.is_active):
            logger.warning("No usable integration for domain: %s", shop_domain)
            return Response(
                {"error": "Unknown shop domain"},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        # 3. Verify HMAC signature over the raw body
        raw_body = request.body
        hmac_header = request.META.get(SIGNATURE_META_KEY, "")
        secret = integration.webhook_secret or get_setting("SHARED_WEBHOOK_SECRET")
        if not verify_shopify_hmac(raw_body, hmac_header, secret):
            logger.warning("HMAC verification failed for %s", shop_domain)
            return Response(
                {"error": "HMAC verification failed"},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        # 4. Extract topic and event id
        topic = request.META.get("HTTP_X_SHOPIFY_TOPIC", "")
        event_id = request.META.get("HTTP_X_SHOPIFY_WEBHOOK_ID") or request.META.get(
            "HTTP_X_SHOPIFY_EVENT_ID", ""
        )
        if not topic:
            return Response(
                {"error": "Missing X-Shopify-Topic header"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if not event_id:
            return Response(
                {"error": "Missing X-Shopify-Webhook-Id header"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        # 5. Validate topic matches this endpoint
        if self.allowed_topics and topic not in self.allowed_topics:
            logger.warning(
                "Topic %s not allowed for %s", topic, self.__class__.__name__
            )
            return Response(
                {"error": f"Topic '{topic}' not handled by this endpoint"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        # 6. Parse the body only now that it is authenticated
        try:
            payload = json.loads(raw_body)
        except ValueError:
            return Response(
                {"error": "Body is not valid JSON"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if not isinstance(payload, dict):
            return Response(
                {"error": "Body must be a JSON object"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        tags = [f"topic:{topic}", f"shop_domain:{shop_domain}"]
        statsd.increment("orders.webhook.received", tags=tags)

        # 7. Idempotency check and hand-off share one transaction
        resource_id = external_id(payload.get("id"))
        with transaction.atomic():
            outcome = IdempotencyLedger().observe(
                event_id,
                shop_domain=shop_domain,
                topic=topic,
                resource_id=resource_id,
            )
            if outcome == DUPLICATE:
                statsd.increment("orders.webhook.duplicate", tags=tags)
                logger.info(
                    "Duplicate webhook ignored: topic=%s, event_id=%s, shop=%s",
                    topic,
                    event_id,
                    shop_domain,
                )
                return Response({"status": "duplicate"}, status=status.HTTP_200_OK)

            self.accept(
                request,
                integration=integration,
                topic=topic,
                event_id=event_id,
                payload=payload,
                raw_body=raw_body,
                resource_id=resource_id,
            )

        logger.info(
            "Accepted webhook: topic=%s, event_id=%s, shop=%s",
            topic,
            event_id,
            shop_domain,
        )
        return Response({"status": "accepted"}, status=status.HTTP_200_OK)

    def accept(self, request, integration, topic, event_id, payload, raw_body, resource_id):
        raise NotImplementedError


class OrderWebhookView(BaseShopifyWebhookView):
    """Queues order notifications for the dispatcher."""

    allowed_topics = ORDER_TOPICS

    def accept(self, request, integration, topic, event_id, payload, raw_body, resource_id):
        notification, created = enqueue_notification(
            integration,
            topic,
            payload,
            idempotency_key=event_id,
            headers=_transport_headers(request),
            resource_id=resource_id,
            payload_hash=payload_sha256(raw_body),
        )
        if created and get_setting("DISPATCH_ON_RECEIVE"):
            transaction.on_commit(lambda: dispatch_notifications.send())
        return notification


class OrderCreateWebhookView(OrderWebhookView):
    allowed_topics = frozenset({"orders/create"})


class OrderUpdatedWebhookView(OrderWebhookView):
    allowed_topics = frozenset({"orders/updated"})


class OrderCancelledWebhookView(OrderWebhookView):
    allowed_topics = frozenset({"orders/cancelled"})


class ComplianceWebhookView(BaseShopifyWebhookView):
    """Mandatory data-subject and shop lifecycle webhooks.

    Customer data requests are acknowledged and logged for manual follow-up.
    Customer redaction anonymises the customer and their orders. Shop erasure
    and app uninstall revoke the integration, after which order webhooks are
    refused. These endpoints still answer for a revoked integration.
    """

    allowed_topics = COMPLIANCE_TOPICS | APP_TOPICS
    revoking_topics = frozenset({"shop/redact", "app/uninstalled"})
    require_active = False

    def accept(self, request, integration, topic, event_id, payload, raw_body, resource_id):
        if topic in self.revoking_topics:
            revoke_integration(integration, topic)
            return
        if topic == "customers/redact":
            redact_customer(integration, payload)
            return
        customer = payload.get("customer") or {}
        logger.info(
            "Compliance request %s for shop %s: customer_id=%s, orders=%s",
            topic,
            integration.shop_domain,
            customer.get("id"),
            payload.get("orders_requested") or [],
        )


class CustomersDataRequestWebhookView(ComplianceWebhookView):
    allowed_topics = frozenset({"customers/data_request"})


class CustomersRedactWebhookView(ComplianceWebhookView):
    allowed_topics = frozenset({"customers/redact"})


class ShopRedactWebhookView(ComplianceWebhookView):
    allowed_topics = frozenset({"shop/redact"})


class AppUninstalledWebhookView(ComplianceWebhookView):
    allowed_topics = frozenset({"app/uninstalled"})
