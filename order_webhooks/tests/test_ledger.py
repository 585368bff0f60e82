"""Tests for the idempotency ledger."""

from datetime import timedelta

import pytest
from django.db import transaction
from django.utils import timezone

from order_webhooks.ledger import DUPLICATE, NEW, IdempotencyLedger
from order_webhooks.models import IdempotencyRecord

pytestmark = pytest.mark.django_db

SHOP_DOMAIN = "test-shop.myshopify.com"


class TestObserve:
    def test_first_observation_is_new(self):
        ledger = IdempotencyLedger()
        assert ledger.observe("evt-1", shop_domain=SHOP_DOMAIN, topic="orders/create") == NEW

        record = IdempotencyRecord.objects.get(pk="evt-1")
        assert record.shop_domain == SHOP_DOMAIN
        assert record.topic == "orders/create"
        assert record.expires_at - record.processed_at == timedelta(hours=24)

    def test_second_observation_is_duplicate(self):
        ledger = IdempotencyLedger()
        ledger.observe("evt-1")
        assert ledger.observe("evt-1") == DUPLICATE
        assert IdempotencyRecord.objects.count() == 1

    def test_duplicate_does_not_break_outer_transaction(self):
        ledger = IdempotencyLedger()
        with transaction.atomic():
            ledger.observe("evt-1")
            assert ledger.observe("evt-1") == DUPLICATE
            # Still usable after the swallowed unique violation.
            assert ledger.observe("evt-2") == NEW
        assert IdempotencyRecord.objects.count() == 2

    def test_expired_record_is_reclaimed(self):
        ledger = IdempotencyLedger()
        ledger.observe("evt-1", topic="orders/create")
        IdempotencyRecord.objects.filter(pk="evt-1").update(
            expires_at=timezone.now() - timedelta(seconds=1)
        )

        assert ledger.observe("evt-1", topic="orders/updated") == NEW
        record = IdempotencyRecord.objects.get(pk="evt-1")
        assert record.topic == "orders/updated"
        assert record.expires_at > timezone.now()

    def test_custom_ttl(self):
        ledger = IdempotencyLedger(ttl_hours=1)
        ledger.observe("evt-1")
        record = IdempotencyRecord.objects.get(pk="evt-1")
        assert record.expires_at - record.processed_at == timedelta(hours=1)

    def test_ttl_from_settings(self, settings):
        settings.ORDER_WEBHOOKS = {"IDEMPOTENCY_TTL_HOURS": 48}
        assert IdempotencyLedger().ttl == timedelta(hours=48)

    def test_is_known(self):
        ledger = IdempotencyLedger()
        assert ledger.is_known("evt-1") is False
        ledger.observe("evt-1")
        assert ledger.is_known("evt-1") is True


class TestMaintenance:
    def test_prune_expired(self):
        ledger = IdempotencyLedger()
        ledger.observe("old")
        ledger.observe("fresh")
        IdempotencyRecord.objects.filter(pk="old").update(
            expires_at=timezone.now() - timedelta(hours=1)
        )

        assert ledger.prune_expired() == 1
        assert list(IdempotencyRecord.objects.values_list("pk", flat=True)) == ["fresh"]

    def test_forget_resource(self):
        ledger = IdempotencyLedger()
        ledger.observe("create", shop_domain=SHOP_DOMAIN, resource_id="6938797637825")
        ledger.observe("update", shop_domain=SHOP_DOMAIN, resource_id="6938797637825")
        ledger.observe("other", shop_domain=SHOP_DOMAIN, resource_id="42")

        assert ledger.forget_resource(SHOP_DOMAIN, "6938797637825") == 2
        assert ledger.observe("create", shop_domain=SHOP_DOMAIN) == NEW
        assert ledger.is_known("other")

    def test_forget_resource_without_id_is_noop(self):
        ledger = IdempotencyLedger()
        ledger.observe("evt", shop_domain=SHOP_DOMAIN)
        assert ledger.forget_resource(SHOP_DOMAIN, "") == 0
        assert IdempotencyRecord.objects.count() == 1
