import base64
import hashlib
import hmac as hmac_mod

import pytest

from order_webhooks.tests.factories import IntegrationFactory, StoreFactory


@pytest.fixture
def store():
    return StoreFactory()


@pytest.fixture
def integration(store):
    return IntegrationFactory(store=store, shop_domain="test-shop.myshopify.com")


@pytest.fixture
def no_statsd(mocker):
    """Silence the datadog client; returns the patched statsd objects."""
    return {
        name: mocker.patch(f"order_webhooks.{name}.statsd")
        for name in ("dispatcher", "views", "services.order_sync", "services.inventory_sync")
    }


def sign(body, secret):
    return base64.b64encode(
        hmac_mod.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    ).decode("utf-8")
