"""Thin Shopify Admin REST API client bound to one Integration.

Every call carries an explicit timeout (``PLATFORM_API_TIMEOUT``). Errors are
not translated: ``requests`` exceptions propagate so callers can classify
them with :func:`order_webhooks.exceptions.is_transient`.
"""

import logging

import requests

from ..conf import get_setting

logger = logging.getLogger(__name__)


class PlatformClient:
    def __init__(self, integration, session=None, timeout=None):
        self.integration = integration
        self.session = session or requests.Session()
        self.timeout = timeout or get_setting("PLATFORM_API_TIMEOUT")

    # ------------------------------------------------------------------
    # Shopify Admin API helpers
    # ------------------------------------------------------------------

    def _api_url(self, path):
        """Build a Shopify Admin API URL."""
        return (
            f"https://{self.integration.shop_domain}/admin/api/"
            f"{self.integration.api_version}/{path}"
        )

    def _api_headers(self):
        """Return headers for authenticated Shopify Admin API requests."""
        return {
            "X-Shopify-Access-Token": self.integration.api_access_token,
            "Content-Type": "application/json",
        }

    def _request(self, method, path, **kwargs):
        url = self._api_url(path)
        response = self.session.request(
            method, url, headers=self._api_headers(), timeout=self.timeout, **kwargs
        )
        if response.status_code >= 400:
            logger.warning(
                "Platform API %s %s returned %s (shop=%s)",
                method,
                path,
                response.status_code,
                self.integration.shop_domain,
            )
        response.raise_for_status()
        return response.json() if response.content else {}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_order(self, order_id):
        return self._request("GET", f"orders/{order_id}.json").get("order", {})

    def get_customer(self, customer_id):
        return self._request("GET", f"customers/{customer_id}.json").get(
            "customer", {}
        )

    def get_variant(self, variant_id):
        return self._request("GET", f"variants/{variant_id}.json").get("variant", {})

    def list_locations(self):
        return self._request("GET", "locations.json").get("locations", [])

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_inventory_level(self, inventory_item_id, location_id, available):
        """Set the absolute available quantity of an item at a location."""
        body = {
            "location_id": int(location_id),
            "inventory_item_id": int(inventory_item_id),
            "available": int(available),
        }
        return self._request("POST", "inventory_levels/set.json", json=body).get(
            "inventory_level", {}
        )
