from django.urls import path

from .views import (
    AppUninstalledWebhookView,
    CustomersDataRequestWebhookView,
    CustomersRedactWebhookView,
    OrderCancelledWebhookView,
    OrderCreateWebhookView,
    OrderUpdatedWebhookView,
    ShopRedactWebhookView,
)

urlpatterns = [
    path(
        "orders-create/",
        OrderCreateWebhookView.as_view(),
        name="order_create_webhook",
    ),
    path(
        "orders-updated/",
        OrderUpdatedWebhookView.as_view(),
        name="order_updated_webhook",
    ),
    path(
        "orders-cancelled/",
        OrderCancelledWebhookView.as_view(),
        name="order_cancelled_webhook",
    ),
    path(
        "customers-data-request/",
        CustomersDataRequestWebhookView.as_view(),
        name="customers_data_request_webhook",
    ),
    path(
        "customers-redact/",
        CustomersRedactWebhookView.as_view(),
        name="customers_redact_webhook",
    ),
    path(
        "shop-redact/",
        ShopRedactWebhookView.as_view(),
        name="shop_redact_webhook",
    ),
    path(
        "app-uninstalled/",
        AppUninstalledWebhookView.as_view(),
        name="app_uninstalled_webhook",
    ),
]
