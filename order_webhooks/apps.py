from django.apps import AppConfig


class OrderWebhooksConfig(AppConfig):
    name = "order_webhooks"
    verbose_name = "Order Webhooks"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        # Import handler modules to trigger topic registration in router.
        import order_webhooks.handlers.orders  # noqa: F401
