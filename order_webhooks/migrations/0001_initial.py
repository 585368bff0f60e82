# Generated manually for order_webhooks app

import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


def _id():
    return (
        "id",
        models.BigAutoField(
            auto_created=True,
            primary_key=True,
            serialize=False,
            verbose_name="ID",
        ),
    )


def _money(**kwargs):
    return models.DecimalField(decimal_places=2, default=0, max_digits=12, **kwargs)


def _text(max_length):
    return models.CharField(blank=True, default="", max_length=max_length)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Store",
            fields=[
                _id(),
                (
                    "store_id",
                    models.UUIDField(default=uuid.uuid4, editable=False, unique=True),
                ),
                ("name", models.CharField(max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "order_webhooks_store",
            },
        ),
        migrations.CreateModel(
            name="Integration",
            fields=[
                _id(),
                ("shop_domain", models.CharField(max_length=255, unique=True)),
                ("webhook_secret", _text(255)),
                ("api_access_token", models.TextField(blank=True, default="")),
                ("api_version", models.CharField(default="2024-07", max_length=10)),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("revoked", "Revoked")],
                        default="active",
                        max_length=20,
                    ),
                ),
                ("extra_data", models.JSONField(blank=True, default=dict)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("revoked_at", models.DateTimeField(blank=True, null=True)),
                (
                    "store",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="integration",
                        to="order_webhooks.store",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_integration",
            },
        ),
        migrations.CreateModel(
            name="IdempotencyRecord",
            fields=[
                (
                    "event_id",
                    models.CharField(max_length=255, primary_key=True, serialize=False),
                ),
                ("shop_domain", _text(255)),
                ("topic", _text(100)),
                ("resource_id", _text(64)),
                ("processed_at", models.DateTimeField()),
                ("response_status", models.PositiveSmallIntegerField(default=200)),
                ("expires_at", models.DateTimeField(db_index=True)),
            ],
            options={
                "db_table": "order_webhooks_idempotency_record",
                "indexes": [
                    models.Index(
                        fields=["shop_domain", "resource_id"],
                        name="ow_idem_resource_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Customer",
            fields=[
                _id(),
                ("email", _text(255)),
                ("phone", _text(50)),
                ("first_name", _text(255)),
                ("last_name", _text(255)),
                ("external_customer_id", _text(64)),
                ("accepts_marketing", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="customers",
                        to="order_webhooks.store",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_customer",
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("email", ""), _negated=True),
                        fields=("store", "email"),
                        name="ow_unique_customer_email",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                _id(),
                ("name", models.CharField(max_length=255)),
                ("sku", models.CharField(blank=True, db_index=True, default="", max_length=100)),
                ("external_product_id", _text(64)),
                ("external_variant_id", _text(64)),
                ("external_inventory_item_id", _text(64)),
                ("stock", models.IntegerField(default=0)),
                ("price", _money()),
                ("base_cost", _money()),
                ("packaging_cost", _money()),
                ("additional_cost", _money()),
                (
                    "sync_status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("synced", "Synced"),
                            ("error", "Error"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("last_synced_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="products",
                        to="order_webhooks.store",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_product",
                "indexes": [
                    models.Index(
                        fields=["store", "external_variant_id"],
                        name="ow_product_variant_idx",
                    ),
                    models.Index(
                        fields=["store", "external_product_id"],
                        name="ow_product_external_idx",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("external_order_id", models.CharField(blank=True, max_length=64, null=True)),
                ("external_order_number", _text(64)),
                ("external_order_name", _text(64)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("confirmed", "Confirmed"),
                            ("in_preparation", "In Preparation"),
                            ("ready_to_ship", "Ready To Ship"),
                            ("shipped", "Shipped"),
                            ("in_transit", "In Transit"),
                            ("delivered", "Delivered"),
                            ("cancelled", "Cancelled"),
                            ("returned", "Returned"),
                            ("delivery_failed", "Delivery Failed"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("deleted_at", models.DateTimeField(blank=True, null=True)),
                ("total_price", _money()),
                ("subtotal_price", _money()),
                ("total_tax", _money()),
                ("total_discounts", _money()),
                ("shipping_cost", _money()),
                ("cod_amount", _money()),
                ("currency", models.CharField(default="USD", max_length=3)),
                ("payment_gateway", _text(100)),
                ("payment_method", _text(50)),
                ("financial_status", _text(50)),
                ("customer_email", _text(255)),
                ("customer_phone", _text(50)),
                ("customer_first_name", _text(255)),
                ("customer_last_name", _text(255)),
                ("shipping_address1", _text(255)),
                ("shipping_address2", _text(255)),
                ("shipping_city", _text(255)),
                ("shipping_province", _text(255)),
                ("shipping_country", _text(255)),
                ("shipping_zip", _text(50)),
                ("delivery_notes", models.TextField(blank=True, default="")),
                ("tags", models.TextField(blank=True, default="")),
                ("platform_data", models.JSONField(blank=True, default=dict)),
                ("placed_at", models.DateTimeField(blank=True, null=True)),
                ("confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("in_preparation_at", models.DateTimeField(blank=True, null=True)),
                ("ready_to_ship_at", models.DateTimeField(blank=True, null=True)),
                ("shipped_at", models.DateTimeField(blank=True, null=True)),
                ("in_transit_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("returned_at", models.DateTimeField(blank=True, null=True)),
                ("delivery_failed_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="orders",
                        to="order_webhooks.customer",
                    ),
                ),
                (
                    "deleted_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="orders",
                        to="order_webhooks.store",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_order",
                "indexes": [
                    models.Index(fields=["store", "status"], name="ow_order_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("external_order_id__isnull", False)),
                        fields=("external_order_id", "store"),
                        name="ow_unique_external_order",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderLineItem",
            fields=[
                _id(),
                ("external_product_id", _text(64)),
                ("external_variant_id", _text(64)),
                ("external_line_item_id", _text(64)),
                ("sku", _text(100)),
                ("name", _text(255)),
                ("variant_title", _text(255)),
                ("quantity", models.PositiveIntegerField(default=1)),
                ("unit_price", _money()),
                ("total_price", _money()),
                ("discount_amount", _money()),
                ("tax_amount", _money()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="line_items",
                        to="order_webhooks.order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="order_webhooks.product",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_order_line_item",
            },
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                _id(),
                ("shop_domain", models.CharField(db_index=True, max_length=255)),
                ("topic", models.CharField(max_length=100)),
                ("payload", models.JSONField(default=dict)),
                ("headers", models.JSONField(blank=True, default=dict)),
                ("idempotency_key", models.CharField(max_length=255)),
                ("resource_id", _text(64)),
                ("payload_hash", _text(64)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("processing", "Processing"),
                            ("succeeded", "Succeeded"),
                            ("failed", "Failed"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("attempt_count", models.PositiveIntegerField(default=0)),
                ("max_attempts", models.PositiveIntegerField(default=5)),
                ("next_attempt_at", models.DateTimeField()),
                ("claimed_at", models.DateTimeField(blank=True, null=True)),
                ("last_error", models.TextField(blank=True, default="")),
                ("processing_time_ms", models.IntegerField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "integration",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="notifications",
                        to="order_webhooks.integration",
                    ),
                ),
                (
                    "store",
                    models.ForeignKey(
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to="order_webhooks.store",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_notification",
                "indexes": [
                    models.Index(
                        fields=["status", "next_attempt_at"],
                        name="ow_notif_due_idx",
                    ),
                    models.Index(
                        fields=["shop_domain", "resource_id"],
                        name="ow_notif_resource_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("integration", "idempotency_key"),
                        name="ow_unique_notification_key",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="InventoryMovement",
            fields=[
                _id(),
                ("order_reference", _text(64)),
                (
                    "movement_type",
                    models.CharField(
                        choices=[
                            ("order_stock_deduction", "Order Stock Deduction"),
                            ("order_stock_restoration", "Order Stock Restoration"),
                            ("order_hard_delete_restoration", "Hard Delete Restoration"),
                            ("manual_adjustment", "Manual Adjustment"),
                        ],
                        max_length=40,
                    ),
                ),
                ("quantity_change", models.IntegerField()),
                ("stock_before", models.IntegerField()),
                ("stock_after", models.IntegerField()),
                ("order_status_from", _text(20)),
                ("order_status_to", _text(20)),
                ("reason", _text(100)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="inventory_movements",
                        to="order_webhooks.order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="movements",
                        to="order_webhooks.product",
                    ),
                ),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to="order_webhooks.store",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_inventory_movement",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="PickingSession",
            fields=[
                _id(),
                ("code", models.CharField(max_length=50)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("picking", "Picking"),
                            ("packing", "Packing"),
                            ("completed", "Completed"),
                        ],
                        default="picking",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to="order_webhooks.store",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_picking_session",
            },
        ),
        migrations.CreateModel(
            name="PickingSessionOrder",
            fields=[
                _id(),
                ("added_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to="order_webhooks.order",
                    ),
                ),
                (
                    "session",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="session_orders",
                        to="order_webhooks.pickingsession",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_picking_session_order",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("session", "order"), name="ow_unique_picking_order"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PackingProgress",
            fields=[
                _id(),
                ("quantity_needed", models.PositiveIntegerField(default=0)),
                ("quantity_packed", models.PositiveIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "line_item",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to="order_webhooks.orderlineitem",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to="order_webhooks.order",
                    ),
                ),
                (
                    "session",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="packing_progress",
                        to="order_webhooks.pickingsession",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_packing_progress",
            },
        ),
        migrations.CreateModel(
            name="ReturnSession",
            fields=[
                _id(),
                ("code", models.CharField(max_length=50)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("in_progress", "In Progress"),
                            ("completed", "Completed"),
                        ],
                        default="in_progress",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to="order_webhooks.store",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_return_session",
            },
        ),
        migrations.CreateModel(
            name="ReturnSessionOrder",
            fields=[
                _id(),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to="order_webhooks.order",
                    ),
                ),
                (
                    "session",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="session_orders",
                        to="order_webhooks.returnsession",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_return_session_order",
            },
        ),
        migrations.CreateModel(
            name="Settlement",
            fields=[
                _id(),
                ("code", models.CharField(max_length=50)),
                ("settlement_date", models.DateField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to="order_webhooks.store",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_settlement",
            },
        ),
        migrations.CreateModel(
            name="SettlementOrder",
            fields=[
                _id(),
                ("amount_collected", _money()),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to="order_webhooks.order",
                    ),
                ),
                (
                    "settlement",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="settlement_orders",
                        to="order_webhooks.settlement",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_settlement_order",
            },
        ),
        migrations.CreateModel(
            name="OrderStatusHistory",
            fields=[
                _id(),
                ("previous_status", _text(20)),
                ("new_status", models.CharField(max_length=20)),
                ("source", _text(50)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "changed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_history",
                        to="order_webhooks.order",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_order_status_history",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="FollowUpLog",
            fields=[
                _id(),
                ("channel", _text(30)),
                ("message", models.TextField(blank=True, default="")),
                ("sent_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to="order_webhooks.order",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_follow_up_log",
            },
        ),
        migrations.CreateModel(
            name="DeliveryAttempt",
            fields=[
                _id(),
                ("attempt_number", models.PositiveIntegerField()),
                ("scheduled_date", models.DateField()),
                ("actual_date", models.DateField(blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("scheduled", "Scheduled"),
                            ("delivered", "Delivered"),
                            ("failed", "Failed"),
                        ],
                        default="scheduled",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("failed_reason", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to="order_webhooks.order",
                    ),
                ),
                (
                    "store",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="+",
                        to="order_webhooks.store",
                    ),
                ),
            ],
            options={
                "db_table": "order_webhooks_delivery_attempt",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("order", "attempt_number"),
                        name="ow_unique_delivery_attempt",
                    ),
                ],
            },
        ),
    ]
