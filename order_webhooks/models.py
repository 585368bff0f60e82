import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q


class Store(models.Model):
    """A merchant's local store. Orders, products and customers hang off it."""

    store_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "order_webhooks_store"

    def __str__(self):
        return f"{self.name} ({self.store_id})"


class Integration(models.Model):
    """Per-store platform connection configuration. One record per store."""

    class Status(models.TextChoices):
        ACTIVE = "active"
        REVOKED = "revoked"

    store = models.OneToOneField(
        Store, on_delete=models.CASCADE, related_name="integration"
    )
    shop_domain = models.CharField(max_length=255, unique=True)
    webhook_secret = models.CharField(max_length=255, blank=True, default="")
    api_access_token = models.TextField(blank=True, default="")
    api_version = models.CharField(max_length=10, default="2024-07")
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.ACTIVE
    )
    extra_data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    revoked_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "order_webhooks_integration"

    def __str__(self):
        return f"{self.shop_domain} (store={self.store_id})"

    @property
    def is_active(self):
        return self.status == self.Status.ACTIVE


class Notification(models.Model):
    """Durable queue entry for one inbound platform notification."""

    class Status(models.TextChoices):
        PENDING = "pending"
        PROCESSING = "processing"
        SUCCEEDED = "succeeded"
        FAILED = "failed"

    integration = models.ForeignKey(
        Integration,
        on_delete=models.SET_NULL,
        null=True,
        related_name="notifications",
    )
    store = models.ForeignKey(Store, on_delete=models.SET_NULL, null=True)
    shop_domain = models.CharField(max_length=255, db_index=True)
    topic = models.CharField(max_length=100)
    payload = models.JSONField(default=dict)
    headers = models.JSONField(default=dict, blank=True)
    idempotency_key = models.CharField(max_length=255)
    resource_id = models.CharField(max_length=64, blank=True, default="")
    payload_hash = models.CharField(max_length=64, blank=True, default="")
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )
    attempt_count = models.PositiveIntegerField(default=0)
    max_attempts = models.PositiveIntegerField(default=5)
    next_attempt_at = models.DateTimeField()
    claimed_at = models.DateTimeField(null=True, blank=True)
    last_error = models.TextField(blank=True, default="")
    processing_time_ms = models.IntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "order_webhooks_notification"
        indexes = [
            models.Index(
                fields=["status", "next_attempt_at"],
                name="ow_notif_due_idx",
            ),
            models.Index(
                fields=["shop_domain", "resource_id"],
                name="ow_notif_resource_idx",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["integration", "idempotency_key"],
                name="ow_unique_notification_key",
            ),
        ]

    def __str__(self):
        return f"{self.topic} [{self.status}] ({self.idempotency_key})"

    @property
    def is_terminal(self):
        return self.status in (self.Status.SUCCEEDED, self.Status.FAILED)


class IdempotencyRecord(models.Model):
    """Ledger entry for a platform event id that has already been accepted."""

    event_id = models.CharField(max_length=255, primary_key=True)
    shop_domain = models.CharField(max_length=255, blank=True, default="")
    topic = models.CharField(max_length=100, blank=True, default="")
    resource_id = models.CharField(max_length=64, blank=True, default="")
    processed_at = models.DateTimeField()
    response_status = models.PositiveSmallIntegerField(default=200)
    expires_at = models.DateTimeField(db_index=True)

    class Meta:
        db_table = "order_webhooks_idempotency_record"
        indexes = [
            models.Index(
                fields=["shop_domain", "resource_id"],
                name="ow_idem_resource_idx",
            ),
        ]

    def __str__(self):
        return f"{self.event_id} (expires {self.expires_at:%Y-%m-%d %H:%M})"


class Customer(models.Model):
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="customers")
    email = models.CharField(max_length=255, blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    first_name = models.CharField(max_length=255, blank=True, default="")
    last_name = models.CharField(max_length=255, blank=True, default="")
    external_customer_id = models.CharField(max_length=64, blank=True, default="")
    accepts_marketing = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "order_webhooks_customer"
        constraints = [
            models.UniqueConstraint(
                fields=["store", "email"],
                condition=~Q(email=""),
                name="ow_unique_customer_email",
            ),
        ]

    def __str__(self):
        return f"{self.first_name} {self.last_name}".strip() or self.email or self.phone


class Product(models.Model):
    class SyncStatus(models.TextChoices):
        PENDING = "pending"
        SYNCED = "synced"
        ERROR = "error"

    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="products")
    name = models.CharField(max_length=255)
    sku = models.CharField(max_length=100, blank=True, default="", db_index=True)
    external_product_id = models.CharField(max_length=64, blank=True, default="")
    external_variant_id = models.CharField(max_length=64, blank=True, default="")
    external_inventory_item_id = models.CharField(
        max_length=64, blank=True, default=""
    )
    stock = models.IntegerField(default=0)
    price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    base_cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    packaging_cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    additional_cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    sync_status = models.CharField(
        max_length=20, choices=SyncStatus.choices, default=SyncStatus.PENDING
    )
    last_synced_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "order_webhooks_product"
        indexes = [
            models.Index(
                fields=["store", "external_variant_id"],
                name="ow_product_variant_idx",
            ),
            models.Index(
                fields=["store", "external_product_id"],
                name="ow_product_external_idx",
            ),
        ]

    def __str__(self):
        return f"{self.name} (stock={self.stock})"

    @property
    def is_linked(self):
        return bool(self.external_variant_id or self.external_product_id)

    @property
    def unit_cost(self):
        return self.base_cost + self.packaging_cost + self.additional_cost


class Order(models.Model):
    """Local order, created from platform notifications or by hand."""

    class Status(models.TextChoices):
        PENDING = "pending"
        CONFIRMED = "confirmed"
        IN_PREPARATION = "in_preparation"
        READY_TO_SHIP = "ready_to_ship"
        SHIPPED = "shipped"
        IN_TRANSIT = "in_transit"
        DELIVERED = "delivered"
        CANCELLED = "cancelled"
        RETURNED = "returned"
        DELIVERY_FAILED = "delivery_failed"

    # Stock has left the shelf once an order reaches any of these.
    STOCK_CONSUMED_STATUSES = frozenset(
        {
            Status.READY_TO_SHIP,
            Status.SHIPPED,
            Status.IN_TRANSIT,
            Status.DELIVERED,
        }
    )
    TERMINAL_STATUSES = frozenset(
        {Status.DELIVERED, Status.CANCELLED, Status.RETURNED}
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="orders")
    customer = models.ForeignKey(
        Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name="orders"
    )
    external_order_id = models.CharField(max_length=64, null=True, blank=True)
    external_order_number = models.CharField(max_length=64, blank=True, default="")
    external_order_name = models.CharField(max_length=64, blank=True, default="")
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PENDING
    )

    # Soft delete only hides the order; hard delete goes through the cascade.
    deleted_at = models.DateTimeField(null=True, blank=True)
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    subtotal_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_tax = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_discounts = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    cod_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    currency = models.CharField(max_length=3, default="USD")

    payment_gateway = models.CharField(max_length=100, blank=True, default="")
    payment_method = models.CharField(max_length=50, blank=True, default="")
    financial_status = models.CharField(max_length=50, blank=True, default="")

    customer_email = models.CharField(max_length=255, blank=True, default="")
    customer_phone = models.CharField(max_length=50, blank=True, default="")
    customer_first_name = models.CharField(max_length=255, blank=True, default="")
    customer_last_name = models.CharField(max_length=255, blank=True, default="")

    shipping_address1 = models.CharField(max_length=255, blank=True, default="")
    shipping_address2 = models.CharField(max_length=255, blank=True, default="")
    shipping_city = models.CharField(max_length=255, blank=True, default="")
    shipping_province = models.CharField(max_length=255, blank=True, default="")
    shipping_country = models.CharField(max_length=255, blank=True, default="")
    shipping_zip = models.CharField(max_length=50, blank=True, default="")
    delivery_notes = models.TextField(blank=True, default="")
    tags = models.TextField(blank=True, default="")
    platform_data = models.JSONField(default=dict, blank=True)

    placed_at = models.DateTimeField(null=True, blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    in_preparation_at = models.DateTimeField(null=True, blank=True)
    ready_to_ship_at = models.DateTimeField(null=True, blank=True)
    shipped_at = models.DateTimeField(null=True, blank=True)
    in_transit_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    returned_at = models.DateTimeField(null=True, blank=True)
    delivery_failed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "order_webhooks_order"
        indexes = [
            models.Index(fields=["store", "status"], name="ow_order_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["external_order_id", "store"],
                condition=Q(external_order_id__isnull=False),
                name="ow_unique_external_order",
            ),
        ]

    def __str__(self):
        label = self.external_order_name or self.external_order_id or self.id
        return f"Order {label} [{self.status}]"

    @property
    def has_consumed_stock(self):
        return self.status in self.STOCK_CONSUMED_STATUSES

    @property
    def is_soft_deleted(self):
        return self.deleted_at is not None


class OrderLineItemQuerySet(models.QuerySet):
    def unmapped(self):
        """Line items whose external product could not be resolved locally."""
        return self.filter(product__isnull=True)


class OrderLineItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="line_items")
    product = models.ForeignKey(
        Product, on_delete=models.SET_NULL, null=True, blank=True, related_name="+"
    )
    external_product_id = models.CharField(max_length=64, blank=True, default="")
    external_variant_id = models.CharField(max_length=64, blank=True, default="")
    external_line_item_id = models.CharField(max_length=64, blank=True, default="")
    sku = models.CharField(max_length=100, blank=True, default="")
    name = models.CharField(max_length=255, blank=True, default="")
    variant_title = models.CharField(max_length=255, blank=True, default="")
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total_price = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    tax_amount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = OrderLineItemQuerySet.as_manager()

    class Meta:
        db_table = "order_webhooks_order_line_item"

    def __str__(self):
        return f"{self.quantity}x {self.name or self.sku}"


class InventoryMovement(models.Model):
    """Append-only stock ledger row."""

    class MovementType(models.TextChoices):
        ORDER_STOCK_DEDUCTION = "order_stock_deduction"
        ORDER_STOCK_RESTORATION = "order_stock_restoration"
        HARD_DELETE_RESTORATION = "order_hard_delete_restoration"
        MANUAL_ADJUSTMENT = "manual_adjustment"

    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="movements"
    )
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="+")
    # Detached (set to NULL) when the order is hard-deleted; the id is kept
    # in order_reference.
    order = models.ForeignKey(
        Order,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="inventory_movements",
    )
    order_reference = models.CharField(max_length=64, blank=True, default="")
    movement_type = models.CharField(max_length=40, choices=MovementType.choices)
    quantity_change = models.IntegerField()
    stock_before = models.IntegerField()
    stock_after = models.IntegerField()
    order_status_from = models.CharField(max_length=20, blank=True, default="")
    order_status_to = models.CharField(max_length=20, blank=True, default="")
    reason = models.CharField(max_length=100, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "order_webhooks_inventory_movement"
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.movement_type} {self.quantity_change:+d} (product={self.product_id})"


# ---------------------------------------------------------------------------
# Records that depend on an order and are cleaned up by the hard-delete
# cascade (services/order_cascade.py).
# ---------------------------------------------------------------------------


class PickingSession(models.Model):
    class Status(models.TextChoices):
        PICKING = "picking"
        PACKING = "packing"
        COMPLETED = "completed"

    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="+")
    code = models.CharField(max_length=50)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.PICKING
    )
    created_at = models.DateTimeField(auto_now_add=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "order_webhooks_picking_session"

    def __str__(self):
        return f"{self.code} [{self.status}]"


class PickingSessionOrder(models.Model):
    session = models.ForeignKey(
        PickingSession, on_delete=models.CASCADE, related_name="session_orders"
    )
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="+")
    added_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "order_webhooks_picking_session_order"
        constraints = [
            models.UniqueConstraint(
                fields=["session", "order"], name="ow_unique_picking_order"
            ),
        ]


class PackingProgress(models.Model):
    session = models.ForeignKey(
        PickingSession, on_delete=models.CASCADE, related_name="packing_progress"
    )
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="+")
    line_item = models.ForeignKey(
        OrderLineItem, on_delete=models.CASCADE, related_name="+"
    )
    quantity_needed = models.PositiveIntegerField(default=0)
    quantity_packed = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "order_webhooks_packing_progress"


class ReturnSession(models.Model):
    class Status(models.TextChoices):
        IN_PROGRESS = "in_progress"
        COMPLETED = "completed"

    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="+")
    code = models.CharField(max_length=50)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.IN_PROGRESS
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "order_webhooks_return_session"


class ReturnSessionOrder(models.Model):
    session = models.ForeignKey(
        ReturnSession, on_delete=models.CASCADE, related_name="session_orders"
    )
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="+")

    class Meta:
        db_table = "order_webhooks_return_session_order"


class Settlement(models.Model):
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="+")
    code = models.CharField(max_length=50)
    settlement_date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "order_webhooks_settlement"


class SettlementOrder(models.Model):
    settlement = models.ForeignKey(
        Settlement, on_delete=models.CASCADE, related_name="settlement_orders"
    )
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="+")
    amount_collected = models.DecimalField(max_digits=12, decimal_places=2, default=0)

    class Meta:
        db_table = "order_webhooks_settlement_order"


class OrderStatusHistory(models.Model):
    order = models.ForeignKey(
        Order, on_delete=models.CASCADE, related_name="status_history"
    )
    previous_status = models.CharField(max_length=20, blank=True, default="")
    new_status = models.CharField(max_length=20)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    source = models.CharField(max_length=50, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "order_webhooks_order_status_history"
        ordering = ["created_at", "id"]


class FollowUpLog(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="+")
    channel = models.CharField(max_length=30, blank=True, default="")
    message = models.TextField(blank=True, default="")
    sent_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "order_webhooks_follow_up_log"


class DeliveryAttempt(models.Model):
    class Status(models.TextChoices):
        SCHEDULED = "scheduled", "Scheduled"
        DELIVERED = "delivered", "Delivered"
        FAILED = "failed", "Failed"

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="+")
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name="+")
    attempt_number = models.PositiveIntegerField()
    scheduled_date = models.DateField()
    actual_date = models.DateField(null=True, blank=True)
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.SCHEDULED
    )
    notes = models.TextField(blank=True, default="")
    failed_reason = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "order_webhooks_delivery_attempt"
        constraints = [
            models.UniqueConstraint(
                fields=["order", "attempt_number"],
                name="ow_unique_delivery_attempt",
            ),
        ]
