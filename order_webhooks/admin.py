from django.contrib import admin, messages

from .dispatcher import Dispatcher
from .models import (
    IdempotencyRecord,
    Integration,
    InventoryMovement,
    Notification,
    Order,
    OrderLineItem,
    Product,
)
from .queue import requeue_notification


@admin.register(Integration)
class IntegrationAdmin(admin.ModelAdmin):
    list_display = (
        "store",
        "shop_domain",
        "status",
        "api_version",
        "revoked_at",
        "updated_at",
    )
    list_filter = ("status",)
    search_fields = (
        "shop_domain",
        "store__store_id",
    )
    raw_id_fields = ("store",)
    readonly_fields = ("created_at", "updated_at", "revoked_at")


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = (
        "idempotency_key",
        "topic",
        "shop_domain",
        "status",
        "attempt_count",
        "next_attempt_at",
        "last_error_summary",
        "processing_time_ms",
        "created_at",
    )
    list_filter = (
        "status",
        "topic",
    )
    search_fields = (
        "idempotency_key",
        "shop_domain",
        "resource_id",
    )
    raw_id_fields = ("integration", "store")
    readonly_fields = (
        "payload_hash",
        "processing_time_ms",
        "claimed_at",
        "processed_at",
        "last_error",
    )
    date_hierarchy = "created_at"
    ordering = ("-created_at",)
    actions = ("requeue_failed", "force_dispatch_cycle")

    @admin.display(description="Last error")
    def last_error_summary(self, obj):
        return obj.last_error[:120]

    @admin.action(description="Requeue selected failed notifications")
    def requeue_failed(self, request, queryset):
        requeued = sum(
            requeue_notification(notification)
            for notification in queryset.filter(status=Notification.Status.FAILED)
        )
        self.message_user(request, f"Requeued {requeued} notification(s).")

    @admin.action(description="Run a dispatch cycle now")
    def force_dispatch_cycle(self, request, queryset):
        summary = Dispatcher().run_once()
        self.message_user(
            request,
            "Dispatch cycle: claimed={claimed} succeeded={succeeded} "
            "retried={retried} failed={failed} skipped={skipped}".format(
                **summary.as_dict()
            ),
            level=messages.SUCCESS if not summary.failed else messages.WARNING,
        )


@admin.register(IdempotencyRecord)
class IdempotencyRecordAdmin(admin.ModelAdmin):
    list_display = ("event_id", "topic", "shop_domain", "resource_id", "expires_at")
    list_filter = ("topic",)
    search_fields = ("event_id", "shop_domain", "resource_id")
    ordering = ("-processed_at",)


class OrderLineItemInline(admin.TabularInline):
    model = OrderLineItem
    extra = 0
    raw_id_fields = ("product",)


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "external_order_name",
        "external_order_id",
        "store",
        "status",
        "total_price",
        "payment_method",
        "deleted_at",
        "created_at",
    )
    list_filter = ("status", "payment_method")
    search_fields = ("external_order_id", "external_order_name", "customer_email")
    raw_id_fields = ("store", "customer", "deleted_by")
    readonly_fields = ("platform_data", "created_at", "updated_at")
    inlines = (OrderLineItemInline,)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "sku", "store", "stock", "sync_status", "last_synced_at")
    list_filter = ("sync_status",)
    search_fields = ("name", "sku", "external_product_id", "external_variant_id")
    raw_id_fields = ("store",)


@admin.register(InventoryMovement)
class InventoryMovementAdmin(admin.ModelAdmin):
    list_display = (
        "product",
        "movement_type",
        "quantity_change",
        "stock_before",
        "stock_after",
        "order_reference",
        "created_at",
    )
    list_filter = ("movement_type",)
    search_fields = ("order_reference", "product__name", "product__sku")
    raw_id_fields = ("product", "store", "order")
    date_hierarchy = "created_at"

    def has_change_permission(self, request, obj=None):
        return False
