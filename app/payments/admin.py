"""
Payment admin configuration.

Registers orders, their status ledger and webhook deliveries with the
Django admin. Orders and ledger entries are an audit trail: nothing can be
deleted, and ledger entries are read-only.
"""

from django.contrib import admin, messages
from django.utils.html import format_html_join
from django_fsm import can_proceed

from payments.models import Order, OrderStatus, WebhookDelivery
from payments.services import StatusLedger
from payments.webhooks.ingestor import WebhookIngestor

__all__ = [
    "OrderAdmin",
    "OrderStatusAdmin",
    "WebhookDeliveryAdmin",
]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin configuration for Order.

    The ledger is shown through a computed field; OrderStatus has no
    reverse relation to inline.
    """

    list_display = [
        "custom_order_id",
        "school_id",
        "amount",
        "status",
        "collect_request_id",
        "created_at",
    ]
    list_filter = ["status", "gateway_name", "created_at"]
    search_fields = ["id", "custom_order_id", "collect_request_id", "school_id"]
    readonly_fields = [
        "id",
        "status",
        "collect_request_id",
        "vendor_response",
        "ledger",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "custom_order_id", "school_id", "trustee_id"),
            },
        ),
        (
            "Payment",
            {
                "fields": ("amount", "gateway_name", "callback_url", "student_info"),
            },
        ),
        (
            "Vendor",
            {
                "fields": ("collect_request_id", "vendor_response"),
                "classes": ("collapse",),
            },
        ),
        (
            "Status",
            {
                "fields": ("status", "ledger"),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    @admin.display(description="Ledger")
    def ledger(self, obj: Order) -> str:
        entries = StatusLedger.find_all(obj.id) if obj.pk else []
        rows = format_html_join(
            "\n",
            "<li>{} &middot; {} &middot; txn {} &middot; {}</li>",
            (
                (
                    entry.status,
                    entry.transaction_amount if entry.transaction_amount is not None else "-",
                    entry.transaction_id or "-",
                    entry.payment_time or entry.created_at,
                )
                for entry in entries
            ),
        )
        return rows or "-"

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for orders (audit trail)."""
        return False


@admin.register(OrderStatus)
class OrderStatusAdmin(admin.ModelAdmin):
    """
    Admin configuration for OrderStatus.

    Entries are written by the status ledger only.
    """

    list_display = [
        "id",
        "order",
        "status",
        "transaction_id",
        "transaction_amount",
        "payment_time",
        "created_at",
    ]
    list_filter = ["status", "gateway", "created_at"]
    search_fields = ["order__custom_order_id", "transaction_id", "bank_reference"]
    list_select_related = ["order"]
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(WebhookDelivery)
class WebhookDeliveryAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookDelivery.

    Failed deliveries can be requeued and replayed in place; the FSM
    refuses deliveries with an invalid signature or at the retry ceiling.
    """

    list_display = [
        "id",
        "custom_order_id",
        "collect_request_id",
        "processing_status",
        "signature_valid",
        "retries",
        "received_at",
    ]
    list_filter = ["processing_status", "signature_valid", "received_at"]
    search_fields = ["id", "custom_order_id", "collect_request_id", "transaction_id"]
    readonly_fields = [
        field.name for field in WebhookDelivery._meta.fields
    ]
    ordering = ["-received_at"]
    actions = ["requeue_and_replay"]

    @admin.action(description="Requeue and replay selected deliveries")
    def requeue_and_replay(self, request, queryset):
        replayed = skipped = failed = 0
        for delivery in queryset:
            if not can_proceed(delivery.requeue):
                skipped += 1
                continue
            delivery.requeue()
            delivery.save()
            if WebhookIngestor.replay(delivery).success:
                replayed += 1
            else:
                failed += 1

        self.message_user(
            request,
            f"Replayed {replayed}, failed again {failed}, skipped {skipped}.",
            messages.SUCCESS if not failed else messages.WARNING,
        )

    def has_add_permission(self, request) -> bool:
        return False
