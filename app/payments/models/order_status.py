"""
OrderStatus model: one observation of an order's payment state.

Entries are appended or merged by the status ledger. ``transaction_id`` is
the merge key: at most one entry exists per (order, transaction_id). The
placeholder entry written at order creation has no transaction_id and is
reused by the first observation that carries one.

The foreign key has no reverse accessor on Order on purpose; use
StatusLedger.find_all()/find_latest() to read history.
"""

from __future__ import annotations

from django.db import models

from core.models import BaseModel
from payments.state_machines import TERMINAL_STATUSES, PaymentStatus


class OrderStatus(BaseModel):
    """
    A ledger entry for an Order.

    Fields:
        order: Owning order (aggregate root)
        order_amount: Amount expected
        transaction_amount: Amount actually settled (may be 0 on failure)
        status: Closed PaymentStatus value
        payment_mode, payment_details, bank_reference, payment_message,
        error_message, gateway: Vendor-sourced descriptive metadata
        transaction_id: Vendor transaction reference, merge key when present
        payment_time: Settlement / confirmation time reported by the vendor
        vendor_payload: Raw observation snapshot for audit and replay
    """

    order = models.ForeignKey(
        "payments.Order",
        on_delete=models.PROTECT,
        related_name="+",
        help_text="Order this observation belongs to",
    )

    # ==========================================================================
    # Amounts & Status
    # ==========================================================================

    order_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Expected amount",
    )

    transaction_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        help_text="Settled amount, if reported",
    )

    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True,
    )

    # ==========================================================================
    # Vendor Metadata
    # ==========================================================================

    payment_mode = models.CharField(max_length=50, blank=True, default="")
    payment_details = models.CharField(max_length=255, blank=True, default="")
    bank_reference = models.CharField(max_length=100, blank=True, default="")
    payment_message = models.TextField(blank=True, default="")
    error_message = models.TextField(blank=True, default="")
    gateway = models.CharField(max_length=50, blank=True, default="")

    transaction_id = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        db_index=True,
        help_text="Vendor transaction ID (merge key)",
    )

    payment_time = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When settlement occurred or was last confirmed",
    )

    vendor_payload = models.JSONField(
        default=dict,
        blank=True,
        help_text="Raw observation as received",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Order Status"
        verbose_name_plural = "Order Statuses"
        db_table = "payments_order_status"
        indexes = [
            models.Index(fields=["order", "payment_time"], name="order_status_order_time_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "transaction_id"],
                condition=models.Q(transaction_id__isnull=False),
                name="order_status_unique_transaction",
            ),
        ]

    def __str__(self) -> str:
        return (
            f"OrderStatus({self.order_id}, {self.status}, "
            f"txn={self.transaction_id or '-'})"
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
