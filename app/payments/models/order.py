"""
Order model: the immutable identity of one payment request.

An Order is created exactly once when a payment request is accepted and is
never deleted. After creation only three fields change:
    - status: convenience cache of the ledger's latest status
    - collect_request_id / vendor_response: filled in once the vendor
      has accepted the collect request

Status history lives in OrderStatus and is queried through
payments.services.status_ledger.StatusLedger, not through a relation on
this model.

Usage:
    from payments.models import Order

    order = Order.objects.create(
        custom_order_id="ORD-2024-0001",
        school_id="SCH001",
        student_info={"name": "Asha", "id": "STU-9", "email": "asha@example.com"},
        amount=Decimal("1500.00"),
        callback_url="https://school.example/payments/return",
    )
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import TERMINAL_STATUSES, PaymentStatus


class Order(UUIDPrimaryKeyMixin, BaseModel):
    """
    A payment request for one student at one school.

    Fields:
        custom_order_id: Client-facing unique order reference
        school_id / trustee_id: Tenant scope (authorization only)
        student_info: {name, id, email} payee payload
        gateway_name: Payment rail used for this order
        collect_request_id: Vendor's reference for the collect request
        amount: Amount requested, echoed to the vendor
        callback_url: Where the vendor redirects the payer
        status: Cached latest ledger status (not authoritative)
        vendor_response: Snapshot of the vendor's create response
    """

    # ==========================================================================
    # Identity
    # ==========================================================================

    custom_order_id = models.CharField(
        max_length=100,
        unique=True,
        help_text="Externally visible order identifier (unique)",
    )

    # ==========================================================================
    # Tenant Scope
    # ==========================================================================

    school_id = models.CharField(
        max_length=100,
        db_index=True,
        help_text="School that owns this order",
    )

    trustee_id = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Trustee (school group) identifier, optional",
    )

    # ==========================================================================
    # Payee & Payment Inputs
    # ==========================================================================

    student_info = models.JSONField(
        default=dict,
        help_text="Student payload: {name, id, email}",
    )

    gateway_name = models.CharField(
        max_length=50,
        default="edviron",
        help_text="Payment gateway used",
    )

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
        help_text="Requested amount",
    )

    callback_url = models.URLField(
        max_length=500,
        help_text="Return URL passed to the vendor",
    )

    # ==========================================================================
    # Vendor Reference
    # ==========================================================================

    collect_request_id = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        db_index=True,
        help_text="Vendor collect request ID",
    )

    vendor_response = models.JSONField(
        default=dict,
        blank=True,
        help_text="Vendor response to the create collect request call",
    )

    # ==========================================================================
    # Status Cache
    # ==========================================================================

    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.CREATED,
        db_index=True,
        help_text="Latest known status (mirrors the ledger, not authoritative)",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Order"
        verbose_name_plural = "Orders"
        indexes = [
            models.Index(fields=["school_id", "created_at"], name="order_school_created_idx"),
            models.Index(fields=["school_id", "status"], name="order_school_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="order_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Order({self.custom_order_id}, {self.school_id}, {self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
