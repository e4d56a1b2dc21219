"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration.

PaymentStatus (orders and ledger entries):
    created → pending → completed | failed | cancelled | refunded
    Terminal statuses never move back to a non-terminal one.

WebhookDeliveryStatus (django-fsm on WebhookDelivery):
    queued → processed
    queued → failed → queued (bounded replay)
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    Closed set of payment statuses shared by Order and OrderStatus.

    Terminal: COMPLETED, FAILED, CANCELLED, REFUNDED
    Non-terminal: CREATED, PENDING
    """

    CREATED = "created", "Created"
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    CANCELLED = "cancelled", "Cancelled"
    REFUNDED = "refunded", "Refunded"


TERMINAL_STATUSES = frozenset(
    {
        PaymentStatus.COMPLETED,
        PaymentStatus.FAILED,
        PaymentStatus.CANCELLED,
        PaymentStatus.REFUNDED,
    }
)


class WebhookDeliveryStatus(models.TextChoices):
    """
    Processing states for inbound webhook deliveries.

    QUEUED: Recorded, not yet (re)processed
    PROCESSED: Observation applied to the ledger
    FAILED: Parse, resolution or apply step failed; eligible for replay
    """

    QUEUED = "queued", "Queued"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


__all__ = [
    "PaymentStatus",
    "TERMINAL_STATUSES",
    "WebhookDeliveryStatus",
]
