"""
State machine enums for payment models.
"""

from payments.state_machines.states import (
    TERMINAL_STATUSES,
    PaymentStatus,
    WebhookDeliveryStatus,
)

__all__ = [
    "PaymentStatus",
    "TERMINAL_STATUSES",
    "WebhookDeliveryStatus",
]
