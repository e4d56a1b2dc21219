"""
Payment domain models.

- Order: Immutable identity of a payment request (plus status cache)
- OrderStatus: Status ledger entry, merged by transaction_id
- WebhookDelivery: Audit record of every inbound vendor webhook
"""

from payments.models.order import Order
from payments.models.order_status import OrderStatus
from payments.models.webhook_delivery import WebhookDelivery

__all__ = [
    "Order",
    "OrderStatus",
    "WebhookDelivery",
]
