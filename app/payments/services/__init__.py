"""
Payment services for orders, the status ledger and vendor flows.

This module provides:
- OrderStore: Creation and lookup of orders
- StatusLedger: Merge primitive and history queries over OrderStatus
- PaymentService: Create and poll flows through an injected vendor client
- Reconciliation policy: map_vendor_status / decide

Usage:
    from payments.adapters import get_vendor_client
    from payments.services import OrderStore, PaymentService, StatusLedger

    order = OrderStore.find_by_custom_order_id("ORD-1")
    latest = StatusLedger.find_latest(order.id)

    PaymentService(get_vendor_client()).poll_order(order)
"""

from payments.services.order_store import OrderStore
from payments.services.payment_service import (
    CreatedPayment,
    PaymentService,
    PollResult,
)
from payments.services.reconciliation import (
    MergeAction,
    MergeDecision,
    decide,
    is_terminal,
    map_vendor_status,
)
from payments.services.status_ledger import StatusLedger, UpsertAction, UpsertOutcome
from payments.services.types import StatusObservation

__all__ = [
    "CreatedPayment",
    "MergeAction",
    "MergeDecision",
    "OrderStore",
    "PaymentService",
    "PollResult",
    "StatusLedger",
    "StatusObservation",
    "UpsertAction",
    "UpsertOutcome",
    "decide",
    "is_terminal",
    "map_vendor_status",
]
