"""
Payment flows that talk to the vendor: create and poll.

PaymentService takes its vendor client in the constructor; views and tasks
build one with ``get_vendor_client()`` per request / run.

Create flow:
    1. OrderStore.create_order (status pending)
    2. Placeholder ledger entry (pending, no transaction_id)
    3. Vendor create collect request
    4. Attach collect_request_id / vendor response to the order

    A vendor failure in step 3 is raised as VendorError; the order and its
    placeholder entry are kept so the request can be reconciled or retried.

Poll flow:
    Vendor status check -> map_vendor_status -> StatusLedger.upsert_status

Usage:
    from payments.adapters import get_vendor_client
    from payments.services import PaymentService

    service = PaymentService(get_vendor_client())
    created = service.create_payment(
        custom_order_id="ORD-1",
        school_id="SCH001",
        student_info={"name": "Asha", "id": "STU-9", "email": "asha@example.com"},
        amount=Decimal("1500.00"),
        callback_url="https://school.example/return",
    )
    polled = service.poll_order(order)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone

from core.services import BaseService
from payments.exceptions import VendorError
from payments.models import Order
from payments.services.order_store import OrderStore
from payments.services.reconciliation import is_terminal, map_vendor_status
from payments.services.status_ledger import StatusLedger
from payments.services.types import StatusObservation, parse_amount
from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    from decimal import Decimal
    from typing import Any

    from payments.adapters import VendorGatewayClient
    from payments.models import OrderStatus


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreatedPayment:
    order: Order
    collect_request_id: str
    collect_request_url: str
    payment_url: str
    sign: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "order_id": str(self.order.id),
            "custom_order_id": self.order.custom_order_id,
            "collect_request_id": self.collect_request_id,
            "collect_request_url": self.collect_request_url,
            "payment_url": self.payment_url,
            "sign": self.sign,
        }


@dataclass(frozen=True)
class PollResult:
    """
    Outcome of polling the vendor for one order.

    Attributes:
        order: The polled order
        vendor_status: Raw status string the vendor reported
        entry: Ledger entry after the merge
    """

    order: Order
    vendor_status: str | None
    entry: OrderStatus


class PaymentService(BaseService):
    """Create and poll payments through an injected vendor client."""

    def __init__(self, vendor_client: VendorGatewayClient):
        self.vendor_client = vendor_client

    def create_payment(
        self,
        *,
        custom_order_id: str,
        school_id: str,
        student_info: dict[str, Any],
        amount: Decimal,
        callback_url: str,
        trustee_id: str = "",
    ) -> CreatedPayment:
        """
        Create an order and open a vendor collect request for it.

        Raises:
            ValidationError: Invalid order input
            DuplicateOrderError: custom_order_id already used
            VendorError: Vendor rejected or could not be reached (order kept)
        """
        order = OrderStore.create_order(
            custom_order_id=custom_order_id,
            school_id=school_id,
            trustee_id=trustee_id,
            student_info=student_info,
            amount=amount,
            callback_url=callback_url,
            status=PaymentStatus.PENDING,
        )
        StatusLedger.upsert_status(
            order.id,
            StatusObservation(
                status=PaymentStatus.PENDING,
                order_amount=order.amount,
                gateway=order.gateway_name,
            ),
        )

        result = self.vendor_client.create_collect_request(
            school_id=order.school_id,
            amount=order.amount,
            callback_url=order.callback_url,
        )
        if not result.success:
            logger.error(
                "Vendor rejected collect request; order kept",
                extra={
                    "order_id": str(order.id),
                    "custom_order_id": order.custom_order_id,
                    "code": result.error_code,
                    "vendor_status_code": result.status_code,
                },
            )
            raise result.to_exception()

        data = result.data
        OrderStore.attach_vendor_reference(order, data["collect_request_id"], data)

        logger.info(
            "Payment created",
            extra={
                "order_id": str(order.id),
                "custom_order_id": order.custom_order_id,
                "collect_request_id": data["collect_request_id"],
            },
        )
        return CreatedPayment(
            order=order,
            collect_request_id=data["collect_request_id"],
            collect_request_url=data["collect_request_url"],
            payment_url=data["payment_url"],
            sign=data["sign"],
        )

    def poll_order(self, order: Order) -> PollResult:
        """
        Ask the vendor for the order's status and merge it into the ledger.

        Raises:
            VendorError: Order has no collect request yet, or the vendor
                call failed
        """
        if not order.collect_request_id:
            raise VendorError(
                "Order has no vendor collect request",
                error_code="NO_COLLECT_REQUEST",
                details={"custom_order_id": order.custom_order_id},
                status_code=409,
            )

        result = self.vendor_client.check_status(order.collect_request_id, order.school_id)
        if not result.success:
            raise result.to_exception()

        vendor_status = result.data.get("status")
        outcome = StatusLedger.upsert_status(
            order.id, self._observation_from_poll(result.data, order)
        )

        logger.info(
            "Order polled",
            extra={
                "order_id": str(order.id),
                "collect_request_id": order.collect_request_id,
                "vendor_status": vendor_status,
                "status": outcome.entry.status,
            },
        )
        order.status = outcome.entry.status
        return PollResult(order=order, vendor_status=vendor_status, entry=outcome.entry)

    def reconcile_pending_orders(self, window_hours: int | None = None) -> dict[str, int]:
        """
        Poll every recent non-terminal order that has a collect request.

        Vendor failures are counted and logged per order; one bad order
        never stops the sweep.

        Returns:
            {"polled", "updated", "failed"} counts
        """
        window_hours = window_hours or settings.RECONCILIATION_POLL_WINDOW_HOURS
        since = timezone.now() - timedelta(hours=window_hours)
        orders = Order.objects.filter(
            created_at__gte=since,
            collect_request_id__isnull=False,
            status__in=[PaymentStatus.CREATED, PaymentStatus.PENDING],
        ).exclude(collect_request_id="")

        counts = {"polled": 0, "updated": 0, "failed": 0}
        for order in orders.iterator():
            counts["polled"] += 1
            try:
                polled = self.poll_order(order)
            except VendorError as e:
                counts["failed"] += 1
                logger.warning(
                    "Polling order failed",
                    extra={
                        "order_id": str(order.id),
                        "error_code": e.error_code,
                        "reason": e.message,
                    },
                )
                continue
            if is_terminal(polled.entry.status):
                counts["updated"] += 1

        logger.info("Pending order sweep finished", extra=counts)
        return counts

    @staticmethod
    def _observation_from_poll(data: dict[str, Any], order: Order) -> StatusObservation:
        raw_status = data.get("status")
        status = map_vendor_status(raw_status)
        details = data.get("details") if isinstance(data.get("details"), dict) else {}

        try:
            amount = parse_amount(data.get("amount"))
        except ValueError:
            logger.warning(
                "Ignoring unparseable vendor amount",
                extra={"order_id": str(order.id), "amount": str(data.get("amount"))},
            )
            amount = None

        payment_mode = details.get("payment_mode") or details.get("payment_methods")
        return StatusObservation(
            status=status,
            transaction_amount=amount or order.amount,
            payment_mode=str(payment_mode)[:50] if isinstance(payment_mode, str) else None,
            bank_reference=str(details["bank_ref"])[:100] if details.get("bank_ref") else None,
            payment_message=f"Payment {raw_status}" if raw_status else None,
            raw=data.get("raw") or {},
        )
