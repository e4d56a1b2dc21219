"""
Order store: creation and lookup of Order records.

Orders are created once, never deleted, and afterwards only receive the
vendor reference and status-cache updates. Lookups return None for misses;
callers decide whether absence is an error.

Usage:
    from payments.services.order_store import OrderStore

    order = OrderStore.create_order(
        custom_order_id="ORD-1",
        school_id="SCH001",
        student_info={"name": "Asha", "id": "STU-9", "email": "asha@example.com"},
        amount="1500.00",
        callback_url="https://school.example/return",
    )
    OrderStore.find_by_custom_order_id("ORD-1")
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import URLValidator, validate_email
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from core.exceptions import ValidationError
from core.services import BaseService
from payments.exceptions import DuplicateOrderError
from payments.models import Order
from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    from typing import Any
    from uuid import UUID


logger = logging.getLogger(__name__)

REQUIRED_STUDENT_FIELDS = ("name", "id", "email")


class OrderStore(BaseService):
    """
    Persistence operations for Order.

    Validation here mirrors the request serializer so that non-HTTP
    callers (tasks, shell) get the same guarantees.
    """

    @classmethod
    def create_order(
        cls,
        *,
        custom_order_id: str,
        school_id: str,
        student_info: dict[str, Any],
        amount: Decimal | str | int | float,
        callback_url: str,
        trustee_id: str = "",
        gateway_name: str | None = None,
        status: str = PaymentStatus.CREATED,
    ) -> Order:
        """
        Validate and persist a new order.

        Raises:
            ValidationError: A required field is missing or malformed
            DuplicateOrderError: custom_order_id is already taken
        """
        amount = cls._validate(
            custom_order_id=custom_order_id,
            school_id=school_id,
            student_info=student_info,
            amount=amount,
            callback_url=callback_url,
        )

        if Order.objects.filter(custom_order_id=custom_order_id).exists():
            raise DuplicateOrderError(
                "Order with this custom_order_id already exists",
                details={"custom_order_id": custom_order_id},
            )

        try:
            with transaction.atomic():
                order = Order.objects.create(
                    custom_order_id=custom_order_id,
                    school_id=school_id,
                    trustee_id=trustee_id or "",
                    student_info={
                        key: student_info[key] for key in REQUIRED_STUDENT_FIELDS
                    },
                    amount=amount,
                    callback_url=callback_url,
                    gateway_name=gateway_name or settings.VENDOR_GATEWAY_NAME,
                    status=status,
                )
        except IntegrityError as e:
            # Lost a race with a concurrent create of the same custom_order_id
            raise DuplicateOrderError(
                "Order with this custom_order_id already exists",
                details={"custom_order_id": custom_order_id},
            ) from e

        logger.info(
            "Order created",
            extra={
                "order_id": str(order.id),
                "custom_order_id": custom_order_id,
                "school_id": school_id,
                "amount": str(amount),
            },
        )
        return order

    @classmethod
    def find_by_id(cls, order_id: UUID | str) -> Order | None:
        try:
            return Order.objects.get(pk=order_id)
        except (Order.DoesNotExist, DjangoValidationError, ValueError):
            return None

    @classmethod
    def find_by_custom_order_id(cls, custom_order_id: str) -> Order | None:
        if not custom_order_id:
            return None
        return Order.objects.filter(custom_order_id=custom_order_id).first()

    @classmethod
    def find_by_collect_request_id(cls, collect_request_id: str) -> Order | None:
        if not collect_request_id:
            return None
        return Order.objects.filter(collect_request_id=collect_request_id).first()

    @classmethod
    def attach_vendor_reference(
        cls, order: Order, collect_request_id: str, vendor_response: dict[str, Any]
    ) -> Order:
        """Store the vendor's collect request id once it has accepted the order."""
        order.collect_request_id = collect_request_id
        order.vendor_response = vendor_response
        order.save(update_fields=["collect_request_id", "vendor_response", "updated_at"])
        return order

    @classmethod
    def update_cached_status(cls, order_id: UUID | str, status: str) -> bool:
        """
        Best-effort update of the order's status cache.

        Never raises: a failure is logged and reported as False so that the
        reconciliation flow that triggered it carries on.
        """
        try:
            updated = Order.objects.filter(pk=order_id).update(
                status=status, updated_at=timezone.now()
            )
        except DatabaseError:
            logger.exception(
                "Failed to update cached order status",
                extra={"order_id": str(order_id), "status": status},
            )
            return False
        return updated > 0

    # ==========================================================================
    # Validation
    # ==========================================================================

    @classmethod
    def _validate(
        cls,
        *,
        custom_order_id: str,
        school_id: str,
        student_info: dict[str, Any],
        amount: Any,
        callback_url: str,
    ) -> Decimal:
        errors: dict[str, list[str]] = {}

        if not custom_order_id or not str(custom_order_id).strip():
            errors.setdefault("custom_order_id", []).append("This field is required.")
        if not school_id or not str(school_id).strip():
            errors.setdefault("school_id", []).append("This field is required.")

        if not isinstance(student_info, dict):
            errors.setdefault("student_info", []).append("Must be an object.")
        else:
            for key in REQUIRED_STUDENT_FIELDS:
                if not student_info.get(key):
                    errors.setdefault(f"student_info.{key}", []).append(
                        "This field is required."
                    )
            if student_info.get("email"):
                try:
                    validate_email(student_info["email"])
                except DjangoValidationError:
                    errors.setdefault("student_info.email", []).append(
                        "Enter a valid email address."
                    )

        parsed_amount = None
        try:
            parsed_amount = Decimal(str(amount))
            if parsed_amount.is_finite():
                parsed_amount = parsed_amount.quantize(Decimal("0.01"))
        except (InvalidOperation, TypeError, ValueError):
            errors.setdefault("amount", []).append("A valid number is required.")
        if parsed_amount is not None and (
            not parsed_amount.is_finite() or parsed_amount <= 0
        ):
            errors.setdefault("amount", []).append("Amount must be greater than zero.")

        try:
            URLValidator(schemes=["http", "https"])(callback_url or "")
        except DjangoValidationError:
            errors.setdefault("callback_url", []).append("Enter a valid URL.")

        if errors:
            raise ValidationError("Order validation failed", details=errors)

        return parsed_amount
