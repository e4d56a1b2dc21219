"""
DRF serializers for the payments app.

This module provides serializers for:
- Create-payment requests
- Order and ledger entry projections
- Transaction listings (order + latest ledger entry)
- Listing query parameters

Related files:
    - models/: Order, OrderStatus
    - views.py: Payment API views

Usage:
    serializer = CreatePaymentSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    TransactionSerializer(
        orders, many=True, context={"latest_entries": latest_by_order_id}
    ).data
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from payments.models import Order, OrderStatus
from payments.state_machines import PaymentStatus

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 10


class StudentInfoSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    id = serializers.CharField(max_length=100)
    email = serializers.EmailField()


class CreatePaymentSerializer(serializers.Serializer):
    """
    Validate a create-payment request.

    Fields:
        custom_order_id: Client-chosen unique order reference
        school_id: School the payment is for
        trustee_id: Optional trustee (school group)
        student_info: {name, id, email}
        amount: Positive amount, two decimal places
        callback_url: Where the vendor sends the payer afterwards
    """

    custom_order_id = serializers.CharField(max_length=100)
    school_id = serializers.CharField(max_length=100)
    trustee_id = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    student_info = StudentInfoSerializer()
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0.01")
    )
    callback_url = serializers.URLField(max_length=500)

    def validate_custom_order_id(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("This field may not be blank.")
        return value


class OrderSerializer(serializers.ModelSerializer):
    class Meta:
        model = Order
        fields = [
            "id",
            "custom_order_id",
            "school_id",
            "trustee_id",
            "gateway_name",
            "collect_request_id",
            "amount",
            "status",
            "student_info",
            "callback_url",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderStatusSerializer(serializers.ModelSerializer):
    """Ledger entry projection, including the raw vendor payload."""

    class Meta:
        model = OrderStatus
        fields = [
            "id",
            "order_amount",
            "transaction_amount",
            "status",
            "payment_mode",
            "payment_details",
            "bank_reference",
            "payment_message",
            "error_message",
            "gateway",
            "transaction_id",
            "payment_time",
            "vendor_payload",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class TransactionSerializer(serializers.ModelSerializer):
    """
    One order with its latest ledger entry flattened in.

    Expects ``context["latest_entries"]``: {order_id: OrderStatus}, as built
    by StatusLedger.latest_for_orders(). Orders without an entry report
    their cached status.
    """

    collect_id = serializers.UUIDField(source="id", read_only=True)
    order_amount = serializers.SerializerMethodField()
    transaction_amount = serializers.SerializerMethodField()
    status = serializers.SerializerMethodField()
    payment_mode = serializers.SerializerMethodField()
    transaction_id = serializers.SerializerMethodField()
    payment_time = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "collect_id",
            "custom_order_id",
            "collect_request_id",
            "school_id",
            "trustee_id",
            "gateway_name",
            "student_info",
            "order_amount",
            "transaction_amount",
            "status",
            "payment_mode",
            "transaction_id",
            "payment_time",
            "created_at",
        ]
        read_only_fields = fields

    def _latest(self, order: Order) -> OrderStatus | None:
        return self.context.get("latest_entries", {}).get(order.id)

    def get_order_amount(self, order: Order) -> str:
        latest = self._latest(order)
        amount = latest.order_amount if latest else order.amount
        return f"{amount:.2f}"

    def get_transaction_amount(self, order: Order) -> str | None:
        latest = self._latest(order)
        if latest is None or latest.transaction_amount is None:
            return None
        return f"{latest.transaction_amount:.2f}"

    def get_status(self, order: Order) -> str:
        latest = self._latest(order)
        return latest.status if latest else order.status

    def get_payment_mode(self, order: Order) -> str:
        latest = self._latest(order)
        return latest.payment_mode if latest else ""

    def get_transaction_id(self, order: Order) -> str | None:
        latest = self._latest(order)
        return latest.transaction_id if latest else None

    def get_payment_time(self, order: Order) -> str | None:
        latest = self._latest(order)
        if latest is None or latest.payment_time is None:
            return None
        return serializers.DateTimeField().to_representation(latest.payment_time)


class TransactionQuerySerializer(serializers.Serializer):
    """
    Validate pagination and sorting parameters of the transaction listings.

    Filtering parameters (status, school_id, date_from, date_to, q) are
    handled by payments.filters.TransactionFilter; status values are
    checked here so that an unknown status is a 400, not an empty page.
    """

    SORT_CHOICES = ("payment_time", "created_at")
    ORDER_CHOICES = ("asc", "desc")

    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(
        min_value=1, max_value=MAX_PAGE_SIZE, default=DEFAULT_PAGE_SIZE
    )
    sort = serializers.ChoiceField(choices=SORT_CHOICES, default="created_at")
    order = serializers.ChoiceField(choices=ORDER_CHOICES, default="desc")
    status = serializers.CharField(required=False, allow_blank=True)
    school_id = serializers.CharField(required=False, allow_blank=True)

    def validate_status(self, value):
        statuses = split_csv(value)
        unknown = [s for s in statuses if s not in PaymentStatus.values]
        if unknown:
            raise serializers.ValidationError(
                f"Unknown status value(s): {', '.join(unknown)}"
            )
        return statuses

    def validate_school_id(self, value):
        return split_csv(value)


def split_csv(value: str | None) -> list[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]
