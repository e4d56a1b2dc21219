"""
API views for payments.

URL structure (mounted at /api/v1/):
    create-payment/                           POST  Create order + vendor collect request
    check-status/{collect_request_id}/        GET   Poll vendor and reconcile
    transactions/                             GET   Paginated transaction list
    transactions/school/{school_id}/          GET   Transactions for one school
    transactions/{custom_order_id}/history/   GET   Full status ledger
    transaction-status/{custom_order_id}/     GET   Order + latest status

Domain errors (core.exceptions.BaseApplicationError) are answered with
``exc.to_dict()`` and the exception's HTTP status.
"""

from __future__ import annotations

import logging

from django.db.models import F
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.permissions import (
    HasTransactionRole,
    ensure_school_access,
    scope_school_ids,
)
from core.exceptions import BaseApplicationError
from core.helpers import calculate_pagination
from payments.adapters import get_vendor_client
from payments.exceptions import OrderNotFoundError
from payments.filters import TransactionFilter
from payments.models import Order
from payments.serializers import (
    CreatePaymentSerializer,
    OrderSerializer,
    OrderStatusSerializer,
    TransactionQuerySerializer,
    TransactionSerializer,
)
from payments.services import OrderStore, PaymentService, StatusLedger

logger = logging.getLogger(__name__)


def error_response(exc: BaseApplicationError) -> Response:
    return Response(exc.to_dict(), status=exc.http_status)


class CreatePaymentView(APIView):
    """
    API view for creating a payment.

    POST: Create the order, open a vendor collect request, return the
    payment URL

    URL: /api/v1/create-payment/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Create payment",
        tags=["Payments"],
        request=CreatePaymentSerializer,
        responses={
            201: OpenApiResponse(description="Order created, collect request opened"),
            400: OpenApiResponse(description="Validation error or duplicate order id"),
            403: OpenApiResponse(description="School access denied"),
            502: OpenApiResponse(description="Vendor unavailable (order kept)"),
        },
    )
    def post(self, request):
        serializer = CreatePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            ensure_school_access(request.user, data["school_id"])
            created = PaymentService(get_vendor_client()).create_payment(
                custom_order_id=data["custom_order_id"],
                school_id=data["school_id"],
                trustee_id=data.get("trustee_id", ""),
                student_info=dict(data["student_info"]),
                amount=data["amount"],
                callback_url=data["callback_url"],
            )
        except BaseApplicationError as e:
            logger.warning(
                "Create payment failed",
                extra={
                    "custom_order_id": data["custom_order_id"],
                    "error_code": e.error_code,
                    "user_id": str(request.user.pk),
                },
            )
            return error_response(e)

        return Response(created.to_dict(), status=status.HTTP_201_CREATED)


class CheckStatusView(APIView):
    """
    API view for polling the vendor about one collect request.

    GET: Fetch the vendor status, merge it into the ledger, return both

    URL: /api/v1/check-status/{collect_request_id}/
    """

    permission_classes = [IsAuthenticated, HasTransactionRole]

    @extend_schema(
        summary="Check payment status with the vendor",
        tags=["Payments"],
        responses={
            200: OpenApiResponse(description="{order, vendor_status, latest_status}"),
            403: OpenApiResponse(description="School access denied"),
            404: OpenApiResponse(description="Unknown collect request id"),
            502: OpenApiResponse(description="Vendor unavailable"),
        },
    )
    def get(self, request, collect_request_id: str):
        try:
            order = OrderStore.find_by_collect_request_id(collect_request_id)
            if order is None:
                raise OrderNotFoundError(
                    "Order not found",
                    details={"collect_request_id": collect_request_id},
                )
            ensure_school_access(request.user, order.school_id)
            polled = PaymentService(get_vendor_client()).poll_order(order)
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            {
                "order": OrderSerializer(polled.order).data,
                "vendor_status": polled.vendor_status,
                "latest_status": OrderStatusSerializer(polled.entry).data,
            }
        )


class TransactionListView(APIView):
    """
    API view for listing transactions.

    GET: Paginated orders with their latest ledger status. Non-admin users
    only see their own school; naming another school is a 403.

    URL: /api/v1/transactions/
    """

    permission_classes = [IsAuthenticated, HasTransactionRole]

    @extend_schema(
        summary="List transactions",
        tags=["Transactions"],
        parameters=[
            OpenApiParameter("page", int, description="Page number (default 1)"),
            OpenApiParameter("limit", int, description="Page size, 1..100 (default 10)"),
            OpenApiParameter("sort", str, enum=["payment_time", "created_at"]),
            OpenApiParameter("order", str, enum=["asc", "desc"]),
            OpenApiParameter("status", str, description="Comma-separated statuses"),
            OpenApiParameter("school_id", str, description="Comma-separated school ids"),
            OpenApiParameter("date_from", str, description="YYYY-MM-DD, inclusive"),
            OpenApiParameter("date_to", str, description="YYYY-MM-DD, inclusive"),
            OpenApiParameter("q", str, description="Search order ids, student, status"),
        ],
        responses={
            200: TransactionSerializer(many=True),
            400: OpenApiResponse(description="Invalid query parameters"),
            403: OpenApiResponse(description="School access denied"),
        },
    )
    def get(self, request, school_id: str | None = None):
        query = TransactionQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        try:
            if school_id is not None:
                ensure_school_access(request.user, school_id)
                school_ids = [school_id]
            else:
                school_ids = scope_school_ids(request.user, params.get("school_id"))
        except BaseApplicationError as e:
            return error_response(e)

        queryset = StatusLedger.annotate_latest(Order.objects.all())
        if school_ids is not None:
            queryset = queryset.filter(school_id__in=school_ids)

        filter_data = request.query_params.copy()
        filter_data.pop("school_id", None)
        filterset = TransactionFilter(filter_data, queryset=queryset)
        if not filterset.is_valid():
            return Response(
                {
                    "error": "Invalid query parameters",
                    "error_code": "VALIDATION_ERROR",
                    "details": filterset.errors,
                },
                status=status.HTTP_400_BAD_REQUEST,
            )
        queryset = filterset.qs.order_by(*self._ordering(params["sort"], params["order"]))

        total = queryset.count()
        pagination = calculate_pagination(total, params["page"], params["limit"])
        offset = pagination["offset"]
        orders = list(queryset[offset : offset + pagination["per_page"]])
        latest_entries = StatusLedger.latest_for_orders(order.id for order in orders)

        return Response(
            {
                "results": TransactionSerializer(
                    orders, many=True, context={"latest_entries": latest_entries}
                ).data,
                "count": total,
                "page": pagination["page"],
                "limit": pagination["per_page"],
                "pages": pagination["total_pages"],
            }
        )

    @staticmethod
    def _ordering(sort: str, direction: str) -> list:
        if sort == "payment_time":
            field = F("latest_payment_time")
            primary = field.asc(nulls_last=True) if direction == "asc" else field.desc(nulls_last=True)
        else:
            primary = F("created_at").asc() if direction == "asc" else F("created_at").desc()
        return [primary, "-created_at", "id"]


class SchoolTransactionListView(TransactionListView):
    """
    API view for one school's transactions.

    URL: /api/v1/transactions/school/{school_id}/
    """

    @extend_schema(summary="List transactions for a school", tags=["Transactions"])
    def get(self, request, school_id: str):
        return super().get(request, school_id=school_id)


class TransactionStatusView(APIView):
    """
    API view for one order's current status.

    GET: Order, latest ledger entry and a best-effort vendor poll. Vendor
    failures are reported inline and never fail the request.

    URL: /api/v1/transaction-status/{custom_order_id}/
    """

    permission_classes = [IsAuthenticated, HasTransactionRole]

    @extend_schema(
        summary="Transaction status",
        tags=["Transactions"],
        responses={
            200: OpenApiResponse(description="{order, latest_status, vendor}"),
            403: OpenApiResponse(description="School access denied"),
            404: OpenApiResponse(description="Unknown custom order id"),
        },
    )
    def get(self, request, custom_order_id: str):
        try:
            order = get_order_for_user(request.user, custom_order_id)
        except BaseApplicationError as e:
            return error_response(e)

        vendor = None
        if order.collect_request_id and not order.is_terminal:
            vendor = self._poll(order)

        latest = StatusLedger.find_latest(order.id)
        order.refresh_from_db()
        return Response(
            {
                "order": OrderSerializer(order).data,
                "latest_status": OrderStatusSerializer(latest).data if latest else None,
                "vendor": vendor,
            }
        )

    @staticmethod
    def _poll(order: Order) -> dict:
        try:
            polled = PaymentService(get_vendor_client()).poll_order(order)
        except BaseApplicationError as e:
            logger.warning(
                "Vendor poll failed during status lookup",
                extra={"order_id": str(order.id), "error_code": e.error_code},
            )
            return {"success": False, "error": e.to_dict()}
        return {"success": True, "status": polled.vendor_status}


class TransactionHistoryView(APIView):
    """
    API view for an order's full status ledger.

    URL: /api/v1/transactions/{custom_order_id}/history/
    """

    permission_classes = [IsAuthenticated, HasTransactionRole]

    @extend_schema(
        summary="Transaction history",
        tags=["Transactions"],
        responses={
            200: OpenApiResponse(description="{order, history}"),
            403: OpenApiResponse(description="School access denied"),
            404: OpenApiResponse(description="Unknown custom order id"),
        },
    )
    def get(self, request, custom_order_id: str):
        try:
            order = get_order_for_user(request.user, custom_order_id)
        except BaseApplicationError as e:
            return error_response(e)

        history = StatusLedger.find_all(order.id)
        return Response(
            {
                "order": OrderSerializer(order).data,
                "history": OrderStatusSerializer(history, many=True).data,
            }
        )


def get_order_for_user(user, custom_order_id: str) -> Order:
    """
    Raises:
        OrderNotFoundError: No such order
        PermissionDeniedError: Order belongs to another school
    """
    order = OrderStore.find_by_custom_order_id(custom_order_id)
    if order is None:
        raise OrderNotFoundError(
            "Order not found", details={"custom_order_id": custom_order_id}
        )
    ensure_school_access(user, order.school_id)
    return order
