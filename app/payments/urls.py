"""
URL configuration for the payments app.

Routes (prefixed with /api/v1/ in the main URLconf):
    - POST create-payment/
    - GET  check-status/{collect_request_id}/
    - GET  transactions/
    - GET  transactions/school/{school_id}/
    - GET  transactions/{custom_order_id}/history/
    - GET  transaction-status/{custom_order_id}/
    - POST webhook/

Usage:
    # In config/urls.py
    api_v1_patterns = [
        path("", include("payments.urls")),
    ]
"""

from django.urls import path

from payments.views import (
    CheckStatusView,
    CreatePaymentView,
    SchoolTransactionListView,
    TransactionHistoryView,
    TransactionListView,
    TransactionStatusView,
)
from payments.webhooks.views import VendorWebhookView

app_name = "payments"

urlpatterns = [
    path("create-payment/", CreatePaymentView.as_view(), name="create-payment"),
    path(
        "check-status/<str:collect_request_id>/",
        CheckStatusView.as_view(),
        name="check-status",
    ),
    path("transactions/", TransactionListView.as_view(), name="transactions"),
    path(
        "transactions/school/<str:school_id>/",
        SchoolTransactionListView.as_view(),
        name="school-transactions",
    ),
    path(
        "transactions/<str:custom_order_id>/history/",
        TransactionHistoryView.as_view(),
        name="transaction-history",
    ),
    path(
        "transaction-status/<str:custom_order_id>/",
        TransactionStatusView.as_view(),
        name="transaction-status",
    ),
    # Webhook endpoints
    path("webhook/", VendorWebhookView.as_view(), name="vendor-webhook"),
]
