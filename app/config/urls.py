"""
URL configuration for the payments service.

URL Structure:
    /                                          - ReDoc API documentation
    /admin/                                    - Django admin interface
    /health/                                   - Health check endpoint
    /schema/                                   - OpenAPI schema (YAML)
    /webhook                                   - Vendor webhook (legacy path)
    /api/v1/auth/                              - Authentication endpoints
        register/                              - Create account
        login/                                 - Email/password login (JWT pair)
        token/refresh/                         - Refresh access token
        logout/                                - Blacklist refresh token
        profile/                               - Current user
    /api/v1/                                   - Payment endpoints
        create-payment/                        - Create order + vendor collect request
        check-status/{collect_request_id}/     - Poll vendor and reconcile
        transactions/                          - Paginated transaction list
        transactions/school/{school_id}/       - Transactions for one school
        transactions/{custom_order_id}/history/ - Full status ledger
        transaction-status/{custom_order_id}/  - Order + latest status
        webhook/                               - Vendor webhook (POST)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check
from payments.webhooks.views import VendorWebhookView

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("auth/", include("authentication.urls")),
    path("", include("payments.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # Vendor dashboards are configured with the bare path
    path("webhook", VendorWebhookView.as_view(), name="vendor-webhook-legacy"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "School Payments Admin"
admin.site.site_title = "School Payments"
admin.site.index_title = "Orders, ledger and webhook deliveries"
