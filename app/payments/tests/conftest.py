"""
Pytest fixtures for payment tests.

Vendor access is always mocked: ``vendor_client`` is a MagicMock shaped
like VendorGatewayClient, and ``patched_vendor`` makes the API views and
tasks receive it from ``get_vendor_client()``.

Usage:
    def test_create(school_client, patched_vendor, collect_result):
        patched_vendor.create_collect_request.return_value = collect_result()
        response = school_client.post("/api/v1/create-payment/", ...)
"""

import json
from unittest.mock import MagicMock, patch

import pytest
from rest_framework.test import APIClient

from authentication.models import UserRole
from authentication.tests.factories import UserFactory
from payments.adapters import VendorGatewayClient, VendorResult
from payments.tests.factories import OrderFactory
from payments.webhooks.signatures import compute_signature

WEBHOOK_SECRET = "webhook-test-secret"


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture(autouse=True)
def payment_settings(settings):
    """Vendor and webhook configuration every payment test runs with."""
    settings.VENDOR_BASE_URL = "https://vendor.test"
    settings.VENDOR_SIGNING_KEY = "vendor-signing-key"
    settings.VENDOR_API_KEY = "vendor-api-key"
    settings.WEBHOOK_SIGNING_SECRET = WEBHOOK_SECRET
    settings.WEBHOOK_REQUIRE_SIGNATURE = True
    settings.WEBHOOK_MAX_RETRIES = 3
    settings.WEBHOOK_RETENTION_DAYS = 90
    return settings


# =============================================================================
# User and Client Fixtures
# =============================================================================


@pytest.fixture
def school_user(db):
    """School operator for SCH001."""
    return UserFactory(role=UserRole.SCHOOL, school_id="SCH001")


@pytest.fixture
def other_school_user(db):
    """School operator for SCH002."""
    return UserFactory(role=UserRole.SCHOOL, school_id="SCH002")


@pytest.fixture
def admin_user(db):
    """Platform admin; not confined to a school."""
    return UserFactory(role=UserRole.ADMIN, school_id="")


@pytest.fixture
def plain_user(db):
    """A user whose role may not see transactions."""
    return UserFactory(role=UserRole.USER, school_id="SCH001")


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def school_client(school_user):
    client = APIClient()
    client.force_authenticate(user=school_user)
    return client


@pytest.fixture
def other_school_client(other_school_user):
    client = APIClient()
    client.force_authenticate(user=other_school_user)
    return client


@pytest.fixture
def admin_api_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


# =============================================================================
# Order Fixtures
# =============================================================================


@pytest.fixture
def order(db):
    """Pending SCH001 order with collect request CRQ-1."""
    return OrderFactory(custom_order_id="ORD-1", collect_request_id="CRQ-1")


# =============================================================================
# Vendor Fixtures
# =============================================================================


@pytest.fixture
def collect_result():
    """Build a successful create_collect_request result."""

    def _create(
        collect_request_id: str = "CRQ-NEW",
        url: str = "https://pay.vendor.test/CRQ-NEW",
    ) -> VendorResult:
        return VendorResult.ok(
            {
                "collect_request_id": collect_request_id,
                "payment_url": url,
                "collect_request_url": url,
                "sign": "vendor-sign",
            }
        )

    return _create


@pytest.fixture
def status_result():
    """Build a successful check_status result."""

    def _create(
        status: str = "SUCCESS", details: dict | None = None, amount: int = 1500
    ) -> VendorResult:
        raw = {"status": status, "amount": amount, "details": details or {}}
        return VendorResult.ok(
            {"status": status, "amount": amount, "details": details or {}, "raw": raw}
        )

    return _create


@pytest.fixture
def vendor_client():
    """MagicMock with the VendorGatewayClient interface."""
    return MagicMock(spec=VendorGatewayClient)


@pytest.fixture
def patched_vendor(vendor_client):
    """Make views and tasks use ``vendor_client``."""
    with patch(
        "payments.views.get_vendor_client", return_value=vendor_client
    ), patch("payments.tasks.get_vendor_client", return_value=vendor_client):
        yield vendor_client


# =============================================================================
# Webhook Fixtures
# =============================================================================


@pytest.fixture
def webhook_payload():
    """Build a nested-shape webhook payload."""

    def _create(
        order_id: str = "CRQ-1/TXN-1",
        status: str = "SUCCESS",
        custom_order_id: str | None = None,
        **payment_info,
    ) -> dict:
        order_info = {"order_id": order_id}
        if custom_order_id:
            order_info["custom_order_id"] = custom_order_id
        return {
            "order_info": order_info,
            "payment_info": {
                "status": status,
                "transaction_amount": 1500,
                "payment_mode": "upi",
                "bank_reference": "BR-001",
                "payment_time": "2024-01-15T10:00:00Z",
                **payment_info,
            },
        }

    return _create


@pytest.fixture
def post_webhook(api_client):
    """POST a payload to the webhook endpoint, signed unless told otherwise."""

    def _post(payload, signature="valid", path="/api/v1/webhook/"):
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        headers = {}
        if signature == "valid":
            headers["HTTP_X_WEBHOOK_SIGNATURE"] = (
                f"sha256={compute_signature(body, WEBHOOK_SECRET)}"
            )
        elif signature:
            headers["HTTP_X_WEBHOOK_SIGNATURE"] = signature
        return api_client.post(
            path,
            data=body,
            content_type="application/json",
            HTTP_USER_AGENT="vendor-webhooks/1.0",
            **headers,
        )

    return _post
