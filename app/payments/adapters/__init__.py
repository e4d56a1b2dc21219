"""
Adapters for external services.

All calls to the payment vendor should go through these adapters to ensure
consistent signing, timeouts, retries, and observability.

Usage:
    from payments.adapters import get_vendor_client

    result = get_vendor_client().check_status("CRQ-1", "SCH001")
"""

from payments.adapters.vendor_adapter import (
    INVALID_VENDOR_RESPONSE,
    NETWORK_ERROR,
    VENDOR_ERROR,
    RetryPolicy,
    VendorGatewayClient,
    VendorResult,
    get_vendor_client,
)

__all__ = [
    "INVALID_VENDOR_RESPONSE",
    "NETWORK_ERROR",
    "VENDOR_ERROR",
    "RetryPolicy",
    "VendorGatewayClient",
    "VendorResult",
    "get_vendor_client",
]
