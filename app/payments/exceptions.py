"""
Payment-specific exceptions.

Exception Hierarchy:
    OrderNotFoundError - Order lookup failures (inherits NotFoundError, 404)
    WebhookParseError - Payload carries no usable order identifier
        (inherits ValidationError)

    DuplicateOrderError - custom_order_id already taken (inherits ConflictError)
    ReconciliationConflict - Terminal status would regress (inherits ConflictError)

    VendorError - Vendor rejected or failed a request (inherits ExternalServiceError)
    └── VendorNetworkError - No response reached us (timeout, connection)

    VendorConfigError - Signing key or base URL missing (inherits ConfigError)

Usage:
    from payments.exceptions import DuplicateOrderError, OrderNotFoundError

    raise DuplicateOrderError(
        "Order with this custom_order_id already exists",
        details={"custom_order_id": "ORD-1"},
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import (
    ConfigError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class OrderNotFoundError(NotFoundError):
    """
    Raised when an order that must exist cannot be found.

    The order store itself returns None for misses; callers that need the
    order (status endpoints, webhook resolution) raise this.
    """

    default_error_code: str = "ORDER_NOT_FOUND"


class WebhookParseError(ValidationError):
    """Raised when a webhook payload cannot be normalized."""

    default_error_code: str = "WEBHOOK_PARSE_ERROR"


# =============================================================================
# Conflict Exceptions
# =============================================================================


class DuplicateOrderError(ConflictError):
    """
    Raised when the custom_order_id is already used by another order.

    Answered with 400 to match the validation family of create errors.
    """

    default_error_code: str = "DUPLICATE_ORDER_ID"
    http_status: int = 400


class ReconciliationConflict(ConflictError):
    """
    An observation would move a terminal ledger status back to non-terminal.

    Never raised to HTTP callers: the status ledger builds one of these to
    log the dropped transition, keeps the terminal status, and carries on.
    """

    default_error_code: str = "RECONCILIATION_CONFLICT"


# =============================================================================
# Vendor Exceptions
# =============================================================================


class VendorError(ExternalServiceError):
    """
    The vendor answered with an error, or with a body we cannot use.

    Attributes:
        status_code: HTTP status from the vendor (None if no response)
        is_retryable: Whether the same request may succeed on retry
    """

    default_error_code: str = "VENDOR_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, error_code=error_code, details=details)
        self.status_code = status_code
        # Vendor 4xx are passed through; anything else is a bad gateway
        if status_code is not None and 400 <= status_code < 500:
            self.http_status = status_code

    @property
    def is_retryable(self) -> bool:
        return self.status_code is None or self.status_code >= 500


class VendorNetworkError(VendorError):
    """No response reached us: connection failure, DNS, or timeout."""

    default_error_code: str = "NETWORK_ERROR"


class VendorConfigError(ConfigError):
    """
    The vendor client is missing its signing key or base URL.

    Raised at construction so the client never sends unsigned requests.
    """
