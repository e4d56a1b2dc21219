"""
Vendor payment gateway client.

All calls to the payment vendor go through VendorGatewayClient so that
signing, timeouts, retries and error translation behave the same way on
the create path, the poll path and the background reconciliation task.

Features:
- Every request is signed with a JWT (HS256) over exactly the documented fields
- Fixed per-request timeout; a timeout counts as a network error
- Retries with capped exponential backoff on network errors and 5xx only
- Transport failures come back as a VendorResult, never as an exception
- Structured logging with timing metrics

Configuration (via settings):
- VENDOR_BASE_URL: Vendor API root (required)
- VENDOR_SIGNING_KEY: Secret used to sign request payloads (required)
- VENDOR_API_KEY: Bearer token sent on every request
- VENDOR_TIMEOUT_SECONDS: Per-request timeout (default: 30)
- VENDOR_MAX_RETRIES: Total attempts per call (default: 3)
- VENDOR_RETRY_BASE_DELAY / VENDOR_RETRY_MAX_DELAY: Backoff bounds

Usage:
    from payments.adapters import get_vendor_client

    client = get_vendor_client()
    result = client.create_collect_request("SCH001", Decimal("1500.00"), url)
    if result.success:
        result.data["collect_request_id"]
    else:
        result.error["code"]  # NETWORK_ERROR, VENDOR_ERROR, ...

    # Tests inject their own session and sleep
    client = VendorGatewayClient(
        base_url="https://vendor.test",
        signing_key="secret",
        session=mock_session,
        sleep=lambda seconds: None,
    )
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import jwt
import requests
from django.conf import settings

from payments.exceptions import VendorConfigError, VendorError, VendorNetworkError

if TYPE_CHECKING:
    from collections.abc import Callable
    from decimal import Decimal


logger = logging.getLogger(__name__)

NETWORK_ERROR = "NETWORK_ERROR"
VENDOR_ERROR = "VENDOR_ERROR"
INVALID_VENDOR_RESPONSE = "INVALID_VENDOR_RESPONSE"


# =============================================================================
# Data Types
# =============================================================================


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry schedule applied to every vendor call.

    Attributes:
        max_attempts: Total attempts including the first one
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay, in seconds

    Example:
        # base_delay=1.0, max_delay=5.0
        # attempt 0 -> 1.0s, attempt 1 -> 2.0s, attempt 2 -> 4.0s, attempt 3 -> 5.0s
        policy.delay_for(attempt)
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 5.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must not be negative")

    def delay_for(self, attempt: int) -> float:
        """Delay after the failed attempt number ``attempt`` (0-indexed)."""
        return min(self.base_delay * (2**attempt), self.max_delay)


@dataclass
class VendorResult:
    """
    Outcome of one vendor call.

    Exactly one of ``data`` / ``error`` is set:
        success: {"success": True, "data": {...}}
        failure: {"success": False, "error": {"message", "status_code", "code"}}
    """

    success: bool
    data: dict[str, Any] | None = None
    error: dict[str, Any] | None = field(default=None)

    @classmethod
    def ok(cls, data: dict[str, Any]) -> VendorResult:
        return cls(success=True, data=data)

    @classmethod
    def failure(cls, message: str, status_code: int | None, code: str) -> VendorResult:
        return cls(
            success=False,
            error={"message": message, "status_code": status_code, "code": code},
        )

    @property
    def error_code(self) -> str | None:
        return self.error["code"] if self.error else None

    @property
    def status_code(self) -> int | None:
        return self.error["status_code"] if self.error else None

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error}

    def to_exception(self) -> VendorError:
        """
        Domain exception for a failed result.

        Used by callers that must surface the failure over HTTP.
        """
        if self.success:
            raise ValueError("Successful result has no exception")
        details = {"vendor_status_code": self.status_code}
        if self.error_code == NETWORK_ERROR:
            return VendorNetworkError(self.error["message"], details=details)
        return VendorError(
            self.error["message"],
            error_code=self.error_code,
            details=details,
            status_code=self.status_code,
        )


# =============================================================================
# Client
# =============================================================================


class VendorGatewayClient:
    """
    HTTP client for the vendor collect-request API.

    Instances hold no mutable state beyond the HTTP session, so one client
    can serve a whole request or task. Build one per use with
    ``from_settings()`` / ``get_vendor_client()``.
    """

    def __init__(
        self,
        base_url: str,
        signing_key: str,
        api_key: str = "",
        timeout: float = 30,
        retry_policy: RetryPolicy | None = None,
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not base_url:
            raise VendorConfigError("Vendor base URL is not configured")
        if not signing_key:
            raise VendorConfigError("Vendor signing key is not configured")

        self.base_url = base_url.rstrip("/")
        self.signing_key = signing_key
        self.api_key = api_key
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self.session = session or requests.Session()
        self.sleep = sleep

    @classmethod
    def from_settings(cls) -> VendorGatewayClient:
        """
        Build a client from Django settings.

        Raises:
            VendorConfigError: VENDOR_BASE_URL or VENDOR_SIGNING_KEY missing
        """
        return cls(
            base_url=settings.VENDOR_BASE_URL,
            signing_key=settings.VENDOR_SIGNING_KEY,
            api_key=settings.VENDOR_API_KEY,
            timeout=settings.VENDOR_TIMEOUT_SECONDS,
            retry_policy=RetryPolicy(
                max_attempts=max(1, settings.VENDOR_MAX_RETRIES),
                base_delay=settings.VENDOR_RETRY_BASE_DELAY,
                max_delay=settings.VENDOR_RETRY_MAX_DELAY,
            ),
        )

    # =========================================================================
    # Signing
    # =========================================================================

    def sign(self, payload: dict[str, Any]) -> str:
        """
        Sign a payload as an HS256 JWT.

        No iat/exp claims are added, so identical payloads always produce
        identical signatures.
        """
        return jwt.encode(payload, self.signing_key, algorithm="HS256")

    # =========================================================================
    # Operations
    # =========================================================================

    def create_collect_request(
        self, school_id: str, amount: Decimal | str, callback_url: str
    ) -> VendorResult:
        """
        Ask the vendor to open a collect request for a payment.

        Returns:
            VendorResult with data {collect_request_id, payment_url,
            collect_request_url, sign}
        """
        payload = {
            "school_id": school_id,
            "amount": str(amount),
            "callback_url": callback_url,
        }
        sign = self.sign(payload)

        result = self._request(
            "POST",
            "/create-collect-request",
            operation="create_collect_request",
            json={**payload, "sign": sign},
            log_context={"school_id": school_id, "amount": str(amount)},
        )
        if not result.success:
            return result

        body = result.data
        collect_request_id = body.get("collect_request_id")
        # The vendor has shipped both spellings of this key
        collect_request_url = body.get("collect_request_url") or body.get(
            "Collect_request_url"
        )
        if not collect_request_id or not collect_request_url:
            logger.error(
                "Vendor create response missing collect request fields",
                extra={"school_id": school_id, "keys": sorted(body)},
            )
            return VendorResult.failure(
                "Invalid response from vendor API", 502, INVALID_VENDOR_RESPONSE
            )

        return VendorResult.ok(
            {
                "collect_request_id": str(collect_request_id),
                "payment_url": collect_request_url,
                "collect_request_url": collect_request_url,
                "sign": body.get("sign", sign),
            }
        )

    def check_status(self, collect_request_id: str, school_id: str) -> VendorResult:
        """
        Fetch the vendor's view of a collect request.

        Returns:
            VendorResult with data {status, amount, details, raw}; ``status``
            is the vendor's raw string, not yet mapped
        """
        sign = self.sign({"school_id": school_id, "collect_request_id": collect_request_id})

        result = self._request(
            "GET",
            f"/collect-request/{collect_request_id}",
            operation="check_status",
            params={"school_id": school_id, "sign": sign},
            log_context={"collect_request_id": collect_request_id, "school_id": school_id},
        )
        if not result.success:
            return result

        body = result.data
        return VendorResult.ok(
            {
                "status": body.get("status"),
                "amount": body.get("amount"),
                "details": body.get("details") or {},
                "raw": body,
            }
        )

    # =========================================================================
    # Transport
    # =========================================================================

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        log_context: dict[str, Any] | None = None,
    ) -> VendorResult:
        """
        Send one logical request, retrying per the retry policy.

        Only network errors, timeouts and 5xx answers are retried. A 4xx or
        a malformed 2xx body is returned on the first occurrence.
        """
        url = f"{self.base_url}{path}"
        log_context = {"operation": operation, **(log_context or {})}
        policy = self.retry_policy
        result: VendorResult | None = None

        for attempt in range(policy.max_attempts):
            start_time = time.time()
            logger.info(
                "Starting vendor operation",
                extra={**log_context, "attempt": attempt + 1},
            )

            try:
                response = self.session.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=self._headers(),
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                duration_ms = (time.time() - start_time) * 1000
                logger.warning(
                    "Network error calling vendor API",
                    extra={
                        **log_context,
                        "attempt": attempt + 1,
                        "duration_ms": duration_ms,
                        "error": str(e),
                    },
                )
                result = VendorResult.failure(
                    "Network error connecting to vendor API", None, NETWORK_ERROR
                )
            else:
                duration_ms = (time.time() - start_time) * 1000
                result = self._parse_response(response, log_context, duration_ms)
                if result.success or not self._should_retry(result):
                    return result

            if attempt + 1 < policy.max_attempts:
                delay = policy.delay_for(attempt)
                logger.info(
                    "Retrying vendor operation",
                    extra={**log_context, "attempt": attempt + 1, "delay": delay},
                )
                self.sleep(delay)

        logger.error(
            "Vendor operation failed after retries",
            extra={
                **log_context,
                "attempts": policy.max_attempts,
                "code": result.error_code,
            },
        )
        return result

    @staticmethod
    def _should_retry(result: VendorResult) -> bool:
        status_code = result.status_code
        if result.error_code == NETWORK_ERROR:
            return True
        return (
            result.error_code == VENDOR_ERROR
            and status_code is not None
            and status_code >= 500
        )

    @staticmethod
    def _parse_response(
        response: requests.Response,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> VendorResult:
        status_code = response.status_code

        try:
            body = response.json()
        except ValueError:
            body = None

        if status_code >= 400:
            message = "Vendor API request failed"
            if isinstance(body, dict) and body.get("message"):
                message = str(body["message"])
            log = logger.error if status_code >= 500 else logger.warning
            log(
                "Vendor API error response",
                extra={
                    **log_context,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )
            return VendorResult.failure(message, status_code, VENDOR_ERROR)

        if not isinstance(body, dict):
            logger.error(
                "Vendor API returned a malformed body",
                extra={
                    **log_context,
                    "status_code": status_code,
                    "duration_ms": duration_ms,
                },
            )
            return VendorResult.failure(
                "Invalid response from vendor API", 502, INVALID_VENDOR_RESPONSE
            )

        logger.info(
            "Vendor operation completed",
            extra={**log_context, "status_code": status_code, "duration_ms": duration_ms},
        )
        return VendorResult.ok(body)


def get_vendor_client() -> VendorGatewayClient:
    """
    Client for the current request or task.

    Views and tasks call this instead of holding a shared instance, so tests
    can patch it (``payments.views.get_vendor_client``) or settings freely.
    """
    return VendorGatewayClient.from_settings()
