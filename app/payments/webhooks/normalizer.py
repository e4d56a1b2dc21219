"""
Webhook payload normalization.

The vendor delivers two payload shapes:

    nested:
        {
            "order_info": {"order_id": "CRQ-1/TXN-9", "custom_order_id": "ORD-1"},
            "payment_info": {"status": "SUCCESS", "transaction_amount": 1500, ...}
        }

    flat:
        {"custom_order_id": "ORD-1", "collect_request_id": "CRQ-1",
         "status": "SUCCESS", "transaction_amount": 1500, ...}

Both are reduced to one WebhookObservation tagged with the shape it came
from. The nested shape is tried first; a payload with neither ``order_info``
nor ``payment_info`` is read as flat.

Usage:
    from payments.webhooks.normalizer import normalize_payload

    observation = normalize_payload(payload)
    observation.shape                       # "nested" or "flat"
    observation.to_status_observation()     # input for StatusLedger
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal
from typing import Any

from django.utils import timezone
from django.utils.dateparse import parse_datetime

from payments.exceptions import WebhookParseError
from payments.services.reconciliation import map_vendor_status
from payments.services.types import StatusObservation, parse_amount

SHAPE_NESTED = "nested"
SHAPE_FLAT = "flat"

DEFAULT_GATEWAY = "edviron"

# Column widths of the ledger fields the text values end up in
TEXT_LIMITS = {
    "payment_mode": 50,
    "payment_details": 255,
    "bank_reference": 100,
    "gateway": 50,
    "transaction_id": 100,
    "custom_order_id": 100,
    "collect_request_id": 100,
}


@dataclass(frozen=True)
class WebhookObservation:
    """
    A webhook payload after normalization.

    ``raw_status`` is the vendor's string as delivered; mapping to
    PaymentStatus happens in ``to_status_observation``.
    """

    shape: str
    payment_time: datetime
    custom_order_id: str | None = None
    collect_request_id: str | None = None
    transaction_id: str | None = None
    raw_status: str | None = None
    order_amount: Decimal | None = None
    transaction_amount: Decimal | None = None
    payment_mode: str | None = None
    payment_details: str | None = None
    bank_reference: str | None = None
    payment_message: str | None = None
    error_message: str | None = None
    gateway: str = DEFAULT_GATEWAY
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def status(self) -> str:
        return map_vendor_status(self.raw_status)

    def to_status_observation(self) -> StatusObservation:
        return StatusObservation(
            status=self.status,
            order_amount=self.order_amount,
            transaction_amount=self.transaction_amount,
            payment_mode=self.payment_mode,
            payment_details=self.payment_details,
            bank_reference=self.bank_reference,
            payment_message=self.payment_message,
            error_message=self.error_message,
            gateway=self.gateway,
            transaction_id=self.transaction_id,
            payment_time=self.payment_time,
            raw=self.raw,
        )

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe form stored on WebhookDelivery.parsed."""
        return {
            "shape": self.shape,
            "custom_order_id": self.custom_order_id,
            "collect_request_id": self.collect_request_id,
            "transaction_id": self.transaction_id,
            "raw_status": self.raw_status,
            "status": self.status,
            "order_amount": _str_or_none(self.order_amount),
            "transaction_amount": _str_or_none(self.transaction_amount),
            "payment_mode": self.payment_mode,
            "payment_details": self.payment_details,
            "bank_reference": self.bank_reference,
            "payment_message": self.payment_message,
            "error_message": self.error_message,
            "gateway": self.gateway,
            "payment_time": self.payment_time.isoformat(),
        }


def normalize_payload(
    payload: Any, now: datetime | None = None
) -> WebhookObservation:
    """
    Normalize a decoded webhook body.

    Args:
        payload: Decoded JSON body
        now: payment_time to use when the payload carries none
            (defaults to the current time)

    Raises:
        WebhookParseError: Not an object, unparseable amount or time,
            or no custom_order_id / collect_request_id present
    """
    if not isinstance(payload, dict):
        raise WebhookParseError("Webhook payload must be a JSON object")

    order_info = payload.get("order_info")
    payment_info = payload.get("payment_info")

    nested_objects = all(
        part is None or isinstance(part, dict) for part in (order_info, payment_info)
    )
    if order_info is not None or payment_info is not None:
        if not nested_objects:
            raise WebhookParseError("order_info and payment_info must be objects")
        fields = _extract_nested(order_info or {}, payment_info or {})
        shape = SHAPE_NESTED
    else:
        fields = _extract_flat(payload)
        shape = SHAPE_FLAT

    if not fields["custom_order_id"] and not fields["collect_request_id"]:
        raise WebhookParseError("No order identifier found")

    payment_time = fields.pop("payment_time") or now or timezone.now()

    return WebhookObservation(shape=shape, payment_time=payment_time, raw=payload, **fields)


def split_order_id(order_id: Any) -> tuple[str | None, str | None]:
    """
    Split a vendor order_id into (collect_request_id, transaction_id).

    "CRQ/TXN" carries both; any other value is the collect request id alone.

    Example:
        split_order_id("CRQ-1/TXN-9")   # ("CRQ-1", "TXN-9")
        split_order_id("CRQ-1")         # ("CRQ-1", None)
    """
    text = _text(order_id)
    if text is None:
        return None, None
    parts = text.split("/")
    if len(parts) == 2 and parts[0] and parts[1]:
        return parts[0], parts[1]
    return text, None


# =============================================================================
# Shape extraction
# =============================================================================


def _extract_nested(order_info: dict[str, Any], payment_info: dict[str, Any]) -> dict[str, Any]:
    collect_request_id, transaction_id = split_order_id(order_info.get("order_id"))
    if payment_info.get("transaction_id"):
        transaction_id = _text(payment_info.get("transaction_id"))

    return _common_fields(
        payment_info,
        custom_order_id=order_info.get("custom_order_id"),
        collect_request_id=collect_request_id,
        transaction_id=transaction_id,
    )


def _extract_flat(payload: dict[str, Any]) -> dict[str, Any]:
    collect_request_id = payload.get("collect_request_id")
    transaction_id = payload.get("transaction_id")
    if not collect_request_id and payload.get("order_id"):
        collect_request_id, split_transaction_id = split_order_id(payload["order_id"])
        transaction_id = transaction_id or split_transaction_id

    return _common_fields(
        payload,
        custom_order_id=payload.get("custom_order_id"),
        collect_request_id=collect_request_id,
        transaction_id=transaction_id,
    )


def _common_fields(source: dict[str, Any], **identifiers: Any) -> dict[str, Any]:
    return {
        "custom_order_id": _text(identifiers["custom_order_id"], "custom_order_id"),
        "collect_request_id": _text(identifiers["collect_request_id"], "collect_request_id"),
        "transaction_id": _text(identifiers["transaction_id"], "transaction_id"),
        "raw_status": _text(source.get("status")),
        "order_amount": _amount(source.get("order_amount"), "order_amount"),
        "transaction_amount": _amount(
            _first(source, "transaction_amount", "amount"), "transaction_amount"
        ),
        "payment_mode": _text(source.get("payment_mode"), "payment_mode"),
        "payment_details": _text(source.get("payment_details"), "payment_details"),
        "bank_reference": _text(source.get("bank_reference"), "bank_reference"),
        "payment_message": _text(_first(source, "payment_message", "message")),
        "error_message": _text(source.get("error_message")),
        "gateway": _text(source.get("gateway"), "gateway") or DEFAULT_GATEWAY,
        "payment_time": _payment_time(source.get("payment_time")),
    }


# =============================================================================
# Value coercion
# =============================================================================


def _first(source: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = source.get(key)
        if value not in (None, ""):
            return value
    return None


def _text(value: Any, limit_key: str | None = None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if limit_key:
        text = text[: TEXT_LIMITS[limit_key]]
    return text


def _amount(value: Any, name: str) -> Decimal | None:
    try:
        return parse_amount(value)
    except ValueError as e:
        raise WebhookParseError(
            f"Invalid {name}", details={name: str(value)}
        ) from e


def _payment_time(value: Any) -> datetime | None:
    """
    Parse an ISO-8601 string or an epoch timestamp in milliseconds.

    Naive values are taken as UTC.
    """
    if value in (None, ""):
        return None

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=dt_timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise WebhookParseError(
                "Invalid payment_time", details={"payment_time": value}
            ) from e

    try:
        parsed = parse_datetime(str(value).strip())
    except ValueError:
        parsed = None
    if parsed is None:
        raise WebhookParseError("Invalid payment_time", details={"payment_time": str(value)})

    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, dt_timezone.utc)
    return parsed


def _str_or_none(value: Decimal | None) -> str | None:
    return None if value is None else str(value)
