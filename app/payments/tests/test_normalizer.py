"""
Tests for webhook payload normalization.

Tests cover:
- Composite "collect_request_id/transaction_id" order ids
- Nested and flat payload shapes, field fallbacks
- payment_time parsing (ISO-8601, epoch milliseconds, default)
- Rejection of payloads without an order identifier or with bad values
"""

from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest

from payments.exceptions import WebhookParseError
from payments.state_machines import PaymentStatus
from payments.webhooks.normalizer import (
    SHAPE_FLAT,
    SHAPE_NESTED,
    normalize_payload,
    split_order_id,
)

NOW = datetime(2024, 2, 1, 8, 30, tzinfo=dt_timezone.utc)


# =============================================================================
# split_order_id
# =============================================================================


class TestSplitOrderId:
    @pytest.mark.parametrize(
        "order_id, expected",
        [
            ("CRQ-1/TXN-9", ("CRQ-1", "TXN-9")),
            ("CRQ-1", ("CRQ-1", None)),
            ("A/B/C", ("A/B/C", None)),
            ("/TXN-9", ("/TXN-9", None)),
            ("  CRQ-1/TXN-9 ", ("CRQ-1", "TXN-9")),
            (None, (None, None)),
            ("", (None, None)),
        ],
    )
    def test_split(self, order_id, expected):
        assert split_order_id(order_id) == expected


# =============================================================================
# Nested shape
# =============================================================================


class TestNestedPayload:
    def test_composite_order_id(self):
        observation = normalize_payload(
            {
                "order_info": {"order_id": "CRQ-1/TXN-9"},
                "payment_info": {
                    "status": "SUCCESS",
                    "transaction_amount": 1500,
                    "payment_time": "2024-01-15T10:00:00Z",
                },
            }
        )

        assert observation.shape == SHAPE_NESTED
        assert observation.collect_request_id == "CRQ-1"
        assert observation.transaction_id == "TXN-9"
        assert observation.status == PaymentStatus.COMPLETED
        assert observation.transaction_amount == Decimal("1500.00")
        assert observation.payment_time == datetime(
            2024, 1, 15, 10, 0, tzinfo=dt_timezone.utc
        )

    def test_explicit_transaction_id_wins_over_composite(self):
        observation = normalize_payload(
            {
                "order_info": {"order_id": "CRQ-1/TXN-9"},
                "payment_info": {"status": "FAILED", "transaction_id": "TXN-42"},
            },
            now=NOW,
        )

        assert observation.collect_request_id == "CRQ-1"
        assert observation.transaction_id == "TXN-42"
        assert observation.status == PaymentStatus.FAILED

    def test_custom_order_id_alone_is_enough(self):
        observation = normalize_payload(
            {"order_info": {"custom_order_id": "ORD-1"}, "payment_info": {}},
            now=NOW,
        )

        assert observation.custom_order_id == "ORD-1"
        assert observation.collect_request_id is None
        assert observation.status == PaymentStatus.PENDING

    def test_descriptive_fields_and_fallbacks(self):
        observation = normalize_payload(
            {
                "order_info": {"order_id": "CRQ-1"},
                "payment_info": {
                    "status": "SUCCESS",
                    "amount": "99.5",
                    "order_amount": 100,
                    "payment_mode": "upi",
                    "payment_details": "success@upi",
                    "bank_reference": "BR-001",
                    "message": "Paid",
                    "gateway": "razorpay",
                },
            },
            now=NOW,
        )

        assert observation.transaction_amount == Decimal("99.50")
        assert observation.order_amount == Decimal("100.00")
        assert observation.payment_mode == "upi"
        assert observation.payment_details == "success@upi"
        assert observation.bank_reference == "BR-001"
        assert observation.payment_message == "Paid"
        assert observation.gateway == "razorpay"


# =============================================================================
# Flat shape
# =============================================================================


class TestFlatPayload:
    def test_flat_fields(self):
        observation = normalize_payload(
            {
                "custom_order_id": "ORD-1",
                "collect_request_id": "CRQ-1",
                "transaction_id": "TXN-1",
                "status": "failed",
                "transaction_amount": 0,
                "error_message": "Insufficient funds",
            },
            now=NOW,
        )

        assert observation.shape == SHAPE_FLAT
        assert observation.custom_order_id == "ORD-1"
        assert observation.collect_request_id == "CRQ-1"
        assert observation.transaction_id == "TXN-1"
        assert observation.status == PaymentStatus.FAILED
        assert observation.transaction_amount == Decimal("0.00")
        assert observation.error_message == "Insufficient funds"
        assert observation.gateway == "edviron"

    def test_order_id_fallback_is_split(self):
        observation = normalize_payload(
            {"order_id": "CRQ-7/TXN-7", "status": "SUCCESS"}, now=NOW
        )

        assert observation.collect_request_id == "CRQ-7"
        assert observation.transaction_id == "TXN-7"

    def test_missing_payment_time_uses_now(self):
        observation = normalize_payload({"custom_order_id": "ORD-1"}, now=NOW)

        assert observation.payment_time == NOW

    def test_epoch_milliseconds_payment_time(self):
        observation = normalize_payload(
            {"custom_order_id": "ORD-1", "payment_time": 1705312800000}, now=NOW
        )

        assert observation.payment_time == datetime(
            2024, 1, 15, 10, 0, tzinfo=dt_timezone.utc
        )

    def test_naive_payment_time_is_utc(self):
        observation = normalize_payload(
            {"custom_order_id": "ORD-1", "payment_time": "2024-01-15 10:00:00"}, now=NOW
        )

        assert observation.payment_time == datetime(
            2024, 1, 15, 10, 0, tzinfo=dt_timezone.utc
        )


# =============================================================================
# Rejections
# =============================================================================


class TestRejectedPayloads:
    def test_no_identifier(self):
        with pytest.raises(WebhookParseError) as exc_info:
            normalize_payload({"status": "SUCCESS", "amount": 10})

        assert exc_info.value.message == "No order identifier found"
        assert exc_info.value.error_code == "WEBHOOK_PARSE_ERROR"

    def test_nested_without_identifier(self):
        with pytest.raises(WebhookParseError):
            normalize_payload({"order_info": {}, "payment_info": {"status": "SUCCESS"}})

    @pytest.mark.parametrize("order_info", ["", [], 0, "ORD-1"])
    def test_nested_parts_must_be_objects(self, order_info):
        payload = {
            "order_info": order_info,
            "payment_info": {"status": "SUCCESS"},
            "custom_order_id": "ORD-1",
        }

        with pytest.raises(WebhookParseError) as exc_info:
            normalize_payload(payload)

        assert exc_info.value.message == "order_info and payment_info must be objects"

    @pytest.mark.parametrize("payload", [[], "text", None, 42])
    def test_non_object_payload(self, payload):
        with pytest.raises(WebhookParseError):
            normalize_payload(payload)

    @pytest.mark.parametrize("amount", ["abc", -5, "NaN"])
    def test_invalid_amount(self, amount):
        with pytest.raises(WebhookParseError):
            normalize_payload({"custom_order_id": "ORD-1", "transaction_amount": amount})

    def test_invalid_payment_time(self):
        with pytest.raises(WebhookParseError):
            normalize_payload({"custom_order_id": "ORD-1", "payment_time": "yesterday"})


# =============================================================================
# Conversions
# =============================================================================


class TestConversions:
    def test_to_status_observation_keeps_raw_payload(self):
        payload = {"custom_order_id": "ORD-1", "status": "SUCCESS", "bank_reference": "BR"}

        observation = normalize_payload(payload, now=NOW).to_status_observation()

        assert observation.status == PaymentStatus.COMPLETED
        assert observation.bank_reference == "BR"
        assert observation.payment_time == NOW
        assert observation.raw == payload

    def test_to_dict_is_json_safe(self):
        parsed = normalize_payload(
            {"custom_order_id": "ORD-1", "transaction_amount": "10"}, now=NOW
        ).to_dict()

        assert parsed["transaction_amount"] == "10.00"
        assert parsed["payment_time"] == NOW.isoformat()
        assert parsed["shape"] == SHAPE_FLAT
