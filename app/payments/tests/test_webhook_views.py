"""
Tests for the vendor webhook endpoint.

Tests cover:
- 200 on a processed delivery
- 401 on missing or wrong signatures
- 400 on unknown orders and malformed bodies
- The legacy bare /webhook path
- Request metadata recorded on the delivery
"""

import pytest

from payments.models import OrderStatus, WebhookDelivery
from payments.services import StatusLedger
from payments.state_machines import PaymentStatus, WebhookDeliveryStatus


@pytest.mark.django_db
class TestVendorWebhookView:
    def test_processed(self, order, webhook_payload, post_webhook):
        response = post_webhook(webhook_payload())

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Webhook processed successfully",
        }
        assert StatusLedger.find_latest(order.id).status == PaymentStatus.COMPLETED

    def test_missing_signature(self, order, webhook_payload, post_webhook):
        response = post_webhook(webhook_payload(), signature=None)

        assert response.status_code == 401
        assert response.json()["code"] == "INVALID_SIGNATURE"
        assert not OrderStatus.objects.exists()

        delivery = WebhookDelivery.objects.get()
        assert delivery.signature_valid is False
        assert delivery.processing_status == WebhookDeliveryStatus.FAILED

    def test_wrong_signature(self, order, webhook_payload, post_webhook):
        response = post_webhook(webhook_payload(), signature="sha256=" + "0" * 64)

        assert response.status_code == 401
        assert not OrderStatus.objects.exists()

    def test_unknown_order(self, order, webhook_payload, post_webhook):
        response = post_webhook(webhook_payload(order_id="CRQ-404/TXN-1"))

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "WEBHOOK_PROCESSING_FAILED"
        assert body["detail"] == "Order not found for webhook identifiers"
        assert WebhookDelivery.objects.get().processing_status == WebhookDeliveryStatus.FAILED

    def test_non_json_body(self, post_webhook):
        response = post_webhook(b"status=SUCCESS")

        assert response.status_code == 400
        delivery = WebhookDelivery.objects.get()
        assert delivery.raw_payload == {"_raw": "status=SUCCESS"}
        assert delivery.processing_message == "No order identifier found"

    def test_legacy_path(self, order, webhook_payload, post_webhook):
        response = post_webhook(webhook_payload(), path="/webhook")

        assert response.status_code == 200
        assert StatusLedger.find_latest(order.id).status == PaymentStatus.COMPLETED

    def test_no_authentication_needed(self, school_client, order, webhook_payload):
        # Session or JWT credentials are ignored; only the signature counts
        response = school_client.post(
            "/api/v1/webhook/", webhook_payload(), format="json"
        )

        assert response.status_code == 401

    def test_request_metadata_is_recorded(self, order, webhook_payload, post_webhook):
        post_webhook(webhook_payload())

        delivery = WebhookDelivery.objects.get()
        assert delivery.source_ip == "127.0.0.1"
        assert delivery.user_agent == "vendor-webhooks/1.0"
        assert delivery.headers["Content-Type"] == "application/json"
        assert delivery.headers["User-Agent"] == "vendor-webhooks/1.0"
        assert delivery.headers["X-Webhook-Signature"].startswith("sha256=")
