"""
Tests for payment Celery tasks.

Tasks are called directly (synchronously); ``.delay`` is patched where a
task fans out.

Tests cover:
- replay_webhook_delivery outcomes
- retry_failed_webhook_deliveries batching
- purge_expired_webhook_deliveries retention
- poll_pending_orders with and without vendor configuration
"""

import uuid
from datetime import timedelta
from unittest.mock import patch

import pytest
from django.utils import timezone

from payments.models import WebhookDelivery
from payments.services import StatusLedger
from payments.state_machines import PaymentStatus, WebhookDeliveryStatus
from payments.tasks import (
    poll_pending_orders,
    purge_expired_webhook_deliveries,
    replay_webhook_delivery,
    retry_failed_webhook_deliveries,
)
from payments.tests.factories import OrderFactory, WebhookDeliveryFactory


def failed_delivery(order_id="CRQ-1/TXN-1", **kwargs):
    return WebhookDeliveryFactory(
        raw_payload={
            "order_info": {"order_id": order_id},
            "payment_info": {"status": "SUCCESS", "transaction_amount": 1500},
        },
        processing_status=WebhookDeliveryStatus.FAILED,
        retries=kwargs.pop("retries", 1),
        **kwargs,
    )


# =============================================================================
# replay_webhook_delivery
# =============================================================================


@pytest.mark.django_db
class TestReplayWebhookDelivery:
    def test_replays_failed_delivery(self, order):
        delivery = failed_delivery()

        result = replay_webhook_delivery(str(delivery.id))

        assert result["status"] == "processed"
        delivery.refresh_from_db()
        assert delivery.processing_status == WebhookDeliveryStatus.PROCESSED
        assert delivery.last_retry_at is not None
        assert StatusLedger.find_latest(order.id).status == PaymentStatus.COMPLETED

    def test_failure_counts_a_retry(self):
        delivery = failed_delivery(order_id="CRQ-404/TXN-1")

        result = replay_webhook_delivery(str(delivery.id))

        assert result["status"] == "failed"
        assert result["retries"] == 2
        delivery.refresh_from_db()
        assert delivery.processing_status == WebhookDeliveryStatus.FAILED

    def test_not_found(self):
        result = replay_webhook_delivery(str(uuid.uuid4()))

        assert result["status"] == "not_found"

    def test_invalid_signature_is_never_replayed(self, order):
        delivery = failed_delivery(signature_valid=False)

        result = replay_webhook_delivery(str(delivery.id))

        assert result["status"] == "not_replayable"
        delivery.refresh_from_db()
        assert delivery.processing_status == WebhookDeliveryStatus.FAILED
        assert StatusLedger.find_latest(order.id) is None

    def test_retry_ceiling(self, order):
        delivery = failed_delivery(retries=3)

        assert replay_webhook_delivery(str(delivery.id))["status"] == "not_replayable"

    def test_processed_delivery(self):
        delivery = WebhookDeliveryFactory(
            processing_status=WebhookDeliveryStatus.PROCESSED
        )

        assert replay_webhook_delivery(str(delivery.id))["status"] == "already_processed"


# =============================================================================
# retry_failed_webhook_deliveries
# =============================================================================


@pytest.mark.django_db
class TestRetryFailedWebhookDeliveries:
    def test_queues_replayable_deliveries(self):
        replayable = failed_delivery()
        failed_delivery(signature_valid=False)
        failed_delivery(retries=3)
        WebhookDeliveryFactory(processing_status=WebhookDeliveryStatus.PROCESSED)

        with patch("payments.tasks.replay_webhook_delivery.delay") as mock_delay:
            result = retry_failed_webhook_deliveries()

        assert result == {"queued_count": 1}
        mock_delay.assert_called_once_with(str(replayable.id))
        replayable.refresh_from_db()
        assert replayable.processing_status == WebhookDeliveryStatus.QUEUED

    def test_nothing_to_retry(self):
        with patch("payments.tasks.replay_webhook_delivery.delay") as mock_delay:
            result = retry_failed_webhook_deliveries()

        assert result == {"queued_count": 0}
        mock_delay.assert_not_called()


# =============================================================================
# purge_expired_webhook_deliveries
# =============================================================================


@pytest.mark.django_db
class TestPurgeExpiredWebhookDeliveries:
    def test_purges_past_retention(self):
        WebhookDeliveryFactory(received_at=timezone.now() - timedelta(days=120))
        kept = WebhookDeliveryFactory(received_at=timezone.now() - timedelta(days=30))

        result = purge_expired_webhook_deliveries()

        assert result == {"deleted_count": 1}
        assert list(WebhookDelivery.objects.all()) == [kept]

    def test_retention_override(self):
        WebhookDeliveryFactory(received_at=timezone.now() - timedelta(days=30))

        assert purge_expired_webhook_deliveries(days=7) == {"deleted_count": 1}


# =============================================================================
# poll_pending_orders
# =============================================================================


@pytest.mark.django_db
class TestPollPendingOrders:
    def test_skipped_without_vendor_configuration(self, settings):
        settings.VENDOR_SIGNING_KEY = ""

        result = poll_pending_orders()

        assert result["status"] == "skipped"

    def test_polls_open_orders(self, patched_vendor, status_result):
        order = OrderFactory()
        patched_vendor.check_status.return_value = status_result("SUCCESS")

        result = poll_pending_orders()

        assert result == {"status": "completed", "polled": 1, "updated": 1, "failed": 0}
        order.refresh_from_db()
        assert order.status == PaymentStatus.COMPLETED
