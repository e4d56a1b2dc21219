"""
Celery tasks for payment reconciliation.

This module provides async tasks for:
- Replaying a single failed webhook delivery
- Retrying failed webhook deliveries in batches
- Purging webhook deliveries past their retention period
- Polling the vendor for pending orders (reconciles without webhooks)

Schedules are registered with django-celery-beat by migration
0002_register_beat_schedules.

Usage:
    from payments.tasks import replay_webhook_delivery

    replay_webhook_delivery.delay(str(delivery.id))
"""

from __future__ import annotations

import logging
from uuid import UUID

from celery import shared_task
from django_fsm import can_proceed

from payments.adapters import get_vendor_client
from payments.exceptions import VendorConfigError
from payments.models import WebhookDelivery
from payments.services import PaymentService
from payments.state_machines import WebhookDeliveryStatus
from payments.webhooks.ingestor import WebhookIngestor

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

RETRY_BATCH_SIZE = 100


# =============================================================================
# Webhook Delivery Tasks
# =============================================================================


@shared_task(bind=True, acks_late=True)
def replay_webhook_delivery(self, delivery_id: str) -> dict:
    """
    Replay one webhook delivery.

    A failed delivery is requeued first; that transition refuses deliveries
    with an invalid signature or at the retry ceiling.

    Returns:
        Dict with the replay outcome
    """
    if isinstance(delivery_id, str):
        delivery_id = UUID(delivery_id)

    try:
        delivery = WebhookDelivery.objects.get(id=delivery_id)
    except WebhookDelivery.DoesNotExist:
        logger.error(
            "WebhookDelivery not found",
            extra={"delivery_id": str(delivery_id)},
        )
        return {"status": "not_found", "delivery_id": str(delivery_id)}

    if delivery.processing_status == WebhookDeliveryStatus.FAILED:
        if not can_proceed(delivery.requeue):
            logger.info(
                "WebhookDelivery not replayable",
                extra={
                    "delivery_id": str(delivery_id),
                    "signature_valid": delivery.signature_valid,
                    "retries": delivery.retries,
                },
            )
            return {"status": "not_replayable", "delivery_id": str(delivery_id)}
        delivery.requeue()
        delivery.save()

    if delivery.processing_status != WebhookDeliveryStatus.QUEUED:
        return {"status": "already_processed", "delivery_id": str(delivery_id)}

    result = WebhookIngestor.replay(delivery)
    return {
        "status": "processed" if result.success else "failed",
        "delivery_id": str(delivery_id),
        "message": result.message,
        "retries": result.delivery.retries,
    }


@shared_task
def retry_failed_webhook_deliveries() -> dict:
    """
    Periodic task to retry failed webhook deliveries.

    Requeues failed, signature-valid deliveries still under
    WEBHOOK_MAX_RETRIES and queues a replay for each.

    Returns:
        Dict with count of deliveries queued for replay
    """
    candidates = WebhookDelivery.objects.replayable().order_by("received_at")[
        :RETRY_BATCH_SIZE
    ]

    queued_count = 0
    for delivery in candidates:
        delivery.requeue()
        delivery.save()
        replay_webhook_delivery.delay(str(delivery.id))
        queued_count += 1
        logger.info(
            "Queued failed webhook delivery for replay",
            extra={"delivery_id": str(delivery.id), "retries": delivery.retries},
        )

    logger.info(
        f"Queued {queued_count} failed webhook deliveries for replay",
        extra={"queued_count": queued_count},
    )
    return {"queued_count": queued_count}


@shared_task
def purge_expired_webhook_deliveries(days: int | None = None) -> dict:
    """
    Delete webhook deliveries older than the retention period.

    Args:
        days: Retention override (default WEBHOOK_RETENTION_DAYS)

    Returns:
        Dict with count of deleted deliveries
    """
    deleted_count, _ = WebhookDelivery.objects.expired(days).delete()
    logger.info(
        f"Purged {deleted_count} expired webhook deliveries",
        extra={"deleted_count": deleted_count, "days": days},
    )
    return {"deleted_count": deleted_count}


# =============================================================================
# Reconciliation Tasks
# =============================================================================


@shared_task
def poll_pending_orders(window_hours: int | None = None) -> dict:
    """
    Poll the vendor for recent orders that are still pending.

    Covers orders whose webhook never arrived. Skipped entirely when the
    vendor client is not configured.

    Returns:
        Dict with polled / updated / failed counts
    """
    try:
        client = get_vendor_client()
    except VendorConfigError as e:
        logger.error(
            "Skipping pending order poll: vendor not configured",
            extra={"reason": e.message},
        )
        return {"status": "skipped", "reason": e.message}

    counts = PaymentService(client).reconcile_pending_orders(window_hours)
    return {"status": "completed", **counts}
