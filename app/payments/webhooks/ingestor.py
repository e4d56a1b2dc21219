"""
Webhook ingestion: record, normalize, resolve, reconcile.

Every delivery is persisted before anything else happens, then:

1. The payload is normalized into a WebhookObservation
2. The order is resolved by custom_order_id, then by collect_request_id
3. The observation is merged into the order's status ledger
4. The delivery is marked processed

Any failure in steps 1-3 marks the delivery failed with the reason and
counts a retry; nothing on the order or the ledger is touched. Failed
deliveries with a valid signature can be requeued and replayed (admin
action, Celery retry task) until WEBHOOK_MAX_RETRIES is reached.

Usage:
    from payments.webhooks.ingestor import WebhookIngestor

    result = WebhookIngestor.ingest(
        payload,
        headers={"content-type": "application/json"},
        source_ip="203.0.113.5",
        user_agent="vendor/1.0",
        signature_valid=True,
    )
    if not result.success:
        result.delivery.processing_message
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.conf import settings

from core.exceptions import BaseApplicationError
from core.services import BaseService, ServiceResult
from payments.exceptions import OrderNotFoundError
from payments.models import WebhookDelivery
from payments.services.order_store import OrderStore
from payments.services.status_ledger import StatusLedger
from payments.state_machines import WebhookDeliveryStatus
from payments.webhooks.normalizer import normalize_payload

if TYPE_CHECKING:
    from typing import Any

    from payments.models import Order
    from payments.webhooks.normalizer import WebhookObservation


logger = logging.getLogger(__name__)

PROCESSED_MESSAGE = "Webhook processed successfully"
INVALID_SIGNATURE_MESSAGE = "Invalid webhook signature"


class IngestResult(ServiceResult[WebhookDelivery]):
    """
    Outcome of ingesting or replaying one delivery.

    ``data`` is the persisted WebhookDelivery on success and on failure;
    ``success`` says whether the observation reached the ledger.
    """

    @property
    def delivery(self) -> WebhookDelivery:
        return self.data

    @property
    def message(self) -> str:
        return PROCESSED_MESSAGE if self.success else (self.error or "")


class WebhookIngestor(BaseService):
    """Records and processes vendor webhook deliveries."""

    @classmethod
    def ingest(
        cls,
        raw_payload: dict[str, Any],
        *,
        headers: dict[str, str] | None = None,
        source_ip: str | None = None,
        user_agent: str = "",
        signature_valid: bool = False,
    ) -> IngestResult:
        """
        Persist a delivery and process it synchronously.

        When signatures are required and ``signature_valid`` is False, the
        delivery is stored as failed and never processed or replayed.
        """
        delivery = WebhookDelivery.objects.create(
            raw_payload=raw_payload,
            source_ip=source_ip or None,
            user_agent=(user_agent or "")[:500],
            headers=headers or {},
            signature_valid=signature_valid,
            processing_status=WebhookDeliveryStatus.QUEUED,
        )

        logger.info(
            "Webhook received",
            extra={
                "delivery_id": str(delivery.id),
                "source_ip": source_ip,
                "signature_valid": signature_valid,
            },
        )

        if settings.WEBHOOK_REQUIRE_SIGNATURE and not signature_valid:
            delivery.mark_failed(INVALID_SIGNATURE_MESSAGE)
            delivery.save()
            logger.warning(
                "Webhook rejected: invalid signature",
                extra={"delivery_id": str(delivery.id), "source_ip": source_ip},
            )
            return IngestResult.failure(
                INVALID_SIGNATURE_MESSAGE, "INVALID_SIGNATURE", data=delivery
            )

        return cls._process(delivery)

    @classmethod
    def replay(cls, delivery: WebhookDelivery) -> IngestResult:
        """
        Re-run processing for a delivery that was requeued.

        The caller requeues first (``delivery.requeue()``), which enforces
        the signature and retry-ceiling conditions.
        """
        if delivery.processing_status != WebhookDeliveryStatus.QUEUED:
            return IngestResult.failure(
                f"Delivery is {delivery.processing_status}, not queued",
                "NOT_REPLAYABLE",
                data=delivery,
            )

        logger.info(
            "Replaying webhook delivery",
            extra={"delivery_id": str(delivery.id), "retries": delivery.retries},
        )
        return cls._process(delivery)

    # ==========================================================================
    # Processing
    # ==========================================================================

    @classmethod
    def _process(cls, delivery: WebhookDelivery) -> IngestResult:
        try:
            observation = normalize_payload(delivery.raw_payload, now=delivery.received_at)
            delivery.parsed = observation.to_dict()
            delivery.custom_order_id = observation.custom_order_id or ""
            delivery.collect_request_id = observation.collect_request_id or ""
            delivery.transaction_id = observation.transaction_id or ""

            order = cls._resolve_order(observation)
            delivery.order = order

            outcome = StatusLedger.upsert_status(order.id, observation.to_status_observation())
        except BaseApplicationError as e:
            return cls._fail(delivery, e.message, e.error_code)
        except Exception as e:
            logger.exception(
                "Unexpected error processing webhook",
                extra={"delivery_id": str(delivery.id)},
            )
            return cls._fail(delivery, str(e) or e.__class__.__name__, "WEBHOOK_PROCESSING_FAILED")

        delivery.mark_processed(PROCESSED_MESSAGE)
        delivery.save()

        logger.info(
            "Webhook processed",
            extra={
                "delivery_id": str(delivery.id),
                "order_id": str(order.id),
                "custom_order_id": order.custom_order_id,
                "status": outcome.entry.status,
                "ledger_action": outcome.action,
                "transaction_id": outcome.entry.transaction_id,
            },
        )
        return IngestResult.ok(delivery)

    @classmethod
    def _resolve_order(cls, observation: WebhookObservation) -> Order:
        order = OrderStore.find_by_custom_order_id(observation.custom_order_id)
        if order is None:
            order = OrderStore.find_by_collect_request_id(observation.collect_request_id)
        if order is None:
            raise OrderNotFoundError(
                "Order not found for webhook identifiers",
                details={
                    "custom_order_id": observation.custom_order_id,
                    "collect_request_id": observation.collect_request_id,
                },
            )
        return order

    @classmethod
    def _fail(cls, delivery: WebhookDelivery, message: str, error_code: str) -> IngestResult:
        delivery.mark_failed(message)
        delivery.save()
        logger.warning(
            "Webhook processing failed",
            extra={
                "delivery_id": str(delivery.id),
                "error_code": error_code,
                "reason": message,
                "retries": delivery.retries,
            },
        )
        return IngestResult.failure(message, error_code, data=delivery)
