"""
WebhookDelivery model: audit record of every inbound vendor webhook.

A record is written before any parsing happens, so malformed and unsigned
deliveries are kept too. Processing state is managed with django-fsm:

    queued ──mark_processed──▶ processed
    queued ──mark_failed─────▶ failed ──requeue──▶ queued

``requeue`` is only allowed while the delivery had a valid signature and
``retries`` is below WEBHOOK_MAX_RETRIES; after that it stays failed.
Records older than WEBHOOK_RETENTION_DAYS are purged by a Celery task.

Usage:
    delivery = WebhookDelivery.objects.create(raw_payload=payload)
    delivery.mark_failed("No order identifier found")
    delivery.save()

    if can_proceed(delivery.requeue):
        delivery.requeue()
        delivery.save()
"""

from __future__ import annotations

from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone
from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines import WebhookDeliveryStatus

MAX_MESSAGE_LENGTH = 2000


def _replay_allowed(instance: WebhookDelivery) -> bool:
    return instance.signature_valid and instance.retries < settings.WEBHOOK_MAX_RETRIES


class WebhookDeliveryQuerySet(models.QuerySet):
    def replayable(self):
        """Failed, signed deliveries still under the retry ceiling."""
        return self.filter(
            processing_status=WebhookDeliveryStatus.FAILED,
            signature_valid=True,
            retries__lt=settings.WEBHOOK_MAX_RETRIES,
        )

    def expired(self, days: int | None = None):
        days = settings.WEBHOOK_RETENTION_DAYS if days is None else days
        return self.filter(received_at__lt=timezone.now() - timedelta(days=days))


class WebhookDelivery(UUIDPrimaryKeyMixin, BaseModel):
    """
    One inbound webhook delivery and what became of it.

    Fields:
        raw_payload: Body exactly as received ({"_raw": text} if not JSON)
        parsed: Normalized observation, once parsing succeeded
        received_at, source_ip, user_agent, headers: Arrival metadata
        signature_valid: Whether the HMAC signature header verified
        processing_status: FSM state (queued/processed/failed)
        processing_message: Outcome or failure reason
        retries: Failed processing attempts so far
        last_retry_at, processed_at: Replay / success timestamps
        order, custom_order_id, collect_request_id, transaction_id:
            Linkage resolved from the payload
    """

    # ==========================================================================
    # Payload & Arrival Metadata
    # ==========================================================================

    raw_payload = models.JSONField(
        default=dict,
        help_text="Payload as received",
    )

    parsed = models.JSONField(
        null=True,
        blank=True,
        help_text="Normalized observation (null when parsing failed)",
    )

    received_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="When the delivery arrived",
    )

    source_ip = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="Caller IP address",
    )

    user_agent = models.CharField(max_length=500, blank=True, default="")

    headers = models.JSONField(
        default=dict,
        blank=True,
        help_text="Selected request headers",
    )

    signature_valid = models.BooleanField(
        default=False,
        help_text="Whether the HMAC signature verified",
    )

    # ==========================================================================
    # Processing State
    # ==========================================================================

    processing_status = FSMField(
        default=WebhookDeliveryStatus.QUEUED,
        choices=WebhookDeliveryStatus.choices,
        db_index=True,
        help_text="Processing state (managed by FSM)",
    )

    processing_message = models.TextField(blank=True, default="")

    retries = models.PositiveIntegerField(
        default=0,
        help_text="Number of failed processing attempts",
    )

    last_retry_at = models.DateTimeField(null=True, blank=True)
    processed_at = models.DateTimeField(null=True, blank=True)

    # ==========================================================================
    # Resolved Linkage
    # ==========================================================================

    order = models.ForeignKey(
        "payments.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        help_text="Order the delivery resolved to",
    )

    custom_order_id = models.CharField(max_length=100, blank=True, default="", db_index=True)
    collect_request_id = models.CharField(max_length=100, blank=True, default="", db_index=True)
    transaction_id = models.CharField(max_length=100, blank=True, default="")

    objects = WebhookDeliveryQuerySet.as_manager()

    class Meta:
        ordering = ["-received_at"]
        verbose_name = "Webhook Delivery"
        verbose_name_plural = "Webhook Deliveries"
        indexes = [
            models.Index(
                fields=["processing_status", "received_at"],
                name="webhook_status_received_idx",
            ),
        ]

    def __str__(self) -> str:
        ref = self.custom_order_id or self.collect_request_id or "unresolved"
        return f"WebhookDelivery({ref}, {self.processing_status})"

    @property
    def is_processed(self) -> bool:
        return self.processing_status == WebhookDeliveryStatus.PROCESSED

    @property
    def has_max_retries(self) -> bool:
        return self.retries >= settings.WEBHOOK_MAX_RETRIES

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=processing_status,
        source=WebhookDeliveryStatus.QUEUED,
        target=WebhookDeliveryStatus.PROCESSED,
    )
    def mark_processed(self, message: str = "") -> None:
        """Observation applied. Caller must save()."""
        self.processing_message = message
        self.processed_at = timezone.now()

    @transition(
        field=processing_status,
        source=WebhookDeliveryStatus.QUEUED,
        target=WebhookDeliveryStatus.FAILED,
    )
    def mark_failed(self, message: str) -> None:
        """Processing failed; counts towards the retry ceiling. Caller must save()."""
        self.processing_message = message[:MAX_MESSAGE_LENGTH]
        self.retries += 1

    @transition(
        field=processing_status,
        source=WebhookDeliveryStatus.FAILED,
        target=WebhookDeliveryStatus.QUEUED,
        conditions=[_replay_allowed],
    )
    def requeue(self) -> None:
        """Put a failed delivery back in the queue for replay. Caller must save()."""
        self.last_retry_at = timezone.now()
