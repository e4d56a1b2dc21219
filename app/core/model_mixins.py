"""
Model mixins combined with BaseModel.

Available Mixins:
    UUIDPrimaryKeyMixin: Use UUID as primary key

Usage:
    class WebhookDelivery(UUIDPrimaryKeyMixin, BaseModel):
        raw_payload = models.JSONField()
"""

from __future__ import annotations

import uuid

from django.db import models


class UUIDPrimaryKeyMixin(models.Model):
    """
    Use a random UUID instead of an auto-increment integer as primary key.

    Order ids are handed out to clients (``order_id`` in the create-payment
    response), so they must not be guessable or reveal volume.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier (UUID v4)",
    )

    class Meta:
        abstract = True
