import uuid

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import django_fsm
from decimal import Decimal
from django.db import migrations, models


PAYMENT_STATUS_CHOICES = [
    ("created", "Created"),
    ("pending", "Pending"),
    ("completed", "Completed"),
    ("failed", "Failed"),
    ("cancelled", "Cancelled"),
    ("refunded", "Refunded"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "custom_order_id",
                    models.CharField(
                        help_text="Externally visible order identifier (unique)",
                        max_length=100,
                        unique=True,
                    ),
                ),
                (
                    "school_id",
                    models.CharField(
                        db_index=True,
                        help_text="School that owns this order",
                        max_length=100,
                    ),
                ),
                (
                    "trustee_id",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Trustee (school group) identifier, optional",
                        max_length=100,
                    ),
                ),
                (
                    "student_info",
                    models.JSONField(
                        default=dict, help_text="Student payload: {name, id, email}"
                    ),
                ),
                (
                    "gateway_name",
                    models.CharField(
                        default="edviron",
                        help_text="Payment gateway used",
                        max_length=50,
                    ),
                ),
                (
                    "amount",
                    models.DecimalField(
                        decimal_places=2,
                        help_text="Requested amount",
                        max_digits=12,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0.01"))
                        ],
                    ),
                ),
                (
                    "callback_url",
                    models.URLField(
                        help_text="Return URL passed to the vendor", max_length=500
                    ),
                ),
                (
                    "collect_request_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Vendor collect request ID",
                        max_length=100,
                        null=True,
                    ),
                ),
                (
                    "vendor_response",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Vendor response to the create collect request call",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=PAYMENT_STATUS_CHOICES,
                        db_index=True,
                        default="created",
                        help_text="Latest known status (mirrors the ledger, not authoritative)",
                        max_length=20,
                    ),
                ),
            ],
            options={
                "verbose_name": "Order",
                "verbose_name_plural": "Orders",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["school_id", "created_at"],
                        name="order_school_created_idx",
                    ),
                    models.Index(
                        fields=["school_id", "status"],
                        name="order_school_status_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="order_amount_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderStatus",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "order_amount",
                    models.DecimalField(
                        decimal_places=2, help_text="Expected amount", max_digits=12
                    ),
                ),
                (
                    "transaction_amount",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Settled amount, if reported",
                        max_digits=12,
                        null=True,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=PAYMENT_STATUS_CHOICES,
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("payment_mode", models.CharField(blank=True, default="", max_length=50)),
                (
                    "payment_details",
                    models.CharField(blank=True, default="", max_length=255),
                ),
                (
                    "bank_reference",
                    models.CharField(blank=True, default="", max_length=100),
                ),
                ("payment_message", models.TextField(blank=True, default="")),
                ("error_message", models.TextField(blank=True, default="")),
                ("gateway", models.CharField(blank=True, default="", max_length=50)),
                (
                    "transaction_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="Vendor transaction ID (merge key)",
                        max_length=100,
                        null=True,
                    ),
                ),
                (
                    "payment_time",
                    models.DateTimeField(
                        blank=True,
                        help_text="When settlement occurred or was last confirmed",
                        null=True,
                    ),
                ),
                (
                    "vendor_payload",
                    models.JSONField(
                        blank=True, default=dict, help_text="Raw observation as received"
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        help_text="Order this observation belongs to",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to="payments.order",
                    ),
                ),
            ],
            options={
                "verbose_name": "Order Status",
                "verbose_name_plural": "Order Statuses",
                "db_table": "payments_order_status",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["order", "payment_time"],
                        name="order_status_order_time_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("transaction_id__isnull", False)),
                        fields=("order", "transaction_id"),
                        name="order_status_unique_transaction",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="WebhookDelivery",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "raw_payload",
                    models.JSONField(default=dict, help_text="Payload as received"),
                ),
                (
                    "parsed",
                    models.JSONField(
                        blank=True,
                        help_text="Normalized observation (null when parsing failed)",
                        null=True,
                    ),
                ),
                (
                    "received_at",
                    models.DateTimeField(
                        db_index=True,
                        default=django.utils.timezone.now,
                        help_text="When the delivery arrived",
                    ),
                ),
                (
                    "source_ip",
                    models.GenericIPAddressField(
                        blank=True, help_text="Caller IP address", null=True
                    ),
                ),
                ("user_agent", models.CharField(blank=True, default="", max_length=500)),
                (
                    "headers",
                    models.JSONField(
                        blank=True, default=dict, help_text="Selected request headers"
                    ),
                ),
                (
                    "signature_valid",
                    models.BooleanField(
                        default=False, help_text="Whether the HMAC signature verified"
                    ),
                ),
                (
                    "processing_status",
                    django_fsm.FSMField(
                        choices=[
                            ("queued", "Queued"),
                            ("processed", "Processed"),
                            ("failed", "Failed"),
                        ],
                        db_index=True,
                        default="queued",
                        help_text="Processing state (managed by FSM)",
                        max_length=50,
                    ),
                ),
                ("processing_message", models.TextField(blank=True, default="")),
                (
                    "retries",
                    models.PositiveIntegerField(
                        default=0, help_text="Number of failed processing attempts"
                    ),
                ),
                ("last_retry_at", models.DateTimeField(blank=True, null=True)),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "custom_order_id",
                    models.CharField(blank=True, db_index=True, default="", max_length=100),
                ),
                (
                    "collect_request_id",
                    models.CharField(blank=True, db_index=True, default="", max_length=100),
                ),
                (
                    "transaction_id",
                    models.CharField(blank=True, default="", max_length=100),
                ),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        help_text="Order the delivery resolved to",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="payments.order",
                    ),
                ),
            ],
            options={
                "verbose_name": "Webhook Delivery",
                "verbose_name_plural": "Webhook Deliveries",
                "ordering": ["-received_at"],
                "indexes": [
                    models.Index(
                        fields=["processing_status", "received_at"],
                        name="webhook_status_received_idx",
                    ),
                ],
            },
        ),
    ]
