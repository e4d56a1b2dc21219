"""
Payments app configuration.

This app provides the payment reconciliation core:
- Orders and their status ledger
- Vendor collect-request client
- Webhook ingestion and replay
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self):
        from . import checks  # noqa: F401
