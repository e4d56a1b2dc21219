"""
System checks for payments configuration.
"""

from django.conf import settings
from django.core.checks import Error, Tags, register


@register(Tags.security)
def check_webhook_signing(app_configs, **kwargs):
    """Signatures cannot be required without a secret to verify them."""
    if settings.WEBHOOK_REQUIRE_SIGNATURE and not settings.WEBHOOK_SIGNING_SECRET:
        return [
            Error(
                "WEBHOOK_REQUIRE_SIGNATURE is on but WEBHOOK_SIGNING_SECRET is empty.",
                hint=(
                    "Set WEBHOOK_SIGNING_SECRET to the vendor's shared secret, "
                    "or set WEBHOOK_REQUIRE_SIGNATURE=False."
                ),
                id="payments.E001",
            )
        ]
    return []
