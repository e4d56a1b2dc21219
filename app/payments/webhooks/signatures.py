"""
HMAC signatures for inbound vendor webhooks.

The vendor signs the raw request body with HMAC-SHA256 using the shared
WEBHOOK_SIGNING_SECRET and sends the hex digest in ``X-Webhook-Signature``,
optionally prefixed with ``sha256=``.
"""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_HEADER = "X-Webhook-Signature"
SIGNATURE_PREFIX = "sha256="


def compute_signature(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, header_value: str | None, secret: str) -> bool:
    """
    Check a signature header against the raw body in constant time.

    A missing header or an unset secret never verifies.
    """
    if not header_value or not secret:
        return False

    provided = header_value.strip()
    if provided.lower().startswith(SIGNATURE_PREFIX):
        provided = provided[len(SIGNATURE_PREFIX) :]

    expected = compute_signature(body, secret)
    return hmac.compare_digest(expected.encode("ascii"), provided.lower().encode("utf-8"))
