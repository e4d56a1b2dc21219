"""
Core views providing infrastructure endpoints.

This module contains views that are not part of the payment domain but are
needed to operate it, such as health checks.
"""

import logging

from django.conf import settings
from django.core.cache import cache
from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Health check endpoint for load balancers and orchestration.

    Returns:
        JsonResponse with component health:
        - status: "healthy" or "unhealthy"
        - database: "connected" or "disconnected"
        - cache: "connected" or "disconnected"
        - vendor: "configured" or "unconfigured"

    HTTP Status Codes:
        200: Database reachable
        503: Database unreachable

    Cache and vendor configuration are reported but never fail the check;
    the reconciliation pipeline keeps accepting webhooks without them.
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "cache": "unknown",
        "vendor": "unconfigured",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        logger.exception("Health check: database unreachable")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    try:
        cache.set("health_check", "ok", timeout=1)
        health_status["cache"] = (
            "connected" if cache.get("health_check") == "ok" else "disconnected"
        )
    except Exception:  # noqa: BLE001 - any backend error means "disconnected"
        logger.warning("Health check: cache unreachable", exc_info=True)
        health_status["cache"] = "disconnected"

    if settings.VENDOR_BASE_URL and settings.VENDOR_SIGNING_KEY:
        health_status["vendor"] = "configured"

    return JsonResponse(health_status, status=200 if is_healthy else 503)
