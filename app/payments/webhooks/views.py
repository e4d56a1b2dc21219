"""
Webhook endpoint for vendor payment notifications.

The view:
1. Verifies the HMAC signature over the raw body
2. Hands the decoded payload to WebhookIngestor, which records the
   delivery and reconciles it into the status ledger synchronously
3. Answers 200 / 400 / 401 with a JSON body; never a 5xx

Mounted at /api/v1/webhook/ and at the bare /webhook path that vendor
dashboards are configured with.
"""

from __future__ import annotations

import json
import logging

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_ipv46_address
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.helpers import get_client_ip
from payments.webhooks.ingestor import WebhookIngestor
from payments.webhooks.signatures import SIGNATURE_HEADER, verify_signature

logger = logging.getLogger(__name__)

# Request headers kept on the delivery record
RECORDED_HEADERS = (
    "Content-Type",
    "Content-Length",
    "User-Agent",
    "X-Forwarded-For",
    "X-Request-Id",
    SIGNATURE_HEADER,
)


class VendorWebhookView(APIView):
    """
    Receive vendor payment webhooks.

    POST: Verify, record and reconcile one delivery

    URL: /api/v1/webhook/
    """

    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = []

    @extend_schema(
        summary="Vendor payment webhook",
        tags=["Webhooks"],
        request={"application/json": dict},
        parameters=[
            OpenApiParameter(
                name=SIGNATURE_HEADER,
                location=OpenApiParameter.HEADER,
                required=True,
                description="Hex HMAC-SHA256 of the raw body, optionally 'sha256=' prefixed",
            ),
        ],
        responses={
            200: OpenApiResponse(description="Webhook processed"),
            400: OpenApiResponse(description="Webhook processing failed"),
            401: OpenApiResponse(description="Invalid webhook signature"),
        },
    )
    def post(self, request):
        body = request.body
        signature_valid = verify_signature(
            body,
            request.headers.get(SIGNATURE_HEADER),
            settings.WEBHOOK_SIGNING_SECRET,
        )

        result = WebhookIngestor.ingest(
            self._decode(body),
            headers={
                name: request.headers[name]
                for name in RECORDED_HEADERS
                if name in request.headers
            },
            source_ip=self._source_ip(request),
            user_agent=request.headers.get("User-Agent", ""),
            signature_valid=signature_valid,
        )

        if result.success:
            return Response(
                {"success": True, "message": result.message},
                status=status.HTTP_200_OK,
            )

        if result.error_code == "INVALID_SIGNATURE":
            return Response(
                {
                    "success": False,
                    "message": result.message,
                    "code": "INVALID_SIGNATURE",
                },
                status=status.HTTP_401_UNAUTHORIZED,
            )

        return Response(
            {
                "success": False,
                "message": "Webhook processing failed",
                "code": "WEBHOOK_PROCESSING_FAILED",
                "detail": result.message,
            },
            status=status.HTTP_400_BAD_REQUEST,
        )

    @staticmethod
    def _decode(body: bytes):
        """JSON body as-is; anything undecodable is kept as text."""
        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.warning("Webhook body is not valid JSON", extra={"size": len(body)})
            return {"_raw": body.decode("utf-8", errors="replace")}

    @staticmethod
    def _source_ip(request) -> str | None:
        ip = get_client_ip(request)
        try:
            validate_ipv46_address(ip)
        except DjangoValidationError:
            return None
        return ip
