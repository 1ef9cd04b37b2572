"""
Webhook endpoint view for Stripe.

The view verifies the signature, then hands the event to
ReconciliationService.confirm_from_webhook, which records it and
reconciles in-request. Only a bad signature or payload is reported to
Stripe as an error; reconciliation failures are recorded on the
WebhookEvent row and acknowledged.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhook/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.exceptions import WebhookSignatureError
from payments.services import ReconciliationService

logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> JsonResponse:
    """
    Receive a Stripe webhook event.

    Returns:
        200 {"received": true} for any verified event (new or duplicate)
        400 with the error body for a missing or invalid signature
    """
    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    try:
        result = ReconciliationService().confirm_from_webhook(payload, signature)
    except WebhookSignatureError as e:
        logger.warning(
            f"Webhook rejected: {e.message}",
            extra={"error_code": e.error_code},
        )
        return JsonResponse(e.to_dict(), status=e.http_status)

    return JsonResponse({"received": True, **(result.data or {})})
