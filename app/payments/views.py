"""
DRF views for the payments app.

Endpoints:
    POST /api/v1/create-checkout-session/ - Create a hosted checkout session
    POST /api/v1/process-payment-success/ - Client-side payment confirmation
    POST /api/v1/webhook/ - Stripe webhook (payments.webhooks.views)
    GET /api/v1/receipt/<reference>/ - Invoice or receipt for a payment
    POST /api/v1/resolve-proof/<kind>/<entitlement_id>/ - Re-run proof resolution
    GET /api/v1/training-details/<price_id>/<user_id>/ - Member-adjusted price

Security:
    - Endpoints are public, like the checkout flow they serve
    - The webhook verifies the Stripe signature instead
"""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import BaseApplicationError
from entitlements.states import TransactionKind
from payments.serializers import (
    CreateCheckoutSessionSerializer,
    ProcessPaymentSuccessSerializer,
    TrainingDetailsSerializer,
)
from payments.services import (
    CheckoutService,
    ProofOfPaymentResolver,
    ReconciliationService,
)

logger = logging.getLogger(__name__)

FAILURE_STATUS = {
    "PAYMENT_NOT_CONFIRMED": status.HTTP_400_BAD_REQUEST,
    "ENTITLEMENT_NOT_FOUND": status.HTTP_404_NOT_FOUND,
}


def error_response(error: BaseApplicationError) -> Response:
    """Render an application error with its own HTTP status."""
    return Response(error.to_dict(), status=error.http_status)


def failure_response(result) -> Response:
    return Response(
        result.to_response(),
        status=FAILURE_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
    )


class CreateCheckoutSessionView(APIView):
    """
    Create a Stripe Checkout session.

    POST /api/v1/create-checkout-session/

    Request body:
        {
            "priceId": "price_xxx",
            "type": "membership" | "training",
            "userType": "user" | "association",
            "userId": "<uuid>",
            "associationId": "<uuid>",
            "statusId": 2,
            "trainingId": "pssm",
            "successUrl": "https://...",
            "cancelUrl": "https://..."
        }

    Returns:
        200 {"url": ..., "sessionId": ...}
        400 missing or invalid parameters
    """

    permission_classes = [AllowAny]

    def post(self, request):
        serializer = CreateCheckoutSessionSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"error": "Invalid checkout request", "details": serializer.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            result = CheckoutService().create_checkout_session(serializer.to_checkout_request())
        except BaseApplicationError as e:
            logger.warning(
                f"Checkout session not created: {e.message}",
                extra={"error_code": e.error_code},
            )
            return error_response(e)

        return Response({"url": result.data.url, "sessionId": result.data.session_id})


class ProcessPaymentSuccessView(APIView):
    """
    Confirm a payment from the client redirect.

    POST /api/v1/process-payment-success/

    Request body:
        {"sessionId": "cs_xxx"}

    Returns:
        200 with the reconciliation outcome (created=false on repeat)
        400 payment not confirmed, invalid metadata
        404 unknown session or subject
        500 Stripe or database failure
    """

    permission_classes = [AllowAny]

    def post(self, request):
        serializer = ProcessPaymentSuccessSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(
                {"error": "sessionId is required", "details": serializer.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )

        session_id = serializer.validated_data["sessionId"]
        try:
            result = ReconciliationService().confirm_from_client(session_id)
        except BaseApplicationError as e:
            log = logger.error if e.http_status >= 500 else logger.warning
            log(
                f"Payment confirmation failed: {e.message}",
                extra={"session_id": session_id, "error_code": e.error_code},
            )
            return error_response(e)

        if not result.success:
            return failure_response(result)

        return Response({"success": True, **result.data.to_dict()})


class ReceiptView(APIView):
    """
    Invoice or charge receipt for an invoice id or a payment intent id.

    GET /api/v1/receipt/<reference>/

    Returns:
        200 proof object (receipt_type "stripe_invoice" | "charge_receipt")
        404 with payment info and a remediation suggestion
    """

    permission_classes = [AllowAny]

    def get(self, request, reference):
        try:
            receipt = ProofOfPaymentResolver().get_receipt(reference)
        except BaseApplicationError as e:
            if e.http_status == status.HTTP_404_NOT_FOUND:
                return Response(
                    {"error": e.message, **e.details},
                    status=status.HTTP_404_NOT_FOUND,
                )
            return error_response(e)
        return Response(receipt)


class ResolveProofView(APIView):
    """
    Re-run proof-of-payment resolution for one entitlement.

    POST /api/v1/resolve-proof/<kind>/<entitlement_id>/

    Idempotent: an entitlement that already has a proof returns it unchanged.
    """

    permission_classes = [AllowAny]

    def post(self, request, kind, entitlement_id):
        try:
            transaction_kind = TransactionKind.parse(kind)
            result = ProofOfPaymentResolver().resolve_for_entitlement(
                transaction_kind, entitlement_id
            )
        except BaseApplicationError as e:
            return error_response(e)

        if not result.success:
            return failure_response(result)
        return Response(result.data.to_dict())


class TrainingDetailsView(APIView):
    """
    Training details with the price this user pays.

    GET /api/v1/training-details/<price_id>/<user_id>/
    """

    permission_classes = [AllowAny]

    def get(self, request, price_id, user_id):
        try:
            details = CheckoutService().training_details(price_id, user_id)
        except BaseApplicationError as e:
            return error_response(e)
        return Response(TrainingDetailsSerializer(details).data)
