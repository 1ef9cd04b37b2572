"""
Payment services.

This module provides:
- CheckoutService: Creates hosted checkout sessions and prices trainings
- ReconciliationService: Turns a paid session into exactly one entitlement,
  from either the client confirmation or the webhook
- ProofOfPaymentResolver: Finds or creates the invoice / receipt for an
  entitlement

Usage:
    from payments.services import ReconciliationService

    result = ReconciliationService().confirm_from_client(session_id)
    if not result:
        return Response(result.to_response(), status=400)

    from payments.services import ProofOfPaymentResolver

    receipt = ProofOfPaymentResolver().get_receipt("in_123")
"""

from payments.services.checkout import (
    CheckoutRequest,
    CheckoutService,
    CheckoutSession,
)
from payments.services.proof_of_payment import (
    ProofOfPaymentResolver,
    ProofResolution,
    ResolutionStrategy,
)
from payments.services.reconciliation import (
    CeleryProofScheduler,
    ReconciliationOutcome,
    ReconciliationService,
    VerifiedSession,
)

__all__ = [
    "CeleryProofScheduler",
    "CheckoutRequest",
    "CheckoutService",
    "CheckoutSession",
    "ProofOfPaymentResolver",
    "ProofResolution",
    "ReconciliationOutcome",
    "ReconciliationService",
    "ResolutionStrategy",
    "VerifiedSession",
]
