"""
Celery tasks for payment processing.

- resolve_proof_of_payment: attaches an invoice or receipt to a freshly
  created entitlement; retried with backoff while Stripe fails or nothing
  is found yet
- resolve_missing_proofs: periodic sweep (celery-beat) re-enqueuing
  entitlements whose proof is still missing

Usage:
    from payments.tasks import resolve_proof_of_payment

    resolve_proof_of_payment.apply_async(
        args=["membership", str(membership.id)],
        countdown=settings.PROOF_OF_PAYMENT_DELAY_SECONDS,
    )
"""

from __future__ import annotations

import logging
from datetime import timedelta

from celery import shared_task
from django.conf import settings
from django.utils import timezone

from entitlements.states import TransactionKind
from payments.exceptions import ProofOfPaymentUnavailableError, StripeError

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_PROOF_RETRIES = getattr(settings, "PROOF_OF_PAYMENT_MAX_RETRIES", 5)
SWEEP_MAX_AGE_DAYS = getattr(settings, "PROOF_OF_PAYMENT_SWEEP_MAX_AGE_DAYS", 30)
SWEEP_BATCH_SIZE = 200


# =============================================================================
# Proof of Payment Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(StripeError, ProofOfPaymentUnavailableError),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_PROOF_RETRIES},
    acks_late=True,
)
def resolve_proof_of_payment(self, kind: str, entitlement_id: str) -> dict:
    """
    Resolve and attach the proof of payment for one entitlement.

    Idempotent: an entitlement that already carries a proof returns at once.
    A receipt counts as resolved. An exhausted chain raises so Celery retries
    it; after the last retry the periodic sweep picks it up again.

    Args:
        kind: TransactionKind value ("membership" | "training")
        entitlement_id: UUID of the Membership or TrainingPurchase

    Returns:
        Dict with the resolution status
    """
    # Import here to avoid circular imports
    from payments.services import ProofOfPaymentResolver

    transaction_kind = TransactionKind.parse(kind)
    logger.info(
        "Resolving proof of payment",
        extra={
            "kind": transaction_kind.value,
            "entitlement_id": entitlement_id,
            "attempt": self.request.retries + 1,
        },
    )

    result = ProofOfPaymentResolver().resolve_for_entitlement(transaction_kind, entitlement_id)
    if not result.success:
        logger.warning(
            f"Proof of payment skipped: {result.error}",
            extra={"kind": transaction_kind.value, "entitlement_id": entitlement_id},
        )
        return {"status": "not_found", "entitlement_id": entitlement_id}

    resolution = result.data
    if not resolution.resolved:
        raise ProofOfPaymentUnavailableError(
            "Proof of payment not available yet",
            details={"kind": transaction_kind.value, "entitlement_id": entitlement_id},
        )

    return {
        "status": "resolved",
        "entitlement_id": entitlement_id,
        "strategy": resolution.strategy,
        "proof_reference": resolution.proof.reference,
    }


@shared_task
def resolve_missing_proofs(max_age_days: int | None = None) -> dict:
    """
    Re-enqueue entitlements still missing a proof of payment.

    Runs periodically via celery-beat. Only entitlements younger than
    `max_age_days` are retried; older ones are left to manual remediation.

    Returns:
        Dict with the number of tasks queued per kind
    """
    # Import here to avoid circular imports
    from entitlements.services import EntitlementService

    since = timezone.now() - timedelta(days=max_age_days or SWEEP_MAX_AGE_DAYS)
    service = EntitlementService()
    queued: dict[str, int] = {}

    for kind in TransactionKind:
        ids = list(
            service.missing_proofs(kind, since)
            .order_by("created_at")
            .values_list("pk", flat=True)[:SWEEP_BATCH_SIZE]
        )
        for entitlement_id in ids:
            resolve_proof_of_payment.delay(kind.value, str(entitlement_id))
        queued[kind.value] = len(ids)

    if any(queued.values()):
        logger.info("Re-enqueued missing proofs of payment", extra={"queued": queued})

    return {"status": "completed", "queued": queued}
