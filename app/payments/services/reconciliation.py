"""
Payment reconciliation.

One service turns a paid checkout session into exactly one entitlement,
whichever channel reports the payment first:

    confirm_from_client(session_id)         POST /process-payment-success/
    confirm_from_webhook(payload, signature) POST /webhook/

Both converge on reconcile_session(session_id):
    verify_session -> idempotent create -> (created only) schedule proof,
    propagate status, send confirmation

The channels are unordered and at least once. No lock is taken: the
entitlement natural keys are the only synchronization point, and the side
effects only run for the call that actually created the row.

Usage:
    from payments.services import ReconciliationService

    result = ReconciliationService().confirm_from_client("cs_test_123")
    if result.success:
        entitlement_id = result.data.entitlement_id
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction
from kombu.exceptions import OperationalError

from accounts.models import SubjectType
from accounts.services import StatusPropagator, SubjectService
from core.services import BaseService, ServiceResult
from entitlements.services import EntitlementOutcome, EntitlementService
from entitlements.states import TransactionKind
from notifications.services import ConfirmationNotifier
from payments.adapters import CheckoutSessionResult, StripeAdapter
from payments.exceptions import (
    CheckoutSessionNotFoundError,
    StripeResourceMissingError,
    WebhookSignatureError,
)
from payments.metadata import SessionMetadata, require
from payments.models import WebhookEvent

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class VerifiedSession:
    """A paid checkout session with its parsed metadata."""

    session: CheckoutSessionResult
    metadata: SessionMetadata

    @property
    def amount_paid(self) -> Decimal:
        return self.session.amount

    @property
    def currency(self) -> str:
        return self.session.currency


@dataclass
class ReconciliationOutcome:
    """
    What reconcile_session did.

    created is False for a repeat delivery; side-effect flags are then None.
    status_updated and notification_failed report best-effort steps that
    never fail the reconciliation.
    """

    session_id: str
    kind: TransactionKind
    entitlement_id: Any
    created: bool
    subject_type: SubjectType
    subject_id: Any
    amount: Decimal
    proof_scheduled: bool = False
    status_updated: bool | None = None
    notification_failed: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "type": self.kind.value,
            "entitlement_id": str(self.entitlement_id),
            "created": self.created,
            "subject_type": self.subject_type.value,
            "subject_id": str(self.subject_id),
            "amount": str(self.amount),
            "proof_scheduled": self.proof_scheduled,
            "status_updated": self.status_updated,
            "notification_failed": self.notification_failed,
        }


# =============================================================================
# Collaborators
# =============================================================================


class CeleryProofScheduler:
    """
    Enqueues proof resolution once the entitlement row is committed.

    A broker failure is logged and swallowed: the entitlement is already
    committed and the resolve_missing_proofs sweep picks the proof up later.
    """

    def schedule(self, kind: TransactionKind, entitlement_id) -> bool:
        # Import here to avoid circular imports
        from payments.tasks import resolve_proof_of_payment

        countdown = getattr(settings, "PROOF_OF_PAYMENT_DELAY_SECONDS", 5)
        args = [kind.value, str(entitlement_id)]

        def enqueue() -> None:
            try:
                resolve_proof_of_payment.apply_async(args=args, countdown=countdown)
            except OperationalError as e:
                logger.warning(
                    f"Proof of payment not enqueued, left to the sweep: {e}",
                    extra={"kind": args[0], "entitlement_id": args[1]},
                )
                enqueued.append(False)

        enqueued: list[bool] = []
        transaction.on_commit(enqueue)
        return not enqueued


# =============================================================================
# Reconciliation Service
# =============================================================================


class ReconciliationService(BaseService):
    """
    The single reconciliation path for both ingestion channels.

    Collaborators are injected so tests can substitute fakes; each defaults
    to the production implementation.
    """

    def __init__(
        self,
        stripe_adapter: type[StripeAdapter] | None = None,
        entitlement_service: EntitlementService | None = None,
        status_propagator: StatusPropagator | None = None,
        notifier: ConfirmationNotifier | None = None,
        proof_scheduler: CeleryProofScheduler | None = None,
        subject_service: type[SubjectService] | None = None,
    ):
        self.stripe_adapter = stripe_adapter or StripeAdapter
        self.entitlement_service = entitlement_service or EntitlementService()
        self.status_propagator = status_propagator or StatusPropagator()
        self.notifier = notifier or ConfirmationNotifier()
        self.proof_scheduler = proof_scheduler or CeleryProofScheduler()
        self.subject_service = subject_service or SubjectService

    # ------------------------------------------------------------------
    # Session verification
    # ------------------------------------------------------------------

    def verify_session(self, session_id: str) -> ServiceResult[VerifiedSession]:
        """
        Retrieve a session and check that it is paid.

        Returns:
            Failure PAYMENT_NOT_CONFIRMED when the session is not paid yet

        Raises:
            ValidationError: Missing session id or unusable metadata
            CheckoutSessionNotFoundError: Stripe has no such session
            StripeError: Stripe call failed
        """
        require(session_id, "sessionId")
        try:
            session = self.stripe_adapter.retrieve_checkout_session(session_id)
        except StripeResourceMissingError as e:
            raise CheckoutSessionNotFoundError(
                f"Checkout session not found: {session_id}",
                details={"session_id": session_id},
            ) from e

        if not session.is_paid:
            self.get_logger().info(
                "Checkout session not paid yet",
                extra={"session_id": session_id, "payment_status": session.payment_status},
            )
            return ServiceResult.failure(
                f"Payment not confirmed: {session.payment_status}",
                error_code="PAYMENT_NOT_CONFIRMED",
                details={"session_id": session_id, "payment_status": session.payment_status},
            )

        metadata = SessionMetadata.from_dict(session.metadata)
        return ServiceResult.success(VerifiedSession(session=session, metadata=metadata))

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile_session(self, session_id: str) -> ServiceResult[ReconciliationOutcome]:
        """
        Create the entitlement paid by a session, at most once.

        A repeat call returns the existing entitlement with created=False.

        Raises:
            ValidationError, CheckoutSessionNotFoundError, StripeError,
            NotFoundError (unknown subject), EntitlementPersistenceError
        """
        verified = self.verify_session(session_id)
        if not verified:
            return verified

        session = verified.data.session
        metadata = verified.data.metadata
        log_context = {
            "session_id": session_id,
            "amount": str(session.amount),
            **metadata.log_context(),
        }

        outcome = self._create_entitlement(verified.data)
        result = ReconciliationOutcome(
            session_id=session_id,
            kind=outcome.kind,
            entitlement_id=outcome.entitlement_id,
            created=outcome.created,
            subject_type=outcome.subject_type,
            subject_id=outcome.subject_id,
            amount=session.amount,
        )

        if not outcome.created:
            self.get_logger().info(
                "Session already reconciled",
                extra={**log_context, "entitlement_id": str(outcome.entitlement_id)},
            )
            return ServiceResult.success(result)

        result.proof_scheduled = self.proof_scheduler.schedule(
            outcome.kind, outcome.entitlement_id
        )

        if outcome.kind is TransactionKind.MEMBERSHIP and outcome.subject_type is SubjectType.USER:
            result.status_updated = self.status_propagator.set_status_for_membership(
                outcome.subject_id, outcome.entitlement.status
            )

        result.notification_failed = self._notify(outcome, log_context)

        self.get_logger().info(
            "Session reconciled",
            extra={
                **log_context,
                "entitlement_id": str(outcome.entitlement_id),
                "status_updated": result.status_updated,
                "notification_failed": result.notification_failed,
            },
        )
        return ServiceResult.success(result)

    def confirm_from_client(self, session_id: str) -> ServiceResult[ReconciliationOutcome]:
        """Client-driven confirmation; errors propagate to the view."""
        self.get_logger().info("Client payment confirmation", extra={"session_id": session_id})
        return self.reconcile_session(session_id)

    def confirm_from_webhook(self, payload: bytes, signature: str) -> ServiceResult[dict]:
        """
        Verify, record and dispatch a Stripe webhook delivery.

        Every reconciliation error is logged and recorded on the WebhookEvent
        row; the delivery is still acknowledged so that business failures do
        not drive Stripe's retries.

        Raises:
            WebhookSignatureError: Bad signature or payload (the only failure
                surfaced to Stripe)
        """
        # Import here to avoid circular imports
        from payments.webhooks.handlers import dispatch_webhook

        event = self.stripe_adapter.verify_webhook_signature(payload, signature)
        stripe_event_id = event.get("id")
        event_type = event.get("type")
        if not stripe_event_id or not event_type:
            raise WebhookSignatureError(
                "Webhook event is missing its id or type",
                error_code="INVALID_PAYLOAD",
            )

        webhook_event, created = WebhookEvent.objects.get_or_create(
            stripe_event_id=stripe_event_id,
            defaults={"event_type": event_type, "payload": event},
        )
        if not created and webhook_event.is_processed:
            self.get_logger().info(
                "Webhook already processed, acknowledging",
                extra={"stripe_event_id": stripe_event_id, "event_type": event_type},
            )
            return ServiceResult.success({"duplicate": True, "processed": True})

        webhook_event.mark_processing()
        try:
            result = dispatch_webhook(webhook_event, self)
        except Exception as e:
            webhook_event.mark_failed(f"{type(e).__name__}: {e}")
            self.get_logger().error(
                f"Webhook reconciliation failed: {e}",
                extra=_event_log_context(webhook_event),
                exc_info=True,
            )
            return ServiceResult.success({"duplicate": not created, "processed": False})

        if result.success:
            webhook_event.mark_processed()
        else:
            webhook_event.mark_failed(result.error or "Handler returned failure")
            self.get_logger().warning(
                f"Webhook handler failed: {result.error}",
                extra={**_event_log_context(webhook_event), "error_code": result.error_code},
            )
        return ServiceResult.success({"duplicate": not created, "processed": result.success})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _create_entitlement(self, verified: VerifiedSession) -> EntitlementOutcome:
        session = verified.session
        metadata = verified.metadata

        if metadata.kind is TransactionKind.MEMBERSHIP:
            return self.entitlement_service.get_or_create_membership(
                session_id=session.id,
                subject_type=metadata.subject_type,
                subject_id=metadata.subject_id,
                price_id=metadata.price_id,
                amount_paid=session.amount,
                currency=session.currency,
                status_id=metadata.status_id,
                payment_intent_id=session.payment_intent_id,
            )

        if metadata.kind is TransactionKind.TRAINING:
            is_member = metadata.is_member
            if is_member is None:
                is_member = self.subject_service.is_active_member(metadata.subject_id)
            return self.entitlement_service.get_or_create_training_purchase(
                session_id=session.id,
                user_id=metadata.subject_id,
                training_id=metadata.training_id,
                price_id=metadata.price_id,
                amount_paid=session.amount,
                original_price=metadata.original_price,
                discounted_price=metadata.discounted_price,
                is_member=is_member,
                duration_hours=metadata.duration_hours,
                payment_intent_id=session.payment_intent_id,
            )

        raise ValueError(f"Unhandled transaction kind: {metadata.kind}")

    def _notify(self, outcome: EntitlementOutcome, log_context: dict[str, Any]) -> bool:
        """Send the confirmation; returns True when it could not be delivered."""
        try:
            delivery = self.notifier.notify(outcome)
        except Exception:
            self.get_logger().exception("Confirmation email crashed", extra=log_context)
            return True
        if not delivery.success:
            self.get_logger().warning(
                f"Confirmation email not delivered: {delivery.error}",
                extra={**log_context, "attempts": delivery.attempts},
            )
        return not delivery.success


def _event_log_context(webhook_event: WebhookEvent) -> dict[str, Any]:
    """Manual-reconciliation trail: event, session, subject and amount."""
    obj = webhook_event.get_object()
    metadata = obj.get("metadata") or {}
    amount = obj.get("amount_total", obj.get("amount"))
    return {
        "stripe_event_id": webhook_event.stripe_event_id,
        "event_type": webhook_event.event_type,
        "session_id": obj.get("id"),
        "transaction_type": metadata.get("type") or metadata.get("transactionType"),
        "user_id": metadata.get("userId"),
        "association_id": metadata.get("associationId"),
        "amount_cents": amount,
    }
