"""
Proof-of-payment resolution.

Finds, or creates, the document a customer can use as proof of payment for
an entitlement. Runs out of band (Celery task) after the entitlement is
created, and on demand from the re-fetch endpoint.

Fallback chain (first hit wins):
    1. The checkout session already carries an invoice
    2. An existing invoice whose payment intent matches the session's
    3. An invoice synthesized for the payment's customer
    4. An invoice synthesized for a customer created from the billing email
    5. The charge receipt URL (receipt, lower fidelity than an invoice)
    6. Nothing: raw payment info plus a remediation suggestion

A Stripe failure inside a step only ends that step; the chain moves on.

Usage:
    from payments.services import ProofOfPaymentResolver

    result = ProofOfPaymentResolver().resolve_for_entitlement(
        TransactionKind.MEMBERSHIP, membership.id
    )
    if result.success and result.data.resolved:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, TypeVar

from core.services import BaseService, ServiceResult
from entitlements.services import EntitlementService, ProofOfPayment
from entitlements.states import ProofType, TransactionKind
from payments.adapters import (
    CheckoutSessionResult,
    IdempotencyKeyGenerator,
    InvoiceResult,
    PaymentIntentResult,
    StripeAdapter,
)
from payments.exceptions import (
    ProofOfPaymentUnavailableError,
    StripeError,
    StripeInvalidRequestError,
)

if TYPE_CHECKING:
    from typing import Any

T = TypeVar("T")

MANUAL_REMEDIATION_SUGGESTION = (
    "Aucune facture ni reçu n'a été trouvé pour ce paiement. "
    "Contactez le support avec la référence du paiement pour obtenir une attestation."
)


class ResolutionStrategy:
    SESSION_INVOICE = "session_invoice"
    INVOICE_SEARCH = "invoice_search"
    SYNTHESIZED_INVOICE = "synthesized_invoice"
    NEW_CUSTOMER_INVOICE = "new_customer_invoice"
    CHARGE_RECEIPT = "charge_receipt"
    ALREADY_ATTACHED = "already_attached"
    UNRESOLVED = "unresolved"


@dataclass
class ProofResolution:
    """
    Outcome of running the fallback chain.

    An unresolved outcome is not an error: the entitlement stands, and
    payment_info / suggestion let support fix it by hand.
    """

    strategy: str
    proof: ProofOfPayment | None = None
    payment_info: dict[str, Any] = field(default_factory=dict)
    suggestion: str | None = None

    @property
    def resolved(self) -> bool:
        return self.proof is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"resolved": self.resolved, "strategy": self.strategy}
        if self.proof is not None:
            data.update(
                reference=self.proof.reference,
                url=self.proof.url,
                proof_type=str(self.proof.proof_type),
            )
        if self.payment_info:
            data["payment_info"] = self.payment_info
        if self.suggestion:
            data["suggestion"] = self.suggestion
        return data


def _invoice_proof(invoice: InvoiceResult) -> ProofOfPayment:
    return ProofOfPayment(
        reference=invoice.id,
        url=invoice.document_url or "",
        proof_type=ProofType.INVOICE,
    )


class ProofOfPaymentResolver(BaseService):
    """Ordered fallback chain over the Stripe adapter."""

    def __init__(
        self,
        stripe_adapter: type[StripeAdapter] | None = None,
        entitlement_service: EntitlementService | None = None,
    ):
        self.stripe_adapter = stripe_adapter or StripeAdapter
        self.entitlement_service = entitlement_service or EntitlementService()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def resolve_for_entitlement(
        self, kind: TransactionKind, entitlement_id
    ) -> ServiceResult[ProofResolution]:
        """
        Resolve and attach the proof for one entitlement.

        Idempotent: an entitlement that already has a proof is returned as is,
        and attachment is a conditional update that never overwrites.
        """
        entitlement = self.entitlement_service.get_entitlement(kind, entitlement_id)
        if entitlement is None:
            return ServiceResult.failure(
                "Entitlement not found",
                error_code="ENTITLEMENT_NOT_FOUND",
                details={"kind": kind.value, "entitlement_id": str(entitlement_id)},
            )

        if entitlement.has_proof:
            return ServiceResult.success(
                ProofResolution(
                    strategy=ResolutionStrategy.ALREADY_ATTACHED,
                    proof=ProofOfPayment(
                        reference=entitlement.proof_reference,
                        url=entitlement.proof_url,
                        proof_type=entitlement.proof_type,
                    ),
                )
            )

        resolution = self.resolve(
            session_id=entitlement.stripe_session_id,
            payment_intent_id=entitlement.stripe_payment_intent_id or None,
            description=f"{kind.label} {entitlement.pk}",
        )
        if resolution.proof is not None:
            self.entitlement_service.attach_proof(kind, entitlement.pk, resolution.proof)
        else:
            self.get_logger().warning(
                "Proof of payment unresolved",
                extra={
                    "kind": kind.value,
                    "entitlement_id": str(entitlement.pk),
                    "session_id": entitlement.stripe_session_id,
                },
            )
        return ServiceResult.success(resolution)

    def resolve(
        self,
        session_id: str | None = None,
        payment_intent_id: str | None = None,
        description: str | None = None,
    ) -> ProofResolution:
        """Run the fallback chain. Never raises for Stripe failures."""
        session: CheckoutSessionResult | None = None
        if session_id:
            session = self._attempt(
                "retrieve_session",
                lambda: self.stripe_adapter.retrieve_checkout_session(
                    session_id, expand=["invoice"]
                ),
            )

        # 1. Invoice already on the session
        if session is not None and session.invoice_id:
            return self._found(
                ResolutionStrategy.SESSION_INVOICE,
                ProofOfPayment(
                    reference=session.invoice_id,
                    url=session.invoice_url or "",
                    proof_type=ProofType.INVOICE,
                ),
            )

        payment_intent_id = (session.payment_intent_id if session else None) or payment_intent_id
        if not payment_intent_id:
            return self._unresolved({"session_id": session_id})

        # 2. Existing invoice for the same payment
        customer_hint = session.customer_id if session else None
        invoices = self._attempt(
            "search_invoices",
            lambda: self.stripe_adapter.list_invoices(customer_id=customer_hint),
        )
        for invoice in invoices or []:
            if invoice.is_usable_proof and invoice.matches_payment_intent(payment_intent_id):
                return self._found(ResolutionStrategy.INVOICE_SEARCH, _invoice_proof(invoice))

        intent: PaymentIntentResult | None = self._attempt(
            "retrieve_payment_intent",
            lambda: self.stripe_adapter.retrieve_payment_intent(payment_intent_id),
        )
        if intent is None:
            return self._unresolved({"session_id": session_id, "payment_intent_id": payment_intent_id})

        charge = intent.latest_charge
        description = description or intent.description or f"Paiement {intent.id}"

        # 3. Invoice for the existing customer
        customer_id = intent.customer_id or customer_hint
        if customer_id:
            invoice = self._attempt(
                "synthesize_invoice",
                lambda: self._synthesize_invoice(customer_id, intent, description),
            )
            if invoice is not None:
                return self._found(ResolutionStrategy.SYNTHESIZED_INVOICE, _invoice_proof(invoice))

        # 4. Invoice for a customer created from the billing email
        billing_email = (charge.billing_email if charge else None) or (
            session.customer_email if session else None
        )
        if not customer_id and billing_email:
            customer = self._attempt(
                "create_customer",
                lambda: self.stripe_adapter.create_customer(
                    email=billing_email,
                    name=charge.billing_name if charge else None,
                    metadata={"payment_intent_id": intent.id},
                    idempotency_key=IdempotencyKeyGenerator.generate("proof_customer", intent.id),
                ),
            )
            if customer is not None:
                invoice = self._attempt(
                    "synthesize_invoice",
                    lambda: self._synthesize_invoice(customer.id, intent, description),
                )
                if invoice is not None:
                    return self._found(
                        ResolutionStrategy.NEW_CUSTOMER_INVOICE, _invoice_proof(invoice)
                    )

        # 5. Charge receipt
        if charge is not None and charge.receipt_url:
            return self._found(
                ResolutionStrategy.CHARGE_RECEIPT,
                ProofOfPayment(
                    reference=intent.id,
                    url=charge.receipt_url,
                    proof_type=ProofType.RECEIPT,
                ),
            )

        # 6. Exhausted
        return self._unresolved(
            {"session_id": session_id, **self._payment_info(intent)},
        )

    def get_receipt(self, reference: str) -> dict[str, Any]:
        """
        Proof object for an invoice id or a payment intent id.

        Raises:
            ProofOfPaymentUnavailableError: Neither an invoice nor a receipt exists
            StripeError: Stripe failed for another reason than an unknown id
        """
        try:
            invoice = self.stripe_adapter.retrieve_invoice(reference)
        except StripeInvalidRequestError:
            self.get_logger().info("Reference is not an invoice", extra={"reference": reference})
        else:
            return {
                "id": invoice.id,
                "invoice_number": invoice.number,
                "amount": invoice.amount_paid,
                "currency": invoice.currency,
                "status": invoice.status,
                "created": invoice.created,
                "description": f"Facture Stripe {invoice.number or invoice.id}",
                "receipt_url": invoice.document_url,
                "receipt_type": "stripe_invoice",
                "invoice_pdf": invoice.invoice_pdf,
            }

        payment_info: dict[str, Any] = {"reference": reference}
        try:
            intent = self.stripe_adapter.retrieve_payment_intent(reference)
        except StripeInvalidRequestError:
            self.get_logger().info(
                "Reference is not a payment intent", extra={"reference": reference}
            )
        else:
            charge = intent.latest_charge
            if charge is not None and charge.receipt_url:
                return {
                    "id": intent.id,
                    "amount": intent.amount,
                    "currency": intent.currency,
                    "status": intent.status,
                    "created": intent.created,
                    "description": f"Paiement {intent.id}",
                    "receipt_url": charge.receipt_url,
                    "receipt_type": "charge_receipt",
                    "charge_id": charge.id,
                    "receipt_number": charge.receipt_number,
                }
            payment_info = self._payment_info(intent)

        self.get_logger().warning("No proof of payment found", extra={"reference": reference})
        raise ProofOfPaymentUnavailableError(
            "No invoice or receipt found",
            details={
                "invoice_id": reference,
                "payment_info": payment_info,
                "suggestion": MANUAL_REMEDIATION_SUGGESTION,
            },
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _synthesize_invoice(
        self, customer_id: str, intent: PaymentIntentResult, description: str
    ) -> InvoiceResult:
        """Draft invoice + one line for the paid amount, finalized and paid out of band."""
        invoice = self.stripe_adapter.create_invoice(
            customer_id,
            idempotency_key=IdempotencyKeyGenerator.generate("proof_invoice", intent.id),
            metadata={"payment_intent_id": intent.id},
            description=description,
        )
        self.stripe_adapter.create_invoice_item(
            customer_id,
            invoice.id,
            amount_cents=intent.amount_cents,
            currency=intent.currency,
            idempotency_key=IdempotencyKeyGenerator.generate("proof_invoice_item", intent.id),
            description=description,
        )
        self.stripe_adapter.finalize_invoice(invoice.id)
        return self.stripe_adapter.pay_invoice_out_of_band(invoice.id)

    def _attempt(self, step: str, func: Callable[[], T]) -> T | None:
        try:
            return func()
        except StripeError as e:
            self.get_logger().warning(
                f"Proof of payment step failed: {step}",
                extra={"step": step, "error_code": e.error_code, "request_id": e.request_id},
            )
            return None

    def _found(self, strategy: str, proof: ProofOfPayment) -> ProofResolution:
        self.get_logger().info(
            "Proof of payment resolved",
            extra={
                "strategy": strategy,
                "proof_reference": proof.reference,
                "proof_type": str(proof.proof_type),
            },
        )
        return ProofResolution(strategy=strategy, proof=proof)

    def _unresolved(self, payment_info: dict[str, Any]) -> ProofResolution:
        return ProofResolution(
            strategy=ResolutionStrategy.UNRESOLVED,
            payment_info={key: value for key, value in payment_info.items() if value is not None},
            suggestion=MANUAL_REMEDIATION_SUGGESTION,
        )

    @staticmethod
    def _payment_info(intent: PaymentIntentResult) -> dict[str, Any]:
        return {
            "payment_intent_id": intent.id,
            "amount": str(intent.amount),
            "currency": intent.currency,
            "status": intent.status,
            "created": intent.created,
            "customer_id": intent.customer_id,
        }

