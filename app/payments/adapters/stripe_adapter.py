"""
Stripe API adapter for payment operations.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions. All Stripe calls should go through this
adapter to ensure consistent error handling, timeouts, idempotency,
and observability.

Features:
- Configurable timeouts on all API calls
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Idempotency keys on every object creation
- Plain dataclass results, so callers never touch StripeObject

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 30)
- STRIPE_MAX_RETRIES: Network retries done by the client (default: 2)

Usage:
    from payments.adapters import StripeAdapter

    session = StripeAdapter.retrieve_checkout_session("cs_test_123")
    if session.is_paid:
        intent = StripeAdapter.retrieve_payment_intent(session.payment_intent_id)
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, TypeVar

import stripe
from django.conf import settings

from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeAuthenticationError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeResourceMissingError,
    StripeTimeoutError,
    WebhookSignatureError,
)

T = TypeVar("T")


# =============================================================================
# Conversion Helpers
# =============================================================================


def to_plain_dict(obj: Any) -> dict[str, Any]:
    """Convert a StripeObject (or anything dict-like) to a plain dict."""
    if obj is None:
        return {}
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    return dict(obj)


def expandable_id(value: Any) -> str | None:
    """
    Return the id of an expandable field.

    Stripe returns either the id string or the expanded object depending on
    the `expand` parameter of the request.
    """
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return value.get("id")
    return getattr(value, "id", None)


def cents_to_amount(cents: int | None) -> Decimal:
    """Stripe amounts are integers in the smallest currency unit."""
    return (Decimal(cents or 0) / Decimal(100)).quantize(Decimal("0.01"))


def amount_to_cents(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1")))


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreateCheckoutSessionParams:
    """
    Parameters for a hosted, one-time-payment checkout session.

    Attributes:
        price_id: Stripe price to charge (quantity 1)
        success_url / cancel_url: Frontend redirects
        metadata: Copied onto the session and its payment intent
        customer_email: Prefills the checkout form
        idempotency_key: Key for idempotent creation
        unit_amount_cents: Charge this amount instead of the price's own
            (inline price_data), e.g. a member-discounted training
        product_name / product_description: Line item labels for
            unit_amount_cents
    """

    price_id: str
    success_url: str
    cancel_url: str
    idempotency_key: str
    metadata: dict[str, str] = field(default_factory=dict)
    customer_email: str | None = None
    unit_amount_cents: int | None = None
    currency: str = "eur"
    product_name: str | None = None
    product_description: str | None = None

    def __post_init__(self) -> None:
        if not self.price_id:
            raise ValueError("price_id is required")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")
        if self.unit_amount_cents is not None and self.unit_amount_cents < 0:
            raise ValueError("unit_amount_cents must be positive")

    def line_item(self) -> dict[str, Any]:
        if self.unit_amount_cents is None:
            return {"price": self.price_id, "quantity": 1}
        product_data: dict[str, Any] = {"name": self.product_name or self.price_id}
        if self.product_description:
            product_data["description"] = self.product_description
        return {
            "price_data": {
                "currency": self.currency,
                "product_data": product_data,
                "unit_amount": self.unit_amount_cents,
            },
            "quantity": 1,
        }


@dataclass
class CheckoutSessionResult:
    """
    Result from Checkout Session operations.

    Attributes:
        id: Session ID (cs_xxx)
        payment_status: "paid", "unpaid" or "no_payment_required"
        status: "open", "complete" or "expired"
        amount_total_cents: Amount charged in cents
        currency: Currency code
        metadata: Metadata set at creation (transaction kind, subject ids)
        payment_intent_id: Linked PaymentIntent (pi_xxx), if any
        invoice_id: Linked Invoice (in_xxx), if Stripe created one
        invoice_url: Hosted page (else PDF) of the invoice, when expanded
        customer_id: Linked Customer (cus_xxx), if any
        customer_email: Email entered at checkout
        url: Hosted checkout URL (only while open)
        raw_response: Full Stripe response dict (for debugging)
    """

    id: str
    payment_status: str
    amount_total_cents: int
    currency: str
    status: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    payment_intent_id: str | None = None
    invoice_id: str | None = None
    invoice_url: str | None = None
    customer_id: str | None = None
    customer_email: str | None = None
    url: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"

    @property
    def amount(self) -> Decimal:
        return cents_to_amount(self.amount_total_cents)

    @classmethod
    def from_stripe(cls, session: Any) -> CheckoutSessionResult:
        data = to_plain_dict(session)
        customer_details = data.get("customer_details") or {}
        invoice = data.get("invoice")
        invoice_data = invoice if isinstance(invoice, dict) else {}
        return cls(
            id=data["id"],
            payment_status=data.get("payment_status") or "unpaid",
            status=data.get("status"),
            amount_total_cents=data.get("amount_total") or 0,
            currency=data.get("currency") or "eur",
            metadata={k: str(v) for k, v in (data.get("metadata") or {}).items()},
            payment_intent_id=expandable_id(data.get("payment_intent")),
            invoice_id=expandable_id(invoice),
            invoice_url=invoice_data.get("hosted_invoice_url") or invoice_data.get("invoice_pdf"),
            customer_id=expandable_id(data.get("customer")),
            customer_email=data.get("customer_email") or customer_details.get("email"),
            url=data.get("url"),
            raw_response=data,
        )


@dataclass
class ChargeResult:
    """The latest charge of a PaymentIntent, as far as proofs are concerned."""

    id: str
    receipt_url: str | None = None
    receipt_number: str | None = None
    billing_email: str | None = None
    billing_name: str | None = None
    description: str | None = None

    @classmethod
    def from_stripe(cls, charge: Any) -> ChargeResult | None:
        data = to_plain_dict(charge)
        if not data.get("id"):
            return None
        billing = data.get("billing_details") or {}
        return cls(
            id=data["id"],
            receipt_url=data.get("receipt_url"),
            receipt_number=data.get("receipt_number"),
            billing_email=billing.get("email") or data.get("receipt_email"),
            billing_name=billing.get("name"),
            description=data.get("description"),
        )


@dataclass
class PaymentIntentResult:
    """
    Result from PaymentIntent retrieval.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Current status (succeeded, processing, ...)
        amount_cents: Amount in cents
        currency: Currency code
        customer_id: Linked Customer, if any
        created: Unix timestamp
        latest_charge: Expanded latest charge, if any
        metadata: Attached metadata
        raw_response: Full Stripe response dict (for debugging)
    """

    id: str
    status: str
    amount_cents: int
    currency: str
    customer_id: str | None = None
    created: int | None = None
    description: str | None = None
    latest_charge: ChargeResult | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

    @property
    def amount(self) -> Decimal:
        return cents_to_amount(self.amount_cents)

    @classmethod
    def from_stripe(cls, intent: Any) -> PaymentIntentResult:
        data = to_plain_dict(intent)
        latest_charge = data.get("latest_charge")
        return cls(
            id=data["id"],
            status=data.get("status") or "",
            amount_cents=data.get("amount") or 0,
            currency=data.get("currency") or "eur",
            customer_id=expandable_id(data.get("customer")),
            created=data.get("created"),
            description=data.get("description"),
            latest_charge=(
                ChargeResult.from_stripe(latest_charge)
                if isinstance(latest_charge, dict) or hasattr(latest_charge, "to_dict")
                else None
            ),
            metadata={k: str(v) for k, v in (data.get("metadata") or {}).items()},
            raw_response=data,
        )


@dataclass
class InvoiceResult:
    """
    Result from Invoice operations.

    Attributes:
        id: Invoice ID (in_xxx)
        status: draft, open, paid, void or uncollectible
        number: Human-facing invoice number (set on finalization)
        hosted_invoice_url: Stripe-hosted invoice page
        invoice_pdf: Direct PDF link
        payment_intent_id: PaymentIntent that paid it, when exposed
        metadata: Attached metadata (payment_intent_id for synthesized invoices)
    """

    id: str
    status: str | None = None
    number: str | None = None
    amount_paid_cents: int = 0
    currency: str = "eur"
    customer_id: str | None = None
    customer_email: str | None = None
    payment_intent_id: str | None = None
    hosted_invoice_url: str | None = None
    invoice_pdf: str | None = None
    created: int | None = None
    period_start: int | None = None
    period_end: int | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)

    @property
    def amount_paid(self) -> Decimal:
        return cents_to_amount(self.amount_paid_cents)

    @property
    def document_url(self) -> str | None:
        return self.hosted_invoice_url or self.invoice_pdf

    @property
    def is_usable_proof(self) -> bool:
        """Only paid invoices with a document can stand as proof of payment."""
        return self.status == "paid" and bool(self.document_url)

    def matches_payment_intent(self, payment_intent_id: str) -> bool:
        return payment_intent_id in (
            self.payment_intent_id,
            self.metadata.get("payment_intent_id"),
        )

    @classmethod
    def from_stripe(cls, invoice: Any) -> InvoiceResult:
        data = to_plain_dict(invoice)
        return cls(
            id=data["id"],
            status=data.get("status"),
            number=data.get("number"),
            amount_paid_cents=data.get("amount_paid") or 0,
            currency=data.get("currency") or "eur",
            customer_id=expandable_id(data.get("customer")),
            customer_email=data.get("customer_email"),
            payment_intent_id=expandable_id(data.get("payment_intent")),
            hosted_invoice_url=data.get("hosted_invoice_url"),
            invoice_pdf=data.get("invoice_pdf"),
            created=data.get("created"),
            period_start=data.get("period_start"),
            period_end=data.get("period_end"),
            metadata={k: str(v) for k, v in (data.get("metadata") or {}).items()},
            raw_response=data,
        )


@dataclass
class CustomerResult:
    """Result from Customer creation."""

    id: str
    email: str | None = None
    raw_response: dict[str, Any] = field(default_factory=dict)


@dataclass
class SubscriptionResult:
    """Result from Subscription cancellation."""

    id: str
    status: str
    cancel_at_period_end: bool = False
    raw_response: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Idempotency Keys
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{hash}"

    Keys are deterministic per (operation, entity), so a retried task or a
    second reconciliation channel reuses the same key and Stripe returns
    the original object instead of creating a duplicate.

    Example:
        key = IdempotencyKeyGenerator.generate("proof_invoice", "pi_123")
        # "proof_invoice:pi_123:a1b2c3d4"
    """

    @staticmethod
    def generate(operation: str, entity_id: uuid.UUID | str) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]
        return f"{operation}:{entity_str}:{short_hash}"


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are classmethods - no instance state is maintained.
    Services receive the class itself as a collaborator so tests can pass
    a fake with the same classmethods.

    Usage:
        result = StripeAdapter.retrieve_checkout_session("cs_test_123")
        invoices = StripeAdapter.list_invoices(customer_id="cus_123")
    """

    _http_client: Any = None

    # =========================================================================
    # Configuration
    # =========================================================================

    @classmethod
    def _configure_stripe(cls) -> None:
        """Configure the Stripe client with API key, timeout and retries."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        stripe.max_network_retries = getattr(settings, "STRIPE_MAX_RETRIES", 2)
        if cls._http_client is None:
            timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 30)
            cls._http_client = stripe.RequestsClient(timeout=timeout)
        stripe.default_http_client = cls._http_client

    @classmethod
    def get_logger(cls) -> logging.Logger:
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def _call(
        cls,
        operation: str,
        func: Callable[[], T],
        **context: Any,
    ) -> T:
        """
        Run one Stripe call with timing, logging and error translation.

        Raises:
            StripeError subclass for any failure of the underlying call
        """
        cls._configure_stripe()
        logger = cls.get_logger()

        log_context = {"operation": operation, **context}
        start_time = time.time()
        logger.debug("Starting Stripe operation", extra=log_context)

        try:
            result = func()
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.debug(
            "Stripe operation completed",
            extra={**log_context, "duration_ms": duration_ms},
        )
        return result

    # =========================================================================
    # Checkout Sessions
    # =========================================================================

    @classmethod
    def create_checkout_session(
        cls, params: CreateCheckoutSessionParams
    ) -> CheckoutSessionResult:
        """
        Create a hosted checkout session for a one-time payment.

        The metadata is also written to the payment intent so that
        payment_intent.* events carry the same context.
        """
        session = cls._call(
            "create_checkout_session",
            lambda: stripe.checkout.Session.create(
                mode="payment",
                payment_method_types=["card"],
                line_items=[params.line_item()],
                success_url=params.success_url,
                cancel_url=params.cancel_url,
                metadata=params.metadata,
                customer_email=params.customer_email,
                billing_address_collection="required",
                invoice_creation={"enabled": True, "invoice_data": {"metadata": params.metadata}},
                payment_intent_data={"metadata": params.metadata},
                idempotency_key=params.idempotency_key,
            ),
            price_id=params.price_id,
        )
        return CheckoutSessionResult.from_stripe(session)

    @classmethod
    def retrieve_checkout_session(
        cls, session_id: str, expand: list[str] | None = None
    ) -> CheckoutSessionResult:
        """
        Retrieve a checkout session by ID.

        Pass expand=["invoice"] to get the invoice URL in the same call.

        Raises:
            StripeResourceMissingError: Stripe has no such session
        """
        session = cls._call(
            "retrieve_checkout_session",
            lambda: stripe.checkout.Session.retrieve(session_id, expand=expand or []),
            session_id=session_id,
        )
        return CheckoutSessionResult.from_stripe(session)

    # =========================================================================
    # Payment Intents
    # =========================================================================

    @classmethod
    def retrieve_payment_intent(cls, payment_intent_id: str) -> PaymentIntentResult:
        """Retrieve a PaymentIntent with its latest charge expanded."""
        intent = cls._call(
            "retrieve_payment_intent",
            lambda: stripe.PaymentIntent.retrieve(
                payment_intent_id,
                expand=["latest_charge"],
            ),
            payment_intent_id=payment_intent_id,
        )
        return PaymentIntentResult.from_stripe(intent)

    # =========================================================================
    # Invoices
    # =========================================================================

    @classmethod
    def retrieve_invoice(cls, invoice_id: str) -> InvoiceResult:
        invoice = cls._call(
            "retrieve_invoice",
            lambda: stripe.Invoice.retrieve(invoice_id),
            invoice_id=invoice_id,
        )
        return InvoiceResult.from_stripe(invoice)

    @classmethod
    def list_invoices(
        cls,
        customer_id: str | None = None,
        limit: int = 100,
    ) -> list[InvoiceResult]:
        """List the most recent invoices, optionally for one customer."""
        params: dict[str, Any] = {"limit": limit}
        if customer_id:
            params["customer"] = customer_id

        page = cls._call(
            "list_invoices",
            lambda: stripe.Invoice.list(**params),
            customer_id=customer_id,
        )
        return [InvoiceResult.from_stripe(item) for item in to_plain_dict(page).get("data", [])]

    @classmethod
    def create_invoice(
        cls,
        customer_id: str,
        idempotency_key: str,
        metadata: dict[str, str] | None = None,
        description: str | None = None,
    ) -> InvoiceResult:
        """Create a draft invoice that is not auto-advanced."""
        invoice = cls._call(
            "create_invoice",
            lambda: stripe.Invoice.create(
                customer=customer_id,
                collection_method="charge_automatically",
                auto_advance=False,
                pending_invoice_items_behavior="exclude",
                description=description,
                metadata=metadata or {},
                idempotency_key=idempotency_key,
            ),
            customer_id=customer_id,
        )
        return InvoiceResult.from_stripe(invoice)

    @classmethod
    def create_invoice_item(
        cls,
        customer_id: str,
        invoice_id: str,
        amount_cents: int,
        currency: str,
        idempotency_key: str,
        description: str | None = None,
    ) -> dict[str, Any]:
        """Attach a single line item to a draft invoice."""
        item = cls._call(
            "create_invoice_item",
            lambda: stripe.InvoiceItem.create(
                customer=customer_id,
                invoice=invoice_id,
                amount=amount_cents,
                currency=currency,
                description=description,
                idempotency_key=idempotency_key,
            ),
            customer_id=customer_id,
            invoice_id=invoice_id,
            amount_cents=amount_cents,
        )
        return to_plain_dict(item)

    @classmethod
    def finalize_invoice(cls, invoice_id: str) -> InvoiceResult:
        invoice = cls._call(
            "finalize_invoice",
            lambda: stripe.Invoice.finalize_invoice(invoice_id, auto_advance=False),
            invoice_id=invoice_id,
        )
        return InvoiceResult.from_stripe(invoice)

    @classmethod
    def pay_invoice_out_of_band(cls, invoice_id: str) -> InvoiceResult:
        """Mark a finalized invoice as paid outside Stripe invoicing."""
        invoice = cls._call(
            "pay_invoice_out_of_band",
            lambda: stripe.Invoice.pay(invoice_id, paid_out_of_band=True),
            invoice_id=invoice_id,
        )
        return InvoiceResult.from_stripe(invoice)

    # =========================================================================
    # Customers
    # =========================================================================

    @classmethod
    def create_customer(
        cls,
        email: str,
        idempotency_key: str,
        name: str | None = None,
        metadata: dict[str, str] | None = None,
    ) -> CustomerResult:
        customer = cls._call(
            "create_customer",
            lambda: stripe.Customer.create(
                email=email,
                name=name,
                metadata=metadata or {},
                idempotency_key=idempotency_key,
            ),
        )
        data = to_plain_dict(customer)
        return CustomerResult(id=data["id"], email=data.get("email"), raw_response=data)

    # =========================================================================
    # Subscriptions
    # =========================================================================

    @classmethod
    def cancel_subscription_at_period_end(
        cls, subscription_id: str, idempotency_key: str
    ) -> SubscriptionResult:
        """Stop a recurring charge from renewing; access runs to period end."""
        subscription = cls._call(
            "cancel_subscription_at_period_end",
            lambda: stripe.Subscription.modify(
                subscription_id,
                cancel_at_period_end=True,
                idempotency_key=idempotency_key,
            ),
            subscription_id=subscription_id,
        )
        data = to_plain_dict(subscription)
        return SubscriptionResult(
            id=data["id"],
            status=data.get("status") or "",
            cancel_at_period_end=bool(data.get("cancel_at_period_end")),
            raw_response=data,
        )

    # =========================================================================
    # Webhooks
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw request body, byte for byte as received
            signature: Stripe-Signature header value

        Returns:
            Parsed event data dict

        Raises:
            WebhookSignatureError: Missing secret, bad signature or bad payload
        """
        secret = settings.STRIPE_WEBHOOK_SECRET
        if not secret:
            cls.get_logger().critical("STRIPE_WEBHOOK_SECRET is not configured")
            raise WebhookSignatureError(
                "Webhook signature cannot be verified",
                error_code="WEBHOOK_SECRET_MISSING",
            )
        if not signature:
            raise WebhookSignatureError("Missing Stripe-Signature header")

        try:
            event = stripe.Webhook.construct_event(payload, signature, secret)
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(
                "Invalid webhook signature",
                details={"error": str(e)},
            ) from e
        except ValueError as e:
            raise WebhookSignatureError(
                "Invalid webhook payload",
                error_code="INVALID_PAYLOAD",
            ) from e
        return to_plain_dict(event)

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Raises:
            StripeResourceMissingError: Object id unknown to Stripe
            StripeInvalidRequestError: Invalid request parameters
            StripeAuthenticationError: Bad API key
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Client-side timeout
            StripeAPIUnavailableError: Network error, Stripe 5xx or unknown
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}
        request_id = getattr(error, "request_id", None)
        stripe_code = getattr(error, "code", None)

        if isinstance(error, stripe.InvalidRequestError):
            if stripe_code == "resource_missing":
                logger.info("Stripe resource missing", extra=log_context)
                raise StripeResourceMissingError(
                    str(getattr(error, "user_message", None) or error),
                    stripe_code=stripe_code,
                    request_id=request_id,
                ) from error

            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": stripe_code},
            )
            raise StripeInvalidRequestError(
                str(error),
                stripe_code=stripe_code,
                request_id=request_id,
            ) from error

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeAuthenticationError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
                request_id=request_id,
            ) from error

        elif isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
                request_id=request_id,
            ) from error

        elif isinstance(error, stripe.APIConnectionError):
            if "timed out" in str(error).lower() or "timeout" in str(error).lower():
                logger.error("Stripe request timed out", extra=log_context)
                raise StripeTimeoutError(
                    "Stripe request timed out. Please retry.",
                    stripe_code="timeout",
                ) from error

            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        elif isinstance(error, stripe.StripeError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code=stripe_code or "api_error",
                request_id=request_id,
            ) from error

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                f"Unexpected Stripe error: {error}",
                stripe_code="unknown_error",
            ) from error
