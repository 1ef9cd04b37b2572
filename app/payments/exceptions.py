"""
Payment-specific exceptions.

These exceptions extend the core exception hierarchy with payment provider
and webhook concerns. The Stripe family is what the reconciliation surfaces
as an upstream provider failure: the whole operation is safe to retry because
entitlement creation is idempotent.

Exception Hierarchy:
    BaseApplicationError (core)
    ├── ValidationError (core)
    │   └── WebhookSignatureError - Bad or missing Stripe-Signature (400)
    ├── NotFoundError (core)
    │   ├── CheckoutSessionNotFoundError - Provider has no such session (404)
    │   └── ProofOfPaymentUnavailableError - No invoice or receipt (404)
    └── ExternalServiceError (core)
        └── StripeError - Provider call failed (500)
            ├── StripeInvalidRequestError - Rejected parameters (not retryable)
            │   └── StripeResourceMissingError - Unknown object id
            ├── StripeAuthenticationError - Bad API key (not retryable)
            ├── StripeRateLimitError - 429 (retryable)
            ├── StripeAPIUnavailableError - Network / 5xx (retryable)
            └── StripeTimeoutError - Client timeout (retryable)

Usage:
    from payments.exceptions import StripeError

    try:
        session = StripeAdapter.retrieve_checkout_session(session_id)
    except StripeError as e:
        if e.is_retryable:
            raise self.retry(exc=e)
        raise
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import ExternalServiceError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Webhook Exceptions
# =============================================================================


class WebhookSignatureError(ValidationError):
    """
    Raised when a webhook payload fails Stripe signature verification.

    The delivery is rejected with 400 before any reconciliation runs, and
    the payload is never reprocessed.
    """

    default_error_code: str = "INVALID_SIGNATURE"


# =============================================================================
# Lookup Exceptions
# =============================================================================


class CheckoutSessionNotFoundError(NotFoundError):
    """Raised when Stripe has no record of a checkout session id."""

    default_error_code: str = "SESSION_NOT_FOUND"


class ProofOfPaymentUnavailableError(NotFoundError):
    """
    Raised when neither an invoice nor a charge receipt can be found.

    details carries the raw payment info and a remediation suggestion.
    """

    default_error_code: str = "PROOF_OF_PAYMENT_NOT_FOUND"


# =============================================================================
# Stripe Exceptions
# =============================================================================


class StripeError(ExternalServiceError):
    """
    Base exception for all Stripe-related errors.

    Attributes:
        stripe_code: Stripe's error code (e.g. "resource_missing")
        request_id: Stripe request id, for support tickets
        is_retryable: Whether the same call may succeed later

    Example:
        try:
            StripeAdapter.create_invoice(customer_id, payment_intent_id)
        except StripeError as e:
            logger.warning(f"Invoice creation failed: {e.error_code}")
    """

    default_error_code: str = "STRIPE_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
        stripe_code: str | None = None,
        request_id: str | None = None,
    ):
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code
        self.request_id = request_id


class StripeInvalidRequestError(StripeError):
    """Stripe rejected the request parameters. Fix the call; do not retry."""

    default_error_code: str = "INVALID_STRIPE_REQUEST"
    is_retryable: bool = False


class StripeResourceMissingError(StripeInvalidRequestError):
    """The referenced Stripe object (session, invoice, payment intent) does not exist."""

    default_error_code: str = "STRIPE_RESOURCE_MISSING"


class StripeAuthenticationError(StripeError):
    """The configured secret key was rejected."""

    default_error_code: str = "STRIPE_AUTHENTICATION_FAILED"
    is_retryable: bool = False


class StripeRateLimitError(StripeError):
    """Too many requests; retry with backoff."""

    default_error_code: str = "STRIPE_RATE_LIMITED"
    is_retryable: bool = True


class StripeAPIUnavailableError(StripeError):
    """Network failure or Stripe-side 5xx."""

    default_error_code: str = "STRIPE_UNAVAILABLE"
    is_retryable: bool = True


class StripeTimeoutError(StripeError):
    """The client-side request timeout fired before Stripe answered."""

    default_error_code: str = "STRIPE_TIMEOUT"
    is_retryable: bool = True


__all__ = [
    "WebhookSignatureError",
    "CheckoutSessionNotFoundError",
    "ProofOfPaymentUnavailableError",
    "StripeError",
    "StripeInvalidRequestError",
    "StripeResourceMissingError",
    "StripeAuthenticationError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
]
