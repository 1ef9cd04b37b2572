"""
Payment adapters for external services.

All Stripe API calls should go through these adapters to ensure
consistent error handling, timeouts, idempotency, and observability.

Usage:
    from payments.adapters import StripeAdapter

    session = StripeAdapter.retrieve_checkout_session("cs_test_123")
    if session.is_paid:
        ...
"""

from payments.adapters.stripe_adapter import (
    ChargeResult,
    CheckoutSessionResult,
    CreateCheckoutSessionParams,
    CustomerResult,
    IdempotencyKeyGenerator,
    InvoiceResult,
    PaymentIntentResult,
    StripeAdapter,
    SubscriptionResult,
    amount_to_cents,
    cents_to_amount,
)

__all__ = [
    "ChargeResult",
    "CheckoutSessionResult",
    "CreateCheckoutSessionParams",
    "CustomerResult",
    "IdempotencyKeyGenerator",
    "InvoiceResult",
    "PaymentIntentResult",
    "StripeAdapter",
    "SubscriptionResult",
    "amount_to_cents",
    "cents_to_amount",
]
