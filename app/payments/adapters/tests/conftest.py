"""
Pytest fixtures for Stripe adapter tests.

This module provides fixtures for testing the Stripe adapter, including
mock Stripe API responses and error conditions.

Sections:
    - Mock Stripe Response Fixtures
    - Mock Stripe Error Fixtures
    - Mock Stripe Client Fixtures
"""

from dataclasses import dataclass
from typing import Any
from unittest.mock import patch

import pytest
import stripe


# =============================================================================
# Mock Stripe Response Fixtures
# =============================================================================


@dataclass
class MockStripeObject:
    """Mock Stripe API object with to_dict support."""

    data: dict[str, Any]

    def __getattr__(self, name: str) -> Any:
        if name == "data":
            return self.__dict__["data"]
        return self.data.get(name)

    def to_dict(self) -> dict[str, Any]:
        return self.data


@pytest.fixture
def mock_checkout_session():
    """Create a mock Checkout Session response."""

    def _create(
        id: str = "cs_test_123",
        payment_status: str = "paid",
        status: str = "complete",
        amount_total: int = 3000,
        currency: str = "eur",
        payment_intent: Any = "pi_test_123",
        invoice: Any = None,
        customer: Any = None,
        customer_email: str | None = "member@example.com",
        metadata: dict | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "checkout.session",
                "payment_status": payment_status,
                "status": status,
                "amount_total": amount_total,
                "currency": currency,
                "payment_intent": payment_intent,
                "invoice": invoice,
                "customer": customer,
                "customer_email": customer_email,
                "customer_details": {"email": customer_email},
                "metadata": metadata or {},
                "url": None,
            }
        )

    return _create


@pytest.fixture
def mock_payment_intent():
    """Create a mock PaymentIntent response with an expanded latest charge."""

    def _create(
        id: str = "pi_test_123",
        status: str = "succeeded",
        amount: int = 3000,
        customer: str | None = None,
        receipt_url: str | None = "https://pay.stripe.com/receipts/rcpt_123",
        billing_email: str | None = "member@example.com",
        metadata: dict | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "payment_intent",
                "status": status,
                "amount": amount,
                "currency": "eur",
                "customer": customer,
                "created": 1735689600,
                "description": None,
                "metadata": metadata or {},
                "latest_charge": {
                    "id": "ch_test_123",
                    "object": "charge",
                    "receipt_url": receipt_url,
                    "receipt_number": "1234-5678",
                    "billing_details": {"email": billing_email, "name": "Jane Doe"},
                },
            }
        )

    return _create


@pytest.fixture
def mock_invoice():
    """Create a mock Invoice response."""

    def _create(
        id: str = "in_test_123",
        status: str = "paid",
        payment_intent: str | None = "pi_test_123",
        hosted_invoice_url: str | None = "https://invoice.stripe.com/i/in_test_123",
        invoice_pdf: str | None = "https://pay.stripe.com/invoice/in_test_123/pdf",
        metadata: dict | None = None,
    ) -> MockStripeObject:
        return MockStripeObject(
            {
                "id": id,
                "object": "invoice",
                "status": status,
                "number": "INV-0001",
                "amount_paid": 3000,
                "currency": "eur",
                "customer": "cus_test_123",
                "customer_email": "member@example.com",
                "payment_intent": payment_intent,
                "hosted_invoice_url": hosted_invoice_url,
                "invoice_pdf": invoice_pdf,
                "created": 1735689600,
                "period_start": 1735689600,
                "period_end": 1735689600,
                "metadata": metadata or {},
            }
        )

    return _create


# =============================================================================
# Mock Stripe Error Fixtures
# =============================================================================


@pytest.fixture
def invalid_request_error():
    """Create a Stripe InvalidRequestError."""

    def _create(
        message: str = "No such checkout.session: 'cs_missing'",
        param: str | None = "id",
        code: str = "resource_missing",
    ) -> stripe.InvalidRequestError:
        return stripe.InvalidRequestError(message, param, code=code)

    return _create


@pytest.fixture
def rate_limit_error():
    return stripe.RateLimitError("Too many requests hit the API too quickly.")


@pytest.fixture
def api_connection_error():
    return stripe.APIConnectionError("Could not connect to Stripe.")


@pytest.fixture
def api_error():
    return stripe.APIError("Something went wrong on Stripe's end.")


@pytest.fixture
def authentication_error():
    return stripe.AuthenticationError("Invalid API Key provided.")


# =============================================================================
# Mock Stripe Client Fixtures
# =============================================================================


@pytest.fixture
def mock_stripe_checkout_session(mock_checkout_session):
    """Mock stripe.checkout.Session API."""
    with patch("stripe.checkout.Session") as mock:
        mock.retrieve.return_value = mock_checkout_session()
        mock.create.return_value = mock_checkout_session(
            payment_status="unpaid",
            status="open",
            payment_intent=None,
        )
        yield mock


@pytest.fixture
def mock_stripe_payment_intent(mock_payment_intent):
    """Mock stripe.PaymentIntent API."""
    with patch("stripe.PaymentIntent") as mock:
        mock.retrieve.return_value = mock_payment_intent()
        yield mock


@pytest.fixture
def mock_stripe_invoice(mock_invoice):
    """Mock stripe.Invoice API."""
    with patch("stripe.Invoice") as mock:
        mock.retrieve.return_value = mock_invoice()
        mock.list.return_value = MockStripeObject(
            {"data": [mock_invoice().to_dict()], "has_more": False}
        )
        mock.create.return_value = mock_invoice(status="draft", hosted_invoice_url=None)
        mock.finalize_invoice.return_value = mock_invoice(status="open")
        mock.pay.return_value = mock_invoice()
        yield mock


@pytest.fixture
def mock_stripe_webhook():
    """Mock stripe.Webhook API."""
    with patch("stripe.Webhook") as mock:
        mock.construct_event.return_value = MockStripeObject(
            {
                "id": "evt_test_123",
                "type": "checkout.session.completed",
                "data": {
                    "object": {
                        "id": "cs_test_123",
                        "object": "checkout.session",
                    }
                },
            }
        )
        yield mock
