"""
Pytest fixtures for payments tests.

Stripe is never called: services get a MagicMock adapter whose methods
return the adapter's own result dataclasses.

Usage:
    def test_reconcile(reconciliation_service, mock_stripe_adapter, paid_session):
        mock_stripe_adapter.retrieve_checkout_session.return_value = paid_session()
        result = reconciliation_service.reconcile_session("cs_test_123")
"""

from unittest.mock import MagicMock

import pytest

from accounts.models import MemberStatus
from accounts.tests.factories import AssociationFactory, UserFactory, UserStatusFactory
from notifications.services import DeliveryResult
from payments.adapters import (
    ChargeResult,
    CheckoutSessionResult,
    InvoiceResult,
    PaymentIntentResult,
)
from payments.services import ReconciliationService

SIMPLE_MEMBERSHIP_PRICE = "price_1RknRO05Uibkj68MUPgVuW2Y"
ASSOCIATION_MEMBERSHIP_PRICE = "price_1RknQd05Uibkj68MgNOg2UxF"
PSSM_PRICE = "price_1RZKxz05Uibkj68MfCpirZlH"


# =============================================================================
# Subjects
# =============================================================================


@pytest.fixture
def user(db):
    return UserFactory()


@pytest.fixture
def member(db):
    return UserStatusFactory(status=MemberStatus.MEMBER).user


@pytest.fixture
def connected_user(db):
    return UserStatusFactory(status=MemberStatus.CONNECTED).user


@pytest.fixture
def association(db):
    return AssociationFactory()


# =============================================================================
# Stripe Results
# =============================================================================


@pytest.fixture
def paid_session():
    """Build a CheckoutSessionResult; paid by default."""

    def _create(
        session_id: str = "cs_test_123",
        metadata: dict | None = None,
        payment_status: str = "paid",
        amount_total_cents: int = 3000,
        **kwargs,
    ) -> CheckoutSessionResult:
        kwargs.setdefault("payment_intent_id", "pi_test_123")
        return CheckoutSessionResult(
            id=session_id,
            payment_status=payment_status,
            amount_total_cents=amount_total_cents,
            currency="eur",
            metadata=metadata or {},
            **kwargs,
        )

    return _create


@pytest.fixture
def payment_intent():
    def _create(
        payment_intent_id: str = "pi_test_123",
        customer_id: str | None = None,
        receipt_url: str | None = "https://pay.stripe.com/receipts/rcpt_123",
        billing_email: str | None = None,
        amount_cents: int = 3000,
    ) -> PaymentIntentResult:
        return PaymentIntentResult(
            id=payment_intent_id,
            status="succeeded",
            amount_cents=amount_cents,
            currency="eur",
            customer_id=customer_id,
            created=1750000000,
            latest_charge=ChargeResult(
                id="ch_test_123",
                receipt_url=receipt_url,
                receipt_number="1234-5678",
                billing_email=billing_email,
                billing_name="Jane Doe" if billing_email else None,
            ),
        )

    return _create


@pytest.fixture
def invoice():
    def _create(
        invoice_id: str = "in_test_123",
        payment_intent_id: str | None = "pi_test_123",
        hosted_invoice_url: str | None = "https://invoice.stripe.com/i/in_test_123",
        **kwargs,
    ) -> InvoiceResult:
        kwargs.setdefault("status", "paid")
        kwargs.setdefault("number", "INV-0001")
        kwargs.setdefault("amount_paid_cents", 3000)
        return InvoiceResult(
            id=invoice_id,
            payment_intent_id=payment_intent_id,
            hosted_invoice_url=hosted_invoice_url,
            invoice_pdf=f"https://pay.stripe.com/invoice/{invoice_id}/pdf",
            **kwargs,
        )

    return _create


# =============================================================================
# Metadata
# =============================================================================


@pytest.fixture
def membership_metadata(user):
    return {
        "type": "membership",
        "userType": "user",
        "userId": str(user.pk),
        "priceId": SIMPLE_MEMBERSHIP_PRICE,
        "statusId": "2",
    }


@pytest.fixture
def association_metadata(association):
    return {
        "type": "membership_onetime",
        "userType": "association",
        "associationId": str(association.pk),
        "priceId": ASSOCIATION_MEMBERSHIP_PRICE,
        "statusId": "4",
    }


@pytest.fixture
def training_metadata(member):
    return {
        "type": "training",
        "userId": str(member.pk),
        "priceId": PSSM_PRICE,
        "trainingId": "pssm",
        "originalPrice": "250",
        "discountedPrice": "215",
        "isMember": "true",
        "duration": "14",
    }


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def mock_stripe_adapter():
    """Stand-in for StripeAdapter; classmethod calls become MagicMock calls."""
    return MagicMock()


@pytest.fixture
def mock_notifier():
    notifier = MagicMock()
    notifier.notify.return_value = DeliveryResult(success=True, message_id="<m@test>", attempts=1)
    return notifier


@pytest.fixture
def mock_proof_scheduler():
    scheduler = MagicMock()
    scheduler.schedule.return_value = True
    return scheduler


@pytest.fixture
def reconciliation_service(mock_stripe_adapter, mock_notifier, mock_proof_scheduler):
    return ReconciliationService(
        stripe_adapter=mock_stripe_adapter,
        notifier=mock_notifier,
        proof_scheduler=mock_proof_scheduler,
    )
