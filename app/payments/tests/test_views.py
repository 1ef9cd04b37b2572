"""
Tests for payments API views.

Stripe is replaced by patching the StripeAdapter each service module
imports; everything below the adapter (entitlements, statuses, mail) runs
for real against the test database.
"""

from unittest.mock import patch

import pytest
from django.core import mail
from django.urls import reverse

from entitlements.models import Membership
from entitlements.states import ProofType
from entitlements.tests.factories import MembershipFactory
from payments.exceptions import StripeResourceMissingError

from .conftest import PSSM_PRICE, SIMPLE_MEMBERSHIP_PRICE

CHECKOUT_ADAPTER = "payments.services.checkout.StripeAdapter"
RECONCILIATION_ADAPTER = "payments.services.reconciliation.StripeAdapter"
PROOF_ADAPTER = "payments.services.proof_of_payment.StripeAdapter"


# =============================================================================
# Checkout
# =============================================================================


@pytest.mark.django_db
class TestCreateCheckoutSessionView:
    url = reverse("payments:create_checkout_session")

    def test_membership(self, api_client, user):
        with patch(CHECKOUT_ADAPTER) as adapter:
            adapter.create_checkout_session.return_value.id = "cs_test_new"
            adapter.create_checkout_session.return_value.url = "https://checkout.stripe.com/c/pay/x"
            response = api_client.post(
                self.url,
                {"priceId": SIMPLE_MEMBERSHIP_PRICE, "userType": "user", "userId": str(user.pk)},
                format="json",
            )

        assert response.status_code == 200
        assert response.json() == {
            "url": "https://checkout.stripe.com/c/pay/x",
            "sessionId": "cs_test_new",
        }

    def test_training_forces_user_subject(self, api_client, member):
        with patch(CHECKOUT_ADAPTER) as adapter:
            adapter.create_checkout_session.return_value.id = "cs_test_new"
            adapter.create_checkout_session.return_value.url = "https://checkout.stripe.com/c/pay/x"
            response = api_client.post(
                self.url,
                {
                    "priceId": PSSM_PRICE,
                    "type": "training",
                    "userType": "association",
                    "userId": str(member.pk),
                },
                format="json",
            )

        assert response.status_code == 200
        params = adapter.create_checkout_session.call_args.args[0]
        assert params.metadata["userType"] == "user"
        assert params.line_item()["price_data"]["unit_amount"] == 21500

    def test_missing_subject(self, api_client):
        response = api_client.post(
            self.url, {"priceId": SIMPLE_MEMBERSHIP_PRICE, "userType": "association"}, format="json"
        )

        assert response.status_code == 400
        assert "associationId" in response.json()["details"]

    def test_unknown_type(self, api_client, user):
        response = api_client.post(
            self.url,
            {"priceId": SIMPLE_MEMBERSHIP_PRICE, "type": "donation", "userId": str(user.pk)},
            format="json",
        )

        assert response.status_code == 400
        assert "type" in response.json()["details"]

    def test_unknown_user(self, api_client):
        with patch(CHECKOUT_ADAPTER) as adapter:
            response = api_client.post(
                self.url,
                {
                    "priceId": SIMPLE_MEMBERSHIP_PRICE,
                    "userId": "00000000-0000-4000-8000-000000000000",
                },
                format="json",
            )

        assert response.status_code == 404
        assert response.json()["error_code"] == "USER_NOT_FOUND"
        adapter.create_checkout_session.assert_not_called()


# =============================================================================
# Client Confirmation
# =============================================================================


@pytest.mark.django_db
class TestProcessPaymentSuccessView:
    url = reverse("payments:process_payment_success")

    def test_creates_membership(self, api_client, user, paid_session, membership_metadata):
        with patch(RECONCILIATION_ADAPTER) as adapter:
            adapter.retrieve_checkout_session.return_value = paid_session(
                metadata=membership_metadata
            )
            response = api_client.post(self.url, {"sessionId": "cs_test_123"}, format="json")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["created"] is True
        assert body["type"] == "membership"
        assert body["subject_id"] == str(user.pk)
        assert Membership.objects.filter(stripe_session_id="cs_test_123").count() == 1
        assert len(mail.outbox) == 1

    def test_repeat_is_a_noop(self, api_client, user, paid_session, membership_metadata):
        with patch(RECONCILIATION_ADAPTER) as adapter:
            adapter.retrieve_checkout_session.return_value = paid_session(
                metadata=membership_metadata
            )
            api_client.post(self.url, {"sessionId": "cs_test_123"}, format="json")
            response = api_client.post(self.url, {"sessionId": "cs_test_123"}, format="json")

        assert response.status_code == 200
        assert response.json()["created"] is False
        assert Membership.objects.filter(stripe_session_id="cs_test_123").count() == 1
        assert len(mail.outbox) == 1

    def test_unpaid_session(self, api_client, paid_session, membership_metadata):
        with patch(RECONCILIATION_ADAPTER) as adapter:
            adapter.retrieve_checkout_session.return_value = paid_session(
                metadata=membership_metadata, payment_status="unpaid"
            )
            response = api_client.post(self.url, {"sessionId": "cs_test_123"}, format="json")

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error_code"] == "PAYMENT_NOT_CONFIRMED"
        assert body["payment_status"] == "unpaid"
        assert not Membership.objects.exists()

    def test_unknown_session(self, api_client):
        with patch(RECONCILIATION_ADAPTER) as adapter:
            adapter.retrieve_checkout_session.side_effect = StripeResourceMissingError(
                "No such checkout.session"
            )
            response = api_client.post(self.url, {"sessionId": "cs_missing"}, format="json")

        assert response.status_code == 404
        assert response.json()["error_code"] == "SESSION_NOT_FOUND"

    def test_missing_session_id(self, api_client):
        response = api_client.post(self.url, {}, format="json")

        assert response.status_code == 400


# =============================================================================
# Proof of Payment
# =============================================================================


@pytest.mark.django_db
class TestReceiptView:
    def test_invoice(self, api_client, invoice):
        with patch(PROOF_ADAPTER) as adapter:
            adapter.retrieve_invoice.return_value = invoice()
            response = api_client.get(reverse("payments:receipt", args=["in_test_123"]))

        assert response.status_code == 200
        assert response.json()["receipt_type"] == "stripe_invoice"

    def test_not_found_carries_payment_info(self, api_client, payment_intent):
        with patch(PROOF_ADAPTER) as adapter:
            adapter.retrieve_invoice.side_effect = StripeResourceMissingError("No such invoice")
            adapter.retrieve_payment_intent.return_value = payment_intent(receipt_url=None)
            response = api_client.get(reverse("payments:receipt", args=["pi_test_123"]))

        assert response.status_code == 404
        body = response.json()
        assert body["error"]
        assert body["invoice_id"] == "pi_test_123"
        assert body["payment_info"]["payment_intent_id"] == "pi_test_123"
        assert body["suggestion"]


@pytest.mark.django_db
class TestResolveProofView:
    def test_existing_proof_returned(self, api_client):
        membership = MembershipFactory(
            proof_reference="in_first",
            proof_url="https://invoice.stripe.com/i/in_first",
            proof_type=ProofType.INVOICE,
        )

        response = api_client.post(
            reverse("payments:resolve_proof", args=["membership", str(membership.pk)])
        )

        assert response.status_code == 200
        assert response.json() == {
            "resolved": True,
            "strategy": "already_attached",
            "reference": "in_first",
            "url": "https://invoice.stripe.com/i/in_first",
            "proof_type": "invoice",
        }

    def test_unknown_entitlement(self, api_client):
        response = api_client.post(
            reverse(
                "payments:resolve_proof",
                args=["training", "00000000-0000-4000-8000-000000000000"],
            )
        )

        assert response.status_code == 404

    def test_unknown_kind(self, api_client):
        response = api_client.post(
            reverse(
                "payments:resolve_proof",
                args=["donation", "00000000-0000-4000-8000-000000000000"],
            )
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "UNKNOWN_TRANSACTION_TYPE"


@pytest.mark.django_db
class TestTrainingDetailsView:
    def test_member_price(self, api_client, member):
        response = api_client.get(
            reverse("payments:training_details", args=["price_pssm", str(member.pk)])
        )

        assert response.status_code == 200
        body = response.json()
        assert body["final_price"] == 215.0
        assert body["is_member"] is True
        assert body["duration"] == 14

    def test_unknown_training(self, api_client, user):
        response = api_client.get(
            reverse("payments:training_details", args=["price_unknown", str(user.pk)])
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "TRAINING_NOT_FOUND"
