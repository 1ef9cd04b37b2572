"""
Tests for EntitlementService (idempotency guard and entitlement factory).

Tests cover:
- Per-kind creation (user membership, association membership, training)
- Idempotent repeats returning the existing row
- Uniqueness-race fallback to the winner's row
- Persistence failures
- Proof attachment with a conditional update
"""

import uuid
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import DatabaseError

from accounts.models import MemberStatus, SubjectType
from core.exceptions import NotFoundError, ValidationError
from entitlements.exceptions import EntitlementPersistenceError
from entitlements.models import Membership, TrainingPurchase
from entitlements.services import MembershipQueryService, ProofOfPayment
from entitlements.states import ProofType, TransactionKind
from entitlements.tests.factories import MembershipFactory, TrainingPurchaseFactory

SIMPLE_PRICE = "price_1RknRO05Uibkj68MUPgVuW2Y"
PRO_PRICE = "price_1RknR205Uibkj68MeezgOEAs"


@pytest.mark.django_db
class TestMembershipCreation:
    def test_user_membership_created_and_linked(self, entitlement_service, user):
        outcome = entitlement_service.get_or_create_membership(
            session_id="cs_test_1",
            subject_type=SubjectType.USER,
            subject_id=user.pk,
            price_id=SIMPLE_PRICE,
            amount_paid=Decimal("30.00"),
            payment_intent_id="pi_test_1",
        )

        assert outcome.created is True
        assert outcome.kind is TransactionKind.MEMBERSHIP
        membership = outcome.entitlement
        assert membership.price == Decimal("30.00")
        assert membership.status == MemberStatus.MEMBER
        assert membership.stripe_payment_intent_id == "pi_test_1"
        assert membership.proof_reference is None
        assert list(membership.users.all()) == [user]

    def test_status_from_metadata_wins(self, entitlement_service, user):
        outcome = entitlement_service.get_or_create_membership(
            session_id="cs_test_1",
            subject_type="user",
            subject_id=str(user.pk),
            price_id=SIMPLE_PRICE,
            amount_paid=Decimal("30.00"),
            status_id="3",
        )

        assert outcome.entitlement.status == MemberStatus.PROFESSIONAL

    def test_status_from_catalog(self, entitlement_service, user):
        outcome = entitlement_service.get_or_create_membership(
            session_id="cs_test_1",
            subject_type=SubjectType.USER,
            subject_id=user.pk,
            price_id=PRO_PRICE,
            amount_paid=Decimal("20.00"),
        )

        assert outcome.entitlement.status == MemberStatus.PROFESSIONAL

    def test_unknown_price_uses_amount_paid(self, entitlement_service, user):
        outcome = entitlement_service.get_or_create_membership(
            session_id="cs_test_1",
            subject_type=SubjectType.USER,
            subject_id=user.pk,
            price_id="price_unknown",
            amount_paid=Decimal("42.00"),
        )

        assert outcome.entitlement.price == Decimal("42.00")
        assert outcome.entitlement.status == MemberStatus.MEMBER

    def test_association_membership(self, entitlement_service, association):
        outcome = entitlement_service.get_or_create_membership(
            session_id="cs_test_assoc",
            subject_type=SubjectType.ASSOCIATION,
            subject_id=association.pk,
            price_id=None,
            amount_paid=Decimal("10.00"),
        )

        membership = outcome.entitlement
        assert outcome.subject_type is SubjectType.ASSOCIATION
        assert membership.status == MemberStatus.ASSOCIATION_MEMBER
        assert list(membership.associations.all()) == [association]
        assert membership.users.count() == 0

    def test_same_association_new_session_gets_new_row(self, entitlement_service, association):
        for session_id in ("cs_year_1", "cs_year_2"):
            entitlement_service.get_or_create_membership(
                session_id=session_id,
                subject_type=SubjectType.ASSOCIATION,
                subject_id=association.pk,
                price_id=None,
                amount_paid=Decimal("10.00"),
            )

        assert association.memberships.count() == 2

    def test_repeat_returns_existing_row(self, entitlement_service, user):
        kwargs = dict(
            session_id="cs_test_1",
            subject_type=SubjectType.USER,
            subject_id=user.pk,
            price_id=SIMPLE_PRICE,
            amount_paid=Decimal("30.00"),
        )

        first = entitlement_service.get_or_create_membership(**kwargs)
        second = entitlement_service.get_or_create_membership(**kwargs)

        assert second.created is False
        assert second.entitlement.pk == first.entitlement.pk
        assert Membership.objects.filter(stripe_session_id="cs_test_1").count() == 1

    def test_race_loser_returns_winner(self, entitlement_service, user):
        """The lookup misses, the insert conflicts, the re-read finds the winner."""
        winner = MembershipFactory(stripe_session_id="cs_race", users=[user])
        real_filter = Membership.objects.filter
        calls = []

        def filter_missing_first(*args, **kwargs):
            queryset = real_filter(*args, **kwargs)
            calls.append(kwargs)
            return queryset.none() if len(calls) == 1 else queryset

        with patch.object(Membership.objects, "filter", side_effect=filter_missing_first):
            outcome = entitlement_service.get_or_create_membership(
                session_id="cs_race",
                subject_type=SubjectType.USER,
                subject_id=user.pk,
                price_id=SIMPLE_PRICE,
                amount_paid=Decimal("30.00"),
            )

        assert outcome.created is False
        assert outcome.entitlement.pk == winner.pk
        assert Membership.objects.filter(stripe_session_id="cs_race").count() == 1

    def test_database_error_raises_persistence_error(self, entitlement_service, user):
        with patch.object(Membership.objects, "create", side_effect=DatabaseError("disk full")):
            with pytest.raises(EntitlementPersistenceError) as exc_info:
                entitlement_service.get_or_create_membership(
                    session_id="cs_test_1",
                    subject_type=SubjectType.USER,
                    subject_id=user.pk,
                    price_id=SIMPLE_PRICE,
                    amount_paid=Decimal("30.00"),
                )

        assert exc_info.value.details["session_id"] == "cs_test_1"
        assert exc_info.value.details["amount"] == "30.00"
        assert exc_info.value.http_status == 500

    def test_unknown_user(self, entitlement_service):
        with pytest.raises(NotFoundError):
            entitlement_service.get_or_create_membership(
                session_id="cs_test_1",
                subject_type=SubjectType.USER,
                subject_id=uuid.uuid4(),
                price_id=SIMPLE_PRICE,
                amount_paid=Decimal("30.00"),
            )
        assert not Membership.objects.exists()

    def test_invalid_subject_type(self, entitlement_service, user):
        with pytest.raises(ValidationError) as exc_info:
            entitlement_service.get_or_create_membership(
                session_id="cs_test_1",
                subject_type="company",
                subject_id=user.pk,
                price_id=SIMPLE_PRICE,
                amount_paid=Decimal("30.00"),
            )
        assert exc_info.value.error_code == "INVALID_SUBJECT_TYPE"


@pytest.mark.django_db
class TestTrainingPurchaseCreation:
    def test_member_purchase_from_checkout_metadata(self, entitlement_service, member):
        outcome = entitlement_service.get_or_create_training_purchase(
            session_id="cs_test_1",
            user_id=member.pk,
            training_id="T1",
            price_id="price_pssm",
            amount_paid=Decimal("215.00"),
            original_price=Decimal("250"),
            discounted_price=Decimal("215"),
            is_member=True,
        )

        purchase = outcome.entitlement
        assert outcome.created is True
        assert purchase.purchase_amount == Decimal("215")
        assert purchase.original_price == Decimal("250")
        assert purchase.member_discount == Decimal("35")
        assert purchase.hours_purchased == 14
        assert purchase.hours_consumed == 0
        assert purchase.payment_status == "paid"
        assert purchase.price_id == "price_1RZKxz05Uibkj68MfCpirZlH"

    def test_non_member_gets_no_discount(self, entitlement_service, user):
        outcome = entitlement_service.get_or_create_training_purchase(
            session_id="cs_test_1",
            user_id=user.pk,
            training_id="T1",
            price_id="price_pssm",
            amount_paid=Decimal("250.00"),
            is_member=False,
        )

        assert outcome.entitlement.purchase_amount == Decimal("250.00")
        assert outcome.entitlement.member_discount == Decimal("0")

    def test_prices_computed_from_catalog_when_absent(self, entitlement_service, member):
        outcome = entitlement_service.get_or_create_training_purchase(
            session_id="cs_test_1",
            user_id=member.pk,
            training_id=None,
            price_id="price_vss",
            amount_paid=Decimal("35.00"),
            is_member=True,
        )

        purchase = outcome.entitlement
        assert purchase.training_id == "vss"
        assert purchase.purchase_amount == Decimal("35.00")
        assert purchase.member_discount == Decimal("15.00")
        assert purchase.hours_purchased == 7

    def test_missing_training_id_and_unknown_price(self, entitlement_service, user):
        with pytest.raises(ValidationError) as exc_info:
            entitlement_service.get_or_create_training_purchase(
                session_id="cs_test_1",
                user_id=user.pk,
                training_id=None,
                price_id="price_unknown",
                amount_paid=Decimal("10.00"),
            )
        assert exc_info.value.error_code == "MISSING_TRAINING_ID"

    def test_repeat_returns_existing_row(self, entitlement_service, user):
        kwargs = dict(
            session_id="cs_test_1",
            user_id=user.pk,
            training_id="T1",
            price_id="price_pssm",
            amount_paid=Decimal("250.00"),
        )

        first = entitlement_service.get_or_create_training_purchase(**kwargs)
        second = entitlement_service.get_or_create_training_purchase(**kwargs)

        assert second.created is False
        assert second.entitlement.pk == first.entitlement.pk
        assert TrainingPurchase.objects.count() == 1


@pytest.mark.django_db
class TestAttachProof:
    def test_attaches_once(self, entitlement_service):
        membership = MembershipFactory()
        invoice = ProofOfPayment("in_1", "https://invoice.stripe.com/i/in_1", ProofType.INVOICE)
        other = ProofOfPayment("in_2", "https://invoice.stripe.com/i/in_2", ProofType.INVOICE)

        assert entitlement_service.attach_proof(TransactionKind.MEMBERSHIP, membership.pk, invoice)
        assert not entitlement_service.attach_proof(TransactionKind.MEMBERSHIP, membership.pk, other)

        membership.refresh_from_db()
        assert membership.proof_reference == "in_1"
        assert membership.proof_type == ProofType.INVOICE
        assert membership.proof_resolved_at is not None

    def test_receipt_on_training(self, entitlement_service):
        purchase = TrainingPurchaseFactory()
        receipt = ProofOfPayment("pi_1", "https://pay.stripe.com/receipts/1", ProofType.RECEIPT)

        assert entitlement_service.attach_proof(TransactionKind.TRAINING, purchase.pk, receipt)

        purchase.refresh_from_db()
        assert purchase.proof_type == ProofType.RECEIPT


@pytest.mark.django_db
class TestMembershipQueryService:
    def test_memberships_for_user(self, user):
        mine = MembershipFactory(users=[user])
        MembershipFactory()

        result = list(MembershipQueryService().memberships_for_subject("user", user.pk))

        assert result == [mine]

    def test_memberships_for_association(self, association):
        shared = MembershipFactory(associations=[association])

        result = list(
            MembershipQueryService().memberships_for_subject("association", association.pk)
        )

        assert result == [shared]

    def test_check_training_purchase(self, user):
        TrainingPurchaseFactory(user=user, training_id="T1")

        found = MembershipQueryService().check_training_purchase(user.pk, "T1")
        missing = MembershipQueryService().check_training_purchase(user.pk, "T2")

        assert found["purchased"] is True
        assert missing == {"purchased": False, "purchase": None}
