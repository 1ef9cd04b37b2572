"""
Factory Boy factories for entitlement test data.

Usage:
    from entitlements.tests.factories import MembershipFactory

    membership = MembershipFactory(users=[user])
    expired = MembershipFactory(expired=True)
"""

from datetime import timedelta
from decimal import Decimal

import factory
from django.utils import timezone

from accounts.models import MemberStatus
from accounts.tests.factories import AssociationFactory, UserFactory
from entitlements.models import (
    AssociationMembership,
    Membership,
    TrainingPurchase,
    UserMembership,
)


class MembershipFactory(factory.django.DjangoModelFactory):
    """
    Factory for Membership rows.

    Traits:
        expired: Started 400 days ago, so end_at is in the past
        cancelled: Renewal already cancelled

    Post-generation:
        users / associations: Subjects to link
    """

    class Meta:
        model = Membership
        skip_postgeneration_save = True

    price = Decimal("30.00")
    status = MemberStatus.MEMBER
    start_at = factory.LazyFunction(timezone.now)
    stripe_session_id = factory.Sequence(lambda n: f"cs_test_membership_{n}")
    stripe_payment_intent_id = factory.Sequence(lambda n: f"pi_test_membership_{n}")

    class Params:
        expired = factory.Trait(
            start_at=factory.LazyFunction(lambda: timezone.now() - timedelta(days=400)),
        )
        cancelled = factory.Trait(
            state="renewal_cancelled",
            cancelled_at=factory.LazyFunction(timezone.now),
        )

    @factory.post_generation
    def users(self, create, extracted, **kwargs):
        if create and extracted:
            for user in extracted:
                UserMembership.objects.create(user=user, membership=self)

    @factory.post_generation
    def associations(self, create, extracted, **kwargs):
        if create and extracted:
            for association in extracted:
                AssociationMembership.objects.create(association=association, membership=self)


class UserMembershipFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = UserMembership

    user = factory.SubFactory(UserFactory)
    membership = factory.SubFactory(MembershipFactory)


class AssociationMembershipFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = AssociationMembership

    association = factory.SubFactory(AssociationFactory)
    membership = factory.SubFactory(MembershipFactory, status=MemberStatus.ASSOCIATION_MEMBER)


class TrainingPurchaseFactory(factory.django.DjangoModelFactory):
    """Default is a non-member PSSM seat."""

    class Meta:
        model = TrainingPurchase

    user = factory.SubFactory(UserFactory)
    training_id = "pssm"
    price_id = "price_1RZKxz05Uibkj68MfCpirZlH"
    purchase_amount = Decimal("250.00")
    original_price = Decimal("250.00")
    member_discount = Decimal("0")
    hours_purchased = 14
    stripe_session_id = factory.Sequence(lambda n: f"cs_test_training_{n}")
    stripe_payment_intent_id = factory.Sequence(lambda n: f"pi_test_training_{n}")
