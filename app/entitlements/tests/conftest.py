"""
Pytest fixtures for entitlement tests.

Usage:
    def test_terminate(active_membership, cancellation_service):
        result = cancellation_service.terminate_membership(active_membership.pk)
        assert result.success
"""

from unittest.mock import MagicMock

import pytest

from accounts.models import MemberStatus
from accounts.tests.factories import AssociationFactory, UserFactory, UserStatusFactory
from entitlements.services import CancellationService, EntitlementService
from entitlements.tests.factories import MembershipFactory


@pytest.fixture
def user(db):
    return UserFactory()


@pytest.fixture
def member(db):
    return UserStatusFactory(status=MemberStatus.MEMBER).user


@pytest.fixture
def association(db):
    return AssociationFactory()


@pytest.fixture
def active_membership(member):
    return MembershipFactory(users=[member])


@pytest.fixture
def cancelled_membership(member):
    return MembershipFactory(users=[member], cancelled=True)


@pytest.fixture
def expired_membership(member):
    return MembershipFactory(users=[member], expired=True)


@pytest.fixture
def entitlement_service():
    return EntitlementService()


@pytest.fixture
def mock_stripe_adapter():
    """Stand-in for StripeAdapter; classmethod calls become MagicMock calls."""
    return MagicMock()


@pytest.fixture
def cancellation_service(mock_stripe_adapter):
    return CancellationService(stripe_adapter=mock_stripe_adapter)
