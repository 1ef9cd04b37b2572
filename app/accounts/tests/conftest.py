"""
Pytest fixtures for subject store tests.
"""

import pytest

from accounts.models import MemberStatus
from accounts.tests.factories import AssociationFactory, UserFactory, UserStatusFactory


@pytest.fixture
def user(db):
    return UserFactory()


@pytest.fixture
def member(db):
    """A user holding the simple member status."""
    return UserStatusFactory(status=MemberStatus.MEMBER).user


@pytest.fixture
def association(db):
    return AssociationFactory()
