"""
Tests for CancellationService.

Tests cover:
- Terminate: ACTIVE -> RENEWAL_CANCELLED, failures for cancelled/expired/missing
- Best-effort upstream subscription cancellation
- Delete: guards, link removal, shared rows retained, status cleanup
"""

import uuid

import pytest

from accounts.models import MemberStatus, UserStatus
from accounts.tests.factories import UserStatusFactory
from core.exceptions import ValidationError
from entitlements.models import Membership, UserMembership
from entitlements.states import MembershipState
from entitlements.tests.factories import MembershipFactory
from payments.exceptions import StripeAPIUnavailableError


@pytest.mark.django_db
class TestTerminateMembership:
    def test_active_membership_is_cancelled(self, cancellation_service, active_membership, member):
        result = cancellation_service.terminate_membership(active_membership.pk)

        assert result.success
        active_membership.refresh_from_db()
        assert active_membership.state == MembershipState.RENEWAL_CANCELLED
        assert active_membership.cancelled_at is not None
        assert result.data.status_updated == [str(member.pk)]
        assert UserStatus.objects.get(user=member).status == MemberStatus.CONNECTED

    def test_no_subscription_skips_upstream(
        self, cancellation_service, active_membership, mock_stripe_adapter
    ):
        result = cancellation_service.terminate_membership(active_membership.pk)

        assert result.data.upstream_cancelled is None
        mock_stripe_adapter.cancel_subscription_at_period_end.assert_not_called()

    def test_subscription_cancelled_upstream(self, cancellation_service, member, mock_stripe_adapter):
        membership = MembershipFactory(users=[member], stripe_subscription_id="sub_123")

        result = cancellation_service.terminate_membership(membership.pk)

        assert result.data.upstream_cancelled is True
        call = mock_stripe_adapter.cancel_subscription_at_period_end.call_args
        assert call.args == ("sub_123",)
        assert call.kwargs["idempotency_key"].startswith(f"cancel_subscription:{membership.pk}:")

    def test_upstream_failure_keeps_local_cancellation(
        self, cancellation_service, member, mock_stripe_adapter
    ):
        membership = MembershipFactory(users=[member], stripe_subscription_id="sub_123")
        mock_stripe_adapter.cancel_subscription_at_period_end.side_effect = (
            StripeAPIUnavailableError("Stripe down")
        )

        result = cancellation_service.terminate_membership(membership.pk)

        assert result.success
        assert result.data.upstream_cancelled is False
        membership.refresh_from_db()
        assert membership.state == MembershipState.RENEWAL_CANCELLED

    def test_other_tier_status_left_alone(self, cancellation_service):
        pro = UserStatusFactory(status=MemberStatus.PROFESSIONAL).user
        membership = MembershipFactory(users=[pro], status=MemberStatus.MEMBER)

        cancellation_service.terminate_membership(membership.pk)

        assert UserStatus.objects.get(user=pro).status == MemberStatus.PROFESSIONAL

    def test_already_cancelled(self, cancellation_service, cancelled_membership):
        result = cancellation_service.terminate_membership(cancelled_membership.pk)

        assert not result.success
        assert result.error_code == "MEMBERSHIP_ALREADY_CANCELLED"

    def test_expired(self, cancellation_service, expired_membership):
        result = cancellation_service.terminate_membership(expired_membership.pk)

        assert not result.success
        assert result.error_code == "MEMBERSHIP_EXPIRED"
        expired_membership.refresh_from_db()
        assert expired_membership.state == MembershipState.ACTIVE

    def test_not_found(self, cancellation_service):
        result = cancellation_service.terminate_membership(uuid.uuid4())

        assert result.error_code == "MEMBERSHIP_NOT_FOUND"

    def test_malformed_id(self, cancellation_service):
        with pytest.raises(ValidationError):
            cancellation_service.terminate_membership("M1")


@pytest.mark.django_db
class TestDeleteMembership:
    def test_active_membership_cannot_be_deleted(self, cancellation_service, active_membership, member):
        result = cancellation_service.delete_membership(active_membership.pk, "user", member.pk)

        assert not result.success
        assert result.error_code == "MEMBERSHIP_STILL_ACTIVE"
        assert Membership.objects.filter(pk=active_membership.pk).exists()

    def test_cancelled_membership_is_deleted(self, cancellation_service, cancelled_membership, member):
        result = cancellation_service.delete_membership(cancelled_membership.pk, "user", member.pk)

        assert result.success
        assert result.data.link_removed is True
        assert result.data.row_deleted is True
        assert result.data.status_removed is True
        assert not Membership.objects.filter(pk=cancelled_membership.pk).exists()
        assert not UserStatus.objects.filter(user=member).exists()

    def test_expired_membership_is_deleted(self, cancellation_service, expired_membership, member):
        result = cancellation_service.delete_membership(expired_membership.pk, "user", member.pk)

        assert result.data.row_deleted is True

    def test_shared_row_is_retained(self, cancellation_service, member, association):
        membership = MembershipFactory(users=[member], associations=[association], cancelled=True)

        result = cancellation_service.delete_membership(membership.pk, "association", association.pk)

        assert result.data.link_removed is True
        assert result.data.row_retained is True
        assert result.data.row_deleted is False
        assert Membership.objects.filter(pk=membership.pk).exists()
        assert UserMembership.objects.filter(membership=membership, user=member).exists()

    def test_association_delete_leaves_user_status(self, cancellation_service, association, member):
        membership = MembershipFactory(associations=[association], expired=True)

        result = cancellation_service.delete_membership(membership.pk, "association", association.pk)

        assert result.data.row_deleted is True
        assert result.data.status_removed is None
        assert UserStatus.objects.filter(user=member).exists()

    def test_missing_row_is_success(self, cancellation_service, member):
        result = cancellation_service.delete_membership(uuid.uuid4(), "user", member.pk)

        assert result.success
        assert result.data.row_deleted is False
        assert result.data.link_removed is False
