"""
Tests for entitlements API views.
"""

import pytest
from django.urls import reverse

from accounts.models import MemberStatus, UserStatus
from accounts.tests.factories import AssociationFactory, UserFactory, UserStatusFactory
from entitlements.models import Membership
from entitlements.tests.factories import MembershipFactory, TrainingPurchaseFactory

UNKNOWN_ID = "00000000-0000-4000-8000-000000000000"


@pytest.mark.django_db
class TestMembershipStatusView:
    def test_user_memberships(self, api_client):
        user = UserFactory()
        membership = MembershipFactory(users=[user])
        MembershipFactory()

        response = api_client.get(
            reverse("entitlements:membership_status", args=[str(user.pk), "user"])
        )

        assert response.status_code == 200
        body = response.json()
        assert [item["id"] for item in body] == [str(membership.pk)]
        assert body[0]["lifecycle_state"] == "active"

    def test_association_memberships(self, api_client):
        association = AssociationFactory()
        MembershipFactory(associations=[association], status=MemberStatus.ASSOCIATION_MEMBER)

        response = api_client.get(
            reverse("entitlements:membership_status", args=[str(association.pk), "association"])
        )

        assert response.status_code == 200
        assert len(response.json()) == 1

    def test_invalid_subject_type(self, api_client):
        response = api_client.get(
            reverse("entitlements:membership_status", args=[UNKNOWN_ID, "company"])
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_SUBJECT_TYPE"


@pytest.mark.django_db
class TestTerminateMembershipView:
    def test_cancels_renewal_and_revokes_status(self, api_client):
        status = UserStatusFactory(status=MemberStatus.MEMBER)
        membership = MembershipFactory(users=[status.user])

        response = api_client.post(
            reverse("entitlements:terminate_membership", args=[str(membership.pk)])
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["membership"]["state"] == "renewal_cancelled"
        assert body["upstream_cancelled"] is None
        assert body["status_updated"] == [str(status.user.pk)]
        assert UserStatus.objects.get(user=status.user).status == MemberStatus.CONNECTED

    def test_already_cancelled(self, api_client):
        membership = MembershipFactory(cancelled=True)

        response = api_client.post(
            reverse("entitlements:terminate_membership", args=[str(membership.pk)])
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "MEMBERSHIP_ALREADY_CANCELLED"

    def test_expired(self, api_client):
        membership = MembershipFactory(expired=True)

        response = api_client.post(
            reverse("entitlements:terminate_membership", args=[str(membership.pk)])
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "MEMBERSHIP_EXPIRED"

    def test_unknown_membership(self, api_client):
        response = api_client.post(reverse("entitlements:terminate_membership", args=[UNKNOWN_ID]))

        assert response.status_code == 404


@pytest.mark.django_db
class TestDeleteMembershipView:
    def test_deletes_cancelled_membership(self, api_client):
        user = UserFactory()
        membership = MembershipFactory(users=[user], cancelled=True)

        response = api_client.delete(
            reverse("entitlements:delete_membership", args=[str(membership.pk)]),
            {"subjectId": str(user.pk), "subjectType": "user"},
            format="json",
        )

        assert response.status_code == 200
        body = response.json()
        assert body["link_removed"] is True
        assert body["row_deleted"] is True
        assert not Membership.objects.filter(pk=membership.pk).exists()

    def test_subject_from_query_string(self, api_client):
        user = UserFactory()
        other = UserFactory()
        membership = MembershipFactory(users=[user, other], expired=True)

        url = reverse("entitlements:delete_membership", args=[str(membership.pk)])
        response = api_client.delete(f"{url}?subjectId={user.pk}")

        assert response.status_code == 200
        assert response.json()["row_retained"] is True
        assert Membership.objects.filter(pk=membership.pk).exists()

    def test_active_membership_is_kept(self, api_client):
        user = UserFactory()
        membership = MembershipFactory(users=[user])

        response = api_client.delete(
            reverse("entitlements:delete_membership", args=[str(membership.pk)]),
            {"subjectId": str(user.pk)},
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "MEMBERSHIP_STILL_ACTIVE"

    def test_missing_subject(self, api_client):
        response = api_client.delete(reverse("entitlements:delete_membership", args=[UNKNOWN_ID]))

        assert response.status_code == 400
        assert "subjectId" in response.json()["details"]

    def test_already_deleted(self, api_client):
        response = api_client.delete(
            reverse("entitlements:delete_membership", args=[UNKNOWN_ID]),
            {"subjectId": UNKNOWN_ID},
            format="json",
        )

        assert response.status_code == 200
        assert response.json()["row_deleted"] is False


@pytest.mark.django_db
class TestCheckTrainingPurchaseView:
    def test_purchased(self, api_client):
        purchase = TrainingPurchaseFactory()

        response = api_client.get(
            reverse(
                "entitlements:check_training_purchase",
                args=[str(purchase.user_id), "pssm"],
            )
        )

        assert response.status_code == 200
        body = response.json()
        assert body["purchased"] is True
        assert body["purchase_details"]["id"] == str(purchase.pk)
        assert body["purchase_details"]["hours_remaining"] == 14

    def test_not_purchased(self, api_client):
        user = UserFactory()

        response = api_client.get(
            reverse("entitlements:check_training_purchase", args=[str(user.pk), "pssm"])
        )

        assert response.status_code == 200
        assert response.json() == {"purchased": False, "purchase_details": None}
