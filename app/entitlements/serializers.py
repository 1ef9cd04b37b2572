"""
DRF serializers for the entitlements app.

Read-only representations of memberships and training purchases, plus the
subject parameters of the delete endpoint.
"""

from __future__ import annotations

from rest_framework import serializers

from accounts.models import SubjectType
from entitlements.models import Membership, TrainingPurchase

PROOF_FIELDS = ["proof_reference", "proof_url", "proof_type", "proof_resolved_at"]


class MembershipSerializer(serializers.ModelSerializer):
    """
    Membership with its computed lifecycle state.

    lifecycle_state is "expired" once end_at has passed, whatever the
    stored state.
    """

    status_label = serializers.CharField(source="get_status_display", read_only=True)
    lifecycle_state = serializers.CharField(read_only=True)

    class Meta:
        model = Membership
        fields = [
            "id",
            "price",
            "currency",
            "status",
            "status_label",
            "start_at",
            "end_at",
            "state",
            "lifecycle_state",
            "cancelled_at",
            "stripe_session_id",
            *PROOF_FIELDS,
            "created_at",
        ]
        read_only_fields = fields


class TrainingPurchaseSerializer(serializers.ModelSerializer):
    hours_remaining = serializers.IntegerField(read_only=True)

    class Meta:
        model = TrainingPurchase
        fields = [
            "id",
            "user",
            "training_id",
            "price_id",
            "purchase_amount",
            "original_price",
            "member_discount",
            "hours_purchased",
            "hours_consumed",
            "hours_remaining",
            "payment_status",
            "stripe_session_id",
            *PROOF_FIELDS,
            "purchased_at",
        ]
        read_only_fields = fields


class DeleteMembershipSerializer(serializers.Serializer):
    """Owner of the link being removed, from the body or the query string."""

    subjectId = serializers.UUIDField()
    subjectType = serializers.ChoiceField(choices=SubjectType.choices, default=SubjectType.USER)
