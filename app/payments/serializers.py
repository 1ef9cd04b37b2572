"""
DRF serializers for the payments app.

Request bodies keep the camelCase keys the frontend already sends
(priceId, userId, sessionId...).

Usage:
    serializer = CreateCheckoutSessionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    checkout_request = serializer.to_checkout_request()
"""

from __future__ import annotations

from rest_framework import serializers

from accounts.models import SubjectType
from core.exceptions import ValidationError
from entitlements.states import TransactionKind
from payments.services import CheckoutRequest


class CreateCheckoutSessionSerializer(serializers.Serializer):
    """
    Checkout request for a membership or a training.

    Memberships need userType plus the matching userId / associationId.
    Trainings are always bought by a user.
    """

    priceId = serializers.CharField()
    type = serializers.CharField(required=False, default=TransactionKind.MEMBERSHIP.value)
    userType = serializers.ChoiceField(choices=SubjectType.choices, required=False)
    userId = serializers.UUIDField(required=False, allow_null=True)
    associationId = serializers.UUIDField(required=False, allow_null=True)
    statusId = serializers.IntegerField(required=False, allow_null=True, min_value=1, max_value=4)
    trainingId = serializers.CharField(required=False, allow_blank=True)
    successUrl = serializers.URLField(required=False, allow_blank=True)
    cancelUrl = serializers.URLField(required=False, allow_blank=True)

    def validate_type(self, value: str) -> TransactionKind:
        try:
            return TransactionKind.parse(value)
        except ValidationError as e:
            raise serializers.ValidationError(e.message) from e

    def validate(self, attrs: dict) -> dict:
        kind = attrs["type"]
        if kind is TransactionKind.TRAINING:
            attrs["userType"] = SubjectType.USER
        subject_type = SubjectType(attrs.get("userType") or SubjectType.USER)
        attrs["userType"] = subject_type

        field_name = "userId" if subject_type is SubjectType.USER else "associationId"
        if not attrs.get(field_name):
            raise serializers.ValidationError({field_name: "This field is required."})
        return attrs

    def to_checkout_request(self) -> CheckoutRequest:
        data = self.validated_data
        subject_type = data["userType"]
        subject_id = data["userId"] if subject_type is SubjectType.USER else data["associationId"]
        return CheckoutRequest(
            kind=data["type"],
            price_id=data["priceId"],
            subject_type=subject_type,
            subject_id=subject_id,
            status_id=data.get("statusId"),
            training_id=data.get("trainingId") or None,
            success_url=data.get("successUrl") or None,
            cancel_url=data.get("cancelUrl") or None,
        )


class ProcessPaymentSuccessSerializer(serializers.Serializer):
    sessionId = serializers.CharField()


class TrainingDetailsSerializer(serializers.Serializer):
    """Catalog details with the member-adjusted price."""

    price_id = serializers.CharField()
    training_type = serializers.CharField()
    name = serializers.CharField()
    full_name = serializers.CharField()
    base_price = serializers.DecimalField(max_digits=10, decimal_places=2, coerce_to_string=False)
    member_discount = serializers.DecimalField(max_digits=10, decimal_places=2, coerce_to_string=False)
    duration = serializers.IntegerField()
    final_price = serializers.DecimalField(max_digits=10, decimal_places=2, coerce_to_string=False)
    discount = serializers.DecimalField(max_digits=10, decimal_places=2, coerce_to_string=False)
    is_member = serializers.BooleanField()
