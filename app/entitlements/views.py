"""
DRF views for the entitlements app.

Endpoints:
    GET /api/v1/membership-status/<subject_id>/<subject_type>/ - Memberships of a subject
    POST /api/v1/terminate-membership/<id>/ - Cancel renewal
    DELETE /api/v1/delete-membership/<id>/ - Delete a cancelled or expired membership
    GET /api/v1/check-training-purchase/<user_id>/<training_id>/ - Ownership check
"""

from __future__ import annotations

import logging

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import BaseApplicationError
from entitlements.serializers import (
    DeleteMembershipSerializer,
    MembershipSerializer,
    TrainingPurchaseSerializer,
)
from entitlements.services import CancellationService, MembershipQueryService

logger = logging.getLogger(__name__)


def failure_status(error_code: str | None) -> int:
    if error_code == "MEMBERSHIP_NOT_FOUND":
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_400_BAD_REQUEST


class MembershipStatusView(APIView):
    """
    Memberships linked to a user or an association, newest first.

    GET /api/v1/membership-status/<subject_id>/<subject_type>/
    """

    permission_classes = [AllowAny]

    def get(self, request, subject_id, subject_type):
        try:
            memberships = MembershipQueryService().memberships_for_subject(
                subject_type, subject_id
            )
            data = MembershipSerializer(memberships, many=True).data
        except BaseApplicationError as e:
            return Response(e.to_dict(), status=e.http_status)
        return Response(data)


class TerminateMembershipView(APIView):
    """
    Cancel the renewal of a membership. Access runs until its end date.

    POST /api/v1/terminate-membership/<id>/

    Returns:
        200 with the membership
        400 already cancelled or expired
        404 unknown membership
    """

    permission_classes = [AllowAny]

    def post(self, request, membership_id):
        try:
            result = CancellationService().terminate_membership(membership_id)
        except BaseApplicationError as e:
            return Response(e.to_dict(), status=e.http_status)

        if not result.success:
            return Response(result.to_response(), status=failure_status(result.error_code))

        outcome = result.data
        return Response(
            {
                "success": True,
                "membership": MembershipSerializer(outcome.membership).data,
                "upstream_cancelled": outcome.upstream_cancelled,
                "status_updated": outcome.status_updated,
            }
        )


class DeleteMembershipView(APIView):
    """
    Remove a subject's link to a membership; the row goes with its last link.

    DELETE /api/v1/delete-membership/<id>/?subjectId=<uuid>&subjectType=user

    Returns:
        200 (also when the membership no longer exists)
        400 membership still active and not cancelled
    """

    permission_classes = [AllowAny]

    def delete(self, request, membership_id):
        params = {
            key: request.data.get(key) or request.query_params.get(key)
            for key in ("subjectId", "subjectType")
            if request.data.get(key) or request.query_params.get(key)
        }
        serializer = DeleteMembershipSerializer(data=params)
        if not serializer.is_valid():
            return Response(
                {"error": "Invalid delete request", "details": serializer.errors},
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            result = CancellationService().delete_membership(
                membership_id,
                serializer.validated_data["subjectType"],
                serializer.validated_data["subjectId"],
            )
        except BaseApplicationError as e:
            return Response(e.to_dict(), status=e.http_status)

        if not result.success:
            return Response(result.to_response(), status=failure_status(result.error_code))

        outcome = result.data
        return Response(
            {
                "success": True,
                "membership_id": str(outcome.membership_id),
                "link_removed": outcome.link_removed,
                "row_deleted": outcome.row_deleted,
                "row_retained": outcome.row_retained,
                "status_removed": outcome.status_removed,
            }
        )


class CheckTrainingPurchaseView(APIView):
    """GET /api/v1/check-training-purchase/<user_id>/<training_id>/"""

    permission_classes = [AllowAny]

    def get(self, request, user_id, training_id):
        try:
            found = MembershipQueryService().check_training_purchase(user_id, training_id)
        except BaseApplicationError as e:
            return Response(e.to_dict(), status=e.http_status)

        purchase = found["purchase"]
        return Response(
            {
                "purchased": found["purchased"],
                "purchase_details": TrainingPurchaseSerializer(purchase).data if purchase else None,
            }
        )
