"""
URL configuration for the entitlements app.

Routes (prefixed with /api/v1/):
    - GET membership-status/<subject_id>/<subject_type>/
    - POST terminate-membership/<membership_id>/
    - DELETE delete-membership/<membership_id>/
    - GET check-training-purchase/<user_id>/<training_id>/
"""

from django.urls import path

from entitlements import views

app_name = "entitlements"

urlpatterns = [
    path(
        "membership-status/<str:subject_id>/<str:subject_type>/",
        views.MembershipStatusView.as_view(),
        name="membership_status",
    ),
    path(
        "terminate-membership/<str:membership_id>/",
        views.TerminateMembershipView.as_view(),
        name="terminate_membership",
    ),
    path(
        "delete-membership/<str:membership_id>/",
        views.DeleteMembershipView.as_view(),
        name="delete_membership",
    ),
    path(
        "check-training-purchase/<str:user_id>/<str:training_id>/",
        views.CheckTrainingPurchaseView.as_view(),
        name="check_training_purchase",
    ),
]
