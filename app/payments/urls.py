"""
URL configuration for the payments app.

Routes (prefixed with /api/v1/):
    - POST create-checkout-session/
    - POST process-payment-success/
    - POST webhook/
    - GET receipt/<reference>/
    - POST resolve-proof/<kind>/<entitlement_id>/
    - GET training-details/<price_id>/<user_id>/
"""

from django.urls import path

from payments import views
from payments.webhooks.views import stripe_webhook

app_name = "payments"

urlpatterns = [
    path(
        "create-checkout-session/",
        views.CreateCheckoutSessionView.as_view(),
        name="create_checkout_session",
    ),
    path(
        "process-payment-success/",
        views.ProcessPaymentSuccessView.as_view(),
        name="process_payment_success",
    ),
    path("webhook/", stripe_webhook, name="stripe_webhook"),
    path("receipt/<str:reference>/", views.ReceiptView.as_view(), name="receipt"),
    path(
        "resolve-proof/<str:kind>/<str:entitlement_id>/",
        views.ResolveProofView.as_view(),
        name="resolve_proof",
    ),
    path(
        "training-details/<str:price_id>/<str:user_id>/",
        views.TrainingDetailsView.as_view(),
        name="training_details",
    ),
]
