"""
URL configuration for the payment reconciliation service.

URL Structure:
    /admin/                                          - Django admin interface
    /health/                                         - Health check endpoint
    /api/v1/                                         - Public API
        create-checkout-session/                     - Start a hosted checkout (POST)
        process-payment-success/                     - Client-side payment confirmation (POST)
        webhook/                                     - Stripe webhook endpoint (POST)
        receipt/{reference}/                         - Proof of payment lookup (GET)
        resolve-proof/{kind}/{entitlement_id}/       - Re-fetch proof for an entitlement (POST)
        training-details/{price_id}/{user_id}/       - Member-adjusted training price (GET)
        membership-status/{subject_id}/{subject_type}/ - Memberships of a subject (GET)
        terminate-membership/{id}/                   - Cancel membership renewal (POST)
        delete-membership/{id}/                      - Delete a cancelled/expired membership (DELETE)
        check-training-purchase/{user_id}/{training_id}/ - Training ownership check (GET)
"""

from django.contrib import admin
from django.urls import include, path

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("", include("payments.urls")),
    path("", include("entitlements.urls")),
]

urlpatterns = [
    path("admin/", admin.site.urls),
    path("health/", health_check, name="health_check"),
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Payment Reconciliation Admin"
admin.site.site_title = "Reconciliation Admin"
admin.site.index_title = "Memberships, trainings and webhook events"
