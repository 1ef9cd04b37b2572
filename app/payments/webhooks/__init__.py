"""
Stripe webhook ingestion.

The view verifies and records each event; handlers registered per event
type route checkout completions into ReconciliationService.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhook/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from payments.webhooks.handlers import dispatch_webhook, register_handler

__all__ = [
    "dispatch_webhook",
    "register_handler",
]
