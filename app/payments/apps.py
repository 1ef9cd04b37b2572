"""
Payments app configuration.

This app provides the Stripe side of the service:
- Checkout session creation
- Webhook ingestion and reconciliation
- Proof-of-payment tasks
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
