"""
Entitlements app configuration.

Durable records granted by a confirmed payment:
- Membership (linked to users and associations)
- TrainingPurchase
"""

from django.apps import AppConfig


class EntitlementsConfig(AppConfig):
    """Configuration for the entitlements application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "entitlements"
    verbose_name = "Entitlements"
