"""
Payment domain models.

- WebhookEvent: Audit row per Stripe event, used to skip redeliveries
  that were already processed

Entitlement rows live in the entitlements app; the payments app only
records what Stripe told us.
"""

from payments.models.webhook_event import WebhookEvent

__all__ = [
    "WebhookEvent",
]
