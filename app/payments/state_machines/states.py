"""
State enums for payment models.

These are Django TextChoices for database storage and admin integration.

WebhookEvent States:
    pending → processing → processed
    pending → processing → failed → processing (redelivery)
"""

from django.db import models


class WebhookEventStatus(models.TextChoices):
    """
    Processing status for WebhookEvent.

    Tracks the lifecycle of webhook event processing for idempotency.
    A redelivered event is reprocessed unless it already reached PROCESSED.
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"
