"""
Closed enums for the entitlements domain.

Membership States (stored, managed by django-fsm):
    active → renewal_cancelled

Lifecycle (computed, see Membership.lifecycle_state):
    active → renewal_cancelled → expired → (row deleted)
    active → expired
"""

from __future__ import annotations

from django.db import models

from core.exceptions import ValidationError


class MembershipState(models.TextChoices):
    """Stored state of a membership; expiry is never stored."""

    ACTIVE = "active", "Active"
    RENEWAL_CANCELLED = "renewal_cancelled", "Renewal cancelled"


class LifecycleState(models.TextChoices):
    """State reported to clients, with expiry computed from end_at."""

    ACTIVE = "active", "Active"
    RENEWAL_CANCELLED = "renewal_cancelled", "Renewal cancelled"
    EXPIRED = "expired", "Expired"


class ProofType(models.TextChoices):
    INVOICE = "invoice", "Invoice"
    RECEIPT = "receipt", "Receipt"


class TransactionKind(models.TextChoices):
    """
    What a checkout session pays for.

    Session metadata written by older checkout pages uses the aliases
    "membership_onetime" and "training_purchase".
    """

    MEMBERSHIP = "membership", "Membership"
    TRAINING = "training", "Training"

    @classmethod
    def parse(cls, value: str | None) -> TransactionKind:
        """
        Raises:
            ValidationError: Missing or unknown kind
        """
        if not value:
            raise ValidationError(
                "Missing transaction type in session metadata",
                error_code="MISSING_TRANSACTION_TYPE",
            )
        normalized = TRANSACTION_KIND_ALIASES.get(value, value)
        try:
            return cls(normalized)
        except ValueError as e:
            raise ValidationError(
                f"Unknown transaction type: {value}",
                error_code="UNKNOWN_TRANSACTION_TYPE",
                details={"transaction_type": value},
            ) from e


TRANSACTION_KIND_ALIASES: dict[str, str] = {
    "membership_onetime": TransactionKind.MEMBERSHIP.value,
    "training_purchase": TransactionKind.TRAINING.value,
}
