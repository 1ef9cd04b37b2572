"""
Checkout session metadata.

Stripe stores metadata as a flat dict of strings. The checkout writes it
(CheckoutService) and reconciliation reads it back (ReconciliationService);
this module owns both directions so the key names live in one place.

Keys:
    type            transaction kind ("membership" | "training", aliases accepted)
    userType        subject type ("user" | "association"), memberships only
    userId          user UUID
    associationId   association UUID
    priceId         Stripe price id (or a catalog alias)
    statusId        member status code granted by a membership
    trainingId      training identifier
    originalPrice   catalog price at checkout, euros
    discountedPrice price charged at checkout, euros
    isMember        "true" when the member discount was applied
    duration        training hours
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from accounts.models import SubjectType
from accounts.services import parse_subject_id
from core.exceptions import ValidationError
from entitlements.services import parse_subject_type
from entitlements.states import TransactionKind


def _decimal_or_none(value: Any) -> Decimal | None:
    if value in (None, ""):
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def _bool_or_none(value: Any) -> bool | None:
    if value in (None, ""):
        return None
    return str(value).lower() == "true"


def _int_or_none(value: Any) -> int | None:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class SessionMetadata:
    """Typed view of a checkout session's metadata."""

    kind: TransactionKind
    subject_type: SubjectType
    subject_id: Any
    price_id: str | None = None
    status_id: int | None = None
    training_id: str | None = None
    original_price: Decimal | None = None
    discounted_price: Decimal | None = None
    is_member: bool | None = None
    duration_hours: int | None = None

    @classmethod
    def from_dict(cls, metadata: dict[str, Any] | None) -> SessionMetadata:
        """
        Parse metadata read back from Stripe.

        Raises:
            ValidationError: Missing or unknown kind, missing or malformed subject
        """
        metadata = metadata or {}
        kind = TransactionKind.parse(metadata.get("type") or metadata.get("transactionType"))

        if kind is TransactionKind.TRAINING:
            subject_type = SubjectType.USER
        elif metadata.get("userType"):
            subject_type = parse_subject_type(metadata["userType"])
        elif metadata.get("associationId") and not metadata.get("userId"):
            subject_type = SubjectType.ASSOCIATION
        else:
            subject_type = SubjectType.USER

        if subject_type is SubjectType.USER:
            subject_id = parse_subject_id(metadata.get("userId"), "userId")
        else:
            subject_id = parse_subject_id(metadata.get("associationId"), "associationId")

        return cls(
            kind=kind,
            subject_type=subject_type,
            subject_id=subject_id,
            price_id=metadata.get("priceId") or None,
            status_id=_int_or_none(metadata.get("statusId")),
            training_id=metadata.get("trainingId") or None,
            original_price=_decimal_or_none(metadata.get("originalPrice")),
            discounted_price=_decimal_or_none(metadata.get("discountedPrice")),
            is_member=_bool_or_none(metadata.get("isMember")),
            duration_hours=_int_or_none(metadata.get("duration")),
        )

    def to_stripe(self) -> dict[str, str]:
        """Flat string dict for Stripe; unset values are omitted."""
        values = {
            "type": self.kind.value,
            "userType": self.subject_type.value,
            "priceId": self.price_id,
            "statusId": self.status_id,
            "trainingId": self.training_id,
            "originalPrice": self.original_price,
            "discountedPrice": self.discounted_price,
            "duration": self.duration_hours,
        }
        if self.subject_type is SubjectType.USER:
            values["userId"] = self.subject_id
        else:
            values["associationId"] = self.subject_id
        if self.is_member is not None:
            values["isMember"] = "true" if self.is_member else "false"
        return {key: str(value) for key, value in values.items() if value not in (None, "")}

    def log_context(self) -> dict[str, str]:
        return {
            "kind": self.kind.value,
            "subject_type": self.subject_type.value,
            "subject_id": str(self.subject_id),
            "price_id": self.price_id or "",
        }


def require(value: Any, field_name: str) -> Any:
    """
    Raises:
        ValidationError: When `value` is empty
    """
    if value in (None, ""):
        raise ValidationError(
            f"{field_name} is required",
            error_code="MISSING_PARAMETER",
            details={"field": field_name},
        )
    return value
