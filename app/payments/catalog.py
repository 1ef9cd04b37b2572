"""
Price catalog.

Pure lookups from a Stripe price id to what it sells. Amounts are in euros
as Decimal; Stripe amounts (cents) are converted at the adapter boundary.

Catalog entries:
    - Membership prices: amount and the member status they grant
    - Training prices: amount, member discount, hours and display names

Usage:
    from payments import catalog

    training = catalog.get_training("price_pssm")
    price = catalog.calculate_discounted_price(
        training.base_price, training.member_discount, is_member=True
    )  # Decimal("215.00")
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from accounts.models import MemberStatus


@dataclass(frozen=True)
class MembershipOffer:
    """A membership price and the status tier it grants."""

    price_id: str
    name: str
    amount: Decimal
    status: MemberStatus


@dataclass(frozen=True)
class TrainingOffer:
    """A training price with its member discount and duration in hours."""

    price_id: str
    training_key: str
    name: str
    full_name: str
    base_price: Decimal
    member_discount: Decimal
    duration_hours: int

    def price_for(self, is_member: bool) -> Decimal:
        return calculate_discounted_price(self.base_price, self.member_discount, is_member)


MEMBERSHIP_OFFERS: dict[str, MembershipOffer] = {
    offer.price_id: offer
    for offer in (
        MembershipOffer(
            price_id="price_1RknRO05Uibkj68MUPgVuW2Y",
            name="Adhésion Simple",
            amount=Decimal("30.00"),
            status=MemberStatus.MEMBER,
        ),
        MembershipOffer(
            price_id="price_1RknR205Uibkj68MeezgOEAs",
            name="Adhésion Pro",
            amount=Decimal("20.00"),
            status=MemberStatus.PROFESSIONAL,
        ),
        MembershipOffer(
            price_id="price_1RknQd05Uibkj68MgNOg2UxF",
            name="Membre Association",
            amount=Decimal("10.00"),
            status=MemberStatus.ASSOCIATION_MEMBER,
        ),
    )
}

TRAINING_OFFERS: dict[str, TrainingOffer] = {
    offer.price_id: offer
    for offer in (
        TrainingOffer(
            price_id="price_1RZKxz05Uibkj68MfCpirZlH",
            training_key="pssm",
            name="PSSM",
            full_name="Premiers Secours en Santé Mentale",
            base_price=Decimal("250.00"),
            member_discount=Decimal("35.00"),
            duration_hours=14,
        ),
        TrainingOffer(
            price_id="price_1RT2Gi05Uibkj68MuYaG5HZn",
            training_key="vss",
            name="VSS",
            full_name="Violences Sexistes et Sexuelles",
            base_price=Decimal("50.00"),
            member_discount=Decimal("15.00"),
            duration_hours=7,
        ),
    )
}

# Stable aliases used by the frontend and fixtures
PRICE_ALIASES: dict[str, str] = {
    "price_pssm": "price_1RZKxz05Uibkj68MfCpirZlH",
    "price_vss": "price_1RT2Gi05Uibkj68MuYaG5HZn",
}


def resolve_price_id(price_id: str | None) -> str | None:
    """Map an alias to its Stripe price id; unknown ids pass through."""
    if not price_id:
        return None
    return PRICE_ALIASES.get(price_id, price_id)


def get_membership(price_id: str | None) -> MembershipOffer | None:
    return MEMBERSHIP_OFFERS.get(resolve_price_id(price_id) or "")


def get_training(price_id: str | None) -> TrainingOffer | None:
    return TRAINING_OFFERS.get(resolve_price_id(price_id) or "")


def get_price(price_id: str | None) -> Decimal | None:
    """Amount for any catalog price id, or None when unknown."""
    membership = get_membership(price_id)
    if membership is not None:
        return membership.amount
    training = get_training(price_id)
    if training is not None:
        return training.base_price
    return None


def get_membership_status(price_id: str | None) -> MemberStatus | None:
    membership = get_membership(price_id)
    return membership.status if membership else None


def calculate_discounted_price(
    base_price: Decimal, member_discount: Decimal, is_member: bool
) -> Decimal:
    """
    Final price after the member discount, never below zero.

    >>> calculate_discounted_price(Decimal("250"), Decimal("35"), True)
    Decimal('215')
    """
    discount = member_discount if is_member else Decimal("0")
    return max(base_price - discount, Decimal("0"))
