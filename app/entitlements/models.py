"""
Entitlement models.

- Membership: One year of membership bought through one checkout session
- UserMembership / AssociationMembership: Links between subjects and a
  membership; a row may be shared by several subjects
- TrainingPurchase: A seat in a training bought by one user

Natural keys (enforced by unique constraints, relied on by the
reconciliation when two channels race):
    Membership: stripe_session_id
    UserMembership: (user, membership)
    AssociationMembership: (association, membership)
    TrainingPurchase: (user, training_id, stripe_session_id)

Usage:
    from entitlements.models import Membership

    membership = Membership.objects.get(stripe_session_id="cs_test_123")
    if membership.lifecycle_state == LifecycleState.EXPIRED:
        ...
"""

from __future__ import annotations

from datetime import timedelta

from django.conf import settings
from django.db import models
from django.utils import timezone
from django_fsm import ConcurrentTransitionMixin, FSMField, transition

from accounts.models import MemberStatus
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from entitlements.states import LifecycleState, MembershipState, ProofType

MEMBERSHIP_DURATION = timedelta(days=365)


class ProofOfPaymentFields(models.Model):
    """
    Proof-of-payment columns shared by both entitlement kinds.

    Empty at creation, filled once by the proof resolver with a conditional
    update (see EntitlementService.attach_proof).
    """

    proof_reference = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Stripe invoice id (in_xxx) or payment intent id for receipts",
    )
    proof_url = models.URLField(
        max_length=1000,
        blank=True,
        help_text="Hosted invoice page, invoice PDF or charge receipt URL",
    )
    proof_type = models.CharField(
        max_length=20,
        choices=ProofType.choices,
        blank=True,
        help_text="Whether the proof is an invoice or a lower-fidelity receipt",
    )
    proof_resolved_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the proof was attached",
    )

    class Meta:
        abstract = True

    @property
    def has_proof(self) -> bool:
        return bool(self.proof_reference)


class Membership(ConcurrentTransitionMixin, UUIDPrimaryKeyMixin, ProofOfPaymentFields, BaseModel):
    """
    A one-year membership.

    end_at is start_at + 365 days, computed once at creation.

    State Flow:
        ACTIVE -> RENEWAL_CANCELLED (terminate)
        Expiry is computed from end_at (lifecycle_state), never stored.
    """

    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Amount paid in euros",
    )
    currency = models.CharField(
        max_length=3,
        default="eur",
        help_text="ISO 4217 currency code (lowercase)",
    )
    status = models.PositiveSmallIntegerField(
        choices=MemberStatus.choices,
        help_text="Member status tier granted by this membership",
    )
    start_at = models.DateTimeField(
        help_text="Start of the membership year",
    )
    end_at = models.DateTimeField(
        db_index=True,
        help_text="Exactly start_at + 365 days",
    )

    state = FSMField(
        default=MembershipState.ACTIVE,
        choices=MembershipState.choices,
        db_index=True,
        help_text="Stored state (managed by FSM); expiry is computed",
    )
    cancelled_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When renewal was cancelled",
    )

    stripe_session_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Checkout session that paid for this membership",
    )
    stripe_payment_intent_id = models.CharField(
        max_length=255,
        blank=True,
        help_text="PaymentIntent of the checkout session (pi_xxx)",
    )
    # Checkout runs in payment mode, so reconciliation never fills this;
    # it is only set by hand in the admin for legacy subscriptions.
    stripe_subscription_id = models.CharField(
        max_length=255,
        blank=True,
        help_text="Recurring subscription to stop on cancellation, if any",
    )

    users = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        through="UserMembership",
        related_name="memberships",
        blank=True,
    )
    associations = models.ManyToManyField(
        "accounts.Association",
        through="AssociationMembership",
        related_name="memberships",
        blank=True,
    )

    class Meta:
        ordering = ["-start_at"]
        verbose_name = "membership"
        verbose_name_plural = "memberships"
        indexes = [
            models.Index(fields=["state", "end_at"], name="membership_state_end_idx"),
        ]

    def __str__(self) -> str:
        return f"Membership({self.pk}, {self.get_status_display()}, until {self.end_at:%Y-%m-%d})"

    def save(self, *args, **kwargs):
        if self.start_at is None:
            self.start_at = timezone.now()
        if self.end_at is None:
            self.end_at = self.start_at + MEMBERSHIP_DURATION
        super().save(*args, **kwargs)

    # ==========================================================================
    # Computed State
    # ==========================================================================

    @property
    def renewal_cancelled(self) -> bool:
        return self.state == MembershipState.RENEWAL_CANCELLED

    def is_expired(self, now=None) -> bool:
        return (now or timezone.now()) > self.end_at

    @property
    def lifecycle_state(self) -> str:
        if self.is_expired():
            return LifecycleState.EXPIRED
        if self.renewal_cancelled:
            return LifecycleState.RENEWAL_CANCELLED
        return LifecycleState.ACTIVE

    @property
    def is_deletable(self) -> bool:
        """Only cancelled or expired memberships may be deleted."""
        return self.renewal_cancelled or self.is_expired()

    def link_count(self) -> int:
        return self.user_links.count() + self.association_links.count()

    # ==========================================================================
    # State Transitions
    # ==========================================================================

    def _not_expired(self) -> bool:
        return not self.is_expired()

    @transition(
        field=state,
        source=MembershipState.ACTIVE,
        target=MembershipState.RENEWAL_CANCELLED,
        conditions=[_not_expired],
    )
    def cancel_renewal(self):
        """
        Stop the membership from renewing. Access runs until end_at.

        Transition: ACTIVE -> RENEWAL_CANCELLED
        """
        self.cancelled_at = timezone.now()


class UserMembership(BaseModel):
    """Link between a user and a membership."""

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="membership_links",
    )
    membership = models.ForeignKey(
        Membership,
        on_delete=models.CASCADE,
        related_name="user_links",
    )

    class Meta:
        verbose_name = "user membership"
        verbose_name_plural = "user memberships"
        constraints = [
            models.UniqueConstraint(
                fields=["user", "membership"],
                name="unique_user_membership",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} -> {self.membership_id}"


class AssociationMembership(BaseModel):
    """Link between an association and a membership."""

    association = models.ForeignKey(
        "accounts.Association",
        on_delete=models.CASCADE,
        related_name="membership_links",
    )
    membership = models.ForeignKey(
        Membership,
        on_delete=models.CASCADE,
        related_name="association_links",
    )

    class Meta:
        verbose_name = "association membership"
        verbose_name_plural = "association memberships"
        constraints = [
            models.UniqueConstraint(
                fields=["association", "membership"],
                name="unique_association_membership",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.association_id} -> {self.membership_id}"


class TrainingPurchase(UUIDPrimaryKeyMixin, ProofOfPaymentFields, BaseModel):
    """
    A user's seat in a training.

    member_discount is (original_price - purchase_amount) when the user was a
    member at checkout time, otherwise 0. Member status itself is not stored.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="training_purchases",
    )
    training_id = models.CharField(
        max_length=64,
        db_index=True,
        help_text="Identifier of the training session bought",
    )
    price_id = models.CharField(
        max_length=255,
        blank=True,
        help_text="Stripe price the user checked out with",
    )
    purchase_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Amount actually paid in euros",
    )
    original_price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text="Catalog price before discount",
    )
    member_discount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        help_text="Discount applied for members",
    )
    hours_purchased = models.PositiveIntegerField(
        default=0,
        help_text="Training hours included",
    )
    hours_consumed = models.PositiveIntegerField(
        default=0,
        help_text="Training hours already attended",
    )
    payment_status = models.CharField(
        max_length=20,
        default="paid",
    )
    stripe_session_id = models.CharField(
        max_length=255,
        db_index=True,
        help_text="Checkout session that paid for this purchase",
    )
    stripe_payment_intent_id = models.CharField(
        max_length=255,
        blank=True,
    )
    purchased_at = models.DateTimeField(
        default=timezone.now,
    )

    class Meta:
        ordering = ["-purchased_at"]
        verbose_name = "training purchase"
        verbose_name_plural = "training purchases"
        constraints = [
            models.UniqueConstraint(
                fields=["user", "training_id", "stripe_session_id"],
                name="unique_training_purchase_per_session",
            ),
        ]

    def __str__(self) -> str:
        return f"TrainingPurchase({self.user_id}, {self.training_id})"

    @property
    def hours_remaining(self) -> int:
        return max(self.hours_purchased - self.hours_consumed, 0)
