"""
Entitlement services.

Services:
    EntitlementService: Idempotent creation of entitlements from a verified
        checkout session, and attachment of proofs of payment.
    CancellationService: Renewal cancellation and deletion of memberships.
    MembershipQueryService: Read side for subjects' memberships and
        training purchases.

Idempotency:
    Creation looks up the natural key first and returns an existing row
    unchanged. When two writers race past the lookup, the loser's insert
    hits a unique constraint; the loser then re-reads and returns the
    winner's row. The database constraint is the only synchronization point.

Usage:
    from entitlements.services import EntitlementService

    outcome = EntitlementService().get_or_create_membership(
        session_id="cs_test_123",
        subject_type=SubjectType.USER,
        subject_id=user.id,
        price_id="price_1RknRO05Uibkj68MUPgVuW2Y",
        amount_paid=Decimal("30.00"),
    )
    if outcome.created:
        ...
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone
from django_fsm import TransitionNotAllowed

from accounts.models import MemberStatus, SubjectType
from accounts.services import StatusPropagator, SubjectService, parse_subject_id
from core.exceptions import ValidationError
from core.services import BaseService, ServiceResult
from entitlements.exceptions import EntitlementPersistenceError
from entitlements.models import (
    AssociationMembership,
    Membership,
    TrainingPurchase,
    UserMembership,
)
from entitlements.states import ProofType, TransactionKind
from payments import catalog
from payments.adapters import IdempotencyKeyGenerator, StripeAdapter
from payments.exceptions import StripeError

if TYPE_CHECKING:
    from typing import Any

DEFAULT_STATUS_BY_SUBJECT = {
    SubjectType.USER: MemberStatus.MEMBER,
    SubjectType.ASSOCIATION: MemberStatus.ASSOCIATION_MEMBER,
}


def parse_subject_type(value: str | None) -> SubjectType:
    """
    Raises:
        ValidationError: Missing or unknown subject type
    """
    try:
        return SubjectType(value)
    except ValueError as e:
        raise ValidationError(
            f"Invalid subject type: {value}",
            error_code="INVALID_SUBJECT_TYPE",
            details={"subject_type": value, "allowed": list(SubjectType.values)},
        ) from e


def model_for_kind(kind: TransactionKind) -> type[Membership] | type[TrainingPurchase]:
    if kind is TransactionKind.MEMBERSHIP:
        return Membership
    if kind is TransactionKind.TRAINING:
        return TrainingPurchase
    raise ValueError(f"Unhandled transaction kind: {kind}")


# =============================================================================
# Result Types
# =============================================================================


@dataclass
class EntitlementOutcome:
    """
    Result of an idempotent creation.

    Attributes:
        kind: Which entitlement kind was reconciled
        entitlement: The row, created now or found
        created: False when the session was already reconciled (or a
            concurrent writer won the race)
        subject_type / subject_id: Owner of the entitlement
    """

    kind: TransactionKind
    entitlement: Membership | TrainingPurchase
    created: bool
    subject_type: SubjectType
    subject_id: uuid.UUID

    @property
    def entitlement_id(self) -> uuid.UUID:
        return self.entitlement.pk


@dataclass
class ProofOfPayment:
    """A resolved proof: invoice (preferred) or charge receipt."""

    reference: str
    url: str
    proof_type: ProofType


@dataclass
class TerminationOutcome:
    membership: Membership
    upstream_cancelled: bool | None = None
    status_updated: list[str] = field(default_factory=list)


@dataclass
class DeletionOutcome:
    membership_id: uuid.UUID
    link_removed: bool = False
    row_deleted: bool = False
    row_retained: bool = False
    status_removed: bool | None = None


# =============================================================================
# Entitlement Factory
# =============================================================================


class EntitlementService(BaseService):
    """
    Idempotency guard and entitlement factory.

    Subjects are validated through the injected subject service before any
    insert, so an unknown subject id fails as NotFoundError instead of a
    foreign key error.
    """

    def __init__(self, subject_service: type[SubjectService] | None = None):
        self.subject_service = subject_service or SubjectService

    # ------------------------------------------------------------------
    # Memberships
    # ------------------------------------------------------------------

    def get_or_create_membership(
        self,
        *,
        session_id: str,
        subject_type: SubjectType | str,
        subject_id,
        price_id: str | None,
        amount_paid: Decimal,
        currency: str = "eur",
        status_id: int | str | None = None,
        payment_intent_id: str | None = None,
    ) -> EntitlementOutcome:
        """
        Return the membership paid by `session_id`, creating it if needed.

        Raises:
            ValidationError: Malformed subject
            NotFoundError: Unknown subject
            EntitlementPersistenceError: Write failed for another reason
        """
        subject_type = parse_subject_type(subject_type)
        subject = self._get_subject(subject_type, subject_id)

        def outcome(membership: Membership, created: bool) -> EntitlementOutcome:
            return EntitlementOutcome(
                kind=TransactionKind.MEMBERSHIP,
                entitlement=membership,
                created=created,
                subject_type=subject_type,
                subject_id=subject.pk,
            )

        existing = Membership.objects.filter(stripe_session_id=session_id).first()
        if existing is not None:
            self.get_logger().info(
                "Membership already reconciled for session",
                extra={"session_id": session_id, "membership_id": str(existing.pk)},
            )
            return outcome(existing, created=False)

        price = catalog.get_price(price_id) or amount_paid
        status = self._resolve_status(subject_type, price_id, status_id)
        log_context = {
            "session_id": session_id,
            "subject_type": subject_type.value,
            "subject_id": str(subject.pk),
            "amount": str(amount_paid),
        }

        try:
            with transaction.atomic():
                start_at = timezone.now()
                membership = Membership.objects.create(
                    price=price,
                    currency=currency,
                    status=status,
                    start_at=start_at,
                    stripe_session_id=session_id,
                    stripe_payment_intent_id=payment_intent_id or "",
                )
                if subject_type is SubjectType.USER:
                    UserMembership.objects.create(user=subject, membership=membership)
                else:
                    AssociationMembership.objects.create(
                        association=subject, membership=membership
                    )
        except IntegrityError as e:
            winner = Membership.objects.filter(stripe_session_id=session_id).first()
            if winner is None:
                self.get_logger().error(
                    "Membership insert conflicted but no row found",
                    extra=log_context,
                    exc_info=True,
                )
                raise EntitlementPersistenceError(
                    "Could not create membership",
                    details=log_context,
                ) from e
            self.get_logger().info(
                "Concurrent reconciliation won the membership insert",
                extra={**log_context, "membership_id": str(winner.pk)},
            )
            return outcome(winner, created=False)
        except DatabaseError as e:
            self.get_logger().error(
                f"Membership insert failed: {e}",
                extra=log_context,
                exc_info=True,
            )
            raise EntitlementPersistenceError(
                "Could not create membership",
                details=log_context,
            ) from e

        self.get_logger().info(
            "Membership created",
            extra={**log_context, "membership_id": str(membership.pk), "status": int(status)},
        )
        return outcome(membership, created=True)

    # ------------------------------------------------------------------
    # Training purchases
    # ------------------------------------------------------------------

    def get_or_create_training_purchase(
        self,
        *,
        session_id: str,
        user_id,
        training_id: str | None,
        price_id: str | None,
        amount_paid: Decimal,
        original_price: Decimal | None = None,
        discounted_price: Decimal | None = None,
        is_member: bool = False,
        duration_hours: int | None = None,
        payment_intent_id: str | None = None,
    ) -> EntitlementOutcome:
        """
        Return the purchase paid by `session_id`, creating it if needed.

        Prices recorded at checkout time win over the catalog, so a later
        catalog change never rewrites what the user actually paid.

        Raises:
            ValidationError: Malformed user or no training id
            NotFoundError: Unknown user
            EntitlementPersistenceError: Write failed for another reason
        """
        user = self.subject_service.get_user(user_id)
        offer = catalog.get_training(price_id)
        training_id = training_id or (offer.training_key if offer else None)
        if not training_id:
            raise ValidationError(
                "Missing trainingId in session metadata",
                error_code="MISSING_TRAINING_ID",
                details={"session_id": session_id},
            )

        def outcome(purchase: TrainingPurchase, created: bool) -> EntitlementOutcome:
            return EntitlementOutcome(
                kind=TransactionKind.TRAINING,
                entitlement=purchase,
                created=created,
                subject_type=SubjectType.USER,
                subject_id=user.pk,
            )

        natural_key = {
            "user": user,
            "training_id": training_id,
            "stripe_session_id": session_id,
        }
        existing = TrainingPurchase.objects.filter(**natural_key).first()
        if existing is not None:
            self.get_logger().info(
                "Training purchase already reconciled for session",
                extra={"session_id": session_id, "purchase_id": str(existing.pk)},
            )
            return outcome(existing, created=False)

        if original_price is None:
            original_price = offer.base_price if offer else amount_paid
        if discounted_price is None:
            discounted_price = offer.price_for(is_member) if offer else amount_paid
        member_discount = max(original_price - discounted_price, Decimal("0")) if is_member else Decimal("0")
        hours = offer.duration_hours if offer else (duration_hours or 0)

        log_context = {
            "session_id": session_id,
            "subject_type": SubjectType.USER.value,
            "subject_id": str(user.pk),
            "training_id": training_id,
            "amount": str(discounted_price),
        }

        try:
            with transaction.atomic():
                purchase = TrainingPurchase.objects.create(
                    **natural_key,
                    price_id=catalog.resolve_price_id(price_id) or "",
                    purchase_amount=discounted_price,
                    original_price=original_price,
                    member_discount=member_discount,
                    hours_purchased=hours,
                    hours_consumed=0,
                    payment_status="paid",
                    stripe_payment_intent_id=payment_intent_id or "",
                )
        except IntegrityError as e:
            winner = TrainingPurchase.objects.filter(**natural_key).first()
            if winner is None:
                self.get_logger().error(
                    "Training purchase insert conflicted but no row found",
                    extra=log_context,
                    exc_info=True,
                )
                raise EntitlementPersistenceError(
                    "Could not create training purchase",
                    details=log_context,
                ) from e
            self.get_logger().info(
                "Concurrent reconciliation won the training purchase insert",
                extra={**log_context, "purchase_id": str(winner.pk)},
            )
            return outcome(winner, created=False)
        except DatabaseError as e:
            self.get_logger().error(
                f"Training purchase insert failed: {e}",
                extra=log_context,
                exc_info=True,
            )
            raise EntitlementPersistenceError(
                "Could not create training purchase",
                details=log_context,
            ) from e

        self.get_logger().info(
            "Training purchase created",
            extra={**log_context, "purchase_id": str(purchase.pk), "hours": hours},
        )
        return outcome(purchase, created=True)

    # ------------------------------------------------------------------
    # Proof of payment
    # ------------------------------------------------------------------

    def get_entitlement(
        self, kind: TransactionKind, entitlement_id
    ) -> Membership | TrainingPurchase | None:
        pk = parse_subject_id(entitlement_id, "entitlementId")
        return model_for_kind(kind).objects.filter(pk=pk).first()

    def attach_proof(
        self,
        kind: TransactionKind,
        entitlement_id,
        proof: ProofOfPayment,
    ) -> bool:
        """
        Attach a proof unless one is already set.

        A single conditional UPDATE, so concurrent resolvers cannot
        overwrite each other.

        Returns:
            True if this call attached the proof
        """
        now = timezone.now()
        updated = (
            model_for_kind(kind)
            .objects.filter(pk=entitlement_id, proof_reference__isnull=True)
            .update(
                proof_reference=proof.reference,
                proof_url=proof.url,
                proof_type=proof.proof_type,
                proof_resolved_at=now,
                updated_at=now,
            )
        )
        self.get_logger().info(
            "Proof of payment attached" if updated else "Proof of payment already present",
            extra={
                "kind": kind.value,
                "entitlement_id": str(entitlement_id),
                "proof_reference": proof.reference,
                "proof_type": str(proof.proof_type),
            },
        )
        return bool(updated)

    def missing_proofs(self, kind: TransactionKind, since):
        """Entitlements created after `since` that still have no proof."""
        return model_for_kind(kind).objects.filter(
            proof_reference__isnull=True,
            created_at__gte=since,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_subject(self, subject_type: SubjectType, subject_id):
        if subject_type is SubjectType.USER:
            return self.subject_service.get_user(subject_id)
        return self.subject_service.get_association(subject_id)

    @staticmethod
    def _resolve_status(
        subject_type: SubjectType, price_id: str | None, status_id
    ) -> MemberStatus:
        """Status from metadata, then from the catalog, then by subject type."""
        if status_id not in (None, ""):
            try:
                return MemberStatus(int(status_id))
            except (TypeError, ValueError):
                pass
        return catalog.get_membership_status(price_id) or DEFAULT_STATUS_BY_SUBJECT[subject_type]


# =============================================================================
# Cancellation / Deletion
# =============================================================================


class CancellationService(BaseService):
    """
    Membership cancellation state machine.

    Transitions:
        terminate_membership: ACTIVE -> RENEWAL_CANCELLED (not expired only)
        delete_membership: {RENEWAL_CANCELLED | expired} -> link removed,
            row deleted once no subject references it

    Upstream subscription cancellation and status propagation are best
    effort; the local transition stands when they fail.
    """

    def __init__(
        self,
        stripe_adapter: type[StripeAdapter] | None = None,
        status_propagator: StatusPropagator | None = None,
    ):
        self.stripe_adapter = stripe_adapter or StripeAdapter
        self.status_propagator = status_propagator or StatusPropagator()

    def terminate_membership(self, membership_id) -> ServiceResult[TerminationOutcome]:
        """
        Cancel renewal of a membership.

        Returns failures MEMBERSHIP_NOT_FOUND, MEMBERSHIP_ALREADY_CANCELLED
        or MEMBERSHIP_EXPIRED; raises ValidationError for a malformed id.
        """
        pk = parse_subject_id(membership_id, "membershipId")

        with self.atomic():
            membership = Membership.objects.select_for_update().filter(pk=pk).first()
            if membership is None:
                return ServiceResult.failure(
                    "Membership not found",
                    error_code="MEMBERSHIP_NOT_FOUND",
                    details={"membership_id": str(pk)},
                )
            if membership.renewal_cancelled:
                return ServiceResult.failure(
                    "Membership renewal is already cancelled",
                    error_code="MEMBERSHIP_ALREADY_CANCELLED",
                    details={"cancelled_at": membership.cancelled_at},
                )
            if membership.is_expired():
                return ServiceResult.failure(
                    "Membership has already expired",
                    error_code="MEMBERSHIP_EXPIRED",
                    details={"end_at": membership.end_at},
                )
            try:
                membership.cancel_renewal()
            except TransitionNotAllowed:
                return ServiceResult.failure(
                    "Membership cannot be cancelled in its current state",
                    error_code="MEMBERSHIP_ALREADY_CANCELLED",
                    details={"state": membership.state},
                )
            membership.save()
            user_ids = list(membership.user_links.values_list("user_id", flat=True))

        result = TerminationOutcome(membership=membership)

        if membership.stripe_subscription_id:
            result.upstream_cancelled = self._cancel_upstream(membership)

        for user_id in user_ids:
            if self.status_propagator.revoke_membership_status(user_id, membership.status):
                result.status_updated.append(str(user_id))

        self.get_logger().info(
            "Membership renewal cancelled",
            extra={
                "membership_id": str(membership.pk),
                "upstream_cancelled": result.upstream_cancelled,
                "linked_users": len(user_ids),
            },
        )
        return ServiceResult.success(result)

    def delete_membership(
        self,
        membership_id,
        subject_type: SubjectType | str,
        subject_id,
    ) -> ServiceResult[DeletionOutcome]:
        """
        Remove a subject's membership, deleting the row once unreferenced.

        Deleting a row that no longer exists still succeeds. Returns failure
        MEMBERSHIP_STILL_ACTIVE for an active, uncancelled membership.
        """
        pk = parse_subject_id(membership_id, "membershipId")
        subject_type = parse_subject_type(subject_type)
        subject_pk = parse_subject_id(subject_id, "subjectId")
        result = DeletionOutcome(membership_id=pk)

        with self.atomic():
            membership = Membership.objects.select_for_update().filter(pk=pk).first()
            if membership is None:
                result.link_removed = self._remove_link(pk, subject_type, subject_pk)
                self.get_logger().info(
                    "Membership already deleted",
                    extra={"membership_id": str(pk), "subject_id": str(subject_pk)},
                )
                return ServiceResult.success(result)

            if not membership.is_deletable:
                return ServiceResult.failure(
                    "Membership is still active; cancel its renewal first",
                    error_code="MEMBERSHIP_STILL_ACTIVE",
                    details={"membership_id": str(pk), "end_at": membership.end_at},
                )

            result.link_removed = self._remove_link(pk, subject_type, subject_pk)
            if membership.link_count() > 0:
                result.row_retained = True
            else:
                status = membership.status
                membership.delete()
                result.row_deleted = True

        if result.row_deleted and subject_type is SubjectType.USER:
            result.status_removed = self.status_propagator.remove_status(subject_pk, status)

        self.get_logger().info(
            "Membership deleted" if result.row_deleted else "Membership link removed",
            extra={
                "membership_id": str(pk),
                "subject_type": subject_type.value,
                "subject_id": str(subject_pk),
                "row_retained": result.row_retained,
            },
        )
        return ServiceResult.success(result)

    def _remove_link(self, membership_pk, subject_type: SubjectType, subject_pk) -> bool:
        if subject_type is SubjectType.USER:
            links = UserMembership.objects.filter(membership_id=membership_pk, user_id=subject_pk)
        else:
            links = AssociationMembership.objects.filter(
                membership_id=membership_pk, association_id=subject_pk
            )
        deleted, _ = links.delete()
        return deleted > 0

    def _cancel_upstream(self, membership: Membership) -> bool:
        try:
            self.stripe_adapter.cancel_subscription_at_period_end(
                membership.stripe_subscription_id,
                idempotency_key=IdempotencyKeyGenerator.generate(
                    "cancel_subscription", membership.pk
                ),
            )
        except StripeError as e:
            self.get_logger().warning(
                f"Upstream subscription cancellation failed: {e}",
                extra={
                    "membership_id": str(membership.pk),
                    "subscription_id": membership.stripe_subscription_id,
                },
            )
            return False
        return True


# =============================================================================
# Queries
# =============================================================================


class MembershipQueryService(BaseService):
    """Read side for membership status and training purchase checks."""

    def __init__(self, subject_service: type[SubjectService] | None = None):
        self.subject_service = subject_service or SubjectService

    def memberships_for_subject(self, subject_type: SubjectType | str, subject_id):
        """
        Memberships linked to a subject, newest first.

        Raises:
            ValidationError: Malformed subject type or id
        """
        subject_type = parse_subject_type(subject_type)
        pk = parse_subject_id(subject_id, "subjectId")
        if subject_type is SubjectType.USER:
            queryset = Membership.objects.filter(user_links__user_id=pk)
        else:
            queryset = Membership.objects.filter(association_links__association_id=pk)
        return queryset.order_by("-start_at")

    def check_training_purchase(self, user_id, training_id: str) -> dict[str, Any]:
        pk = parse_subject_id(user_id, "userId")
        purchase = (
            TrainingPurchase.objects.filter(user_id=pk, training_id=training_id)
            .order_by("-purchased_at")
            .first()
        )
        return {"purchased": purchase is not None, "purchase": purchase}
