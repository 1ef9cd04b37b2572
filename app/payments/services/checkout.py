"""
Checkout session creation and training pricing.

The metadata written here is what ReconciliationService reads back once the
session is paid, so every value the entitlement needs is recorded at
checkout time (prices included).

Usage:
    from payments.services import CheckoutService, CheckoutRequest

    result = CheckoutService().create_checkout_session(
        CheckoutRequest(
            kind=TransactionKind.MEMBERSHIP,
            price_id="price_1RknRO05Uibkj68MUPgVuW2Y",
            subject_type=SubjectType.USER,
            subject_id=user.id,
        )
    )
    redirect(result.data.url)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.conf import settings

from accounts.models import SubjectType
from accounts.services import SubjectService
from core.exceptions import NotFoundError
from core.services import BaseService, ServiceResult
from entitlements.states import TransactionKind
from payments import catalog
from payments.adapters import (
    CreateCheckoutSessionParams,
    IdempotencyKeyGenerator,
    StripeAdapter,
    amount_to_cents,
)
from payments.metadata import SessionMetadata, require

CHECKOUT_SESSION_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"


@dataclass
class CheckoutRequest:
    kind: TransactionKind
    price_id: str
    subject_type: SubjectType
    subject_id: Any
    status_id: int | None = None
    training_id: str | None = None
    success_url: str | None = None
    cancel_url: str | None = None


@dataclass
class CheckoutSession:
    session_id: str
    url: str | None
    metadata: SessionMetadata


class CheckoutService(BaseService):
    """Builds session metadata and creates hosted checkout sessions."""

    def __init__(
        self,
        stripe_adapter: type[StripeAdapter] | None = None,
        subject_service: type[SubjectService] | None = None,
    ):
        self.stripe_adapter = stripe_adapter or StripeAdapter
        self.subject_service = subject_service or SubjectService

    def create_checkout_session(self, request: CheckoutRequest) -> ServiceResult[CheckoutSession]:
        """
        Create a checkout session for a membership or a training.

        Raises:
            ValidationError: Missing price or subject
            NotFoundError: Unknown subject or training price
            StripeError: Stripe call failed
        """
        require(request.price_id, "priceId")
        require(request.subject_id, "userId" if request.subject_type is SubjectType.USER else "associationId")

        if request.kind is TransactionKind.TRAINING:
            metadata, params_extra = self._training_metadata(request)
        else:
            metadata, params_extra = self._membership_metadata(request), {}

        email = self.subject_service.get_subject_email(metadata.subject_type, metadata.subject_id)
        params = CreateCheckoutSessionParams(
            price_id=catalog.resolve_price_id(request.price_id),
            success_url=request.success_url or self.default_success_url(),
            cancel_url=request.cancel_url or self.default_cancel_url(),
            idempotency_key=IdempotencyKeyGenerator.generate("checkout", uuid.uuid4()),
            metadata=metadata.to_stripe(),
            customer_email=email,
            **params_extra,
        )

        session = self.stripe_adapter.create_checkout_session(params)
        self.get_logger().info(
            "Checkout session created",
            extra={"session_id": session.id, **metadata.log_context()},
        )
        return ServiceResult.success(
            CheckoutSession(session_id=session.id, url=session.url, metadata=metadata)
        )

    def training_details(self, price_id: str, user_id) -> dict[str, Any]:
        """
        Catalog details with the price this user would pay now.

        Raises:
            NotFoundError: Unknown training price
            ValidationError: Malformed user id
        """
        offer = self._get_training(price_id)
        is_member = self.subject_service.is_active_member(user_id)
        return {
            "price_id": offer.price_id,
            "training_type": offer.training_key,
            "name": offer.name,
            "full_name": offer.full_name,
            "base_price": offer.base_price,
            "member_discount": offer.member_discount,
            "duration": offer.duration_hours,
            "final_price": offer.price_for(is_member),
            "discount": offer.member_discount if is_member else Decimal("0"),
            "is_member": is_member,
        }

    @staticmethod
    def default_success_url() -> str:
        return f"{settings.FRONTEND_URL}/payment-success?session_id={CHECKOUT_SESSION_PLACEHOLDER}"

    @staticmethod
    def default_cancel_url() -> str:
        return f"{settings.FRONTEND_URL}/payment-cancel"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _membership_metadata(self, request: CheckoutRequest) -> SessionMetadata:
        status = request.status_id
        if status is None:
            status = catalog.get_membership_status(request.price_id)
        return SessionMetadata.from_dict(
            {
                "type": TransactionKind.MEMBERSHIP.value,
                "userType": request.subject_type.value,
                "userId": request.subject_id if request.subject_type is SubjectType.USER else None,
                "associationId": (
                    request.subject_id if request.subject_type is SubjectType.ASSOCIATION else None
                ),
                "priceId": request.price_id,
                "statusId": int(status) if status is not None else None,
            }
        )

    def _training_metadata(self, request: CheckoutRequest) -> tuple[SessionMetadata, dict[str, Any]]:
        offer = self._get_training(request.price_id)
        is_member = self.subject_service.is_active_member(request.subject_id)
        final_price = offer.price_for(is_member)

        metadata = SessionMetadata.from_dict(
            {
                "type": TransactionKind.TRAINING.value,
                "userId": request.subject_id,
                "priceId": request.price_id,
                "trainingId": request.training_id or offer.training_key,
                "originalPrice": offer.base_price,
                "discountedPrice": final_price,
                "isMember": "true" if is_member else "false",
                "duration": offer.duration_hours,
            }
        )
        params_extra = {
            "unit_amount_cents": amount_to_cents(final_price),
            "product_name": f"Formation {offer.name}",
            "product_description": f"{offer.full_name} - {offer.duration_hours} heures",
        }
        return metadata, params_extra

    @staticmethod
    def _get_training(price_id: str):
        offer = catalog.get_training(price_id)
        if offer is None:
            raise NotFoundError(
                "Training not found",
                error_code="TRAINING_NOT_FOUND",
                details={"price_id": price_id},
            )
        return offer
