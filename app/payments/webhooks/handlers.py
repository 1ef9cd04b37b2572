"""
Webhook event handlers for Stripe events.

Handlers are looked up by event type in a registry. Each receives the
recorded WebhookEvent and the ReconciliationService that dispatched it,
and returns a ServiceResult. Unknown event types are acknowledged.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler("custom.event")
    def handle_custom_event(webhook_event, service) -> ServiceResult:
        ...

    result = dispatch_webhook(webhook_event, service)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from core.services import ServiceResult
from payments.models import WebhookEvent

if TYPE_CHECKING:
    from payments.services.reconciliation import ReconciliationService

logger = logging.getLogger(__name__)

Handler = Callable[[WebhookEvent, "ReconciliationService"], ServiceResult]


# =============================================================================
# Handler Registry
# =============================================================================


WEBHOOK_HANDLERS: dict[str, Handler] = {}


def register_handler(event_type: str) -> Callable[[Handler], Handler]:
    """Decorator registering a handler for a Stripe event type."""

    def decorator(func: Handler) -> Handler:
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent, service: ReconciliationService) -> ServiceResult:
    """
    Route a webhook event to its handler.

    Returns:
        The handler's ServiceResult, or success when no handler is registered
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"stripe_event_id": webhook_event.stripe_event_id},
    )
    return handler(webhook_event, service)


# =============================================================================
# Checkout Session Handlers
# =============================================================================


def _session_id(webhook_event: WebhookEvent) -> str | None:
    session_id = webhook_event.get_object_id()
    if not session_id:
        logger.error(
            f"{webhook_event.event_type}: could not extract session id",
            extra={"stripe_event_id": webhook_event.stripe_event_id},
        )
    return session_id


def _missing_session_id() -> ServiceResult:
    return ServiceResult.failure(
        "Could not extract session id from webhook",
        error_code="INVALID_WEBHOOK_PAYLOAD",
    )


@register_handler("checkout.session.completed")
def handle_checkout_session_completed(
    webhook_event: WebhookEvent, service: ReconciliationService
) -> ServiceResult:
    """
    Reconcile a completed checkout.

    Delayed payment methods complete the session before the money arrives;
    those are reconciled on checkout.session.async_payment_succeeded.
    """
    session_id = _session_id(webhook_event)
    if not session_id:
        return _missing_session_id()

    payment_status = webhook_event.get_object().get("payment_status")
    if payment_status != "paid":
        logger.info(
            "Checkout completed without payment, waiting for async confirmation",
            extra={"session_id": session_id, "payment_status": payment_status},
        )
        return ServiceResult.success(None)

    return service.reconcile_session(session_id)


@register_handler("checkout.session.async_payment_succeeded")
def handle_async_payment_succeeded(
    webhook_event: WebhookEvent, service: ReconciliationService
) -> ServiceResult:
    session_id = _session_id(webhook_event)
    if not session_id:
        return _missing_session_id()
    return service.reconcile_session(session_id)


@register_handler("checkout.session.async_payment_failed")
def handle_async_payment_failed(
    webhook_event: WebhookEvent, service: ReconciliationService
) -> ServiceResult:
    """Nothing to undo: no entitlement exists for an unpaid session."""
    obj = webhook_event.get_object()
    metadata = obj.get("metadata") or {}
    logger.warning(
        "Asynchronous checkout payment failed",
        extra={
            "session_id": obj.get("id"),
            "user_id": metadata.get("userId"),
            "association_id": metadata.get("associationId"),
        },
    )
    return ServiceResult.success(None)


# =============================================================================
# Payment Intent Handlers
# =============================================================================


@register_handler("payment_intent.succeeded")
def handle_payment_intent_succeeded(
    webhook_event: WebhookEvent, service: ReconciliationService
) -> ServiceResult:
    """Informational; entitlements are keyed on checkout sessions."""
    obj = webhook_event.get_object()
    logger.info(
        "Payment intent succeeded",
        extra={"payment_intent_id": obj.get("id"), "amount_cents": obj.get("amount")},
    )
    return ServiceResult.success(None)


@register_handler("payment_intent.payment_failed")
def handle_payment_intent_failed(
    webhook_event: WebhookEvent, service: ReconciliationService
) -> ServiceResult:
    obj = webhook_event.get_object()
    error = obj.get("last_payment_error") or {}
    logger.warning(
        f"Payment intent failed: {error.get('message', 'unknown error')}",
        extra={"payment_intent_id": obj.get("id"), "decline_code": error.get("decline_code")},
    )
    return ServiceResult.success(None)
