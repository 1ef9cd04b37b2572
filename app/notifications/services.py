"""
Confirmation email delivery.

Services:
    NotificationDispatcher: Sends one email with bounded, linearly spaced
        retries and reports the outcome instead of raising.
    ConfirmationNotifier: Renders and sends the purchase confirmations
        (user membership, association membership, training purchase).

Delivery is best effort: a confirmation that cannot be sent is logged and
reported as `notification_failed` by the caller, never as a failed payment.

Usage:
    from notifications.services import NotificationDispatcher

    result = NotificationDispatcher().send_with_retry(
        to="jane@example.com",
        subject="Confirmation de votre adhésion",
        html_body="<p>Merci !</p>",
    )
    if not result.success:
        logger.warning(f"Confirmation not sent: {result.error}")
"""

from __future__ import annotations

import logging
import smtplib
import time
from dataclasses import dataclass
from email.utils import make_msgid
from typing import TYPE_CHECKING, Callable

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.core.mail.utils import DNS_NAME
from django.template.loader import render_to_string
from django.utils.html import strip_tags

from accounts.models import SubjectType
from accounts.services import SubjectService
from core.exceptions import BaseApplicationError
from core.services import BaseService
from entitlements.states import TransactionKind
from payments import catalog

if TYPE_CHECKING:
    from entitlements.services import EntitlementOutcome

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 1


@dataclass
class DeliveryResult:
    """
    Outcome of a send with retries.

    Attributes:
        success: Whether any attempt was accepted by the mail backend
        message_id: Message-ID header of the sent email
        attempts: Number of attempts made
        error: Last error message when every attempt failed
    """

    success: bool
    message_id: str | None = None
    attempts: int = 0
    error: str | None = None


class NotificationDispatcher:
    """
    Sends an email through Django's mail framework with retries.

    Attempt n failing waits n * RETRY_DELAY_SECONDS before attempt n + 1.
    `sleep` is injectable so tests do not wait.
    """

    def __init__(
        self,
        max_attempts: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.max_attempts = max_attempts or getattr(
            settings, "NOTIFICATION_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS
        )
        self.sleep = sleep

    def send(
        self,
        to: str,
        subject: str,
        html_body: str,
        text_body: str | None = None,
        from_email: str | None = None,
        reply_to: str | None = None,
    ) -> str:
        """
        Send a single email.

        Returns:
            The Message-ID of the sent email

        Raises:
            smtplib.SMTPException / OSError: Backend failure
        """
        message_id = make_msgid(domain=DNS_NAME)
        email = EmailMultiAlternatives(
            subject=subject,
            body=text_body if text_body is not None else strip_tags(html_body),
            from_email=from_email or settings.DEFAULT_FROM_EMAIL,
            to=[to],
            reply_to=[reply_to] if reply_to else None,
            headers={"Message-ID": message_id},
        )
        email.attach_alternative(html_body, "text/html")
        if not email.send(fail_silently=False):
            raise smtplib.SMTPException("Mail backend accepted no message")
        return message_id

    def send_with_retry(self, to: str, subject: str, html_body: str, **options) -> DeliveryResult:
        """Send with up to `max_attempts` attempts; never raises for delivery errors."""
        error = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                message_id = self.send(to, subject, html_body, **options)
            except (smtplib.SMTPException, OSError) as e:
                error = str(e) or e.__class__.__name__
                logger.warning(
                    f"Email attempt {attempt}/{self.max_attempts} failed: {error}",
                    extra={"recipient": to, "attempt": attempt},
                )
                if attempt < self.max_attempts:
                    self.sleep(attempt * RETRY_DELAY_SECONDS)
                continue

            logger.info(
                "Email sent",
                extra={"recipient": to, "message_id": message_id, "attempt": attempt},
            )
            return DeliveryResult(success=True, message_id=message_id, attempts=attempt)

        logger.error(
            f"Email not sent after {self.max_attempts} attempts: {error}",
            extra={"recipient": to, "email_subject": subject},
        )
        return DeliveryResult(success=False, attempts=self.max_attempts, error=error)


class ConfirmationNotifier(BaseService):
    """
    Purchase confirmation emails.

    Templates live under notifications/templates/notifications/email/.
    """

    MEMBERSHIP_SUBJECT = "Confirmation de votre adhésion"
    ASSOCIATION_MEMBERSHIP_SUBJECT = "Confirmation de l'adhésion de votre association"
    TRAINING_SUBJECT = "Confirmation de votre inscription à la formation"

    def __init__(
        self,
        dispatcher: NotificationDispatcher | None = None,
        subject_service: type[SubjectService] | None = None,
    ):
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.subject_service = subject_service or SubjectService

    def notify(self, outcome: EntitlementOutcome) -> DeliveryResult:
        """Send the confirmation matching a freshly created entitlement."""
        try:
            if outcome.kind is TransactionKind.TRAINING:
                return self.send_training_confirmation(outcome.entitlement)
            if outcome.kind is TransactionKind.MEMBERSHIP:
                if outcome.subject_type is SubjectType.ASSOCIATION:
                    association = self.subject_service.get_association(outcome.subject_id)
                    return self.send_association_membership_confirmation(
                        association, outcome.entitlement
                    )
                user = self.subject_service.get_user(outcome.subject_id)
                return self.send_membership_confirmation(user, outcome.entitlement)
        except BaseApplicationError as e:
            self.get_logger().warning(
                f"Confirmation recipient not resolved: {e}",
                extra={"entitlement_id": str(outcome.entitlement_id)},
            )
            return DeliveryResult(success=False, error=e.message)
        raise ValueError(f"Unhandled transaction kind: {outcome.kind}")

    def send_membership_confirmation(self, user, membership) -> DeliveryResult:
        return self._send(
            user.email,
            self.MEMBERSHIP_SUBJECT,
            "notifications/email/membership_confirmation.html",
            {
                "first_name": user.first_name,
                "membership": membership,
                "status_label": membership.get_status_display(),
            },
        )

    def send_association_membership_confirmation(self, association, membership) -> DeliveryResult:
        return self._send(
            association.contact_email,
            self.ASSOCIATION_MEMBERSHIP_SUBJECT,
            "notifications/email/association_membership_confirmation.html",
            {"association": association, "membership": membership},
        )

    def send_training_confirmation(self, purchase) -> DeliveryResult:
        offer = catalog.get_training(purchase.price_id)
        return self._send(
            purchase.user.email,
            self.TRAINING_SUBJECT,
            "notifications/email/training_confirmation.html",
            {
                "first_name": purchase.user.first_name,
                "purchase": purchase,
                "training_name": offer.full_name if offer else purchase.training_id,
            },
        )

    def _send(self, to: str | None, subject: str, template_name: str, context: dict) -> DeliveryResult:
        if not to:
            self.get_logger().warning(
                "Confirmation skipped: no recipient email",
                extra={"template": template_name},
            )
            return DeliveryResult(success=False, error="No recipient email")

        context = {**context, "frontend_url": settings.FRONTEND_URL}
        html_body = render_to_string(template_name, context)
        return self.dispatcher.send_with_retry(to, subject, html_body)
