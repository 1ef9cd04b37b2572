"""
Subject store services.

Services:
    SubjectService: Subject lookup, email resolution, member check and
        status row writes. Errors propagate to the caller.
    StatusPropagator: Best-effort wrapper around the status writes. Failures
        are logged as warnings and reported as False, never raised.

The entitlement row is the source of truth; the status row is a derived
projection that may lag behind it.

Usage:
    from accounts.services import StatusPropagator, SubjectService

    if SubjectService.is_active_member(user_id):
        ...

    StatusPropagator().set_status_for_membership(user_id, MemberStatus.PROFESSIONAL)
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from django.db import DatabaseError, transaction
from django.utils import timezone

from accounts.models import (
    ACTIVE_MEMBER_STATUSES,
    Association,
    MemberStatus,
    SubjectType,
    User,
    UserStatus,
)
from core.exceptions import BaseApplicationError, NotFoundError, ValidationError
from core.services import BaseService

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


def parse_subject_id(value, field_name: str = "subject_id") -> uuid.UUID:
    """
    Parse a subject identifier coming from metadata or a URL.

    Raises:
        ValidationError: If the value is empty or not a UUID
    """
    if isinstance(value, uuid.UUID):
        return value
    if not value:
        raise ValidationError(
            f"Missing {field_name}",
            error_code="MISSING_SUBJECT_ID",
            details={"field": field_name},
        )
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise ValidationError(
            f"Invalid {field_name}: {value}",
            error_code="INVALID_SUBJECT_ID",
            details={"field": field_name, "value": str(value)},
        ) from e


class SubjectService(BaseService):
    """Reads and writes against the subject store."""

    @classmethod
    def get_user(cls, user_id) -> User:
        """
        Fetch a user by id.

        Raises:
            ValidationError: Malformed id
            NotFoundError: No such user
        """
        pk = parse_subject_id(user_id, "userId")
        user = User.objects.filter(pk=pk).first()
        if user is None:
            raise NotFoundError(
                f"User {pk} not found",
                error_code="USER_NOT_FOUND",
                details={"user_id": str(pk)},
            )
        return user

    @classmethod
    def get_association(cls, association_id) -> Association:
        """
        Fetch an association by id.

        Raises:
            ValidationError: Malformed id
            NotFoundError: No such association
        """
        pk = parse_subject_id(association_id, "associationId")
        association = Association.objects.filter(pk=pk).first()
        if association is None:
            raise NotFoundError(
                f"Association {pk} not found",
                error_code="ASSOCIATION_NOT_FOUND",
                details={"association_id": str(pk)},
            )
        return association

    @classmethod
    def get_subject_email(cls, subject_type: str, subject_id) -> str | None:
        """Return the address confirmations go to, or None when unknown."""
        if subject_type == SubjectType.ASSOCIATION:
            return cls.get_association(subject_id).contact_email or None
        return cls.get_user(subject_id).email or None

    @classmethod
    def is_active_member(cls, user_id) -> bool:
        """
        Point-in-time check of the user's status row.

        The result is used for pricing only and is never stored on an
        entitlement.
        """
        pk = parse_subject_id(user_id, "userId")
        return UserStatus.objects.filter(
            user_id=pk,
            status__in=[int(status) for status in ACTIVE_MEMBER_STATUSES],
        ).exists()

    @classmethod
    def set_status_for_membership(cls, user_id, status: int) -> UserStatus:
        """Set the user's status row to a membership tier."""
        pk = parse_subject_id(user_id, "userId")
        record, _ = UserStatus.objects.update_or_create(
            user_id=pk,
            defaults={"status": int(status)},
        )
        cls.get_logger().info(
            "User status set to membership tier",
            extra={"user_id": str(pk), "status": int(status)},
        )
        return record

    @classmethod
    def set_status_to_connected(cls, user_id) -> UserStatus:
        """Reset the user's status row to the connected baseline."""
        return cls.set_status_for_membership(user_id, MemberStatus.CONNECTED)

    @classmethod
    def remove_status(cls, user_id, status: int) -> int:
        """
        Delete the user's status row if it still holds `status`.

        A row that has since moved to another tier is left alone.

        Returns:
            Number of rows deleted (0 or 1)
        """
        pk = parse_subject_id(user_id, "userId")
        deleted, _ = UserStatus.objects.filter(user_id=pk, status=int(status)).delete()
        cls.get_logger().info(
            "User status removed",
            extra={"user_id": str(pk), "status": int(status), "deleted": deleted},
        )
        return deleted

    @classmethod
    def revoke_membership_status(cls, user_id, status: int) -> bool:
        """
        Drop the user back to CONNECTED if the row still holds `status`.

        Returns:
            True if the row was reverted
        """
        pk = parse_subject_id(user_id, "userId")
        reverted = UserStatus.objects.filter(user_id=pk, status=int(status)).update(
            status=MemberStatus.CONNECTED,
            updated_at=timezone.now(),
        )
        cls.get_logger().info(
            "Membership status revoked",
            extra={"user_id": str(pk), "status": int(status), "reverted": bool(reverted)},
        )
        return bool(reverted)


class StatusPropagator:
    """
    Best-effort status propagation.

    Each call runs in its own savepoint so a failed write never poisons the
    caller's transaction, and never raises: the boolean result only feeds
    logging and response flags.
    """

    def __init__(self, subject_service: type[SubjectService] | None = None):
        self.subject_service = subject_service or SubjectService

    def set_status_for_membership(self, user_id, status: int) -> bool:
        return self._run(
            "set_status_for_membership",
            lambda: self.subject_service.set_status_for_membership(user_id, status),
            user_id=user_id,
            status=status,
        )

    def set_status_to_connected(self, user_id) -> bool:
        return self._run(
            "set_status_to_connected",
            lambda: self.subject_service.set_status_to_connected(user_id),
            user_id=user_id,
        )

    def remove_status(self, user_id, status: int) -> bool:
        return self._run(
            "remove_status",
            lambda: self.subject_service.remove_status(user_id, status),
            user_id=user_id,
            status=status,
        )

    def revoke_membership_status(self, user_id, status: int) -> bool:
        return self._run(
            "revoke_membership_status",
            lambda: self.subject_service.revoke_membership_status(user_id, status),
            user_id=user_id,
            status=status,
        )

    def _run(self, operation: str, call: Callable[[], object], **context) -> bool:
        log_context = {
            "operation": operation,
            **{key: str(value) for key, value in context.items()},
        }
        try:
            with transaction.atomic():
                call()
        except (DatabaseError, BaseApplicationError) as e:
            logger.warning(
                f"Status propagation failed ({operation}): {e}",
                extra=log_context,
            )
            return False
        return True
