"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP concerns, models handle data, services handle logic.

Pattern Comparison:
    - ServiceResult: Use for expected failures (payment not yet confirmed,
      membership already cancelled, nothing to delete)
    - Exceptions: Use for unexpected failures (provider outage, database errors)

Usage:
    from core.services import BaseService, ServiceResult

    class CancellationService(BaseService):
        def terminate_membership(self, membership_id) -> ServiceResult[Membership]:
            membership = Membership.objects.filter(pk=membership_id).first()
            if membership is None:
                return ServiceResult.failure(
                    "Membership not found",
                    error_code="MEMBERSHIP_NOT_FOUND",
                )
            ...
            return ServiceResult.success(membership)

    # In view
    result = service.terminate_membership(membership_id)
    if result.success:
        return Response({"success": True})
    return Response(result.to_response(), status=400)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
        details: Extra context returned to the client with a failure

    Usage:
        result = service.verify_session(session_id)
        if not result:
            logger.info(f"Session not paid yet: {result.error_code}")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: T) -> ServiceResult[T]:
        """Alias for success() - use whichever reads better in context."""
        return cls(success=True, data=data)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result carrying `data`."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            details: Context for the client (ids, remediation hints)

        Example:
            return ServiceResult.failure(
                "Payment not confirmed: unpaid",
                error_code="PAYMENT_NOT_CONFIRMED",
                details={"payment_status": "unpaid"},
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            details=details or {},
        )

    @classmethod
    def from_exception(
        cls, exc: Exception, error_code: str | None = None
    ) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their own code and details; any other
        exception is named after its class.
        """
        code = error_code or getattr(exc, "error_code", None)
        return cls(
            success=False,
            error=getattr(exc, "message", None) or str(exc),
            error_code=code or exc.__class__.__name__.upper(),
            details=dict(getattr(exc, "details", None) or {}),
        )

    def to_response(self) -> dict[str, Any]:
        """Convert to the JSON body returned by a DRF view."""
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.details:
            response.update(self.details)
        return response

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Services here keep no per-request state. Collaborators that tests need
    to replace (Stripe adapter, mailer, status propagator) are passed to
    the constructor and default to the production implementation.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Logger named after the service class for easy filtering."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        A thin wrapper around Django's transaction.atomic(); nested use
        creates a savepoint, so a failed block only rolls back itself.

        Example:
            with cls.atomic():
                membership = Membership.objects.create(...)
                UserMembership.objects.create(user=user, membership=membership)
        """
        with transaction.atomic():
            yield
