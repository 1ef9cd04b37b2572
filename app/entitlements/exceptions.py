"""
Entitlement-specific exceptions.

Exception Hierarchy:
    BaseApplicationError (core)
    └── EntitlementPersistenceError - Write failed, not a uniqueness race (500)

Expected outcomes (already cancelled, still active, nothing to delete) are
ServiceResult failures, not exceptions.
"""

from core.exceptions import BaseApplicationError


class EntitlementPersistenceError(BaseApplicationError):
    """
    A database write failed for a reason other than a uniqueness conflict.

    Not retried automatically. `details` carries the session id, subject and
    amount so the payment can be reconciled by hand.
    """

    default_error_code: str = "PERSISTENCE_ERROR"
    http_status: int = 500


__all__ = [
    "EntitlementPersistenceError",
]
