"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the domain apps (accounts, entitlements,
notifications, payments). Nothing in here knows about payments.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError and its HTTP-mapped subclasses

Views (import from core.views):
    - health_check: Infrastructure health endpoint
"""
