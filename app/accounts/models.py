"""
Subject store models.

This module defines the entities that own entitlements:
- User: Custom user model with email-based authentication
- Association: An organisation that can hold its own membership
- UserStatus: The user's current status code (connected or member tier)

Related files:
    - managers.py: Email-based user creation
    - services.py: SubjectService and StatusPropagator
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from accounts.managers import UserManager
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class MemberStatus(models.IntegerChoices):
    """
    Status codes stored on a user's status row.

    CONNECTED is the baseline for any registered user. The three member
    codes form the fixed set checked for member pricing.
    """

    CONNECTED = 1, "Connected"
    MEMBER = 2, "Member"
    PROFESSIONAL = 3, "Professional member"
    ASSOCIATION_MEMBER = 4, "Association member"


ACTIVE_MEMBER_STATUSES = frozenset(
    {
        MemberStatus.MEMBER,
        MemberStatus.PROFESSIONAL,
        MemberStatus.ASSOCIATION_MEMBER,
    }
)


class User(UUIDPrimaryKeyMixin, AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    The UUID primary key is the `userId` carried in checkout session
    metadata.

    Fields:
        email: Primary identifier, unique, used for login and receipts
        first_name / last_name: Used in confirmation emails
        is_active: Whether the account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the account was created
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )
    first_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="Given name, used in confirmation emails",
    )
    last_name = models.CharField(
        max_length=150,
        blank=True,
        help_text="Family name",
    )
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )
    date_joined = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user account was created",
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        help_text="When the user record was last modified",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["-date_joined"]

    def __str__(self):
        return self.email

    def get_full_name(self):
        full_name = f"{self.first_name} {self.last_name}".strip()
        return full_name or self.email

    def get_short_name(self):
        return self.first_name or self.email.split("@")[0]


class Association(UUIDPrimaryKeyMixin, BaseModel):
    """
    An association subject.

    Associations hold memberships of their own; confirmations go to the
    contact email.
    """

    name = models.CharField(
        max_length=255,
        help_text="Display name of the association",
    )
    contact_email = models.EmailField(
        blank=True,
        help_text="Address receiving membership confirmations",
    )

    class Meta:
        verbose_name = "association"
        verbose_name_plural = "associations"
        ordering = ["name"]

    def __str__(self):
        return self.name


class UserStatus(BaseModel):
    """
    The single status row of a user.

    Written by the status propagation after membership changes; read by the
    member check at checkout time.
    """

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name="status_record",
        help_text="User this status belongs to",
    )
    status = models.PositiveSmallIntegerField(
        choices=MemberStatus.choices,
        default=MemberStatus.CONNECTED,
        db_index=True,
        help_text="Current status code",
    )

    class Meta:
        verbose_name = "user status"
        verbose_name_plural = "user statuses"

    def __str__(self):
        return f"{self.user_id}: {self.get_status_display()}"

    @property
    def is_active_member(self) -> bool:
        return self.status in ACTIVE_MEMBER_STATUSES


class SubjectType(models.TextChoices):
    """The two kinds of subject that can own an entitlement."""

    USER = "user", "User"
    ASSOCIATION = "association", "Association"
