"""
Factory Boy factories for subject store test data.

Usage:
    from accounts.tests.factories import UserFactory, UserStatusFactory

    user = UserFactory()
    member = UserStatusFactory(status=MemberStatus.PROFESSIONAL).user
"""

import factory

from accounts.models import Association, MemberStatus, User, UserStatus


class UserFactory(factory.django.DjangoModelFactory):
    """Factory for creating User instances."""

    class Meta:
        model = User
        skip_postgeneration_save = True

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    first_name = "Jane"
    last_name = factory.Sequence(lambda n: f"Doe{n}")
    password = factory.PostGenerationMethodCall("set_password", "testpass123")
    is_active = True


class AssociationFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Association

    name = factory.Sequence(lambda n: f"Association {n}")
    contact_email = factory.Sequence(lambda n: f"contact{n}@association.example.com")


class UserStatusFactory(factory.django.DjangoModelFactory):
    """
    Factory for a user's status row.

    Default is an active MEMBER; pass status=MemberStatus.CONNECTED for a
    non-member.
    """

    class Meta:
        model = UserStatus

    user = factory.SubFactory(UserFactory)
    status = MemberStatus.MEMBER
