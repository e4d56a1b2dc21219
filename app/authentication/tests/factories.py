"""
Factory Boy factories for authentication test data.

Usage:
    from authentication.tests.factories import UserFactory

    user = UserFactory()                                  # school user, SCH001
    admin = UserFactory(role=UserRole.ADMIN, school_id="")
    other = UserFactory(school_id="SCH002")
"""

import factory

from authentication.models import User, UserRole

DEFAULT_PASSWORD = "testpass123"


class UserFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating User instances.

    Defaults to a school-role user scoped to SCH001 with password
    DEFAULT_PASSWORD.
    """

    class Meta:
        model = User
        skip_postgeneration_save = True

    email = factory.Sequence(lambda n: f"user{n}@example.com")
    password = factory.PostGenerationMethodCall("set_password", DEFAULT_PASSWORD)
    role = UserRole.SCHOOL
    school_id = "SCH001"
    trustee_id = ""
    is_active = True

    @factory.post_generation
    def save_password(obj, create, extracted, **kwargs):
        if create:
            obj.save()
