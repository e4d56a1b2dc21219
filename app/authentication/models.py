"""
Authentication models.

This module defines the User model: an email-identified account carrying
the tenant scope that partitions payment data.

Related files:
    - managers.py: Custom user manager for email-based creation
    - permissions.py: School-scope enforcement

Security:
    - User passwords hashed with Django's PBKDF2
    - school_id is copied into JWT claims but always re-read from the
      database user on each request
"""

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.db import models

from authentication.managers import UserManager


class UserRole(models.TextChoices):
    """
    Roles recognised by the payment API.

    ADMIN sees every school. All other roles are confined to their own
    school_id.
    """

    ADMIN = "admin", "Admin"
    SCHOOL = "school", "School"
    TRUSTEE = "trustee", "Trustee"
    STAFF = "staff", "Staff"
    USER = "user", "User"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the primary identifier.

    Fields:
        email: Primary identifier, unique, used for login
        role: Access role (see UserRole)
        school_id: School the user acts for (blank for platform admins)
        trustee_id: Trustee (school group) the user belongs to, optional
        is_active: Whether the user account is active
        is_staff: Whether the user can access Django admin
        date_joined: When the user account was created
        updated_at: When the user record was last modified
    """

    email = models.EmailField(
        unique=True,
        db_index=True,
        max_length=254,
        help_text="User's email address (primary identifier)",
    )

    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.USER,
        help_text="Access role; admin sees all schools",
    )
    school_id = models.CharField(
        max_length=100,
        blank=True,
        db_index=True,
        help_text="School identifier this user is scoped to",
    )
    trustee_id = models.CharField(
        max_length=100,
        blank=True,
        help_text="Trustee identifier, if any",
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

    @property
    def is_admin(self) -> bool:
        """Admins (or superusers) are not restricted to a single school."""
        return self.is_superuser or self.role == UserRole.ADMIN
