"""
School-scope authorization for payment data.

Every order belongs to exactly one school. Non-admin callers may only read
or act on orders of their own school; asking for another school is an
authorization failure (403), never an empty result.

Usage:
    from authentication.permissions import ensure_school_access, scope_school_ids

    ensure_school_access(request.user, order.school_id)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rest_framework import permissions

from authentication.models import UserRole
from core.exceptions import PermissionDeniedError

if TYPE_CHECKING:
    from rest_framework.request import Request
    from rest_framework.views import APIView

    from authentication.models import User


SCHOOL_ACCESS_DENIED = "SCHOOL_ACCESS_DENIED"

# Roles allowed to query transactions
TRANSACTION_ROLES = frozenset(
    {UserRole.ADMIN, UserRole.SCHOOL, UserRole.TRUSTEE, UserRole.STAFF}
)


def ensure_school_access(user: User, school_id: str) -> None:
    """
    Raise PermissionDeniedError unless ``user`` may act on ``school_id``.

    Raises:
        PermissionDeniedError: code SCHOOL_ACCESS_DENIED
    """
    if user.is_admin:
        return
    if not user.school_id or user.school_id != school_id:
        raise PermissionDeniedError(
            "Access denied for this school",
            error_code=SCHOOL_ACCESS_DENIED,
            details={"school_id": school_id},
        )


def scope_school_ids(user: User, requested: list[str] | None = None) -> list[str] | None:
    """
    Resolve which schools a listing may include.

    Returns None for "no restriction" (admin without a filter). Non-admins
    always get their own school; asking for any other school raises.
    """
    if user.is_admin:
        return requested or None

    for school_id in requested or []:
        ensure_school_access(user, school_id)
    if not user.school_id:
        raise PermissionDeniedError(
            "User is not linked to a school",
            error_code=SCHOOL_ACCESS_DENIED,
        )
    return [user.school_id]


class HasTransactionRole(permissions.BasePermission):
    """Allows access only to roles that may see transaction data."""

    message = "Your role may not access transactions."

    def has_permission(self, request: Request, view: APIView) -> bool:
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.is_superuser or user.role in TRANSACTION_ROLES
