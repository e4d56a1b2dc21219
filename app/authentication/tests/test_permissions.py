"""
Tests for school-scope authorization helpers.

Users are built unsaved; none of these checks touch the database.
"""

from types import SimpleNamespace

import pytest

from authentication.models import User, UserRole
from authentication.permissions import (
    SCHOOL_ACCESS_DENIED,
    HasTransactionRole,
    ensure_school_access,
    scope_school_ids,
)
from core.exceptions import PermissionDeniedError


def make_user(role=UserRole.SCHOOL, school_id="SCH001", **kwargs):
    return User(email="u@example.com", role=role, school_id=school_id, **kwargs)


# =============================================================================
# ensure_school_access
# =============================================================================


class TestEnsureSchoolAccess:
    def test_same_school_is_allowed(self):
        ensure_school_access(make_user(), "SCH001")

    def test_other_school_is_denied(self):
        with pytest.raises(PermissionDeniedError) as exc_info:
            ensure_school_access(make_user(), "SCH002")

        assert exc_info.value.error_code == SCHOOL_ACCESS_DENIED
        assert exc_info.value.http_status == 403
        assert exc_info.value.details == {"school_id": "SCH002"}

    def test_user_without_school_is_denied(self):
        with pytest.raises(PermissionDeniedError):
            ensure_school_access(make_user(school_id=""), "SCH001")

    def test_admin_role_sees_every_school(self):
        ensure_school_access(make_user(role=UserRole.ADMIN, school_id=""), "SCH999")

    def test_superuser_sees_every_school(self):
        ensure_school_access(make_user(role=UserRole.USER, is_superuser=True), "SCH999")


# =============================================================================
# scope_school_ids
# =============================================================================


class TestScopeSchoolIds:
    def test_admin_without_filter_is_unrestricted(self):
        assert scope_school_ids(make_user(role=UserRole.ADMIN)) is None

    def test_admin_filter_is_kept(self):
        admin = make_user(role=UserRole.ADMIN)
        assert scope_school_ids(admin, ["SCH002", "SCH003"]) == ["SCH002", "SCH003"]

    def test_school_user_is_confined_to_own_school(self):
        assert scope_school_ids(make_user()) == ["SCH001"]
        assert scope_school_ids(make_user(), ["SCH001"]) == ["SCH001"]

    def test_school_user_asking_for_other_school_is_denied(self):
        with pytest.raises(PermissionDeniedError) as exc_info:
            scope_school_ids(make_user(), ["SCH001", "SCH002"])

        assert exc_info.value.error_code == SCHOOL_ACCESS_DENIED

    def test_user_without_school_is_denied(self):
        with pytest.raises(PermissionDeniedError):
            scope_school_ids(make_user(school_id=""))


# =============================================================================
# HasTransactionRole
# =============================================================================


class TestHasTransactionRole:
    @pytest.mark.parametrize(
        "role",
        [UserRole.ADMIN, UserRole.SCHOOL, UserRole.TRUSTEE, UserRole.STAFF],
    )
    def test_transaction_roles_are_allowed(self, role):
        request = SimpleNamespace(user=make_user(role=role))
        assert HasTransactionRole().has_permission(request, None) is True

    def test_plain_user_is_rejected(self):
        request = SimpleNamespace(user=make_user(role=UserRole.USER))
        assert HasTransactionRole().has_permission(request, None) is False

    def test_superuser_is_allowed_regardless_of_role(self):
        request = SimpleNamespace(user=make_user(role=UserRole.USER, is_superuser=True))
        assert HasTransactionRole().has_permission(request, None) is True
