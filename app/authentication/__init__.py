"""
Authentication application.

Email/password accounts that carry the tenant scope (role, school_id,
trustee_id) used to partition payment data, plus JWT issuance via
djangorestframework-simplejwt.

Key components:
    - User model: Custom email-based user with role and school scope
    - permissions: School-scope checks shared by payment views

Usage:
    from authentication.models import User, UserRole
    from authentication.permissions import ensure_school_access
"""
