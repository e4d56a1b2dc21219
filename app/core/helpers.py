"""
Request and pagination helpers used by the API layer.

Usage:
    from core.helpers import calculate_pagination, get_client_ip

    meta = calculate_pagination(total=42, page=2, per_page=20)
    ip = get_client_ip(request)
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from django.http import HttpRequest


def calculate_pagination(total: int, page: int, per_page: int) -> dict:
    """
    Calculate pagination metadata.

    The requested page is clamped into ``[1, total_pages]`` so that an
    out-of-range page returns the last page instead of an error.

    Args:
        total: Total number of items
        page: Current page number (1-indexed)
        per_page: Items per page

    Returns:
        Dict with pagination metadata

    Example:
        calculate_pagination(total=100, page=3, per_page=20)
        # {"total": 100, "page": 3, "per_page": 20, "total_pages": 5,
        #  "has_next": True, "has_previous": True, "offset": 40}
    """
    total_pages = math.ceil(total / per_page) if per_page > 0 else 0
    page = max(1, min(page, total_pages or 1))

    return {
        "total": total,
        "page": page,
        "per_page": per_page,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1,
        "offset": (page - 1) * per_page,
    }


def get_client_ip(request: HttpRequest) -> str:
    """
    Extract client IP from request, handling proxies.

    The first address of X-Forwarded-For is the original caller.
    """
    x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR", "")
