"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with common service utilities

Pattern Comparison:
    - ServiceResult: Use for expected failures (unresolvable webhook, bad payload)
    - Exceptions: Use for failures the caller must not ignore (duplicates, config)

Usage:
    from core.services import BaseService, ServiceResult

    class WebhookIngestor(BaseService):
        @classmethod
        def replay(cls, delivery) -> ServiceResult[WebhookDelivery]:
            ...
            if order is None:
                return ServiceResult.failure(
                    "Order not found", "ORDER_NOT_FOUND", data=delivery
                )
            return ServiceResult.ok(delivery)
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data (may be set on failure too, e.g. the failed record)
        error: Error message if failed (None if successful)
        error_code: Machine-readable error code for client handling
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None

    @classmethod
    def ok(cls, data: T) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        data: T | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            data: Optional payload that is still useful on failure

        Example:
            return ServiceResult.failure(
                "Order not found", "ORDER_NOT_FOUND", data=delivery
            )
        """
        return cls(
            success=False,
            data=data,
            error=error,
            error_code=error_code,
        )


class BaseService:
    """
    Base class for service layer classes.

    Provides database transaction management for services; each service
    module logs through its own ``logging.getLogger(__name__)``.

    Design Notes:
        - Use @classmethod where no collaborator is needed
        - Services that talk to the vendor take the client in __init__
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Thin wrapper around Django's transaction.atomic() that makes
        transaction boundaries explicit in service code.
        """
        with transaction.atomic():
            yield
