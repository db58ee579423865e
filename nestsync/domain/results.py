"""Result value returned by transactional tree operations."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from .exceptions import DomainException, NestedSetError, SyncErrorKind

T = TypeVar("T")


@dataclass
class SyncResult(Generic[T]):
    """Outcome of a synchronization pass.

    Attributes:
        success: Whether the pass committed
        value: The pass output (if successful)
        error: Error message (if failed)
        error_kind: Category of the failure (if failed)
        details: Additional failure context
    """

    success: bool
    value: T | None = None
    error: str | None = None
    error_kind: SyncErrorKind | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def success_result(cls, value: T) -> SyncResult[T]:
        """Create a successful result."""
        return cls(success=True, value=value)

    @classmethod
    def error_result(
        cls, error: str, kind: SyncErrorKind, **details: Any
    ) -> SyncResult[T]:
        """Create a failed result."""
        return cls(success=False, error=error, error_kind=kind, details=details)

    @classmethod
    def from_exception(cls, exc: DomainException) -> SyncResult[T]:
        kind = exc.kind if isinstance(exc, NestedSetError) else SyncErrorKind.PERSISTENCE_FAILURE
        return cls(success=False, error=exc.message, error_kind=kind, details=dict(exc.details))

    def __bool__(self) -> bool:
        return self.success
