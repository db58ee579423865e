"""Domain-specific exceptions.

These exceptions represent failures of a tree synchronization pass. The
transactional runner turns them into failure results after rolling back.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class SyncErrorKind(str, Enum):
    """Kinds of failure a synchronization pass can report."""

    PERSISTENCE_FAILURE = "persistence_failure"
    NOT_FOUND = "not_found"
    INVALID_MOVE = "invalid_move"
    VALIDATION = "validation"
    TRANSACTION_FAILURE = "transaction_failure"


class DomainException(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NestedSetError(DomainException):
    """Base for failures raised while mutating the nested set."""

    kind: SyncErrorKind = SyncErrorKind.PERSISTENCE_FAILURE


class PersistenceError(NestedSetError):
    """Raised when the storage layer refuses a create or update."""

    kind = SyncErrorKind.PERSISTENCE_FAILURE


class ResourceNotFoundError(DomainException):
    """Raised when a requested resource does not exist."""


class NodeNotFoundError(NestedSetError, ResourceNotFoundError):
    """Raised when an update path references a key absent from storage."""

    kind = SyncErrorKind.NOT_FOUND

    def __init__(self, key: Any, details: dict[str, Any] | None = None) -> None:
        super().__init__(f"Node {key!r} does not exist", {"key": key, **(details or {})})
        self.key = key


class MoveNotPossibleError(NestedSetError):
    """Raised when a node would be moved onto itself or into its own subtree."""

    kind = SyncErrorKind.INVALID_MOVE


class ValidationError(NestedSetError):
    """Raised when the input forest is malformed."""

    kind = SyncErrorKind.VALIDATION


class TransactionError(NestedSetError):
    """Raised when the enclosing unit of work cannot commit."""

    kind = SyncErrorKind.TRANSACTION_FAILURE
