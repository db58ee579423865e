from __future__ import annotations

from .exceptions import (
    DomainException,
    MoveNotPossibleError,
    NestedSetError,
    NodeNotFoundError,
    PersistenceError,
    ResourceNotFoundError,
    SyncErrorKind,
    TransactionError,
    ValidationError,
)
from .models import DesiredNode, FlatRecord, Scope, parse_forest
from .results import SyncResult

__all__ = [
    "DesiredNode",
    "DomainException",
    "FlatRecord",
    "MoveNotPossibleError",
    "NestedSetError",
    "NodeNotFoundError",
    "PersistenceError",
    "ResourceNotFoundError",
    "Scope",
    "SyncErrorKind",
    "SyncResult",
    "TransactionError",
    "ValidationError",
    "parse_forest",
]
