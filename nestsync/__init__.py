"""Synchronize nested input forests onto a nested-set tree stored with peewee."""

from __future__ import annotations

from nestsync.db.models import Node
from nestsync.domain import (
    DesiredNode,
    FlatRecord,
    Scope,
    SyncErrorKind,
    SyncResult,
)
from nestsync.services.bound_flattener import flatten
from nestsync.services.tree_mapper import TreeMapper

__version__ = "0.1.0"

__all__ = [
    "DesiredNode",
    "FlatRecord",
    "Node",
    "Scope",
    "SyncErrorKind",
    "SyncResult",
    "TreeMapper",
    "flatten",
]
