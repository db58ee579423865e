"""Pytest configuration and shared fixtures.

This module provides common fixtures and helpers for all tests.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest

from nestsync.config import AppConfig, DatabaseConfig, RuntimeConfig, TreeConfig
from nestsync.db.models import Node
from nestsync.db.session import DatabaseSessionManager
from nestsync.db.transaction import TransactionalRunner
from nestsync.infrastructure.persistence.sqlite.node_store import SqliteNodeStore
from nestsync.services.tree_mapper import TreeMapper


def make_session(path: str = ":memory:") -> DatabaseSessionManager:
    """Open a database and create the node table."""
    db = DatabaseSessionManager(path=path)
    db.migrate()
    return db


def make_mapper(
    db: DatabaseSessionManager,
    *,
    anchor_key: Any | None = None,
    children_key_name: str = "children",
) -> TreeMapper:
    runner = TransactionalRunner(db.database, max_retries=0, backoff_base=0)
    return TreeMapper(
        SqliteNodeStore(db.database),
        runner,
        anchor_key=anchor_key,
        children_key_name=children_key_name,
    )


def make_test_app_config(path: str = ":memory:", **tree: Any) -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(path=path, max_retries=0, retry_backoff_base=0),
        tree=TreeConfig(**tree),
        runtime=RuntimeConfig(log_level="DEBUG", use_loguru=False),
    )


def snapshot() -> set[tuple[Any, Any, int, int, int]]:
    """Every stored (key, parent_key, lft, rgt, depth) tuple."""
    return {(n.id, n.parent_id, n.lft, n.rgt, n.depth) for n in Node.select()}


def fetch(key: Any) -> Node:
    return Node.get_by_id(key)


def names_in_order(parent_key: Any | None) -> list[str]:
    query = Node.select().order_by(Node.lft)
    if parent_key is None:
        query = query.where(Node.parent.is_null(True))
    else:
        query = query.where(Node.parent == parent_key)
    return [n.name for n in query]


@pytest.fixture
def db(tmp_path) -> Iterator[DatabaseSessionManager]:
    session = make_session(str(tmp_path / "nodes.db"))
    yield session
    session.close()


@pytest.fixture
def store(db: DatabaseSessionManager) -> SqliteNodeStore:
    return SqliteNodeStore(db.database)


@pytest.fixture
def mapper(db: DatabaseSessionManager) -> TreeMapper:
    return make_mapper(db)


@pytest.fixture(autouse=True)
def _reset_guard() -> Iterator[None]:
    Node.reguard()
    yield
    Node.reguard()
