"""Database session management.

This module provides the DatabaseSessionManager class, which owns the SQLite
connection used by the nested-set store. It handles:
- Connection setup with the pragmas the store relies on
- Table creation for the node model
- Raw SQL helpers for diagnostics
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

import peewee
from playhouse.sqlite_ext import SqliteExtDatabase

from nestsync.db.models import ALL_MODELS, database_proxy

DB_OPERATION_TIMEOUT = 30.0


class RowSqliteDatabase(SqliteExtDatabase):
    """SQLite database subclass that configures the row factory for dict-like access."""

    def _connect(self) -> sqlite3.Connection:
        conn = super()._connect()
        conn.row_factory = sqlite3.Row
        return conn


@dataclass
class DatabaseSessionManager:
    """Peewee-backed database session manager.

    Attributes:
        path: Path to the SQLite database file, or ":memory:" for in-memory
        operation_timeout: Seconds SQLite waits on a locked database
    """

    path: str
    _logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))
    _database: peewee.SqliteDatabase = field(init=False)

    operation_timeout: float = field(default=DB_OPERATION_TIMEOUT)

    def __post_init__(self) -> None:
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        self._database = RowSqliteDatabase(
            self.path,
            pragmas={
                "journal_mode": "wal",
                "synchronous": "normal",
                "foreign_keys": 1,
            },
            timeout=self.operation_timeout,
            check_same_thread=False,
        )
        database_proxy.initialize(self._database)

    @property
    def database(self) -> peewee.SqliteDatabase:
        """Access the underlying Peewee database instance."""
        return self._database

    def migrate(self) -> None:
        """Create the node tables if they do not exist yet."""
        self._database.connect(reuse_if_open=True)
        self._database.create_tables(ALL_MODELS, safe=True)
        self._logger.info("db_tables_ready", extra={"path": self._mask_path(self.path)})

    def close(self) -> None:
        if not self._database.is_closed():
            self._database.close()

    def execute(self, sql: str, params: Iterable | None = None) -> None:
        """Execute raw SQL synchronously."""
        params = tuple(params or ())
        self._database.execute_sql(sql, params)
        self._logger.debug("db_execute", extra={"sql": sql, "params": list(params)[:10]})

    def fetchone(self, sql: str, params: Iterable | None = None) -> sqlite3.Row | None:
        """Fetch a single row using raw SQL."""
        cursor = self._database.execute_sql(sql, tuple(params or ()))
        return cursor.fetchone()

    @staticmethod
    def _mask_path(path: str) -> str:
        """Mask a path for logging (show only parent/filename)."""
        try:
            p = Path(path)
            if not p.name:
                return str(p)
            parent = p.parent.name
            if parent:
                return f".../{parent}/{p.name}"
            return p.name
        except (OSError, ValueError, AttributeError):
            return "..."
