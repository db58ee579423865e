"""Atomic unit of work for bulk tree operations.

``TransactionalRunner.run`` executes a body inside ``database.atomic()`` with
mass-assignment protection suspended on the record model. The body returns a
``SyncResult``; the transaction is rolled back whenever the body raises *or*
returns a failure result, so a partial write can never be committed behind a
failed result.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

import peewee

from nestsync.db.models import GuardedModel, Node
from nestsync.domain.exceptions import DomainException, SyncErrorKind, TransactionError
from nestsync.domain.results import SyncResult

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_BASE = 0.1


class _RollbackRequested(Exception):
    """Internal signal used to unwind ``atomic()`` for a failed result."""

    def __init__(self, result: SyncResult) -> None:
        super().__init__(result.error)
        self.result = result


class TransactionalRunner:
    """Runs tree operations as one atomic, unguarded unit of work."""

    def __init__(
        self,
        database: peewee.Database,
        model: type[GuardedModel] = Node,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_base: float = DEFAULT_BACKOFF_BASE,
        logger: logging.Logger | None = None,
    ) -> None:
        self.database = database
        self.model = model
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self._logger = logger or logging.getLogger(__name__)

    def run(
        self,
        body: Callable[[], SyncResult[T]],
        *,
        operation_name: str = "tree_transaction",
    ) -> SyncResult[T]:
        """Execute ``body`` atomically and return its result.

        Args:
            body: Callable returning a SyncResult
            operation_name: Name for logging purposes

        Returns:
            The body's result if it committed, otherwise a failure result.
            Domain exceptions raised by the body are converted, never re-raised.
        """
        retries = 0
        while True:
            try:
                return self._run_once(body)

            except _RollbackRequested as signal:
                self._logger.warning(
                    "tree_transaction_rolled_back",
                    extra={
                        "operation": operation_name,
                        "error": signal.result.error,
                        "error_kind": _kind_value(signal.result.error_kind),
                    },
                )
                return signal.result

            except DomainException as exc:
                self._logger.warning(
                    "tree_transaction_rolled_back",
                    extra={
                        "operation": operation_name,
                        "error": exc.message,
                        "error_type": type(exc).__name__,
                        "details": exc.details,
                    },
                )
                return SyncResult.from_exception(exc)

            except peewee.OperationalError as exc:
                error_msg = str(exc).lower()
                if ("locked" in error_msg or "busy" in error_msg) and retries < self.max_retries:
                    retries += 1
                    wait_time = self.backoff_base * (2**retries)
                    self._logger.warning(
                        "tree_transaction_locked_retrying",
                        extra={
                            "operation": operation_name,
                            "retry": retries,
                            "max_retries": self.max_retries,
                            "wait_time": wait_time,
                            "error": str(exc),
                        },
                    )
                    time.sleep(wait_time)
                    continue

                self._logger.exception(
                    "tree_transaction_operational_error",
                    extra={"operation": operation_name, "retries": retries, "error": str(exc)},
                )
                return SyncResult.from_exception(TransactionError(str(exc), {"retries": retries}))

            except peewee.IntegrityError as exc:
                self._logger.exception(
                    "tree_transaction_integrity_error",
                    extra={"operation": operation_name, "error": str(exc)},
                )
                return SyncResult.error_result(str(exc), SyncErrorKind.PERSISTENCE_FAILURE)

            except peewee.DatabaseError as exc:
                self._logger.exception(
                    "tree_transaction_database_error",
                    extra={
                        "operation": operation_name,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                )
                return SyncResult.from_exception(TransactionError(str(exc)))

    def _run_once(self, body: Callable[[], SyncResult[T]]) -> SyncResult[T]:
        with self.database.atomic(), self.model.unguarded():
            result = body()
            if not result.success:
                raise _RollbackRequested(result)
        return result


def _kind_value(kind: SyncErrorKind | None) -> str | None:
    return kind.value if kind is not None else None
