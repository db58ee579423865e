"""Batch updates of precomputed nested-set coordinates.

This is a pure update path: every record must already exist. The updater
does not open a transaction of its own; run it through
``TransactionalRunner`` to make the batch atomic.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

import peewee

from nestsync.domain.exceptions import PersistenceError
from nestsync.domain.models import FlatRecord
from nestsync.protocols import NodeStore

logger = logging.getLogger(__name__)


class BatchUpdater:
    """Applies flattened bound/depth/parent rows to existing records."""

    def __init__(self, store: NodeStore):
        """Initialize batch updater.

        Args:
            store: Node store used to fetch records
        """
        self.store = store

    def apply(self, flat: Iterable[FlatRecord]) -> int:
        """Write each flat record onto the stored record with the same key.

        Args:
            flat: Flat records in the order they should be applied

        Returns:
            Number of records updated

        Raises:
            NodeNotFoundError: If a key is absent from storage
            PersistenceError: If storage rejects a write

        Example:
            >>> rows = flatten(parse_forest([{"id": 1, "children": [{"id": 2}]}]))
            >>> updater.apply(rows)
            2
        """
        updated = 0
        for row in flat:
            record = self.store.get(row.key)
            # Computed coordinates, not caller input: bypass the fill guard.
            for name, value in row.as_fields().items():
                setattr(record, name, value)
            try:
                record.save()
            except peewee.IntegrityError as exc:
                raise PersistenceError(
                    f"Storage rejected bounds for node {row.key!r}: {exc}",
                    {"key": row.key, "error": str(exc)},
                ) from exc
            updated += 1

        logger.info("node_bounds_batch_updated", extra={"count": updated})
        return updated
