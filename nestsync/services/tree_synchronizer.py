"""Recursive synchronization of a desired forest onto the nested set."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from nestsync.domain.models import DesiredNode
from nestsync.protocols import NodeStore

logger = logging.getLogger(__name__)


class TreeSynchronizer:
    """Creates, updates and positions records to match a desired forest.

    Top-level entries are chained left to right with ``move_to_right_of``;
    nested entries are appended with ``make_last_child_of`` in input order.
    The first failure raised by the store aborts the whole pass.
    """

    def __init__(self, store: NodeStore) -> None:
        self.store = store

    def synchronize(
        self, forest: Sequence[DesiredNode], anchor_key: Any | None = None
    ) -> set[Any]:
        """Apply ``forest`` under ``anchor_key`` and return the affected keys."""
        affected: set[Any] = set()
        self._sync_level(forest, anchor_key, affected, top_level=True)
        logger.info(
            "tree_sync_completed",
            extra={"anchor": anchor_key, "affected": len(affected)},
        )
        return affected

    def _sync_level(
        self,
        nodes: Sequence[DesiredNode],
        parent_key: Any | None,
        affected: set[Any],
        *,
        top_level: bool,
    ) -> None:
        sibling_key: Any | None = None
        for desired in nodes:
            record = self.store.lookup_or_create(desired.identity)

            data = dict(desired.data)
            if parent_key is not None:
                data["parent"] = parent_key
            record.fill(data)
            self.store.persist(record)

            if top_level:
                if sibling_key is not None:
                    self.store.move_to_right_of(record.id, sibling_key)
                elif parent_key is None and record.parent_id is not None:
                    # A nested record listed first at the root level is promoted.
                    self.store.make_root(record.id)
                sibling_key = record.id
            else:
                self.store.make_last_child_of(record.id, parent_key)

            affected.add(record.id)

            if desired.children:
                self._sync_level(desired.children, record.id, affected, top_level=False)
