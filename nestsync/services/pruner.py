"""Deletion of records a synchronization pass did not touch."""

from __future__ import annotations

import logging
from collections.abc import Collection
from typing import Any

from nestsync.domain.models import Scope
from nestsync.protocols import NodeStore

logger = logging.getLogger(__name__)


class Pruner:
    """Removes records in scope whose key is not in the keep set."""

    def __init__(self, store: NodeStore) -> None:
        self.store = store

    def prune(self, scope: Scope, keep: Collection[Any]) -> int:
        # An empty keep set would wipe the whole scope; treat it as nothing to do.
        if not keep:
            logger.info("tree_prune_skipped_empty_keep", extra={"anchor": scope.anchor_key})
            return 0

        deleted = self.store.delete_where_key_not_in(scope, keep)
        logger.info(
            "tree_prune_completed",
            extra={"anchor": scope.anchor_key, "kept": len(keep), "deleted": deleted},
        )
        return deleted
