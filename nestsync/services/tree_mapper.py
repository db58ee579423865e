"""Mapping of nested input onto the stored tree.

``TreeMapper`` ties the pieces together for one anchor:

- ``map`` synchronizes and prunes inside one unguarded transaction.
- ``map_tree`` does the same work without a transaction or unguarding.
- ``update_map`` writes precomputed bounds for records that already exist.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from nestsync.db.batch_operations import BatchUpdater
from nestsync.db.transaction import TransactionalRunner
from nestsync.domain.exceptions import NodeNotFoundError, ValidationError
from nestsync.domain.models import (
    DEFAULT_CHILDREN_KEY,
    DEFAULT_KEY_NAME,
    DesiredNode,
    FlatRecord,
    Scope,
    parse_forest,
)
from nestsync.domain.results import SyncResult
from nestsync.protocols import NodeStore
from nestsync.services.bound_flattener import flatten
from nestsync.services.pruner import Pruner
from nestsync.services.tree_synchronizer import TreeSynchronizer

logger = logging.getLogger(__name__)

ForestInput = Iterable[Mapping[str, Any] | DesiredNode] | None


class TreeMapper:
    """Maps a nested forest into the nested set under an optional anchor."""

    def __init__(
        self,
        store: NodeStore,
        runner: TransactionalRunner,
        *,
        anchor_key: Any | None = None,
        children_key_name: str = DEFAULT_CHILDREN_KEY,
        key_name: str = DEFAULT_KEY_NAME,
    ) -> None:
        self.store = store
        self.runner = runner
        self.anchor_key = anchor_key
        self._children_key_name = children_key_name
        self._key_name = key_name
        self.synchronizer = TreeSynchronizer(store)
        self.pruner = Pruner(store)
        self.updater = BatchUpdater(store)

    @property
    def children_key_name(self) -> str:
        return self._children_key_name

    @property
    def key_name(self) -> str:
        return self._key_name

    def map(self, forest: ForestInput) -> SyncResult[set[Any]]:
        """Map ``forest`` atomically with mass-assignment protection suspended.

        The input is parsed once up front, so a retried transaction replays the
        same nodes even when ``forest`` is a one-shot iterable.
        """
        try:
            nodes = self._parse(forest)
        except ValidationError as exc:
            return self._rejected(exc, "map_tree")
        return self.runner.run(
            lambda: SyncResult.success_result(self._map_nodes(nodes)),
            operation_name="map_tree",
        )

    def map_tree(self, forest: ForestInput) -> set[Any]:
        """Synchronize ``forest`` and prune untouched records in scope.

        Runs in whatever transaction (if any) the caller holds; failures raise.
        """
        return self._map_nodes(self._parse(forest))

    def update_map(self, forest: ForestInput) -> SyncResult[int]:
        """Recompute bounds from ``forest`` and write them to existing records."""
        try:
            nodes = self._parse(forest)
        except ValidationError as exc:
            return self._rejected(exc, "update_map")

        def _body() -> SyncResult[int]:
            rows = self._flatten_for_scope(nodes)
            return SyncResult.success_result(self.updater.apply(rows))

        return self.runner.run(_body, operation_name="update_map")

    def flatten(self, forest: ForestInput) -> list[FlatRecord]:
        """Compute flat bounds for ``forest`` relative to the anchor, without writing."""
        return self._flatten_for_scope(self._parse(forest), check_coverage=False)

    def get_tree(self) -> list[dict[str, Any]]:
        return self.store.get_tree(
            self.anchor_key, children_key=self._children_key_name, key_name=self._key_name
        )

    # -- Internal helpers -------------------------------------------------

    def _map_nodes(self, nodes: Sequence[DesiredNode]) -> set[Any]:
        scope = self._scope()
        logger.debug("tree_map_started", extra={"anchor": self.anchor_key, "roots": len(nodes)})

        affected = self.synchronizer.synchronize(nodes, self.anchor_key)
        if affected:
            self.pruner.prune(scope, affected)
        return affected

    def _rejected(self, exc: ValidationError, operation_name: str) -> SyncResult[Any]:
        logger.warning(
            "tree_input_rejected",
            extra={"operation": operation_name, "error": exc.message, "details": exc.details},
        )
        return SyncResult.from_exception(exc)

    def _parse(self, forest: ForestInput) -> tuple[DesiredNode, ...]:
        return parse_forest(
            forest, key_name=self._key_name, children_key=self._children_key_name
        )

    def _scope(self) -> Scope:
        if self.anchor_key is not None and not self.store.exists(self.anchor_key):
            raise NodeNotFoundError(self.anchor_key, {"role": "anchor"})
        return Scope(self.anchor_key)

    def _flatten_for_scope(
        self, nodes: Sequence[DesiredNode], *, check_coverage: bool = True
    ) -> list[FlatRecord]:
        scope = self._scope()
        if scope.is_whole_collection:
            rows = flatten(nodes)
        else:
            anchor = self.store.get(scope.anchor_key)
            rows = flatten(nodes, anchor.id, anchor.depth + 1, anchor.lft + 1)

        if check_coverage:
            self._check_coverage(scope, rows)
        return rows

    def _check_coverage(self, scope: Scope, rows: Sequence[FlatRecord]) -> None:
        # Stored records left out of the input would keep overlapping bounds.
        in_scope = self.store.scope_keys(scope)
        given = {row.key for row in rows}
        uncovered = in_scope - given
        if uncovered:
            msg = "Bound updates must cover every record in scope"
            raise ValidationError(msg, {"uncovered": sorted(uncovered)})

        foreign = [key for key in given - in_scope if self.store.exists(key)]
        if foreign:
            msg = "Bound updates reference records outside the anchor"
            raise ValidationError(msg, {"foreign": sorted(foreign)})
