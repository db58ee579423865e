"""SQLite implementation of the nested-set node store.

Every primitive re-reads the rows it needs by key before computing bounds,
so callers may hold stale ``Node`` instances across moves.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import peewee
from peewee import Case, fn

from nestsync.db.models import Node
from nestsync.domain.exceptions import (
    MoveNotPossibleError,
    NodeNotFoundError,
    PersistenceError,
)
from nestsync.domain.models import DEFAULT_CHILDREN_KEY, DEFAULT_KEY_NAME, Scope

logger = logging.getLogger(__name__)

_RIGHT = "right"
_CHILD = "child"
_ROOT = "root"


class SqliteNodeStore:
    """Nested-set primitives backed by the ``Node`` peewee model."""

    def __init__(self, database: peewee.Database, model: type[Node] = Node) -> None:
        self.database = database
        self.model = model

    # -------------------------------------------------------------------------
    # Lookup and persistence
    # -------------------------------------------------------------------------

    def lookup_or_create(self, identity: Any | None) -> Node:
        if identity is None:
            return self.model()
        record = self.model.get_or_none(self.model.id == identity)
        if record is None:
            return self.model(id=identity)
        return record

    def get(self, key: Any) -> Node:
        record = self.model.get_or_none(self.model.id == key)
        if record is None:
            raise NodeNotFoundError(key)
        return record

    def exists(self, key: Any) -> bool:
        if key is None:
            return False
        return self.model.select().where(self.model.id == key).exists()

    def persist(self, record: Node) -> Node:
        """Create or update ``record``.

        New records are appended as the last root and then moved under their
        parent. Existing records only get their data columns written; a
        changed parent is applied through ``make_last_child_of``/``make_root``.
        """
        try:
            if self.exists(record.id):
                self._update(record)
            else:
                self._insert(record)
        except peewee.IntegrityError as exc:
            raise PersistenceError(
                f"Storage rejected node {record.id!r}: {exc}",
                {"key": record.id, "error": str(exc)},
            ) from exc
        return record

    def _insert(self, record: Node) -> None:
        parent_key = record.parent_id
        self._ensure_exists(parent_key)

        edge = self._right_edge()
        record.parent = None
        record.lft = edge + 1
        record.rgt = edge + 2
        record.depth = 0
        record.save(force_insert=True)

        if parent_key is not None:
            self.make_last_child_of(record.id, parent_key)
            self._reload_structure(record)

        logger.debug("node_created", extra={"key": record.id, "parent": parent_key})

    def _update(self, record: Node) -> None:
        stored_parent = (
            self.model.select(self.model.parent)
            .where(self.model.id == record.id)
            .scalar()
        )
        wanted_parent = record.parent_id
        record.save(only=self.model.data_fields())

        if wanted_parent != stored_parent:
            if wanted_parent is None:
                self.make_root(record.id)
            else:
                self._ensure_exists(wanted_parent)
                self.make_last_child_of(record.id, wanted_parent)
        self._reload_structure(record)

    def _ensure_exists(self, parent_key: Any | None) -> None:
        if parent_key is not None and not self.exists(parent_key):
            raise NodeNotFoundError(parent_key, {"role": "parent"})

    def _reload_structure(self, record: Node) -> None:
        fresh = self.get(record.id)
        for name in Node.STRUCTURAL_FIELDS:
            record.__data__[name] = fresh.__data__[name]
        record.__rel__.pop("parent", None)

    def _right_edge(self) -> int:
        return self.model.select(fn.MAX(self.model.rgt)).scalar() or 0

    # -------------------------------------------------------------------------
    # Moves
    # -------------------------------------------------------------------------

    def move_to_right_of(self, key: Any, sibling_key: Any) -> None:
        self._move(key, sibling_key, _RIGHT)

    def make_last_child_of(self, key: Any, parent_key: Any) -> None:
        self._move(key, parent_key, _CHILD)

    def make_root(self, key: Any) -> None:
        self._move(key, None, _ROOT)

    def _move(self, key: Any, target_key: Any | None, position: str) -> None:
        node = self.get(key)
        target = self.get(target_key) if target_key is not None else None
        self._guard_move(node, target)

        if position == _CHILD:
            bound1 = target.rgt
            new_parent = target.id
        elif position == _RIGHT:
            bound1 = target.rgt + 1
            new_parent = target.parent_id
        else:
            bound1 = self._right_edge() + 1
            new_parent = None

        if bound1 > node.rgt:
            bound1 -= 1

        # Already in place: the node sits exactly where it would land.
        if bound1 in (node.lft, node.rgt):
            return

        bound2 = node.rgt + 1 if bound1 > node.rgt else node.lft - 1
        a, b, c, d = sorted((node.lft, node.rgt, bound1, bound2))
        model = self.model

        (
            model.update(
                {
                    model.lft: Case(
                        None,
                        (
                            (model.lft.between(a, b), model.lft + (d - b)),
                            (model.lft.between(c, d), model.lft + (a - c)),
                        ),
                        model.lft,
                    ),
                    model.rgt: Case(
                        None,
                        (
                            (model.rgt.between(a, b), model.rgt + (d - b)),
                            (model.rgt.between(c, d), model.rgt + (a - c)),
                        ),
                        model.rgt,
                    ),
                }
            )
            .where(model.lft.between(a, d) | model.rgt.between(a, d))
            .execute()
        )
        model.update({model.parent: new_parent}).where(model.id == node.id).execute()

        self._shift_depth(node.id, new_parent)
        logger.debug(
            "node_moved",
            extra={"key": node.id, "target": target_key, "position": position},
        )

    def _guard_move(self, node: Node, target: Node | None) -> None:
        if target is None:
            return
        if target.id == node.id:
            msg = f"Node {node.id!r} cannot be moved relative to itself"
            raise MoveNotPossibleError(msg, {"key": node.id})
        if node.lft < target.lft < node.rgt:
            msg = f"Node {node.id!r} cannot be moved into its own subtree"
            raise MoveNotPossibleError(msg, {"key": node.id, "target": target.id})

    def _shift_depth(self, key: Any, parent_key: Any | None) -> None:
        moved = self.get(key)
        wanted = 0 if parent_key is None else self.get(parent_key).depth + 1
        delta = wanted - moved.depth
        if delta == 0:
            return
        model = self.model
        (
            model.update({model.depth: model.depth + delta})
            .where(model.lft.between(moved.lft, moved.rgt))
            .execute()
        )

    # -------------------------------------------------------------------------
    # Queries and deletes
    # -------------------------------------------------------------------------

    def _scope_query(self, scope: Scope) -> peewee.ModelSelect:
        model = self.model
        query = model.select()
        if scope.is_whole_collection:
            return query
        anchor = self.get(scope.anchor_key)
        return query.where((model.lft > anchor.lft) & (model.rgt < anchor.rgt))

    def scope_keys(self, scope: Scope) -> set[Any]:
        return {row.id for row in self._scope_query(scope).select(self.model.id)}

    def descendants(self, anchor_key: Any) -> list[Node]:
        return list(self._scope_query(Scope(anchor_key)).order_by(self.model.lft))

    def delete_where_key_not_in(self, scope: Scope, keys: Iterable[Any]) -> int:
        keep = list(keys)
        doomed = [row.id for row in self._scope_query(scope).where(self.model.id.not_in(keep))]
        if not doomed:
            return 0
        return self.model.delete().where(self.model.id.in_(doomed)).execute()

    def get_tree(
        self,
        anchor_key: Any | None = None,
        *,
        children_key: str = DEFAULT_CHILDREN_KEY,
        key_name: str = DEFAULT_KEY_NAME,
    ) -> list[dict[str, Any]]:
        """Return the hierarchy under ``anchor_key`` (or all roots) as nested dicts."""
        rows = list(self._scope_query(Scope(anchor_key)).order_by(self.model.lft))
        by_parent: dict[Any, list[Node]] = {}
        for row in rows:
            by_parent.setdefault(row.parent_id, []).append(row)

        def build(parent_key: Any | None) -> list[dict[str, Any]]:
            branch = []
            for row in by_parent.get(parent_key, []):
                entry: dict[str, Any] = {key_name: row.id, "name": row.name}
                if row.description is not None:
                    entry["description"] = row.description
                if row.payload:
                    entry.update(row.payload)
                children = build(row.id)
                if children:
                    entry[children_key] = children
                branch.append(entry)
            return branch

        return build(anchor_key)
