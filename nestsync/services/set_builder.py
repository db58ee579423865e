"""Rebuild of nested-set bounds from parent links."""

from __future__ import annotations

import logging
from typing import Any

import peewee

from nestsync.db.models import Node
from nestsync.domain.exceptions import ValidationError

logger = logging.getLogger(__name__)


def rebuild(database: peewee.Database, model: type[Node] = Node) -> int:
    """Recompute ``lft``, ``rgt`` and ``depth`` for every row of ``model``.

    Siblings keep their current order (by ``lft``, then key). Rows whose
    parent is missing are treated as roots. Returns the number of rows written.

    Raises:
        ValidationError: If parent links form a cycle.
    """
    nodes = list(model.select().order_by(model.lft, model.id))
    known = {node.id for node in nodes}
    children: dict[Any, list[Node]] = {}
    for node in nodes:
        parent_key = node.parent_id if node.parent_id in known else None
        children.setdefault(parent_key, []).append(node)

    assigned: dict[Any, tuple[int, int, int, Any]] = {}
    counter = 1
    # Iterative pre-order walk; each stack entry is (node, depth, entered).
    stack: list[tuple[Node, int, bool]] = [
        (root, 0, False) for root in reversed(children.get(None, []))
    ]
    lefts: dict[Any, int] = {}
    while stack:
        node, depth, entered = stack.pop()
        if entered:
            parent_key = node.parent_id if node.parent_id in known else None
            assigned[node.id] = (lefts[node.id], counter, depth, parent_key)
            counter += 1
            continue
        lefts[node.id] = counter
        counter += 1
        stack.append((node, depth, True))
        for child in reversed(children.get(node.id, [])):
            stack.append((child, depth + 1, False))

    unreachable = known - assigned.keys()
    if unreachable:
        msg = "Parent links form a cycle"
        raise ValidationError(msg, {"keys": sorted(unreachable)})

    with database.atomic():
        for key, (lft, rgt, depth, parent_key) in assigned.items():
            (
                model.update(
                    {model.lft: lft, model.rgt: rgt, model.depth: depth, model.parent: parent_key}
                )
                .where(model.id == key)
                .execute()
            )

    logger.info("nested_set_rebuilt", extra={"count": len(assigned)})
    return len(assigned)
