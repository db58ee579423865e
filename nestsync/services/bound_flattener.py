"""Counter-based computation of nested-set bounds.

``flatten`` turns a desired forest into one ``FlatRecord`` per node, in
pre-order, without touching storage. The bound counter is threaded through
the recursion explicitly: each call returns the next free bound.

Bounds follow the same convention as the node store: a leaf spans
``(lft, lft + 1)`` and a parent's ``rgt`` is one past its last child's ``rgt``.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from nestsync.domain.exceptions import ValidationError
from nestsync.domain.models import DesiredNode, FlatRecord


def flatten(
    forest: Sequence[DesiredNode],
    parent_key: Any | None = None,
    depth: int = 0,
    start: int = 1,
) -> list[FlatRecord]:
    """Compute ``{key, parent_key, depth, lft, rgt}`` for every node of ``forest``."""
    records, _ = flatten_with_next_bound(forest, parent_key, depth, start)
    return records


def flatten_with_next_bound(
    forest: Sequence[DesiredNode],
    parent_key: Any | None,
    depth: int,
    counter: int,
) -> tuple[list[FlatRecord], int]:
    """Like ``flatten`` but also return the first bound left unused."""
    if depth < 0:
        msg = "Depth must be non-negative"
        raise ValidationError(msg, {"depth": depth})

    records: list[FlatRecord] = []
    for node in forest:
        if not node.has_identity:
            msg = "Every node needs an identity to compute bounds for an update"
            raise ValidationError(msg, {"parent_key": parent_key, "depth": depth})

        lft = counter
        counter += 1
        subtree: list[FlatRecord] = []
        if node.children:
            subtree, counter = flatten_with_next_bound(
                node.children, node.identity, depth + 1, counter
            )
        rgt = counter
        counter += 1

        records.append(
            FlatRecord(key=node.identity, parent_key=parent_key, depth=depth, lft=lft, rgt=rgt)
        )
        records.extend(subtree)
    return records, counter
