"""Consistency checks for a stored nested set."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from nestsync.db.models import Node

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundRow:
    key: Any
    parent_key: Any | None
    lft: int
    rgt: int
    depth: int

    @classmethod
    def from_node(cls, node: Node) -> BoundRow:
        return cls(node.id, node.parent_id, node.lft, node.rgt, node.depth)


def find_problems(rows: Iterable[BoundRow]) -> list[str]:
    """Return a description of every nested-set violation in ``rows``.

    Rows are swept in ``lft`` order with a stack of open intervals; the top of
    the stack when a row starts must be its parent, and the stack height is
    its depth.
    """
    ordered = sorted(rows, key=lambda r: (r.lft, r.rgt))
    problems: list[str] = []

    seen_bounds: set[int] = set()
    for row in ordered:
        if row.lft >= row.rgt:
            problems.append(f"node {row.key}: lft {row.lft} is not below rgt {row.rgt}")
        for bound in (row.lft, row.rgt):
            if bound in seen_bounds:
                problems.append(f"node {row.key}: bound {bound} is used twice")
            seen_bounds.add(bound)

    stack: list[BoundRow] = []
    for row in ordered:
        while stack and stack[-1].rgt < row.lft:
            stack.pop()
        container = stack[-1] if stack else None

        if container is not None and row.rgt > container.rgt:
            problems.append(f"node {row.key}: overlaps node {container.key} without nesting")
        expected_parent = container.key if container is not None else None
        if row.parent_key != expected_parent:
            problems.append(
                f"node {row.key}: parent is {row.parent_key} but bounds place it under "
                f"{expected_parent}"
            )
        if row.depth != len(stack):
            problems.append(f"node {row.key}: depth {row.depth}, expected {len(stack)}")
        stack.append(row)

    return problems


def validate_nested_set(model: type[Node] = Node) -> list[str]:
    """Check every stored row of ``model`` and return the problems found."""
    rows = [BoundRow.from_node(node) for node in model.select().order_by(model.lft)]
    problems = find_problems(rows)
    if problems:
        logger.warning(
            "nested_set_invalid",
            extra={"problems": len(problems), "first_problem": problems[0]},
        )
    return problems


def is_valid_nested_set(model: type[Node] = Node) -> bool:
    return not validate_nested_set(model)
