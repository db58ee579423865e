"""Tests for nested-set consistency checks and rebuild."""

from __future__ import annotations

import pytest

from nestsync.db.models import Node
from nestsync.domain.exceptions import ValidationError
from nestsync.services.set_builder import rebuild
from nestsync.services.set_validator import (
    BoundRow,
    find_problems,
    is_valid_nested_set,
    validate_nested_set,
)
from tests.conftest import fetch, names_in_order


def test_valid_rows_have_no_problems():
    rows = [
        BoundRow(1, None, 1, 6, 0),
        BoundRow(2, 1, 2, 3, 1),
        BoundRow(3, 1, 4, 5, 1),
        BoundRow(4, None, 9, 10, 0),
    ]

    assert find_problems(rows) == []


@pytest.mark.parametrize(
    ("rows", "fragment"),
    [
        ([BoundRow(1, None, 4, 4, 0)], "is not below"),
        ([BoundRow(1, None, 1, 4, 0), BoundRow(2, None, 4, 5, 0)], "used twice"),
        ([BoundRow(1, None, 1, 4, 0), BoundRow(2, 1, 2, 6, 1)], "overlaps"),
        ([BoundRow(1, None, 1, 4, 0), BoundRow(2, None, 2, 3, 0)], "bounds place it under"),
        ([BoundRow(1, None, 1, 4, 0), BoundRow(2, 1, 2, 3, 3)], "depth 3, expected 1"),
    ],
)
def test_violations_are_reported(rows, fragment):
    problems = find_problems(rows)

    assert any(fragment in problem for problem in problems)


def test_stored_tree_from_mapper_is_valid(mapper):
    mapper.map([{"name": "a", "children": [{"name": "b"}]}])

    assert validate_nested_set() == []
    assert is_valid_nested_set()


def test_rebuild_repairs_corrupted_bounds(db, mapper):
    mapper.map(
        [
            {"name": "a", "children": [{"name": "a1"}, {"name": "a2"}]},
            {"name": "b"},
        ]
    )
    Node.update(lft=0, rgt=0, depth=9).execute()
    assert not is_valid_nested_set()

    count = rebuild(db.database)

    assert count == 4
    assert validate_nested_set() == []
    a = Node.get(Node.name == "a")
    assert names_in_order(a.id) == ["a1", "a2"]
    assert (a.lft, a.rgt, a.depth) == (1, 6, 0)


def test_rebuild_turns_orphans_into_roots(db, store):
    root = store.persist(Node(name="root"))
    child = store.persist(Node(name="child", parent=root.id))
    db.execute("PRAGMA foreign_keys = OFF")
    db.execute("UPDATE nodes SET parent_id = 999 WHERE id = ?", [child.id])

    rebuild(db.database)

    assert fetch(child.id).parent_id is None
    assert fetch(child.id).depth == 0
    assert validate_nested_set() == []


def test_rebuild_rejects_cycles(db, store):
    a = store.persist(Node(name="a"))
    b = store.persist(Node(name="b", parent=a.id))
    db.execute("UPDATE nodes SET parent_id = ? WHERE id = ?", [b.id, a.id])

    with pytest.raises(ValidationError):
        rebuild(db.database)
