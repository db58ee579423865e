"""Tests for bound computation from a desired forest."""

from __future__ import annotations

import itertools

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from nestsync.domain.exceptions import ValidationError
from nestsync.domain.models import DesiredNode, parse_forest
from nestsync.services.bound_flattener import flatten, flatten_with_next_bound
from nestsync.services.set_validator import BoundRow, find_problems


def _coords(records):
    return {r.key: (r.parent_key, r.depth, r.lft, r.rgt) for r in records}


def test_flatten_assigns_preorder_bounds():
    forest = parse_forest(
        [
            {"id": 1, "children": [{"id": 2}, {"id": 3, "children": [{"id": 4}]}]},
            {"id": 5},
        ]
    )

    records = flatten(forest)

    assert [r.key for r in records] == [1, 2, 3, 4, 5]
    assert _coords(records) == {
        1: (None, 0, 1, 8),
        2: (1, 1, 2, 3),
        3: (1, 1, 4, 7),
        4: (3, 2, 5, 6),
        5: (None, 0, 9, 10),
    }


def test_flatten_under_parent_offsets_everything():
    forest = parse_forest([{"id": "a"}, {"id": "b", "children": [{"id": "c"}]}])

    records, next_bound = flatten_with_next_bound(forest, "root", 3, 10)

    assert _coords(records) == {
        "a": ("root", 3, 10, 11),
        "b": ("root", 3, 12, 15),
        "c": ("b", 4, 13, 14),
    }
    assert next_bound == 16


def test_empty_forest_flattens_to_nothing():
    assert flatten(()) == []
    assert flatten_with_next_bound((), None, 0, 7) == ([], 7)


def test_missing_identity_is_rejected():
    forest = parse_forest([{"id": 1, "children": [{"name": "new"}]}])

    with pytest.raises(ValidationError):
        flatten(forest)


def test_negative_depth_is_rejected():
    with pytest.raises(ValidationError):
        flatten(parse_forest([{"id": 1}]), depth=-1)


def test_flat_record_fields_use_column_names():
    (record,) = flatten(parse_forest([{"id": 9}]), parent_key=4, depth=1, start=3)

    assert record.as_fields() == {"parent": 4, "depth": 1, "lft": 3, "rgt": 4}


# A shape is the list of its children's shapes.
shapes = st.recursive(st.just([]), lambda inner: st.lists(inner, max_size=4), max_leaves=25)
forests = st.lists(shapes, max_size=5)


def _build(forest_shape):
    ids = itertools.count(1)

    def node(shape):
        key = next(ids)
        return DesiredNode(identity=key, children=tuple(node(child) for child in shape))

    return tuple(node(shape) for shape in forest_shape)


def _size(node):
    return 1 + sum(_size(child) for child in node.children)


@settings(max_examples=75, deadline=None)
@given(forests)
def test_flattened_forest_is_a_valid_nested_set(forest_shape):
    forest = _build(forest_shape)
    records = flatten(forest)
    sizes = {n.identity: _size(n) for root in forest for n in root.walk()}

    assert len(records) == len(sizes)
    assert find_problems(
        BoundRow(r.key, r.parent_key, r.lft, r.rgt, r.depth) for r in records
    ) == []
    bounds = sorted(b for r in records for b in (r.lft, r.rgt))
    assert bounds == list(range(1, 2 * len(records) + 1))
    for record in records:
        assert record.rgt - record.lft + 1 == 2 * sizes[record.key]
