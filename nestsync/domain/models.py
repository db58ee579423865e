"""Input and output shapes of a tree synchronization.

A ``DesiredNode`` is what the caller wants the tree to look like. A
``FlatRecord`` is one row of precomputed nested-set coordinates. Neither
knows anything about storage.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from .exceptions import ValidationError

DEFAULT_KEY_NAME = "id"
DEFAULT_CHILDREN_KEY = "children"


@dataclass(frozen=True)
class DesiredNode:
    """One entry of the desired forest.

    Attributes:
        identity: Key of an existing record, or None to create a new one.
        data: Domain fields to merge into the record.
        children: Ordered child entries.
    """

    identity: Any | None = None
    data: Mapping[str, Any] = field(default_factory=dict)
    children: tuple[DesiredNode, ...] = ()

    @classmethod
    def from_mapping(
        cls,
        raw: Mapping[str, Any] | DesiredNode,
        *,
        key_name: str = DEFAULT_KEY_NAME,
        children_key: str = DEFAULT_CHILDREN_KEY,
    ) -> DesiredNode:
        """Build a node from a plain nested mapping."""
        if isinstance(raw, DesiredNode):
            return raw
        if not isinstance(raw, Mapping):
            msg = f"Tree entries must be mappings, got {type(raw).__name__}"
            raise ValidationError(msg, {"entry_type": type(raw).__name__})

        raw_children = raw.get(children_key)
        if raw_children is None:
            raw_children = ()
        elif isinstance(raw_children, str | bytes) or not isinstance(raw_children, Iterable):
            msg = f"'{children_key}' must be a sequence of entries"
            raise ValidationError(msg, {"identity": raw.get(key_name)})

        data = {k: v for k, v in raw.items() if k not in (key_name, children_key)}
        children = tuple(
            cls.from_mapping(child, key_name=key_name, children_key=children_key)
            for child in raw_children
        )
        return cls(identity=raw.get(key_name), data=data, children=children)

    @property
    def has_identity(self) -> bool:
        return self.identity is not None

    def walk(self) -> Iterator[DesiredNode]:
        """Yield this node and its descendants in pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()


def parse_forest(
    forest: Iterable[Mapping[str, Any] | DesiredNode] | None,
    *,
    key_name: str = DEFAULT_KEY_NAME,
    children_key: str = DEFAULT_CHILDREN_KEY,
) -> tuple[DesiredNode, ...]:
    """Parse a forest and reject repeated identity keys."""
    if forest is None:
        return ()
    if isinstance(forest, Mapping):
        msg = "A forest must be a sequence of entries, not a single mapping"
        raise ValidationError(msg)

    nodes = tuple(
        DesiredNode.from_mapping(entry, key_name=key_name, children_key=children_key)
        for entry in forest
    )

    seen: set[Any] = set()
    for node in iter_forest(nodes):
        if not node.has_identity:
            continue
        if node.identity in seen:
            msg = f"Identity {node.identity!r} appears more than once in the forest"
            raise ValidationError(msg, {"identity": node.identity})
        seen.add(node.identity)
    return nodes


def iter_forest(forest: Iterable[DesiredNode]) -> Iterator[DesiredNode]:
    for node in forest:
        yield from node.walk()


@dataclass(frozen=True)
class FlatRecord:
    """Precomputed nested-set coordinates for one existing record."""

    key: Any
    parent_key: Any | None
    depth: int
    lft: int
    rgt: int

    def as_fields(self) -> dict[str, Any]:
        return {"parent": self.parent_key, "depth": self.depth, "lft": self.lft, "rgt": self.rgt}


@dataclass(frozen=True)
class Scope:
    """Records eligible for pruning: an anchor's descendants, or everything."""

    anchor_key: Any | None = None

    @property
    def is_whole_collection(self) -> bool:
        return self.anchor_key is None
