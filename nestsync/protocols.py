"""Protocol definitions for the storage capabilities the tree core depends on.

The synchronizer, pruner and batch updater only see these contracts, so the
concrete store (and its connection) is always injected.
"""

from collections.abc import Iterable
from typing import Any, Protocol

from nestsync.db.models import Node
from nestsync.domain.models import Scope


class NodeStore(Protocol):
    """Protocol for nested-set storage primitives."""

    def lookup_or_create(self, identity: Any | None) -> Node:
        """Return the record with this key, or a new unsaved one.

        An empty identity skips the lookup entirely.
        """
        ...

    def get(self, key: Any) -> Node:
        """Fetch a record by key.

        Raises:
            NodeNotFoundError: If no record has this key.

        """
        ...

    def exists(self, key: Any) -> bool:
        """Return whether a record with this key is stored."""
        ...

    def persist(self, record: Node) -> Node:
        """Create or update a record.

        Raises:
            PersistenceError: If storage rejects the write.

        """
        ...

    def move_to_right_of(self, key: Any, sibling_key: Any) -> None:
        """Move a subtree so it immediately follows a sibling."""
        ...

    def make_last_child_of(self, key: Any, parent_key: Any) -> None:
        """Move a subtree so it becomes the last child of a parent."""
        ...

    def make_root(self, key: Any) -> None:
        """Move a subtree to the end of the root level."""
        ...

    def scope_keys(self, scope: Scope) -> set[Any]:
        """Return the keys of every record in scope."""
        ...

    def descendants(self, anchor_key: Any) -> list[Node]:
        """Return all records strictly inside the anchor's bounds."""
        ...

    def delete_where_key_not_in(self, scope: Scope, keys: Iterable[Any]) -> int:
        """Delete records in scope whose key is not listed. Returns the count."""
        ...

    def get_tree(
        self,
        anchor_key: Any | None = None,
        *,
        children_key: str = "children",
        key_name: str = "id",
    ) -> list[dict[str, Any]]:
        """Return the stored hierarchy as nested dictionaries."""
        ...
