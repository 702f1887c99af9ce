"""
In-memory node store implementation for testing.

This module provides a simple in-memory NodeStore for:
- Unit tests
- Integration tests
- Local development without a host application

Invariants:
    - All data is lost on process exit
    - A logical id lives in at most one collection
    - add_node on an existing id and update_node on a missing id raise

How to change safely:
    - Keep interface compatible with the NodeStore protocol
    - Add features to help with testing scenarios
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from .base import Node

logger = logging.getLogger(__name__)


class InMemoryCollection:
    """Dictionary-backed collection of nodes for a single type."""

    def __init__(self, type_name: str, index: Dict[str, "InMemoryCollection"]) -> None:
        self.type_name = type_name
        self._nodes: Dict[str, Node] = {}
        self._index = index

    def get_node_by_id(self, node_id: str) -> Optional[Node]:
        return self._nodes.get(node_id)

    def add_node(self, node: Node) -> None:
        if node.id in self._index:
            raise KeyError(f"Node '{node.id}' already exists in {self._index[node.id].type_name}")
        self._nodes[node.id] = node
        self._index[node.id] = self
        logger.debug("Node added", extra={"type_name": self.type_name, "node_id": node.id})

    def update_node(self, node: Node) -> None:
        if node.id not in self._nodes:
            raise KeyError(f"Node '{node.id}' does not exist in {self.type_name}")
        self._nodes[node.id] = node
        logger.debug("Node updated", extra={"type_name": self.type_name, "node_id": node.id})

    def remove_node(self, node_id: str) -> None:
        if self._nodes.pop(node_id, None) is not None:
            self._index.pop(node_id, None)
            logger.debug("Node removed", extra={"type_name": self.type_name, "node_id": node_id})

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self):
        return iter(list(self._nodes.values()))


class InMemoryNodeStore:
    """In-memory implementation of NodeStore.

    Attributes:
        auto_collections: Create a collection on first lookup of an
            undeclared type instead of reporting it as unknown

    Example:
        >>> store = InMemoryNodeStore(["SanityPost"])
        >>> store.get_collection("SanityPost").add_node(node)
        >>> store.get_node_by_id(node.id)
    """

    def __init__(
        self,
        type_names: Iterable[str] = (),
        auto_collections: bool = False,
    ) -> None:
        self.auto_collections = auto_collections
        self._index: Dict[str, InMemoryCollection] = {}
        self._collections: Dict[str, InMemoryCollection] = {}
        for type_name in type_names:
            self.add_collection(type_name)

    def add_collection(self, type_name: str) -> InMemoryCollection:
        """Declare a collection (no-op if it already exists)."""
        if type_name not in self._collections:
            self._collections[type_name] = InMemoryCollection(type_name, self._index)
        return self._collections[type_name]

    def get_collection(self, type_name: str) -> Optional[InMemoryCollection]:
        collection = self._collections.get(type_name)
        if collection is None and self.auto_collections:
            collection = self.add_collection(type_name)
        return collection

    def get_node_by_id(self, node_id: str) -> Optional[Node]:
        collection = self._index.get(node_id)
        return collection.get_node_by_id(node_id) if collection else None

    # Testing helpers

    @property
    def type_names(self) -> List[str]:
        return sorted(self._collections)

    def all_nodes(self) -> List[Node]:
        """All nodes across collections, ordered by id."""
        nodes = [node for c in self._collections.values() for node in c]
        return sorted(nodes, key=lambda n: n.id)

    def snapshot(self) -> Dict[str, Dict]:
        """Map of logical id to node document (testing helper)."""
        return {node.id: node.document for node in self.all_nodes()}

    def __len__(self) -> int:
        return len(self._index)
