"""
Base protocol and types for the node store collaborator.

docsync never owns storage of materialized nodes. It issues add, update,
and remove intents against a host-provided NodeStore, grouped into one
collection per document type.

Invariants:
    - Nodes are keyed by logical id (draft prefix stripped in overlay mode)
    - A node keeps the raw document body, including the raw "_id"
    - get_node_by_id on the store searches every collection

How to change safely:
    - Protocol changes require updating all implementations
    - Keep Node.document the unmodified body received from upstream
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from ..drafts import is_draft_id


@dataclass
class Node:
    """A materialized document.

    Attributes:
        id: Logical id the node is stored under
        uid: Globally unique id ("{uid_prefix}-{id}")
        type_name: Name of the collection holding the node
        document: Document body as received, raw "_id" included
    """

    id: str
    uid: str
    type_name: str
    document: Dict[str, Any]

    @property
    def source_id(self) -> str:
        """Raw id of the document currently materialized."""
        return self.document.get("_id", self.id)

    @property
    def type_tag(self) -> str:
        return self.document.get("_type", "")

    @property
    def is_draft(self) -> bool:
        return is_draft_id(self.source_id)

    def to_dict(self) -> Dict[str, Any]:
        """Document body as seen by readers, keyed by the logical id."""
        return {**self.document, "id": self.id}


@runtime_checkable
class NodeCollection(Protocol):
    """One collection of nodes sharing a document type."""

    type_name: str

    @abstractmethod
    def get_node_by_id(self, node_id: str) -> Optional[Node]:
        ...

    @abstractmethod
    def add_node(self, node: Node) -> None:
        ...

    @abstractmethod
    def update_node(self, node: Node) -> None:
        ...

    @abstractmethod
    def remove_node(self, node_id: str) -> None:
        ...


@runtime_checkable
class NodeStore(Protocol):
    """Host store owning all collections of materialized nodes."""

    @abstractmethod
    def get_collection(self, type_name: str) -> Optional[NodeCollection]:
        """Collection declared for ``type_name``, or None if undeclared."""
        ...

    @abstractmethod
    def get_node_by_id(self, node_id: str) -> Optional[Node]:
        """Node stored under ``node_id`` in any collection."""
        ...
