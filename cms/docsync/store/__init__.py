"""
Node store abstraction for docsync.

This module provides the collaborator interface that materialized nodes
are written through:
- NodeStore / NodeCollection protocols implemented by the host
- Node, the materialized document record
- In-memory implementation (for testing and local runs)

Invariants:
    - docsync only issues add/update/remove intents; the host owns storage
    - Nodes are keyed by logical id
"""

from .base import Node, NodeCollection, NodeStore
from .memory import InMemoryCollection, InMemoryNodeStore

__all__ = [
    # Protocol and types
    "Node",
    "NodeCollection",
    "NodeStore",
    # Implementations
    "InMemoryCollection",
    "InMemoryNodeStore",
]
