"""
Sync session: overlay state and materialization for one source.

The SyncSession owns the overlay store (pending drafts and the cache of
published bodies) and is the only path through which documents reach the
node store. Both the bulk pipeline and the listener are handed the same
session.

Invariants:
    - drafts/published are mutated only by this session's pipeline and listener
    - Nodes are upserted under the logical id when overlay mode is active
    - Documents of undeclared types are skipped, never raised
    - In non-overlay mode the published cache stays empty

How to change safely:
    - Keep upsert semantics (replaying a stream must be idempotent)
    - Route every store mutation through add_document/remove_node
"""

from __future__ import annotations

import base64
import hashlib
import logging
from typing import Any, Dict, List, Optional

from ..drafts import unprefix_id
from ..resolve import maybe_resolve_reference, resolve_references
from ..store.base import Node, NodeCollection, NodeStore
from ..typenames import make_type_name

logger = logging.getLogger(__name__)


def make_uid_prefix(project_id: str, dataset: str, token: str = "") -> str:
    """Short alphanumeric digest identifying a project/dataset/token triple."""
    digest = hashlib.sha1("-".join([project_id, dataset, token]).encode("utf-8")).digest()
    encoded = base64.b64encode(digest).decode("ascii")
    return "".join(ch for ch in encoded if ch.isalnum())[:10]


class SyncSession:
    """State shared by the bulk pipeline and the live listener.

    Attributes:
        store: Host node store
        overlay_drafts: Whether drafts shadow published documents
        type_prefix: Prefix for collection type names
        uid_prefix: Prefix for node uids
        drafts: Drafts accumulated during the bulk load
        published: Logical id -> last known published document

    Example:
        >>> session = SyncSession(store, overlay_drafts=True)
        >>> session.add_document({"_id": "drafts.x", "_type": "post"})
        >>> session.get_current("x").source_id
        'drafts.x'
    """

    def __init__(
        self,
        store: NodeStore,
        overlay_drafts: bool = False,
        type_prefix: str = "Sanity",
        uid_prefix: str = "",
    ) -> None:
        self.store = store
        self.overlay_drafts = overlay_drafts
        self.type_prefix = type_prefix
        self.uid_prefix = uid_prefix

        self.drafts: List[Dict[str, Any]] = []
        self.published: Dict[str, Dict[str, Any]] = {}

        self._skipped_unknown_type = 0

    def logical_id(self, doc_id: str) -> str:
        return unprefix_id(doc_id) if self.overlay_drafts else doc_id

    def get_uid(self, node_id: str) -> str:
        return f"{self.uid_prefix}-{node_id}" if self.uid_prefix else node_id

    def get_collection_for_type(self, type_tag: str) -> Optional[NodeCollection]:
        return self.store.get_collection(make_type_name(self.type_prefix, type_tag))

    def get_current(self, doc_id: str) -> Optional[Node]:
        """Node currently materialized for the logical id of ``doc_id``."""
        return self.store.get_node_by_id(unprefix_id(doc_id))

    def add_document(self, doc: Dict[str, Any]) -> Optional[Node]:
        """Upsert a document as the materialized node for its logical id.

        Args:
            doc: Document with "_id" and "_type"

        Returns:
            The materialized node, or None if the type is undeclared
        """
        doc_id = doc["_id"]
        type_tag = doc["_type"]
        collection = self.get_collection_for_type(type_tag)

        if collection is None:
            self._skipped_unknown_type += 1
            logger.warning(
                "Document type is not declared as a collection, skipping document",
                extra={"document_id": doc_id, "type": type_tag},
            )
            return None

        node_id = self.logical_id(doc_id)
        node = Node(
            id=node_id,
            uid=self.get_uid(node_id),
            type_name=collection.type_name,
            document=doc,
        )

        existing = self.store.get_node_by_id(node_id)
        if existing is not None and existing.type_name != collection.type_name:
            # The document changed type; move it between collections
            self.remove_node(existing)
            existing = None

        if existing is not None:
            collection.update_node(node)
        else:
            collection.add_node(node)
        return node

    def remove_node(self, node: Node) -> None:
        collection = self.store.get_collection(node.type_name)
        if collection is None:
            logger.warning(
                "Collection for node is gone, cannot remove",
                extra={"node_id": node.id, "type_name": node.type_name},
            )
            return
        collection.remove_node(node.id)

    def overlay_pending_drafts(self) -> int:
        """Materialize all drafts collected during the bulk load.

        Returns:
            Number of drafts materialized
        """
        count = 0
        for draft in self.drafts:
            if self.add_document(draft) is not None:
                count += 1
        return count

    def lookup(self, ref_id: str) -> Optional[Dict[str, Any]]:
        """Resolve a referenced id to the current document tree, if any."""
        node = self.store.get_node_by_id(self.logical_id(ref_id))
        return node.to_dict() if node else None

    def resolve_references(self, value: Any, max_depth: int) -> Any:
        """Resolve references in ``value`` against materialized nodes."""
        return resolve_references(value, 0, max_depth, self.lookup)

    def resolve_reference(self, item: Any) -> Any:
        """Follow ``item`` one level if it is a reference, else return it."""
        return maybe_resolve_reference(item, self.lookup)

    @property
    def stats(self) -> Dict[str, Any]:
        return {
            "overlay_drafts": self.overlay_drafts,
            "pending_drafts": len(self.drafts),
            "published_cached": len(self.published),
            "skipped_unknown_type": self._skipped_unknown_type,
        }
