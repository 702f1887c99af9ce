"""
Draft classification for documents.

Drafts share their logical id with the published document and carry a
fixed "drafts." prefix on the raw id. Everything in docsync that needs to
tell drafts from published documents goes through this module.

Invariants:
    - The prefix is byte-exact; "drafts." and nothing else
    - prefix_id/unprefix_id are idempotent
    - Stream filters process records strictly in order
    - extract_drafts never forwards a draft downstream
"""

from __future__ import annotations

from typing import Any, AsyncIterable, AsyncIterator, Dict, List, Mapping

DRAFTS_PREFIX = "drafts."


def is_draft_id(doc_id: str) -> bool:
    return doc_id.startswith(DRAFTS_PREFIX)


def is_draft(doc: Mapping[str, Any] | None) -> bool:
    """Whether a document's raw id is draft-prefixed."""
    if not doc:
        return False
    doc_id = doc.get("_id")
    return isinstance(doc_id, str) and is_draft_id(doc_id)


def prefix_id(doc_id: str) -> str:
    return doc_id if is_draft_id(doc_id) else f"{DRAFTS_PREFIX}{doc_id}"


def unprefix_id(doc_id: str) -> str:
    return doc_id[len(DRAFTS_PREFIX):] if is_draft_id(doc_id) else doc_id


async def remove_drafts(
    records: AsyncIterable[Dict[str, Any]],
) -> AsyncIterator[Dict[str, Any]]:
    """Pass through only published documents."""
    async for doc in records:
        if not is_draft(doc):
            yield doc


async def extract_drafts(
    records: AsyncIterable[Dict[str, Any]],
    drafts: List[Dict[str, Any]],
    published: Dict[str, Dict[str, Any]],
) -> AsyncIterator[Dict[str, Any]]:
    """Partition a document stream into drafts and published documents.

    Drafts are appended to ``drafts`` and dropped from the stream.
    Published documents are recorded in ``published`` (keyed by logical id)
    and forwarded.

    Args:
        records: Incoming documents, in stream order
        drafts: Sink for draft documents
        published: Map of logical id to published document

    Yields:
        Published documents, in stream order
    """
    async for doc in records:
        if is_draft(doc):
            drafts.append(doc)
            continue

        published[unprefix_id(doc["_id"])] = doc
        yield doc
