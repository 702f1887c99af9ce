"""
Unit tests for draft classification.

Tests cover:
- Draft id detection and prefix conversions
- remove_drafts stream filter
- extract_drafts partitioning
"""

import pytest

from cms.docsync.drafts import (
    DRAFTS_PREFIX,
    extract_drafts,
    is_draft,
    is_draft_id,
    prefix_id,
    remove_drafts,
    unprefix_id,
)


async def _stream(docs):
    for doc in docs:
        yield doc


async def _collect(stream):
    return [doc async for doc in stream]


class TestDraftIds:
    """Tests for id helpers."""

    def test_prefix_is_byte_exact(self):
        assert DRAFTS_PREFIX == "drafts."
        assert is_draft_id("drafts.abc")
        assert not is_draft_id("drafts-abc")
        assert not is_draft_id("Drafts.abc")
        assert not is_draft_id("abc.drafts.x")

    def test_is_draft_document(self):
        assert is_draft({"_id": "drafts.abc", "_type": "post"})
        assert not is_draft({"_id": "abc", "_type": "post"})
        assert not is_draft({"_type": "post"})
        assert not is_draft(None)

    def test_prefix_id_idempotent(self):
        assert prefix_id("abc") == "drafts.abc"
        assert prefix_id("drafts.abc") == "drafts.abc"

    def test_unprefix_id_idempotent(self):
        assert unprefix_id("drafts.abc") == "abc"
        assert unprefix_id("abc") == "abc"

    def test_unprefix_strips_only_leading_prefix(self):
        assert unprefix_id("drafts.drafts.abc") == "drafts.abc"
        assert unprefix_id("abc.drafts.") == "abc.drafts."

    def test_prefix_unprefix_inverse(self):
        for doc_id in ("abc", "a.b.c", "drafts.abc"):
            assert prefix_id(unprefix_id(doc_id)) == prefix_id(doc_id)
            assert unprefix_id(prefix_id(doc_id)) == unprefix_id(doc_id)


class TestRemoveDrafts:
    """Tests for remove_drafts."""

    @pytest.mark.asyncio
    async def test_passes_only_published(self):
        docs = [
            {"_id": "drafts.a", "_type": "post"},
            {"_id": "a", "_type": "post"},
            {"_id": "b", "_type": "post"},
            {"_id": "drafts.c", "_type": "post"},
        ]

        result = await _collect(remove_drafts(_stream(docs)))

        assert [d["_id"] for d in result] == ["a", "b"]


class TestExtractDrafts:
    """Tests for extract_drafts."""

    @pytest.mark.asyncio
    async def test_partitions_in_order(self):
        docs = [
            {"_id": "drafts.a", "_type": "post", "v": 1},
            {"_id": "a", "_type": "post"},
            {"_id": "drafts.b", "_type": "post"},
            {"_id": "c", "_type": "post"},
        ]
        drafts = []
        published = {}

        forwarded = await _collect(extract_drafts(_stream(docs), drafts, published))

        assert [d["_id"] for d in forwarded] == ["a", "c"]
        assert [d["_id"] for d in drafts] == ["drafts.a", "drafts.b"]
        assert set(published) == {"a", "c"}
        assert published["a"] is docs[1]

    @pytest.mark.asyncio
    async def test_never_forwards_drafts(self):
        docs = [{"_id": f"drafts.{i}", "_type": "post"} for i in range(5)]
        drafts = []

        forwarded = await _collect(extract_drafts(_stream(docs), drafts, {}))

        assert forwarded == []
        assert len(drafts) == 5

    @pytest.mark.asyncio
    async def test_sinks_filled_as_stream_is_consumed(self):
        """Partitioning happens lazily, one record at a time."""
        docs = [
            {"_id": "drafts.a", "_type": "post"},
            {"_id": "a", "_type": "post"},
            {"_id": "drafts.b", "_type": "post"},
            {"_id": "b", "_type": "post"},
        ]
        drafts = []
        published = {}
        stream = extract_drafts(_stream(docs), drafts, published)

        first = await stream.__anext__()

        assert first["_id"] == "a"
        assert len(drafts) == 1
        assert set(published) == {"a"}
        await stream.aclose()
