"""
Unit tests for SyncSession.

Tests cover:
- Upsert by logical id
- Unknown type handling
- Draft overlay pass
- Reference lookup against materialized nodes
"""

import pytest

from cms.docsync.store import InMemoryNodeStore
from cms.docsync.sync.session import SyncSession, make_uid_prefix


def post(doc_id, **fields):
    return {"_id": doc_id, "_type": "post", **fields}


class TestSyncSession:
    """Tests for SyncSession."""

    @pytest.fixture
    def store(self):
        return InMemoryNodeStore(["SanityPost", "SanityAuthor"])

    @pytest.fixture
    def session(self, store):
        return SyncSession(store, overlay_drafts=True, uid_prefix="abc")

    def test_add_document_creates_node(self, session, store):
        node = session.add_document(post("p1", title="Hello"))

        assert node.id == "p1"
        assert node.uid == "abc-p1"
        assert node.type_name == "SanityPost"
        assert store.get_node_by_id("p1").document["title"] == "Hello"

    def test_add_document_upserts(self, session, store):
        session.add_document(post("p1", title="One"))
        session.add_document(post("p1", title="Two"))

        assert len(store) == 1
        assert store.get_node_by_id("p1").document["title"] == "Two"

    def test_draft_stored_under_logical_id(self, session, store):
        session.add_document(post("p1", title="Published"))
        session.add_document(post("drafts.p1", title="Draft"))

        node = store.get_node_by_id("p1")
        assert len(store) == 1
        assert node.is_draft
        assert node.document["title"] == "Draft"
        assert store.get_node_by_id("drafts.p1") is None

    def test_without_overlay_raw_id_is_kept(self, store):
        session = SyncSession(store, overlay_drafts=False)

        node = session.add_document(post("p1"))

        assert node.id == "p1"
        assert node.uid == "p1"

    def test_unknown_type_skipped(self, session, store):
        result = session.add_document({"_id": "c1", "_type": "comment"})

        assert result is None
        assert len(store) == 0
        assert session.stats["skipped_unknown_type"] == 1

    def test_type_change_moves_collection(self, session, store):
        session.add_document(post("x1"))
        session.add_document({"_id": "x1", "_type": "author", "name": "A"})

        node = store.get_node_by_id("x1")
        assert node.type_name == "SanityAuthor"
        assert store.get_collection("SanityPost").get_node_by_id("x1") is None

    def test_remove_node(self, session, store):
        node = session.add_document(post("p1"))

        session.remove_node(node)

        assert store.get_node_by_id("p1") is None

    def test_get_current_by_draft_id(self, session):
        session.add_document(post("p1"))

        assert session.get_current("drafts.p1").id == "p1"
        assert session.get_current("p1").id == "p1"

    def test_overlay_pending_drafts(self, session, store):
        session.add_document(post("p1", title="Published"))
        session.drafts.extend([post("drafts.p1", title="Draft"), post("drafts.p2", title="New")])

        count = session.overlay_pending_drafts()

        assert count == 2
        assert store.get_node_by_id("p1").document["title"] == "Draft"
        assert store.get_node_by_id("p2").is_draft

    def test_lookup_strips_draft_prefix(self, session):
        session.add_document(post("drafts.p1", title="Draft"))

        assert session.lookup("drafts.p1")["title"] == "Draft"
        assert session.lookup("p1")["id"] == "p1"
        assert session.lookup("missing") is None

    def test_resolve_references(self, session):
        session.add_document({"_id": "a1", "_type": "author", "name": "Ada"})
        doc = post("p1", author={"_ref": "a1"}, editor={"_ref": "ghost"})

        result = session.resolve_references(doc, max_depth=2)

        assert result["author"]["name"] == "Ada"
        assert result["editor"] == {"_ref": "ghost"}

    def test_resolve_reference_single_level(self, session):
        session.add_document({"_id": "a1", "_type": "author", "name": "Ada", "org": {"_ref": "o1"}})

        author = session.resolve_reference({"_ref": "a1"})

        assert author["name"] == "Ada"
        assert author["org"] == {"_ref": "o1"}
        assert session.resolve_reference({"_ref": "ghost"}) is None
        assert session.resolve_reference("plain") == "plain"


class TestUidPrefix:
    """Tests for make_uid_prefix."""

    def test_stable_and_alphanumeric(self):
        prefix = make_uid_prefix("proj", "production", "secret")

        assert prefix == make_uid_prefix("proj", "production", "secret")
        assert len(prefix) == 10
        assert prefix.isalnum()

    def test_differs_per_dataset(self):
        assert make_uid_prefix("proj", "production") != make_uid_prefix("proj", "staging")
