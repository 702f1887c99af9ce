"""
docsync - materialized draft/published document views for a content platform.

This package keeps a local collection of "current" documents in sync with a
remote content platform. It is built on:
- A bulk export stream (newline-delimited JSON) for the initial load
- A live change-event feed for incremental updates
- A draft overlay that lets drafts shadow their published counterparts
- A node store collaborator that owns the materialized nodes

Architecture:
    ┌──────────────┐     ┌──────────────┐     ┌─────────────────┐
    │ Export stream│────▶│  Ingestion   │────▶│   Node store    │
    │  (NDJSON)    │     │  pipeline    │     │ (materialized)  │
    └──────────────┘     └──────┬───────┘     └────────▲────────┘
                                │                      │
                                ▼                      │
                         ┌──────────────┐     ┌────────┴────────┐
                         │ SyncSession  │◀───▶│    Listener     │
                         │ (overlay)    │     │ (event feed)    │
                         └──────────────┘     └─────────────────┘

Invariants:
    - At most one of a draft/published pair is materialized per logical id
    - System documents (ids starting with "_.") are never materialized
    - The listener starts only after the bulk load has completed
    - Events are applied one at a time, in feed order

How to change safely:
    - The draft prefix is load-bearing everywhere; never change it
    - Add listener rows to the decision table, not to the dispatcher
    - Replay a bulk stream twice in tests when touching upsert logic
"""

from ._version import __version__

__all__ = ["__version__"]
