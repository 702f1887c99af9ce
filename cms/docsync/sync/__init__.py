"""
Sync module for docsync - bulk ingestion and live reconciliation.

This module handles:
- The sync session owning the draft overlay state
- The streaming bulk ingestion pipeline
- Event feeds and the live listener state machine

Invariants:
    - Pipeline and listener share one SyncSession
    - The listener starts only after the bulk load completes
    - Events are applied one at a time, in order
"""

from .events import ListenerEvent
from .feed import EventFeed, HttpEventFeed, InMemoryEventFeed
from .listener import EventState, Listener, ListenerAction, decide_action
from .pipeline import IngestionPipeline, IngestResult
from .session import SyncSession, make_uid_prefix

__all__ = [
    "SyncSession",
    "make_uid_prefix",
    "IngestionPipeline",
    "IngestResult",
    "ListenerEvent",
    "EventFeed",
    "HttpEventFeed",
    "InMemoryEventFeed",
    "Listener",
    "ListenerAction",
    "EventState",
    "decide_action",
]
