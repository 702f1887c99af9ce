"""
Live change-event listener.

The Listener consumes change events from an EventFeed after the bulk
load has completed and reconciles each one against the materialized
view. Reconciliation is split in two:
- decide_action(): a pure decision table over the event and the current
  state, returning a ListenerAction
- Listener.apply_action(): performs the store/cache mutation for an action

Decision table (overlay mode, first matching row wins):

    event          touched    current          published cache  action
    disappear      draft      -                yes              RESTORE_PUBLISHED
    disappear      draft      exists           no               REMOVE
    disappear      published  draft            yes              EVICT_PUBLISHED
    disappear      published  non-draft        -                REMOVE_AND_EVICT
    create/update  draft      any              -                UPSERT_DRAFT
    create/update  published  draft            -                CACHE_PUBLISHED
    create/update  published  non-draft/none   -                UPSERT
    (no match)                                                  NOOP

Without overlay mode, draft events are skipped, create/update upserts and
disappear removes the node if there is one.

Invariants:
    - Events are applied one at a time, in feed order
    - A failing event is logged and counted; it never stops the loop
    - A published update never replaces a materialized draft

How to change safely:
    - Add rows to decide_action and a branch to apply_action together
    - Test every row with the node both present and absent
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..drafts import is_draft_id, unprefix_id
from ..store.base import Node
from .events import ListenerEvent
from .feed import EventFeed
from .session import SyncSession

logger = logging.getLogger(__name__)


class ListenerAction(Enum):
    """Mutation chosen for a single event."""

    NOOP = "noop"
    SKIP_DRAFT = "skip_draft"
    UPSERT = "upsert"
    REMOVE = "remove"
    RESTORE_PUBLISHED = "restore_published"
    EVICT_PUBLISHED = "evict_published"
    REMOVE_AND_EVICT = "remove_and_evict"
    UPSERT_DRAFT = "upsert_draft"
    CACHE_PUBLISHED = "cache_published"


_NEEDS_RESULT = frozenset(
    {ListenerAction.UPSERT, ListenerAction.UPSERT_DRAFT, ListenerAction.CACHE_PUBLISHED}
)


@dataclass(frozen=True)
class EventState:
    """Everything the decision table looks at for one event."""

    overlay_drafts: bool
    disappear: bool
    touched_is_draft: bool
    has_current: bool
    current_is_draft: bool
    has_published: bool


def decide_action(state: EventState) -> ListenerAction:
    """Pick the action for an event. Row order matters."""
    if not state.overlay_drafts:
        if state.touched_is_draft:
            return ListenerAction.SKIP_DRAFT
        if not state.disappear:
            return ListenerAction.UPSERT
        if state.has_current:
            return ListenerAction.REMOVE
        return ListenerAction.NOOP

    if state.disappear:
        if state.touched_is_draft and state.has_published:
            return ListenerAction.RESTORE_PUBLISHED
        if state.touched_is_draft and state.has_current:
            return ListenerAction.REMOVE
        if not state.touched_is_draft and state.current_is_draft and state.has_published:
            return ListenerAction.EVICT_PUBLISHED
        if not state.touched_is_draft and state.has_current and not state.current_is_draft:
            return ListenerAction.REMOVE_AND_EVICT
        return ListenerAction.NOOP

    if state.touched_is_draft:
        return ListenerAction.UPSERT_DRAFT
    if state.current_is_draft:
        return ListenerAction.CACHE_PUBLISHED
    return ListenerAction.UPSERT


class Listener:
    """Applies live change events to a sync session.

    Thread safety:
        Designed to run as a single task; one Listener per session.

    Example:
        >>> listener = Listener(session, feed)
        >>> await listener.start()  # Runs until stopped or the feed ends
    """

    def __init__(self, session: SyncSession, feed: EventFeed) -> None:
        self.session = session
        self.feed = feed

        self._running = False
        self._processed_count = 0
        self._error_count = 0
        self._last_action: Optional[ListenerAction] = None

    async def start(self) -> None:
        """Start the listener loop.

        This runs until stop() is called or the feed is exhausted.
        """
        if self._running:
            logger.warning("Listener already running")
            return

        self._running = True
        logger.info("Starting listener", extra={"overlay_drafts": self.session.overlay_drafts})

        try:
            async for event in self.feed.subscribe():
                if not self._running:
                    break

                try:
                    self._last_action = self.handle_event(event)
                    self._processed_count += 1
                except Exception as e:
                    self._error_count += 1
                    logger.error(
                        f"Failed to apply listener event: {e}",
                        exc_info=True,
                        extra={"document_id": event.document_id, "transition": event.transition},
                    )

        except asyncio.CancelledError:
            logger.info("Listener cancelled")
        except Exception as e:
            logger.error(f"Listener error: {e}", exc_info=True)
            raise

        finally:
            self._running = False

    async def stop(self) -> None:
        """Stop the listener loop."""
        self._running = False
        logger.info("Stopping listener")

    def handle_event(self, event: ListenerEvent) -> ListenerAction:
        """Reconcile a single event against the materialized view.

        Args:
            event: Change event from the feed

        Returns:
            The action that was applied
        """
        session = self.session
        logical_id = unprefix_id(event.document_id)
        current = session.get_current(event.document_id)

        state = EventState(
            overlay_drafts=session.overlay_drafts,
            disappear=event.is_disappear,
            touched_is_draft=is_draft_id(event.document_id),
            has_current=current is not None,
            current_is_draft=current is not None and current.is_draft,
            has_published=logical_id in session.published,
        )
        action = decide_action(state)

        if action in _NEEDS_RESULT and event.result is None:
            logger.warning(
                "Listener event has no result document, skipping",
                extra={"document_id": event.document_id, "transition": event.transition},
            )
            return ListenerAction.NOOP

        logger.debug(
            "Listener event",
            extra={
                "document_id": event.document_id,
                "transition": event.transition,
                "action": action.value,
            },
        )
        self.apply_action(action, event, logical_id, current)
        return action

    def apply_action(
        self,
        action: ListenerAction,
        event: ListenerEvent,
        logical_id: str,
        current: Optional[Node],
    ) -> None:
        """Perform the mutation for ``action``."""
        session = self.session

        if action is ListenerAction.UPSERT:
            session.add_document(event.result)

        elif action is ListenerAction.REMOVE:
            session.remove_node(current)

        elif action is ListenerAction.RESTORE_PUBLISHED:
            if session.add_document(session.published[logical_id]) is not None:
                del session.published[logical_id]

        elif action is ListenerAction.EVICT_PUBLISHED:
            session.published.pop(logical_id, None)

        elif action is ListenerAction.REMOVE_AND_EVICT:
            session.remove_node(current)
            session.published.pop(logical_id, None)

        elif action is ListenerAction.UPSERT_DRAFT:
            session.add_document(event.result)
            if current is not None and not current.is_draft:
                session.published[logical_id] = current.document

        elif action is ListenerAction.CACHE_PUBLISHED:
            session.published[logical_id] = event.result

    @property
    def stats(self) -> Dict[str, Any]:
        """Get listener statistics."""
        return {
            "running": self._running,
            "processed_count": self._processed_count,
            "error_count": self._error_count,
            "last_action": self._last_action.value if self._last_action else None,
        }
