"""
Event feeds for the live listener.

An EventFeed yields ListenerEvents in the order the platform emitted them.
Two implementations are provided:
- HttpEventFeed: server-sent events from the platform's listen endpoint
- InMemoryEventFeed: queue-backed publish/subscribe for tests and local runs

Invariants:
    - Events are yielded in publish order
    - A feed yields to one subscriber at a time
    - Malformed events are logged and dropped, never raised
    - HttpEventFeed only ends when its consumer stops or on a channel error

How to change safely:
    - Keep interface compatible with the EventFeed protocol
    - Never reorder or batch events inside a feed
"""

from __future__ import annotations

import asyncio
import logging
from abc import abstractmethod
from typing import TYPE_CHECKING, Any, AsyncIterator, Dict, Protocol, runtime_checkable

from ..errors import StreamError
from .events import ListenerEvent

if TYPE_CHECKING:
    from ..client import ContentClient

logger = logging.getLogger(__name__)


@runtime_checkable
class EventFeed(Protocol):
    """Source of live change events."""

    @abstractmethod
    def subscribe(self) -> AsyncIterator[ListenerEvent]:
        """Yield events until the feed ends or the consumer stops."""
        ...


def _to_event(data: Dict[str, Any]) -> ListenerEvent | None:
    try:
        return ListenerEvent.from_dict(data)
    except (ValueError, TypeError, AttributeError) as e:
        logger.warning(f"Dropping malformed listener event: {e}")
        return None


class HttpEventFeed:
    """Feed backed by the platform's listen endpoint.

    The listen connection is reopened whenever it ends, whether the server
    closed it, sent a disconnect, or the transport failed. Reconnects back
    off exponentially up to ``max_reconnect_delay`` and reset once a
    connection delivers an event. Channel errors (UpstreamError) are fatal.

    Example:
        >>> feed = HttpEventFeed(client, '*[!(_id in path("_.**"))]')
        >>> async for event in feed.subscribe():
        ...     print(event.document_id, event.transition)
    """

    def __init__(
        self,
        client: ContentClient,
        query: str,
        reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 30.0,
    ) -> None:
        self.client = client
        self.query = query
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_delay = max_reconnect_delay
        self._connections = 0

    async def subscribe(self) -> AsyncIterator[ListenerEvent]:
        delay = self.reconnect_delay
        while True:
            self._connections += 1
            received = False
            try:
                async for payload in self.client.listen(self.query):
                    received = True
                    event = _to_event(payload)
                    if event is not None:
                        yield event
            except StreamError as e:
                logger.warning(f"Listener connection lost: {e}")

            if received:
                delay = self.reconnect_delay
            logger.info(
                "Listener connection ended, reconnecting",
                extra={"connections": self._connections, "retry_in": delay},
            )
            await asyncio.sleep(delay)
            delay = min(delay * 2, self.max_reconnect_delay)

    @property
    def connection_count(self) -> int:
        return self._connections


_CLOSED = object()


class InMemoryEventFeed:
    """In-memory implementation of EventFeed for testing.

    Events published before subscribe() are buffered and delivered first.
    close() ends the subscription once buffered events are drained.

    Example:
        >>> feed = InMemoryEventFeed()
        >>> await feed.publish({"documentId": "x", "transition": "disappear"})
        >>> await feed.close()
        >>> async for event in feed.subscribe():
        ...     print(event.document_id)
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._published = 0

    async def publish(self, event: ListenerEvent | Dict[str, Any]) -> None:
        await self._queue.put(event)
        self._published += 1

    async def close(self) -> None:
        await self._queue.put(_CLOSED)

    async def subscribe(self) -> AsyncIterator[ListenerEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            event = item if isinstance(item, ListenerEvent) else _to_event(item)
            if event is not None:
                yield event

    # Testing helpers

    @property
    def published_count(self) -> int:
        return self._published

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()
