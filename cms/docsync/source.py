"""
Content source orchestrator.

The ContentSource wires one SyncSession to the platform: it runs the bulk
load from the export stream and then, in watch mode, starts the live
listener against the same session.

Invariants:
    - The listener is created only after load() has fully completed,
      including the draft overlay pass
    - A failed bulk load propagates to the caller and starts no listener
    - One source owns exactly one session

How to change safely:
    - Keep the listen query in step with the bulk filters (system
      documents always excluded, drafts excluded without overlay)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from .client import ContentClient
from .config import SourceConfig
from .drafts import DRAFTS_PREFIX
from .store.base import NodeStore
from .sync.feed import EventFeed, HttpEventFeed
from .sync.listener import Listener
from .sync.pipeline import SYSTEM_PREFIX, IngestionPipeline, IngestResult
from .sync.session import SyncSession, make_uid_prefix

logger = logging.getLogger(__name__)


def build_listen_query(overlay_drafts: bool) -> str:
    """Listen query matching the documents the bulk load keeps."""
    filters = [f'!(_id in path("{SYSTEM_PREFIX}**"))']
    if not overlay_drafts:
        filters.append(f'!(_id in path("{DRAFTS_PREFIX}**"))')
    return f"*[{' && '.join(filters)}]"


class ContentSource:
    """Keeps a node store in sync with one project dataset.

    Attributes:
        config: Source configuration
        store: Host node store
        session: Sync session shared by pipeline and listener
        client: HTTP client for the platform
        listener: Live listener (set once watching starts)

    Example:
        >>> source = ContentSource(config, store)
        >>> await source.load()
        >>> await source.watch()  # Runs until stopped
    """

    def __init__(
        self,
        config: SourceConfig,
        store: NodeStore,
        client: Optional[ContentClient] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.client = client or ContentClient(config)
        self.session = SyncSession(
            store,
            overlay_drafts=config.overlay_drafts,
            type_prefix=config.type_prefix,
            uid_prefix=make_uid_prefix(config.project_id, config.dataset, config.token),
        )
        self.listener: Optional[Listener] = None
        self._loaded = False

    async def load(self) -> IngestResult:
        """Run the bulk load from the export stream.

        Raises:
            UpstreamError: If the platform reports an error
            StreamError: If the stream breaks in transit
        """
        pipeline = IngestionPipeline(self.session)
        async with self.client.export_stream() as chunks:
            result = await pipeline.run(chunks)
        self._loaded = True
        return result

    async def watch(self, feed: Optional[EventFeed] = None) -> None:
        """Apply live events until the feed ends or stop() is called.

        Raises:
            RuntimeError: If called before a successful load()
        """
        if not self._loaded:
            raise RuntimeError("Cannot watch before the bulk load has completed")

        if feed is None:
            feed = HttpEventFeed(self.client, build_listen_query(self.config.overlay_drafts))

        logger.info("Watch mode enabled, starting a listener")
        self.listener = Listener(self.session, feed)
        await self.listener.start()

    async def run(self, feed: Optional[EventFeed] = None) -> None:
        """Load, then watch if watch mode is enabled."""
        await self.load()
        if self.config.watch_mode:
            await self.watch(feed)

    async def stop(self) -> None:
        if self.listener:
            await self.listener.stop()
        await self.client.close()

    def resolve_references(self, value: Any, max_depth: int) -> Any:
        return self.session.resolve_references(value, max_depth)

    def resolve_reference(self, item: Any) -> Any:
        return self.session.resolve_reference(item)

    @property
    def stats(self) -> Dict[str, Any]:
        return {
            "loaded": self._loaded,
            "session": self.session.stats,
            "listener": self.listener.stats if self.listener else None,
        }


async def run_source(source: ContentSource, shutdown: asyncio.Event) -> None:
    """Run a source until it finishes or ``shutdown`` is set."""
    task = asyncio.create_task(source.run())
    waiter = asyncio.create_task(shutdown.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        if task in done:
            task.result()
    finally:
        for pending in (task, waiter):
            pending.cancel()
        await asyncio.gather(task, waiter, return_exceptions=True)
        await source.stop()
