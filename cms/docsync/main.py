"""
docsync - Main entry point.

This module syncs one dataset into an in-memory node store:
- Bulk load from the export stream
- Live listener (watch mode)

Usage:
    python -m cms.docsync.main

Configuration is entirely via environment variables.
See config.py for all available settings.

Invariants:
    - A bulk load failure exits non-zero
    - SIGTERM/SIGINT stop the listener gracefully
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

import json_log_formatter

from .config import SyncConfig
from .errors import DocSyncError
from .source import ContentSource, run_source
from .store import InMemoryNodeStore
from .typenames import make_type_name

logger = logging.getLogger(__name__)


def setup_logging(config: SyncConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Sync configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_store(config: SyncConfig) -> InMemoryNodeStore:
    """In-memory store with a collection per declared document type."""
    type_names = [
        make_type_name(config.source.type_prefix, tag) for tag in config.store.document_types
    ]
    return InMemoryNodeStore(type_names, auto_collections=not type_names)


def main() -> None:
    """Main entry point."""
    try:
        config = SyncConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config)
    config.log_config()

    store = build_store(config)
    source = ContentSource(config.source, store)
    shutdown = asyncio.Event()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    def handle_signal(sig: int) -> None:
        logger.info(f"Received signal {sig}, initiating shutdown")
        shutdown.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_signal, sig)

    exit_code = 0
    try:
        loop.run_until_complete(run_source(source, shutdown))
        logger.info("Sync finished", extra={"nodes": len(store), **source.stats["session"]})
    except DocSyncError as e:
        logger.error(f"Sync failed: {e.message}", extra={"code": e.code, **e.details})
        exit_code = 1
    finally:
        loop.close()

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
