"""
Bulk ingestion pipeline.

The pipeline turns a newline-delimited JSON export into materialized
nodes. Stages are chained async generators, so each stage pulls one
record at a time from the one before it and the export is never
buffered whole:

    chunks -> parse_records -> reject_on_api_error -> remove_system_documents
           -> extract_drafts | remove_drafts -> materialize

Invariants:
    - Published documents are materialized in stream order as they arrive
    - Drafts become visible only in the single overlay pass at the end
    - An error-shaped record aborts the load; no overlay pass runs
    - Documents materialized before a failure are kept (at-least-once)

How to change safely:
    - New stages must be async generators that yield in input order
    - Never collect a stage's output into a list
"""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass
from typing import Any, AsyncIterable, AsyncIterator, Dict

from ..drafts import extract_drafts, remove_drafts
from ..errors import UpstreamError
from .session import SyncSession

logger = logging.getLogger(__name__)

SYSTEM_PREFIX = "_."


@dataclass
class IngestResult:
    """Outcome of a bulk load.

    Attributes:
        materialized: Published documents upserted while streaming
        drafts: Drafts upserted in the overlay pass
        skipped: Documents skipped because their type is undeclared
    """

    materialized: int = 0
    drafts: int = 0
    skipped: int = 0


async def parse_records(chunks: AsyncIterable[bytes]) -> AsyncIterator[Any]:
    """Split a byte stream into lines and decode each line as JSON.

    Lines that are not valid JSON are dropped.
    """
    decoder = codecs.getincrementaldecoder("utf-8")()
    # Pieces of the line still waiting for its newline
    pending: list[str] = []

    async for chunk in chunks:
        head, *rest = decoder.decode(chunk).split("\n")
        pending.append(head)
        if not rest:
            continue

        for line in ["".join(pending), *rest[:-1]]:
            record = _decode_line(line)
            if record is not None:
                yield record
        pending = [rest[-1]]

    pending.append(decoder.decode(b"", final=True))
    record = _decode_line("".join(pending))
    if record is not None:
        yield record


def _decode_line(line: str) -> Any:
    line = line.strip()
    if not line:
        return None
    try:
        return json.loads(line)
    except json.JSONDecodeError as e:
        logger.debug(f"Dropping undecodable export line: {e}")
        return None


async def reject_on_api_error(records: AsyncIterable[Any]) -> AsyncIterator[Dict[str, Any]]:
    """Pass documents, raise on error-shaped records, drop anything else.

    Raises:
        UpstreamError: On a record carrying statusCode and error
    """
    async for record in records:
        if not isinstance(record, dict):
            continue

        doc_id, doc_type = record.get("_id"), record.get("_type")
        if doc_id and doc_type and isinstance(doc_id, str) and isinstance(doc_type, str):
            yield record
            continue

        if record.get("statusCode") and record.get("error"):
            raise UpstreamError.from_record(record)

        logger.debug("Dropping malformed export record", extra={"keys": sorted(record)[:10]})


async def remove_system_documents(
    records: AsyncIterable[Dict[str, Any]],
) -> AsyncIterator[Dict[str, Any]]:
    async for doc in records:
        if not doc["_id"].startswith(SYSTEM_PREFIX):
            yield doc


class IngestionPipeline:
    """Runs one bulk load into a sync session.

    Example:
        >>> pipeline = IngestionPipeline(session)
        >>> result = await pipeline.run(response.aiter_bytes())
    """

    def __init__(self, session: SyncSession) -> None:
        self.session = session

    def documents(self, chunks: AsyncIterable[bytes]) -> AsyncIterator[Dict[str, Any]]:
        """Build the stage chain, yielding the documents to materialize."""
        stream = remove_system_documents(reject_on_api_error(parse_records(chunks)))
        if self.session.overlay_drafts:
            return extract_drafts(stream, self.session.drafts, self.session.published)
        return remove_drafts(stream)

    async def run(self, chunks: AsyncIterable[bytes]) -> IngestResult:
        """Ingest an export stream.

        Args:
            chunks: Raw bytes of the newline-delimited export

        Returns:
            IngestResult with counts

        Raises:
            UpstreamError: If the stream carries an API error
            StreamError: If the transport fails mid-stream
        """
        result = IngestResult()
        self.session.drafts.clear()

        try:
            async for doc in self.documents(chunks):
                if self.session.add_document(doc) is None:
                    result.skipped += 1
                else:
                    result.materialized += 1
        except BaseException:
            # Drafts from a failed load are never overlaid
            self.session.drafts.clear()
            raise

        if self.session.drafts:
            logger.info("Overlaying drafts", extra={"drafts": len(self.session.drafts)})
            result.drafts = self.session.overlay_pending_drafts()
            result.skipped += len(self.session.drafts) - result.drafts

        logger.info(
            "Bulk load complete",
            extra={
                "materialized": result.materialized,
                "drafts": result.drafts,
                "skipped": result.skipped,
            },
        )
        return result
