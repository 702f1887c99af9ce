"""
HTTP client for the content platform.

This is a thin async client over httpx exposing the two endpoints docsync
consumes:
- /data/export/{dataset}: newline-delimited JSON of every document
- /data/listen/{dataset}: server-sent events for document mutations

Invariants:
    - Non-2xx responses raise UpstreamError; nothing is retried here
    - Transport failures raise StreamError
    - The token is sent as a bearer header and never logged
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from ._version import __version__
from .config import SourceConfig
from .errors import StreamError, UpstreamError

logger = logging.getLogger(__name__)


class ContentClient:
    """Async client for the export and listen endpoints.

    Example:
        >>> client = ContentClient(config)
        >>> async with client.export_stream() as chunks:
        ...     result = await pipeline.run(chunks)
        >>> await client.close()
    """

    def __init__(
        self,
        config: SourceConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            headers=self._headers(),
            timeout=httpx.Timeout(config.request_timeout, read=None),
            follow_redirects=False,
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {"User-Agent": f"docsync/{__version__}"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    def get_url(self, path: str) -> str:
        return f"{self.config.base_url}/{path.lstrip('/')}"

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> ContentClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @asynccontextmanager
    async def _stream(self, path: str, params: Optional[Dict[str, str]] = None):
        url = self.get_url(path)
        try:
            async with self._http.stream("GET", path, params=params) as response:
                if not response.is_success:
                    await response.aread()
                    raise _upstream_error(response, url)
                yield response
        except httpx.TransportError as e:
            raise StreamError(f"Stream from {url} failed: {e}", url=url) from e

    @asynccontextmanager
    async def export_stream(
        self,
        dataset: Optional[str] = None,
    ) -> AsyncIterator[AsyncIterator[bytes]]:
        """Open the export stream for a dataset.

        Yields:
            Async iterator over raw response chunks

        Raises:
            UpstreamError: On a non-2xx response
            StreamError: On a transport failure
        """
        dataset = dataset or self.config.dataset
        logger.info("Opening export stream", extra={"dataset": dataset})
        async with self._stream(f"/data/export/{dataset}") as response:
            yield response.aiter_bytes()

    async def listen(
        self,
        query: str,
        dataset: Optional[str] = None,
    ) -> AsyncIterator[Dict[str, Any]]:
        """Stream mutation events matching ``query``.

        Yields:
            Mutation payloads ({documentId, transition, result, ...})

        Raises:
            UpstreamError: On a non-2xx response or a channel error
            StreamError: On a transport failure
        """
        dataset = dataset or self.config.dataset
        params = {"query": query, "includeResult": "true"}
        logger.info("Opening listener", extra={"dataset": dataset, "query": query})

        async with self._stream(f"/data/listen/{dataset}", params=params) as response:
            event_name = "message"
            data_lines: list[str] = []

            async for line in response.aiter_lines():
                if line.startswith(":"):
                    continue
                if line.startswith("event:"):
                    event_name = line[len("event:"):].strip()
                    continue
                if line.startswith("data:"):
                    data_lines.append(line[len("data:"):].strip())
                    continue
                if line:
                    continue

                # Blank line terminates an event
                if data_lines:
                    payload = _decode_event_data("\n".join(data_lines))
                    if event_name == "channelError":
                        raise UpstreamError(
                            f"Listener channel error: {payload}",
                            url=self.get_url(f"/data/listen/{dataset}"),
                        )
                    if event_name == "disconnect":
                        logger.info("Listener disconnected by server", extra={"dataset": dataset})
                        return
                    if event_name == "mutation" and isinstance(payload, dict):
                        yield payload
                    elif event_name == "welcome":
                        logger.debug("Listener connected", extra={"dataset": dataset})
                event_name = "message"
                data_lines = []


def _decode_event_data(data: str) -> Any:
    try:
        return json.loads(data)
    except json.JSONDecodeError:
        logger.warning("Dropping undecodable listener event data")
        return None


def _upstream_error(response: httpx.Response, url: str) -> UpstreamError:
    message = f"Request to {url} failed with status {response.status_code}"
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        detail = body["error"]
        if isinstance(detail, dict):
            detail = detail.get("description") or detail.get("message") or json.dumps(detail)
        message = f"{message}: {detail}"
    if response.status_code == 404:
        message = f"{message} - double-check project ID and dataset configuration"
    return UpstreamError(message, status_code=response.status_code, url=url)
