"""
Error types for docsync.

This module defines the exceptions raised while syncing documents:
- DocSyncError: Base exception
- UpstreamError: The content platform reported an error
- StreamError: The export or listen stream broke in transit

Invariants:
    - All errors inherit from DocSyncError
    - Errors include context for debugging
    - Secrets (tokens) never appear in messages or details
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class DocSyncError(Exception):
    """Base exception for all docsync errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "DOCSYNC_ERROR"
        self.details = details or {}


class UpstreamError(DocSyncError):
    """The content platform answered with an error.

    Raised when:
    - The export stream contains an error-shaped record
    - Fetching the export or listen stream returns a non-2xx status
    - The listen stream reports a channel error

    This is fatal to a bulk load. No retry is attempted.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            code="UPSTREAM_ERROR",
            details={"status_code": status_code, "url": url},
        )
        self.status_code = status_code
        self.url = url

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> UpstreamError:
        """Build from an error-shaped stream record ({statusCode, error})."""
        status_code = record.get("statusCode")
        return cls(f"{status_code}: {record.get('error')}", status_code=status_code)


class StreamError(DocSyncError):
    """A transport failure while reading a stream.

    Raised when:
    - The connection drops mid-stream
    - A read times out
    """

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message, code="STREAM_ERROR", details={"url": url})
        self.url = url
