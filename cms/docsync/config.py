"""
Configuration management for docsync.

All configuration is done via environment variables - no config files.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - project_id and dataset MUST be set explicitly
    - The API token is never logged or exposed in error messages

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Keep env var names stable; deprecate by logging a warning
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass(frozen=True)
class SourceConfig:
    """Content platform source configuration.

    Attributes:
        project_id: Remote project identifier
        dataset: Dataset to export and listen to
        token: API token (required to read drafts)
        api_host: API host, prefixed with the project id
        api_version: API version path segment
        type_prefix: Prefix for materialized collection type names
        overlay_drafts: Let drafts shadow their published counterpart
        watch_mode: Keep listening for changes after the bulk load
        request_timeout: HTTP connect/read timeout in seconds
    """

    project_id: str = ""
    dataset: str = ""
    token: str = ""
    api_host: str = "api.sanity.io"
    api_version: str = "v1"
    type_prefix: str = "Sanity"
    overlay_drafts: bool = False
    watch_mode: bool = False
    request_timeout: float = 30.0

    @classmethod
    def from_env(cls) -> SourceConfig:
        """Load configuration from environment variables."""
        return cls(
            project_id=os.getenv("CONTENT_PROJECT_ID", ""),
            dataset=os.getenv("CONTENT_DATASET", ""),
            token=os.getenv("CONTENT_TOKEN", ""),
            api_host=os.getenv("CONTENT_API_HOST", "api.sanity.io"),
            api_version=os.getenv("CONTENT_API_VERSION", "v1"),
            type_prefix=os.getenv("CONTENT_TYPE_PREFIX", "Sanity"),
            overlay_drafts=_env_flag("CONTENT_OVERLAY_DRAFTS"),
            watch_mode=_env_flag("CONTENT_WATCH_MODE"),
            request_timeout=float(os.getenv("CONTENT_REQUEST_TIMEOUT", "30")),
        )

    @property
    def base_url(self) -> str:
        return f"https://{self.project_id}.{self.api_host}/{self.api_version}"


@dataclass(frozen=True)
class StoreConfig:
    """Local node store configuration.

    Attributes:
        document_types: Type tags to declare collections for. When empty,
            the in-memory store creates collections on first write.
    """

    document_types: tuple[str, ...] = ()

    @classmethod
    def from_env(cls) -> StoreConfig:
        """Load configuration from environment variables."""
        raw = os.getenv("CONTENT_DOCUMENT_TYPES", "")
        return cls(document_types=tuple(t.strip() for t in raw.split(",") if t.strip()))


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )


@dataclass
class SyncConfig:
    """Complete sync configuration.

    Attributes:
        source: Content platform source configuration
        store: Local node store configuration
        observability: Logging configuration
    """

    source: SourceConfig = field(default_factory=SourceConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> SyncConfig:
        """Load complete configuration from environment variables.

        Returns:
            SyncConfig with all sections populated from environment.

        Raises:
            ValueError: If required configuration is missing or invalid.
        """
        config = cls(
            source=SourceConfig.from_env(),
            store=StoreConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not self.source.project_id:
            raise ValueError("CONTENT_PROJECT_ID is required")
        if not self.source.dataset:
            raise ValueError("CONTENT_DATASET is required")
        if self.source.request_timeout <= 0:
            raise ValueError("CONTENT_REQUEST_TIMEOUT must be positive")
        if self.observability.log_format not in ("json", "text"):
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: json, text"
            )

        if self.source.overlay_drafts and not self.source.token:
            logger.warning("overlay_drafts is enabled, but no token is set; drafts will not be visible")

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Sync configuration loaded",
            extra={
                "project_id": self.source.project_id,
                "dataset": self.source.dataset,
                "api_host": self.source.api_host,
                "token_set": bool(self.source.token),
                "overlay_drafts": self.source.overlay_drafts,
                "watch_mode": self.source.watch_mode,
                "document_types": list(self.store.document_types),
                "log_level": self.observability.log_level,
            },
        )
