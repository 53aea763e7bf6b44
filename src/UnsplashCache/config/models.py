"""
Pydantic v2 Configuration Models for UnsplashCache

Provides strict, typed configuration for all cache subsystems:
- HTTP client settings (endpoint, timeouts, retry policy)
- Blob storage location
- Ledger database location
- Download fan-out
- Top-level UnsplashCacheConfig as single source of truth

All models use extra="forbid" for strict validation. Environment variables
and CLI overrides follow: file < env < CLI precedence.
"""

from __future__ import annotations

from pathlib import Path
from typing import ClassVar, List, Optional, Sequence

import platformdirs
from pydantic import BaseModel, ConfigDict, Field, field_validator

APP_NAME = "unsplash-cache"
DEFAULT_ENDPOINT = "https://api.unsplash.com/photos/random"


def join_collections(collections: Optional[Sequence[str]]) -> Optional[str]:
    """Comma-joined collection filter, or None when no filter is set."""
    return ",".join(collections) if collections else None


def default_cache_dir() -> Path:
    """Per-user cache directory (XDG on Linux, ~/Library/Caches on macOS)."""
    return Path(platformdirs.user_cache_dir(APP_NAME))


def _default_root_dir() -> str:
    return str(default_cache_dir() / "ImageCache")


def _default_ledger_path() -> str:
    return str(default_cache_dir() / "ledger.sqlite")


# ============================================================================
# Shared Policy Models
# ============================================================================


class RetryPolicy(BaseModel):
    """Configuration for HTTP request retry behavior."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    retry_statuses: List[int] = Field(
        default=[429, 500, 502, 503, 504],
        description="HTTP status codes that trigger retry",
    )
    max_attempts: int = Field(default=3, description="Maximum attempts per request")
    base_delay_ms: int = Field(default=200, description="Base delay in ms")
    max_delay_ms: int = Field(default=4000, description="Maximum delay in ms")

    @field_validator("max_attempts")
    @classmethod
    def validate_max_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_attempts must be >= 1")
        return v

    @field_validator("base_delay_ms", "max_delay_ms")
    @classmethod
    def validate_delays(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Delay values must be >= 0")
        return v


class HttpClientConfig(BaseModel):
    """Configuration for HTTP client behavior."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    endpoint: str = Field(default=DEFAULT_ENDPOINT, description="Random photo API endpoint")
    user_agent: str = Field(default="UnsplashCache/0.1", description="User-Agent string")
    timeout_connect_s: float = Field(default=10.0, description="Connection timeout in seconds")
    timeout_read_s: float = Field(default=60.0, description="Read timeout in seconds")
    verify_tls: bool = Field(default=True, description="Verify TLS certificates")
    max_connections: int = Field(default=10, description="Connection pool size")
    retry: RetryPolicy = Field(default_factory=RetryPolicy, description="Retry policy")

    @field_validator("timeout_connect_s", "timeout_read_s")
    @classmethod
    def validate_timeouts(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeouts must be > 0")
        return v

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("endpoint must be an http(s) URL")
        return v


class StorageConfig(BaseModel):
    """Where image blobs are kept."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    root_dir: str = Field(
        default_factory=_default_root_dir,
        description="Directory holding one file per cached photo id",
    )


class LedgerConfig(BaseModel):
    """Record ledger database configuration."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    path: str = Field(
        default_factory=_default_ledger_path,
        description="SQLite database file path",
    )
    wal_mode: bool = Field(default=True, description="Enable WAL mode for SQLite")


class DownloadPolicy(BaseModel):
    """Configuration for the concurrent download stage."""

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid")

    max_workers: int = Field(default=4, description="Maximum concurrent asset downloads")

    @field_validator("max_workers")
    @classmethod
    def validate_max_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_workers must be >= 1")
        return v


# ============================================================================
# Top-Level Configuration
# ============================================================================


class UnsplashCacheConfig(BaseModel):
    """
    Single source of truth for UnsplashCache configuration.

    Loaded from file (YAML/JSON), overlaid with environment variables,
    and finally overridden by CLI arguments. Precedence: file < env < CLI.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(extra="forbid", validate_assignment=True)

    client_id: str = Field(..., min_length=1, description="Unsplash access key")
    collections: Optional[List[str]] = Field(
        default=None, description="Collection ids passed through as a comma-joined filter"
    )
    debug_logging: bool = Field(default=False, description="Emit debug logs for the cache")
    target_unused_count: int = Field(
        default=10, ge=0, description="Refill only while fewer downloaded-unseen records exist"
    )
    image_count: int = Field(default=3, ge=0, description="Candidates requested per refill")
    http: HttpClientConfig = Field(
        default_factory=HttpClientConfig, description="HTTP client configuration"
    )
    storage: StorageConfig = Field(
        default_factory=StorageConfig, description="Blob storage configuration"
    )
    ledger: LedgerConfig = Field(default_factory=LedgerConfig, description="Ledger configuration")
    download: DownloadPolicy = Field(
        default_factory=DownloadPolicy, description="Download fan-out policy"
    )

    @field_validator("collections")
    @classmethod
    def validate_collections(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        cleaned = [item.strip() for item in v if item and item.strip()]
        return cleaned or None

    def config_hash(self) -> str:
        """
        Compute deterministic SHA256 hash of config for reproducibility.

        Returns:
            Hex-encoded SHA256 hash of normalized config JSON.
        """
        import hashlib
        import json

        normalized = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(normalized.encode()).hexdigest()
