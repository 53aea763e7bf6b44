"""Configuration models and loading for UnsplashCache."""

from __future__ import annotations

from .loader import export_config_schema, load_config, validate_config_file
from .models import (
    DEFAULT_ENDPOINT,
    DownloadPolicy,
    HttpClientConfig,
    LedgerConfig,
    RetryPolicy,
    StorageConfig,
    UnsplashCacheConfig,
    default_cache_dir,
    join_collections,
)

__all__ = [
    "DEFAULT_ENDPOINT",
    "DownloadPolicy",
    "HttpClientConfig",
    "LedgerConfig",
    "RetryPolicy",
    "StorageConfig",
    "UnsplashCacheConfig",
    "default_cache_dir",
    "join_collections",
    "export_config_schema",
    "load_config",
    "validate_config_file",
]
