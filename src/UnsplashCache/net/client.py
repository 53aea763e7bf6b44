"""
HTTPX Client Factory & Singleton Management.

- Lazy singleton (PID-aware for fork safety)
- Explicit timeouts, pool limits, TLS verification
- Request/response hooks emitting debug timing lines with the client_id
  query parameter masked

Architecture:
1. get_http_client(config) → HTTPX Client singleton
2. Hooks log one line per request
3. RemoteCatalog layers retries (tenacity) on top
"""

from __future__ import annotations

import logging
import os
import time
from typing import Optional

import httpx

from UnsplashCache.config.models import UnsplashCacheConfig

logger = logging.getLogger(__name__)

# ============================================================================
# Singleton State (PID-aware for fork safety)
# ============================================================================

_CLIENT: Optional[httpx.Client] = None
_BIND_HASH: Optional[str] = None
_BIND_PID: Optional[int] = None


# ============================================================================
# Client Factory
# ============================================================================


def get_http_client(config: UnsplashCacheConfig) -> httpx.Client:
    """
    Lazy singleton HTTPX client factory.

    After fork() a new client is created so connections are never shared
    across processes. Settings changes mid-process are warned about but don't
    trigger a rebuild.

    Args:
        config: UnsplashCacheConfig instance with http settings

    Returns:
        Singleton httpx.Client configured per settings
    """
    global _CLIENT, _BIND_HASH, _BIND_PID

    pid = os.getpid()

    if _CLIENT is None or _BIND_PID != pid:
        logger.debug(f"Creating new HTTPX client (pid={pid}, existing_pid={_BIND_PID})")
        _CLIENT = build_http_client(config)
        _BIND_PID = pid
        _BIND_HASH = config.config_hash()

    elif _BIND_HASH != config.config_hash():
        logger.warning(
            "HTTP client settings changed after binding. No hot reload; existing client unchanged."
        )
        _BIND_HASH = config.config_hash()

    return _CLIENT


def close_http_client() -> None:
    """Close the singleton client and cleanup."""
    global _CLIENT, _BIND_HASH, _BIND_PID
    if _CLIENT is not None:
        _CLIENT.close()
        logger.debug("HTTPX client closed")
    _CLIENT = None
    _BIND_HASH = None
    _BIND_PID = None


def reset_http_client() -> None:
    """Reset singleton (for testing)."""
    close_http_client()


# ============================================================================
# Client Construction
# ============================================================================


def build_http_client(
    config: UnsplashCacheConfig, transport: Optional[httpx.BaseTransport] = None
) -> httpx.Client:
    """Build a new HTTPX client from config (``transport`` is for tests)."""
    cfg = config.http

    timeout = httpx.Timeout(
        cfg.timeout_read_s,
        connect=cfg.timeout_connect_s,
    )
    limits = httpx.Limits(
        max_connections=cfg.max_connections,
        max_keepalive_connections=cfg.max_connections,
    )

    client = httpx.Client(
        transport=transport,
        timeout=timeout,
        limits=limits,
        verify=cfg.verify_tls,
        headers={
            "User-Agent": cfg.user_agent,
            "Accept-Version": "v1",
        },
        follow_redirects=True,
        event_hooks={"request": [_on_request], "response": [_on_response]},
    )

    logger.debug(f"HTTPX client created: endpoint={cfg.endpoint}")
    return client


# ============================================================================
# Event Hooks
# ============================================================================


def _on_request(request: httpx.Request) -> None:
    """Hook: capture request start time."""
    request.extensions["t0_perf"] = time.perf_counter()


def _on_response(response: httpx.Response) -> None:
    """Hook: log one timing line per response."""
    req = response.request
    t0 = req.extensions.get("t0_perf", time.perf_counter())
    elapsed_ms = (time.perf_counter() - t0) * 1000.0
    logger.debug(
        f"net.request: {req.method} {redact_url(str(req.url))} → "
        f"{response.status_code} ({elapsed_ms:.1f}ms)"
    )


def redact_url(url: str) -> str:
    """Mask the client_id query parameter of ``url``."""
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError):
        return url
    if "client_id" not in parsed.params:
        return url
    return str(parsed.copy_set_param("client_id", "***masked***"))
