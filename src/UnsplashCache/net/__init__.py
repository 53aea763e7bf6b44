"""
Network layer for UnsplashCache.

- One lazy singleton HTTPX client per process (PID-aware)
- RemoteCatalog for candidate metadata and asset bytes, with Tenacity
  retries on transient failures
"""

from .client import build_http_client, close_http_client, get_http_client, reset_http_client
from .remote import Candidate, ImageMeta, PublisherMeta, RemoteCatalog, parse_candidates

__all__ = [
    # Client factory
    "build_http_client",
    "get_http_client",
    "close_http_client",
    "reset_http_client",
    # Remote API
    "Candidate",
    "ImageMeta",
    "PublisherMeta",
    "RemoteCatalog",
    "parse_candidates",
]
