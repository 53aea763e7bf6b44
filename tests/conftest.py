# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest fixtures for suite",
#   "sections": [
#     {
#       "id": "reset-http-client-singleton",
#       "name": "_reset_http_client_singleton",
#       "anchor": "function-reset-http-client-singleton",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

Puts ``src`` on ``sys.path`` so the suite runs from a plain checkout, and
makes sure no test leaks the process-wide HTTP client into the next one.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from UnsplashCache.net.client import reset_http_client  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_http_client_singleton():
    yield
    reset_http_client()


@pytest.fixture(autouse=True)
def _clear_env_overrides(monkeypatch):
    """Keep developer ``UIC_*`` variables out of config-loading tests."""
    for key in list(os.environ):
        if key.startswith("UIC_") or key == "UNSPLASH_CACHE_CONFIG":
            monkeypatch.delenv(key, raising=False)
