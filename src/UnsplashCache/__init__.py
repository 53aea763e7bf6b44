# === NAVMAP v1 ===
# {
#   "module": "UnsplashCache",
#   "purpose": "Public entry points for the Unsplash image cache",
#   "sections": []
# }
# === /NAVMAP ===

"""
UnsplashCache

Keeps a local, deduplicated cache of random Unsplash photos. A refill tops the
cache up only while too few downloaded images are still unseen; selection hands
images out least recently shown first.
"""

from UnsplashCache.cache import UnsplashImageCache
from UnsplashCache.catalog import NEVER_SEEN, CacheRecord
from UnsplashCache.config import UnsplashCacheConfig, load_config
from UnsplashCache.pipeline import RefillPipeline, RefillResult, RefillState
from UnsplashCache.selection import Selection, SelectionService
from UnsplashCache.status import (
    Error,
    RequestAPISuccess,
    RequestImagesDone,
    Requesting,
    SkipFetchTargetUnseenReached,
    StatusChannel,
)

__version__ = "0.1.0"

__all__ = [
    "CacheRecord",
    "Error",
    "NEVER_SEEN",
    "RefillPipeline",
    "RefillResult",
    "RefillState",
    "RequestAPISuccess",
    "RequestImagesDone",
    "Requesting",
    "Selection",
    "SelectionService",
    "SkipFetchTargetUnseenReached",
    "StatusChannel",
    "UnsplashCacheConfig",
    "UnsplashImageCache",
    "load_config",
]
