# === NAVMAP v1 ===
# {
#   "module": "UnsplashCache.concurrency.__init__",
#   "purpose": "Concurrency helpers shared across UnsplashCache components.",
#   "sections": []
# }
# === /NAVMAP ===

"""
Concurrency helpers shared across UnsplashCache components.

Currently exposes :func:`create_executor`, which hands out thread pools for
the IO-bound download fan-out and signals when work should run inline.
"""

from .executors import create_executor

__all__ = ["create_executor"]
