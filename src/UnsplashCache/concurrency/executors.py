"""Executor factory utilities used by the refill pipeline."""

from __future__ import annotations

from concurrent import futures
from typing import Optional, Tuple

Executor = futures.Executor


def create_executor(
    workers: int, thread_name_prefix: str = "unsplash-cache"
) -> Tuple[Optional[Executor], bool]:
    """
    Return a thread pool for IO-bound work.

    Args:
        workers: Desired concurrency level.
        thread_name_prefix: Name prefix for the pool's threads.

    Returns:
        Tuple of (executor, needs_shutdown). ``(None, False)`` when
        ``workers <= 1``: the caller should run the work inline. Otherwise the
        caller is responsible for shutting the executor down.
    """
    if workers <= 1:
        return None, False
    return (
        futures.ThreadPoolExecutor(max_workers=workers, thread_name_prefix=thread_name_prefix),
        True,
    )
