"""
Status events for cache refills.

Observers subscribe to a :class:`StatusChannel` to follow a refill:

- zero or more ``Requesting`` / ``RequestAPISuccess`` / ``Error`` events
- then exactly one terminal ``RequestImagesDone`` or
  ``SkipFetchTargetUnseenReached`` per refill

Events are delivered synchronously, in emission order, on the emitting thread.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, List, Union

from UnsplashCache.net.client import redact_url

logger = logging.getLogger(__name__)


# ============================================================================
# Event Types
# ============================================================================


@dataclass(frozen=True)
class Error:
    """Something went wrong; the refill may still continue."""

    description: str


@dataclass(frozen=True)
class Requesting:
    """The API request is about to be sent."""

    path: str


@dataclass(frozen=True)
class RequestAPISuccess:
    """The API answered with a batch of candidates."""


@dataclass(frozen=True)
class RequestImagesDone:
    """Terminal event: all downloads of this refill have settled."""

    succeeded: int


@dataclass(frozen=True)
class SkipFetchTargetUnseenReached:
    """Terminal event: enough unseen images are cached, nothing was fetched."""


StatusEvent = Union[
    Error, Requesting, RequestAPISuccess, RequestImagesDone, SkipFetchTargetUnseenReached
]
TERMINAL_EVENTS = (RequestImagesDone, SkipFetchTargetUnseenReached)

StatusHandler = Callable[[StatusEvent], None]


def is_terminal(event: StatusEvent) -> bool:
    return isinstance(event, TERMINAL_EVENTS)


# ============================================================================
# Channel
# ============================================================================


class StatusChannel:
    """
    Append-only event stream with pluggable subscribers.

    Emission and delivery share one lock so concurrent emitters cannot
    interleave: every subscriber sees every event in the same order. A handler
    that raises is logged and skipped; it never breaks the emitter.
    """

    def __init__(self, history_size: int = 256):
        """Initialize channel.

        Args:
            history_size: Number of recent events kept for :meth:`history`
        """
        self._handlers: List[StatusHandler] = [self._log_handler]
        self._history: Deque[StatusEvent] = deque(maxlen=history_size)
        self._lock = threading.RLock()

    def subscribe(self, handler: StatusHandler) -> Callable[[], None]:
        """Register ``handler``; returns a callable that unsubscribes it."""
        with self._lock:
            self._handlers.append(handler)

        def _unsubscribe() -> None:
            with self._lock:
                if handler in self._handlers:
                    self._handlers.remove(handler)

        return _unsubscribe

    def emit(self, event: StatusEvent) -> None:
        """Record ``event`` and deliver it to every subscriber."""
        with self._lock:
            self._history.append(event)
            for handler in list(self._handlers):
                try:
                    handler(event)
                except Exception as e:
                    logger.error(f"Status handler failed: {e}", exc_info=True)

    def history(self) -> List[StatusEvent]:
        """Most recent events, oldest first."""
        with self._lock:
            return list(self._history)

    @staticmethod
    def _log_handler(event: StatusEvent) -> None:
        """Default handler: debug logging."""
        if isinstance(event, Error):
            logger.warning(f"status: error: {event.description}")
        elif isinstance(event, Requesting):
            logger.debug(f"status: requesting {redact_url(event.path)}")
        else:
            logger.debug(f"status: {event}")
