"""Status channel ordering, isolation and history."""

from __future__ import annotations

import logging
import threading

from UnsplashCache.status import (
    Error,
    RequestAPISuccess,
    RequestImagesDone,
    Requesting,
    SkipFetchTargetUnseenReached,
    StatusChannel,
    is_terminal,
)


def test_events_are_delivered_in_order(channel, events):
    channel.emit(Requesting(path="/photos/random"))
    channel.emit(RequestAPISuccess())
    channel.emit(RequestImagesDone(succeeded=2))

    assert events == [
        Requesting(path="/photos/random"),
        RequestAPISuccess(),
        RequestImagesDone(succeeded=2),
    ]
    assert channel.history() == events


def test_unsubscribe_stops_delivery(channel):
    received = []
    unsubscribe = channel.subscribe(received.append)

    channel.emit(RequestAPISuccess())
    unsubscribe()
    channel.emit(RequestAPISuccess())

    assert received == [RequestAPISuccess()]


def test_failing_handler_does_not_affect_others(channel, caplog):
    received = []

    def _boom(event):
        raise RuntimeError("observer crashed")

    channel.subscribe(_boom)
    channel.subscribe(received.append)

    with caplog.at_level(logging.ERROR, logger="UnsplashCache"):
        channel.emit(Error(description="x"))

    assert received == [Error(description="x")]
    assert any("Status handler failed" in record.message for record in caplog.records)


def test_history_is_bounded():
    channel = StatusChannel(history_size=2)
    for succeeded in range(5):
        channel.emit(RequestImagesDone(succeeded=succeeded))

    assert channel.history() == [RequestImagesDone(3), RequestImagesDone(4)]


def test_concurrent_emitters_are_seen_in_the_same_order_by_all(channel):
    first, second = [], []
    channel.subscribe(first.append)
    channel.subscribe(second.append)

    def _emit(worker: int) -> None:
        for index in range(50):
            channel.emit(Error(description=f"{worker}-{index}"))

    threads = [threading.Thread(target=_emit, args=(w,)) for w in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(first) == 200
    assert first == second


def test_terminal_events():
    assert is_terminal(RequestImagesDone(succeeded=0))
    assert is_terminal(SkipFetchTargetUnseenReached())
    assert not is_terminal(Error(description="x"))
    assert not is_terminal(RequestAPISuccess())
