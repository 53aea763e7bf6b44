"""Structured logging helpers."""

from __future__ import annotations

import io
import json
import logging

import pytest

from UnsplashCache.logging_config import (
    PACKAGE_LOGGER,
    JSONFormatter,
    configure_logging,
    mask_sensitive_data,
    set_debug_logging,
)


@pytest.fixture(autouse=True)
def _restore_package_logger():
    logger = logging.getLogger(PACKAGE_LOGGER)
    level = logger.level
    yield
    for handler in list(logger.handlers):
        if getattr(handler, "_unsplash_cache_managed", False):
            logger.removeHandler(handler)
    logger.setLevel(level)


def test_mask_sensitive_data():
    masked = mask_sensitive_data(
        {
            "client_id": "abc",
            "message": "GET https://api.example.org/photos/random?client_id=abc&count=3",
            "count": 3,
        }
    )

    assert masked["client_id"] == "***masked***"
    assert "abc" not in masked["message"]
    assert "count=3" in masked["message"]
    assert masked["count"] == 3


def test_json_formatter_emits_one_object_per_line():
    record = logging.makeLogRecord(
        {"name": "UnsplashCache.pipeline", "levelname": "INFO", "msg": "refill %s", "args": ("ok",)}
    )

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "refill ok"
    assert payload["logger"] == "UnsplashCache.pipeline"
    assert payload["level"] == "INFO"
    assert payload["timestamp"].endswith("Z")


def test_configure_logging_json_output():
    stream = io.StringIO()
    configure_logging(verbose=True, json_logs=True, stream=stream)

    logging.getLogger("UnsplashCache.test").debug("client_id=secret-key used")

    line = stream.getvalue().strip().splitlines()[-1]
    assert "secret-key" not in line
    assert json.loads(line)["level"] == "DEBUG"


def test_configure_logging_replaces_its_own_handler():
    configure_logging(stream=io.StringIO())
    configure_logging(stream=io.StringIO())

    managed = [
        handler
        for handler in logging.getLogger(PACKAGE_LOGGER).handlers
        if getattr(handler, "_unsplash_cache_managed", False)
    ]
    assert len(managed) == 1


def test_debug_switch():
    set_debug_logging(True)
    assert logging.getLogger(PACKAGE_LOGGER).level == logging.DEBUG

    set_debug_logging(False)
    assert logging.getLogger(PACKAGE_LOGGER).level == logging.WARNING
