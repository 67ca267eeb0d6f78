"""
Tests for structured JSON logging.
"""
import io
import json
import logging

import pytest

from filemanager.utils.logging import (
    StructuredLogger,
    configure_logging,
    log_directory_removed,
    log_file_uploaded,
    log_storage_failure,
)


@pytest.fixture
def json_stream():
    """Configure logging into an in-memory stream and restore the root logger after."""
    root_logger = logging.getLogger()
    saved_level = root_logger.level
    stream = io.StringIO()
    StructuredLogger.reset()

    configure_logging("filemanager-test", "DEBUG", stream)
    yield stream

    StructuredLogger.reset()
    for handler in own_handlers(stream):
        root_logger.removeHandler(handler)
    root_logger.setLevel(saved_level)


def records(stream: io.StringIO) -> list:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


def own_handlers(stream: io.StringIO) -> list:
    return [h for h in logging.getLogger().handlers if getattr(h, "stream", None) is stream]


def test_configure_logging_attaches_handler(json_stream):
    root_logger = logging.getLogger()

    assert len(own_handlers(json_stream)) == 1
    assert root_logger.level == logging.DEBUG


def test_configure_logging_is_idempotent(json_stream):
    configure_logging("other-service", "ERROR", io.StringIO())

    assert len(own_handlers(json_stream)) == 1
    assert logging.getLogger().level == logging.DEBUG


def test_file_uploaded_event(json_stream):
    logger = logging.getLogger("filemanager.test")

    log_file_uploaded(
        logger,
        bucket="media",
        key="a.png",
        url="https://cdn.example.com/uploads/a.png",
        duration_ms=12.3456,
    )

    [record] = records(json_stream)
    assert record["event"] == "file_uploaded"
    assert record["service"] == "filemanager-test"
    assert record["bucket"] == "media"
    assert record["key"] == "a.png"
    assert record["source"] == "bytes"
    assert record["duration_ms"] == 12.35
    assert record["message"] == "File uploaded: a.png"


def test_directory_removed_levels(json_stream):
    logger = logging.getLogger("filemanager.test")

    log_directory_removed(logger, bucket="media", prefix="dir", total=3)
    log_directory_removed(logger, bucket="media", prefix="dir", total=3, failed=2)

    ok, failed = records(json_stream)
    assert ok["event"] == "directory_removed"
    assert ok["levelname"] == "INFO"
    assert failed["event"] == "directory_removal_failed"
    assert failed["levelname"] == "ERROR"
    assert failed["failed"] == 2


def test_storage_failure_event(json_stream):
    logger = logging.getLogger("filemanager.test")

    log_storage_failure(logger, "upload", ConnectionError("reset"), bucket="media", key="a.png")

    [record] = records(json_stream)
    assert record["event"] == "storage_failure"
    assert record["operation"] == "upload"
    assert record["error_type"] == "ConnectionError"
    assert record["error"] == "reset"
