"""Tests for structured logging helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from recvault.shared.errors import create_provider_error
from recvault.shared.logging import (
    StructuredFormatter,
    log_api_call,
    log_operation_error,
    setup_structured_logger,
)


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "recvault.test", logging.INFO, __file__, 1, "hello %s", ("x",), None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_renders_json_with_structured_fields(self) -> None:
        record = make_record(operation="sync", duration_ms=12.5, context={"k": "v"})

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "hello x"
        assert data["level"] == "INFO"
        assert data["operation"] == "sync"
        assert data["duration_ms"] == 12.5
        assert data["context"] == {"k": "v"}


class TestSetupStructuredLogger:
    def test_writes_json_lines_to_file(self, temp_dir: Path) -> None:
        log_file = temp_dir / "recvault.log"
        logger = setup_structured_logger(
            "recvault.test_file", "DEBUG", str(log_file), use_rich_console=False
        )

        logger.info("persisted", extra={"operation": "save_caches"})
        for handler in logger.handlers:
            handler.flush()
            handler.close()

        line = json.loads(log_file.read_text(encoding="utf-8").splitlines()[0])
        assert line["operation"] == "save_caches"

    def test_replaces_existing_handlers(self) -> None:
        setup_structured_logger("recvault.test_handlers", use_rich_console=False)
        logger = setup_structured_logger("recvault.test_handlers", use_rich_console=False)
        assert len(logger.handlers) == 1


class TestOperationHelpers:
    def test_log_operation_error_merges_context(self, caplog) -> None:
        logger = logging.getLogger("helpers.error")
        error = create_provider_error(503, "down", operation="tmdb_details")

        with caplog.at_level(logging.WARNING, logger="helpers.error"):
            log_operation_error(logger, error, context={"cache": "tmdb"}, level=logging.WARNING)

        record = caplog.records[0]
        assert record.levelno == logging.WARNING
        assert record.error_code == "API_SERVER_ERROR"
        assert record.operation == "tmdb_details"
        assert record.context["cache"] == "tmdb"
        assert record.context["additional_data"] == {"status_code": 503}

    def test_log_api_call_levels(self, caplog) -> None:
        logger = logging.getLogger("helpers.api")

        with caplog.at_level(logging.DEBUG, logger="helpers.api"):
            log_api_call(logger, "/movie/1", "GET", 200, 5.0)
            log_api_call(logger, "/movie/1", "GET", 500, 5.0)

        assert [r.levelno for r in caplog.records] == [logging.DEBUG, logging.WARNING]
