# tests/unit/logging/test_logger.py — v1
"""Tests for logging/logger.py and logging/handlers.py."""

from __future__ import annotations

import io
import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from dociium.logging.context import clear_context, set_package_context, set_request_context
from dociium.logging.handlers import create_rotating_handler, parse_size
from dociium.logging.logger import JsonFormatter, TextFormatter, get_logger, setup_logging


@pytest.fixture(autouse=True)
def _reset_root_logger():
    yield
    root = logging.getLogger("dociium")
    for handler in list(root.handlers):
        handler.close()
    root.handlers.clear()
    root.propagate = True
    clear_context()


def _record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("dociium.test", logging.INFO, __file__, 1, msg, (), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestGetLogger:
    def test_prefixes_namespace(self):
        assert get_logger("engine").name == "dociium.engine"

    def test_keeps_qualified_names(self):
        assert get_logger("dociium.cache").name == "dociium.cache"
        assert get_logger("dociium").name == "dociium"


class TestFormatters:
    def test_json_includes_context(self):
        set_request_context("search", request_id="r1")
        set_package_context("tokio", "1.37.0")
        entry = json.loads(JsonFormatter().format(_record()))
        assert entry["message"] == "hello"
        assert entry["context"] == {
            "request_id": "r1", "operation": "search", "package": "tokio", "version": "1.37.0",
        }

    def test_json_includes_data(self):
        entry = json.loads(JsonFormatter().format(_record(data={"symbols": 3})))
        assert entry["data"] == {"symbols": 3}

    def test_json_without_context(self):
        entry = json.loads(JsonFormatter().format(_record()))
        assert "context" not in entry

    def test_text_shows_operation_and_package(self):
        set_request_context("get_item")
        set_package_context("serde")
        line = TextFormatter().format(_record())
        assert "[get_item]" in line
        assert "(serde@?)" in line
        assert line.endswith("- hello")


class TestSetupLogging:
    def test_stream_handler(self):
        stream = io.StringIO()
        root = setup_logging(level="DEBUG", stream=stream)
        get_logger("x").debug("visible")
        assert "visible" in stream.getvalue()
        assert root.propagate is False

    def test_reinit_does_not_stack_handlers(self):
        setup_logging(stream=io.StringIO())
        root = setup_logging(stream=io.StringIO())
        assert len(root.handlers) == 1

    def test_json_format(self):
        stream = io.StringIO()
        setup_logging(log_format="json", stream=stream)
        get_logger("x").info("structured")
        assert json.loads(stream.getvalue().strip())["message"] == "structured"

    def test_file_handler(self, tmp_path: Path):
        log_file = tmp_path / "logs" / "dociium.log"
        root = setup_logging(log_file=str(log_file), stream=io.StringIO())
        get_logger("x").warning("to file")
        for handler in root.handlers:
            handler.flush()
        assert "to file" in log_file.read_text()


class TestHandlers:
    @pytest.mark.parametrize(
        "text,expected",
        [("10MB", 10 * 1024**2), ("512kb", 512 * 1024), ("100", 100), ("1 GB", 1024**3)],
    )
    def test_parse_size(self, text, expected):
        assert parse_size(text) == expected

    def test_parse_size_invalid(self):
        with pytest.raises(ValueError):
            parse_size("ten megs")

    def test_rotating_handler_creates_parent(self, tmp_path: Path):
        handler = create_rotating_handler(tmp_path / "a" / "b.log", rotation="1KB", retention=2)
        try:
            assert isinstance(handler, RotatingFileHandler)
            assert handler.maxBytes == 1024
            assert handler.backupCount == 2
            assert (tmp_path / "a").is_dir()
        finally:
            handler.close()
