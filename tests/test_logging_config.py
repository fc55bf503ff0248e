"""Tests for logging configuration module."""

from __future__ import annotations

import json
import logging
import os
import sys
from io import StringIO
from unittest.mock import patch

from senseact.logging_config import (
    AGENT_LOGGER_NAME,
    JSONFormatter,
    TextFormatter,
    configure_logging,
    get_log_format,
    get_log_level,
    get_logger,
    log_agent_message,
)


def make_record(
    level: int = logging.INFO,
    msg: str = "Test message",
    name: str = "test.logger",
    args: tuple = (),
    **extras,
) -> logging.LogRecord:
    record = logging.LogRecord(
        name=name,
        level=level,
        pathname="/path/to/file.py",
        lineno=42,
        msg=msg,
        args=args,
        exc_info=None,
    )
    record.filename = "file.py"
    for key, value in extras.items():
        setattr(record, key, value)
    return record


class TestGetLogLevel:
    """Tests for get_log_level function."""

    def test_default_is_info(self) -> None:
        """Default log level should be INFO."""
        with patch.dict(os.environ, {}, clear=True):
            assert get_log_level() == logging.INFO

    def test_debug_level(self) -> None:
        with patch.dict(os.environ, {"LOG_LEVEL": "DEBUG"}):
            assert get_log_level() == logging.DEBUG

    def test_warn_alias(self) -> None:
        """LOG_LEVEL=WARN should work as alias for WARNING."""
        with patch.dict(os.environ, {"LOG_LEVEL": "WARN"}):
            assert get_log_level() == logging.WARNING

    def test_case_insensitive(self) -> None:
        with patch.dict(os.environ, {"LOG_LEVEL": "error"}):
            assert get_log_level() == logging.ERROR

    def test_invalid_level_defaults_to_info(self) -> None:
        with patch.dict(os.environ, {"LOG_LEVEL": "LOUD"}):
            assert get_log_level() == logging.INFO


class TestGetLogFormat:
    """Tests for get_log_format function."""

    def test_default_is_text(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            assert get_log_format() == "text"

    def test_case_insensitive(self) -> None:
        with patch.dict(os.environ, {"LOG_FORMAT": "JSON"}):
            assert get_log_format() == "json"

    def test_invalid_format_defaults_to_text(self) -> None:
        with patch.dict(os.environ, {"LOG_FORMAT": "xml"}):
            assert get_log_format() == "text"


class TestJSONFormatter:
    """Tests for JSON log formatter."""

    def test_formats_as_valid_json(self) -> None:
        data = json.loads(JSONFormatter().format(make_record()))
        assert data["message"] == "Test message"
        assert data["level"] == "INFO"
        assert data["logger"] == "test.logger"
        assert "timestamp" in data

    def test_formats_message_with_args(self) -> None:
        record = make_record(msg="Tick %d: %s", args=(3, "ok"))
        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "Tick 3: ok"

    def test_lifts_agent_context(self) -> None:
        """agent_id and tick become top-level keys; other extras are grouped."""
        record = make_record(agent_id="cleaner", tick=12, corpus="cleaner")
        data = json.loads(JSONFormatter().format(record))
        assert data["agent_id"] == "cleaner"
        assert data["tick"] == 12
        assert data["extra"] == {"corpus": "cleaner"}

    def test_source_only_for_errors(self) -> None:
        formatter = JSONFormatter()
        info = json.loads(formatter.format(make_record(logging.INFO)))
        error = json.loads(formatter.format(make_record(logging.ERROR)))
        assert "source" not in info
        assert error["source"]["line"] == 42
        assert error["source"]["file"] == "/path/to/file.py"

    def test_includes_exception(self) -> None:
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = make_record(logging.ERROR)
            record.exc_info = sys.exc_info()
        data = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in data["exception"]


class TestTextFormatter:
    """Tests for text log formatter."""

    def test_formats_basic_message(self) -> None:
        output = TextFormatter(use_colors=False).format(make_record())
        assert "Test message" in output
        assert "INFO" in output

    def test_shortens_logger_name(self) -> None:
        """Logger names under senseact should be shortened."""
        record = make_record(name="senseact.engine.manager")
        output = TextFormatter(use_colors=False).format(record)
        assert "[engine.manager]" in output
        assert "senseact.engine.manager" not in output

    def test_shows_agent_context(self) -> None:
        formatter = TextFormatter(use_colors=False)
        with_tick = formatter.format(make_record(agent_id="bob", tick=5))
        without_tick = formatter.format(make_record(agent_id="bob", tick=None))
        assert "(bob@5) Test message" in with_tick
        assert "(bob) Test message" in without_tick

    def test_includes_source_for_error(self) -> None:
        output = TextFormatter(use_colors=False).format(make_record(logging.ERROR))
        assert "file.py:42" in output

    def test_no_source_for_info(self) -> None:
        output = TextFormatter(use_colors=False).format(make_record(logging.INFO))
        assert "file.py:42" not in output


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_configures_senseact_logger(self) -> None:
        configure_logging(level=logging.DEBUG, format_type="text")
        logger = logging.getLogger("senseact")
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert logger.propagate is False

    def test_uses_json_formatter(self) -> None:
        configure_logging(level=logging.INFO, format_type="json")
        logger = logging.getLogger("senseact")
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_reconfigure_replaces_handler(self) -> None:
        """Calling it twice leaves a single handler."""
        configure_logging(level=logging.INFO, format_type="text")
        configure_logging(level=logging.INFO, format_type="text")
        assert len(logging.getLogger("senseact").handlers) == 1

    def test_reads_from_environment(self) -> None:
        with patch.dict(os.environ, {"LOG_LEVEL": "WARNING", "LOG_FORMAT": "json"}):
            configure_logging()
            logger = logging.getLogger("senseact")
            assert logger.level == logging.WARNING
            assert isinstance(logger.handlers[0].formatter, JSONFormatter)


class TestGetLogger:
    """Tests for get_logger convenience function."""

    def test_prefixes_senseact(self) -> None:
        assert get_logger("my_module").name == "senseact.my_module"

    def test_preserves_senseact_prefix(self) -> None:
        assert get_logger("senseact.server").name == "senseact.server"


class TestAgentMessages:
    """Agent diagnostics reach the agents logger with their context."""

    def test_agent_messages_are_json_formatted(self) -> None:
        buffer = StringIO()
        handler = logging.StreamHandler(buffer)
        handler.setFormatter(JSONFormatter())

        logger = logging.getLogger(AGENT_LOGGER_NAME)
        previous_level = logger.level
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
        try:
            log_agent_message("elsa", "Stew ready!", tick=9)
        finally:
            logger.removeHandler(handler)
            logger.setLevel(previous_level)

        data = json.loads(buffer.getvalue().strip())
        assert data["message"] == "Stew ready!"
        assert data["agent_id"] == "elsa"
        assert data["tick"] == 9
        assert data["level"] == "DEBUG"
