"""
Tests for structured logging.

Covers:
- JSON output for structlog and standard library loggers
- correlation id propagation
- level filtering
"""

import io
import json
import logging

import pytest
import structlog

from chat_bridge.observability.logging import (
    clear_correlation_id,
    configure_logging,
    correlation_id_context,
    get_correlation_id,
    get_logger,
    reset_logging,
    set_correlation_id,
)


@pytest.fixture(autouse=True)
def unconfigured_logging():
    """Start every test from an unconfigured state."""
    reset_logging()
    yield
    clear_correlation_id()


def lines(stream: io.StringIO) -> list[dict]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


# =============================================================================
# JSON Output
# =============================================================================


class TestJSONOutput:
    def test_structlog_logger_outputs_json(self) -> None:
        captured = io.StringIO()
        logger = get_logger("test", stream=captured)

        logger.info("test message", bubbles=2)

        [entry] = lines(captured)
        assert entry["event"] == "test message"
        assert entry["bubbles"] == 2
        assert entry["level"] == "info"
        assert entry["logger"] == "test"
        assert "timestamp" in entry

    def test_stdlib_logger_outputs_json(self) -> None:
        captured = io.StringIO()
        configure_logging(stream=captured, force=True)

        logging.getLogger("chat_bridge.sample").warning("engine %s unreachable", "node-1")

        [entry] = lines(captured)
        assert entry["event"] == "engine node-1 unreachable"
        assert entry["level"] == "warning"
        assert entry["logger"] == "chat_bridge.sample"

    def test_configure_is_idempotent_without_force(self) -> None:
        first, second = io.StringIO(), io.StringIO()
        configure_logging(stream=first)
        configure_logging(stream=second)

        logging.getLogger("chat_bridge.sample").info("once")

        assert len(lines(first)) == 1
        assert second.getvalue() == ""


# =============================================================================
# Levels
# =============================================================================


class TestLevels:
    def test_debug_filtered_at_info(self) -> None:
        captured = io.StringIO()
        configure_logging(level="INFO", stream=captured, force=True)

        logging.getLogger("chat_bridge.sample").debug("hidden")
        structlog.get_logger().debug("hidden too")

        assert captured.getvalue() == ""

    def test_debug_emitted_at_debug(self) -> None:
        captured = io.StringIO()
        configure_logging(level="DEBUG", stream=captured, force=True)

        logging.getLogger("chat_bridge.sample").debug("shown")

        assert lines(captured)[0]["event"] == "shown"

    def test_httpx_request_lines_quieted(self) -> None:
        configure_logging(level="DEBUG", stream=io.StringIO(), force=True)
        assert logging.getLogger("httpx").level == logging.WARNING


# =============================================================================
# Correlation ID
# =============================================================================


class TestCorrelationId:
    def test_set_and_clear(self) -> None:
        set_correlation_id("turn-1")
        assert get_correlation_id() == "turn-1"
        clear_correlation_id()
        assert get_correlation_id() is None

    def test_context_restores_previous_value(self) -> None:
        set_correlation_id("outer")
        with correlation_id_context("inner"):
            assert get_correlation_id() == "inner"
        assert get_correlation_id() == "outer"

    def test_correlation_id_added_to_entries(self) -> None:
        captured = io.StringIO()
        configure_logging(stream=captured, force=True)

        with correlation_id_context("turn-42"):
            logging.getLogger("chat_bridge.sample").info("relaying")
        logging.getLogger("chat_bridge.sample").info("idle")

        first, second = lines(captured)
        assert first["correlation_id"] == "turn-42"
        assert "correlation_id" not in second
