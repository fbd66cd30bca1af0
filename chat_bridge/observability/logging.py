"""
Structured logging for the bridge.

Every line is one JSON object. structlog loggers and the standard library
loggers used across the package (logging.getLogger(__name__)) share one
processor chain, so engine, registry and route logs have the same shape and
carry the id of the chat turn being processed.

configure_logging() runs once at startup; tests pass force=True.
"""

import logging
import sys
from contextlib import contextmanager
from typing import Iterator, Optional, TextIO

import structlog
from structlog.contextvars import (
    bind_contextvars,
    get_contextvars,
    merge_contextvars,
    reset_contextvars,
    unbind_contextvars,
)
from structlog.typing import FilteringBoundLogger, Processor

CORRELATION_ID_KEY = "correlation_id"

# Libraries that log every request line at INFO
QUIET_LOGGERS = ("httpx", "httpcore")

_configured = False


# =============================================================================
# Turn Correlation
# =============================================================================


def set_correlation_id(correlation_id: str) -> None:
    """Tag the following log lines of the current context with a turn id."""
    bind_contextvars(**{CORRELATION_ID_KEY: correlation_id})


def get_correlation_id() -> Optional[str]:
    return get_contextvars().get(CORRELATION_ID_KEY)


def clear_correlation_id() -> None:
    unbind_contextvars(CORRELATION_ID_KEY)


@contextmanager
def correlation_id_context(correlation_id: str) -> Iterator[None]:
    """
    Scope a turn id to a block; the previous id is restored on exit.

    Example:
        >>> with correlation_id_context(turn.id):
        ...     messages = await service.handle_turn(turn)
    """
    tokens = bind_contextvars(**{CORRELATION_ID_KEY: correlation_id})
    try:
        yield
    finally:
        reset_contextvars(**tokens)


# =============================================================================
# Configuration
# =============================================================================


def _shared_processors() -> list[Processor]:
    return [
        merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
    ]


def configure_logging(
    level: str = "INFO",
    stream: Optional[TextIO] = None,
    force: bool = False,
) -> None:
    """
    Configure structlog and the standard library root logger.

    Args:
        level: Root level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Output stream (default: sys.stdout)
        force: Reconfigure even when already configured
    """
    global _configured

    if _configured and not force:
        return

    threshold = _level_number(level)
    output = stream or sys.stdout
    shared = _shared_processors()
    renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(threshold),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=output),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(output)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[structlog.stdlib.add_logger_name, *shared],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                renderer,
            ],
        )
    )
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(threshold)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True


def reset_logging() -> None:
    """Forget that logging was configured. Tests only."""
    global _configured
    _configured = False


def get_logger(
    name: str,
    stream: Optional[TextIO] = None,
    level: str = "INFO",
) -> FilteringBoundLogger:
    """
    A structlog logger bound to a name, configuring logging on first use.

    Example:
        >>> log = get_logger(__name__)
        >>> log.info("turn relayed", bubbles=2)
    """
    configure_logging(level=level, stream=stream)
    return structlog.get_logger(logger=name)


def _level_number(level: str) -> int:
    number = logging.getLevelName(level.upper())
    return number if isinstance(number, int) else logging.INFO
