"""
Observability Package

This package provides observability infrastructure including:
- Structured JSON logging (structlog, stdlib loggers routed through it)
- Prometheus metrics for sessions, engine calls and HTTP requests
"""

from chat_bridge.observability.logging import (
    clear_correlation_id,
    configure_logging,
    correlation_id_context,
    get_correlation_id,
    get_logger,
    set_correlation_id,
)
from chat_bridge.observability.metrics import (
    MetricsMiddleware,
    generate_metrics,
    get_metrics_app,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
    "correlation_id_context",
    "MetricsMiddleware",
    "generate_metrics",
    "get_metrics_app",
]
