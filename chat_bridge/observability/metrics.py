"""
Prometheus metrics for the bridge.

Three groups, all in the default registry:
- inbound HTTP: requests by route and status, latency, requests in flight
- sessions: admissions by result, live sessions, expirations
- engine: round trips by kind and outcome, round-trip latency

The helper functions are what the rest of the package calls; the metric
objects themselves are module-level singletons.
"""

import time
from typing import Any, Awaitable, Callable, MutableMapping, Optional

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    make_asgi_app,
)

Scope = MutableMapping[str, Any]
Message = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]

METRICS_PATH = "/metrics"

# Path label for requests no route matched (404s, scans)
UNMATCHED_PATH = "unmatched"

# =============================================================================
# Inbound HTTP
# =============================================================================

HTTP_REQUESTS_TOTAL = Counter(
    name="chat_bridge_http_requests_total",
    documentation="Inbound HTTP requests by method, route template and response status",
    labelnames=["method", "path", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    name="chat_bridge_http_request_duration_seconds",
    documentation="Time spent answering inbound HTTP requests",
    labelnames=["method", "path"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)

HTTP_REQUESTS_IN_FLIGHT = Gauge(
    name="chat_bridge_http_requests_in_flight",
    documentation="Inbound HTTP requests currently being answered",
    labelnames=["method"],
)

# =============================================================================
# Sessions
# =============================================================================

SESSION_ADMISSIONS_TOTAL = Counter(
    name="chat_bridge_session_admissions_total",
    documentation="Session lookups by result (created, reused, rejected)",
    labelnames=["result"],
)

ACTIVE_SESSIONS = Gauge(
    name="chat_bridge_active_sessions",
    documentation="Number of live bridge sessions",
)

SESSION_EXPIRATIONS_TOTAL = Counter(
    name="chat_bridge_session_expirations_total",
    documentation="Total number of expired bridge sessions",
)

# =============================================================================
# Engine
# =============================================================================

ENGINE_REQUESTS_TOTAL = Counter(
    name="chat_bridge_engine_requests_total",
    documentation="Engine requests by outcome",
    labelnames=["kind", "outcome"],
)

ENGINE_REQUEST_DURATION_SECONDS = Histogram(
    name="chat_bridge_engine_request_duration_seconds",
    documentation="Engine request duration in seconds",
    labelnames=["kind"],
    buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)


# =============================================================================
# Recording Helpers
# =============================================================================


def record_admission(result: str) -> None:
    """
    Record a session lookup.

    Args:
        result: "created", "reused" or "rejected"
    """
    SESSION_ADMISSIONS_TOTAL.labels(result=result).inc()


def set_active_sessions(count: int) -> None:
    ACTIVE_SESSIONS.set(count)


def record_expiration() -> None:
    SESSION_EXPIRATIONS_TOTAL.inc()


def record_engine_request(kind: str, outcome: str, duration: float) -> None:
    """
    Record one engine round trip.

    Args:
        kind: "send" or "endsession"
        outcome: "success", "transport_error" or "protocol_error"
        duration: Elapsed seconds
    """
    ENGINE_REQUESTS_TOTAL.labels(kind=kind, outcome=outcome).inc()
    ENGINE_REQUEST_DURATION_SECONDS.labels(kind=kind).observe(duration)


# =============================================================================
# MetricsMiddleware
# =============================================================================


def route_template(scope: Scope) -> str:
    """Path template of the route the router matched, set on the scope by the app."""
    return getattr(scope.get("route"), "path", None) or UNMATCHED_PATH


class MetricsMiddleware:
    """
    Pure ASGI middleware timing every inbound HTTP request.

    The path label is the template of the matched route, such as
    /health/ready, or "unmatched" when no route handled the request.
    Requests under the metrics mount are not measured. A request that fails
    before a response starts is counted with status 500.

    Args:
        app: The wrapped ASGI application.
        skip_prefixes: Path prefixes that are not measured.
    """

    def __init__(self, app: ASGIApp, skip_prefixes: Optional[tuple[str, ...]] = None) -> None:
        self.app = app
        self.skip_prefixes = skip_prefixes or (METRICS_PATH,)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        path = scope.get("path", "/")
        if scope["type"] != "http" or path.startswith(self.skip_prefixes):
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "GET")
        status = {"code": 500}

        async def capture_status(message: Message) -> None:
            if message["type"] == "http.response.start":
                status["code"] = message.get("status", 500)
            await send(message)

        in_flight = HTTP_REQUESTS_IN_FLIGHT.labels(method=method)
        in_flight.inc()
        started = time.perf_counter()
        try:
            await self.app(scope, receive, capture_status)
        finally:
            template = route_template(scope)
            HTTP_REQUEST_DURATION_SECONDS.labels(method=method, path=template).observe(
                time.perf_counter() - started
            )
            HTTP_REQUESTS_TOTAL.labels(method=method, path=template, status=str(status["code"])).inc()
            in_flight.dec()


# =============================================================================
# Exposition
# =============================================================================


def get_metrics_app() -> ASGIApp:
    """ASGI app serving the default registry, mounted at /metrics."""
    return make_asgi_app()


def generate_metrics() -> str:
    """The default registry in Prometheus text format."""
    return generate_latest(REGISTRY).decode("utf-8")
