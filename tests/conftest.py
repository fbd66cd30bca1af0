"""
Pytest configuration for the chat bridge test suite.

This configuration sets up:
- Test markers for categorization
- Settings fixtures with safe defaults
- A scripted fake engine served through httpx.MockTransport
- A TestClient for the whole application wired to the fake engine
"""

import json
import logging
from typing import Any, Callable, Iterator, Optional

import httpx
import pytest
import structlog
from fastapi.testclient import TestClient

from chat_bridge.core.config import Settings, get_settings
from chat_bridge.main import create_app
from chat_bridge.observability.logging import reset_logging


ENGINE_URL = "http://engine.test/bot/"


# =============================================================================
# Test Markers
# =============================================================================


def pytest_configure(config):
    """
    Register custom markers for test categorization.

    - unit: Low gear tests for individual components
    - integration: High gear tests wiring the application together
    - slow: Tests that take a long time to run
    """
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Integration tests for service interactions")
    config.addinivalue_line("markers", "slow: Tests that take a long time to run")


# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings configured for testing.

    - Engine on a fake host served by MockTransport
    - Directory lookup disabled
    - Short session TTL
    """
    return Settings(
        service_name="chat-bridge-test",
        environment="development",
        engine_endpoint_url=ENGINE_URL,
        session_timeout_seconds=600.0,
        max_parallel_sessions=10,
        explicit_data=False,
    )


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Clear the settings singleton before and after each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# =============================================================================
# Fake Engine
# =============================================================================


class FakeEngine:
    """
    Scripted engine behind httpx.MockTransport.

    Records every request and answers with the queued responses, falling
    back to a plain "hi there" reply. Requests to an endsession path always
    get an empty 200.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.endsession_requests: list[httpx.Request] = []
        self._responses: list[Callable[[httpx.Request], httpx.Response]] = []

    def queue(self, response: "httpx.Response | Callable[[httpx.Request], httpx.Response]") -> None:
        if isinstance(response, httpx.Response):
            self._responses.append(lambda request, r=response: r)
        else:
            self._responses.append(response)

    def queue_reply(
        self,
        text: str = "hi there",
        session_id: Optional[str] = "SID1",
        headers: Optional[list[tuple[str, str]]] = None,
        parameters: Optional[dict[str, Any]] = None,
    ) -> None:
        document: dict[str, Any] = {"status": 0, "output": {"text": text}}
        if parameters is not None:
            document["output"]["parameters"] = parameters
        if session_id is not None:
            document["sessionId"] = session_id
        self.queue(httpx.Response(200, json=document, headers=headers or []))

    def handler(self, request: httpx.Request) -> httpx.Response:
        if "/endsession" in request.url.path:
            self.endsession_requests.append(request)
            return httpx.Response(200, text="")
        self.requests.append(request)
        if self._responses:
            return self._responses.pop(0)(request)
        return httpx.Response(
            200,
            text=json.dumps({"status": 0, "output": {"text": "hi there"}, "sessionId": "SID1"}),
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine()


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def restore_logging() -> Iterator[None]:
    """Undo the logging setup an application startup performs."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    reset_logging()
    structlog.reset_defaults()
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def app_client(test_settings: Settings, fake_engine: FakeEngine) -> Iterator[TestClient]:
    """TestClient for the full application with the lifespan running."""
    app = create_app(test_settings, transport=fake_engine.transport)
    with TestClient(app) as client:
        yield client
