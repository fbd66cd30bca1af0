"""
Tests for POST /api/messages.

Covers:
- relaying a message activity and rendering the engine answer
- ignoring non-message activities
- 422 on malformed bodies, 503 before startup
- the /metrics mount
"""

import httpx
from fastapi.testclient import TestClient

from chat_bridge.main import create_app
from chat_bridge.services.bridge import SESSION_LIMIT_TEXT


def message(text: str = "hello", sender: str = "29:a") -> dict:
    return {
        "type": "message",
        "id": "act-1",
        "text": text,
        "from": {"id": sender, "aadObjectId": f"aad-{sender}"},
    }


class TestPostMessage:
    def test_relays_text(self, app_client: TestClient, fake_engine) -> None:
        response = app_client.post("/api/messages", json=message("hello"))

        assert response.status_code == 200
        assert response.json() == {
            "activities": [{"type": "message", "text": "hi there", "attachments": []}]
        }
        assert len(fake_engine.requests) == 1

    def test_card_attachment_uses_camel_case(self, app_client: TestClient, fake_engine) -> None:
        fake_engine.queue_reply("Pick one", parameters={"msbotframework": '{"type": "AdaptiveCard"}'})

        activities = app_client.post("/api/messages", json=message()).json()["activities"]

        assert activities[0]["text"] == "Pick one"
        assert activities[1]["attachments"] == [
            {
                "contentType": "application/vnd.microsoft.card.adaptive",
                "content": {"type": "AdaptiveCard"},
            }
        ]

    def test_session_id_is_reused(self, app_client: TestClient, fake_engine) -> None:
        app_client.post("/api/messages", json=message("one"))
        app_client.post("/api/messages", json=message("two"))

        assert [str(r.url) for r in fake_engine.requests] == [
            "http://engine.test/bot/",
            "http://engine.test/bot/;jsessionid=SID1",
        ]

    def test_engine_failure_message(self, app_client: TestClient, fake_engine) -> None:
        fake_engine.queue(httpx.Response(500))

        activities = app_client.post("/api/messages", json=message()).json()["activities"]

        assert activities == [
            {"type": "message", "text": "The engine failed to respond", "attachments": []}
        ]

    def test_non_message_activity_ignored(self, app_client: TestClient, fake_engine) -> None:
        response = app_client.post("/api/messages", json={"type": "conversationUpdate"})

        assert response.status_code == 200
        assert response.json() == {"activities": []}
        assert fake_engine.requests == []

    def test_malformed_body(self, app_client: TestClient) -> None:
        response = app_client.post("/api/messages", json={"type": "message", "from": "nobody"})
        assert response.status_code == 422

    def test_session_limit(self, test_settings, fake_engine) -> None:
        settings = test_settings.model_copy(update={"max_parallel_sessions": 1})

        with TestClient(create_app(settings, transport=fake_engine.transport)) as client:
            client.post("/api/messages", json=message(sender="29:a"))
            activities = client.post("/api/messages", json=message(sender="29:b")).json()["activities"]

        assert activities[0]["text"] == SESSION_LIMIT_TEXT

    def test_unavailable_before_startup(self, test_settings, fake_engine) -> None:
        client = TestClient(create_app(test_settings, transport=fake_engine.transport))

        response = client.post("/api/messages", json=message())

        assert response.status_code == 503


class TestShutdown:
    def test_live_sessions_ended_on_shutdown(self, test_settings, fake_engine) -> None:
        with TestClient(create_app(test_settings, transport=fake_engine.transport)) as client:
            client.post("/api/messages", json=message())

        [request] = fake_engine.endsession_requests
        assert str(request.url) == "http://engine.test/bot/endsession;jsessionid=SID1"


class TestMetricsEndpoint:
    def test_metrics_exposed(self, app_client: TestClient) -> None:
        app_client.post("/api/messages", json=message())

        response = app_client.get("/metrics/")

        assert response.status_code == 200
        assert "chat_bridge_engine_requests_total" in response.text
