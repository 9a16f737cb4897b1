from __future__ import annotations

import pytest

from live_chat import create_app
from live_chat.config import ChatConfig
from live_chat.faq import FAQ_DATABASE
from live_chat.redis_manager import SUPPORT_QUEUE_KEY, outbox_key


@pytest.fixture
def app(fake_redis, clock):
    app = create_app(
        "testing",
        redis_client=fake_redis,
        scheduler_factory=lambda loop: clock,
        chat_config=ChatConfig(),
    )
    yield app
    app.extensions["chat_runtime"].stop()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def advance(app, clock):
    runtime = app.extensions["chat_runtime"]

    def _advance(seconds: float) -> int:
        return runtime.call(clock.advance, seconds)

    return _advance


@pytest.fixture
def session_id(client) -> str:
    resp = client.post("/rs/chat/session", json={"session_id": "web-1", "path": "/products"})
    assert resp.status_code == 201
    return resp.get_json()["session_id"]


def _bubbles(payload):
    return payload["view"]["window"]["bubbles"]


def test_create_session_starts_closed(client):
    resp = client.post("/rs/chat/session", json={})
    body = resp.get_json()
    assert resp.status_code == 201
    assert body["session_id"]
    assert body["status"] == "idle"
    assert body["view"]["kind"] == "launcher"
    assert body["view"]["launcher"]["test_id"] == "chat-widget"


def test_open_shows_welcome(client, session_id):
    body = client.post(f"/rs/chat/{session_id}/open").get_json()
    assert body["view"]["kind"] == "window"
    bubbles = _bubbles(body)
    assert len(bubbles) == 1
    assert bubbles[0]["author"] == "ShopBot"
    assert len(bubbles[0]["actions"]) == 4


def test_message_roundtrip(client, session_id, advance, fake_redis):
    client.post(f"/rs/chat/{session_id}/open")
    body = client.post(f"/rs/chat/{session_id}/message", json={"message": "How long does shipping take?"}).get_json()
    assert [b["test_id"] for b in _bubbles(body)] == ["message-bot", "message-user", "typing-indicator"]

    advance(1.0)
    body = client.get(f"/rs/chat/{session_id}?input=thanks").get_json()
    last = _bubbles(body)[-1]
    assert last["content"] == FAQ_DATABASE[0].answer
    assert body["view"]["window"]["send_disabled"] is False

    outbox = fake_redis.lists[outbox_key(session_id)]
    assert len(outbox) == 1


def test_blank_message_rejected(client, session_id):
    resp = client.post(f"/rs/chat/{session_id}/message", json={"message": "   "})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Message cannot be empty"


def test_unknown_session_is_404(client):
    resp = client.get("/rs/chat/does-not-exist")
    assert resp.status_code == 404
    body = resp.get_json()
    assert body["error"] == "Chat session not found"
    assert body["code"] == "LC-101"


def test_quick_action_and_missing_action(client, session_id):
    resp = client.post(f"/rs/chat/{session_id}/quick-action", json={})
    assert resp.status_code == 400

    client.post(f"/rs/chat/{session_id}/open")
    body = client.post(f"/rs/chat/{session_id}/quick-action", json={"action": "faq"}).get_json()
    assert [a["action"] for a in _bubbles(body)[-1]["actions"]] == ["shipping", "returns", "order-status", "payment"]


def test_agent_handoff(client, session_id, advance, fake_redis):
    client.post(f"/rs/chat/{session_id}/open")
    body = client.post(f"/rs/chat/{session_id}/agent").get_json()
    assert body["status"] == "waiting"
    assert body["view"]["window"]["header"]["subtitle"] == "Connecting..."
    assert len(fake_redis.lists[SUPPORT_QUEUE_KEY]) == 1

    advance(2.0)
    body = client.get(f"/rs/chat/{session_id}").get_json()
    assert body["status"] == "connected"
    assert body["agent"]["name"] == "Sarah"
    assert body["view"]["window"]["header"]["title"] == "Sarah"


def test_minimize_and_unread_badge(client, session_id, advance):
    client.post(f"/rs/chat/{session_id}/open")
    client.post(f"/rs/chat/{session_id}/minimize")
    client.post(f"/rs/chat/{session_id}/message", json={"message": "hello"})
    advance(1.0)

    body = client.get(f"/rs/chat/{session_id}").get_json()
    assert body["view"]["kind"] == "minimized"
    assert body["unread_count"] == 1

    body = client.post(f"/rs/chat/{session_id}/maximize").get_json()
    assert body["unread_count"] == 0
    assert body["view"]["kind"] == "window"


def test_history_skips_typing_indicator(client, session_id):
    client.post(f"/rs/chat/{session_id}/message", json={"message": "hello"})
    body = client.get(f"/rs/chat/{session_id}/history").get_json()
    assert [m["role"] for m in body["history"]] == ["user"]


def test_end_and_clear(client, session_id):
    client.post(f"/rs/chat/{session_id}/open")
    assert client.post(f"/rs/chat/{session_id}/end").get_json()["status"] == "closed"
    body = client.post(f"/rs/chat/{session_id}/clear").get_json()
    assert body["status"] == "idle"
    assert len(_bubbles(body)) == 1


def test_reset_drops_session(client, session_id):
    assert client.post("/rs/reset", json={}).status_code == 400

    resp = client.post("/rs/reset", json={"session_id": session_id})
    assert resp.status_code == 200
    assert resp.get_json()["message"] == "Session reset successfully"
    assert client.get(f"/rs/chat/{session_id}").status_code == 404


def test_health(client, fake_redis):
    resp = client.get("/rs/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "healthy"

    fake_redis.down = True
    assert client.get("/rs/health").status_code == 500


def test_chat_ui_page(client):
    resp = client.get("/chat/ui")
    assert resp.status_code == 200
    assert resp.mimetype == "text/html"
