"""Tests for API routes."""

import inspect

import pytest
from fastapi.testclient import TestClient

from leadbot.engine import ConversationEngine
from leadbot.errors import GenerationServiceError
from leadbot.main import app
from leadbot.policy import DialoguePolicy
from leadbot.routers.chat import chat, reset_chat, start_chat
from leadbot.sessions import SessionStore, get_session_store

from conftest import FakeGenerationService

client = TestClient(app)


@pytest.fixture
def store(scripted_profile):
    service = FakeGenerationService()
    store = SessionStore(lambda: ConversationEngine(
        profile=scripted_profile,
        service=service,
        policy=DialoguePolicy(scripted_profile, mode="scripted"),
    ))
    app.dependency_overrides[get_session_store] = lambda: store
    yield store
    app.dependency_overrides.clear()


@pytest.fixture
def failing_store(real_estate_profile):
    service = FakeGenerationService(error=GenerationServiceError("slow", kind="timeout"))
    store = SessionStore(lambda: ConversationEngine(
        profile=real_estate_profile,
        service=service,
        policy=DialoguePolicy(real_estate_profile, mode="natural"),
    ))
    app.dependency_overrides[get_session_store] = lambda: store
    yield store
    app.dependency_overrides.clear()


def test_root_endpoint():
    """Test root endpoint returns API info."""
    response = client.get("/")
    assert response.status_code == 200

    data = response.json()
    assert "message" in data
    assert data["endpoints"]["chat"] == "/chat"


def test_chat_start_returns_first_question(store):
    response = client.post("/chat/start", json={"sessionId": "s1"})
    assert response.status_code == 200

    data = response.json()
    assert data["success"] is True
    assert data["reply"] == "city?"
    assert data["isComplete"] is False
    assert data["progress"] == {"questionsAnswered": 0, "totalQuestions": 2}


def test_chat_start_without_body_mints_session(store):
    response = client.post("/chat/start")
    assert response.status_code == 200

    session_id = response.json()["sessionId"]
    assert session_id
    assert session_id in store
    assert "default" not in store


def test_visitors_without_session_id_do_not_share_turns(store):
    first = client.post("/chat", json={"message": "Mumbai"}).json()
    second = client.post("/chat", json={"message": "I am a different visitor"}).json()

    assert first["sessionId"] != second["sessionId"]
    assert second["reply"] == "city?"
    assert second["transcriptLength"] == 2
    assert len(store) == 2


def test_started_session_id_continues_conversation(store):
    session_id = client.post("/chat/start").json()["sessionId"]
    other = client.post("/chat/start").json()["sessionId"]
    assert session_id != other

    reply = client.post("/chat", json={"message": "Mumbai", "sessionId": session_id}).json()
    assert reply["sessionId"] == session_id
    assert reply["reply"] == "budget?"


def test_full_scripted_conversation(store):
    client.post("/chat/start", json={"sessionId": "s1"})

    first = client.post("/chat", json={"message": "Mumbai", "sessionId": "s1"}).json()
    assert first["reply"] == "budget?"

    final = client.post("/chat", json={"message": "50 lakhs", "sessionId": "s1"}).json()
    assert final["isComplete"] is True
    assert final["classification"]["status"] == "warm"
    assert final["classification"]["metadata"]["location"] == "Mumbai"


def test_sessions_are_isolated(store):
    client.post("/chat/start", json={"sessionId": "a"})
    client.post("/chat", json={"message": "Mumbai", "sessionId": "a"})

    other = client.post("/chat/start", json={"sessionId": "b"}).json()
    assert other["reply"] == "city?"
    assert len(store) == 2


def test_empty_message_rejected(store):
    response = client.post("/chat", json={"message": "   "})
    assert response.status_code == 400
    assert response.json()["code"] == "EMPTY_MESSAGE"


def test_missing_message_rejected(store):
    response = client.post("/chat", json={})
    assert response.status_code == 400
    assert response.json()["code"] == "EMPTY_MESSAGE"


def test_too_long_message_rejected(store):
    response = client.post("/chat", json={"message": "x" * 1001})
    assert response.status_code == 400
    assert response.json()["code"] == "MESSAGE_TOO_LONG"


def test_malformed_body_rejected(store):
    response = client.post("/chat", content="not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["code"] == "INVALID_JSON"


def test_generation_timeout_maps_to_504(failing_store):
    response = client.post("/chat", json={"message": "hello", "sessionId": "t"})
    assert response.status_code == 504
    data = response.json()
    assert data["success"] is False
    assert data["code"] == "TIMEOUT_ERROR"


def test_reset_discards_session(store):
    client.post("/chat/start", json={"sessionId": "r"})
    client.post("/chat", json={"message": "Mumbai", "sessionId": "r"})

    response = client.post("/reset", json={"sessionId": "r"})
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert "r" not in store

    restarted = client.post("/chat/start", json={"sessionId": "r"}).json()
    assert restarted["reply"] == "city?"


def test_reset_without_session_id_touches_nothing(store):
    session_id = client.post("/chat/start").json()["sessionId"]

    response = client.post("/reset")
    assert response.status_code == 200
    assert response.json()["message"] == "No conversation to reset"
    assert session_id in store


def test_chat_handlers_run_in_threadpool():
    # Generation blocks; async handlers would stall every other request.
    for handler in (chat, start_chat, reset_chat):
        assert not inspect.iscoroutinefunction(handler)
