"""
End-to-End Tests for the HTTP host

Exercises the FastAPI endpoints against a TutorApp built on the in-memory
Supabase and LLM fakes.
"""

import json
import os
import sys

import pytest
from fastapi.testclient import TestClient

# Add backend to path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
sys.path.insert(0, os.path.join(project_root, "backend"))

import main as backend_main
from ai_english_tutor import prompts
from ai_english_tutor.writing_pipeline import PHASES
from conftest import FakeLLM, sample_lesson_payload


def responder(system, conversation):
    if system == prompts.JSON_TUTOR_SYSTEM_PROMPT:
        return json.dumps(sample_lesson_payload(2))
    for phase, spec in PHASES.items():
        if system == spec.system_prompt:
            return f"{phase.value} feedback"
    return "Happy to help!"


@pytest.fixture
def llm():
    return FakeLLM(responder)


@pytest.fixture
def client(tutor_app, monkeypatch):
    monkeypatch.setattr(backend_main, "_tutor_app", tutor_app)
    with TestClient(backend_main.app) as test_client:
        yield test_client


def sign_in(client):
    response = client.post("/api/auth/sign-in", json={"email": "learner@example.com", "password": "secret"})
    assert response.status_code == 200
    return response.json()


class TestNavigationEndpoints:
    def test_health(self, client):
        body = client.get("/").json()
        assert body["status"] == "ok"

    def test_startup_routes_to_auth(self, client):
        state = client.get("/api/state").json()
        assert state["current_view"] == "auth"
        assert state["show_bottom_nav"] is False

    def test_gated_navigation_then_sign_in(self, client):
        state = client.post("/api/navigate", json={"view": "writing-coach"}).json()
        assert state["current_view"] == "auth"
        assert state["pending_redirect"] == "writing-coach"

        body = sign_in(client)

        assert body["success"] is True
        assert body["state"]["current_view"] == "writing-coach"
        assert body["state"]["pending_redirect"] is None

    def test_unknown_view_rejected(self, client):
        assert client.post("/api/navigate", json={"view": "settings"}).status_code == 422

    def test_back_from_reader(self, client):
        client.post("/api/navigate", json={"view": "recommended-content"})
        client.post("/api/navigate", json={"view": "article-reader"})

        state = client.post("/api/back").json()

        assert state["current_view"] == "recommended-content"
        assert state["show_bottom_nav"] is True

    def test_bad_credentials(self, client):
        body = client.post("/api/auth/sign-in", json={"email": "learner@example.com", "password": "nope"}).json()
        assert body["success"] is False
        assert body["error"] == "Invalid login credentials"


class TestSessionGate:
    @pytest.mark.parametrize("method,path", [
        ("get", "/api/writing"),
        ("post", "/api/writing/phases/style"),
        ("post", "/api/writing/save"),
        ("get", "/api/reading/lesson"),
        ("post", "/api/reading/new"),
    ])
    def test_coach_endpoints_require_session(self, client, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 401

    def test_no_llm_call_without_session(self, client, llm):
        draft = client.put("/api/writing/draft", json={"text": "The dog run fast."})
        phase = client.post("/api/writing/phases/style")

        assert draft.status_code == 401
        assert phase.status_code == 401
        assert llm.calls == []

    def test_history_stays_open(self, client):
        assert client.get("/api/writing/history").json() == {"essays": []}

    def test_callback_exchanges_code(self, client):
        client.post("/api/navigate", json={"view": "writing-coach"})

        state = client.get("/api/auth/callback", params={"code": "pkce-code"}).json()

        assert state["session"] == "present"
        assert state["current_view"] == "writing-coach"
        assert client.get("/api/writing").status_code == 200

    def test_callback_error_routes_to_auth(self, client):
        state = client.get("/api/auth/callback", params={"error_description": "Link expired"}).json()

        assert state["current_view"] == "auth"
        assert state["session"] == "absent"


class TestWritingEndpoints:
    def test_phase_cached_per_draft(self, client, llm):
        sign_in(client)
        client.post("/api/navigate", json={"view": "writing-coach"})
        client.put("/api/writing/draft", json={"text": "The dog run fast."})

        first = client.post("/api/writing/phases/style").json()
        second = client.post("/api/writing/phases/style").json()

        assert first["text"] == "style feedback"
        assert second["from_cache"] is True
        assert len(llm.calls) == 1

    def test_unknown_phase_404(self, client):
        sign_in(client)
        assert client.post("/api/writing/phases/grammar").status_code == 404

    def test_empty_draft_message(self, client):
        sign_in(client)
        body = client.post("/api/writing/phases/evaluation").json()
        assert body["error"] == "Please write something first!"

    def test_save_after_sign_out_rejected(self, client, supabase):
        sign_in(client)
        client.put("/api/writing/draft", json={"text": "Essay"})
        client.post("/api/auth/sign-out")

        response = client.post("/api/writing/save")

        assert response.status_code == 401
        assert supabase.calls_to("essays") == []

    def test_save_and_history(self, client):
        sign_in(client)
        client.post("/api/navigate", json={"view": "writing-coach"})
        client.put("/api/writing/draft", json={"text": "My essay"})
        client.post("/api/writing/phases/refinement")

        body = client.post("/api/writing/save").json()
        essays = client.get("/api/writing/history").json()["essays"]

        assert body["success"] is True
        assert essays[0]["content"] == "My essay"
        assert json.loads(essays[0]["ai_refinement"]) == "refinement feedback"

    def test_file_upload(self, client):
        sign_in(client)
        body = client.post("/api/writing/file", json={"filename": "a.txt", "content": "hello"}).json()
        assert body == {"success": True, "message": "File loaded!"}
        assert client.get("/api/writing").json()["draft"] == "hello"


class TestContentEndpoints:
    def test_recommended_failure_is_503(self, client, supabase):
        supabase.fail_when(lambda q: q.table == "recommended_articles")
        assert client.get("/api/recommended").status_code == 503

    def test_recommended(self, client, supabase):
        supabase.tables["recommended_articles"] = [
            {"id": "n1", "title": "News", "type": "News", "is_pushed_to_client": True, "pulled_at": "2024-01-01"},
        ]
        body = client.get("/api/recommended").json()

        assert [row["id"] for row in body["news"]] == ["n1"]
        assert body["blogs"] == []
        assert body["lastUpdated"]

    def test_reading_quiz_flow(self, client):
        sign_in(client)
        client.post("/api/navigate", json={"view": "reading-coach"})
        lesson = client.get("/api/reading/lesson").json()
        assert lesson["current_question"]["id"] == 1

        client.post("/api/reading/answer", json={"option_id": 2})
        first = client.post("/api/reading/submit").json()
        assert first["submitted"] is False
        client.post("/api/reading/answer", json={"option_id": 2})
        done = client.post("/api/reading/submit").json()

        assert done["submitted"] is True
        assert done["analysis"]["headline"] == "Perfect!"
        assert done["state"]["current_view"] == "quiz-analysis"
        assert client.get("/api/reading/analysis").json()["percentage"] == 100

    def test_answer_without_lesson_404(self, client):
        sign_in(client)
        assert client.post("/api/reading/answer", json={"option_id": 1}).status_code == 404

    def test_read_again_unknown_attempt(self, client):
        assert client.post("/api/history/missing/read").status_code == 404

    def test_chat(self, client):
        body = client.post("/api/chat", json={"content": "Hi"}).json()

        assert body["reply"]["text"] == "Happy to help!"
        assert [m["sender"] for m in body["messages"]] == ["ai", "user", "ai"]
