"""
Unit Tests for the supporting services

LocalStore, Settings, LLMClient, AuthService and ChatSession.
"""

import json
from types import SimpleNamespace

import pytest
from openai import APIConnectionError
import httpx

from ai_english_tutor.auth_service import CONFIRM_EMAIL_MESSAGE, DEFAULT_SIGNUP_LEVEL, AuthService
from ai_english_tutor.chat import ChatSession, display_name
from ai_english_tutor.config import DEFAULT_DEEPSEEK_BASE_URL, Settings
from ai_english_tutor.exceptions import ConfigurationError, LLMError, PersistenceError
from ai_english_tutor.llm_client import LLMClient
from ai_english_tutor.local_store import LocalStore
from ai_english_tutor.tutor_ai import TutorAI
from conftest import FakeLLM


class TestLocalStore:
    def test_values_survive_reopen(self, tmp_path):
        path = tmp_path / "store.json"
        LocalStore(path).set("key", {"a": [1, 2]})

        assert LocalStore(path).get("key") == {"a": [1, 2]}
        assert not path.with_suffix(".tmp").exists()

    def test_remove_and_prefix_keys(self, tmp_path):
        store = LocalStore(tmp_path / "store.json")
        store.set("daily:1", 1)
        store.set("daily:2", 2)
        store.set("other", 3)
        store.remove("daily:1")

        assert store.keys("daily:") == ["daily:2"]

    def test_unserializable_value_rejected(self):
        store = LocalStore()
        with pytest.raises(TypeError):
            store.set("key", object())
        assert store.get("key") is None

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json")
        assert LocalStore(path).keys() == []

        path.write_text(json.dumps([1, 2]))
        assert LocalStore(path).keys() == []


class TestSettings:
    def test_defaults(self, monkeypatch):
        for key in ("SUPABASE_URL", "SUPABASE_ANON_KEY", "DEEPSEEK_API_KEY", "DEEPSEEK_BASE_URL",
                    "VITE_SUPABASE_URL", "VITE_SUPABASE_ANON_KEY", "VITE_DEEPSEEK_API_KEY",
                    "AUTH_SETTLE_TIMEOUT", "RECOMMENDED_LIMIT", "RECOMMENDED_DELIVERY_MODE", "LOG_LEVEL"):
            monkeypatch.delenv(key, raising=False)

        settings = Settings.from_env(load_env_file=False)

        assert settings.deepseek_base_url == DEFAULT_DEEPSEEK_BASE_URL
        assert settings.auth_settle_timeout == 1.5
        assert settings.recommended_limit == 3
        assert not settings.supabase_configured
        assert not settings.llm_configured

    def test_vite_prefixed_names_accepted(self, monkeypatch):
        monkeypatch.delenv("DEEPSEEK_API_KEY", raising=False)
        monkeypatch.setenv("VITE_DEEPSEEK_API_KEY", "sk-test")
        monkeypatch.setenv("RECOMMENDED_DELIVERY_MODE", "Undelivered")

        settings = Settings.from_env(load_env_file=False)

        assert settings.deepseek_api_key == "sk-test"
        assert settings.recommended_delivery_mode == "undelivered"


def completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeCompletions:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error:
            raise self.error
        return self.response


def fake_openai(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


class TestLLMClient:
    @pytest.mark.asyncio
    async def test_prepends_system_prompt(self):
        completions = FakeCompletions(completion("Hello!"))
        llm = LLMClient(client=fake_openai(completions), model="deepseek-chat")

        reply = await llm.complete("Be nice.", "Hi", temperature=0.3)

        assert reply == "Hello!"
        assert completions.kwargs["messages"] == [
            {"role": "system", "content": "Be nice."},
            {"role": "user", "content": "Hi"},
        ]
        assert completions.kwargs["temperature"] == 0.3

    @pytest.mark.asyncio
    async def test_missing_key(self):
        with pytest.raises(ConfigurationError):
            await LLMClient(api_key=None).complete("system", "prompt")

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self):
        error = APIConnectionError(request=httpx.Request("POST", "https://api.deepseek.com/chat/completions"))
        llm = LLMClient(client=fake_openai(FakeCompletions(error=error)))

        with pytest.raises(LLMError):
            await llm.complete("system", "prompt")

    @pytest.mark.asyncio
    async def test_empty_content_rejected(self):
        llm = LLMClient(client=fake_openai(FakeCompletions(completion(None))))
        with pytest.raises(LLMError):
            await llm.complete("system", "prompt")


class TestAuthService:
    @pytest.mark.asyncio
    async def test_sign_in_failure_reports_message(self, auth):
        result = await auth.sign_in("learner@example.com", "wrong")

        assert not result.success
        assert result.error == "Invalid login credentials"

    @pytest.mark.asyncio
    async def test_sign_up_sends_profile_defaults(self, auth, supabase):
        result = await auth.sign_up("new.learner@example.com", "pw")

        assert result.session_started
        data = supabase.auth.sign_up_payload["options"]["data"]
        assert data == {"name": "new.learner", "level": DEFAULT_SIGNUP_LEVEL}

    @pytest.mark.asyncio
    async def test_sign_up_pending_confirmation(self, auth, supabase):
        supabase.auth.require_confirmation = True

        result = await auth.sign_up("new@example.com", "pw")

        assert result.success
        assert not result.session_started
        assert result.message == CONFIRM_EMAIL_MESSAGE

    @pytest.mark.asyncio
    async def test_exchange_code_starts_session(self, auth, supabase):
        result = await auth.exchange_code("pkce-code")

        assert result.success
        assert result.session_started
        assert auth.get_current_session() is not None

    @pytest.mark.asyncio
    async def test_exchange_code_failure_reports_message(self, auth, supabase):
        result = await auth.exchange_code("expired")

        assert not result.success
        assert "invalid flow state" in result.error
        assert auth.get_current_session() is None

    @pytest.mark.asyncio
    async def test_user_id_requires_session(self, auth, supabase):
        assert await auth.get_user_id() is None
        supabase.auth.start_session()
        assert await auth.get_user_id() == "user-1"

    @pytest.mark.asyncio
    async def test_lookup_failure_is_persistence_error(self, auth, supabase):
        supabase.auth.fail_get_session = True
        with pytest.raises(PersistenceError):
            await auth.get_user()

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        auth = AuthService(None)
        assert not auth.configured
        with pytest.raises(ConfigurationError):
            await auth.get_user()

    def test_subscription_forwards_session(self, auth, supabase):
        seen = []
        unsubscribe = auth.subscribe(seen.append)

        supabase.auth.start_session()
        unsubscribe()
        supabase.auth.sign_out()

        assert len(seen) == 1
        assert seen[0].access_token == "token"


class TestChatSession:
    def test_greeting(self):
        chat = ChatSession(TutorAI(FakeLLM()), "Maria")
        assert chat.messages[0].text == "Hi Maria! Ready to practice your conversation skills today?"

    def test_display_name(self):
        assert display_name(None) == "friend"
        assert display_name(SimpleNamespace(email="sam@example.com", user_metadata={})) == "sam"
        assert display_name(SimpleNamespace(email="sam@example.com", user_metadata={"full_name": "Sam Lee"})) == "Sam Lee"

    @pytest.mark.asyncio
    async def test_send_appends_user_and_reply(self):
        llm = FakeLLM(lambda system, history: f"reply to {history[-1]['content']}")
        chat = ChatSession(TutorAI(llm))

        reply = await chat.send("How are you?")

        assert reply.text == "reply to How are you?"
        assert [m.sender for m in chat.messages] == ["ai", "user", "ai"]
        assert llm.calls[0]["conversation"][0]["role"] == "assistant"

    @pytest.mark.asyncio
    async def test_blank_input_ignored(self):
        llm = FakeLLM()
        chat = ChatSession(TutorAI(llm))

        await chat.send("   ")

        assert len(chat.messages) == 1
        assert llm.calls == []
