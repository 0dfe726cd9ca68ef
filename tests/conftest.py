"""
Shared fixtures: in-memory stand-ins for the Supabase client and the LLM.
"""

import itertools
import os
import sys
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest

# Add project root to path
project_root = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
sys.path.insert(0, os.path.join(project_root, "ai_english_tutor", "src"))

from ai_english_tutor.app import TutorApp
from ai_english_tutor.auth_service import AuthService
from ai_english_tutor.config import Settings
from ai_english_tutor.content_repository import ContentRepository
from ai_english_tutor.exceptions import LLMError
from ai_english_tutor.local_store import LocalStore


# ==================== Supabase ====================

class FakeQuery:
    """Chainable query builder over FakeSupabase tables."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table = table
        self.op = "select"
        self.payload: Any = None
        self.filters: List[tuple] = []
        self.order_by: Optional[tuple] = None
        self.limit_n: Optional[int] = None

    def select(self, columns: str = "*"):
        self.op = "select"
        return self

    def insert(self, payload):
        self.op = "insert"
        self.payload = payload
        return self

    def update(self, payload):
        self.op = "update"
        self.payload = payload
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def limit(self, n):
        self.limit_n = n
        return self

    def _matches(self, row):
        return all(row.get(column) == value for column, value in self.filters)

    def execute(self):
        self.db.calls.append((self.table, self.op, list(self.filters), self.payload))
        for predicate in self.db.failures:
            if predicate(self):
                raise RuntimeError(f"simulated failure on {self.table}.{self.op}")

        rows = self.db.tables.setdefault(self.table, [])
        if self.op == "insert":
            records = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = []
            for record in records:
                row = {"id": f"{self.table}-{next(self.db.ids)}", "created_at": "2024-01-01T00:00:00+00:00"}
                row.update(record)
                rows.append(row)
                inserted.append(dict(row))
            return SimpleNamespace(data=inserted)

        if self.op == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self.payload)
                    updated.append(dict(row))
            return SimpleNamespace(data=updated)

        selected = [dict(row) for row in rows if self._matches(row)]
        if self.order_by:
            column, desc = self.order_by
            selected.sort(key=lambda r: r.get(column) or "", reverse=desc)
        if self.limit_n is not None:
            selected = selected[:self.limit_n]
        return SimpleNamespace(data=selected)


class FakeSubscription:
    def __init__(self, auth: "FakeSupabaseAuth", callback):
        self.auth = auth
        self.callback = callback

    def unsubscribe(self):
        if self.callback in self.auth.listeners:
            self.auth.listeners.remove(self.callback)


class FakeSupabaseAuth:
    """Mimics `supabase.Client.auth` for one account."""

    def __init__(self):
        self.session = None
        self.user = SimpleNamespace(id="user-1", email="learner@example.com", user_metadata={})
        self.password = "secret"
        self.listeners: List[Callable] = []
        self.notify_on_sign_in = True
        self.require_confirmation = False
        self.fail_get_session = False
        self.valid_codes = {"pkce-code"}

    def _notify(self, event):
        for listener in list(self.listeners):
            listener(event, self.session)

    def get_session(self):
        if self.fail_get_session:
            raise RuntimeError("network down")
        return self.session

    def on_auth_state_change(self, callback):
        self.listeners.append(callback)
        return FakeSubscription(self, callback)

    def sign_in_with_password(self, credentials):
        if credentials["password"] != self.password:
            raise RuntimeError("Invalid login credentials")
        self.session = SimpleNamespace(access_token="token", user=self.user)
        if self.notify_on_sign_in:
            self._notify("SIGNED_IN")
        return SimpleNamespace(user=self.user, session=self.session)

    def sign_up(self, credentials):
        self.sign_up_payload = credentials
        self.user = SimpleNamespace(id="user-2", email=credentials["email"], user_metadata={})
        if self.require_confirmation:
            return SimpleNamespace(user=self.user, session=None)
        self.session = SimpleNamespace(access_token="token", user=self.user)
        self._notify("SIGNED_IN")
        return SimpleNamespace(user=self.user, session=self.session)

    def exchange_code_for_session(self, params):
        if params["auth_code"] not in self.valid_codes:
            raise RuntimeError("invalid flow state, no valid flow state found")
        self.valid_codes.discard(params["auth_code"])
        self.start_session()
        return SimpleNamespace(user=self.user, session=self.session)

    def sign_out(self):
        self.session = None
        self._notify("SIGNED_OUT")

    def get_user(self):
        return SimpleNamespace(user=self.user if self.session else None)

    def start_session(self):
        """Sign in without going through the password flow."""
        self.session = SimpleNamespace(access_token="token", user=self.user)
        self._notify("SIGNED_IN")


class FakeSupabase:
    def __init__(self):
        self.tables: Dict[str, List[dict]] = {}
        self.calls: List[tuple] = []
        self.failures: List[Callable[[FakeQuery], bool]] = []
        self.ids = itertools.count(1)
        self.auth = FakeSupabaseAuth()

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def fail_when(self, predicate: Callable[[FakeQuery], bool]) -> None:
        self.failures.append(predicate)

    def calls_to(self, table: str, op: Optional[str] = None) -> List[tuple]:
        return [c for c in self.calls if c[0] == table and (op is None or c[1] == op)]


# ==================== LLM ====================

class FakeLLM:
    """LLMClient stand-in; replies come from `responder(system_prompt, conversation)`."""

    def __init__(self, responder: Optional[Callable[[str, Any], str]] = None, configured: bool = True):
        self.responder = responder or (lambda system, conversation: "analysis")
        self.configured = configured
        self.calls: List[Dict[str, Any]] = []
        self.fail = False

    async def complete(self, system_prompt, conversation, temperature=None):
        self.calls.append({"system": system_prompt, "conversation": conversation, "temperature": temperature})
        if self.fail:
            raise LLMError("API Error: 500")
        return self.responder(system_prompt, conversation)


# ==================== Fixtures ====================

@pytest.fixture
def supabase():
    return FakeSupabase()


@pytest.fixture
def store():
    return LocalStore()


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def auth(supabase):
    return AuthService(supabase)


@pytest.fixture
def repository(supabase):
    return ContentRepository(supabase)


@pytest.fixture
def settings():
    return Settings(auth_settle_timeout=0.05)


@pytest.fixture
def tutor_app(llm, store, auth, repository, settings):
    return TutorApp(llm=llm, store=store, auth=auth, repository=repository, settings=settings)


def sample_lesson_payload(question_count: int = 3) -> Dict[str, Any]:
    """Lesson JSON in the shape the lesson prompt asks the LLM for."""
    return {
        "article": {
            "id": "gen-1",
            "title": "Remote Work and Productivity",
            "readTime": "4 MIN READ",
            "type": "article",
            "content": ["Paragraph one.", "Paragraph two.", "Paragraph three."],
        },
        "questions": [
            {
                "id": i + 1,
                "text": f"Question {i + 1}?",
                "correctId": 2,
                "explanation": "Because the text says so.",
                "options": [
                    {"id": 1, "label": "A", "text": "Alpha"},
                    {"id": 2, "label": "B", "text": "Bravo"},
                    {"id": 3, "label": "C", "text": "Charlie"},
                    {"id": 4, "label": "D", "text": "Delta"},
                ],
            }
            for i in range(question_count)
        ],
    }
