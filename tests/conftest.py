"""
Shared fakes for the service tests
"""

import itertools
import logging
from datetime import datetime, timedelta, timezone

import pytest

from config.app_config import AppConfig
from infrastructure.storage.key_value_store import MemoryKeyValueStore
from services.ai_service.llm_client import CompletionClient
from services.auth_service.auth_manager import AuthService
from services.auth_service.models import AuthSession
from utils.logging_config import ErrorTracker


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Records one chained PostgREST-style query against a FakeSupabaseClient"""

    def __init__(self, client, table):
        self.client = client
        self.table = table
        self.action = "select"
        self.values = None
        self.filters = []
        self.order_by = None

    def select(self, columns="*"):
        self.action = "select"
        return self

    def insert(self, values):
        self.action = "insert"
        self.values = values
        return self

    def update(self, values):
        self.action = "update"
        self.values = values
        return self

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def _matches(self, row):
        return all(str(row.get(column)) == str(value) for column, value in self.filters)

    async def execute(self):
        self.client.calls.append((self.table, self.action, self.values))
        if (self.table, self.action) in self.client.failures:
            raise RuntimeError(f"{self.table} {self.action} failed")

        rows = self.client.tables.setdefault(self.table, [])

        if self.action == "insert":
            row = dict(self.values)
            row.setdefault("id", f"{self.table}-{next(self.client.ids)}")
            stamp = self.client.next_timestamp()
            row.setdefault("created_at", stamp)
            row.setdefault("updated_at", stamp)
            rows.append(row)
            return FakeResponse([dict(row)])

        matching = [row for row in rows if self._matches(row)]
        if self.action == "update":
            for row in matching:
                row.update(self.values)
            return FakeResponse([dict(row) for row in matching])

        if self.order_by is not None:
            column, desc = self.order_by
            matching.sort(key=lambda row: row.get(column) or "", reverse=desc)
        return FakeResponse([dict(row) for row in matching])


class FakeSupabaseClient:
    """In-memory stand-in for the async Supabase client's table API"""

    def __init__(self):
        self.tables = {}
        self.calls = []
        self.failures = set()
        self.ids = itertools.count(1)
        self._clock = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def next_timestamp(self):
        self._clock += timedelta(seconds=1)
        return self._clock.isoformat()

    def table(self, name):
        return FakeQuery(self, name)


class FakeAuthService(AuthService):
    """Auth service whose session is switched directly by the test"""

    def sign_in_as(self, user_id="user-1", email="user@example.com"):
        self._set_session(AuthSession(user_id=user_id, email=email))

    async def sign_in(self, email, password):
        self.sign_in_as(email=email)
        return self.session


class ScriptedCompletionClient(CompletionClient):
    """Returns queued replies (or raises queued errors) instead of calling a provider"""

    def __init__(self, config, replies=None):
        super().__init__(config=config)
        self.replies = list(replies or [])
        self.calls = []

    async def complete(self, turns):
        self.calls.append(list(turns))
        reply = self.replies.pop(0) if self.replies else "Here is some green advice."
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def app_config():
    config = AppConfig(environment="test", debug=True)
    config.logging.enable_file_logging = False
    config.api.deepseek_api_key = "test-deepseek-key"
    return config


@pytest.fixture
def store():
    return MemoryKeyValueStore()


@pytest.fixture
def supabase_client():
    return FakeSupabaseClient()


@pytest.fixture
def auth_service():
    return FakeAuthService()


@pytest.fixture
def completion_client(app_config):
    return ScriptedCompletionClient(app_config)


@pytest.fixture
def error_tracker():
    return ErrorTracker(logging.getLogger("greenbot.tests.errors"))
