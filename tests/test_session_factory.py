"""
Tests for per-browser session wiring
"""

import asyncio
import json

import pytest

from infrastructure.storage.key_value_store import new_session_token, open_session_store
from services.auth_service.auth_manager import AnonymousAuthService
from services.quiz_service.quiz_manager import QuizService
from services.session_factory import build_session

PRIVATE_QUESTION = "My private medical question"
ALICE_KEY = "alice-secret-key"


def all_text(session):
    return [message.content for message in session.manager.messages] + [
        item.title for item in session.manager.chat_history
    ]


class TestBuildSession:

    @pytest.fixture(autouse=True)
    def _setup(self, app_config, tmp_path, error_tracker, supabase_client, auth_service, completion_client):
        self.config = app_config
        self.config.api.deepseek_api_key = ""
        self.base_dir = str(tmp_path / "local_store")
        self.error_tracker = error_tracker
        self.client = supabase_client
        self.auth = auth_service
        self.scripted = completion_client

    def open_store(self):
        return open_session_store(self.base_dir, new_session_token())

    def test_guest_session_without_client(self):
        session = asyncio.run(build_session(self.config, self.open_store(), error_tracker=self.error_tracker))

        assert isinstance(session.auth_service, AnonymousAuthService)
        assert session.quiz_service is None
        assert session.manager.remote_repository is None
        assert len(session.manager.chat_history) == 1

    def test_client_enables_remote_storage_and_quizzes(self):
        session = asyncio.run(build_session(
            self.config, self.open_store(),
            client=self.client, auth_service=self.auth,
            error_tracker=self.error_tracker
        ))

        assert isinstance(session.quiz_service, QuizService)
        assert session.manager.remote_repository is not None

    def test_browser_sessions_do_not_share_guest_data(self):
        async def scenario():
            alice = await build_session(self.config, self.open_store(), error_tracker=self.error_tracker)
            self.scripted.replies = ["Please see a doctor."]
            alice.manager.completion_client = self.scripted
            alice.completion_client.save_credentials(ALICE_KEY)
            await alice.manager.send_message(PRIVATE_QUESTION)
            await alice.manager.flush()

            bob = await build_session(
                self.config, self.open_store(),
                client=self.client, auth_service=self.auth, error_tracker=self.error_tracker
            )
            self.auth.sign_in_as("bob", "bob@example.com")
            await bob.manager.flush()
            return alice, bob

        alice, bob = asyncio.run(scenario())

        assert PRIVATE_QUESTION in all_text(alice)
        assert PRIVATE_QUESTION not in all_text(bob)
        assert len(bob.manager.chat_history) == 1
        assert PRIVATE_QUESTION not in json.dumps(self.client.tables.get("messages", []))
        assert bob.completion_client.get_api_key() != ALICE_KEY
        assert alice.completion_client.get_api_key() == ALICE_KEY

    def test_same_token_reopens_the_same_conversations(self):
        token = new_session_token()

        async def scenario():
            first = await build_session(self.config, open_session_store(self.base_dir, token))
            first.manager.completion_client = self.scripted
            await first.manager.send_message("Cycling to work")
            await first.manager.flush()
            return await build_session(self.config, open_session_store(self.base_dir, token))

        reopened = asyncio.run(scenario())

        assert "Cycling to work" in all_text(reopened)
