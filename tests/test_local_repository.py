"""
Tests for guest (local) conversation storage and deletion tombstones
"""

import asyncio
import json
import threading
from datetime import datetime, timedelta
from unittest.mock import Mock

import pytest

from infrastructure.storage.key_value_store import MemoryKeyValueStore
from services.chat_service.local_repository import DeletedConversationStore, LocalConversationRepository
from services.chat_service.models import Conversation, Message
from services.chat_service.repository import PersistenceError

KEY = "greenbot-unauthenticated-chats"


def user_message(content="Hi"):
    return Message(id="msg-1", content=content, sender="user")


class TestLocalConversationRepository:

    def setup_method(self):
        self.store = MemoryKeyValueStore()
        self.repository = LocalConversationRepository(self.store, KEY)

    def test_create_and_list(self):
        conversation_id = asyncio.run(self.repository.create_conversation("New Conversation", "GreenBot"))
        conversations = asyncio.run(self.repository.list_conversations())

        assert conversation_id.startswith("local-")
        assert [c.id for c in conversations] == [conversation_id]
        assert conversations[0].persona == "GreenBot"

    def test_create_with_given_id_is_idempotent(self):
        asyncio.run(self.repository.create_conversation("First", "GreenBot", conversation_id="local-a"))
        asyncio.run(self.repository.create_conversation("Second", "GreenBot", conversation_id="local-a"))

        conversations = asyncio.run(self.repository.list_conversations())
        assert len(conversations) == 1
        assert conversations[0].title == "First"

    def test_append_message_bumps_updated_at_and_reorders(self):
        older = Conversation(id="local-old", title="Old", persona="GreenBot",
                             updated_at=datetime.now() - timedelta(days=2))
        newer = Conversation(id="local-new", title="New", persona="GreenBot",
                             updated_at=datetime.now() - timedelta(days=1))
        self.store.set_item(KEY, json.dumps([newer.to_dict(), older.to_dict()]))

        asyncio.run(self.repository.append_message("local-old", user_message()))

        conversations = asyncio.run(self.repository.list_conversations())
        assert [c.id for c in conversations] == ["local-old", "local-new"]
        assert conversations[0].messages[0].content == "Hi"

    def test_append_to_unknown_conversation_creates_it(self):
        asyncio.run(self.repository.append_message("local-x", user_message()))

        messages = asyncio.run(self.repository.load_messages("local-x"))
        assert [m.content for m in messages] == ["Hi"]

    def test_load_messages_of_unknown_conversation_is_empty(self):
        assert asyncio.run(self.repository.load_messages("local-missing")) == []

    def test_update_title_and_persona(self):
        asyncio.run(self.repository.create_conversation("New Conversation", "GreenBot", conversation_id="local-a"))
        asyncio.run(self.repository.update_title("local-a", "Composting tips"))
        asyncio.run(self.repository.update_persona("local-a", "Waste Wizard"))

        conversation = asyncio.run(self.repository.get_conversation("local-a"))
        assert conversation.title == "Composting tips"
        assert conversation.persona == "Waste Wizard"

    def test_update_missing_conversation_raises(self):
        with pytest.raises(PersistenceError):
            asyncio.run(self.repository.update_title("local-missing", "Title"))
        with pytest.raises(PersistenceError):
            asyncio.run(self.repository.update_persona("local-missing", "GreenBot"))

    def test_remove_conversation(self):
        asyncio.run(self.repository.create_conversation("A", "GreenBot", conversation_id="local-a"))
        asyncio.run(self.repository.create_conversation("B", "GreenBot", conversation_id="local-b"))
        asyncio.run(self.repository.remove_conversation("local-a"))

        assert [c.id for c in asyncio.run(self.repository.list_conversations())] == ["local-b"]

    def test_corrupt_blob_reads_as_empty(self):
        self.store.set_item(KEY, "{not json")
        assert asyncio.run(self.repository.list_conversations()) == []

    def test_non_list_blob_reads_as_empty(self):
        self.store.set_item(KEY, json.dumps({"id": "local-a"}))
        assert asyncio.run(self.repository.list_conversations()) == []

    def test_storage_failure_raises_persistence_error(self):
        failing = Mock()
        failing.get_item.return_value = None
        failing.set_item.side_effect = OSError("disk full")
        repository = LocalConversationRepository(failing, KEY)

        with pytest.raises(PersistenceError):
            asyncio.run(repository.create_conversation("Title", "GreenBot"))

    def test_concurrent_writes_are_not_lost(self):
        messages = [Message(id=f"msg-{n}", content=f"Message {n}", sender="user") for n in range(5)]

        async def scenario():
            await self.repository.create_conversation("A", "GreenBot", conversation_id="local-a")
            await asyncio.gather(*(self.repository.append_message("local-a", m) for m in messages))
            return await self.repository.load_messages("local-a")

        loaded = asyncio.run(scenario())
        assert [m.content for m in loaded] == [f"Message {n}" for n in range(5)]

    def test_append_messages_writes_once(self):
        store = Mock(wraps=MemoryKeyValueStore())
        repository = LocalConversationRepository(store, KEY)
        messages = [user_message("Hi"), Message(id="msg-2", content="Hello", sender="bot", persona="GreenBot")]

        asyncio.run(repository.append_messages("local-a", messages))

        assert store.set_item.call_count == 1
        assert [m.content for m in asyncio.run(repository.load_messages("local-a"))] == ["Hi", "Hello"]

    def test_store_io_runs_off_the_event_loop_thread(self):
        io_threads = []

        class RecordingStore(MemoryKeyValueStore):
            def get_item(self, key):
                io_threads.append(threading.get_ident())
                return super().get_item(key)

            def set_item(self, key, value):
                io_threads.append(threading.get_ident())
                super().set_item(key, value)

        repository = LocalConversationRepository(RecordingStore(), KEY)

        async def scenario():
            await repository.create_conversation("A", "GreenBot", conversation_id="local-a")
            await repository.list_conversations()
            return threading.get_ident()

        loop_thread = asyncio.run(scenario())
        assert io_threads
        assert loop_thread not in io_threads


class TestDeletedConversationStore:

    def setup_method(self):
        self.store = MemoryKeyValueStore()
        self.deleted = DeletedConversationStore(self.store, "greenbot-deleted-chats")

    def test_add_and_contains(self):
        self.deleted.add("local-a")
        self.deleted.add("local-a")

        assert self.deleted.contains("local-a")
        assert not self.deleted.contains("local-b")
        assert json.loads(self.store.get_item("greenbot-deleted-chats")) == ["local-a"]

    def test_survives_new_instance(self):
        self.deleted.add("remote-1")
        reopened = DeletedConversationStore(self.store, "greenbot-deleted-chats")

        assert reopened.get_ids() == {"remote-1"}

    def test_corrupt_list_reads_as_empty(self):
        self.store.set_item("greenbot-deleted-chats", "oops")
        assert self.deleted.get_ids() == set()

    def test_write_failure_raises_persistence_error(self):
        failing = Mock()
        failing.get_item.return_value = None
        failing.set_item.side_effect = OSError("read-only")

        with pytest.raises(PersistenceError):
            DeletedConversationStore(failing).add("local-a")


if __name__ == "__main__":
    pytest.main([__file__])
