"""
Local conversation storage for signed-out users.

All guest conversations live in a single JSON blob under one key; every
mutation reads the blob, changes it and writes the whole thing back.
Store IO runs in a worker thread and mutations are serialized per repository.
"""

import asyncio
import json
from datetime import datetime
from typing import List, Optional, Set

from services.chat_service.models import Conversation, Message, generate_local_id
from services.chat_service.repository import ConversationRepository, PersistenceError
from infrastructure.storage.key_value_store import KeyValueStore
from utils.logging_config import get_logger


class LocalConversationRepository(ConversationRepository):
    """
    Repository backed by a key-value store.
    """

    def __init__(self, store: KeyValueStore, key: str = "greenbot-unauthenticated-chats"):
        self.store = store
        self.key = key
        self.logger = get_logger(__name__)
        self._lock = asyncio.Lock()

    def _read(self) -> List[Conversation]:
        """Load the blob; unreadable data is treated as an empty history"""
        try:
            raw = self.store.get_item(self.key)
        except OSError as e:
            raise PersistenceError(f"Error reading local conversations: {e}") from e

        if not raw:
            return []

        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("expected a list of conversations")
            return [Conversation.from_dict(item) for item in data]
        except (ValueError, KeyError, TypeError) as e:
            self.logger.warning(f"Discarding unreadable local conversations: {e}")
            return []

    def _write(self, conversations: List[Conversation]) -> None:
        payload = json.dumps([conversation.to_dict() for conversation in conversations], ensure_ascii=False)
        try:
            self.store.set_item(self.key, payload)
        except OSError as e:
            raise PersistenceError(f"Error writing local conversations: {e}") from e

    @staticmethod
    def _find(conversations: List[Conversation], conversation_id: str) -> Optional[Conversation]:
        for conversation in conversations:
            if conversation.id == conversation_id:
                return conversation
        return None

    async def list_conversations(self) -> List[Conversation]:
        conversations = await asyncio.to_thread(self._read)
        conversations.sort(key=lambda conversation: conversation.updated_at, reverse=True)
        return conversations

    async def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        return self._find(await asyncio.to_thread(self._read), conversation_id)

    async def create_conversation(self, title: str, persona: str, conversation_id: Optional[str] = None) -> str:
        conversation_id = conversation_id or generate_local_id()

        def create() -> None:
            conversations = self._read()
            if self._find(conversations, conversation_id) is None:
                conversations.insert(0, Conversation(id=conversation_id, title=title, persona=persona))
                self._write(conversations)
                self.logger.debug(f"Created local conversation {conversation_id}")

        async with self._lock:
            await asyncio.to_thread(create)
        return conversation_id

    async def load_messages(self, conversation_id: str) -> List[Message]:
        conversation = self._find(await asyncio.to_thread(self._read), conversation_id)
        if conversation is None:
            return []
        return list(conversation.messages)

    async def append_message(self, conversation_id: str, message: Message) -> None:
        await self.append_messages(conversation_id, [message])

    async def append_messages(self, conversation_id: str, messages: List[Message]) -> None:
        """Append several messages with a single write of the blob"""
        if not messages:
            return

        def append() -> None:
            conversations = self._read()
            conversation = self._find(conversations, conversation_id)

            if conversation is None:
                # A conversation whose creation never landed is recreated on first write
                conversation = Conversation(
                    id=conversation_id,
                    title="New Conversation",
                    persona=messages[0].persona or "GreenBot"
                )
                conversations.insert(0, conversation)

            conversation.messages.extend(messages)
            conversation.updated_at = datetime.now()
            self._write(conversations)

        async with self._lock:
            await asyncio.to_thread(append)

    async def _update(self, conversation_id: str, **fields) -> None:
        def update() -> None:
            conversations = self._read()
            conversation = self._find(conversations, conversation_id)
            if conversation is None:
                raise PersistenceError(f"Local conversation not found: {conversation_id}")

            for name, value in fields.items():
                setattr(conversation, name, value)
            self._write(conversations)

        async with self._lock:
            await asyncio.to_thread(update)

    async def update_title(self, conversation_id: str, title: str) -> None:
        await self._update(conversation_id, title=title, updated_at=datetime.now())

    async def update_persona(self, conversation_id: str, persona: str) -> None:
        await self._update(conversation_id, persona=persona)

    async def remove_conversation(self, conversation_id: str) -> None:
        """Drop a conversation from the blob (used after migrating it remotely)"""
        def remove() -> None:
            conversations = self._read()
            remaining = [conversation for conversation in conversations if conversation.id != conversation_id]
            if len(remaining) != len(conversations):
                self._write(remaining)

        async with self._lock:
            await asyncio.to_thread(remove)


class DeletedConversationStore:
    """
    Tombstones for deleted conversations, kept so reloads never bring them back.
    """

    def __init__(self, store: KeyValueStore, key: str = "greenbot-deleted-chats"):
        self.store = store
        self.key = key
        self.logger = get_logger(__name__)

    def get_ids(self) -> Set[str]:
        try:
            raw = self.store.get_item(self.key)
        except OSError as e:
            self.logger.warning(f"Error reading deleted conversations: {e}")
            return set()

        if not raw:
            return set()

        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("expected a list of ids")
            return {str(item) for item in data}
        except ValueError as e:
            self.logger.warning(f"Discarding unreadable deleted-conversation list: {e}")
            return set()

    def contains(self, conversation_id: str) -> bool:
        return conversation_id in self.get_ids()

    def add(self, conversation_id: str) -> None:
        ids = self.get_ids()
        if conversation_id in ids:
            return
        ids.add(conversation_id)
        try:
            self.store.set_item(self.key, json.dumps(sorted(ids)))
        except OSError as e:
            raise PersistenceError(f"Error saving deleted conversation {conversation_id}: {e}") from e
