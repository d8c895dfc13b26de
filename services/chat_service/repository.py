"""
Persistence contract shared by the local and remote conversation stores.
"""

from typing import List, Optional

from services.chat_service.models import Conversation, Message


class PersistenceError(Exception):
    """A conversation store could not be read or written"""
    pass


class ConversationRepository:
    """
    Async interface the conversation manager talks to.

    Implementations raise PersistenceError for any storage failure; callers
    decide how to recover.
    """

    async def list_conversations(self) -> List[Conversation]:
        raise NotImplementedError

    async def create_conversation(self, title: str, persona: str, conversation_id: Optional[str] = None) -> str:
        raise NotImplementedError

    async def load_messages(self, conversation_id: str) -> List[Message]:
        raise NotImplementedError

    async def append_message(self, conversation_id: str, message: Message) -> None:
        raise NotImplementedError

    async def append_messages(self, conversation_id: str, messages: List[Message]) -> None:
        for message in messages:
            await self.append_message(conversation_id, message)

    async def update_title(self, conversation_id: str, title: str) -> None:
        raise NotImplementedError

    async def update_persona(self, conversation_id: str, persona: str) -> None:
        raise NotImplementedError
