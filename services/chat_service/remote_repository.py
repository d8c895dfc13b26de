"""
Remote conversation storage - Supabase tables scoped to the signed-in user.

Tables:
    conversations(id, user_id, title, persona, created_at, updated_at)
    messages(id, conversation_id, content, sender, persona, created_at)
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from supabase import AsyncClient

from services.auth_service.auth_manager import AuthService
from services.chat_service.models import Conversation, Message
from services.chat_service.repository import ConversationRepository, PersistenceError
from utils.logging_config import get_logger


def parse_timestamp(value: Optional[str]) -> datetime:
    """Parse a Postgres timestamp into naive local time, so it sorts alongside local records"""
    if not value:
        return datetime.now()
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return datetime.now()
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


class SupabaseConversationRepository(ConversationRepository):
    """
    Repository backed by the Supabase `conversations` and `messages` tables.
    """

    def __init__(self, client: AsyncClient, auth_service: AuthService):
        self.client = client
        self.auth_service = auth_service
        self.logger = get_logger(__name__)

    def _require_user(self) -> str:
        user_id = self.auth_service.user_id
        if not user_id:
            raise PersistenceError("User not authenticated")
        return user_id

    @staticmethod
    def _conversation_from_row(row: Dict[str, Any]) -> Conversation:
        return Conversation(
            id=str(row["id"]),
            title=row.get("title") or "New Conversation",
            persona=row.get("persona") or "GreenBot",
            created_at=parse_timestamp(row.get("created_at")),
            updated_at=parse_timestamp(row.get("updated_at")),
        )

    @staticmethod
    def _message_from_row(row: Dict[str, Any]) -> Message:
        return Message(
            id=str(row["id"]),
            content=row["content"],
            sender=row["sender"],
            timestamp=parse_timestamp(row.get("created_at")),
            persona=row.get("persona"),
        )

    async def list_conversations(self) -> List[Conversation]:
        user_id = self._require_user()
        try:
            response = await (
                self.client.table("conversations")
                .select("*")
                .eq("user_id", user_id)
                .order("updated_at", desc=True)
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Error fetching conversations: {e}") from e

        return [self._conversation_from_row(row) for row in response.data or []]

    async def create_conversation(self, title: str, persona: str, conversation_id: Optional[str] = None) -> str:
        # Remote ids are always assigned by the database
        user_id = self._require_user()
        try:
            response = await (
                self.client.table("conversations")
                .insert({"user_id": user_id, "title": title, "persona": persona})
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Error creating conversation: {e}") from e

        if not response.data:
            raise PersistenceError("Conversation insert returned no row")

        remote_id = str(response.data[0]["id"])
        self.logger.info(f"Created remote conversation {remote_id}")
        return remote_id

    async def load_messages(self, conversation_id: str) -> List[Message]:
        self._require_user()
        try:
            response = await (
                self.client.table("messages")
                .select("*")
                .eq("conversation_id", conversation_id)
                .order("created_at", desc=False)
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Error fetching messages: {e}") from e

        return [self._message_from_row(row) for row in response.data or []]

    async def append_message(self, conversation_id: str, message: Message) -> None:
        self._require_user()
        try:
            await (
                self.client.table("messages")
                .insert({
                    "conversation_id": conversation_id,
                    "content": message.content,
                    "sender": message.sender,
                    "persona": message.persona,
                })
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Error saving message: {e}") from e

        await self._update_conversation(conversation_id, {"updated_at": datetime.now().astimezone().isoformat()})

    async def update_title(self, conversation_id: str, title: str) -> None:
        await self._update_conversation(conversation_id, {"title": title})

    async def update_persona(self, conversation_id: str, persona: str) -> None:
        await self._update_conversation(conversation_id, {"persona": persona})

    async def _update_conversation(self, conversation_id: str, values: Dict[str, Any]) -> None:
        self._require_user()
        try:
            await (
                self.client.table("conversations")
                .update(values)
                .eq("id", conversation_id)
                .execute()
            )
        except Exception as e:
            raise PersistenceError(f"Error updating conversation {conversation_id}: {e}") from e
