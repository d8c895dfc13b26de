"""
Chat service data models for conversations and messages.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Dict, Optional, Any
import uuid

LOCAL_ID_PREFIX = "local-"
LOADING_ID_PREFIX = "loading-"


def generate_local_id() -> str:
    """Provisional id for a conversation not (yet) stored remotely"""
    return f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex}"


def generate_message_id(kind: str) -> str:
    return f"{kind}-{uuid.uuid4().hex}"


def is_local_id(conversation_id: str) -> bool:
    return conversation_id.startswith(LOCAL_ID_PREFIX)


@dataclass
class Message:
    """Individual message in a conversation"""
    id: str
    content: str
    sender: str  # "user" or "bot"
    timestamp: datetime = field(default_factory=datetime.now)
    persona: Optional[str] = None  # persona display name, bot messages only

    @property
    def is_placeholder(self) -> bool:
        return self.id.startswith(LOADING_ID_PREFIX)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "sender": self.sender,
            "timestamp": self.timestamp.isoformat(),
            "persona": self.persona,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Message':
        timestamp = data.get("timestamp")
        return cls(
            id=str(data["id"]),
            content=data["content"],
            sender=data["sender"],
            timestamp=datetime.fromisoformat(timestamp) if timestamp else datetime.now(),
            persona=data.get("persona"),
        )


@dataclass
class ChatHistoryItem:
    """Sidebar entry for a conversation"""
    id: str
    title: str
    date: str
    selected: bool = False


@dataclass
class Conversation:
    """Conversation record as stored by a repository"""
    id: str
    title: str
    persona: str
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    messages: List[Message] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "persona": self.persona,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "messages": [message.to_dict() for message in self.messages],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Conversation':
        now = datetime.now().isoformat()
        return cls(
            id=str(data["id"]),
            title=data.get("title") or "New Conversation",
            persona=data.get("persona") or "GreenBot",
            created_at=datetime.fromisoformat(data.get("created_at") or now),
            updated_at=datetime.fromisoformat(data.get("updated_at") or now),
            messages=[Message.from_dict(item) for item in data.get("messages", [])],
        )
