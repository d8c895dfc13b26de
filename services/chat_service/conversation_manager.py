"""
Conversation manager service - owns the open conversation and keeps it in step with storage.

Every operation runs in two phases: the in-memory state (messages, chat history,
selected conversation) is updated first, then persistence runs as a detached task
that either confirms silently or reconciles the state when it finishes.
Signed-in users are stored in Supabase, guests in the local key-value store.
"""

import asyncio
import re
from datetime import datetime
from typing import Any, Awaitable, Dict, List, Optional, Set, Union

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from config.app_config import AppConfig, get_config
from services.ai_service.llm_client import CompletionClient, CompletionError
from services.auth_service.auth_manager import AuthService
from services.chat_service.local_repository import DeletedConversationStore, LocalConversationRepository
from services.chat_service.models import (
    ChatHistoryItem,
    Conversation,
    Message,
    generate_local_id,
    generate_message_id,
    is_local_id,
)
from services.chat_service.personas import Persona, PersonaType, get_persona
from services.chat_service.repository import ConversationRepository, PersistenceError
from services.quiz_service.quiz_manager import QuizService, quiz_result_message
from utils.logging_config import (
    ErrorTracker,
    get_error_tracker,
    get_logger,
    log_conversation_event,
    log_user_interaction,
)

_SENTENCE_END = re.compile(r"[.!?](?=\s|$)")


def derive_title(content: str, max_length: int = 30) -> str:
    """
    Title from a first user message: the first sentence or the first
    `max_length` characters, whichever is shorter.
    """
    text = " ".join(content.split())
    match = _SENTENCE_END.search(text)
    first_sentence = text[:match.end()] if match else text
    if len(first_sentence) <= max_length:
        return first_sentence
    return text[:max_length].rstrip() + "..."


class ConversationManager:
    """
    Service for managing conversation state and operations.
    Handles conversation creation, switching, sending, persona changes and deletion.
    """

    def __init__(
        self,
        local_repository: LocalConversationRepository,
        deleted_store: DeletedConversationStore,
        completion_client: CompletionClient,
        auth_service: Optional[AuthService] = None,
        remote_repository: Optional[ConversationRepository] = None,
        quiz_service: Optional[QuizService] = None,
        config: Optional[AppConfig] = None,
        error_tracker: Optional[ErrorTracker] = None,
        initial_persona: Union[PersonaType, str] = PersonaType.GREENBOT
    ):
        self.logger = get_logger(__name__)
        self.config = config or get_config()
        self.error_tracker = error_tracker or get_error_tracker()

        self.local_repository = local_repository
        self.remote_repository = remote_repository
        self.deleted_store = deleted_store
        self.completion_client = completion_client
        self.auth_service = auth_service
        self.quiz_service = quiz_service

        self.current_persona: PersonaType = get_persona(initial_persona).id
        self.messages: List[Message] = []
        self.chat_history: List[ChatHistoryItem] = []
        self.current_conversation_id: Optional[str] = None
        self.is_authenticated = bool(auth_service and auth_service.is_authenticated)
        self.is_loading = False
        self.is_selecting = False
        self.is_quiz_open = False

        self._pending: Set[asyncio.Task] = set()
        self._creating: Dict[str, asyncio.Task] = {}
        self._resolved_ids: Dict[str, str] = {}
        self._deleted_ids: Set[str] = set()
        self._unsubscribe = None

    async def initialize(self) -> None:
        """Pick up the auth state, follow its changes and load the history"""
        if self.auth_service is not None:
            self.is_authenticated = self.auth_service.is_authenticated
            self._unsubscribe = self.auth_service.subscribe(self._on_auth_change)
        await self.load_history()

    def dispose(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def flush(self) -> None:
        """Wait until every detached persistence task has finished"""
        current = asyncio.current_task()
        while True:
            pending = [task for task in self._pending if task is not current and not task.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    def _on_auth_change(self, authenticated: bool) -> None:
        self._schedule(self.set_authenticated(authenticated), "auth_change")

    @property
    def persona(self) -> Persona:
        return get_persona(self.current_persona)

    def _remote_available(self) -> bool:
        return self.is_authenticated and self.remote_repository is not None

    def _repository_for(self, conversation_id: str) -> ConversationRepository:
        if self._remote_available() and not is_local_id(conversation_id):
            return self.remote_repository
        return self.local_repository

    def _deleted(self) -> Set[str]:
        return self._deleted_ids | self.deleted_store.get_ids()

    def _today(self) -> str:
        return datetime.now().strftime(self.config.ui.date_format)

    def _bot_message(self, content: str, kind: str = "msg", persona: Optional[Persona] = None) -> Message:
        persona = persona or self.persona
        return Message(
            id=generate_message_id(kind),
            content=content,
            sender="bot",
            persona=persona.display_name
        )

    def _welcome_message(self) -> Message:
        return self._bot_message(self.persona.welcome_message, kind="welcome")

    def _schedule(self, coro: Awaitable, description: str) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._pending.add(task)
        task.add_done_callback(lambda finished: self._on_task_done(finished, description))
        return task

    def _on_task_done(self, task: asyncio.Task, description: str) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"Background task '{description}' failed", exc_info=error)
            self.error_tracker.track_error(error, context=description)

    def _select_item(self, conversation_id: str) -> None:
        for item in self.chat_history:
            item.selected = item.id == conversation_id

    def _replace_message(self, message_id: str, replacement: Message) -> bool:
        for index, message in enumerate(self.messages):
            if message.id == message_id:
                self.messages[index] = replacement
                return True
        return False

    async def _resolve_id(self, conversation_id: str) -> str:
        """Map a provisional id to its server id, waiting for creation if it is in flight"""
        task = self._creating.get(conversation_id)
        if task is not None:
            return await task
        return self._resolved_ids.get(conversation_id, conversation_id)

    def _reconcile_id(self, provisional_id: str, remote_id: str) -> None:
        self._resolved_ids[provisional_id] = remote_id
        for item in self.chat_history:
            if item.id == provisional_id:
                item.id = remote_id
        if self.current_conversation_id == provisional_id:
            self.current_conversation_id = remote_id
        if provisional_id in self._deleted():
            self._tombstone(remote_id)
        log_conversation_event(self.logger, "synced", remote_id, provisional_id=provisional_id)

    def _tombstone(self, conversation_id: str) -> None:
        self._deleted_ids.add(conversation_id)
        try:
            self.deleted_store.add(conversation_id)
        except PersistenceError as e:
            self.error_tracker.track_error(e, context="delete_chat")

    async def _create_local_conversation(self, conversation_id: str, title: str, persona_name: str,
                                         messages: List[Message]) -> str:
        try:
            await self.local_repository.create_conversation(title, persona_name, conversation_id=conversation_id)
            await self.local_repository.append_messages(conversation_id, messages)
        except PersistenceError as e:
            self.error_tracker.track_error(e, context="new_chat.local")
        return conversation_id

    async def _create_remote_conversation(self, provisional_id: str, title: str, persona_name: str,
                                          welcome: Message) -> str:
        try:
            remote_id = await self.remote_repository.create_conversation(title, persona_name)
        except PersistenceError as e:
            self.error_tracker.track_error(e, context="new_chat.remote")
            self.logger.warning(f"Keeping conversation {provisional_id} local after remote failure")
            return await self._create_local_conversation(provisional_id, title, persona_name, [welcome])

        self._reconcile_id(provisional_id, remote_id)
        try:
            await self.remote_repository.append_message(remote_id, welcome)
        except PersistenceError as e:
            self.error_tracker.track_error(e, context="new_chat.welcome")
        return remote_id

    async def _persist_messages(self, conversation_id: str, messages: List[Message]) -> None:
        resolved = await self._resolve_id(conversation_id)
        repository = self._repository_for(resolved)
        try:
            await repository.append_messages(resolved, messages)
        except PersistenceError as e:
            self.error_tracker.track_error(e, context="persist_messages", conversation_id=resolved)

    async def _persist_title(self, conversation_id: str, title: str) -> None:
        resolved = await self._resolve_id(conversation_id)
        try:
            await self._repository_for(resolved).update_title(resolved, title)
        except PersistenceError as e:
            self.error_tracker.track_error(e, context="update_title", conversation_id=resolved)

    async def _persist_persona(self, conversation_id: str, persona_name: str) -> None:
        resolved = await self._resolve_id(conversation_id)
        try:
            await self._repository_for(resolved).update_persona(resolved, persona_name)
        except PersistenceError as e:
            self.error_tracker.track_error(e, context="update_persona", conversation_id=resolved)

    async def _save_quiz_session(self, persona_name: str, score: int, total: int) -> None:
        try:
            await self.quiz_service.save_session(persona_name, score, total)
        except PersistenceError as e:
            self.error_tracker.track_error(e, context="complete_quiz")

    async def _save_quiz_response(self, question_id: str, selected_answer: str, is_correct: bool) -> None:
        try:
            await self.quiz_service.save_response(question_id, selected_answer, is_correct)
        except PersistenceError as e:
            self.error_tracker.track_error(e, context="quiz_response", question_id=question_id)

    async def load_history(self) -> None:
        """Rebuild the history from storage and open the most recent conversation"""
        self.is_loading = True
        try:
            conversations = await self._list_visible_conversations()
            self.chat_history = [
                ChatHistoryItem(
                    id=conversation.id,
                    title=conversation.title,
                    date=conversation.updated_at.strftime(self.config.ui.date_format)
                )
                for conversation in conversations
            ]
            self.current_conversation_id = None

            if self.chat_history:
                await self._open_conversation(self.chat_history[0].id)
            else:
                await self.new_chat()

            self.logger.info(f"Loaded {len(self.chat_history)} conversations")
        finally:
            self.is_loading = False

    async def _list_visible_conversations(self) -> List[Conversation]:
        conversations: List[Conversation] = []

        if self._remote_available():
            try:
                conversations.extend(await self.remote_repository.list_conversations())
            except PersistenceError as e:
                self.error_tracker.track_error(e, context="load_history.remote")

        # Guest conversations, plus any that fell back to local storage while signed in
        try:
            conversations.extend(await self.local_repository.list_conversations())
        except PersistenceError as e:
            self.error_tracker.track_error(e, context="load_history.local")

        deleted = self._deleted()
        visible = [conversation for conversation in conversations if conversation.id not in deleted]
        visible.sort(key=lambda conversation: conversation.updated_at, reverse=True)
        return visible

    async def new_chat(self) -> str:
        """
        Start a new conversation and make it the selected one

        Returns:
            The conversation id (provisional until a remote create succeeds)
        """
        conversation_id = generate_local_id()
        title = self.config.ui.new_conversation_title
        persona = self.persona
        welcome = self._welcome_message()

        for item in self.chat_history:
            item.selected = False
        self.chat_history.insert(0, ChatHistoryItem(
            id=conversation_id,
            title=title,
            date=self._today(),
            selected=True
        ))
        self.current_conversation_id = conversation_id
        self.messages = [welcome]

        if self._remote_available():
            create = self._create_remote_conversation(conversation_id, title, persona.display_name, welcome)
        else:
            create = self._create_local_conversation(conversation_id, title, persona.display_name, [welcome])
        # Later writes to this conversation wait for the create to land
        task = self._schedule(create, "new_chat")
        self._creating[conversation_id] = task
        task.add_done_callback(lambda _: self._creating.pop(conversation_id, None))

        log_conversation_event(self.logger, "created", conversation_id, persona=persona.display_name)
        return conversation_id

    async def select_chat(self, conversation_id: str) -> None:
        """Open a conversation from the history"""
        conversation_id = self._resolved_ids.get(conversation_id, conversation_id)
        if self.is_selecting or conversation_id == self.current_conversation_id:
            return

        known = any(item.id == conversation_id for item in self.chat_history)
        if not known or conversation_id in self._deleted():
            self.logger.warning(f"Conversation not found: {conversation_id}")
            self.messages = [self._bot_message(self.config.ui.load_error_text, kind="error")]
            return

        await self._open_conversation(conversation_id)

    async def _open_conversation(self, conversation_id: str) -> None:
        self.is_selecting = True
        try:
            self._select_item(conversation_id)
            self.current_conversation_id = conversation_id
            self.messages = await self._load_conversation_messages(conversation_id)
            log_conversation_event(self.logger, "selected", conversation_id)
        finally:
            self.is_selecting = False

    async def _load_conversation_messages(self, conversation_id: str) -> List[Message]:
        resolved = await self._resolve_id(conversation_id)
        try:
            messages = await self._repository_for(resolved).load_messages(resolved)
        except PersistenceError as e:
            self.error_tracker.track_error(e, context="select_chat", conversation_id=resolved)
            return [self._bot_message(self.config.ui.load_error_text, kind="error")]

        if not messages:
            welcome = self._welcome_message()
            self._schedule(self._persist_messages(resolved, [welcome]), "select_chat.welcome")
            return [welcome]

        # Continue with whichever persona spoke last in this conversation
        for message in reversed(messages):
            if message.sender == "bot" and message.persona:
                self.current_persona = get_persona(message.persona).id
                break

        return messages

    def _build_transcript(self, persona: Persona, prior: List[Message], content: str) -> List[BaseMessage]:
        turns: List[BaseMessage] = [SystemMessage(content=persona.system_prompt)]
        for message in prior:
            if message.sender == "user":
                turns.append(HumanMessage(content=message.content))
            else:
                turns.append(AIMessage(content=message.content))
        turns.append(HumanMessage(content=content))
        return turns

    async def _request_reply(self, turns: List[BaseMessage]) -> str:
        """Ask the completion client; failures come back as displayable text"""
        try:
            return await self.completion_client.complete(turns)
        except CompletionError as e:
            self.error_tracker.track_error(e, context="send_message")
            return f"Sorry, I encountered an error: {e}"
        except Exception as e:
            self.logger.exception("Unexpected error while requesting a reply")
            self.error_tracker.track_error(e, context="send_message")
            return f"Sorry, I encountered an error: {e}"

    async def send_message(self, content: str) -> Optional[Message]:
        """
        Send a user message and wait for the assistant's reply

        Returns:
            The bot message that replaced the placeholder, or None if nothing was sent
        """
        text = (content or "").strip()
        if not text or self.current_conversation_id is None:
            return None

        conversation_id = self.current_conversation_id
        persona = self.persona
        is_first_exchange = not any(message.sender == "user" for message in self.messages)
        prior = [message for message in self.messages if not message.is_placeholder]
        prior = prior[-self.config.llm.history_limit:]

        user_message = Message(id=generate_message_id("msg"), content=text, sender="user")
        placeholder = Message(
            id=generate_message_id("loading"),
            content=self.config.ui.thinking_text,
            sender="bot",
            persona=persona.display_name
        )
        self.messages.append(user_message)
        self.messages.append(placeholder)
        log_user_interaction(self.logger, "send_message", conversation_id=conversation_id)

        if is_first_exchange:
            title = derive_title(text, self.config.ui.title_max_length)
            for item in self.chat_history:
                if item.id == conversation_id:
                    item.title = title
            self._schedule(self._persist_title(conversation_id, title), "update_title")

        reply = await self._request_reply(self._build_transcript(persona, prior, text))

        bot_message = Message(
            id=generate_message_id("msg"),
            content=reply,
            sender="bot",
            persona=persona.display_name
        )
        self._replace_message(placeholder.id, bot_message)
        self._schedule(self._persist_messages(conversation_id, [user_message, bot_message]), "send_message")
        return bot_message

    async def change_persona(self, persona: Union[PersonaType, str]) -> None:
        """Switch persona and introduce it in place of the trailing bot message"""
        new_persona = get_persona(persona)
        self.current_persona = new_persona.id
        introduction = self._bot_message(new_persona.welcome_message, kind="persona-change", persona=new_persona)

        last = self.messages[-1] if self.messages else None
        if last is not None and last.sender == "bot" and not last.is_placeholder:
            self.messages[-1] = introduction
        else:
            self.messages.append(introduction)

        log_user_interaction(self.logger, "change_persona", persona=new_persona.display_name)
        if self.current_conversation_id is not None:
            self._schedule(
                self._persist_persona(self.current_conversation_id, new_persona.display_name),
                "change_persona"
            )

    async def delete_chat(self, conversation_id: str) -> None:
        """Remove a conversation for good; it is tombstoned before anything else happens"""
        conversation_id = self._resolved_ids.get(conversation_id, conversation_id)
        self._tombstone(conversation_id)

        index = next((i for i, item in enumerate(self.chat_history) if item.id == conversation_id), None)
        was_selected = conversation_id == self.current_conversation_id
        self.chat_history = [item for item in self.chat_history if item.id != conversation_id]
        log_conversation_event(self.logger, "deleted", conversation_id)

        if not was_selected:
            return

        self.current_conversation_id = None
        if self.chat_history:
            next_index = min(index or 0, len(self.chat_history) - 1)
            await self._open_conversation(self.chat_history[next_index].id)
        else:
            await self.new_chat()

    async def start_quiz(self) -> None:
        self.is_quiz_open = True

    async def cancel_quiz(self) -> None:
        self.is_quiz_open = False

    async def record_quiz_answer(self, question_id: str, selected_answer: str, is_correct: bool) -> None:
        """Save one quiz answer for a signed-in user without waiting for the write"""
        if self._remote_available() and self.quiz_service is not None:
            self._schedule(
                self._save_quiz_response(question_id, selected_answer, is_correct),
                "quiz_response"
            )
        log_user_interaction(self.logger, "quiz_answer", question_id=question_id, correct=is_correct)

    async def quiz_history(self) -> List[Dict[str, Any]]:
        """Finished quiz sessions of the signed-in user, newest first"""
        if not self._remote_available() or self.quiz_service is None:
            return []
        try:
            return await self.quiz_service.get_history()
        except PersistenceError as e:
            self.error_tracker.track_error(e, context="quiz_history")
            return []

    async def complete_quiz(self, score: int, total: int) -> Message:
        """Close the quiz and post the result into the conversation"""
        self.is_quiz_open = False
        persona = self.persona
        message = self._bot_message(quiz_result_message(score, total), kind="quiz-result")
        self.messages.append(message)

        if self.current_conversation_id is not None:
            self._schedule(self._persist_messages(self.current_conversation_id, [message]), "complete_quiz")
        if self._remote_available() and self.quiz_service is not None:
            self._schedule(self._save_quiz_session(persona.display_name, score, total), "complete_quiz.session")

        log_user_interaction(self.logger, "complete_quiz", persona=persona.display_name, score=score, total=total)
        return message

    async def set_authenticated(self, authenticated: bool) -> None:
        """React to sign-in/sign-out: migrate guest conversations, then reload"""
        if authenticated == self.is_authenticated:
            return

        self.is_authenticated = authenticated
        await self.flush()

        if authenticated and self.remote_repository is not None and self.config.auth.migrate_guest_conversations:
            await self.migrate_local_conversations()

        await self.load_history()

    async def migrate_local_conversations(self) -> int:
        """
        Copy guest conversations into remote storage

        Returns:
            Number of conversations migrated
        """
        try:
            conversations = await self.local_repository.list_conversations()
        except PersistenceError as e:
            self.error_tracker.track_error(e, context="migrate")
            return 0

        deleted = self._deleted()
        migrated = 0
        for conversation in reversed(conversations):
            if conversation.id in deleted:
                continue
            remote_id = None
            try:
                remote_id = await self.remote_repository.create_conversation(conversation.title, conversation.persona)
                for message in conversation.messages:
                    await self.remote_repository.append_message(remote_id, message)
                await self.local_repository.remove_conversation(conversation.id)
            except PersistenceError as e:
                self.error_tracker.track_error(e, context="migrate", conversation_id=conversation.id)
                # The local copy stays authoritative; hide the partial remote one
                if remote_id is not None:
                    self._tombstone(remote_id)
                continue
            self._resolved_ids[conversation.id] = remote_id
            migrated += 1

        self.logger.info(f"Migrated {migrated} guest conversations to remote storage")
        return migrated
