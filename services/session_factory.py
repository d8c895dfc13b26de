"""
Session factory - wires the services for one browser session.

Every browser gets its own key-value store, so guest conversations,
deletion tombstones and a saved API key never leak between visitors.
"""

from dataclasses import dataclass
from typing import Any, Optional

from config.app_config import AppConfig
from infrastructure.storage.key_value_store import KeyValueStore
from services.ai_service.llm_client import CompletionClient
from services.auth_service.auth_manager import AnonymousAuthService, AuthService, SupabaseAuthService
from services.chat_service.conversation_manager import ConversationManager
from services.chat_service.local_repository import DeletedConversationStore, LocalConversationRepository
from services.chat_service.remote_repository import SupabaseConversationRepository
from services.quiz_service.quiz_manager import QuizService
from utils.logging_config import ErrorTracker, get_logger

logger = get_logger(__name__)


@dataclass
class GreenBotSession:
    """Services owned by one browser session"""
    manager: ConversationManager
    auth_service: AuthService
    completion_client: CompletionClient
    store: KeyValueStore
    quiz_service: Optional[QuizService] = None


async def build_session(
    config: AppConfig,
    store: KeyValueStore,
    client: Optional[Any] = None,
    auth_service: Optional[AuthService] = None,
    error_tracker: Optional[ErrorTracker] = None
) -> GreenBotSession:
    """
    Wire the services for one browser session and load its conversations

    Args:
        config: Application configuration
        store: Key-value store private to this browser
        client: Supabase client, or None for guest-only mode
        auth_service: Overrides the auth service built from `client`
        error_tracker: Tracker for recovered errors
    """
    completion_client = CompletionClient(config=config, store=store)
    remote_repository = None
    quiz_service = None

    if client is not None:
        if auth_service is None:
            auth_service = SupabaseAuthService(client)
            await auth_service.init()
        remote_repository = SupabaseConversationRepository(client, auth_service)
        quiz_service = QuizService(client, auth_service)
    else:
        logger.info("Supabase not configured, running in guest mode")
        auth_service = auth_service or AnonymousAuthService()

    manager = ConversationManager(
        local_repository=LocalConversationRepository(store, config.storage.conversations_key),
        deleted_store=DeletedConversationStore(store, config.storage.deleted_key),
        completion_client=completion_client,
        auth_service=auth_service,
        remote_repository=remote_repository,
        quiz_service=quiz_service,
        config=config,
        error_tracker=error_tracker
    )
    await manager.initialize()

    return GreenBotSession(
        manager=manager,
        auth_service=auth_service,
        completion_client=completion_client,
        store=store,
        quiz_service=quiz_service
    )
