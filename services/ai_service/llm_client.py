"""
LLM client - sends a role-tagged transcript to an OpenAI-compatible chat-completions endpoint.
"""

import json
from typing import Callable, List, Optional

import openai
from langchain_core.messages import BaseMessage
from langchain_openai import ChatOpenAI

from config.app_config import AppConfig, get_config
from infrastructure.storage.key_value_store import KeyValueStore
from utils.logging_config import get_logger, log_completion_usage, log_execution_time


class CompletionError(Exception):
    """Base class for completion failures shown to the user"""
    pass


class MissingCredentialError(CompletionError):
    """No API key is available for the selected provider"""

    def __init__(self, provider: str):
        self.provider = provider
        super().__init__(f"No {provider.upper()} API key found. Please check your settings.")


class CompletionNetworkError(CompletionError):
    """The endpoint could not be reached"""

    def __init__(self, provider: str, detail: str):
        self.provider = provider
        super().__init__(f"Could not reach the {provider.upper()} API: {detail}")


class UpstreamError(CompletionError):
    """The endpoint answered with a non-success status"""

    def __init__(self, provider: str, status: int, body: str):
        self.provider = provider
        self.status = status
        self.body = body
        super().__init__(f"{provider.upper()} API error: {status} {body}")


ChatModelFactory = Callable[..., ChatOpenAI]


class CompletionClient:
    """
    Client for chat completions.
    Stateless apart from the credential lookup; a ChatOpenAI instance is built per call
    so key changes from the settings panel take effect immediately.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        store: Optional[KeyValueStore] = None,
        chat_model_factory: Optional[ChatModelFactory] = None
    ):
        self.logger = get_logger(__name__)
        self.config = config or get_config()
        self.store = store
        self.chat_model_factory = chat_model_factory or ChatOpenAI

    def get_provider(self) -> str:
        if self.store is not None:
            stored = self.store.get_item(self.config.storage.provider_key)
            if stored in self.config.llm.providers:
                return stored
        return self.config.llm.provider

    def get_api_key(self, provider: Optional[str] = None) -> str:
        """Key saved from the settings panel wins over secrets/environment"""
        if self.store is not None:
            stored = self.store.get_item(self.config.storage.api_key_key)
            if stored:
                return stored.strip()
        return self.config.api.key_for_provider(provider or self.get_provider())

    def save_credentials(self, api_key: str, provider: Optional[str] = None) -> None:
        if self.store is None:
            raise ValueError("No key-value store configured for credentials")
        if api_key:
            self.store.set_item(self.config.storage.api_key_key, api_key.strip())
        else:
            self.store.remove_item(self.config.storage.api_key_key)
        if provider:
            self.store.set_item(self.config.storage.provider_key, provider)

    def get_llm(self, provider: str, api_key: str) -> ChatOpenAI:
        """
        Build a chat model for a provider

        Returns:
            Configured ChatOpenAI instance
        """
        endpoint = self.config.llm.get_provider_config(provider)
        return self.chat_model_factory(
            model=endpoint.model,
            base_url=endpoint.base_url,
            api_key=api_key,
            temperature=self.config.llm.temperature,
            max_tokens=self.config.llm.max_tokens,
            max_retries=self.config.llm.max_retries
        )

    async def complete(self, turns: List[BaseMessage]) -> str:
        """
        Send a transcript and return the assistant's reply text

        Args:
            turns: System, human and AI messages in chronological order

        Raises:
            MissingCredentialError, CompletionNetworkError, UpstreamError
        """
        provider = self.get_provider()
        api_key = self.get_api_key(provider)
        if not api_key:
            raise MissingCredentialError(provider)

        llm = self.get_llm(provider, api_key)
        model = self.config.llm.get_provider_config(provider).model

        try:
            with log_execution_time(self.logger, "chat completion", provider=provider, model=model):
                response = await llm.ainvoke(turns)
        except openai.APIStatusError as e:
            body = json.dumps(e.body) if e.body is not None else e.response.text
            raise UpstreamError(provider, e.status_code, body) from e
        except openai.APIConnectionError as e:
            raise CompletionNetworkError(provider, str(e)) from e

        log_completion_usage(self.logger, provider, model, turns=len(turns))
        return response.content if isinstance(response.content, str) else str(response.content)


# Global client instance
_completion_client: Optional[CompletionClient] = None


def get_completion_client() -> CompletionClient:
    """Get the global completion client instance"""
    global _completion_client
    if _completion_client is None:
        _completion_client = CompletionClient()
    return _completion_client
