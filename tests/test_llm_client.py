"""
Tests for the completion client
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import httpx
import openai
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from infrastructure.storage.key_value_store import MemoryKeyValueStore
from services.ai_service.llm_client import (
    CompletionClient, CompletionNetworkError, MissingCredentialError, UpstreamError
)

TURNS = [SystemMessage(content="You are GreenBot."), HumanMessage(content="How do I compost?")]


def make_factory(result=None, error=None):
    llm = Mock()
    llm.ainvoke = AsyncMock(return_value=result, side_effect=error)
    return Mock(return_value=llm), llm


class TestCredentials:

    def test_config_key_used_by_default(self, app_config):
        client = CompletionClient(config=app_config, store=MemoryKeyValueStore())
        assert client.get_api_key() == "test-deepseek-key"

    def test_saved_key_wins_over_config(self, app_config):
        client = CompletionClient(config=app_config, store=MemoryKeyValueStore())
        client.save_credentials("  saved-key  ", "openai")

        assert client.get_api_key() == "saved-key"
        assert client.get_provider() == "openai"

    def test_clearing_saved_key(self, app_config):
        store = MemoryKeyValueStore()
        client = CompletionClient(config=app_config, store=store)
        client.save_credentials("saved-key")
        client.save_credentials("")

        assert store.get_item("greenbot-api-key") is None
        assert client.get_api_key() == "test-deepseek-key"

    def test_unknown_stored_provider_is_ignored(self, app_config):
        store = MemoryKeyValueStore({"greenbot-api-provider": "mystery"})
        client = CompletionClient(config=app_config, store=store)

        assert client.get_provider() == "deepseek"

    def test_save_without_store_raises(self, app_config):
        with pytest.raises(ValueError):
            CompletionClient(config=app_config).save_credentials("key")


class TestComplete:

    def test_returns_reply_text(self, app_config):
        factory, llm = make_factory(result=AIMessage(content="Start with a bin."))
        client = CompletionClient(config=app_config, chat_model_factory=factory)

        reply = asyncio.run(client.complete(TURNS))

        assert reply == "Start with a bin."
        llm.ainvoke.assert_awaited_once_with(TURNS)
        kwargs = factory.call_args.kwargs
        assert kwargs["model"] == "deepseek-chat"
        assert kwargs["base_url"] == "https://api.deepseek.com/v1"
        assert kwargs["api_key"] == "test-deepseek-key"
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 1000

    def test_missing_key_raises_before_any_request(self, app_config):
        app_config.api.deepseek_api_key = ""
        factory, _ = make_factory(result=AIMessage(content="unused"))
        client = CompletionClient(config=app_config, chat_model_factory=factory)

        with pytest.raises(MissingCredentialError) as exc_info:
            asyncio.run(client.complete(TURNS))

        assert str(exc_info.value) == "No DEEPSEEK API key found. Please check your settings."
        factory.assert_not_called()

    def test_status_error_becomes_upstream_error(self, app_config):
        request = httpx.Request("POST", "https://api.deepseek.com/v1/chat/completions")
        response = httpx.Response(401, request=request)
        error = openai.AuthenticationError("Unauthorized", response=response,
                                           body={"error": {"message": "Invalid key"}})
        factory, _ = make_factory(error=error)
        client = CompletionClient(config=app_config, chat_model_factory=factory)

        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(client.complete(TURNS))

        assert exc_info.value.status == 401
        assert str(exc_info.value).startswith("DEEPSEEK API error: 401 ")
        assert "Invalid key" in str(exc_info.value)

    def test_connection_error_becomes_network_error(self, app_config):
        request = httpx.Request("POST", "https://api.deepseek.com/v1/chat/completions")
        factory, _ = make_factory(error=openai.APIConnectionError(request=request))
        client = CompletionClient(config=app_config, chat_model_factory=factory)

        with pytest.raises(CompletionNetworkError):
            asyncio.run(client.complete(TURNS))


if __name__ == "__main__":
    pytest.main([__file__])
