"""
Tests for the Supabase client provider
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from infrastructure.external import supabase_client
from infrastructure.external.supabase_client import SupabaseClientProvider


class TestSupabaseClientProvider:

    def test_not_configured_returns_none(self, app_config):
        provider = SupabaseClientProvider(app_config)

        assert provider.is_configured is False
        assert asyncio.run(provider.get_client()) is None

    def test_client_created_once(self, app_config, monkeypatch):
        app_config.api.supabase_url = "https://example.supabase.co"
        app_config.api.supabase_key = "anon-key"
        create = AsyncMock(return_value=object())
        monkeypatch.setattr(supabase_client, "acreate_client", create)
        provider = SupabaseClientProvider(app_config)

        async def scenario():
            return await provider.get_client(), await provider.get_client()

        first, second = asyncio.run(scenario())

        assert first is second
        create.assert_awaited_once_with("https://example.supabase.co", "anon-key")


if __name__ == "__main__":
    pytest.main([__file__])
