"""
Supabase client adapter for the application.
Creates the async Supabase client from configuration.
"""

from typing import Optional

from supabase import AsyncClient, acreate_client

from config.app_config import AppConfig, get_config
from utils.logging_config import get_logger


class SupabaseClientProvider:
    """
    Lazily creates a single AsyncClient for the configured Supabase project.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self.logger = get_logger(__name__)
        self.config = config or get_config()
        self._client: Optional[AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return self.config.api.has_supabase

    async def get_client(self) -> Optional[AsyncClient]:
        """
        Get the configured Supabase client

        Returns:
            AsyncClient, or None when no Supabase project is configured
        """
        if not self.is_configured:
            return None

        if self._client is None:
            try:
                self._client = await acreate_client(
                    self.config.api.supabase_url,
                    self.config.api.supabase_key
                )
                self.logger.info("Supabase client initialized")
            except Exception as e:
                self.logger.error(f"Error initializing Supabase client: {e}")
                raise

        return self._client
