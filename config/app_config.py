"""
Unified Configuration System for GreenBot

This module provides a centralized configuration system that consolidates all application settings,
supports environment-based overrides, and provides type-safe configuration access.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, List
import streamlit as st
import os
from pathlib import Path


@dataclass
class APIConfig:
    """API configuration settings"""
    deepseek_api_key: str = ""
    openai_api_key: str = ""
    grok_api_key: str = ""
    supabase_url: str = ""
    supabase_key: str = ""

    @classmethod
    def from_secrets(cls) -> 'APIConfig':
        """Load API config from Streamlit secrets"""
        # In test environment, prefer environment variables
        if os.getenv("PYTEST_CURRENT_TEST") is not None:
            return cls.from_env()

        try:
            return cls(
                deepseek_api_key=st.secrets.get("DEEPSEEK_API_KEY", ""),
                openai_api_key=st.secrets.get("OPENAI_API_KEY", ""),
                grok_api_key=st.secrets.get("GROK_API_KEY", ""),
                supabase_url=st.secrets.get("SUPABASE_URL", ""),
                supabase_key=st.secrets.get("SUPABASE_ANON_KEY", "")
            )
        except Exception:
            # Fallback to environment variables if secrets not available
            return cls.from_env()

    @classmethod
    def from_env(cls) -> 'APIConfig':
        """Load API config from environment variables"""
        return cls(
            deepseek_api_key=os.getenv("DEEPSEEK_API_KEY", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            grok_api_key=os.getenv("GROK_API_KEY", ""),
            supabase_url=os.getenv("SUPABASE_URL", ""),
            supabase_key=os.getenv("SUPABASE_ANON_KEY", "")
        )

    def key_for_provider(self, provider: str) -> str:
        """Return the configured API key for a completion provider"""
        return {
            "deepseek": self.deepseek_api_key,
            "openai": self.openai_api_key,
            "grok": self.grok_api_key,
        }.get(provider, "")

    @property
    def has_supabase(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


@dataclass
class ProviderConfig:
    """Chat-completions endpoint for one provider"""
    base_url: str
    model: str


@dataclass
class LLMConfig:
    """Language model configuration"""
    provider: str = "deepseek"
    temperature: float = 0.7
    max_tokens: int = 1000
    max_retries: int = 0
    history_limit: int = 10

    providers: Dict[str, ProviderConfig] = field(default_factory=lambda: {
        "deepseek": ProviderConfig(base_url="https://api.deepseek.com/v1", model="deepseek-chat"),
        "openai": ProviderConfig(base_url="https://api.openai.com/v1", model="gpt-4o"),
        "grok": ProviderConfig(base_url="https://api.grok.x.com/v1", model="grok-1"),
    })

    @property
    def model(self) -> str:
        return self.get_provider_config().model

    def get_provider_config(self, provider: Optional[str] = None) -> ProviderConfig:
        """Get endpoint settings, falling back to the default provider"""
        provider = provider or self.provider
        if provider not in self.providers:
            provider = "deepseek"
        return self.providers[provider]


@dataclass
class StorageConfig:
    """Local key-value storage configuration"""
    local_store_dir: str = ".greenbot"
    conversations_key: str = "greenbot-unauthenticated-chats"
    deleted_key: str = "greenbot-deleted-chats"
    api_key_key: str = "greenbot-api-key"
    provider_key: str = "greenbot-api-provider"


@dataclass
class UIConfig:
    """User interface configuration"""
    app_title: str = "🌱 GreenBot"
    new_conversation_title: str = "New Conversation"
    thinking_text: str = "Thinking..."
    load_error_text: str = "Sorry, I couldn't load this conversation. Please try again."
    date_format: str = "%b %d, %Y"
    title_max_length: int = 30


@dataclass
class AuthConfig:
    """Authentication configuration"""
    enabled: bool = True
    allow_guest_mode: bool = True
    migrate_guest_conversations: bool = True
    password_min_length: int = 6


@dataclass
class LoggingConfig:
    """Logging and monitoring configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    enable_file_logging: bool = True
    log_file: str = "logs/app.log"


@dataclass
class AppConfig:
    """Main application configuration"""
    api: APIConfig = field(default_factory=APIConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Environment settings
    environment: str = field(default_factory=lambda: os.getenv("APP_ENV", "development"))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")

    @classmethod
    def load(cls) -> 'AppConfig':
        """Load configuration with environment overrides"""
        config = cls()

        # Load API configuration from secrets/environment
        config.api = APIConfig.from_secrets()

        provider = os.getenv("GREENBOT_PROVIDER")
        if provider:
            config.llm.provider = provider.lower()

        # Apply environment-specific overrides
        if config.environment == "production":
            config.debug = False
            config.logging.level = "WARNING"
        elif config.environment == "development":
            config.debug = True
            config.logging.level = "DEBUG"

        return config

    def validate(self) -> List[str]:
        """Validate configuration and return list of errors"""
        errors = []

        if self.llm.provider not in self.llm.providers:
            errors.append(f"Unknown completion provider '{self.llm.provider}'")

        if self.llm.history_limit < 1:
            errors.append("History limit must be at least 1")

        if bool(self.api.supabase_url) != bool(self.api.supabase_key):
            errors.append("Supabase URL and key must be configured together")

        if not self.auth.allow_guest_mode and not (self.auth.enabled and self.api.supabase_url):
            errors.append("Guest mode can only be turned off when Supabase sign-in is configured")

        if self.logging.enable_file_logging:
            log_dir = Path(self.logging.log_file).parent
            if not log_dir.exists():
                log_dir.mkdir(parents=True, exist_ok=True)

        return errors


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance"""
    global _config
    if _config is None:
        _config = AppConfig.load()

        # Validate configuration
        errors = _config.validate()
        if errors:
            import warnings
            for error in errors:
                warnings.warn(f"Configuration error: {error}")

    return _config


def reload_config() -> AppConfig:
    """Reload configuration (useful for testing)"""
    global _config
    _config = None
    return get_config()

