"""
Production environment configuration overrides
"""

from dataclasses import dataclass
from config.app_config import AppConfig, APIConfig


@dataclass
class ProductionConfig(AppConfig):
    """Production environment configuration"""

    def __post_init__(self):

        # Production-specific overrides
        self.environment = "production"
        self.debug = False
        self.api = APIConfig.from_secrets()

        # Production logging - less verbose, focus on errors
        self.logging.level = "INFO"
        self.logging.enable_file_logging = True
        self.logging.log_file = "logs/prod-app.log"

        # Production UI - clean and professional
        self.ui.app_title = "🌱 GreenBot"

        # Guest conversations move to the account on sign-in
        self.auth.allow_guest_mode = True
        self.auth.migrate_guest_conversations = True
        self.auth.password_min_length = 8

        # Production LLM settings
        self.llm.max_retries = 2
        self.llm.max_tokens = 1000


def get_production_config() -> ProductionConfig:
    """Get production-specific configuration"""
    return ProductionConfig()
