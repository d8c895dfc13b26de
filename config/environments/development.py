"""
Development environment configuration overrides
"""

from dataclasses import dataclass
from config.app_config import AppConfig, APIConfig


@dataclass
class DevelopmentConfig(AppConfig):
    """Development environment configuration"""

    def __post_init__(self):

        # Development-specific overrides
        self.environment = "development"
        self.debug = True
        self.api = APIConfig.from_env()

        # More verbose logging in development
        self.logging.level = "DEBUG"
        self.logging.enable_file_logging = True
        self.logging.log_file = "logs/dev-app.log"

        # Development UI changes
        self.ui.app_title = "🧪 GreenBot (DEV)"

        # Keep local conversations around after sign-in while testing
        self.auth.migrate_guest_conversations = False

        # Surface upstream failures immediately
        self.llm.max_retries = 0


def get_development_config() -> DevelopmentConfig:
    """Get development-specific configuration"""
    return DevelopmentConfig()
