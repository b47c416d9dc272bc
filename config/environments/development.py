"""
Development environment configuration overrides
"""

from dataclasses import dataclass
from config.app_config import AppConfig, StorageConfig


@dataclass
class DevelopmentConfig(AppConfig):
    """Development environment configuration"""

    def __post_init__(self):
        # Storage location still comes from secrets/environment
        self.storage = StorageConfig.from_secrets()

        # Development-specific overrides
        self.environment = "development"
        self.debug = True

        # More verbose logging in development
        self.logging.level = "DEBUG"
        self.logging.enable_file_logging = True
        self.logging.log_file = "logs/dev-app.log"

        # Sweep more often so expirations show up while testing by hand
        self.expiration.sweep_interval_minutes = 1


def get_development_config() -> DevelopmentConfig:
    """Get development-specific configuration"""
    return DevelopmentConfig()
