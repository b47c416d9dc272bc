"""
Production environment configuration overrides
"""

from dataclasses import dataclass
from config.app_config import AppConfig, StorageConfig


@dataclass
class ProductionConfig(AppConfig):
    """Production environment configuration"""

    def __post_init__(self):
        self.storage = StorageConfig.from_secrets()

        # Production-specific overrides
        self.environment = "production"
        self.debug = False

        # Production logging - less verbose, focus on errors
        self.logging.level = "INFO"
        self.logging.enable_file_logging = True
        self.logging.log_file = "logs/prod-app.log"

        # Production sweep cadence
        self.expiration.sweep_interval_minutes = 5


def get_production_config() -> ProductionConfig:
    """Get production-specific configuration"""
    return ProductionConfig()
