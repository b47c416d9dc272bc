"""
Unified Configuration System for the lab platform

This module provides a centralized configuration system that consolidates all application settings,
supports environment-based overrides, and provides type-safe configuration access.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List, Tuple
import streamlit as st
import os
from pathlib import Path


@dataclass
class StorageConfig:
    """Durable storage configuration"""
    db_path: str = "data/labs.db"
    seed_defaults: bool = True

    @classmethod
    def from_secrets(cls) -> 'StorageConfig':
        """Load storage config from Streamlit secrets"""
        # In test environment, prefer environment variables
        if os.getenv("PYTEST_CURRENT_TEST") is not None:
            return cls(
                db_path=os.getenv("LAB_DB_PATH", "data/labs.db"),
                seed_defaults=os.getenv("LAB_SEED_DEFAULTS", "true").lower() == "true"
            )

        try:
            return cls(
                db_path=st.secrets.get("LAB_DB_PATH", "data/labs.db"),
                seed_defaults=str(st.secrets.get("LAB_SEED_DEFAULTS", "true")).lower() == "true"
            )
        except Exception:
            # Fallback to environment variables if secrets not available
            return cls(
                db_path=os.getenv("LAB_DB_PATH", "data/labs.db"),
                seed_defaults=os.getenv("LAB_SEED_DEFAULTS", "true").lower() == "true"
            )


@dataclass
class ExpirationConfig:
    """Allocation expiration configuration"""
    default_hours: int = 40
    min_hours: int = 1
    max_hours: int = 168
    sweep_interval_minutes: int = 5

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "default_hours": self.default_hours,
            "min_hours": self.min_hours,
            "max_hours": self.max_hours,
            "sweep_interval_minutes": self.sweep_interval_minutes
        }


@dataclass
class AuthConfig:
    """Authentication configuration"""
    password_verifier: str = "allow_all"  # allow_all, bcrypt
    allowed_login_statuses: Tuple[str, ...] = ("verified", "active")


@dataclass
class ProgressConfig:
    """Display progress for allocations"""
    # Placeholder until real sub-task tracking exists
    in_progress_percent: int = 65


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
    storage: StorageConfig = field(default_factory=StorageConfig)
    expiration: ExpirationConfig = field(default_factory=ExpirationConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    progress: ProgressConfig = field(default_factory=ProgressConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Environment settings
    environment: str = field(default_factory=lambda: os.getenv("APP_ENV", "development"))
    debug: bool = field(default_factory=lambda: os.getenv("DEBUG", "false").lower() == "true")

    @classmethod
    def load(cls) -> 'AppConfig':
        """Load configuration with environment overrides"""
        config = cls()

        # Load storage configuration from secrets/environment
        config.storage = StorageConfig.from_secrets()

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

        # Check file paths exist
        if self.storage.db_path != ":memory:" and not Path(self.storage.db_path).parent.exists():
            Path(self.storage.db_path).parent.mkdir(parents=True, exist_ok=True)

        if self.logging.enable_file_logging:
            log_dir = Path(self.logging.log_file).parent
            if not log_dir.exists():
                log_dir.mkdir(parents=True, exist_ok=True)

        expiration = self.expiration
        if not expiration.min_hours <= expiration.default_hours <= expiration.max_hours:
            errors.append(
                f"Default expiration of {expiration.default_hours}h is outside "
                f"{expiration.min_hours}-{expiration.max_hours}h"
            )

        if expiration.sweep_interval_minutes <= 0:
            errors.append("Sweep interval must be positive")

        if self.auth.password_verifier not in ("allow_all", "bcrypt"):
            errors.append(f"Unknown password verifier '{self.auth.password_verifier}'")

        if not 0 <= self.progress.in_progress_percent <= 100:
            errors.append("In-progress percentage must be between 0 and 100")

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


def get_db_path() -> str:
    """Get the configured database path"""
    return get_config().storage.db_path
