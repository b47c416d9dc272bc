"""
Environment-specific configurations
"""

import os
from typing import Callable, Dict

from config.app_config import AppConfig


def _development() -> AppConfig:
    from .development import get_development_config
    return get_development_config()


def _production() -> AppConfig:
    from .production import get_production_config
    return get_production_config()


ENVIRONMENTS: Dict[str, Callable[[], AppConfig]] = {
    "development": _development,
    "production": _production,
}


def get_environment_config() -> AppConfig:
    """
    Configuration for the environment named by APP_ENV

    Unset means development; an unrecognised name gets the base
    configuration with its secrets and environment overrides.
    """
    env = os.getenv("APP_ENV", "development").strip().lower()
    factory = ENVIRONMENTS.get(env)
    if factory is None:
        return AppConfig.load()
    return factory()
