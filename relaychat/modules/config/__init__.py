"""Configuration module for the RelayChat backend.

This module provides centralized configuration management with:
- Pydantic settings for validation
- Environment variable and .env file loading
"""

from .config_manager import (
    AppSettings,
    ConfigManager,
    config_manager,
    get_app_settings,
)

__all__ = [
    "AppSettings",
    "ConfigManager",
    "config_manager",
    "get_app_settings",
]
