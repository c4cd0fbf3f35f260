"""Configuration module for the scout service."""

from src.config.settings import (
    AppSettings,
    CrawlerType,
    EnricherType,
    StoreBackend,
    get_app_settings,
)

__all__ = [
    "AppSettings",
    "CrawlerType",
    "EnricherType",
    "StoreBackend",
    "get_app_settings",
]
