"""Configuration package."""

from .settings import Settings, clear_settings_cache, get_settings, load_settings

__all__ = ["Settings", "clear_settings_cache", "get_settings", "load_settings"]
