"""
Settings entry point used across the application.
"""
from forgeops.core.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
