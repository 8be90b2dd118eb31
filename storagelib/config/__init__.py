"""Configuration"""

from .settings import StorageSettings, get_settings

__all__ = ["StorageSettings", "get_settings"]
