"""
Configuration for applications built on storagelib.

The facades never read the environment themselves; the CLI (or any other
caller) loads these settings and passes the values in.
"""

from functools import lru_cache
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from storagelib.storage.credentials import DEFAULT_ENDPOINT_SUFFIX


class StorageSettings(BaseSettings):
    """Storage account and logging settings read from the environment or ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Storage account
    storage_account_name: Optional[str] = None
    storage_account_key: Optional[str] = None
    storage_sas_token: Optional[str] = None
    storage_endpoint_suffix: str = DEFAULT_ENDPOINT_SUFFIX

    # SAS defaults
    sas_expire_minutes: int = 60
    sas_clock_skew_margin_minutes: int = 5

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and validate the log level name."""
        level = v.upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if level not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in ("json", "standard"):
            raise ValueError(f"Invalid log format: {v}. Must be 'json' or 'standard'")
        return fmt

    @field_validator("sas_expire_minutes")
    @classmethod
    def validate_expire_minutes(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("sas_expire_minutes must be positive")
        return v

    @field_validator("sas_clock_skew_margin_minutes")
    @classmethod
    def validate_clock_skew(cls, v: int) -> int:
        if v < 0:
            raise ValueError("sas_clock_skew_margin_minutes must not be negative")
        return v

    @property
    def use_json_logs(self) -> bool:
        return self.log_format == "json"


@lru_cache()
def get_settings() -> StorageSettings:
    """
    Get the storage settings.
    Uses caching to avoid re-reading environment variables.
    """
    return StorageSettings()
