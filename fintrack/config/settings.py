"""
Configuration Management for fintrack

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The ledger itself has very few knobs: which storage backend sits behind
the store interface, where it keeps its files, and how logs are rendered.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Storage backend configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="FINTRACK_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    backend: str = Field(
        default="memory",
        description="Storage backend: 'memory' or 'json'"
    )
    data_dir: Path = Field(
        default=Path("./data"),
        description="Directory for the JSON file backend"
    )
    retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for a file backend write before giving up"
    )
    
    @field_validator('backend')
    @classmethod
    def validate_backend(cls, v: str) -> str:
        """Only the shipped backends are accepted."""
        v = v.strip().lower()
        if v not in {"memory", "json"}:
            raise ValueError(f"Unsupported storage backend: {v}. Use 'memory' or 'json'")
        return v


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""
    
    model_config = SettingsConfigDict(
        env_prefix="FINTRACK_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    level: str = Field(
        default="INFO",
        description="Minimum log level"
    )
    format: str = Field(
        default="json",
        pattern="^(json|console)$",
        description="Render logs as JSON lines or for a terminal"
    )
    
    @field_validator('level')
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.strip().upper()


class LedgerSettings(BaseSettings):
    """
    Root settings container.
    
    Aggregates all sub-settings for easy access.
    """
    
    model_config = SettingsConfigDict(
        env_prefix="FINTRACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
    
    environment: str = Field(
        default="development",
        description="Application environment"
    )
    
    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()
    
    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()


@lru_cache()
def get_settings() -> LedgerSettings:
    """
    Get application settings (cached).
    
    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return LedgerSettings()
