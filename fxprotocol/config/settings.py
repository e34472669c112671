"""Client settings loaded from the environment (``FX_*``) or a .env file."""
import os
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..constants import (
    CACHE_NAMESPACE,
    DEFAULT_BASE_URL,
    DEFAULT_CACHE_URL,
    DEFAULT_TIMEOUT,
    DISK_CACHE_TTL,
    MAX_MEMORY_ENTRIES,
    MEMORY_CACHE_TTL,
)


class FXSettings(BaseSettings):
    """Configuration for the f(x) Protocol client."""

    # API Configuration
    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description="Base URL of the f(x) Protocol REST API"
    )
    api_key: Optional[str] = Field(
        default=None,
        description="API key sent as X-API-Key"
    )
    timeout: float = Field(
        default=DEFAULT_TIMEOUT,
        gt=0,
        description="Request timeout in seconds"
    )

    # Cache Configuration
    cache_url: str = Field(
        default=DEFAULT_CACHE_URL,
        description="SQLAlchemy URL of the disk cache database"
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis URL; when set the disk cache lives in Redis instead of SQL"
    )
    cache_namespace: str = Field(
        default=CACHE_NAMESPACE,
        description="Key prefix scoping the disk cache entries"
    )
    max_memory_entries: int = Field(
        default=MAX_MEMORY_ENTRIES,
        gt=0,
        description="Upper bound on memory cache entries"
    )
    memory_ttl: float = Field(
        default=MEMORY_CACHE_TTL,
        ge=0,
        description="Default memory cache TTL in seconds"
    )
    disk_ttl: float = Field(
        default=DISK_CACHE_TTL,
        ge=0,
        description="Default disk cache TTL in seconds"
    )

    # Key Store Configuration
    key_store_dir: str = Field(
        default=os.path.join("~", ".fxprotocol", "keys"),
        description="Directory holding encrypted key files"
    )
    key_store_passphrase: Optional[str] = Field(
        default=None,
        description="Passphrase for the encrypted key store; keys are kept in memory when unset"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_json: bool = Field(
        default=True,
        description="Render log records as JSON"
    )

    model_config = SettingsConfigDict(
        env_prefix="FX_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )
