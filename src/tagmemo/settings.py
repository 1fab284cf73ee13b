"""Environment-driven settings for tagmemo.

``TagMemoSettings`` reads ``TAGMEMO_*`` environment variables (and a
``.env`` file) and is consumed by :mod:`tagmemo.factory` to build a store
and a façade.

Examples:
    >>> import os
    >>> os.environ["TAGMEMO_BACKEND"] = "redis"
    >>> TagMemoSettings().backend
    <StoreBackend.REDIS: 'redis'>

Tags:
    settings, configuration, pydantic, environment, tagmemo
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreBackend(str, Enum):
    """Supported store backends."""

    MEMORY = "memory"
    REDIS = "redis"


class TagMemoSettings(BaseSettings):
    """Settings for the cache façade and its store.

    Fields
    ──────
    enabled          : Global kill-switch; False bypasses the store entirely
    backend          : Store backend (memory | redis)
    default_ttl      : Default TTL in seconds reported by the store
    max_size         : Entry bound for the in-memory store
    namespace        : Explicit namespace identifier (None → install path)
    namespace_keys   : Mix the namespace tag into every derived key
    redis_url        : Connection URL for the redis backend
    redis_prefix     : Prefix for every Redis key the store writes
    log_level        : Structlog log level
    log_json         : JSON logs (None → auto-detect from TTY)
    log_diagnostics  : Route façade decisions to a structlog logger
    """

    model_config = SettingsConfigDict(
        env_prefix="TAGMEMO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Policy ───────────────────────────────────────────────────
    enabled: bool = True
    default_ttl: int = Field(default=3600, ge=0)

    # ── Store ────────────────────────────────────────────────────
    backend: StoreBackend = StoreBackend.MEMORY
    max_size: int = Field(default=10_000, gt=0)
    redis_url: str = "redis://localhost:6379/0"
    redis_prefix: str = "tagmemo:"

    # ── Namespace ────────────────────────────────────────────────
    namespace: str | None = Field(
        default=None,
        min_length=1,
        description="Identifier hashed into the namespace tag; defaults to the install path",
    )
    namespace_keys: bool = False

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None
    log_diagnostics: bool = False


@lru_cache
def get_settings() -> TagMemoSettings:
    """Process-wide settings, loaded once."""
    return TagMemoSettings()


__all__ = ["StoreBackend", "TagMemoSettings", "get_settings"]
