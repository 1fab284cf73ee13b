"""
Factory functions that build stores and façades from settings.

The redis backend is imported lazily, so ``import tagmemo`` works without
the ``redis`` extra installed as long as the memory backend is selected.

Example::

    from tagmemo.factory import create_facade

    facade = create_facade()            # TAGMEMO_* environment
    report = facade.resolve(lambda: build(report_id), ["report", report_id], {"report"})
"""

from __future__ import annotations

from tagmemo.facade import CacheFacade
from tagmemo.logging import configure_logging, get_logger
from tagmemo.settings import StoreBackend, TagMemoSettings, get_settings
from tagmemo.store import InMemoryTagStore, RedisTagStore, TaggedStore


def create_store(settings: TagMemoSettings) -> TaggedStore:
    """Create the store selected by *settings.backend*."""
    match settings.backend:
        case StoreBackend.MEMORY:
            return InMemoryTagStore(
                max_size=settings.max_size,
                default_ttl_seconds=settings.default_ttl,
            )
        case StoreBackend.REDIS:
            return RedisTagStore(
                settings.redis_url,
                prefix=settings.redis_prefix,
                default_ttl_seconds=settings.default_ttl,
            )
        case _:
            raise ValueError(f"Unsupported store backend: {settings.backend!r}")


def create_facade(
    settings: TagMemoSettings | None = None,
    *,
    store: TaggedStore | None = None,
    configure_logs: bool = False,
) -> CacheFacade:
    """Create a :class:`CacheFacade` from settings.

    Args:
        settings: Settings to use; process-wide settings when None.
        store: Pre-built store; built from settings when None.
        configure_logs: Also run :func:`configure_logging` with the
            settings' log level and format.
    """
    settings = settings or get_settings()
    if configure_logs:
        configure_logging(level=settings.log_level, json_format=settings.log_json)

    return CacheFacade(
        store if store is not None else create_store(settings),
        namespace=settings.namespace,
        namespace_keys=settings.namespace_keys,
        enabled=settings.enabled,
        log_sink=get_logger("tagmemo.facade") if settings.log_diagnostics else None,
    )


__all__ = ["create_store", "create_facade"]
