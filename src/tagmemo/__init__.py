"""tagmemo -- memoizing cache façade with tag-scoped invalidation.

Architecture::

    hashing.py      Key derivation + namespace tag (deterministic, order-sensitive)
    facade.py       CacheFacade: resolve / clear_by_tags / clear_all
    store.py        TaggedStore protocol, InMemoryTagStore, RedisTagStore
    errors.py       TagMemoError hierarchy (config / store / invalidation)
    result.py       Ok / Err envelope used by the fallback guard
    decorators.py   @cached function memoization
    logging.py      structlog configuration + log sinks
    settings.py     TAGMEMO_* settings (pydantic-settings)
    factory.py      Settings-driven store / façade construction

Quick start::

    from tagmemo import CacheFacade, InMemoryTagStore

    facade = CacheFacade(InMemoryTagStore(), namespace="reports")
    report = facade.resolve(lambda: compute_report("42"), ["report", "42"], {"report"}, ttl=60)
    facade.clear_by_tags({"report"})
"""

from tagmemo.decorators import cached
from tagmemo.errors import (
    ConfigurationError,
    CorruptedEntryError,
    ErrorCategory,
    InvalidationError,
    SerializationError,
    StoreError,
    StoreUnavailableError,
    TagMemoError,
)
from tagmemo.facade import CacheFacade, Decision, Resolution
from tagmemo.hashing import derive_key, derive_namespace_tag
from tagmemo.store import CacheEntry, InMemoryTagStore, RedisTagStore, StoreLookup, TaggedStore

__version__ = "0.1.0"

__all__ = [
    "CacheFacade",
    "Decision",
    "Resolution",
    "cached",
    "derive_key",
    "derive_namespace_tag",
    "CacheEntry",
    "StoreLookup",
    "TaggedStore",
    "InMemoryTagStore",
    "RedisTagStore",
    "ErrorCategory",
    "TagMemoError",
    "ConfigurationError",
    "StoreError",
    "StoreUnavailableError",
    "SerializationError",
    "CorruptedEntryError",
    "InvalidationError",
]
