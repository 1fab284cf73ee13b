"""
Tag-aware store capability and bundled store adapters.

The façade consumes a store through the narrow :class:`TaggedStore`
protocol: single-key get/set with a TTL and a tag set, bulk delete by tag,
and a default TTL. Two adapters ship with the package.

Manifesto:
    The façade orchestrates a store, it does not implement one. Keeping the
    boundary to four methods means any engine with tag support (or a thin
    tag index on top of plain key-value storage) can sit behind it.

    - **Protocol-based:** TaggedStore defines the contract, no base class needed
    - **Reference store:** InMemoryTagStore for tests, single-process use and dev
    - **Shared store:** RedisTagStore for multi-process deployments
    - **Boundary translation:** Adapters raise StoreError subclasses only

Architecture:
    ::

        TaggedStore (Protocol)
        ├── InMemoryTagStore  — bounded LRU + lazy TTL + tag → keys index
        └── RedisTagStore     — SETEX payloads + one Redis set per tag

        API: get(key) → StoreLookup(value, tags, found)
             set(key, value, tags, ttl_seconds) → bool
             delete_by_tags(tags) → int
             get_default_ttl() → int

Examples:
    >>> store = InMemoryTagStore(max_size=100, default_ttl_seconds=60)
    >>> store.set("k1", {"total": 3}, frozenset({"report"}), 60)
    True
    >>> store.get("k1").value
    {'total': 3}
    >>> store.delete_by_tags({"report"})
    1
    >>> store.get("k1").found
    False

Guardrails:
    ❌ DON'T: Share one InMemoryTagStore between processes (no sharing)
    ✅ DO: Use RedisTagStore when several workers must see the same entries

    ❌ DON'T: Let third-party exceptions escape an adapter
    ✅ DO: Translate them to StoreError subclasses with ``cause=``

Tags:
    cache, store, redis, in-memory, ttl, tags, invalidation, tagmemo

Doc-Types:
    - API Reference
    - Infrastructure Guide
"""

from __future__ import annotations

import json
import threading
import time
from collections import OrderedDict
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

from tagmemo.errors import CorruptedEntryError, SerializationError, StoreUnavailableError


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A stored record: value, absolute expiry (epoch seconds) and tags."""

    value: Any
    expires_at: float | None
    tags: frozenset[str] = field(default_factory=frozenset)

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and now >= self.expires_at


@dataclass(frozen=True, slots=True)
class StoreLookup:
    """Outcome of :meth:`TaggedStore.get`."""

    value: Any = None
    tags: frozenset[str] = field(default_factory=frozenset)
    found: bool = False

    @classmethod
    def miss(cls) -> StoreLookup:
        return cls()


class TaggedStore(Protocol):
    """
    Capability interface the façade needs from a backing store.

    Implementations must raise :class:`~tagmemo.errors.StoreError`
    subclasses for connectivity, encoding and decoding failures. Any other
    exception is treated as a bug and is not masked by the façade.
    """

    def get(self, key: str) -> StoreLookup:
        """Return the entry for ``key``; ``found`` is False when absent or expired."""
        ...

    def set(self, key: str, value: Any, tags: frozenset[str], ttl_seconds: int) -> bool:
        """Store ``value`` under ``key`` with ``tags``; return True on success."""
        ...

    def delete_by_tags(self, tags: Iterable[str]) -> int:
        """Delete every entry carrying any of ``tags``; return how many were removed."""
        ...

    def get_default_ttl(self) -> int:
        """Default TTL in seconds for callers that do not pass one."""
        ...


# ------------------------------------------------------------------ #
# In-Memory Store
# ------------------------------------------------------------------ #


class InMemoryTagStore:
    """
    Bounded in-process store with TTL expiry and a tag index.

    Entries are evicted least-recently-used first once ``max_size`` is
    reached. Expiry is lazy: an expired entry is dropped when it is read.
    All operations hold an internal lock, so get/set/delete are atomic
    within the process.

    Attributes:
        max_size: Maximum number of entries before LRU eviction.
        default_ttl_seconds: TTL reported by :meth:`get_default_ttl`.

    Example:
        store = InMemoryTagStore(max_size=500, default_ttl_seconds=300)
        facade = CacheFacade(store)
    """

    backend_name = "memory"

    def __init__(
        self,
        *,
        max_size: int = 10_000,
        default_ttl_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the store.

        Args:
            max_size: Maximum number of entries (LRU eviction after).
            default_ttl_seconds: Default TTL reported to the façade.
            clock: Time source in epoch seconds (injectable for tests).
        """
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._tag_index: dict[str, set[str]] = {}
        self._max_size = max_size
        self._default_ttl = default_ttl_seconds
        self._clock = clock
        self._lock = threading.RLock()

    def get(self, key: str) -> StoreLookup:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return StoreLookup.miss()

            if entry.is_expired(self._clock()):
                self._remove(key)
                return StoreLookup.miss()

            self._entries.move_to_end(key)
            return StoreLookup(value=entry.value, tags=entry.tags, found=True)

    def set(
        self,
        key: str,
        value: Any,
        tags: frozenset[str] = frozenset(),
        ttl_seconds: int | None = None,
    ) -> bool:
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        expires_at = (self._clock() + ttl) if ttl else None
        entry = CacheEntry(value=value, expires_at=expires_at, tags=frozenset(tags))

        with self._lock:
            if key in self._entries:
                self._remove(key)
            elif len(self._entries) >= self._max_size and self._entries:
                lru_key = next(iter(self._entries))
                self._remove(lru_key)

            self._entries[key] = entry
            for tag in entry.tags:
                self._tag_index.setdefault(tag, set()).add(key)
        return True

    def delete_by_tags(self, tags: Iterable[str]) -> int:
        with self._lock:
            keys: set[str] = set()
            for tag in tags:
                keys |= self._tag_index.pop(tag, set())
            removed = 0
            for key in keys:
                if self._remove(key):
                    removed += 1
            return removed

    def get_default_ttl(self) -> int:
        return self._default_ttl

    def size(self) -> int:
        """Return current number of stored entries (expired ones included)."""
        return len(self._entries)

    def clear(self) -> None:
        """Remove every entry regardless of tag."""
        with self._lock:
            self._entries.clear()
            self._tag_index.clear()

    def _remove(self, key: str) -> bool:
        entry = self._entries.pop(key, None)
        if entry is None:
            return False
        for tag in entry.tags:
            members = self._tag_index.get(tag)
            if members is not None:
                members.discard(key)
                if not members:
                    del self._tag_index[tag]
        return True


# ------------------------------------------------------------------ #
# Redis Store (optional)
# ------------------------------------------------------------------ #


class RedisTagStore:
    """
    Redis-backed tag-aware store.

    Requires the ``redis`` package (install via ``pip install tagmemo[redis]``).

    Layout:
        ``<prefix>item:<key>``   JSON ``{"value": ..., "tags": [...]}`` with SETEX
        ``<prefix>tag:<tag>``    Keys written with a TTL that carry ``tag``;
                                 expires with its longest-lived member
        ``<prefix>ptag:<tag>``   Keys written without a TTL that carry ``tag``

    An entry and its tag memberships are written in one MULTI/EXEC
    pipeline. A tag set may keep members whose item expired or was
    rewritten with other tags; :meth:`delete_by_tags` only removes items
    whose current payload still carries a requested tag. Tag-set expiry
    uses ``EXPIRE NX``/``GT`` and needs Redis 7.0 or later.

    Example:
        store = RedisTagStore("redis://localhost:6379/0", default_ttl_seconds=600)
        facade = CacheFacade(store)

    Raises:
        ImportError: If ``redis`` package is not installed.
    """

    backend_name = "redis"

    _WATCH_ATTEMPTS = 5

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        client: Any = None,
        prefix: str = "tagmemo:",
        default_ttl_seconds: int = 3600,
    ):
        """Initialize Redis store.

        Args:
            url: Redis connection URL, used when ``client`` is not given.
            client: Pre-built ``redis.Redis`` client (shared pools, tests).
            prefix: Prefix for every key this store writes.
            default_ttl_seconds: Default TTL reported to the façade.
        """
        try:
            import redis
        except ImportError as exc:
            msg = (
                "Redis store requires 'redis' package. "
                "Install with: pip install tagmemo[redis]"
            )
            raise ImportError(msg) from exc

        self._redis_error: type[Exception] = redis.RedisError
        self._watch_error: type[Exception] = redis.WatchError
        self._client = client if client is not None else redis.from_url(url, decode_responses=False)
        self._prefix = prefix
        self._default_ttl = default_ttl_seconds

    def _item_key(self, key: str) -> str:
        return f"{self._prefix}item:{key}"

    def _tag_key(self, tag: str) -> str:
        return f"{self._prefix}tag:{tag}"

    def _persistent_tag_key(self, tag: str) -> str:
        return f"{self._prefix}ptag:{tag}"

    def _unavailable(self, operation: str, exc: Exception, **context: Any) -> StoreUnavailableError:
        return StoreUnavailableError(
            f"Redis {operation} failed: {exc}", cause=exc
        ).with_context(backend=self.backend_name, operation=operation, **context)

    def get(self, key: str) -> StoreLookup:
        try:
            raw = self._client.get(self._item_key(key))
        except self._redis_error as exc:
            raise self._unavailable("get", exc, key=key) from exc

        if raw is None:
            return StoreLookup.miss()

        try:
            payload = json.loads(raw)
        except (TypeError, ValueError) as exc:
            raise CorruptedEntryError(
                f"Undecodable cache payload for key {key}", cause=exc
            ).with_context(key=key, backend=self.backend_name, operation="get") from exc
        if not isinstance(payload, dict) or "value" not in payload:
            raise CorruptedEntryError(
                f"Malformed cache payload for key {key}"
            ).with_context(key=key, backend=self.backend_name, operation="get")

        return StoreLookup(
            value=payload["value"],
            tags=frozenset(payload.get("tags") or ()),
            found=True,
        )

    def set(
        self,
        key: str,
        value: Any,
        tags: frozenset[str] = frozenset(),
        ttl_seconds: int | None = None,
    ) -> bool:
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        ordered_tags = sorted(tags)
        try:
            serialized = json.dumps({"value": value, "tags": ordered_tags})
        except (TypeError, ValueError) as exc:
            raise SerializationError(
                f"Value for key {key} is not JSON-serializable", cause=exc
            ).with_context(key=key, backend=self.backend_name, operation="set") from exc

        item_key = self._item_key(key)
        try:
            pipe = self._client.pipeline(transaction=True)
            if ttl:
                pipe.setex(item_key, ttl, serialized)
                for tag in ordered_tags:
                    tag_key = self._tag_key(tag)
                    pipe.sadd(tag_key, key)
                    # set TTL >= longest member TTL
                    pipe.expire(tag_key, ttl, nx=True)
                    pipe.expire(tag_key, ttl, gt=True)
            else:
                pipe.set(item_key, serialized)
                for tag in ordered_tags:
                    pipe.sadd(self._persistent_tag_key(tag), key)
            pipe.execute()
        except self._redis_error as exc:
            raise self._unavailable("set", exc, key=key, tags=ordered_tags) from exc
        return True

    def delete_by_tags(self, tags: Iterable[str]) -> int:
        """
        Delete every entry whose current payload carries any of ``tags``.

        Tag-set members are only candidates: a key may have been rewritten
        with other tags (or by another namespace) after its item expired.
        Candidates are checked against their payload and the whole check
        runs under WATCH, so a concurrent write restarts it.
        """
        ordered_tags = sorted(set(tags))
        if not ordered_tags:
            return 0
        wanted = frozenset(ordered_tags)
        tag_keys = [
            name
            for tag in ordered_tags
            for name in (self._tag_key(tag), self._persistent_tag_key(tag))
        ]
        try:
            with self._client.pipeline(transaction=True) as pipe:
                for _ in range(self._WATCH_ATTEMPTS):
                    try:
                        removed = self._delete_members(pipe, tag_keys, wanted)
                    except self._watch_error:
                        continue
                    return removed
        except self._redis_error as exc:
            raise self._unavailable("delete_by_tags", exc, tags=ordered_tags) from exc
        raise StoreUnavailableError(
            f"Redis delete_by_tags gave up after {self._WATCH_ATTEMPTS} concurrent modifications"
        ).with_context(backend=self.backend_name, operation="delete_by_tags", tags=ordered_tags)

    def _delete_members(self, pipe: Any, tag_keys: list[str], wanted: frozenset[str]) -> int:
        pipe.watch(*tag_keys)
        members = sorted(m.decode() if isinstance(m, bytes) else m for m in pipe.sunion(tag_keys))
        item_keys = [self._item_key(m) for m in members]
        payloads = []
        if item_keys:
            pipe.watch(*item_keys)
            payloads = pipe.mget(item_keys)
        doomed = [
            item_key
            for item_key, raw in zip(item_keys, payloads)
            if raw is not None and self._carries_any(raw, wanted)
        ]

        pipe.multi()
        if doomed:
            pipe.unlink(*doomed)
        pipe.unlink(*tag_keys)
        results = pipe.execute()
        return int(results[0] or 0) if doomed else 0

    @staticmethod
    def _carries_any(raw: bytes | str, wanted: frozenset[str]) -> bool:
        try:
            payload = json.loads(raw)
        except (TypeError, ValueError):
            # unreadable entries are dropped with the tag
            return True
        if not isinstance(payload, dict):
            return True
        return not wanted.isdisjoint(payload.get("tags") or ())

    def get_default_ttl(self) -> int:
        return self._default_ttl


__all__ = [
    "CacheEntry",
    "StoreLookup",
    "TaggedStore",
    "InMemoryTagStore",
    "RedisTagStore",
]
