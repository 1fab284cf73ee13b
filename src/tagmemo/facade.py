"""
Memoizing cache façade.

:class:`CacheFacade` wraps a producer callable: it returns the stored value
for the derived key when a valid one exists, otherwise it calls the
producer, stores the result with a TTL and a tag set, and returns it.
Store and key-derivation failures degrade to calling the producer; they
never reach the caller.

Manifesto:
    A cache outage must not become an application outage, and a failed
    invalidation must not go unnoticed.

    - **Read-through:** ``resolve`` is the only entry point for cached reads
    - **Tag-scoped eviction:** Every entry carries the façade's namespace tag
      plus caller tags; ``clear_by_tags`` / ``clear_all`` evict by tag
    - **Total fallback:** ``resolve`` never raises for cache-layer failures
    - **Loud invalidation:** ``clear_*`` raise ``InvalidationError``
    - **No shared call state:** Each call returns its own ``Resolution``

Architecture:
    ::

        resolve(producer, key_parts, tags, ttl)
             │
             ▼
        derive_key ──ConfigurationError──────────────► fallback-due-to-error
             │
             ├── disabled ───────────────────────────► bypass-disabled
             ├── effective ttl <= 0 ─────────────────► bypass-zero-ttl
             ▼
        store.get ──StoreError───────────────────────► fallback-due-to-error
             │
             ├── found and value is not None ────────► hit
             ▼
        producer() → store.set(ns ∪ tags, ttl) ──────► reset-due-to-miss
                          └──StoreError──────────────► fallback-due-to-error
                                                       (produced value kept)

Examples:
    >>> from tagmemo import CacheFacade, InMemoryTagStore
    >>> facade = CacheFacade(InMemoryTagStore(), namespace="reports")
    >>> calls = []
    >>> def compute_report():
    ...     calls.append(1)
    ...     return {"id": "42", "total": 7}
    >>> facade.resolve(compute_report, ["report", "42"], {"report"}, ttl=60)
    {'id': '42', 'total': 7}
    >>> facade.resolve(compute_report, ["report", "42"], {"report"}, ttl=60)
    {'id': '42', 'total': 7}
    >>> len(calls)
    1
    >>> facade.clear_by_tags({"report"})
    1

Guardrails:
    ❌ DON'T: Cache ``None`` results and expect hits (``None`` reads as a miss)
    ✅ DO: Return a sentinel value from the producer if "nothing" must be cached

    ❌ DON'T: Pass a bare string as key parts or tags
    ✅ DO: ``["report", report_id]`` and ``{"report"}``

Tags:
    cache, memoization, facade, ttl, tags, fallback, tagmemo

Doc-Types:
    - API Reference
    - Technical Design
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

from tagmemo.errors import FALLBACK_ERRORS, ConfigurationError, InvalidationError, StoreError
from tagmemo.hashing import derive_key, derive_namespace_tag
from tagmemo.logging import LogSink, NullLogSink
from tagmemo.result import Err, Ok, try_result
from tagmemo.store import TaggedStore

T = TypeVar("T")


class Decision(str, Enum):
    """Outcome of a single ``resolve`` call."""

    HIT = "hit"
    RESET_DUE_TO_MISS = "reset-due-to-miss"
    BYPASS_DISABLED = "bypass-disabled"
    BYPASS_ZERO_TTL = "bypass-zero-ttl"
    FALLBACK_DUE_TO_ERROR = "fallback-due-to-error"


@dataclass(frozen=True, slots=True)
class Resolution(Generic[T]):
    """Per-call result handle returned by :meth:`CacheFacade.resolve_result`.

    Attributes:
        value: Cached or freshly produced value
        key: Derived cache key, or None if derivation failed
        decision: Which path the call took
    """

    value: T
    key: str | None
    decision: Decision

    @property
    def from_cache(self) -> bool:
        return self.decision is Decision.HIT


def normalize_tags(tags: Iterable[str]) -> frozenset[str]:
    """Validate caller tags and return them as a frozenset.

    Raises:
        ConfigurationError: If ``tags`` is a bare string or holds non-strings.
    """
    if isinstance(tags, (str, bytes)):
        raise ConfigurationError("Tags must be a collection of strings, not a single string")
    normalized = frozenset(tags)
    for tag in normalized:
        if not isinstance(tag, str) or not tag:
            raise ConfigurationError(f"Tags must be non-empty strings, got {tag!r}")
    return normalized


class CacheFacade:
    """
    Read-through cache façade over a :class:`~tagmemo.store.TaggedStore`.

    One façade owns one namespace tag. Holds no per-call state, but is not
    internally synchronized either: concurrent use is as safe as the store.

    Example:
        facade = CacheFacade(RedisTagStore(url), namespace="billing")
        invoice = facade.resolve(
            lambda: build_invoice(invoice_id),
            ["invoice", invoice_id],
            {"invoice", f"customer:{customer_id}"},
            ttl=300,
        )
        facade.clear_by_tags({f"customer:{customer_id}"})
    """

    def __init__(
        self,
        store: TaggedStore,
        *,
        namespace: str | None = None,
        namespace_tag: str | None = None,
        namespace_keys: bool = False,
        enabled: bool = True,
        default_ttl: int | None = None,
        log_sink: LogSink | None = None,
    ):
        """Initialize the façade.

        Args:
            store: Backing store capability.
            namespace: Identifier hashed into the namespace tag; the install
                path is used when neither this nor ``namespace_tag`` is given.
            namespace_tag: Precomputed namespace tag (overrides ``namespace``).
            namespace_keys: Mix the namespace tag into every derived key.
            enabled: Start enabled (False bypasses the store on every call).
            default_ttl: TTL for calls without one; read from the store when None.
            log_sink: Diagnostic destination; defaults to a no-op sink.

        Raises:
            ConfigurationError: If ``namespace`` is an empty string.
        """
        self._store = store
        self._namespace_tag = namespace_tag or derive_namespace_tag(namespace)
        self._namespace_keys = namespace_keys
        self._enabled = enabled
        self._log: LogSink = log_sink if log_sink is not None else NullLogSink()
        self._default_ttl = default_ttl if default_ttl is not None else self._read_default_ttl()

    def _read_default_ttl(self) -> int:
        match try_result(self._store.get_default_ttl, catch=FALLBACK_ERRORS):
            case Ok(ttl):
                return int(ttl)
            case Err(error):
                self._log.warning(
                    "cache_default_ttl_unavailable",
                    error_type=type(error).__name__,
                    error=str(error),
                )
                return 0

    # ------------------------------------------------------------------ #
    # Configuration
    # ------------------------------------------------------------------ #

    @property
    def store(self) -> TaggedStore:
        """The backing store handle."""
        return self._store

    @property
    def namespace_tag(self) -> str:
        return self._namespace_tag

    @property
    def default_ttl(self) -> int:
        return self._default_ttl

    @property
    def enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        """Turn the global bypass off (False) or back on (True)."""
        self._enabled = bool(enabled)

    def set_log_sink(self, sink: LogSink | None) -> None:
        """Replace the diagnostic sink; None restores the no-op sink."""
        self._log = sink if sink is not None else NullLogSink()

    # ------------------------------------------------------------------ #
    # Key derivation
    # ------------------------------------------------------------------ #

    def derive_key(self, key_parts: Sequence[str]) -> str:
        """Derive the cache key for ``key_parts`` under this façade's namespace mode."""
        namespace = self._namespace_tag if self._namespace_keys else None
        return derive_key(key_parts, namespace=namespace)

    def _effective_ttl(self, ttl: int | None) -> int:
        if ttl is None:
            return self._default_ttl
        if isinstance(ttl, bool) or not isinstance(ttl, int):
            raise ConfigurationError(f"TTL must be an integer number of seconds, got {ttl!r}")
        return ttl

    # ------------------------------------------------------------------ #
    # Read-through
    # ------------------------------------------------------------------ #

    def resolve(
        self,
        producer: Callable[[], T],
        key_parts: Sequence[str],
        tags: Iterable[str] = (),
        ttl: int | None = None,
    ) -> T:
        """
        Return the cached value for ``key_parts``, producing and storing it on a miss.

        Args:
            producer: Zero-argument callable computing the value
            key_parts: Non-empty ordered sequence of strings identifying the value
            tags: Extra invalidation tags (the namespace tag is always added)
            ttl: TTL in seconds; None uses the façade default, <= 0 bypasses the store

        Returns:
            The cached or freshly produced value. Cache-layer failures never
            raise; exceptions from ``producer`` itself propagate.
        """
        return self.resolve_result(producer, key_parts, tags, ttl).value

    def resolve_result(
        self,
        producer: Callable[[], T],
        key_parts: Sequence[str],
        tags: Iterable[str] = (),
        ttl: int | None = None,
    ) -> Resolution[T]:
        """Same as :meth:`resolve`, returning a :class:`Resolution` handle."""
        planned = try_result(
            lambda: (self.derive_key(key_parts), normalize_tags(tags), self._effective_ttl(ttl)),
            catch=FALLBACK_ERRORS,
        )
        if planned.is_err():
            return self._fallback(producer, None, planned.error)
        key, extra_tags, effective_ttl = planned.unwrap()

        if not self._enabled:
            self._log.debug("cache_bypass_disabled", key=key, decision=Decision.BYPASS_DISABLED.value)
            return Resolution(producer(), key, Decision.BYPASS_DISABLED)

        if effective_ttl <= 0:
            self._log.debug(
                "cache_bypass_zero_ttl",
                key=key,
                decision=Decision.BYPASS_ZERO_TTL.value,
                ttl=effective_ttl,
            )
            return Resolution(producer(), key, Decision.BYPASS_ZERO_TTL)

        lookup = try_result(lambda: self._store.get(key), catch=FALLBACK_ERRORS)
        if lookup.is_err():
            return self._fallback(producer, key, lookup.error)

        found = lookup.unwrap()
        if found.found and found.value is not None:
            self._log.debug("cache_hit", key=key, decision=Decision.HIT.value)
            return Resolution(found.value, key, Decision.HIT)

        value = producer()
        entry_tags = frozenset({self._namespace_tag}) | extra_tags
        written = try_result(
            lambda: self._store.set(key, value, entry_tags, effective_ttl),
            catch=FALLBACK_ERRORS,
        ).inspect_err(lambda error: self._log_fallback(key, error))
        if written.is_err():
            return Resolution(value, key, Decision.FALLBACK_DUE_TO_ERROR)

        if written.unwrap() is False:
            self._log.warning(
                "cache_write_rejected",
                key=key,
                decision=Decision.RESET_DUE_TO_MISS.value,
                ttl=effective_ttl,
            )
        else:
            self._log.debug(
                "cache_reset_due_to_miss",
                key=key,
                decision=Decision.RESET_DUE_TO_MISS.value,
                ttl=effective_ttl,
                tags=sorted(entry_tags),
                stale=found.found,
            )
        return Resolution(value, key, Decision.RESET_DUE_TO_MISS)

    def _fallback(self, producer: Callable[[], T], key: str | None, error: Exception) -> Resolution[T]:
        self._log_fallback(key, error)
        return Resolution(producer(), key, Decision.FALLBACK_DUE_TO_ERROR)

    def _log_fallback(self, key: str | None, error: Exception) -> None:
        self._log.warning(
            "cache_fallback_due_to_error",
            key=key,
            decision=Decision.FALLBACK_DUE_TO_ERROR.value,
            error_type=type(error).__name__,
            error=str(error),
            cause=str(error.__cause__) if error.__cause__ is not None else None,
        )

    # ------------------------------------------------------------------ #
    # Invalidation
    # ------------------------------------------------------------------ #

    def clear_by_tags(self, tags: Iterable[str]) -> int:
        """
        Delete every entry carrying any of ``tags``.

        Returns:
            Number of entries the store reports as removed.

        Raises:
            ConfigurationError: If ``tags`` is empty, a bare string, or holds non-strings.
            InvalidationError: If the store fails to delete.
        """
        normalized = normalize_tags(tags)
        if not normalized:
            raise ConfigurationError("At least one tag is required to invalidate")
        ordered = tuple(sorted(normalized))

        try:
            removed = self._store.delete_by_tags(ordered)
        except StoreError as exc:
            self._log.error(
                "cache_invalidation_failed",
                tags=list(ordered),
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise InvalidationError(
                f"Failed to delete entries for tags {list(ordered)}", tags=ordered, cause=exc
            ) from exc

        self._log.info("cache_invalidated", tags=list(ordered), removed=removed)
        return removed

    def clear_all(self) -> int:
        """Delete every entry written under this façade's namespace tag."""
        return self.clear_by_tags({self._namespace_tag})


__all__ = ["CacheFacade", "Decision", "Resolution", "normalize_tags"]
