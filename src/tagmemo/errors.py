"""
Structured error types for tagmemo.

Every failure the cache layer can observe is expressed as a
:class:`TagMemoError` subclass. Each error carries a category, a
``fallback_safe`` flag, structured context and an optional chained cause,
so the façade can decide between degrading to the producer and surfacing
the failure without inspecting messages or catching bare ``Exception``.

Manifesto:
    Caching is an optimization. A broken cache must never turn into a broken
    application, but a failed invalidation must never pass silently either.

    - **Typed hierarchy:** One class per failure domain (config, store, invalidation)
    - **Explicit fallback semantics:** Each error knows if ``resolve`` may degrade on it
    - **Rich context:** Cache key, tags and backend travel with the error
    - **Error chaining:** Third-party exceptions are kept as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────┐
        │                      TagMemoError                         │
        │      (category, fallback_safe, context, cause)            │
        ├──────────────────────────────────────────────────────────┤
        │                                                           │
        │  ConfigurationError   StoreError          InvalidationError│
        │  (CONFIG, safe)       (STORE, safe)       (INVALIDATION)   │
        │                            │                               │
        │              StoreUnavailableError                         │
        │              SerializationError                            │
        │              CorruptedEntryError                           │
        └──────────────────────────────────────────────────────────┘

Examples:
    >>> error = StoreUnavailableError("connection refused")
    >>> error.fallback_safe
    True
    >>> error.with_context(key="a1b2", backend="redis").context.key
    'a1b2'
    >>> InvalidationError("tag delete failed").fallback_safe
    False

Tags:
    error-handling, exception-hierarchy, fallback, cache, tagmemo

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for classification and log routing."""

    CONFIG = "CONFIG"                  # Bad key parts, bad tags, bad settings
    STORE = "STORE"                    # Connectivity, serialization, corrupt entries
    INVALIDATION = "INVALIDATION"      # Bulk delete by tag failed
    INTERNAL = "INTERNAL"              # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to a :class:`TagMemoError`.

    Attributes:
        key: Derived cache key, when one was computed
        tags: Tags involved in the failing operation
        backend: Store backend name (``memory``, ``redis``, ...)
        operation: Store operation (``get``, ``set``, ``delete_by_tags``, ...)
        metadata: Additional key-value pairs
    """

    key: str | None = None
    tags: tuple[str, ...] | None = None
    backend: str | None = None
    operation: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result: dict[str, Any] = {}
        for name in ("key", "tags", "backend", "operation"):
            value = getattr(self, name)
            if value is not None:
                result[name] = list(value) if name == "tags" else value
        if self.metadata:
            result.update(self.metadata)
        return result


class TagMemoError(Exception):
    """
    Base exception for all tagmemo errors.

    Subclasses set ``default_category`` and ``default_fallback_safe``.
    ``fallback_safe`` tells the façade's fallback guard whether a
    ``resolve`` call may swallow the error and invoke the producer directly.

    Examples:
        >>> error = TagMemoError("unexpected state")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.to_dict()["fallback_safe"]
        False
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_fallback_safe: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        fallback_safe: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.fallback_safe = (
            fallback_safe if fallback_safe is not None else self.default_fallback_safe
        )
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> TagMemoError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StoreUnavailableError("timeout").with_context(
                key=key, backend="redis", operation="get"
            )
        """
        for name, value in kwargs.items():
            if name == "tags" and value is not None:
                value = tuple(value)
            if hasattr(self.context, name) and name != "metadata":
                setattr(self.context, name, value)
            else:
                self.context.metadata[name] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "fallback_safe": self.fallback_safe,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(TagMemoError):
    """
    Caller supplied unusable input (empty key parts, bare string tags, ...).

    Fallback-safe: ``resolve`` logs it and invokes the producer directly.
    """

    default_category = ErrorCategory.CONFIG
    default_fallback_safe = True


# =============================================================================
# STORE ERRORS
# =============================================================================


class StoreError(TagMemoError):
    """Failure reported by, or while talking to, the backing store."""

    default_category = ErrorCategory.STORE
    default_fallback_safe = True


class StoreUnavailableError(StoreError):
    """Store could not be reached (connection refused, timeout, ...)."""


class SerializationError(StoreError):
    """Value could not be encoded for the store."""


class CorruptedEntryError(StoreError):
    """Stored payload could not be decoded back into a value."""


# =============================================================================
# INVALIDATION ERRORS
# =============================================================================


class InvalidationError(TagMemoError):
    """
    Bulk delete by tag failed.

    Never fallback-safe: there is no computed value to fall back to, and
    silently keeping stale entries is a correctness problem.
    """

    default_category = ErrorCategory.INVALIDATION
    default_fallback_safe = False

    def __init__(self, message: str, *, tags: tuple[str, ...] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        if tags is not None:
            self.context.tags = tuple(tags)


FALLBACK_ERRORS: tuple[type[TagMemoError], ...] = (ConfigurationError, StoreError)
"""Error types the fallback guard degrades on."""


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "TagMemoError",
    "ConfigurationError",
    "StoreError",
    "StoreUnavailableError",
    "SerializationError",
    "CorruptedEntryError",
    "InvalidationError",
    "FALLBACK_ERRORS",
]
