"""
Decorator for memoizing functions through a :class:`~tagmemo.facade.CacheFacade`.

Usage:
    >>> facade = CacheFacade(InMemoryTagStore(), namespace="reports")
    >>> @cached(facade, "report", tags={"report"}, ttl=60)
    ... def compute_report(report_id: str) -> dict:
    ...     return {"id": report_id}
    >>> compute_report("42")
    {'id': '42'}
    >>> compute_report.invalidate()
    1
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from functools import wraps
from typing import Any, Callable, ParamSpec, TypeVar

from tagmemo.facade import CacheFacade, normalize_tags

P = ParamSpec("P")
T = TypeVar("T")


def default_key_parts(key_prefix: str, args: tuple[Any, ...], kwargs: dict[str, Any]) -> list[str]:
    """Key parts from positional args in order, then keyword args sorted by name."""
    parts = [key_prefix]
    parts.extend(str(a) for a in args)
    parts.extend(f"{k}={v}" for k, v in sorted(kwargs.items()))
    return parts


def _prefixed(key_prefix: str, built: Any) -> Any:
    """Prepend the prefix to a builder's key parts.

    Anything that is not a sequence of parts (a bare string, a set, ...) is
    returned unchanged, so key derivation rejects it and the call falls back
    to the wrapped function.
    """
    if isinstance(built, (str, bytes)) or not isinstance(built, Sequence):
        return built
    return [key_prefix, *built]


def cached(
    facade: CacheFacade,
    key_prefix: str,
    *,
    tags: Iterable[str] = (),
    ttl: int | None = None,
    key_builder: Callable[..., Sequence[str]] | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """
    Cache a synchronous function's return value via ``facade.resolve``.

    Args:
        facade: Façade to resolve through.
        key_prefix: First key part; also the default invalidation tag.
        tags: Extra invalidation tags.
        ttl: TTL in seconds (None → façade default, <= 0 → never cached).
        key_builder: Optional ``callable(*args, **kwargs) -> key parts``; the
            prefix is prepended to what it returns.

    Returns:
        Decorator. The wrapped function gains an ``invalidate()`` attribute
        that clears every entry tagged with ``key_prefix``.
    """
    entry_tags = normalize_tags(tags) | {key_prefix}

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            if key_builder is not None:
                parts = _prefixed(key_prefix, key_builder(*args, **kwargs))
            else:
                parts = default_key_parts(key_prefix, args, kwargs)
            return facade.resolve(lambda: func(*args, **kwargs), parts, entry_tags, ttl)

        wrapper.invalidate = lambda: facade.clear_by_tags({key_prefix})  # type: ignore[attr-defined]
        return wrapper

    return decorator


__all__ = ["cached", "default_key_parts"]
