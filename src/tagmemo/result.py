"""
Result envelope for the fallback guard.

``Ok[T]`` wraps a value, ``Err[T]`` wraps an exception. The façade runs every
store interaction through :func:`try_result` with an explicit ``catch``
tuple, so only the error kinds it is allowed to degrade on become ``Err``
values; anything else (a programming error in a store adapter, a bug in a
producer) propagates as a normal exception.

Examples:
    >>> from tagmemo.result import Ok, Err, try_result
    >>> try_result(lambda: 1 + 1).unwrap()
    2
    >>> try_result(lambda: int("x"), catch=(ValueError,)).is_err()
    True
    >>> match Ok("cached"):
    ...     case Ok(value):
    ...         print(value)
    ...     case Err(error):
    ...         print("failed", error)
    cached

Tags:
    result-pattern, error-handling, fallback, tagmemo

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def inspect_err(self, f: Callable[[Exception], None]) -> Result[T]:
        """No-op for Ok."""
        return self

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """Failed result containing the captured exception."""

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        raise self.error

    def inspect_err(self, f: Callable[[Exception], None]) -> Result[T]:
        """Call f with error for side effects, return self."""
        f(self.error)
        return self

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


def try_result(
    f: Callable[[], T],
    *,
    catch: tuple[type[Exception], ...] = (Exception,),
) -> Result[T]:
    """
    Execute a zero-argument callable and wrap the outcome.

    Only exceptions that are instances of ``catch`` are turned into ``Err``;
    other exceptions propagate unchanged.

    Args:
        f: Zero-argument callable (wrap calls with arguments in a lambda)
        catch: Exception types to capture

    Returns:
        ``Ok(f())`` on success, ``Err(exc)`` if ``f`` raised one of ``catch``
    """
    try:
        return Ok(f())
    except catch as e:
        return Err(e)


__all__ = ["Ok", "Err", "Result", "try_result"]
