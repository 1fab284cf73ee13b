"""
Deterministic key and namespace derivation.

Turns caller-supplied key parts into a fixed-length cache key, and an
installation-stable identifier into the namespace tag attached to every
entry a façade writes.

Manifesto:
    A cache key has to survive process restarts and deploys:
    - **Deterministic:** Same parts (and namespace mode) → same key, always
    - **Order-dependent:** ``["a", "b"]`` and ``["b", "a"]`` are different keys
    - **Unambiguous:** Parts are JSON-encoded, so ``["a|b"]`` never collides
      with ``["a", "b"]``
    - **Fixed length:** 32 hex chars regardless of input size

Architecture:
    ::

        parts ──► validate ──► (+ namespace tag) ──► JSON array ──► SHA-256[:32]

        ["report", "42"]            '["report","42"]'      'c1f0...'(32)

Examples:
    >>> key = derive_key(["report", "42"])
    >>> len(key)
    32
    >>> key == derive_key(["report", "42"])
    True
    >>> key == derive_key(["42", "report"])
    False
    >>> derive_key(["report", "42"], namespace="ns") == key
    False

Tags:
    hashing, cache-key, namespace, determinism, tagmemo

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from tagmemo.errors import ConfigurationError

KEY_LENGTH = 32


def compute_hash(*values: Any, length: int = KEY_LENGTH) -> str:
    """
    Compute a deterministic hex digest from values.

    Values are joined as strings with ``|`` and hashed with SHA-256. Use
    :func:`derive_key` for cache keys; this helper is for identifiers whose
    components cannot contain the delimiter ambiguously (paths, names).

    Args:
        *values: Values to hash (converted to strings)
        length: Hex digest length (default 32 = 128 bits)
    """
    content = "|".join(str(v) for v in values)
    return hashlib.sha256(content.encode()).hexdigest()[:length]


def validate_key_parts(parts: Sequence[str]) -> list[str]:
    """
    Check key parts and return them as a list.

    Raises:
        ConfigurationError: If ``parts`` is a bare string, empty, or holds
            anything other than strings.
    """
    if isinstance(parts, (str, bytes)) or not isinstance(parts, Sequence):
        raise ConfigurationError(
            f"Key parts must be a sequence of strings, got {type(parts).__name__}"
        )
    if not parts:
        raise ConfigurationError("Key parts are required")
    for index, part in enumerate(parts):
        if not isinstance(part, str):
            raise ConfigurationError(
                f"Key part {index} must be a string, got {type(part).__name__}"
            )
    return list(parts)


def canonicalize(parts: Sequence[str]) -> str:
    """Serialize parts to the canonical form the digest is computed over."""
    return json.dumps(list(parts), ensure_ascii=False, separators=(",", ":"))


def derive_key(parts: Sequence[str], namespace: str | None = None) -> str:
    """
    Derive a cache key from ordered key parts.

    Order is part of the contract: the parts are treated as an ordered
    sequence, so reordering them yields a different key.

    Args:
        parts: Non-empty ordered sequence of strings
        namespace: Optional namespace tag appended as the final part

    Returns:
        32-char hex key

    Raises:
        ConfigurationError: If ``parts`` is invalid (see :func:`validate_key_parts`)
    """
    items = validate_key_parts(parts)
    if namespace is not None:
        items.append(namespace)
    digest = hashlib.sha256(canonicalize(items).encode("utf-8")).hexdigest()
    return digest[:KEY_LENGTH]


def install_path() -> Path:
    """Resolved directory this package is installed in."""
    return Path(__file__).resolve().parent


def derive_namespace_tag(identifier: str | None = None) -> str:
    """
    Derive the namespace tag for a façade.

    With an explicit ``identifier`` the tag is a hash of it. Without one the
    tag is a hash of the package's install path, so every process running
    from the same installation shares a namespace.
    """
    if identifier is not None:
        if not identifier:
            raise ConfigurationError("Namespace identifier must not be empty")
        return compute_hash("namespace", identifier)
    return compute_hash("install", install_path())


__all__ = [
    "KEY_LENGTH",
    "compute_hash",
    "validate_key_parts",
    "canonicalize",
    "derive_key",
    "install_path",
    "derive_namespace_tag",
]
