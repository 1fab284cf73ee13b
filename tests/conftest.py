"""
Shared pytest fixtures and configuration for tagmemo tests.

This module provides:
- A controllable clock and an in-memory store bound to it
- A recording log sink for asserting façade decisions
- A counting producer for hit/miss assertions
- Store stubs that fail on every call

Usage:
    def test_something(facade, producer):
        facade.resolve(producer, ["k"], ttl=60)
        assert producer.calls == 1
"""

import sys
from pathlib import Path
from typing import Any

import pytest

# Ensure tagmemo package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tagmemo.errors import StoreUnavailableError
from tagmemo.facade import CacheFacade
from tagmemo.store import InMemoryTagStore


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests without explicit markers as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Test Doubles
# =============================================================================


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSink:
    """Log sink that keeps every message for later assertions."""

    def __init__(self):
        self.records: list[dict[str, Any]] = []

    def _record(self, level: str, event: str, **kw: Any) -> None:
        self.records.append({"level": level, "event": event, **kw})

    def debug(self, event: str, **kw: Any) -> None:
        self._record("debug", event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._record("info", event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._record("warning", event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._record("error", event, **kw)

    def events(self) -> list[str]:
        return [r["event"] for r in self.records]

    def last(self) -> dict[str, Any]:
        return self.records[-1]


class CountingProducer:
    """Producer returning a fixed value and counting invocations."""

    def __init__(self, value: Any = "produced"):
        self.value = value
        self.calls = 0

    def __call__(self) -> Any:
        self.calls += 1
        return self.value


class FailingStore:
    """Store stub whose every operation raises."""

    def __init__(self, error_factory=lambda: StoreUnavailableError("connection refused")):
        self._error_factory = error_factory
        self.calls: list[str] = []

    def _fail(self, operation: str):
        self.calls.append(operation)
        raise self._error_factory()

    def get(self, key):
        self._fail("get")

    def set(self, key, value, tags, ttl_seconds):
        self._fail("set")

    def delete_by_tags(self, tags):
        self._fail("delete_by_tags")

    def get_default_ttl(self):
        self._fail("get_default_ttl")


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> InMemoryTagStore:
    return InMemoryTagStore(max_size=100, default_ttl_seconds=300, clock=clock)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def facade(store, sink) -> CacheFacade:
    return CacheFacade(store, namespace="tests", log_sink=sink)


@pytest.fixture
def producer() -> CountingProducer:
    return CountingProducer({"report": "42", "total": 7})
