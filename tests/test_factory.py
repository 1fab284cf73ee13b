"""Tests for tagmemo.factory module."""

from unittest.mock import MagicMock

import pytest
import structlog

from conftest import CountingProducer
from tagmemo.facade import CacheFacade
from tagmemo.factory import create_facade, create_store
from tagmemo.hashing import derive_namespace_tag
from tagmemo.logging import NullLogSink
from tagmemo.settings import StoreBackend, TagMemoSettings, get_settings
from tagmemo.store import InMemoryTagStore


@pytest.fixture(autouse=True)
def _reset(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    structlog.reset_defaults()


class TestCreateStore:
    def test_memory_backend(self):
        store = create_store(TagMemoSettings(default_ttl=42, max_size=5))
        assert isinstance(store, InMemoryTagStore)
        assert store.get_default_ttl() == 42

    def test_redis_backend(self):
        redis = pytest.importorskip("redis")
        from tagmemo.store import RedisTagStore

        with pytest.MonkeyPatch.context() as mp:
            mock_from_url = MagicMock(return_value=MagicMock())
            mp.setattr(redis, "from_url", mock_from_url)

            store = create_store(
                TagMemoSettings(backend=StoreBackend.REDIS, redis_url="redis://cache:6379/2", default_ttl=90)
            )

        assert isinstance(store, RedisTagStore)
        assert store.get_default_ttl() == 90
        mock_from_url.assert_called_once_with("redis://cache:6379/2", decode_responses=False)


class TestCreateFacade:
    def test_from_settings(self):
        settings = TagMemoSettings(namespace="billing", namespace_keys=True, default_ttl=120)
        facade = create_facade(settings)

        assert isinstance(facade, CacheFacade)
        assert facade.namespace_tag == derive_namespace_tag("billing")
        assert facade.default_ttl == 120
        assert facade.derive_key(["k"]) != create_facade(TagMemoSettings()).derive_key(["k"])

    def test_disabled_from_settings(self):
        facade = create_facade(TagMemoSettings(enabled=False))
        producer = CountingProducer()
        facade.resolve(producer, ["k"], ttl=60)
        facade.resolve(producer, ["k"], ttl=60)
        assert facade.enabled is False
        assert producer.calls == 2

    def test_uses_process_settings_by_default(self, monkeypatch):
        monkeypatch.setenv("TAGMEMO_DEFAULT_TTL", "33")
        assert create_facade().default_ttl == 33

    def test_injected_store(self):
        store = InMemoryTagStore(default_ttl_seconds=7)
        facade = create_facade(TagMemoSettings(), store=store)
        assert facade.store is store
        assert facade.default_ttl == 7

    def test_silent_by_default(self):
        facade = create_facade(TagMemoSettings())
        assert isinstance(facade._log, NullLogSink)

    def test_diagnostics_sink(self):
        from structlog.testing import capture_logs

        with capture_logs() as logs:
            facade = create_facade(TagMemoSettings(log_diagnostics=True, namespace="t"))
            facade.resolve(lambda: 1, ["k"], ttl=60)

        assert logs[0]["event"] == "cache_reset_due_to_miss"
        assert logs[0]["decision"] == "reset-due-to-miss"
        assert logs[0]["key"] == facade.derive_key(["k"])

    def test_configure_logs(self):
        create_facade(TagMemoSettings(log_level="DEBUG", log_json=True), configure_logs=True)
        assert structlog.is_configured()
