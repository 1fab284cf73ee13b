"""Tests for tagmemo.logging module."""

import json
import logging

import pytest
import structlog
from structlog.testing import capture_logs

from tagmemo.facade import CacheFacade
from tagmemo.logging import NullLogSink, configure_logging, get_logger
from tagmemo.store import InMemoryTagStore


@pytest.fixture(autouse=True)
def _reset_structlog():
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()


class TestNullLogSink:
    def test_accepts_all_levels(self):
        sink = NullLogSink()
        assert sink.debug("e", a=1) is None
        assert sink.info("e") is None
        assert sink.warning("e") is None
        assert sink.error("e") is None


class TestConfigureLogging:
    def test_json_output(self, caplog):
        caplog.set_level(logging.INFO)
        configure_logging(level="INFO", json_format=True, service="reports-api")

        get_logger("tagmemo.tests").info("cache_invalidated", removed=2)

        payload = json.loads(caplog.records[-1].getMessage())
        assert payload["event"] == "cache_invalidated"
        assert payload["removed"] == 2
        assert payload["service.name"] == "reports-api"
        assert payload["log.level"] == "info"
        assert "@timestamp" in payload

    def test_level_filters_debug(self, caplog):
        caplog.set_level(logging.DEBUG)
        configure_logging(level="INFO", json_format=True)

        get_logger("tagmemo.tests").debug("cache_hit", key="k")

        assert not [r for r in caplog.records if "cache_hit" in r.getMessage()]

    def test_configures_structlog(self):
        configure_logging(level="WARNING", json_format=False)
        assert structlog.is_configured()


class TestFacadeWithStructlogSink:
    def test_decisions_reach_structlog(self):
        facade = CacheFacade(InMemoryTagStore(), namespace="tests")

        with capture_logs() as logs:
            facade.set_log_sink(get_logger("tagmemo.facade"))
            facade.resolve(lambda: "v", ["k"], ttl=60)
            facade.resolve(lambda: "v", ["k"], ttl=60)

        assert [entry["event"] for entry in logs] == ["cache_reset_due_to_miss", "cache_hit"]
        assert logs[1]["log_level"] == "debug"
        assert logs[1]["key"] == facade.derive_key(["k"])
