"""Tests for tagmemo.decorators module."""

import pytest

from tagmemo.decorators import cached, default_key_parts
from tagmemo.errors import ConfigurationError
from tagmemo.facade import CacheFacade


class TestDefaultKeyParts:
    def test_positional_then_sorted_keywords(self):
        assert default_key_parts("report", ("42", 2024), {"z": 1, "a": "x"}) == [
            "report", "42", "2024", "a=x", "z=1",
        ]

    def test_prefix_only(self):
        assert default_key_parts("report", (), {}) == ["report"]


class TestCached:
    def test_memoizes_per_arguments(self, facade):
        calls = []

        @cached(facade, "report", ttl=60)
        def compute_report(report_id: str) -> dict:
            calls.append(report_id)
            return {"id": report_id}

        assert compute_report("42") == {"id": "42"}
        assert compute_report("42") == {"id": "42"}
        assert compute_report("43") == {"id": "43"}
        assert calls == ["42", "43"]

    def test_preserves_metadata(self, facade):
        @cached(facade, "report")
        def compute_report(report_id: str) -> dict:
            """Build a report."""
            return {}

        assert compute_report.__name__ == "compute_report"
        assert compute_report.__doc__ == "Build a report."

    def test_invalidate_clears_prefix_tag(self, facade):
        calls = []

        @cached(facade, "report", ttl=60)
        def compute_report(report_id: str) -> str:
            calls.append(report_id)
            return report_id

        compute_report("42")
        assert compute_report.invalidate() == 1
        compute_report("42")
        assert calls == ["42", "42"]

    def test_extra_tags_allow_scoped_invalidation(self, facade):
        calls = []

        @cached(facade, "invoice", tags={"customer:7"}, ttl=60)
        def invoice(invoice_id: str) -> str:
            calls.append(invoice_id)
            return invoice_id

        invoice("1")
        facade.clear_by_tags({"customer:7"})
        invoice("1")
        assert calls == ["1", "1"]

    def test_key_builder(self, facade):
        calls = []

        @cached(facade, "user", ttl=60, key_builder=lambda user, **_: [user["id"]])
        def profile(user: dict, verbose: bool = False) -> str:
            calls.append(verbose)
            return user["id"]

        profile({"id": "u1"}, verbose=False)
        profile({"id": "u1"}, verbose=True)
        assert calls == [False]

    def test_zero_ttl_never_caches(self, facade):
        calls = []

        @cached(facade, "live", ttl=0)
        def live() -> int:
            calls.append(1)
            return len(calls)

        assert live() == 1
        assert live() == 2

    def test_producer_errors_propagate(self, facade):
        @cached(facade, "boom", ttl=60)
        def boom() -> None:
            raise ValueError("boom")

        with pytest.raises(ValueError):
            boom()

    def test_bare_string_tags_rejected_at_decoration(self, facade):
        with pytest.raises(ConfigurationError):
            cached(facade, "report", tags="report")

    def test_key_builder_returning_string_falls_back(self, facade, sink):
        calls = []

        @cached(facade, "r", ttl=60, key_builder=lambda x: x)
        def lookup(x: str) -> str:
            calls.append(x)
            return x.upper()

        assert lookup("abc") == "ABC"
        assert lookup("abc") == "ABC"
        assert calls == ["abc", "abc"]
        assert sink.last()["decision"] == "fallback-due-to-error"
        assert sink.last()["error_type"] == "ConfigurationError"

    def test_key_builder_string_does_not_collide_with_parts(self, facade):
        @cached(facade, "r", ttl=60, key_builder=lambda parts: parts)
        def echo(parts) -> str:
            return repr(parts)

        assert echo(["a", "b"]) == "['a', 'b']"
        assert echo("ab") == "'ab'"

    def test_key_builder_returning_set_falls_back(self, facade, sink):
        @cached(facade, "r", ttl=60, key_builder=lambda x: {x})
        def lookup(x: str) -> str:
            return x

        assert lookup("a") == "a"
        assert sink.last()["decision"] == "fallback-due-to-error"
