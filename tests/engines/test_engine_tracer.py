"""
Tests for the @traced_engine decorator.

Covers:
- One trace record per call
- Fingerprints independent of how arguments are passed
- Trace written when the engine raises
"""

from decimal import Decimal

import pytest

from inventory_engines.tracer import compute_input_fingerprint, traced_engine


@traced_engine("test_engine", "2.1", fingerprint_fields=("quantity", "label"))
def _double(quantity, label="x"):
    return quantity * 2


@traced_engine("failing_engine", "1.0")
def _explode():
    raise ArithmeticError("boom")


class TestTracedEngine:
    def test_result_passed_through(self):
        assert _double(Decimal("2.5")) == Decimal("5.0")

    def test_trace_fields(self, log_capture):
        _double(Decimal("3"), label="bolts")

        traces = log_capture.find("INVENTORY_ENGINE_TRACE")
        assert len(traces) == 1
        trace = traces[0]
        assert trace["engine_name"] == "test_engine"
        assert trace["engine_version"] == "2.1"
        assert trace["outcome"] == "ok"
        assert len(trace["input_fingerprint"]) == 16
        assert trace["duration_ms"] >= 0

    def test_positional_and_keyword_agree(self, log_capture):
        _double(Decimal("3"), "bolts")
        _double(quantity=Decimal("3"), label="bolts")

        first, second = log_capture.find("INVENTORY_ENGINE_TRACE")
        assert first["input_fingerprint"] == second["input_fingerprint"]

    def test_defaults_included(self, log_capture):
        _double(Decimal("3"))
        _double(Decimal("3"), label="x")

        first, second = log_capture.find("INVENTORY_ENGINE_TRACE")
        assert first["input_fingerprint"] == second["input_fingerprint"]

    def test_error_still_traced(self, log_capture):
        with pytest.raises(ArithmeticError):
            _explode()

        trace = log_capture.find("INVENTORY_ENGINE_TRACE")[0]
        assert trace["outcome"] == "error"
        assert trace["input_fingerprint"] == ""

    def test_engine_metadata_attached(self):
        assert _double.engine_name == "test_engine"
        assert _double.__name__ == "_double"


class TestFingerprint:
    def test_dict_key_order_irrelevant(self):
        a = compute_input_fingerprint(("m",), {"m": {"a": 1, "b": 2}})
        b = compute_input_fingerprint(("m",), {"m": {"b": 2, "a": 1}})

        assert a == b

    def test_sequence_order_matters(self):
        a = compute_input_fingerprint(("s",), {"s": ["L1", "L2"]})
        b = compute_input_fingerprint(("s",), {"s": ["L2", "L1"]})

        assert a != b

    def test_missing_field_hashes_as_none(self):
        assert compute_input_fingerprint(("q",), {}) == compute_input_fingerprint(("q",), {"q": None})

    def test_string_boundaries_distinguished(self):
        a = compute_input_fingerprint(("s",), {"s": ["ab", "c"]})
        b = compute_input_fingerprint(("s",), {"s": ["a", "bc"]})

        assert a != b
