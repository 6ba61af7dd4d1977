"""Tests for the ENGINE_TRACE decorator."""

from decimal import Decimal

from runway_engines.tax import TaxEngine
from runway_engines.tracer import compute_input_fingerprint


def fingerprints(captured_logs, engine_name: str) -> list[str]:
    return [
        r["input_fingerprint"]
        for r in captured_logs()
        if r["message"] == "ENGINE_TRACE" and r["engine_name"] == engine_name
    ]


class TestInputFingerprint:
    def test_positional_and_keyword_calls_match(self, captured_logs):
        engine = TaxEngine()

        engine.calculate(Decimal("1000"), 18)
        engine.calculate(base_amount=Decimal("1000"), rate=18)

        first, second = fingerprints(captured_logs, "gst")
        assert first == second
        assert first == compute_input_fingerprint(
            ("base_amount", "rate"), {"base_amount": Decimal("1000"), "rate": 18}
        )

    def test_different_inputs_differ(self, captured_logs):
        engine = TaxEngine()

        engine.calculate(Decimal("1000"), 18)
        engine.calculate(Decimal("2000"), 18)
        engine.calculate(Decimal("1000"), 5)

        assert len(set(fingerprints(captured_logs, "gst"))) == 3

    def test_missing_field_is_null(self):
        assert compute_input_fingerprint(("rate",), {}) == compute_input_fingerprint(
            ("rate",), {"rate": None}
        )
