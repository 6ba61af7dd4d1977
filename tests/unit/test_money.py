"""
Tests for the minor-unit money helpers.

Covers:
- Conversion to and from integer paise
- ROUND_HALF_UP at the minor unit
- Rejection of binary floats
"""

from decimal import Decimal

import pytest

from runway_kernel.db.types import (
    from_minor,
    is_within_tolerance,
    round_money,
    to_minor,
)


class TestToMinor:
    def test_decimal_to_paise(self):
        assert to_minor(Decimal("10.50")) == 1050

    def test_int_is_whole_rupees(self):
        assert to_minor(1180) == 118000

    def test_string_amount(self):
        assert to_minor("99.99") == 9999

    def test_negative_amount(self):
        assert to_minor(Decimal("-250.25")) == -25025

    def test_sub_paisa_rounds_half_up(self):
        assert to_minor(Decimal("10.505")) == 1051
        assert to_minor(Decimal("10.504")) == 1050

    def test_float_rejected(self):
        with pytest.raises(TypeError):
            to_minor(10.5)

    def test_bool_rejected(self):
        with pytest.raises(TypeError):
            to_minor(True)


class TestFromMinor:
    def test_two_places(self):
        assert from_minor(1050) == Decimal("10.50")
        assert str(from_minor(1050)) == "10.50"

    def test_zero(self):
        assert from_minor(0) == Decimal("0.00")

    def test_negative(self):
        assert from_minor(-1) == Decimal("-0.01")


class TestRounding:
    def test_round_money_half_up(self):
        assert round_money(Decimal("2.345")) == Decimal("2.35")
        assert round_money(Decimal("2.344")) == Decimal("2.34")

    def test_tolerance_is_one_paisa(self):
        assert is_within_tolerance(0)
        assert not is_within_tolerance(1)
        assert not is_within_tolerance(-1)
