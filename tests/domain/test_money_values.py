"""Tests for budget_kernel.domain.values -- minor-unit conversions."""

from decimal import Decimal

import pytest

from budget_kernel.domain.values import from_minor_units, round_money, to_minor_units


class TestToMinorUnits:
    @pytest.mark.parametrize(
        "amount, expected",
        [
            (Decimal("120.00"), 12000),
            (Decimal("-120.00"), -12000),
            (Decimal("0.01"), 1),
            (Decimal("0"), 0),
            (Decimal("84.005"), 8401),  # half-up
            (Decimal("84.004"), 8400),
            (Decimal("-0.005"), -1),  # half away from zero
        ],
    )
    def test_conversion(self, amount, expected):
        assert to_minor_units(amount) == expected


class TestFromMinorUnits:
    def test_two_places(self):
        assert from_minor_units(8400) == Decimal("84.00")
        assert str(from_minor_units(1)) == "0.01"

    def test_round_money_quantizes(self):
        assert round_money(Decimal("1.235")) == Decimal("1.24")
        assert round_money(Decimal("7")) == Decimal("7.00")
