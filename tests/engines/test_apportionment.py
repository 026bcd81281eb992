"""
Tests for minor-unit apportionment.

Covers:
- Half-up rounding of rationals
- Exact totals after apportionment
- Tie breaking by position
- House monotonicity when the total grows
- Error handling
"""

from fractions import Fraction

import pytest

from settlement_engines.apportionment import (
    apportion,
    exact_minor_units,
    round_half_up,
)
from settlement_kernel.domain.values import Money


class TestRoundHalfUp:

    @pytest.mark.parametrize("value,expected", [
        (Fraction(5, 2), 3),
        (Fraction(3, 2), 2),
        (Fraction(7, 3), 2),
        (Fraction(8, 3), 3),
        (Fraction(-5, 2), -3),
        (Fraction(0), 0),
    ])
    def test_rounding(self, value, expected):
        assert round_half_up(value) == expected


class TestApportion:

    def test_exact_amounts_unchanged(self):
        assert apportion([Fraction(100), Fraction(250)], 350) == [100, 250]

    def test_reference_thirds(self):
        """2/3 and 1/3 of 7 000 000 cents plus a whole pool share."""
        exact = [
            Fraction(14_000_000, 3),
            Fraction(7_000_000, 3) + 2_000_000,
        ]
        assert apportion(exact, 9_000_000) == [4_666_667, 4_333_333]

    def test_three_equal_thirds(self):
        """100 cents over three equal shares: the first entry takes the extra cent."""
        third = Fraction(100, 3)
        result = apportion([third, third, third], 100)

        assert sum(result) == 100
        assert result == [34, 33, 33]

    def test_removal_takes_from_last_on_tie(self):
        """Half-up rounding overshoots; the later entry gives the cent back."""
        half = Fraction(1, 2)
        assert apportion([half, half], 1) == [1, 0]

    def test_zero_entries_never_receive_units(self):
        result = apportion([Fraction(0), Fraction(10, 3), Fraction(0)], 3)
        assert result == [0, 3, 0]

    def test_zero_total(self):
        assert apportion([Fraction(1, 3), Fraction(2, 3)], 0) == [0, 0]

    def test_empty(self):
        assert apportion([], 0) == []

    def test_total_always_matches(self):
        exact = [Fraction(1, 7), Fraction(2, 7), Fraction(4, 7), Fraction(11, 13)]
        for total in range(0, 40):
            assert sum(apportion(exact, total)) == total

    def test_house_monotone(self):
        """Growing the total never takes a unit away from any entry."""
        weights = [Fraction(5), Fraction(3), Fraction(2)]
        previous = [0, 0, 0]
        for total in range(0, 60):
            current = apportion(weights, total)
            assert all(c >= p for c, p in zip(current, previous))
            previous = current

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError, match="negative amount"):
            apportion([Fraction(-1)], 0)

    def test_negative_total_rejected(self):
        with pytest.raises(ValueError, match="negative total"):
            apportion([Fraction(1)], -1)

    def test_positive_total_over_zero_amounts_rejected(self):
        with pytest.raises(ValueError, match="zero amounts"):
            apportion([Fraction(0), Fraction(0)], 5)


class TestExactMinorUnits:

    def test_cents(self):
        assert exact_minor_units(Money.of("2000.00", "EUR")) == Fraction(200_000)

    def test_sub_cent_kept_exact(self):
        assert exact_minor_units(Money.of("0.125", "EUR")) == Fraction(25, 2)

    def test_zero_decimal_currency(self):
        assert exact_minor_units(Money.of("1500", "JPY")) == Fraction(1500)
