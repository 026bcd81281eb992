"""Tests for the PayoutResolver: max(minimum rent, revenue share)."""

from decimal import Decimal

import pytest

from settlement_engines.payout import PayoutResolver
from settlement_kernel.domain.values import Currency, Money
from settlement_kernel.exceptions import CalculationError, NonFiniteAmountError


def eur(amount: str) -> Money:
    return Money.of(amount, "EUR")


class TestPayoutResolver:

    def setup_method(self):
        self.resolver = PayoutResolver()

    def test_revenue_share_above_minimum(self):
        decision = self.resolver.resolve(eur("4000.00"), eur("46666.67"))

        assert decision.total_payment == eur("46666.67")
        assert decision.total_difference == eur("42666.67")
        assert not decision.guarantee_applied

    def test_minimum_rent_guarantee(self):
        decision = self.resolver.resolve(eur("6000.00"), eur("1500.00"))

        assert decision.total_payment == eur("6000.00")
        assert decision.total_difference == eur("-4500.00")
        assert decision.guarantee_applied

    def test_equal_amounts(self):
        decision = self.resolver.resolve(eur("100.00"), eur("100.00"))

        assert decision.total_payment == eur("100.00")
        assert decision.total_difference.is_zero
        assert not decision.guarantee_applied

    def test_both_zero(self):
        decision = self.resolver.resolve(Money.zero("EUR"), Money.zero("EUR"))

        assert decision.total_payment.is_zero
        assert decision.total_difference.is_zero

    def test_inputs_carried_through(self):
        decision = self.resolver.resolve(eur("1.00"), eur("2.00"))

        assert decision.minimum_rent == eur("1.00")
        assert decision.revenue_share == eur("2.00")

    def test_currency_mismatch(self):
        with pytest.raises(CalculationError, match="Currency mismatch"):
            self.resolver.resolve(eur("1.00"), Money.of("1.00", "USD"))

    @pytest.mark.parametrize("bad", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_revenue_share(self, bad):
        with pytest.raises(NonFiniteAmountError) as exc_info:
            self.resolver.resolve(eur("1.00"), Money(Decimal(bad), Currency("EUR")))

        assert exc_info.value.field == "revenue_share"

    def test_non_finite_minimum_rent(self):
        with pytest.raises(NonFiniteAmountError) as exc_info:
            self.resolver.resolve(Money(Decimal("NaN"), Currency("EUR")), eur("1.00"))

        assert exc_info.value.field == "minimum_rent"
