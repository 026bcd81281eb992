"""
Module: settlement_engines.payout
Responsibility:
    Decide what a lessor is paid: the larger of the guaranteed minimum rent
    and the revenue share, together with the signed gap between them.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - total_payment = max(minimum_rent, revenue_share)
    - total_difference = revenue_share - minimum_rent (may be negative)
    - total_payment >= minimum_rent

Failure modes:
    - NonFiniteAmountError on NaN / Infinity input.
    - CalculationError when the two amounts carry different currencies.
"""

from __future__ import annotations

from dataclasses import dataclass

from settlement_kernel.domain.values import Money
from settlement_kernel.exceptions import CalculationError, NonFiniteAmountError


@dataclass(frozen=True)
class PayoutDecision:
    """Payment figures of one lease."""

    minimum_rent: Money
    revenue_share: Money
    total_payment: Money
    total_difference: Money

    @property
    def guarantee_applied(self) -> bool:
        """True when the minimum rent tops up a smaller revenue share."""
        return self.minimum_rent > self.revenue_share


class PayoutResolver:
    """
    Resolve the payment of a lease from its two entitlement figures.

    Contract:
        Stateless; ``resolve`` is a pure function of its arguments.
    """

    def resolve(self, minimum_rent: Money, revenue_share: Money) -> PayoutDecision:
        if not minimum_rent.is_finite:
            raise NonFiniteAmountError("minimum_rent", str(minimum_rent.amount))
        if not revenue_share.is_finite:
            raise NonFiniteAmountError("revenue_share", str(revenue_share.amount))
        if minimum_rent.currency != revenue_share.currency:
            raise CalculationError(
                f"Currency mismatch between minimum rent ({minimum_rent.currency}) "
                f"and revenue share ({revenue_share.currency})"
            )

        total_payment = revenue_share if revenue_share >= minimum_rent else minimum_rent

        return PayoutDecision(
            minimum_rent=minimum_rent,
            revenue_share=revenue_share,
            total_payment=total_payment,
            total_difference=revenue_share - minimum_rent,
        )
