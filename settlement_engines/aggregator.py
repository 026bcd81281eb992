"""
Module: settlement_engines.aggregator
Responsibility:
    Reduce per-lease entitlements into the reported settlement: round every
    lease's figures to the minor unit, resolve payouts, and total them.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    This is the single synchronization point of a run; everything before it
    is per-lease and independent.

Invariants enforced:
    - Park totals are rounded once, from the sum of the exact per-lease
      amounts, then apportioned back to leases in whole minor units
      (``settlement_engines.apportionment.apportion``).
    - Totals are the exact sums of the reported rows, for every figure.
    - A lease's payment never falls below its reported minimum rent.
    - ``unallocated_revenue`` is recognizable revenue not paid out as
      revenue share; it is never negative.
    - Lease order in the result equals input order.

Failure modes:
    - ReconciliationError if rows and totals disagree (programming fault).
    - NonFiniteAmountError / CalculationError from PayoutResolver.

Audit relevance:
    Reported figures are the ones lessors are invoiced against. The
    apportionment is deterministic: the same inputs produce the same cents.
"""

from __future__ import annotations

import dataclasses
import functools
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Any

from settlement_engines.apportionment import apportion, round_half_up
from settlement_engines.entitlement import LeaseEntitlement, RevenuePools
from settlement_engines.payout import PayoutDecision, PayoutResolver
from settlement_kernel.domain.leases import PlotArea, SettlementConfiguration
from settlement_kernel.domain.values import Currency, Money
from settlement_kernel.exceptions import ReconciliationError
from settlement_kernel.logging_config import get_logger

logger = get_logger("engines.aggregator")


# =============================================================================
# Result types
# =============================================================================


@dataclass(frozen=True)
class LeaseCalculationResult:
    """
    Reported settlement figures of one lease.

    Guarantees:
        - total_payment == max(total_minimum_rent, total_revenue_share)
        - total_difference == total_revenue_share - total_minimum_rent
    """

    lease_id: str
    lessor_id: str
    lessor_name: str
    plot_areas: tuple[PlotArea, ...]
    wea_count: int
    pool_count: int
    other_count: int
    plots_by_district: dict[str, tuple[str, ...]] = field(hash=False)
    total_minimum_rent: Money
    total_revenue_share: Money
    total_payment: Money
    total_difference: Money

    @property
    def guarantee_applied(self) -> bool:
        return self.total_minimum_rent > self.total_revenue_share

    def to_dict(self) -> dict[str, Any]:
        return render_to_dict(self)


@dataclass(frozen=True)
class SettlementTotals:
    """Park-level totals; each money figure is the sum of the lease rows."""

    lease_count: int
    total_minimum_rent: Money
    total_revenue_share: Money
    total_payment: Money
    total_difference: Money
    wea_area_count: int
    pool_area_count: int
    other_area_count: int
    unallocated_revenue: Money

    def to_dict(self) -> dict[str, Any]:
        return render_to_dict(self)


@dataclass(frozen=True)
class SettlementCalculationResult:
    """
    Complete settlement of one park and year.

    Immutable. Every monetary field is set; identical inputs give an
    identical result apart from ``calculated_at``.
    """

    year: int
    park_id: str
    park_name: str
    currency: Currency
    total_revenue: Money
    minimum_rent_per_turbine: Money
    wea_share_percentage: Decimal
    pool_share_percentage: Decimal
    revenue_phase_percentage: Decimal
    recognized_revenue: Money
    calculated_at: datetime
    leases: tuple[LeaseCalculationResult, ...]
    totals: SettlementTotals

    def lease(self, lease_id: str) -> LeaseCalculationResult:
        for row in self.leases:
            if row.lease_id == lease_id:
                return row
        raise KeyError(lease_id)

    def to_dict(self) -> dict[str, Any]:
        """Plain, JSON-friendly rendering: decimal strings, ISO timestamps."""
        return render_to_dict(self)


@functools.singledispatch
def render_to_dict(obj: object) -> Any:
    """
    Plain JSON-ready form of a settlement result.

    Money renders as its amount string (the currency appears once, on the
    enclosing result), Decimal as a string, dates as ISO 8601, enums by
    value. Dataclasses become dicts in field order and tuples become lists.
    """
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            name: render_to_dict(getattr(obj, name))
            for name in (f.name for f in dataclasses.fields(obj))
        }
    return obj


@render_to_dict.register
def _(obj: Money) -> str:
    return str(obj.amount)


@render_to_dict.register
def _(obj: Currency) -> str:
    return obj.code


@render_to_dict.register(Decimal)
def _(obj) -> str:
    return str(obj)


@render_to_dict.register
def _(obj: date) -> str:
    return obj.isoformat()


@render_to_dict.register
def _(obj: Enum) -> Any:
    return obj.value


@render_to_dict.register(list)
@render_to_dict.register(tuple)
def _(obj) -> list:
    return [render_to_dict(item) for item in obj]


@render_to_dict.register
def _(obj: dict) -> dict:
    return {str(key): render_to_dict(value) for key, value in obj.items()}


# =============================================================================
# Aggregator
# =============================================================================


class SettlementAggregator:
    """
    Reconcile rounding and total a settlement run.

    Contract:
        ``aggregate`` receives the exact entitlements of every lease in
        input order and returns the immutable settlement result.
    Guarantees:
        - Rows sum exactly to totals for minimum rent, revenue share,
          payment and difference.
        - With fixed parcel assignments, raising total revenue never lowers
          any lease's reported revenue share or payment.
        - A lease's minimum rent equals wea_count x rate only when the rate
          is a whole number of cents. Below that, minimum rent is rounded
          once park-wide and split, so identical leases can differ by a
          cent (three 1-WEA leases at 0.005 get 0.01, 0.01 and 0.00).
    Non-goals:
        - Does not validate configuration (EntitlementCalculator does).
    """

    def __init__(self, payout_resolver: PayoutResolver | None = None):
        self._payout_resolver = payout_resolver or PayoutResolver()

    def aggregate(
        self,
        config: SettlementConfiguration,
        entitlements: Sequence[LeaseEntitlement],
        pools: RevenuePools,
        calculated_at: datetime,
    ) -> SettlementCalculationResult:
        currency = config.currency

        minimum_total, minimum_units = self._reconcile(
            [e.exact_minimum_rent for e in entitlements]
        )
        share_total, share_units = self._reconcile(
            [e.exact_revenue_share for e in entitlements]
        )

        rows: list[LeaseCalculationResult] = []
        for entitlement, minimum, share in zip(
            entitlements, minimum_units, share_units, strict=True
        ):
            decision = self._payout_resolver.resolve(
                Money.from_minor_units(minimum, currency),
                Money.from_minor_units(share, currency),
            )
            rows.append(self._build_row(entitlement, decision))

        totals = self._build_totals(rows, entitlements, pools, currency)
        self._verify(rows, totals, currency, {
            "total_minimum_rent": Money.from_minor_units(minimum_total, currency),
            "total_revenue_share": Money.from_minor_units(share_total, currency),
        })

        result = SettlementCalculationResult(
            year=config.year,
            park_id=config.park_id,
            park_name=config.park_name,
            currency=currency,
            total_revenue=config.total_revenue,
            minimum_rent_per_turbine=config.minimum_rent_per_turbine,
            wea_share_percentage=config.wea_share_percentage,
            pool_share_percentage=config.pool_share_percentage,
            revenue_phase_percentage=config.revenue_phase_percentage,
            recognized_revenue=pools.recognized_revenue_money,
            calculated_at=calculated_at,
            leases=tuple(rows),
            totals=totals,
        )

        logger.info("settlement_aggregated", extra={
            "lease_count": totals.lease_count,
            "row_count": len(rows),
            "total_payment": str(totals.total_payment.amount),
            "unallocated_revenue": str(totals.unallocated_revenue.amount),
            "guarantee_applied_count": sum(1 for r in rows if r.guarantee_applied),
        })

        return result

    @staticmethod
    def _reconcile(exact: list[Fraction]) -> tuple[int, list[int]]:
        """Round the sum once, then apportion it back to the rows."""
        total = round_half_up(sum(exact, Fraction(0)))
        return total, apportion(exact, total)

    @staticmethod
    def _build_row(
        entitlement: LeaseEntitlement,
        decision: PayoutDecision,
    ) -> LeaseCalculationResult:
        lease = entitlement.lease
        classification = entitlement.classification
        return LeaseCalculationResult(
            lease_id=lease.lease_id,
            lessor_id=lease.lessor.lessor_id,
            lessor_name=lease.lessor.display_name,
            plot_areas=lease.plot_areas,
            wea_count=classification.wea_count,
            pool_count=classification.pool_count,
            other_count=classification.other_count,
            plots_by_district=dict(classification.plots_by_district),
            total_minimum_rent=decision.minimum_rent,
            total_revenue_share=decision.revenue_share,
            total_payment=decision.total_payment,
            total_difference=decision.total_difference,
        )

    @staticmethod
    def _build_totals(
        rows: Sequence[LeaseCalculationResult],
        entitlements: Sequence[LeaseEntitlement],
        pools: RevenuePools,
        currency: Currency,
    ) -> SettlementTotals:
        def total(attr: str) -> Money:
            return sum(
                (getattr(row, attr) for row in rows),
                Money.zero(currency),
            )

        revenue_share = total("total_revenue_share")
        classifications = [e.classification for e in entitlements]

        return SettlementTotals(
            lease_count=sum(1 for c in classifications if not c.is_empty),
            total_minimum_rent=total("total_minimum_rent"),
            total_revenue_share=revenue_share,
            total_payment=total("total_payment"),
            total_difference=total("total_difference"),
            wea_area_count=sum(c.wea_count for c in classifications),
            pool_area_count=sum(c.pool_count for c in classifications),
            other_area_count=sum(c.other_count for c in classifications),
            unallocated_revenue=pools.recognized_revenue_money - revenue_share,
        )

    @staticmethod
    def _verify(
        rows: Sequence[LeaseCalculationResult],
        totals: SettlementTotals,
        currency: Currency,
        rounded_totals: dict[str, Money],
    ) -> None:
        for figure, rounded in rounded_totals.items():
            if getattr(totals, figure) != rounded:
                raise ReconciliationError(
                    figure, str(rounded), str(getattr(totals, figure))
                )

        for figure in (
            "total_minimum_rent",
            "total_revenue_share",
            "total_payment",
            "total_difference",
        ):
            expected = getattr(totals, figure)
            actual = sum((getattr(r, figure) for r in rows), Money.zero(currency))
            if actual != expected:
                raise ReconciliationError(figure, str(expected), str(actual))

        if totals.unallocated_revenue.is_negative:
            raise ReconciliationError(
                "unallocated_revenue",
                "non-negative",
                str(totals.unallocated_revenue),
            )
