"""
Module: settlement_engines.entitlement
Responsibility:
    Convert classified parcel counts and park-level terms into the two
    entitlement figures of every lease: the guaranteed minimum rent and the
    pro-rata share of recognizable park revenue.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import settlement_kernel and sibling engine modules.

Invariants enforced:
    - Configuration is validated before any allocation happens.
    - Park-wide category counts and pool amounts are computed once per run
      (``build_revenue_pools``); per-lease work is a lookup.
    - All intermediate amounts are exact rationals in minor units; nothing
      is rounded here. Rounding is the aggregator's job.
    - A park-wide category count of zero allocates nothing from that pool.
    - Minimum rent is a full-year guarantee; the revenue phase scales only
      the revenue side.

Failure modes:
    - NonFiniteAmountError on NaN / Infinity configuration values.
    - ConfigCurrencyMismatchError when money fields disagree on currency.
    - NegativeAmountError on negative revenue or minimum rent.
    - PercentageOutOfRangeError on percentages outside [0, 100].
    - ShareOverallocationError when WEA + Pool share exceeds 100.

Usage:
    calculator = EntitlementCalculator()
    calculator.validate_configuration(config)
    pools = calculator.build_revenue_pools(config, classifications)
    entitlement = calculator.calculate(lease, classification, config, pools)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from fractions import Fraction

from settlement_engines.apportionment import exact_minor_units, round_half_up
from settlement_engines.parcel_classifier import ParcelClassification
from settlement_kernel.domain.leases import (
    Lease,
    PlotAreaCategory,
    SettlementConfiguration,
)
from settlement_kernel.domain.values import Currency, Money
from settlement_kernel.exceptions import (
    ConfigCurrencyMismatchError,
    NegativeAmountError,
    NonFiniteAmountError,
    PercentageOutOfRangeError,
    SettlementKernelError,
    ShareOverallocationError,
)
from settlement_kernel.logging_config import get_logger

logger = get_logger("engines.entitlement")

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CategoryPool:
    """
    Revenue pool of one use-category.

    ``amount`` is exact, in minor units. ``percentage`` for OTHER is the
    residual ``100 - wea - pool``.
    """

    category: PlotAreaCategory
    percentage: Decimal
    amount: Fraction
    park_count: int

    @property
    def is_distributable(self) -> bool:
        """False when no lease in the park holds a parcel of this category."""
        return self.park_count > 0


@dataclass(frozen=True)
class RevenuePools:
    """
    Park-wide revenue split, computed once per settlement run.

    Guarantees:
        - Sum of pool amounts == ``recognized_revenue`` (exact).
    """

    currency: Currency
    recognized_revenue: Fraction
    pools: tuple[CategoryPool, ...]

    def pool(self, category: PlotAreaCategory) -> CategoryPool:
        for pool in self.pools:
            if pool.category == category:
                return pool
        raise KeyError(category)

    @property
    def undistributed(self) -> Fraction:
        """Exact revenue in pools no lease participates in."""
        return sum(
            (pool.amount for pool in self.pools if not pool.is_distributable),
            Fraction(0),
        )

    @property
    def recognized_revenue_money(self) -> Money:
        """Recognizable revenue rounded once to the minor unit."""
        return Money.from_minor_units(
            round_half_up(self.recognized_revenue), self.currency
        )


@dataclass(frozen=True)
class LeaseEntitlement:
    """
    Unrounded entitlement figures of one lease.

    Amounts are exact rationals in minor units of the settlement currency.
    """

    lease: Lease
    classification: ParcelClassification
    exact_minimum_rent: Fraction
    exact_revenue_share: Fraction
    share_by_category: dict[PlotAreaCategory, Fraction] = field(
        default_factory=dict, hash=False
    )


class EntitlementCalculator:
    """
    Compute per-lease minimum rent and revenue share.

    Contract:
        Pure functions. No I/O, no clock, no shared mutable state; per-lease
        ``calculate`` calls are independent and may run concurrently.
    Guarantees:
        - ``exact_revenue_share`` is the sum of the lease's pro-rata
          allocations from the WEA, Pool and Other pools.
        - ``exact_minimum_rent == wea_count * minimum_rent_per_turbine``.
    Non-goals:
        - Does not round and does not decide the payout.
    """

    def validate_configuration(self, config: SettlementConfiguration) -> None:
        """
        Reject invalid settlement terms before any allocation.

        Raises:
            NonFiniteAmountError, ConfigCurrencyMismatchError,
            NegativeAmountError, PercentageOutOfRangeError,
            ShareOverallocationError.
        """
        money_fields = {
            "total_revenue": config.total_revenue,
            "minimum_rent_per_turbine": config.minimum_rent_per_turbine,
        }
        percentage_fields = {
            "wea_share_percentage": config.wea_share_percentage,
            "pool_share_percentage": config.pool_share_percentage,
            "revenue_phase_percentage": config.revenue_phase_percentage,
        }

        for name, money in money_fields.items():
            if not money.is_finite:
                self._reject(config, NonFiniteAmountError(name, str(money.amount)))
        for name, value in percentage_fields.items():
            if not value.is_finite():
                self._reject(config, NonFiniteAmountError(name, str(value)))

        if config.minimum_rent_per_turbine.currency != config.currency:
            self._reject(config, ConfigCurrencyMismatchError(
                "minimum_rent_per_turbine",
                config.currency.code,
                config.minimum_rent_per_turbine.currency.code,
            ))

        for name, money in money_fields.items():
            if money.is_negative:
                self._reject(config, NegativeAmountError(name, str(money.amount)))

        for name, value in percentage_fields.items():
            if value < 0 or value > HUNDRED:
                self._reject(config, PercentageOutOfRangeError(name, str(value)))

        if config.wea_share_percentage + config.pool_share_percentage > HUNDRED:
            self._reject(config, ShareOverallocationError(
                str(config.wea_share_percentage),
                str(config.pool_share_percentage),
            ))

    def build_revenue_pools(
        self,
        config: SettlementConfiguration,
        classifications: Sequence[ParcelClassification],
    ) -> RevenuePools:
        """
        Split recognizable revenue into category pools.

        recognizable = total_revenue * phase / 100
        pool         = recognizable * pool percentage / 100
        other        = recognizable - wea pool - pool pool

        Args:
            config: Validated settlement configuration.
            classifications: One classification per lease in the run.
        """
        recognized = (
            exact_minor_units(config.total_revenue)
            * Fraction(config.revenue_phase_percentage)
            / 100
        )
        wea_amount = recognized * Fraction(config.wea_share_percentage) / 100
        pool_amount = recognized * Fraction(config.pool_share_percentage) / 100
        other_amount = recognized - wea_amount - pool_amount

        wea_total = sum(c.wea_count for c in classifications)
        pool_total = sum(c.pool_count for c in classifications)
        other_total = sum(c.other_count for c in classifications)

        pools = RevenuePools(
            currency=config.currency,
            recognized_revenue=recognized,
            pools=(
                CategoryPool(
                    PlotAreaCategory.WEA,
                    config.wea_share_percentage,
                    wea_amount,
                    wea_total,
                ),
                CategoryPool(
                    PlotAreaCategory.POOL,
                    config.pool_share_percentage,
                    pool_amount,
                    pool_total,
                ),
                CategoryPool(
                    PlotAreaCategory.OTHER,
                    HUNDRED - config.wea_share_percentage - config.pool_share_percentage,
                    other_amount,
                    other_total,
                ),
            ),
        )

        logger.info("revenue_pools_built", extra={
            "recognized_revenue": str(pools.recognized_revenue_money.amount),
            "wea_park_count": wea_total,
            "pool_park_count": pool_total,
            "other_park_count": other_total,
            "undistributed_pools": [
                p.category.value for p in pools.pools if not p.is_distributable
            ],
        })

        return pools

    def calculate(
        self,
        lease: Lease,
        classification: ParcelClassification,
        config: SettlementConfiguration,
        pools: RevenuePools,
    ) -> LeaseEntitlement:
        """
        Entitlement of a single lease.

        Args:
            lease: The lease being settled.
            classification: Its parcel classification.
            config: Validated settlement configuration.
            pools: Park-wide pools from ``build_revenue_pools``.
        """
        minimum_rent = (
            exact_minor_units(config.minimum_rent_per_turbine)
            * classification.wea_count
        )

        share_by_category: dict[PlotAreaCategory, Fraction] = {}
        for pool in pools.pools:
            lease_count = classification.count_for(pool.category)
            if not pool.is_distributable or lease_count == 0:
                share_by_category[pool.category] = Fraction(0)
                continue
            share_by_category[pool.category] = (
                pool.amount * lease_count / pool.park_count
            )

        revenue_share = sum(share_by_category.values(), Fraction(0))

        logger.debug("lease_entitlement_calculated", extra={
            "lease_id": lease.lease_id,
            "wea_count": classification.wea_count,
            "pool_count": classification.pool_count,
            "other_count": classification.other_count,
        })

        return LeaseEntitlement(
            lease=lease,
            classification=classification,
            exact_minimum_rent=minimum_rent,
            exact_revenue_share=revenue_share,
            share_by_category=share_by_category,
        )

    @staticmethod
    def _reject(config: SettlementConfiguration, error: SettlementKernelError) -> None:
        logger.warning("settlement_configuration_rejected", extra={
            "park_id": config.park_id,
            "year": config.year,
            "error_code": error.code,
            "error": str(error),
        })
        raise error
