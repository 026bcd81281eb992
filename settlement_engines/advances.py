"""
Module: settlement_engines.advances
Responsibility:
    Monthly minimum-rent advances during the year, and the final settlement
    that offsets advances already paid against the annual payment.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - A lease's monthly advance is 1/12 of its annual minimum rent.
    - The park's monthly advance total is rounded once; lease rows are
      apportioned from it and sum to it exactly.
    - Final settlement never claims money back: per lease,
      remaining = max(0, total_payment - paid advances). Overpayments are
      reported separately, not netted against other leases.

Failure modes:
    - InvalidSettlementMonthError for a month outside 1..12.
    - UnknownLeaseError for an advance booked on a lease not in the result.
    - NegativeAmountError / ConfigCurrencyMismatchError on bad advances.

Usage:
    calculator = AdvanceCalculator()
    advance = calculator.calculate_monthly_advance(
        config, leases, month=2, calculated_at=clock.now(),
    )

    final = offset_advances(settlement_result, advance_payments)
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from fractions import Fraction

from settlement_engines.aggregator import SettlementCalculationResult
from settlement_engines.apportionment import (
    apportion,
    exact_minor_units,
    round_half_up,
)
from settlement_engines.entitlement import EntitlementCalculator
from settlement_engines.parcel_classifier import ParcelClassifier
from settlement_engines.settlement import ensure_unique_leases
from settlement_engines.tracer import traced_engine
from settlement_kernel.domain.leases import (
    AdvancePayment,
    Lease,
    SettlementConfiguration,
)
from settlement_kernel.domain.values import Currency, Money
from settlement_kernel.exceptions import (
    ConfigCurrencyMismatchError,
    InvalidSettlementMonthError,
    NegativeAmountError,
    NonFiniteAmountError,
    UnknownLeaseError,
)
from settlement_kernel.logging_config import get_logger

logger = get_logger("engines.advances")

MONTHS_PER_YEAR = 12


# =============================================================================
# Monthly advance
# =============================================================================


@dataclass(frozen=True)
class LeaseAdvance:
    """Monthly advance of one lease."""

    lease_id: str
    lessor_id: str
    lessor_name: str
    wea_count: int
    yearly_minimum_rent: Money
    monthly_advance: Money


@dataclass(frozen=True)
class MonthlyAdvanceResult:
    """
    Minimum-rent advance due for one month.

    Guarantees:
        - monthly_advance_total == sum of the lease rows
        - yearly_minimum_rent_total == sum of the lease rows
    """

    park_id: str
    park_name: str
    year: int
    month: int
    yearly_minimum_rent_total: Money
    monthly_advance_total: Money
    advances: tuple[LeaseAdvance, ...]
    calculated_at: datetime


class AdvanceCalculator:
    """
    Compute monthly minimum-rent advances.

    Contract:
        Pure; the same configuration, leases and month give the same cents.
        Yearly and monthly minimum rent are rounded once across all leases
        and split, so per-lease amounts equal wea_count x rate only for
        rates in whole cents.
    Non-goals:
        - Does not pay revenue share in advance; only the guarantee is
          advanced during the year.
    """

    def __init__(self) -> None:
        self._classifier = ParcelClassifier()
        self._entitlements = EntitlementCalculator()

    @traced_engine("monthly_advance", "1.0", fingerprint_fields=("config", "leases", "month"))
    def calculate_monthly_advance(
        self,
        config: SettlementConfiguration,
        leases: Sequence[Lease],
        month: int,
        *,
        calculated_at: datetime,
    ) -> MonthlyAdvanceResult:
        """
        Advance due for ``month`` (1..12) of ``config.year``.

        Raises:
            InvalidSettlementMonthError: month outside 1..12.
            ConfigurationError: invalid park terms.
            DuplicateLeaseError: repeated lease ID.
        """
        if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
            raise InvalidSettlementMonthError(month)

        self._entitlements.validate_configuration(config)
        leases = tuple(leases)
        ensure_unique_leases(leases)

        currency = config.currency
        rate = exact_minor_units(config.minimum_rent_per_turbine)
        wea_counts = [
            self._classifier.classify(lease.plot_areas).wea_count for lease in leases
        ]

        yearly_exact = [rate * count for count in wea_counts]
        monthly_exact = [value / MONTHS_PER_YEAR for value in yearly_exact]

        yearly_total = round_half_up(sum(yearly_exact, Fraction(0)))
        monthly_total = round_half_up(sum(monthly_exact, Fraction(0)))
        yearly_units = apportion(yearly_exact, yearly_total)
        monthly_units = apportion(monthly_exact, monthly_total)

        advances = tuple(
            LeaseAdvance(
                lease_id=lease.lease_id,
                lessor_id=lease.lessor.lessor_id,
                lessor_name=lease.lessor.display_name,
                wea_count=count,
                yearly_minimum_rent=Money.from_minor_units(yearly, currency),
                monthly_advance=Money.from_minor_units(monthly, currency),
            )
            for lease, count, yearly, monthly in zip(
                leases, wea_counts, yearly_units, monthly_units, strict=True
            )
        )

        result = MonthlyAdvanceResult(
            park_id=config.park_id,
            park_name=config.park_name,
            year=config.year,
            month=month,
            yearly_minimum_rent_total=Money.from_minor_units(yearly_total, currency),
            monthly_advance_total=Money.from_minor_units(monthly_total, currency),
            advances=advances,
            calculated_at=calculated_at,
        )

        logger.info("monthly_advance_calculated", extra={
            "park_id": config.park_id,
            "year": config.year,
            "month": month,
            "lease_count": len(leases),
            "monthly_advance_total": str(result.monthly_advance_total.amount),
        })

        return result


# =============================================================================
# Final settlement
# =============================================================================


@dataclass(frozen=True)
class LeaseAdvanceOffset:
    """Annual payment of one lease set against its paid advances."""

    lease_id: str
    total_payment: Money
    paid_advances: Money
    remaining_amount: Money
    overpaid_amount: Money


@dataclass(frozen=True)
class FinalSettlementResult:
    """
    Year-end settlement after deducting advances.

    ``remaining_amount`` is the sum of per-lease remainders (what is still
    to be paid out); ``overpaid_advances`` sums what leases received in
    excess of their annual payment.
    """

    settlement: SettlementCalculationResult
    leases: tuple[LeaseAdvanceOffset, ...]
    advance_payments: tuple[AdvancePayment, ...]
    paid_advances: Money
    remaining_amount: Money
    overpaid_advances: Money


def offset_advances(
    result: SettlementCalculationResult,
    advance_payments: Sequence[AdvancePayment],
) -> FinalSettlementResult:
    """
    Deduct paid advances from each lease's annual payment.

    Args:
        result: The annual settlement.
        advance_payments: Advances paid during the year, any order.

    Raises:
        UnknownLeaseError: an advance references a lease not in ``result``.
        NegativeAmountError: an advance amount is negative.
        ConfigCurrencyMismatchError: an advance is in another currency.
    """
    currency = result.currency
    paid_by_lease: dict[str, Money] = {
        row.lease_id: Money.zero(currency) for row in result.leases
    }

    for payment in advance_payments:
        _check_advance(payment, currency)
        if payment.lease_id not in paid_by_lease:
            raise UnknownLeaseError(payment.lease_id)
        paid_by_lease[payment.lease_id] = (
            paid_by_lease[payment.lease_id] + payment.amount.round()
        )

    zero = Money.zero(currency)
    offsets: list[LeaseAdvanceOffset] = []
    for row in result.leases:
        paid = paid_by_lease[row.lease_id]
        balance = row.total_payment - paid
        offsets.append(LeaseAdvanceOffset(
            lease_id=row.lease_id,
            total_payment=row.total_payment,
            paid_advances=paid,
            remaining_amount=balance if balance > zero else zero,
            overpaid_amount=-balance if balance < zero else zero,
        ))

    final = FinalSettlementResult(
        settlement=result,
        leases=tuple(offsets),
        advance_payments=tuple(advance_payments),
        paid_advances=sum((o.paid_advances for o in offsets), zero),
        remaining_amount=sum((o.remaining_amount for o in offsets), zero),
        overpaid_advances=sum((o.overpaid_amount for o in offsets), zero),
    )

    logger.info("advances_offset", extra={
        "park_id": result.park_id,
        "year": result.year,
        "advance_count": len(final.advance_payments),
        "paid_advances": str(final.paid_advances.amount),
        "remaining_amount": str(final.remaining_amount.amount),
        "overpaid_advances": str(final.overpaid_advances.amount),
    })
    if not final.overpaid_advances.is_zero:
        logger.warning("advances_exceed_annual_payment", extra={
            "park_id": result.park_id,
            "overpaid_lease_ids": [
                o.lease_id for o in offsets if not o.overpaid_amount.is_zero
            ],
        })

    return final


def _check_advance(payment: AdvancePayment, currency: Currency) -> None:
    if payment.amount.currency != currency:
        raise ConfigCurrencyMismatchError(
            "advance_payments", currency.code, payment.amount.currency.code
        )
    if not payment.amount.is_finite:
        raise NonFiniteAmountError("advance_payments", str(payment.amount.amount))
    if payment.amount.is_negative:
        raise NegativeAmountError("advance_payments", str(payment.amount.amount))
