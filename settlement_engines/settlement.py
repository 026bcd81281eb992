"""
Module: settlement_engines.settlement
Responsibility:
    Engine entry point for one park settlement run. Composes the parcel
    classifier, entitlement calculator, payout resolver and aggregator.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Services call ``calculate_settlement``; they supply the timestamp and,
    optionally, a ``map``-like callable that fans per-lease work out to a
    worker pool.

Invariants enforced:
    - Configuration is validated before any lease is looked at.
    - Lease IDs are unique within a run.
    - Per-lease steps (classification, entitlement) share no mutable state;
      the aggregator is the only reduction.
    - Atomic: either a complete SettlementCalculationResult or an exception.

Failure modes:
    - ConfigurationError subclasses from validation.
    - DuplicateLeaseError for a lease ID seen twice.
    - UnknownPlotAreaCategoryError for an unrecognised parcel category.
    - Whatever the ``lease_mapper`` raises (e.g. a deadline error) propagates.

Usage:
    from settlement_engines.settlement import calculate_settlement

    result = calculate_settlement(
        config, leases, calculated_at=clock.now(),
    )
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Sequence
from datetime import datetime
from typing import Any

from settlement_engines.aggregator import (
    SettlementAggregator,
    SettlementCalculationResult,
)
from settlement_engines.entitlement import EntitlementCalculator
from settlement_engines.parcel_classifier import ParcelClassifier
from settlement_engines.tracer import traced_engine
from settlement_kernel.domain.leases import Lease, SettlementConfiguration
from settlement_kernel.exceptions import DuplicateLeaseError
from settlement_kernel.logging_config import get_logger

logger = get_logger("engines.settlement")

LeaseMapper = Callable[[Callable[[Any], Any], Iterable[Any]], Iterator[Any]]

_classifier = ParcelClassifier()
_entitlements = EntitlementCalculator()
_aggregator = SettlementAggregator()


def ensure_unique_leases(leases: Sequence[Lease]) -> None:
    """Raise DuplicateLeaseError on the first repeated lease ID."""
    seen: set[str] = set()
    for lease in leases:
        if lease.lease_id in seen:
            raise DuplicateLeaseError(lease.lease_id)
        seen.add(lease.lease_id)


@traced_engine(
    "settlement", "1.0", fingerprint_fields=("config", "leases")
)
def calculate_settlement(
    config: SettlementConfiguration,
    leases: Sequence[Lease],
    *,
    calculated_at: datetime,
    lease_mapper: LeaseMapper = map,
) -> SettlementCalculationResult:
    """
    Settle one park for one year.

    Args:
        config: Park-level terms.
        leases: Every lease of the park in the year, in reporting order.
        calculated_at: Timestamp recorded on the result (from a Clock).
        lease_mapper: ``map``-compatible callable used for per-lease work.
            Must preserve input order.

    Returns:
        SettlementCalculationResult with one row per lease.
    """
    leases = tuple(leases)

    logger.info("settlement_started", extra={
        "park_id": config.park_id,
        "year": config.year,
        "lease_count": len(leases),
    })

    _entitlements.validate_configuration(config)
    ensure_unique_leases(leases)

    classifications = list(
        lease_mapper(lambda lease: _classifier.classify(lease.plot_areas), leases)
    )
    pools = _entitlements.build_revenue_pools(config, classifications)

    entitlements = list(lease_mapper(
        lambda pair: _entitlements.calculate(pair[0], pair[1], config, pools),
        list(zip(leases, classifications, strict=True)),
    ))

    result = _aggregator.aggregate(config, entitlements, pools, calculated_at)

    logger.info("settlement_completed", extra={
        "park_id": config.park_id,
        "year": config.year,
        "lease_count": result.totals.lease_count,
        "total_payment": str(result.totals.total_payment.amount),
        "total_minimum_rent": str(result.totals.total_minimum_rent.amount),
        "total_revenue_share": str(result.totals.total_revenue_share.amount),
    })

    return result
