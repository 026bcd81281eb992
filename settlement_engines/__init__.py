"""
Module: settlement_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    settlement engines. This is the import surface for settlement_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import settlement_kernel (and sibling engine modules).
    MUST NOT import settlement_services or settlement_config.

Invariants enforced:
    - Purity: engines never read the clock. ``calculated_at`` is passed in
      by the caller.
    - Exact arithmetic: Decimal money in, rational intermediates, whole
      minor units out; floats are rejected.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Entry points are traced via ``@traced_engine`` (see
    ``settlement_engines.tracer``), emitting SETTLEMENT_ENGINE_TRACE records
    with engine name, version, input fingerprint and duration.

Usage:
    from settlement_engines import calculate_settlement
    from settlement_engines.revenue_phase import resolve_revenue_phase
    from settlement_engines.advances import AdvanceCalculator, offset_advances
"""

from settlement_kernel.logging_config import get_logger

logger = get_logger("engines")

from settlement_engines.advances import (
    AdvanceCalculator,
    FinalSettlementResult,
    LeaseAdvance,
    LeaseAdvanceOffset,
    MonthlyAdvanceResult,
    offset_advances,
)
from settlement_engines.aggregator import (
    LeaseCalculationResult,
    SettlementAggregator,
    SettlementCalculationResult,
    SettlementTotals,
    render_to_dict,
)
from settlement_engines.apportionment import apportion, round_half_up
from settlement_engines.entitlement import (
    CategoryPool,
    EntitlementCalculator,
    LeaseEntitlement,
    RevenuePools,
)
from settlement_engines.parcel_classifier import (
    ParcelClassification,
    ParcelClassifier,
)
from settlement_engines.payout import PayoutDecision, PayoutResolver
from settlement_engines.revenue_phase import (
    RevenuePhase,
    resolve_revenue_phase,
    years_in_operation,
)
from settlement_engines.settlement import calculate_settlement
from settlement_engines.tracer import traced_engine

__all__ = [
    # Classification
    "ParcelClassification",
    "ParcelClassifier",
    # Entitlement
    "CategoryPool",
    "EntitlementCalculator",
    "LeaseEntitlement",
    "RevenuePools",
    # Payout
    "PayoutDecision",
    "PayoutResolver",
    # Aggregation
    "LeaseCalculationResult",
    "SettlementAggregator",
    "SettlementCalculationResult",
    "SettlementTotals",
    "render_to_dict",
    "apportion",
    "round_half_up",
    # Entry point
    "calculate_settlement",
    # Revenue phases
    "RevenuePhase",
    "resolve_revenue_phase",
    "years_in_operation",
    # Advances
    "AdvanceCalculator",
    "FinalSettlementResult",
    "LeaseAdvance",
    "LeaseAdvanceOffset",
    "MonthlyAdvanceResult",
    "offset_advances",
    # Tracing
    "traced_engine",
]

logger.debug("engines_package_loaded", extra={
    "module_count": 9,
    "modules": [
        "parcel_classifier", "entitlement", "payout", "aggregator",
        "apportionment", "settlement", "revenue_phase", "advances", "tracer",
    ],
})
