"""
settlement_services -- Package init and public API.

Responsibility:
    Orchestration that composes the pure settlement engines
    (settlement_engines/) with the clock, worker threads and loaded input
    documents. This is the **only** layer that reads wall-clock time or
    owns a thread pool.

Architecture position:
    Services -- orchestration over engines + kernel.

    Dependency direction (enforced by tests/architecture/test_layer_boundaries.py):
        settlement_services/ -> settlement_engines/  (allowed)
        settlement_services/ -> settlement_config/   (allowed)
        settlement_services/ -> settlement_kernel/   (allowed)
        settlement_engines/  -> settlement_services/ (FORBIDDEN)
        settlement_kernel/   -> settlement_services/ (FORBIDDEN)
"""

from settlement_kernel.logging_config import get_logger

logger = get_logger("services")

from settlement_services.settlement_service import (
    RevenueSource,
    SettlementService,
    SettlementServiceConfig,
    resolve_total_revenue,
)

__all__ = [
    "RevenueSource",
    "SettlementService",
    "SettlementServiceConfig",
    "resolve_total_revenue",
]
