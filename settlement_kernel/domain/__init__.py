"""Domain value objects and input snapshots for the settlement kernel."""

from settlement_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from settlement_kernel.domain.leases import (
    AdvancePayment,
    Lease,
    Lessor,
    PlotArea,
    PlotAreaCategory,
    SettlementConfiguration,
)
from settlement_kernel.domain.values import Currency, Money

__all__ = [
    "AdvancePayment",
    "Clock",
    "Currency",
    "DeterministicClock",
    "Lease",
    "Lessor",
    "Money",
    "PlotArea",
    "PlotAreaCategory",
    "SettlementConfiguration",
    "SystemClock",
]
