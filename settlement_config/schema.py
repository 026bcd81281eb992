"""
Settlement input schema.

Defines the human-authored source artifact for one settlement run: the
park's lease terms, the settlement period with its revenue sources, the
lease roster and any advances already paid. YAML documents are parsed into
these types by the loader; ``SettlementService`` turns them into a
``SettlementConfiguration`` for the engines.

Key distinction:
  ParkSettlementTerms      = contractual terms, stable across years
  SettlementPeriodInput    = per-year revenue figures
  SettlementConfiguration  = resolved engine input (one park, one year)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from settlement_engines.revenue_phase import RevenuePhase
from settlement_kernel.domain.leases import AdvancePayment, Lease
from settlement_kernel.domain.values import Currency, Money

# ---------------------------------------------------------------------------
# Park terms
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ParkSettlementTerms:
    """Lease terms a park has agreed with its lessors."""

    park_id: str
    park_name: str
    currency: Currency
    minimum_rent_per_turbine: Money
    wea_share_percentage: Decimal
    pool_share_percentage: Decimal
    commissioning_year: int | None = None
    revenue_phases: tuple[RevenuePhase, ...] = ()


# ---------------------------------------------------------------------------
# Settlement period
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SettlementPeriodInput:
    """
    Revenue figures known for one settlement year.

    Any of the three sources may be missing; the service picks the first
    present one in the order override, linked energy settlement, period.
    """

    year: int
    period_revenue: Money | None = None
    revenue_override: Money | None = None
    linked_energy_settlement_revenue: Money | None = None


# ---------------------------------------------------------------------------
# Complete input document
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SettlementInput:
    """A parsed settlement input document."""

    terms: ParkSettlementTerms
    period: SettlementPeriodInput
    leases: tuple[Lease, ...] = ()
    advance_payments: tuple[AdvancePayment, ...] = ()
    checksum: str = ""
    source: str = field(default="", compare=False)
