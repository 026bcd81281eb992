"""
Revenue phases -- which share of park revenue lessors are entitled to in a
given year of operation.

Parks negotiate a staged revenue share: e.g. 5 % in years 1-10, 7 % from
year 11 on. The phase in force is picked by years in operation, counted from
the commissioning year (which is year 1).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from settlement_kernel.domain.leases import to_decimal


@dataclass(frozen=True)
class RevenuePhase:
    """One stage of the park's revenue-share schedule. ``end_year`` None is open-ended."""

    phase_number: int
    start_year: int
    end_year: int | None
    revenue_share_percentage: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "revenue_share_percentage",
            to_decimal(self.revenue_share_percentage, "revenue_share_percentage"),
        )
        if self.end_year is not None and self.end_year < self.start_year:
            raise ValueError(
                f"Revenue phase {self.phase_number} ends ({self.end_year}) "
                f"before it starts ({self.start_year})"
            )

    def covers(self, year_of_operation: int) -> bool:
        if year_of_operation < self.start_year:
            return False
        return self.end_year is None or year_of_operation <= self.end_year


def years_in_operation(commissioning_year: int | None, settlement_year: int) -> int:
    """Year of operation for ``settlement_year``; 1 when not yet commissioned."""
    if commissioning_year is None:
        return 1
    return settlement_year - commissioning_year + 1


def resolve_revenue_phase(
    phases: Sequence[RevenuePhase],
    commissioning_year: int | None,
    settlement_year: int,
) -> RevenuePhase | None:
    """
    Return the phase in force for ``settlement_year``, or None.

    Phases are considered in ``phase_number`` order; the first one whose
    range covers the year of operation wins.
    """
    year = years_in_operation(commissioning_year, settlement_year)
    for phase in sorted(phases, key=lambda p: p.phase_number):
        if phase.covers(year):
            return phase
    return None
