"""
Leases -- Immutable input snapshots for a settlement run.

Responsibility:
    Defines the lease, lessor, plot area and settlement configuration
    value objects that a data-access collaborator resolves and hands to the
    engines. Nothing here queries storage.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - All snapshots are frozen; a lease is immutable once loaded.
    - Percentages and monetary fields are Decimal / Money, never float.
    - Plot area categories are parsed lazily so that an unknown category
      fails the run inside the engine (DataError), not at load time.

Failure modes:
    - UnknownPlotAreaCategoryError from ``PlotAreaCategory.parse``.
    - ValueError on float or non-numeric percentage input.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum

from settlement_kernel.domain.values import Currency, Money
from settlement_kernel.exceptions import UnknownPlotAreaCategoryError


def to_decimal(value: Decimal | int | str, field_name: str) -> Decimal:
    """Coerce an int / str / Decimal to Decimal. Floats are rejected."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"{field_name} must be Decimal, int or str, got {value!r}")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid {field_name}: {value!r}") from e


class PlotAreaCategory(str, Enum):
    """Use-category of a leased plot area."""

    WEA = "WEA"  # Turbine foundation
    POOL = "POOL"  # Pooled infrastructure area
    OTHER = "OTHER"  # Roads, compensation areas, cable routes

    @classmethod
    def parse(
        cls,
        value: PlotAreaCategory | str,
        plot_number: str | None = None,
    ) -> PlotAreaCategory:
        """
        Resolve a raw category value.

        Accepts the enum itself, its value (case-insensitive) and the
        cadastral area types used by park registers (WEA_STANDORT, WEG,
        AUSGLEICH, KABEL).

        Raises:
            UnknownPlotAreaCategoryError: for anything else.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            resolved = _CATEGORY_ALIASES.get(value.strip().upper())
            if resolved is not None:
                return resolved
        raise UnknownPlotAreaCategoryError(str(value), plot_number)


_CATEGORY_ALIASES: dict[str, PlotAreaCategory] = {
    "WEA": PlotAreaCategory.WEA,
    "WEA_STANDORT": PlotAreaCategory.WEA,
    "POOL": PlotAreaCategory.POOL,
    "OTHER": PlotAreaCategory.OTHER,
    "WEG": PlotAreaCategory.OTHER,
    "AUSGLEICH": PlotAreaCategory.OTHER,
    "KABEL": PlotAreaCategory.OTHER,
}


@dataclass(frozen=True)
class PlotArea:
    """
    One leased area on a cadastral plot.

    A lessor may hold several area records on the same physical plot
    (e.g. a turbine foundation and a pool strip).
    """

    cadastral_district: str
    plot_number: str
    category: PlotAreaCategory | str
    field_number: str | None = None
    area_sqm: Decimal | None = None
    plot_area_id: str | None = None

    def __post_init__(self) -> None:
        if self.area_sqm is not None:
            object.__setattr__(self, "area_sqm", to_decimal(self.area_sqm, "area_sqm"))


@dataclass(frozen=True)
class Lessor:
    """Landowner party receiving settlement payments."""

    lessor_id: str
    company_name: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @property
    def display_name(self) -> str:
        """Company name, else "first last", else "Unbekannt"."""
        if self.company_name:
            return self.company_name
        full = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return full or "Unbekannt"


@dataclass(frozen=True)
class Lease:
    """
    Contract between the operator and one lessor for a park and year.

    ``plot_areas`` keeps input order; it is echoed on the result for
    traceability.
    """

    lease_id: str
    lessor: Lessor
    plot_areas: tuple[PlotArea, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.plot_areas, tuple):
            object.__setattr__(self, "plot_areas", tuple(self.plot_areas))


@dataclass(frozen=True)
class SettlementConfiguration:
    """
    Park-level terms for one settlement year.

    Percentages are plain values in [0, 100]. The engine validates ranges
    and signs (``settlement_engines.entitlement.validate_configuration``);
    construction only normalizes types.
    """

    park_id: str
    year: int
    total_revenue: Money
    minimum_rent_per_turbine: Money
    wea_share_percentage: Decimal
    pool_share_percentage: Decimal
    revenue_phase_percentage: Decimal = Decimal("100")
    park_name: str = ""

    def __post_init__(self) -> None:
        for name in (
            "wea_share_percentage",
            "pool_share_percentage",
            "revenue_phase_percentage",
        ):
            object.__setattr__(self, name, to_decimal(getattr(self, name), name))

    @property
    def currency(self) -> Currency:
        return self.total_revenue.currency


@dataclass(frozen=True)
class AdvancePayment:
    """A monthly advance already invoiced to a lessor."""

    lease_id: str
    month: int
    amount: Money
    invoice_number: str | None = None
    paid_at: date | None = None
