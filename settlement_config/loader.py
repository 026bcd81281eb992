"""
Settlement Input Loader (``settlement_config.loader``).

Responsibility
--------------
Loads a settlement input YAML document and parses it into typed
``settlement_config.schema`` dataclass instances. Callers normally go
through ``settlement_config.load_settlement_input``, which wraps parse
failures in ``ConfigFileError``.

Architecture position
---------------------
**Config layer** -- infrastructure tooling. Depends on the kernel domain
types and on ``settlement_engines.revenue_phase``; never on services.

Invariants enforced
-------------------
* Required fields raise ``KeyError`` when missing; there are no silent
  defaults for terms that change money.
* Numbers are converted to ``Decimal`` through their string form, so a
  YAML float such as ``2000.5`` becomes ``Decimal("2000.5")``.
* Every parsed object is a frozen dataclass.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  document for input identity.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Bad numbers or dates  -> ``ValueError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from settlement_config.schema import (
    ParkSettlementTerms,
    SettlementInput,
    SettlementPeriodInput,
)
from settlement_engines.revenue_phase import RevenuePhase
from settlement_kernel.domain.leases import AdvancePayment, Lease, Lessor, PlotArea
from settlement_kernel.domain.values import Currency, Money

DEFAULT_CURRENCY = "EUR"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at the top of {path}, got {type(data).__name__}")
    return data


def parse_decimal(value: Any, field_name: str) -> Decimal:
    """Parse a YAML scalar (str, int or float) into a Decimal."""
    if isinstance(value, bool) or value is None:
        raise ValueError(f"{field_name} must be numeric, got {value!r}")
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid number for {field_name}: {value!r}") from e


def parse_money(value: Any, currency: Currency, field_name: str) -> Money:
    return Money(parse_decimal(value, field_name), currency)


def parse_optional_money(value: Any, currency: Currency, field_name: str) -> Money | None:
    if value is None:
        return None
    return parse_money(value, currency, field_name)


def parse_date(value: Any) -> date:
    """Parse a date from YAML (string or date object)."""
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_revenue_phase(data: dict[str, Any]) -> RevenuePhase:
    """Parse a RevenuePhase from a dict."""
    return RevenuePhase(
        phase_number=int(data["phase_number"]),
        start_year=int(data["start_year"]),
        end_year=int(data["end_year"]) if data.get("end_year") is not None else None,
        revenue_share_percentage=parse_decimal(
            data["revenue_share_percentage"], "revenue_share_percentage"
        ),
    )


def parse_park_terms(data: dict[str, Any]) -> ParkSettlementTerms:
    """
    Parse ``ParkSettlementTerms`` from the ``park`` section.

    Required keys: ``park_id``, ``minimum_rent_per_turbine``,
    ``wea_share_percentage``, ``pool_share_percentage``.
    """
    currency = Currency(data.get("currency", DEFAULT_CURRENCY))
    commissioning_year = data.get("commissioning_year")
    return ParkSettlementTerms(
        park_id=str(data["park_id"]),
        park_name=str(data.get("name", "")),
        currency=currency,
        minimum_rent_per_turbine=parse_money(
            data["minimum_rent_per_turbine"], currency, "minimum_rent_per_turbine"
        ),
        wea_share_percentage=parse_decimal(
            data["wea_share_percentage"], "wea_share_percentage"
        ),
        pool_share_percentage=parse_decimal(
            data["pool_share_percentage"], "pool_share_percentage"
        ),
        commissioning_year=int(commissioning_year) if commissioning_year is not None else None,
        revenue_phases=tuple(
            parse_revenue_phase(p) for p in data.get("revenue_phases", [])
        ),
    )


def parse_period(data: dict[str, Any], currency: Currency) -> SettlementPeriodInput:
    """Parse the ``period`` section. Only ``year`` is required."""
    return SettlementPeriodInput(
        year=int(data["year"]),
        period_revenue=parse_optional_money(
            data.get("period_revenue"), currency, "period_revenue"
        ),
        revenue_override=parse_optional_money(
            data.get("revenue_override"), currency, "revenue_override"
        ),
        linked_energy_settlement_revenue=parse_optional_money(
            data.get("linked_energy_settlement_revenue"),
            currency,
            "linked_energy_settlement_revenue",
        ),
    )


def parse_lessor(data: dict[str, Any]) -> Lessor:
    return Lessor(
        lessor_id=str(data["lessor_id"]),
        company_name=data.get("company_name"),
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
    )


def parse_plot_area(data: dict[str, Any]) -> PlotArea:
    """
    Parse a PlotArea.

    The category is kept as the raw string; unknown categories are
    reported by the engine when the run classifies the lease.
    """
    area_sqm = data.get("area_sqm")
    field_number = data.get("field_number")
    plot_area_id = data.get("plot_area_id")
    return PlotArea(
        cadastral_district=str(data["cadastral_district"]),
        plot_number=str(data["plot_number"]),
        category=str(data["category"]),
        field_number=str(field_number) if field_number is not None else None,
        area_sqm=parse_decimal(area_sqm, "area_sqm") if area_sqm is not None else None,
        plot_area_id=str(plot_area_id) if plot_area_id is not None else None,
    )


def parse_lease(data: dict[str, Any]) -> Lease:
    return Lease(
        lease_id=str(data["lease_id"]),
        lessor=parse_lessor(data["lessor"]),
        plot_areas=tuple(parse_plot_area(a) for a in data.get("plot_areas", [])),
    )


def parse_advance_payment(data: dict[str, Any], currency: Currency) -> AdvancePayment:
    paid_at = data.get("paid_at")
    invoice_number = data.get("invoice_number")
    return AdvancePayment(
        lease_id=str(data["lease_id"]),
        month=int(data["month"]),
        amount=parse_money(data["amount"], currency, "amount"),
        invoice_number=str(invoice_number) if invoice_number is not None else None,
        paid_at=parse_date(paid_at) if paid_at is not None else None,
    )


def parse_settlement_input(data: dict[str, Any], source: str = "") -> SettlementInput:
    """
    Parse a complete settlement input document.

    Sections: ``park`` (required), ``period`` (required), ``leases`` and
    ``advance_payments`` (optional lists).
    """
    terms = parse_park_terms(data["park"])
    return SettlementInput(
        terms=terms,
        period=parse_period(data["period"], terms.currency),
        leases=tuple(parse_lease(item) for item in data.get("leases", [])),
        advance_payments=tuple(
            parse_advance_payment(item, terms.currency)
            for item in data.get("advance_payments", [])
        ),
        checksum=compute_checksum(data),
        source=source,
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
