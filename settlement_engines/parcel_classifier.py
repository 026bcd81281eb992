"""
Module: settlement_engines.parcel_classifier
Responsibility:
    Count a lease's plot areas per use-category (WEA, Pool, Other) and
    group its plot numbers by cadastral district for reporting.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Counting is per area record; area size is never weighted.
    - Duplicate plot numbers collapse per district; first-seen order is kept.

Failure modes:
    - UnknownPlotAreaCategoryError (DataError) on an unrecognised category.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from settlement_kernel.domain.leases import PlotArea, PlotAreaCategory
from settlement_kernel.logging_config import get_logger

logger = get_logger("engines.parcel_classifier")


@dataclass(frozen=True)
class ParcelClassification:
    """
    Category counts and district grouping for one lease.

    Guarantees:
        - All counts are non-negative.
        - ``plots_by_district`` values hold distinct plot numbers.
    """

    wea_count: int = 0
    pool_count: int = 0
    other_count: int = 0
    plots_by_district: dict[str, tuple[str, ...]] = field(
        default_factory=dict, hash=False
    )

    @property
    def total_count(self) -> int:
        return self.wea_count + self.pool_count + self.other_count

    @property
    def is_empty(self) -> bool:
        return self.total_count == 0

    def count_for(self, category: PlotAreaCategory) -> int:
        """Number of area records in ``category``."""
        match category:
            case PlotAreaCategory.WEA:
                return self.wea_count
            case PlotAreaCategory.POOL:
                return self.pool_count
            case PlotAreaCategory.OTHER:
                return self.other_count
            case _:
                raise ValueError(f"Unknown category: {category}")


class ParcelClassifier:
    """
    Classify plot areas of a lease.

    Contract:
        Pure function over the lease's plot area list.
    Non-goals:
        - Does not weight by ``area_sqm``; the settlement model is count based.
    """

    def classify(self, plot_areas: Sequence[PlotArea]) -> ParcelClassification:
        """
        Count plot areas per category and group plot numbers by district.

        Args:
            plot_areas: The lease's plot areas, in input order.

        Returns:
            ParcelClassification; all-zero for an empty sequence.
        """
        counts = {category: 0 for category in PlotAreaCategory}
        districts: dict[str, list[str]] = {}

        for area in plot_areas:
            category = PlotAreaCategory.parse(area.category, area.plot_number)
            counts[category] += 1

            plots = districts.setdefault(area.cadastral_district, [])
            if area.plot_number not in plots:
                plots.append(area.plot_number)

        classification = ParcelClassification(
            wea_count=counts[PlotAreaCategory.WEA],
            pool_count=counts[PlotAreaCategory.POOL],
            other_count=counts[PlotAreaCategory.OTHER],
            plots_by_district={
                district: tuple(plots) for district, plots in districts.items()
            },
        )

        logger.debug("parcels_classified", extra={
            "area_count": len(plot_areas),
            "wea_count": classification.wea_count,
            "pool_count": classification.pool_count,
            "other_count": classification.other_count,
            "district_count": len(districts),
        })

        return classification
