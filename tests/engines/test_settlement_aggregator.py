"""
Tests for the SettlementAggregator.

Covers:
- The two-lease reference park
- Minimum rent guarantee
- Rounding reconciliation: rows sum exactly to totals
- Empty leases and zero leases
- Result rendering
"""

from datetime import UTC, datetime
from typing import get_type_hints

import pytest

from settlement_engines.aggregator import SettlementAggregator, SettlementCalculationResult
from settlement_engines.entitlement import EntitlementCalculator
from settlement_engines.parcel_classifier import ParcelClassifier
from settlement_kernel.domain.values import Money
from tests.builders import make_config, make_lease

CALCULATED_AT = datetime(2025, 3, 31, 9, 30, tzinfo=UTC)


def eur(amount: str) -> Money:
    return Money.of(amount, "EUR")


def aggregate(config, leases):
    classifier = ParcelClassifier()
    calculator = EntitlementCalculator()
    classifications = [classifier.classify(lease.plot_areas) for lease in leases]
    pools = calculator.build_revenue_pools(config, classifications)
    entitlements = [
        calculator.calculate(lease, c, config, pools)
        for lease, c in zip(leases, classifications)
    ]
    return SettlementAggregator().aggregate(config, entitlements, pools, CALCULATED_AT)


def assert_rows_match_totals(result):
    zero = Money.zero(result.currency)
    for figure in (
        "total_minimum_rent",
        "total_revenue_share",
        "total_payment",
        "total_difference",
    ):
        rows = sum((getattr(r, figure) for r in result.leases), zero)
        assert rows == getattr(result.totals, figure), figure


class TestReferencePark:

    def test_lease_payments(self, reference_config, reference_leases):
        result = aggregate(reference_config, reference_leases)
        a = result.lease("A")
        b = result.lease("B")

        assert a.total_minimum_rent == eur("4000.00")
        assert a.total_revenue_share == eur("46666.67")
        assert a.total_payment == eur("46666.67")
        assert a.total_difference == eur("42666.67")

        assert b.total_minimum_rent == eur("2000.00")
        assert b.total_revenue_share == eur("43333.33")
        assert b.total_payment == eur("43333.33")

    def test_totals(self, reference_config, reference_leases):
        totals = aggregate(reference_config, reference_leases).totals

        assert totals.lease_count == 2
        assert totals.total_payment == eur("90000.00")
        assert totals.total_minimum_rent == eur("6000.00")
        assert totals.total_difference == eur("84000.00")
        assert totals.unallocated_revenue == eur("10000.00")
        assert (totals.wea_area_count, totals.pool_area_count, totals.other_area_count) == (3, 1, 0)

    def test_configuration_echo(self, reference_config, reference_leases):
        result = aggregate(reference_config, reference_leases)

        assert result.park_id == "WP-BARENBURG"
        assert result.year == 2024
        assert result.total_revenue == eur("100000.00")
        assert result.recognized_revenue == eur("100000.00")
        assert result.minimum_rent_per_turbine == eur("2000.00")
        assert result.calculated_at == CALCULATED_AT
        assert isinstance(result.calculated_at, datetime)
        assert get_type_hints(SettlementCalculationResult)["calculated_at"] is datetime

    def test_lease_order_preserved(self, reference_config, reference_leases):
        result = aggregate(reference_config, tuple(reversed(reference_leases)))

        assert [r.lease_id for r in result.leases] == ["B", "A"]

    def test_row_carries_lessor_and_parcels(self, reference_config, reference_leases):
        b = aggregate(reference_config, reference_leases).lease("B")

        assert b.lessor_id == "P-B"
        assert b.lessor_name == "Lessor B"
        assert (b.wea_count, b.pool_count, b.other_count) == (1, 1, 0)
        assert b.plots_by_district == {"Barenburg": ("B-1", "B-2")}
        assert len(b.plot_areas) == 2

    def test_unknown_lease_lookup(self, reference_config, reference_leases):
        with pytest.raises(KeyError):
            aggregate(reference_config, reference_leases).lease("Z")


class TestGuarantee:

    def test_minimum_rent_tops_up_small_share(self, reference_leases):
        result = aggregate(make_config(total_revenue="1000.00"), reference_leases)
        a = result.lease("A")
        b = result.lease("B")

        assert a.total_revenue_share == eur("466.67")
        assert a.total_payment == eur("4000.00")
        assert a.guarantee_applied
        assert b.total_revenue_share == eur("433.33")
        assert b.total_payment == eur("2000.00")
        assert result.totals.total_payment == eur("6000.00")
        assert result.totals.unallocated_revenue == eur("100.00")

    def test_payment_never_below_minimum(self, reference_leases):
        result = aggregate(make_config(total_revenue="0"), reference_leases)

        for row in result.leases:
            assert row.total_payment >= row.total_minimum_rent
            assert row.total_payment == row.total_minimum_rent


class TestRoundingReconciliation:

    def test_thirds_sum_to_rounded_total(self):
        leases = tuple(make_lease(lid, wea=1) for lid in ("A", "B", "C"))
        config = make_config(total_revenue="100.00", minimum_rent="0", wea="100", pool="0")

        result = aggregate(config, leases)

        assert [r.total_revenue_share for r in result.leases] == [
            eur("33.34"), eur("33.33"), eur("33.33"),
        ]
        assert result.totals.total_revenue_share == eur("100.00")
        assert result.totals.unallocated_revenue.is_zero
        assert_rows_match_totals(result)

    def test_sub_cent_minimum_rent_rounded_once(self):
        """Three turbines at 0.005 each: 0.015 rounds to 0.02 park-wide."""
        leases = tuple(make_lease(lid, wea=1) for lid in ("A", "B", "C"))
        config = make_config(total_revenue="0", minimum_rent="0.005")

        result = aggregate(config, leases)

        assert result.totals.total_minimum_rent == eur("0.02")
        assert_rows_match_totals(result)
        assert sorted(r.total_minimum_rent for r in result.leases) == [
            eur("0.00"), eur("0.01"), eur("0.01"),
        ]

    def test_whole_cent_rate_gives_count_times_rate(self):
        leases = (
            make_lease("A", wea=3),
            make_lease("B", wea=1, pool=1),
            make_lease("C", wea=2),
        )
        config = make_config(total_revenue="0", minimum_rent="1234.57")

        result = aggregate(config, leases)

        for row in result.leases:
            assert row.total_minimum_rent == eur("1234.57") * row.wea_count
        assert_rows_match_totals(result)

    def test_mixed_guarantee_rows_match_totals(self):
        leases = (
            make_lease("A", wea=3),
            make_lease("B", pool=2, other=1),
            make_lease("C", wea=1, other=5),
            make_lease("D", pool=1),
        )
        config = make_config(total_revenue="12345.67", minimum_rent="1234.56")

        assert_rows_match_totals(aggregate(config, leases))


class TestEmptyLeases:

    def test_lease_without_parcels_has_zero_row(self, reference_config):
        leases = (make_lease("A", wea=1), make_lease("EMPTY"))
        result = aggregate(reference_config, leases)
        empty = result.lease("EMPTY")

        assert empty.total_minimum_rent.is_zero
        assert empty.total_revenue_share.is_zero
        assert empty.total_payment.is_zero
        assert empty.total_difference.is_zero
        assert result.totals.lease_count == 1
        assert len(result.leases) == 2

    def test_no_leases(self, reference_config):
        result = aggregate(reference_config, ())

        assert result.leases == ()
        assert result.totals.lease_count == 0
        assert result.totals.total_payment.is_zero
        assert result.totals.unallocated_revenue == eur("100000.00")


class TestRendering:

    def test_to_dict(self, reference_config, reference_leases):
        data = aggregate(reference_config, reference_leases).to_dict()

        assert data["currency"] == "EUR"
        assert data["wea_share_percentage"] == "70"
        assert data["calculated_at"] == CALCULATED_AT.isoformat()
        assert data["totals"]["total_payment"] == "90000.00"
        assert data["leases"][0]["lease_id"] == "A"
        assert data["leases"][0]["total_revenue_share"] == "46666.67"
        assert data["leases"][1]["plots_by_district"] == {"Barenburg": ["B-1", "B-2"]}
        assert data["leases"][1]["plot_areas"][1]["category"] == "POOL"

    def test_aggregation_logged(self, captured_logs, reference_config, reference_leases):
        aggregate(reference_config, reference_leases)

        records = [r for r in captured_logs() if r["message"] == "settlement_aggregated"]
        assert records[0]["total_payment"] == "90000.00"
        assert records[0]["unallocated_revenue"] == "10000.00"
        assert records[0]["guarantee_applied_count"] == 0
