"""
Tests for the calculate_settlement engine entry point.

Covers:
- End-to-end settlement of the reference park
- Validation ordering and data errors
- Custom lease mappers
- Structured log events and engine trace
"""

from datetime import UTC, datetime

import pytest

from settlement_engines.settlement import calculate_settlement, ensure_unique_leases
from settlement_kernel.domain.leases import Lease, Lessor
from settlement_kernel.domain.values import Money
from settlement_kernel.exceptions import (
    DuplicateLeaseError,
    NegativeAmountError,
    UnknownPlotAreaCategoryError,
)
from tests.builders import make_area, make_config, make_lease

NOW = datetime(2025, 3, 31, 9, 30, tzinfo=UTC)


class TestCalculateSettlement:

    def test_reference_park(self, reference_config, reference_leases):
        result = calculate_settlement(
            reference_config, reference_leases, calculated_at=NOW
        )

        assert result.lease("A").total_payment == Money.of("46666.67", "EUR")
        assert result.lease("B").total_payment == Money.of("43333.33", "EUR")
        assert result.totals.total_payment == Money.of("90000.00", "EUR")
        assert result.totals.unallocated_revenue == Money.of("10000.00", "EUR")

    def test_positional_arguments(self, reference_config, reference_leases):
        result = calculate_settlement(
            reference_config, list(reference_leases), calculated_at=NOW
        )

        assert len(result.leases) == 2

    def test_deterministic_apart_from_timestamp(self, reference_config, reference_leases):
        first = calculate_settlement(reference_config, reference_leases, calculated_at=NOW)
        second = calculate_settlement(
            reference_config,
            reference_leases,
            calculated_at=datetime(2026, 1, 1, tzinfo=UTC),
        )

        assert first.leases == second.leases
        assert first.totals == second.totals
        assert first.calculated_at != second.calculated_at

    def test_no_leases(self, reference_config):
        result = calculate_settlement(reference_config, (), calculated_at=NOW)

        assert result.totals.lease_count == 0
        assert result.totals.total_payment.is_zero

    def test_duplicate_lease_rejected(self, reference_config):
        leases = (make_lease("A", wea=1), make_lease("A", pool=1))

        with pytest.raises(DuplicateLeaseError):
            calculate_settlement(reference_config, leases, calculated_at=NOW)

    def test_unknown_category_rejected(self, reference_config):
        lease = Lease(
            lease_id="X",
            lessor=Lessor("P-X"),
            plot_areas=(make_area("WEA", "1"), make_area("SOLARFELD", "2")),
        )

        with pytest.raises(UnknownPlotAreaCategoryError):
            calculate_settlement(reference_config, (lease,), calculated_at=NOW)

    def test_configuration_validated_before_leases(self):
        """An invalid configuration wins over a duplicate lease."""
        leases = (make_lease("A"), make_lease("A"))

        with pytest.raises(NegativeAmountError):
            calculate_settlement(
                make_config(total_revenue="-1"), leases, calculated_at=NOW
            )

    def test_custom_lease_mapper_is_used(self, reference_config, reference_leases):
        calls = []

        def recording_map(fn, items):
            items = list(items)
            calls.append(len(items))
            return map(fn, items)

        result = calculate_settlement(
            reference_config,
            reference_leases,
            calculated_at=NOW,
            lease_mapper=recording_map,
        )

        assert calls == [2, 2]
        assert result.totals.total_payment == Money.of("90000.00", "EUR")


class TestEnsureUniqueLeases:

    def test_unique(self):
        ensure_unique_leases([make_lease("A"), make_lease("B")])

    def test_duplicate_reports_lease_id(self):
        with pytest.raises(DuplicateLeaseError) as exc_info:
            ensure_unique_leases([make_lease("B"), make_lease("A"), make_lease("B")])

        assert exc_info.value.lease_id == "B"


class TestSettlementLogging:

    def test_started_and_completed_events(
        self, captured_logs, reference_config, reference_leases,
    ):
        calculate_settlement(reference_config, reference_leases, calculated_at=NOW)

        messages = [r["message"] for r in captured_logs()]
        assert messages.index("settlement_started") < messages.index("settlement_completed")

        completed = next(
            r for r in captured_logs() if r["message"] == "settlement_completed"
        )
        assert completed["park_id"] == "WP-BARENBURG"
        assert completed["total_payment"] == "90000.00"

    def test_engine_trace_emitted(
        self, captured_logs, reference_config, reference_leases,
    ):
        calculate_settlement(reference_config, reference_leases, calculated_at=NOW)

        traces = [
            r for r in captured_logs()
            if r["message"] == "SETTLEMENT_ENGINE_TRACE"
            and r["engine_name"] == "settlement"
        ]
        assert len(traces) == 1
        assert traces[0]["engine_version"] == "1.0"
        assert len(traces[0]["input_fingerprint"]) == 16

    def test_fingerprint_tracks_inputs(
        self, captured_logs, reference_config, reference_leases,
    ):
        calculate_settlement(reference_config, reference_leases, calculated_at=NOW)
        calculate_settlement(reference_config, reference_leases, calculated_at=NOW)
        calculate_settlement(
            make_config(total_revenue="1.00"), reference_leases, calculated_at=NOW,
        )

        fingerprints = [
            r["input_fingerprint"] for r in captured_logs()
            if r["message"] == "SETTLEMENT_ENGINE_TRACE"
            and r["engine_name"] == "settlement"
        ]
        assert fingerprints[0] == fingerprints[1]
        assert fingerprints[0] != fingerprints[2]
