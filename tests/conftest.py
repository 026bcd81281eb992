"""
Shared fixtures: JSON log capture, a fixed clock and the reference park.

The reference park has revenue 100 000 EUR, a minimum rent of 2 000 EUR per
turbine, 70 % of revenue on WEA areas and 20 % on the Pool. Lease A holds
two WEA areas; lease B holds one WEA area and one Pool area.
"""

import json
import logging
from io import StringIO

import pytest

from settlement_kernel.domain.clock import DeterministicClock
from settlement_kernel.domain.leases import Lease, SettlementConfiguration
from settlement_kernel.logging_config import (
    ROOT_LOGGER_NAME,
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from tests.builders import FIXED_NOW, make_config, make_lease


@pytest.fixture(autouse=True, scope="session")
def _json_logging_for_session():
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _no_context_leaks():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Returns a callable giving every settlement_kernel record logged so far
    during the test, parsed from JSON::

        def test_trace(captured_logs):
            calculate_settlement(config, leases, calculated_at=FIXED_NOW)
            assert any(r["message"] == "SETTLEMENT_ENGINE_TRACE" for r in captured_logs())
    """
    buffer = StringIO()
    capture = logging.StreamHandler(buffer)
    capture.setFormatter(StructuredFormatter())
    tree = logging.getLogger(ROOT_LOGGER_NAME)
    saved_level = tree.level
    tree.setLevel(logging.DEBUG)
    tree.addHandler(capture)

    yield lambda: [json.loads(raw) for raw in buffer.getvalue().splitlines() if raw]

    tree.removeHandler(capture)
    tree.setLevel(saved_level)


@pytest.fixture
def deterministic_clock() -> DeterministicClock:
    return DeterministicClock(FIXED_NOW)


@pytest.fixture
def reference_config() -> SettlementConfiguration:
    return make_config()


@pytest.fixture
def reference_leases() -> tuple[Lease, ...]:
    return (
        make_lease("A", wea=2),
        make_lease("B", wea=1, pool=1),
    )
