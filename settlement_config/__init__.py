"""
settlement_config -- public entrypoint for settlement input documents.

Responsibility:
    Provides ``load_settlement_input()``, the way services and tooling read
    a park's settlement terms, period revenue, lease roster and paid
    advances from a YAML document.

Architecture position:
    Configuration -- sits above ``settlement_kernel`` and
    ``settlement_engines`` and below ``settlement_services``. The kernel and
    engines MUST NEVER import from ``settlement_config``.

Invariants enforced:
    - Every loaded document is identified by a SHA-256 checksum of its
      canonical JSON form.
    - Parse failures surface as ``ConfigFileError`` naming the source file.

Failure modes:
    - ``FileNotFoundError`` -- the document does not exist.
    - ``ConfigFileError`` -- malformed YAML, missing required keys, or bad
      numbers / dates.

Audit relevance:
    Every successful load emits a ``SETTLEMENT_CONFIG_TRACE`` log entry with
    the park, year, checksum and roster size, tying a settlement run to the
    exact input it was computed from.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from settlement_config.loader import load_yaml_file, parse_settlement_input
from settlement_config.schema import (
    ParkSettlementTerms,
    SettlementInput,
    SettlementPeriodInput,
)
from settlement_kernel.exceptions import ConfigFileError

_logger = logging.getLogger("settlement_kernel.config")

__all__ = [
    "ParkSettlementTerms",
    "SettlementInput",
    "SettlementPeriodInput",
    "load_settlement_input",
]


def load_settlement_input(path: Path | str) -> SettlementInput:
    """Load and parse a settlement input document.

    Args:
        path: YAML file with ``park``, ``period``, ``leases`` and
            ``advance_payments`` sections.

    Returns:
        SettlementInput with its checksum set.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ConfigFileError: If the document cannot be parsed.
    """
    path = Path(path)
    try:
        data = load_yaml_file(path)
        settlement_input = parse_settlement_input(data, source=str(path))
    except yaml.YAMLError as e:
        raise ConfigFileError(str(path), f"invalid YAML: {e}") from e
    except KeyError as e:
        raise ConfigFileError(str(path), f"missing required key {e}") from e
    except (TypeError, ValueError) as e:
        raise ConfigFileError(str(path), str(e)) from e

    _logger.info(
        "SETTLEMENT_CONFIG_TRACE",
        extra={
            "trace_type": "SETTLEMENT_CONFIG_TRACE",
            "source": str(path),
            "checksum": settlement_input.checksum,
            "park_id": settlement_input.terms.park_id,
            "settlement_year": settlement_input.period.year,
            "lease_count": len(settlement_input.leases),
            "advance_payment_count": len(settlement_input.advance_payments),
            "revenue_phase_count": len(settlement_input.terms.revenue_phases),
        },
    )

    return settlement_input
