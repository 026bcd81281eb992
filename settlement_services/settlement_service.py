"""
settlement_services.settlement_service -- Orchestrates park settlement runs.

Responsibility:
    Turn a park's lease terms and period revenue into an engine
    configuration, run the settlement engines (optionally on a worker
    pool, optionally under a deadline), and offset paid advances for the
    final settlement.

Architecture position:
    Services -- orchestration over engines + kernel.
    The only layer that reads the clock or owns threads. Engines receive
    ``calculated_at`` and a ``lease_mapper`` from here.

Invariants enforced:
    - Revenue source priority: explicit override, then linked energy
      settlement revenue, then the settlement period's revenue, else zero.
    - Revenue phase: the phase in force for the year of operation sets the
      recognizable share; a configured schedule with no matching phase
      recognizes nothing.
    - Deadline: if ``deadline_seconds`` elapses before a run finishes,
      ``SettlementDeadlineExceededError`` is raised and no result is
      returned.
    - Parallel and sequential runs produce identical results.

Failure modes:
    - ConfigurationError / DataError / CalculationError from the engines.
    - SettlementDeadlineExceededError when the deadline elapses.
    - ValueError from SettlementServiceConfig on invalid options.

Audit relevance:
    Every run is bound to a fresh ``run_id`` in the LogContext, so all
    engine log records of a run share it together with ``park_id`` and
    ``settlement_year``.

Usage:
    from settlement_services import SettlementService, SettlementServiceConfig
    from settlement_config import load_settlement_input

    service = SettlementService(
        config=SettlementServiceConfig(max_workers=4, deadline_seconds=30),
    )
    final = service.settle(load_settlement_input("barenburg-2024.yaml"))
"""

from __future__ import annotations

import contextvars
import time
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import uuid4

from settlement_config.schema import (
    ParkSettlementTerms,
    SettlementInput,
    SettlementPeriodInput,
)
from settlement_engines.advances import (
    AdvanceCalculator,
    FinalSettlementResult,
    MonthlyAdvanceResult,
    offset_advances,
)
from settlement_engines.aggregator import SettlementCalculationResult
from settlement_engines.revenue_phase import resolve_revenue_phase, years_in_operation
from settlement_engines.settlement import calculate_settlement
from settlement_kernel.domain.clock import Clock, SystemClock
from settlement_kernel.domain.leases import (
    AdvancePayment,
    Lease,
    SettlementConfiguration,
)
from settlement_kernel.domain.values import Currency, Money
from settlement_kernel.exceptions import SettlementDeadlineExceededError
from settlement_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.settlement")


class RevenueSource(str, Enum):
    """Where the settled total revenue came from."""

    OVERRIDE = "override"
    LINKED_ENERGY_SETTLEMENT = "linked_energy_settlement"
    PERIOD = "period"
    NONE = "none"


@dataclass(frozen=True)
class SettlementServiceConfig:
    """
    Runtime options of the settlement service.

    ``max_workers`` of 1 evaluates leases sequentially on the calling
    thread. ``deadline_seconds`` of None disables the deadline.
    """

    max_workers: int = 1
    deadline_seconds: float | None = None

    def __post_init__(self) -> None:
        if isinstance(self.max_workers, bool) or not isinstance(self.max_workers, int):
            raise ValueError(f"max_workers must be an int, got {self.max_workers!r}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.deadline_seconds is not None and self.deadline_seconds <= 0:
            raise ValueError(
                f"deadline_seconds must be positive, got {self.deadline_seconds}"
            )
        logger.debug("settlement_service_configured", extra={
            "max_workers": self.max_workers,
            "deadline_seconds": self.deadline_seconds,
        })


def resolve_total_revenue(
    period: SettlementPeriodInput,
    currency: Currency,
) -> tuple[Money, RevenueSource]:
    """Pick the settled revenue by source priority."""
    if period.revenue_override is not None:
        return period.revenue_override, RevenueSource.OVERRIDE
    if period.linked_energy_settlement_revenue is not None:
        return period.linked_energy_settlement_revenue, RevenueSource.LINKED_ENERGY_SETTLEMENT
    if period.period_revenue is not None:
        return period.period_revenue, RevenueSource.PERIOD
    return Money.zero(currency), RevenueSource.NONE


class _DeadlineMapper:
    """
    ``map``-compatible callable handed to the engines.

    Sequential mode checks the deadline before every item. Pool mode waits
    on the executor with the remaining time as timeout.
    """

    def __init__(
        self,
        executor: ThreadPoolExecutor | None,
        deadline_at: float | None,
        deadline_seconds: float | None,
        park_id: str,
        timer: Callable[[], float],
    ):
        self._executor = executor
        self._deadline_at = deadline_at
        self._deadline_seconds = deadline_seconds
        self._park_id = park_id
        self._timer = timer

    def remaining(self) -> float | None:
        """Seconds left; raises once the deadline has passed."""
        if self._deadline_at is None:
            return None
        remaining = self._deadline_at - self._timer()
        if remaining <= 0:
            raise SettlementDeadlineExceededError(self._park_id, self._deadline_seconds)
        return remaining

    def __call__(self, fn: Callable[[Any], Any], items: Iterable[Any]) -> Iterator[Any]:
        items = list(items)
        if self._executor is None:
            results = []
            for item in items:
                self.remaining()
                results.append(fn(item))
            return iter(results)

        # Each item runs in its own copy of the caller's LogContext.
        contexts = [contextvars.copy_context() for _ in items]
        timeout = self.remaining()
        try:
            return iter(list(self._executor.map(
                lambda pair: pair[0].run(fn, pair[1]),
                list(zip(contexts, items, strict=True)),
                timeout=timeout,
            )))
        except TimeoutError as e:
            raise SettlementDeadlineExceededError(
                self._park_id, self._deadline_seconds
            ) from e


class SettlementService:
    """
    Runs settlements for one park at a time.

    Contract:
        Receives Clock and SettlementServiceConfig via constructor
        injection. Holds no state between runs.
    Guarantees:
        - ``calculate`` returns the same figures for any ``max_workers``.
        - ``calculated_at`` on every result comes from the injected clock.
    Non-goals:
        - Does not persist results or render documents.
        - Does not look up leases; callers pass the roster.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        config: SettlementServiceConfig | None = None,
        timer: Callable[[], float] = time.monotonic,
    ):
        self._clock = clock or SystemClock()
        self._config = config or SettlementServiceConfig()
        self._timer = timer
        self._advance_calculator = AdvanceCalculator()

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def build_configuration(
        self,
        terms: ParkSettlementTerms,
        period: SettlementPeriodInput,
    ) -> SettlementConfiguration:
        """Resolve revenue source and revenue phase into engine terms."""
        total_revenue, source = resolve_total_revenue(period, terms.currency)

        if not terms.revenue_phases:
            phase_percentage = Decimal("100")
        else:
            phase = resolve_revenue_phase(
                terms.revenue_phases, terms.commissioning_year, period.year
            )
            if phase is None:
                phase_percentage = Decimal("0")
                logger.warning("revenue_phase_not_found", extra={
                    "park_id": terms.park_id,
                    "year": period.year,
                    "year_of_operation": years_in_operation(
                        terms.commissioning_year, period.year
                    ),
                    "phase_count": len(terms.revenue_phases),
                })
            else:
                phase_percentage = phase.revenue_share_percentage

        logger.info("settlement_configuration_resolved", extra={
            "park_id": terms.park_id,
            "year": period.year,
            "revenue_source": source.value,
            "total_revenue": str(total_revenue.amount),
            "revenue_phase_percentage": str(phase_percentage),
        })

        return SettlementConfiguration(
            park_id=terms.park_id,
            park_name=terms.park_name,
            year=period.year,
            total_revenue=total_revenue,
            minimum_rent_per_turbine=terms.minimum_rent_per_turbine,
            wea_share_percentage=terms.wea_share_percentage,
            pool_share_percentage=terms.pool_share_percentage,
            revenue_phase_percentage=phase_percentage,
        )

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def calculate(
        self,
        config: SettlementConfiguration,
        leases: Sequence[Lease],
    ) -> SettlementCalculationResult:
        """Annual settlement of one park."""
        with LogContext.bind(
            run_id=str(uuid4()),
            park_id=config.park_id,
            settlement_year=str(config.year),
        ):
            return self._run(config, leases)

    def calculate_final(
        self,
        config: SettlementConfiguration,
        leases: Sequence[Lease],
        advance_payments: Sequence[AdvancePayment],
    ) -> FinalSettlementResult:
        """Annual settlement with paid advances deducted."""
        with LogContext.bind(
            run_id=str(uuid4()),
            park_id=config.park_id,
            settlement_year=str(config.year),
        ):
            result = self._run(config, leases)
            return offset_advances(result, advance_payments)

    def calculate_advance(
        self,
        config: SettlementConfiguration,
        leases: Sequence[Lease],
        month: int,
    ) -> MonthlyAdvanceResult:
        """Minimum-rent advance due for one month."""
        with LogContext.bind(
            run_id=str(uuid4()),
            park_id=config.park_id,
            settlement_year=str(config.year),
        ):
            return self._advance_calculator.calculate_monthly_advance(
                config, leases, month, calculated_at=self._clock.now()
            )

    def settle(self, settlement_input: SettlementInput) -> FinalSettlementResult:
        """Final settlement of a loaded input document."""
        config = self.build_configuration(settlement_input.terms, settlement_input.period)
        logger.info("settlement_input_accepted", extra={
            "park_id": config.park_id,
            "year": config.year,
            "checksum": settlement_input.checksum,
        })
        return self.calculate_final(
            config, settlement_input.leases, settlement_input.advance_payments
        )

    def _run(
        self,
        config: SettlementConfiguration,
        leases: Sequence[Lease],
    ) -> SettlementCalculationResult:
        deadline_seconds = self._config.deadline_seconds
        deadline_at = (
            self._timer() + deadline_seconds if deadline_seconds is not None else None
        )
        executor = (
            ThreadPoolExecutor(
                max_workers=self._config.max_workers,
                thread_name_prefix="settlement",
            )
            if self._config.max_workers > 1
            else None
        )
        mapper = _DeadlineMapper(
            executor, deadline_at, deadline_seconds, config.park_id, self._timer
        )

        try:
            result = calculate_settlement(
                config,
                leases,
                calculated_at=self._clock.now(),
                lease_mapper=mapper,
            )
            mapper.remaining()
        except SettlementDeadlineExceededError:
            logger.error("settlement_deadline_exceeded", extra={
                "park_id": config.park_id,
                "deadline_seconds": deadline_seconds,
                "lease_count": len(leases),
            })
            raise
        finally:
            if executor is not None:
                executor.shutdown(wait=False, cancel_futures=True)

        return result
