"""
Module: settlement_engines.apportionment
Responsibility:
    Turn exact (rational) per-lease amounts into whole minor units whose
    sum equals a once-rounded park total.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - sum(apportion(exact, total)) == total.
    - A zero exact amount never receives a minor unit.
    - House monotonicity: for fixed proportions, raising ``total`` never
      lowers any entry. Each entry's k-th unit has priority
      ``exact / (k + 1/2)`` (Sainte-Lague / Webster); the result for
      ``total`` is the ``total`` highest priorities under a fixed order,
      ties going to the lower index.

Failure modes:
    - ValueError on negative exact amounts or a negative total.
    - ValueError when a positive total is requested over all-zero amounts.
"""

from __future__ import annotations

import heapq
import math
from collections.abc import Sequence
from fractions import Fraction

from settlement_kernel.domain.values import Money

_HALF = Fraction(1, 2)


def round_half_up(value: Fraction) -> int:
    """Round a rational to the nearest integer, halves away from zero."""
    if value >= 0:
        return math.floor(value + _HALF)
    return -math.floor(-value + _HALF)


def apportion(exact: Sequence[Fraction], total: int) -> list[int]:
    """
    Apportion ``total`` minor units in proportion to ``exact``.

    Starts from the half-up rounding of every entry (which is the set of
    all priorities >= 1) and then adds or removes single units along the
    priority order until the sum matches.

    Args:
        exact: Exact amounts in minor units, one per lease, in lease order.
        total: Target sum in minor units.

    Returns:
        Whole minor units per entry, same order as ``exact``.
    """
    if total < 0:
        raise ValueError(f"Cannot apportion a negative total: {total}")
    for value in exact:
        if value < 0:
            raise ValueError(f"Cannot apportion negative amount: {value}")
    if total == 0:
        return [0] * len(exact)
    if not any(exact):
        raise ValueError(f"Cannot apportion {total} over zero amounts")

    alloc = [round_half_up(value) for value in exact]
    assigned = sum(alloc)

    if assigned < total:
        # Max-heap on the next unit's priority; lower index wins ties.
        heap = [
            (-_priority(value, alloc[i]), i)
            for i, value in enumerate(exact)
            if value > 0
        ]
        heapq.heapify(heap)
        while assigned < total:
            _, i = heapq.heappop(heap)
            alloc[i] += 1
            assigned += 1
            heapq.heappush(heap, (-_priority(exact[i], alloc[i]), i))

    elif assigned > total:
        # Min-heap on the last held unit's priority; higher index gives first.
        heap = [
            (_priority(value, alloc[i] - 1), -i)
            for i, value in enumerate(exact)
            if alloc[i] > 0
        ]
        heapq.heapify(heap)
        while assigned > total:
            _, neg_i = heapq.heappop(heap)
            i = -neg_i
            alloc[i] -= 1
            assigned -= 1
            if alloc[i] > 0:
                heapq.heappush(heap, (_priority(exact[i], alloc[i] - 1), neg_i))

    return alloc


def _priority(value: Fraction, units_held: int) -> Fraction:
    """Priority of the (units_held + 1)-th unit for an entry."""
    return value / (units_held + _HALF)


def exact_minor_units(money: Money) -> Fraction:
    """Exact amount of ``money`` expressed in minor units (no rounding)."""
    return Fraction(money.amount) * 10 ** money.currency.decimal_places
