"""
Clock -- where settlement results get their ``calculated_at`` stamp.

Engines take the timestamp as an argument; services ask an injected Clock
for it. Tests inject a DeterministicClock so that whole results compare
equal across runs.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime


class Clock(ABC):
    """Source of timezone-aware UTC timestamps."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """Always returns ``fixed_time``."""

    def __init__(self, fixed_time: datetime):
        if fixed_time.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware datetime")
        self._current = fixed_time

    def now(self) -> datetime:
        return self._current
