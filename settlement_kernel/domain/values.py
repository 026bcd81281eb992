"""
Values -- Currency and Money, the types every settlement figure is held in.

Responsibility:
    Money pairs a Decimal amount with its Currency. Settlement arithmetic
    happens in exact minor units (cents) inside the engines; Money is the
    boundary type those minor units are converted from and reported as.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Depends only on settlement_kernel.domain.currency.

Invariants enforced:
    - Amounts are Decimal; floats are refused outright.
    - A Money never changes currency, and two currencies never meet in one
      operation.
    - The number of decimal places comes from the currency.

Failure modes:
    - ValueError: unsupported currency code, float or unparseable amount,
      or arithmetic / comparison across currencies.
    - TypeError: currency given as something other than Currency or str.
"""

from __future__ import annotations

import operator
from collections.abc import Callable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from settlement_kernel.domain.currency import (
    is_supported,
    minor_unit_digits,
    normalize_code,
)

_ZERO = Decimal(0)


@dataclass(frozen=True, slots=True)
class Currency:
    """ISO 4217 code, normalized to upper case; unsupported codes are refused."""

    code: str

    def __post_init__(self) -> None:
        if not is_supported(self.code):
            raise ValueError(f"Invalid ISO 4217 currency code: {self.code!r}")
        object.__setattr__(self, "code", normalize_code(self.code))

    @property
    def decimal_places(self) -> int:
        return minor_unit_digits(self.code)

    @property
    def minor_unit(self) -> Decimal:
        """0.01 for EUR, 1 for JPY, 0.001 for KWD."""
        return Decimal(1).scaleb(-self.decimal_places)

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"Currency({self.code!r})"


def _as_currency(value: Currency | str) -> Currency:
    if isinstance(value, Currency):
        return value
    if isinstance(value, str):
        return Currency(value)
    raise TypeError(f"currency must be Currency or str, got {type(value).__name__}")


@dataclass(frozen=True, slots=True)
class Money:
    """
    Decimal amount in one currency.

    Contract:
        Construct with ``Money(amount, currency)``, ``Money.of``,
        ``Money.zero`` or ``Money.from_minor_units``.
    Guarantees:
        - Immutable and hashable.
        - ``amount`` is a Decimal. NaN and Infinity are representable so
          that validators can report them (see ``is_finite``).
    Non-goals:
        - No currency conversion.
        - No implicit rounding; call ``round()`` or ``to_minor_units()``.
    """

    amount: Decimal
    currency: Currency

    def __post_init__(self) -> None:
        if isinstance(self.amount, float):
            raise ValueError(f"Money amount must not be float: {self.amount!r}")
        if not isinstance(self.amount, Decimal):
            try:
                object.__setattr__(self, "amount", Decimal(str(self.amount)))
            except (InvalidOperation, ValueError) as e:
                raise ValueError(f"Invalid amount: {self.amount!r}") from e
        object.__setattr__(self, "currency", _as_currency(self.currency))

    @classmethod
    def of(cls, amount: Decimal | str | int, currency: str | Currency) -> Money:
        """``Money.of("46666.67", "EUR")``."""
        return cls(amount, _as_currency(currency))

    @classmethod
    def zero(cls, currency: str | Currency) -> Money:
        """Zero with the currency's scale, e.g. ``0.00 EUR``."""
        currency = _as_currency(currency)
        return cls(_ZERO.quantize(currency.minor_unit), currency)

    @classmethod
    def from_minor_units(cls, units: int, currency: str | Currency) -> Money:
        """``from_minor_units(4666667, "EUR")`` is 46666.67 EUR."""
        currency = _as_currency(currency)
        return cls(Decimal(units).scaleb(-currency.decimal_places), currency)

    @property
    def is_zero(self) -> bool:
        return self.amount == _ZERO

    @property
    def is_negative(self) -> bool:
        return self.amount < _ZERO

    @property
    def is_finite(self) -> bool:
        return self.amount.is_finite()

    def round(self, rounding: str = ROUND_HALF_UP) -> Money:
        """Quantize to the minor unit (half-up unless told otherwise)."""
        return Money(
            self.amount.quantize(self.currency.minor_unit, rounding=rounding),
            self.currency,
        )

    def to_minor_units(self, rounding: str = ROUND_HALF_UP) -> int:
        return int(self.round(rounding).amount.scaleb(self.currency.decimal_places))

    def _same_currency(self, other: Money, action: str) -> None:
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot {action} Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )

    def __add__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._same_currency(other, "add")
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: Money) -> Money:
        if not isinstance(other, Money):
            return NotImplemented
        self._same_currency(other, "subtract")
        return Money(self.amount - other.amount, self.currency)

    def __neg__(self) -> Money:
        return Money(-self.amount, self.currency)

    def __mul__(self, factor: Decimal | int | str) -> Money:
        if isinstance(factor, (int, str)) and not isinstance(factor, bool):
            factor = Decimal(str(factor))
        if not isinstance(factor, Decimal):
            return NotImplemented
        return Money(self.amount * factor, self.currency)

    __rmul__ = __mul__

    def _compare(self, other: object, op: Callable[[Decimal, Decimal], bool]) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        self._same_currency(other, "compare")
        return op(self.amount, other.amount)

    def __lt__(self, other: Money) -> bool:
        return self._compare(other, operator.lt)

    def __le__(self, other: Money) -> bool:
        return self._compare(other, operator.le)

    def __gt__(self, other: Money) -> bool:
        return self._compare(other, operator.gt)

    def __ge__(self, other: Money) -> bool:
        return self._compare(other, operator.ge)

    def __str__(self) -> str:
        return f"{self.amount} {self.currency.code}"

    def __repr__(self) -> str:
        return f"Money({self.amount!r}, {self.currency!r})"
