"""
Typed Exception Hierarchy for the Settlement Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

A settlement run either produces a complete result or fails as a whole.
Callers at the service boundary must tell an operator-correctable
configuration problem apart from bad lease data and from an internal
arithmetic fault, without parsing message strings.

Every exception therefore:
  1. Has a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes

Example - RIGHT way:
    try:
        result = service.run(config, leases)
    except ConfigurationError as e:
        api_response(code=e.code, field=getattr(e, "field", None))
    except DataError as e:
        api_response(code=e.code)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    SettlementKernelError (base)
    |
    +-- ConfigurationError
    |   +-- NegativeAmountError
    |   +-- PercentageOutOfRangeError
    |   +-- ShareOverallocationError
    |   +-- ConfigCurrencyMismatchError
    |   +-- InvalidSettlementMonthError
    |   +-- ConfigFileError
    |
    +-- DataError
    |   +-- UnknownPlotAreaCategoryError
    |   +-- DuplicateLeaseError
    |   +-- UnknownLeaseError
    |
    +-- CalculationError
        +-- NonFiniteAmountError
        +-- ReconciliationError
        +-- SettlementDeadlineExceededError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                         | When Raised
----------------|------------------------------|----------------------------------------
Configuration   | NEGATIVE_AMOUNT              | Revenue or minimum rent below zero
                | PERCENTAGE_OUT_OF_RANGE      | Percentage outside [0, 100]
                | SHARE_OVERALLOCATION         | WEA + Pool share above 100 %
                | CONFIG_CURRENCY_MISMATCH     | Money fields in different currencies
                | INVALID_SETTLEMENT_MONTH     | Advance month outside 1..12
                | CONFIG_FILE_INVALID          | Settlement input file is malformed
----------------|------------------------------|----------------------------------------
Data            | UNKNOWN_PLOT_AREA_CATEGORY   | Parcel use-category not recognised
                | DUPLICATE_LEASE              | Same lease_id twice in one run
                | UNKNOWN_LEASE                | Advance references a lease not in run
----------------|------------------------------|----------------------------------------
Calculation     | NON_FINITE_AMOUNT            | NaN / Infinity intermediate value
                | RECONCILIATION_FAILED        | Rows do not sum to the park total
                | SETTLEMENT_DEADLINE_EXCEEDED | Caller deadline elapsed mid-run

===============================================================================
"""

from __future__ import annotations


class SettlementKernelError(Exception):
    """
    Base exception for all settlement kernel errors.

    All subclasses must have a ``code`` class attribute
    for machine-readable error identification.
    """

    code: str = "SETTLEMENT_KERNEL_ERROR"


# Configuration exceptions


class ConfigurationError(SettlementKernelError):
    """
    Invalid settlement configuration.

    Fatal to the run; no partial result is produced.
    """

    code: str = "CONFIGURATION_ERROR"


class NegativeAmountError(ConfigurationError):
    """A monetary configuration field is negative."""

    code: str = "NEGATIVE_AMOUNT"

    def __init__(self, field: str, amount: str):
        self.field = field
        self.amount = amount
        super().__init__(f"{field} cannot be negative: {amount}")


class PercentageOutOfRangeError(ConfigurationError):
    """A percentage configuration field is outside [0, 100]."""

    code: str = "PERCENTAGE_OUT_OF_RANGE"

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"{field} must be within [0, 100]: {value}")


class ShareOverallocationError(ConfigurationError):
    """WEA and Pool share percentages together exceed 100 %."""

    code: str = "SHARE_OVERALLOCATION"

    def __init__(self, wea_share_percentage: str, pool_share_percentage: str):
        self.wea_share_percentage = wea_share_percentage
        self.pool_share_percentage = pool_share_percentage
        super().__init__(
            f"WEA share {wea_share_percentage}% + Pool share "
            f"{pool_share_percentage}% exceeds 100%"
        )


class ConfigCurrencyMismatchError(ConfigurationError):
    """Money fields of one configuration use different currencies."""

    code: str = "CONFIG_CURRENCY_MISMATCH"

    def __init__(self, field: str, expected: str, received: str):
        self.field = field
        self.expected = expected
        self.received = received
        super().__init__(
            f"{field} is in {received}, settlement currency is {expected}"
        )


class InvalidSettlementMonthError(ConfigurationError):
    """Advance month is not a calendar month."""

    code: str = "INVALID_SETTLEMENT_MONTH"

    def __init__(self, month: int):
        self.month = month
        super().__init__(f"Month must be between 1 and 12: {month}")


class ConfigFileError(ConfigurationError):
    """A settlement input document could not be parsed."""

    code: str = "CONFIG_FILE_INVALID"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid settlement input {source}: {reason}")


# Data exceptions


class DataError(SettlementKernelError):
    """Base exception for invalid lease or parcel data."""

    code: str = "DATA_ERROR"


class UnknownPlotAreaCategoryError(DataError):
    """A plot area carries a use-category the engine does not know."""

    code: str = "UNKNOWN_PLOT_AREA_CATEGORY"

    def __init__(self, category: str, plot_number: str | None = None):
        self.category = category
        self.plot_number = plot_number
        where = f" on plot {plot_number}" if plot_number else ""
        super().__init__(f"Unknown plot area category {category!r}{where}")


class DuplicateLeaseError(DataError):
    """The same lease appears more than once in a settlement run."""

    code: str = "DUPLICATE_LEASE"

    def __init__(self, lease_id: str):
        self.lease_id = lease_id
        super().__init__(f"Lease appears more than once: {lease_id}")


class UnknownLeaseError(DataError):
    """A record references a lease that is not part of the run."""

    code: str = "UNKNOWN_LEASE"

    def __init__(self, lease_id: str):
        self.lease_id = lease_id
        super().__init__(f"Lease not part of this settlement: {lease_id}")


# Calculation exceptions


class CalculationError(SettlementKernelError):
    """
    Internal arithmetic failure.

    Always a programming-level fault. Never coerced to zero.
    """

    code: str = "CALCULATION_ERROR"


class NonFiniteAmountError(CalculationError):
    """An intermediate amount is NaN or infinite."""

    code: str = "NON_FINITE_AMOUNT"

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"Non-finite value for {field}: {value}")


class ReconciliationError(CalculationError):
    """Per-lease rows do not add up to the reconciled park total."""

    code: str = "RECONCILIATION_FAILED"

    def __init__(self, figure: str, expected: str, actual: str):
        self.figure = figure
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Rounding reconciliation failed for {figure}: "
            f"rows sum to {actual}, total is {expected}"
        )


class SettlementDeadlineExceededError(CalculationError):
    """The caller's deadline elapsed before the run finished."""

    code: str = "SETTLEMENT_DEADLINE_EXCEEDED"

    def __init__(self, park_id: str, deadline_seconds: float):
        self.park_id = park_id
        self.deadline_seconds = deadline_seconds
        super().__init__(
            f"Settlement for park {park_id} exceeded deadline of "
            f"{deadline_seconds}s"
        )
