"""Currency -- supported ISO 4217 codes and the size of their minor unit."""

from types import MappingProxyType

# Digits after the decimal point of each currency's minor unit.
MINOR_UNIT_DIGITS = MappingProxyType({
    # Markets with operating wind parks
    "EUR": 2,
    "DKK": 2,
    "SEK": 2,
    "NOK": 2,
    "PLN": 2,
    "CZK": 2,
    "HUF": 2,
    "RON": 2,
    "CHF": 2,
    "GBP": 2,
    "USD": 2,
    "CAD": 2,
    "AUD": 2,
    # No minor unit
    "JPY": 0,
    "ISK": 0,
    "KRW": 0,
    "CLP": 0,
    # Thousandths
    "KWD": 3,
    "BHD": 3,
    "OMR": 3,
})


def normalize_code(code: object) -> str:
    """Uppercased, stripped code; empty string for anything that is not a str."""
    if not isinstance(code, str):
        return ""
    return code.strip().upper()


def is_supported(code: object) -> bool:
    return normalize_code(code) in MINOR_UNIT_DIGITS


def minor_unit_digits(code: str) -> int:
    """
    Decimal places of the minor unit of ``code``.

    Raises:
        KeyError: ``code`` is not a supported currency.
    """
    return MINOR_UNIT_DIGITS[normalize_code(code)]
