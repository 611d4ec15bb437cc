# Aurum Ledger - Reconciliation & Reporting Engine for personal and business finance
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Currency conversion and money formatting.

Conversion
----------
Rates are expressed as "units of currency per 1 pivot unit" (the pivot is
USD). Converting routes through the pivot:

    pivot_value = amount / rate[from]
    result      = pivot_value * rate[to]

An unknown currency code (or a non-positive rate) is treated as rate 1
instead of raising. Callers can list the offending codes with
:func:`unknown_currencies`.

Conversion never rounds. Rounding belongs to output boundaries
(:func:`round2`, :func:`format_currency`).

Formatting
----------
:func:`format_currency` renders an amount for a currency code and a locale.
Privacy mode returns a fixed redaction token. Compact mode drops fraction
digits and abbreviates magnitudes above one million. Non-ISO assets (BTC)
use a fixed symbol and fraction-digit override from configuration.
"""

from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from .config import DEFAULT_CURRENCY_DISPLAY, DEFAULT_RATES, CurrencyDisplay
from .models import Transaction

# Separators used by the locale rules below.
NBSP = "\u00a0"
NARROW_NBSP = "\u202f"

PRIVACY_TOKEN = "••••••••"
COMPACT_THRESHOLD = 1_000_000

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "MXN": "MX$",
    "CAD": "CA$",
    "JPY": "¥",
    "CHF": "CHF",
}

# ISO 4217 minor units differing from 2.
CURRENCY_FRACTION_DIGITS: dict[str, int] = {
    "JPY": 0,
}

CURRENCY_DEFAULT_LOCALE: dict[str, str] = {
    "USD": "en-US",
    "EUR": "de-DE",
    "GBP": "en-GB",
    "MXN": "es-MX",
    "CAD": "en-US",
    "JPY": "ja-JP",
    "CHF": "de-CH",
}

# locale -> (group separator, decimal separator, symbol after the number)
LOCALE_FORMATS: dict[str, tuple[str, str, bool]] = {
    "en-US": (",", ".", False),
    "en-GB": (",", ".", False),
    "es-MX": (",", ".", False),
    "ja-JP": (",", ".", False),
    "de-DE": (".", ",", True),
    "fr-FR": (NARROW_NBSP, ",", True),
    "de-CH": ("’", ".", False),
}

_COMPACT_UNITS: tuple[tuple[float, str], ...] = (
    (1e12, "T"),
    (1e9, "B"),
    (1e6, "M"),
    (1e3, "K"),
)


def _rate(code: str, rate_table: Mapping[str, float]) -> float:
    rate = rate_table.get(code)
    if rate is None or rate <= 0:
        return 1.0
    return float(rate)


def convert(
    amount: float,
    from_code: str,
    to_code: str,
    rate_table: Optional[Mapping[str, float]] = None,
) -> float:
    """
    Convert ``amount`` from one currency to another.

    Args:
        amount: Amount expressed in ``from_code``.
        from_code: Source currency code.
        to_code: Target currency code.
        rate_table: Mapping of currency code -> units per 1 pivot unit.
            Defaults to the built-in table.

    Returns:
        The unrounded converted amount. When both codes are equal, ``amount``
        is returned unchanged.
    """
    if from_code == to_code:
        return amount

    rates = DEFAULT_RATES if rate_table is None else rate_table
    pivot_value = amount / _rate(from_code, rates)
    return pivot_value * _rate(to_code, rates)


def unknown_currencies(
    codes: Iterable[str],
    rate_table: Optional[Mapping[str, float]] = None,
) -> list[str]:
    """Return the sorted codes that :func:`convert` would treat as rate 1."""
    rates = DEFAULT_RATES if rate_table is None else rate_table
    return sorted(
        {c for c in codes if c and (rates.get(c) is None or rates.get(c, 0) <= 0)}
    )


def round_half_up(value: float, digits: int = 2) -> float:
    """Round half away from zero using the decimal repr of ``value``."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round2(value: float) -> float:
    """Round to cents. Only used at output boundaries."""
    return round_half_up(value, 2)


def settlement_currency(tx: Transaction) -> str:
    """
    Currency in which ``tx.numeric_amount`` is expressed.

    The account currency wins when the transaction was settled in a currency
    other than the one it was made in.
    """
    return tx.account_currency or tx.currency


def _group_digits(value: float, digits: int, group_sep: str, decimal_sep: str) -> str:
    rounded = round_half_up(abs(value), digits)
    text = f"{rounded:,.{digits}f}"
    # Placeholder swap so that '.' and ',' can trade places safely.
    return text.replace(",", "\x00").replace(".", decimal_sep).replace("\x00", group_sep)


def _compact(value: float) -> tuple[float, str]:
    magnitude = abs(value)
    for factor, suffix in _COMPACT_UNITS:
        if magnitude >= factor:
            return value / factor, suffix
    return value, ""


def format_currency(
    value: float,
    code: str = "USD",
    privacy: bool = False,
    compact: bool = False,
    locale: Optional[str] = None,
    display_overrides: Optional[Mapping[str, CurrencyDisplay]] = None,
) -> str:
    """
    Format a monetary amount for display.

    Args:
        value: Amount to render.
        code: Currency code.
        privacy: When True, return :data:`PRIVACY_TOKEN` whatever the value,
            so neither magnitude nor sign leaks.
        compact: Drop fraction digits, and abbreviate (K/M/B/T) when
            ``abs(value)`` exceeds :data:`COMPACT_THRESHOLD`.
        locale: Locale tag (e.g. 'en-US', 'de-DE'). Defaults to the usual
            locale of the currency; unknown locales fall back to 'en-US'.
        display_overrides: Per-code symbol / fraction-digit overrides for
            non-ISO assets. Defaults to the built-in overrides (BTC).

    Returns:
        The formatted string.
    """
    if privacy:
        return PRIVACY_TOKEN

    overrides = DEFAULT_CURRENCY_DISPLAY if display_overrides is None else display_overrides
    override = overrides.get(code)
    if override is not None:
        digits = override.fraction_digits
        sign = "-" if value < 0 and round_half_up(abs(value), digits) != 0 else ""
        body = _group_digits(value, digits, ",", ".")
        return f"{sign}{override.symbol}{body}"

    loc = locale or CURRENCY_DEFAULT_LOCALE.get(code, "en-US")
    group_sep, decimal_sep, symbol_after = LOCALE_FORMATS.get(loc, LOCALE_FORMATS["en-US"])
    symbol = CURRENCY_SYMBOLS.get(code, code)

    suffix = ""
    amount = value
    if compact:
        digits = 0
        if abs(value) > COMPACT_THRESHOLD:
            amount, suffix = _compact(value)
    else:
        digits = CURRENCY_FRACTION_DIGITS.get(code, 2)

    sign = "-" if amount < 0 and round_half_up(abs(amount), digits) != 0 else ""
    body = _group_digits(amount, digits, group_sep, decimal_sep) + suffix

    if symbol_after:
        return f"{sign}{body}{NBSP}{symbol}"
    if len(symbol) > 1 and symbol.isalpha():
        return f"{sign}{symbol}{NBSP}{body}"
    return f"{sign}{symbol}{body}"
