import pytest

from aurum_ledger.config import DEFAULT_RATES, CurrencyDisplay
from aurum_ledger.currency import (
    PRIVACY_TOKEN,
    convert,
    format_currency,
    round2,
    round_half_up,
    settlement_currency,
    unknown_currencies,
)
from aurum_ledger.models import Transaction


@pytest.mark.parametrize("code", ["USD", "EUR", "JPY", "BTC", "XYZ"])
def test_convert_same_currency_is_identity(code: str) -> None:
    """Converting into the same currency returns the amount unchanged."""
    assert convert(123.456789, code, code) == 123.456789
    assert convert(-0.1, code, code, rate_table={}) == -0.1


def test_convert_goes_through_pivot() -> None:
    """amount / rate[from] * rate[to], rates being units per 1 USD."""
    assert convert(100.0, "USD", "EUR") == pytest.approx(92.0)
    assert convert(92.0, "EUR", "USD") == pytest.approx(100.0)
    assert convert(100.0, "EUR", "GBP") == pytest.approx(100.0 / 0.92 * 0.79)


@pytest.mark.parametrize(
    "pair", [("USD", "EUR"), ("EUR", "JPY"), ("GBP", "MXN"), ("CHF", "BTC")]
)
def test_convert_round_trip(pair: tuple[str, str]) -> None:
    """A -> B -> A recovers the original amount within float precision."""
    a, b = pair
    x = 1234.56
    assert convert(convert(x, a, b), b, a) == pytest.approx(x, rel=1e-12)


def test_unknown_currency_defaults_to_rate_one() -> None:
    """Unknown codes and non-positive rates are treated as rate 1."""
    assert convert(10.0, "XYZ", "USD") == pytest.approx(10.0)
    assert convert(10.0, "USD", "XYZ") == pytest.approx(10.0)
    assert convert(10.0, "EUR", "USD", rate_table={"EUR": 0.0, "USD": 1.0}) == 10.0


def test_convert_uses_supplied_rate_table() -> None:
    rates = {"USD": 1.0, "AAA": 4.0}
    assert convert(8.0, "AAA", "USD", rate_table=rates) == pytest.approx(2.0)


def test_unknown_currencies_lists_codes_without_rate() -> None:
    codes = ["USD", "XYZ", "EUR", "", "XYZ", "ABC"]
    assert unknown_currencies(codes, DEFAULT_RATES) == ["ABC", "XYZ"]


def test_round_half_up() -> None:
    """Half values round away from zero, unlike Python's banker's rounding."""
    assert round_half_up(2.675) == 2.68
    assert round_half_up(0.125) == 0.13
    assert round_half_up(-0.125) == -0.13
    assert round_half_up(2.5, 0) == 3.0
    assert round2(1149.999999) == 1150.0


def test_settlement_currency_prefers_account_currency() -> None:
    tx = Transaction(
        id="t1",
        account_id="a1",
        type="debit",
        numeric_amount=10.0,
        currency="EUR",
        date="2025-10-01",
        account_currency="USD",
    )
    assert settlement_currency(tx) == "USD"
    plain = Transaction(
        id="t2", account_id="a1", type="debit", numeric_amount=1.0, currency="EUR", date="2025-10-01"
    )
    assert settlement_currency(plain) == "EUR"


@pytest.mark.parametrize(
    ("value", "code", "expected"),
    [
        (1234.5, "USD", "$1,234.50"),
        (-50, "USD", "-$50.00"),
        (1234.5, "EUR", "1.234,50\u00a0€"),
        (1234.5, "GBP", "£1,234.50"),
        (1234.5, "MXN", "MX$1,234.50"),
        (1234.5, "CHF", "CHF\u00a01’234.50"),
        (1234.5, "JPY", "¥1,235"),
        (0.5, "BTC", "₿0.5000"),
        (-0.00012, "BTC", "-₿0.0001"),
        (-0.00004, "BTC", "₿0.0000"),
    ],
)
def test_format_currency_default_locales(value: float, code: str, expected: str) -> None:
    """Each currency renders with its usual locale conventions."""
    assert format_currency(value, code) == expected


def test_format_currency_explicit_locale() -> None:
    assert format_currency(1234.5, "USD", locale="fr-FR") == "1\u202f234,50\u00a0$"
    assert format_currency(1234.5, "EUR", locale="en-US") == "€1,234.50"
    # Unknown locales fall back to en-US.
    assert format_currency(1234.5, "EUR", locale="xx-XX") == "€1,234.50"


@pytest.mark.parametrize("value", [0.0, 1.0, -5.0, 123456789.99])
def test_format_currency_privacy_hides_magnitude_and_sign(value: float) -> None:
    """Privacy mode always returns the same fixed-length token."""
    assert format_currency(value, "USD", privacy=True) == PRIVACY_TOKEN
    assert format_currency(value, "BTC", privacy=True) == PRIVACY_TOKEN


def test_format_currency_compact() -> None:
    """Compact mode drops decimals and abbreviates above one million."""
    assert format_currency(950_000, "USD", compact=True) == "$950,000"
    assert format_currency(2_500_000, "USD", compact=True) == "$3M"
    assert format_currency(-4_200_000_000, "USD", compact=True) == "-$4B"


def test_format_currency_display_override() -> None:
    overrides = {"ETH": CurrencyDisplay(code="ETH", symbol="Ξ", fraction_digits=3)}
    assert format_currency(1.23456, "ETH", display_overrides=overrides) == "Ξ1.235"
