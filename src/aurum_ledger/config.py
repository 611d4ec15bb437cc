# Aurum Ledger - Reconciliation & Reporting Engine for personal and business finance
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for Aurum Ledger.

This module is responsible for:
- loading the application configuration from a TOML file,
- providing built-in defaults for every section (rate table, budget aliases,
  health thresholds, report options),
- exposing typed dataclasses used by the rest of the engine.

The engine never reads configuration implicitly. Low-level functions take
the relevant pieces (rate table, alias table, thresholds) explicitly and
fall back to the defaults defined here. The config-aware entry points
(``ReportEngine``, ``compute_budgets``, ``health_by_entity`` and
``configure_logging``) take an :class:`AppConfig` or one of its sections.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import tomllib  # Python 3.11+

# Units of each currency per 1 USD (the pivot currency).
DEFAULT_RATES: dict[str, float] = {
    "USD": 1.0,
    "EUR": 0.92,
    "GBP": 0.79,
    "MXN": 17.15,
    "CAD": 1.36,
    "JPY": 149.5,
    "CHF": 0.88,
    "BTC": 0.000016,
}

# Budget name -> transaction categories counted against that budget.
DEFAULT_BUDGET_ALIASES: dict[str, tuple[str, ...]] = {
    "Food": ("Groceries", "Dining", "Restaurants", "Coffee"),
    "Housing": ("Rent", "Mortgage", "Utilities"),
    "Transportation": ("Gas", "Fuel", "Public Transit", "Rideshare", "Parking"),
    "Entertainment": ("Subscriptions", "Movies", "Games", "Streaming"),
    "Health": ("Medical", "Pharmacy", "Fitness"),
    "Salary": ("Payroll", "Income"),
}

DEFAULT_UNCATEGORIZED_LABELS: tuple[str, ...] = ("", "Uncategorized", "Other")


@dataclass(frozen=True)
class CurrencyDisplay:
    """Display override for a currency code (crypto assets, custom symbols)."""

    code: str
    symbol: str
    fraction_digits: int


DEFAULT_CURRENCY_DISPLAY: dict[str, CurrencyDisplay] = {
    "BTC": CurrencyDisplay(code="BTC", symbol="₿", fraction_digits=4),
}


@dataclass(frozen=True)
class HealthThresholds:
    """Score boundaries used to classify a business health score."""

    healthy: float = 70.0
    at_risk: float = 40.0
    max_detractors: int = 3


@dataclass(frozen=True)
class ReportOptions:
    """Options applied when assembling report snapshots."""

    top_categories: int = 10
    uncategorized_labels: tuple[str, ...] = DEFAULT_UNCATEGORIZED_LABELS


@dataclass(frozen=True)
class LoggingOptions:
    level: str = "INFO"
    json: bool = False


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for Aurum Ledger.

    This aggregates:
    - the base (reporting) currency and the static rate table,
    - display overrides for non-ISO currencies,
    - the budget alias table,
    - business health thresholds,
    - report assembly options,
    - logging options.
    """

    base_currency: str = "USD"
    rates: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_RATES))
    currency_display: dict[str, CurrencyDisplay] = field(
        default_factory=lambda: dict(DEFAULT_CURRENCY_DISPLAY)
    )
    budget_aliases: dict[str, tuple[str, ...]] = field(
        default_factory=lambda: dict(DEFAULT_BUDGET_ALIASES)
    )
    health: HealthThresholds = field(default_factory=HealthThresholds)
    reports: ReportOptions = field(default_factory=ReportOptions)
    logging: LoggingOptions = field(default_factory=LoggingOptions)


def default_config() -> AppConfig:
    """Return the built-in configuration without touching the filesystem."""
    return AppConfig()


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return a sub-table, or an empty mapping if missing or not a table."""
    value = data.get(name) or {}
    if not isinstance(value, Mapping):
        return {}
    return value


def _parse_rates(currency_section: Mapping[str, Any]) -> dict[str, float]:
    """
    Extract the rate table from the [currency.rates] table.

    Configured rates are merged over the defaults. Rates must be strictly
    positive numbers.

    Raises:
        ValueError: if a rate is not a positive number.
    """
    rates = dict(DEFAULT_RATES)
    for code, raw in _section(currency_section, "rates").items():
        try:
            value = float(raw)
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"Invalid rate for currency {code!r}: expected a number."
            ) from exc
        if value <= 0:
            raise ValueError(f"Invalid rate for currency {code!r}: must be > 0.")
        rates[str(code).upper()] = value
    return rates


def _parse_currency_display(
    currency_section: Mapping[str, Any],
) -> dict[str, CurrencyDisplay]:
    display = dict(DEFAULT_CURRENCY_DISPLAY)
    for code, cfg in _section(currency_section, "display").items():
        if not isinstance(cfg, Mapping):
            continue
        code_str = str(code).upper()
        previous = display.get(code_str)
        try:
            digits = int(
                cfg.get(
                    "fraction_digits",
                    previous.fraction_digits if previous else 2,
                )
            )
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"Invalid fraction_digits for currency {code_str!r}."
            ) from exc
        symbol = str(cfg.get("symbol") or (previous.symbol if previous else code_str))
        display[code_str] = CurrencyDisplay(
            code=code_str, symbol=symbol, fraction_digits=digits
        )
    return display


def _parse_aliases(budgets_section: Mapping[str, Any]) -> dict[str, tuple[str, ...]]:
    """
    Extract the budget alias table from [budgets.aliases].

    A configured alias list replaces the default list for the same budget
    name. Values that are not lists of strings are ignored.
    """
    aliases = dict(DEFAULT_BUDGET_ALIASES)
    for name, raw in _section(budgets_section, "aliases").items():
        if isinstance(raw, str):
            aliases[str(name)] = (raw,)
        elif isinstance(raw, list):
            aliases[str(name)] = tuple(str(v) for v in raw)
    return aliases


def _parse_health(section: Mapping[str, Any]) -> HealthThresholds:
    defaults = HealthThresholds()
    try:
        healthy = float(section.get("healthy", defaults.healthy))
        at_risk = float(section.get("at_risk", defaults.at_risk))
        max_detractors = int(section.get("max_detractors", defaults.max_detractors))
    except (TypeError, ValueError) as exc:
        raise ValueError("Invalid values in [health] section.") from exc

    if not 0 <= at_risk <= healthy <= 100:
        raise ValueError(
            "Health thresholds must satisfy 0 <= at_risk <= healthy <= 100."
        )

    return HealthThresholds(
        healthy=healthy, at_risk=at_risk, max_detractors=max(0, max_detractors)
    )


def _parse_reports(section: Mapping[str, Any]) -> ReportOptions:
    defaults = ReportOptions()
    try:
        top_categories = int(section.get("top_categories", defaults.top_categories))
    except (TypeError, ValueError):
        top_categories = defaults.top_categories

    raw_labels = section.get("uncategorized_labels")
    if isinstance(raw_labels, list):
        labels = tuple(str(v) for v in raw_labels)
    else:
        labels = defaults.uncategorized_labels

    return ReportOptions(top_categories=max(1, top_categories), uncategorized_labels=labels)


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the Aurum Ledger configuration from a TOML file.

    Expected top-level sections in the TOML file
    --------------------------------------------
    [currency]
        ``base`` reporting currency. Sub-tables ``[currency.rates]``
        (units per 1 USD) and ``[currency.display.<CODE>]``
        (``symbol``, ``fraction_digits``).

    [budgets.aliases]
        Budget name -> list of transaction categories.

    [health]
        ``healthy`` / ``at_risk`` score thresholds and ``max_detractors``.

    [reports]
        ``top_categories`` and ``uncategorized_labels``.

    [logging]
        ``level`` and ``json``.

    Every section is optional; missing values fall back to the defaults of
    :func:`default_config`.

    Parameters
    ----------
    config_path : str, optional
        Path to the TOML file. Defaults to ``aurum_ledger.toml`` in the
        current working directory.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path("aurum_ledger.toml").resolve()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)

    currency_section = _section(raw, "currency")
    base_currency = str(currency_section.get("base") or "USD").upper()

    logging_section = _section(raw, "logging")
    logging_options = LoggingOptions(
        level=str(logging_section.get("level") or "INFO").upper(),
        json=bool(logging_section.get("json", False)),
    )

    return AppConfig(
        base_currency=base_currency,
        rates=_parse_rates(currency_section),
        currency_display=_parse_currency_display(currency_section),
        budget_aliases=_parse_aliases(_section(raw, "budgets")),
        health=_parse_health(_section(raw, "health")),
        reports=_parse_reports(_section(raw, "reports")),
        logging=logging_options,
    )
