# Aurum Ledger - Reconciliation & Reporting Engine for personal and business finance
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Aurum Ledger
------------

A pure-Python computation engine for personal and business finance. It turns
a raw transaction log into authoritative account balances, budget
consumption, business health scores and period-over-period report
snapshots.

Main capabilities:
- currency conversion through a pivot currency and locale-aware formatting,
- ledger reconciliation (balances always replayed from history), balance
  adjustments, transfers and transaction edits,
- current-month budget consumption with category aliases and pacing,
- per-entity business KPIs and a weighted health score with diagnosis,
- report snapshots (window resolution, deltas vs the previous window,
  point-in-time assets, business breakdown, data-quality metadata),
- tabular pandas views of snapshots for external renderers.

Aurum Ledger separates computation (engine), configuration (TOML) and
presentation (left to the host application). Every function works on
explicit snapshots of records and returns new values; persisting them is the
caller's job.


Version: 0.1.0
"""

import logging

__all__ = [
    "budgets",
    "config",
    "currency",
    "engine",
    "io",
    "kpi",
    "ledger",
    "logging_config",
    "models",
    "periods",
    "reports",
    "views",
]

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
