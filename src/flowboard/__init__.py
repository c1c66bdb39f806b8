# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Flowboard
---------

A cash-flow dashboard engine. Flowboard ingests a semicolon-delimited CSV
of cash-flow movements (opening balances, income, expenses and internal
transfers between entities), normalizes the rows and turns them into:

- a multi-level pivot (Type → Group → Category → Subcategory) with
  per-period totals and expand/collapse view state,
- a summary with net flow and running balance, per entity or consolidated,
- KPIs, alerts, month-over-month comparison, trend and projection,
- expense Pareto and top-N rankings, and chart-ready series,
- a searchable, filterable, paginated and editable raw-row view with bulk
  edit and CSV export.

The session dataset is persisted as a snapshot in a local SQLite file.
Computation (engine, hierarchy, ranking, kpis), configuration (TOML) and
presentation (views, CLI) are kept separate.

Usage:
    flowboard --help
    python -m flowboard.cli --help
"""

__all__ = ["engine", "hierarchy", "filters", "ranking", "kpis", "views", "io"]

__version__ = "0.1.0"
