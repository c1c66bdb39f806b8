# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
View utilities for Flowboard.

This module turns the engine outputs into what a presentation layer needs:

- pandas DataFrames for tables (summary, hierarchy, Pareto, KPIs, alerts,
  raw movements), with a stable column order for display or CSV export,
- plain chart series (line, net flow, donut, horizontal bar, waterfall,
  Pareto) that any charting library can render, and their table form,
- number formatting helpers.

Nothing here computes new figures: the aggregation is done by engine.py,
hierarchy.py, ranking.py and kpis.py.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

import pandas as pd

from .engine import SummarySeries
from .hierarchy import ExpansionState, HierarchyRow
from .kpis import Alert, KpiSummary
from .normalizer import Movement
from .periods import Period, format_period
from .ranking import RankedItem, cumulative_percentages, ranking_total, share, top_n

UNDEFINED = "—"

# ---------------------------------------------------------------------------
# Number formatting
# ---------------------------------------------------------------------------


def _group_thousands(value: float, decimals: int = 0) -> str:
    quant = Decimal(1).scaleb(-decimals)
    rounded = Decimal(str(abs(value))).quantize(quant, rounding=ROUND_HALF_UP)
    text = f"{rounded:,.{decimals}f}"
    # Thousands with ".", decimals with ","
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_number(value: Optional[float]) -> str:
    """
    Table cell format: no decimals, "." thousands separator, negatives in
    parentheses, zero as an empty cell. None gives "—".
    """
    if value is None:
        return UNDEFINED
    if _group_thousands(value) == "0":
        return ""
    formatted = _group_thousands(value)
    return f"({formatted})" if value < 0 else formatted


def format_currency(value: Optional[float]) -> str:
    """Currency format without decimals, e.g. "$1.234.567" or "-$1.234"."""
    if value is None:
        return UNDEFINED
    formatted = _group_thousands(value)
    sign = "-" if value < 0 and formatted != "0" else ""
    return f"{sign}${formatted}"


def format_compact(value: Optional[float]) -> str:
    """Compact currency format: "$1,5MM", "$2,3M", "$12K", else full."""
    if value is None:
        return UNDEFINED
    abs_value = abs(value)
    sign = "-" if value < 0 else ""
    if abs_value >= 1e9:
        return f"{sign}${_group_thousands(abs_value / 1e9, 1)}MM"
    if abs_value >= 1e6:
        return f"{sign}${_group_thousands(abs_value / 1e6, 1)}M"
    if abs_value >= 1e3:
        return f"{sign}${_group_thousands(abs_value / 1e3, 0)}K"
    return format_currency(value)


def format_ratio(value: Optional[float], suffix: str = "x", decimals: int = 2) -> str:
    """Ratio format ("1.25x"), or "—" when the ratio is undefined."""
    if value is None:
        return UNDEFINED
    return f"{value:.{decimals}f}{suffix}"


def format_percent(value: Optional[float], decimals: int = 1) -> str:
    if value is None:
        return UNDEFINED
    return f"{value:.{decimals}f}%"


def period_labels(columns: Iterable[Period], style: str = "short") -> list[str]:
    return [format_period(p, style) for p in columns]


# ---------------------------------------------------------------------------
# DataFrames
# ---------------------------------------------------------------------------


def summary_to_dataframe(series: SummarySeries, style: str = "short") -> pd.DataFrame:
    """
    Summary table: one row per series, one column per period.

    Rows: opening balances, income, expense, internal transfers (single
    entity only; they cancel out in the consolidated view), net and running
    balance.
    """
    labels = period_labels(series.columns, style)
    lines = [
        ("Opening balance", series.opening),
        ("Income", series.income),
        ("Expense", series.expense),
    ]
    if not series.is_consolidated:
        lines.append(("Internal transfers", series.internal))
    lines += [
        ("Net", series.net),
        ("Running balance", series.cumulative),
    ]
    records = []
    for name, values in lines:
        record: dict[str, object] = {"line": name}
        record.update(dict(zip(labels, values)))
        records.append(record)
    return pd.DataFrame(records, columns=["line"] + labels)


def hierarchy_to_dataframe(
    rows: Sequence[HierarchyRow],
    columns: Sequence[Period],
    expansion: Optional[ExpansionState] = None,
    style: str = "short",
) -> pd.DataFrame:
    """
    Flattened hierarchy as a table.

    When ``expansion`` is given, only the rows visible under that state are
    kept. Label columns: type, group, category, subcategory.
    """
    labels = period_labels(columns, style)
    selected = expansion.visible_rows(rows) if expansion is not None else list(rows)

    base_cols = [
        "row_id",
        "parent_id",
        "depth",
        "type",
        "group",
        "category",
        "subcategory",
        "has_children",
    ]
    records = []
    for r in selected:
        record: dict[str, object] = {
            "row_id": r.row_id,
            "parent_id": r.parent_id or "",
            "depth": r.depth,
            "type": r.type_label,
            "group": r.group_label,
            "category": r.category_label,
            "subcategory": r.subcategory_label,
            "has_children": r.has_children,
        }
        record.update(dict(zip(labels, r.totals)))
        records.append(record)
    return pd.DataFrame(records, columns=base_cols + labels)


def pareto_to_dataframe(
    pareto: Sequence[RankedItem], ranking: Optional[Sequence[RankedItem]] = None
) -> pd.DataFrame:
    """
    Pareto table: rank, label, value and cumulative share of the total.

    ``ranking`` is the full ranking the prefix was taken from; shares are
    relative to its total (defaults to the prefix itself).
    """
    total = ranking_total(ranking if ranking is not None else pareto)
    records = []
    running = 0.0
    for idx, item in enumerate(pareto, start=1):
        running += item.value
        ratio = share(running, total)
        records.append(
            {
                "rank": idx,
                "label": item.label,
                "value": item.value,
                "cumulative_pct": None if ratio is None else ratio * 100.0,
            }
        )
    return pd.DataFrame(records, columns=["rank", "label", "value", "cumulative_pct"])


def kpis_to_dataframe(kpis: KpiSummary) -> pd.DataFrame:
    """KPI summary as (key, label, value) rows; coverage may be None."""
    rows = [
        ("total_income", "Total income", kpis.total_income),
        ("total_expense", "Total expense", kpis.total_expense),
        ("net_total", "Net total", kpis.net_total),
        ("opening_balance", "Opening balance", kpis.opening_balance),
        ("final_balance", "Final balance", kpis.final_balance),
        ("months", "Months analysed", kpis.months),
        ("average_income", "Average monthly income", kpis.average_income),
        ("average_expense", "Average monthly expense", kpis.average_expense),
        ("coverage", "Coverage (income / expense)", kpis.coverage),
        ("actual_months", "Actual months", kpis.actual_months),
        ("projected_months", "Projected months", kpis.projected_months),
    ]
    return pd.DataFrame(rows, columns=["key", "label", "value"], dtype=object)


def alerts_to_dataframe(alerts: Sequence[Alert]) -> pd.DataFrame:
    return pd.DataFrame(
        [{"level": a.level, "message": a.message} for a in alerts],
        columns=["level", "message"],
    )


MOVEMENT_COLUMNS = [
    "index",
    "detail",
    "entity",
    "type",
    "group",
    "category",
    "subcategory",
    "code",
    "period",
    "amount",
]


def movements_to_dataframe(
    rows: Iterable[Union[Movement, tuple[int, Movement]]], style: str = "short"
) -> pd.DataFrame:
    """
    Raw movements as a table.

    Accepts plain movements or ``(index, movement)`` pairs; the index column
    is the position in the full collection (or the enumeration order).
    """
    records = []
    for pos, item in enumerate(rows):
        index, movement = item if isinstance(item, tuple) else (pos, item)
        records.append(
            {
                "index": index,
                "detail": movement.detail,
                "entity": movement.entity,
                "type": movement.type,
                "group": movement.group,
                "category": movement.category,
                "subcategory": movement.subcategory,
                "code": movement.code,
                "period": format_period(movement.period, style),
                "amount": movement.amount,
            }
        )
    return pd.DataFrame(records, columns=MOVEMENT_COLUMNS)


# ---------------------------------------------------------------------------
# Chart series
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LineChart:
    """Income, absolute expense and running balance per period.

    ``actual[i]`` is False for months after the current period.
    """

    labels: tuple[str, ...]
    income: tuple[float, ...]
    expense: tuple[float, ...]
    balance: tuple[float, ...]
    actual: tuple[bool, ...]


@dataclass(frozen=True)
class SeriesChart:
    labels: tuple[str, ...]
    values: tuple[float, ...]


@dataclass(frozen=True)
class DonutChart:
    labels: tuple[str, ...]
    values: tuple[float, ...]
    percentages: tuple[Optional[float], ...]


@dataclass(frozen=True)
class WaterfallStep:
    label: str
    start: float
    end: float
    kind: str  # "opening" | "increase" | "decrease" | "closing"

    @property
    def delta(self) -> float:
        return self.end - self.start


@dataclass(frozen=True)
class ParetoChart:
    labels: tuple[str, ...]
    values: tuple[float, ...]
    cumulative_pct: tuple[Optional[float], ...]
    threshold_pct: float


def line_chart(series: SummarySeries, current_key: Optional[int] = None) -> LineChart:
    return LineChart(
        labels=tuple(period_labels(series.columns)),
        income=series.income,
        expense=tuple(abs(v) for v in series.expense),
        balance=series.cumulative,
        actual=tuple(current_key is None or p.key <= current_key for p in series.columns),
    )


def net_flow_chart(series: SummarySeries) -> SeriesChart:
    return SeriesChart(labels=tuple(period_labels(series.columns)), values=series.net)


def donut_chart(ranked: Sequence[RankedItem]) -> DonutChart:
    """Share of each item (e.g. income by category)."""
    total = ranking_total(ranked)
    pct = []
    for item in ranked:
        ratio = share(item.value, total)
        pct.append(None if ratio is None else ratio * 100.0)
    return DonutChart(
        labels=tuple(i.label for i in ranked),
        values=tuple(i.value for i in ranked),
        percentages=tuple(pct),
    )


def horizontal_bar_chart(ranked: Sequence[RankedItem], n: int = 8) -> SeriesChart:
    """Top ``n`` items (top expense categories by default)."""
    head = top_n(ranked, n)
    return SeriesChart(labels=tuple(i.label for i in head), values=tuple(i.value for i in head))


def waterfall_chart(series: SummarySeries) -> list[WaterfallStep]:
    """Opening balance, one step per period net, closing balance."""
    if series.is_empty:
        return []
    opening = series.opening[0]
    steps = [WaterfallStep("Opening", 0.0, opening, "opening")]
    running = opening
    for period, net in zip(series.columns, series.net):
        end = running + net
        kind = "increase" if net >= 0 else "decrease"
        steps.append(WaterfallStep(format_period(period), running, end, kind))
        running = end
    steps.append(WaterfallStep("Closing", 0.0, running, "closing"))
    return steps


def pareto_chart(ranked: Sequence[RankedItem], threshold: float = 0.8) -> ParetoChart:
    """Bars for the whole ranking and the cumulative percentage line."""
    return ParetoChart(
        labels=tuple(i.label for i in ranked),
        values=tuple(i.value for i in ranked),
        cumulative_pct=tuple(cumulative_percentages(ranked)),
        threshold_pct=threshold * 100.0,
    )


def text_bar(value: float, scale: float, width: int = 24) -> str:
    """Console bar for ``value`` relative to ``scale`` (the largest magnitude)."""
    if scale <= 0 or width <= 0:
        return ""
    length = int(round(abs(value) / scale * width))
    return ("-" if value < 0 else "#") * min(length, width)


ChartData = Union[LineChart, SeriesChart, DonutChart, ParetoChart, Sequence[WaterfallStep]]


def chart_to_dataframe(chart: ChartData) -> pd.DataFrame:
    """
    Chart series as a table, one row per point (or per waterfall step).

    Columns depend on the chart kind:

    - LineChart: label, income, expense, balance, actual
    - SeriesChart: label, value
    - DonutChart: label, value, pct
    - ParetoChart: label, value, cumulative_pct, threshold_pct
    - waterfall steps: label, kind, start, end, delta
    """
    if isinstance(chart, LineChart):
        return pd.DataFrame(
            {
                "label": chart.labels,
                "income": chart.income,
                "expense": chart.expense,
                "balance": chart.balance,
                "actual": chart.actual,
            },
            columns=["label", "income", "expense", "balance", "actual"],
        )
    if isinstance(chart, SeriesChart):
        return pd.DataFrame({"label": chart.labels, "value": chart.values}, columns=["label", "value"])
    if isinstance(chart, DonutChart):
        return pd.DataFrame(
            {"label": chart.labels, "value": chart.values, "pct": chart.percentages},
            columns=["label", "value", "pct"],
        )
    if isinstance(chart, ParetoChart):
        return pd.DataFrame(
            {
                "label": chart.labels,
                "value": chart.values,
                "cumulative_pct": chart.cumulative_pct,
                "threshold_pct": chart.threshold_pct,
            },
            columns=["label", "value", "cumulative_pct", "threshold_pct"],
        )
    return pd.DataFrame(
        [
            {"label": s.label, "kind": s.kind, "start": s.start, "end": s.end, "delta": s.delta}
            for s in chart
        ],
        columns=["label", "kind", "start", "end", "delta"],
    )
