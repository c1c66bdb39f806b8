# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
KPIs and simple analyses for Flowboard.

Everything here is computed from a SummarySeries (see engine.py):

- compute_kpis(): totals, averages, coverage ratio and the split between
  actual and projected months.
- build_alerts(): threshold-based alerts on coverage, final balance and
  month-over-month variation.
- month_over_month(), average_variation(), trend(): comparisons of the net
  series.
- projection(): linear extrapolation of the running balance using the
  average monthly net, plus the number of months until the balance would
  be depleted.

Ratios never divide by zero: an undefined ratio is None (rendered "—").
"""

import math
from dataclasses import dataclass
from typing import Optional

from .engine import SummarySeries
from .periods import Period

COVERAGE_DANGER = 1.0
COVERAGE_WARNING = 1.1
COVERAGE_HEALTHY = 1.2
VARIATION_WARNING = -10.0
TREND_WINDOW = 3


@dataclass(frozen=True)
class KpiSummary:
    """
    Headline indicators of a summary series.

    ``coverage`` is income / |expense| and is None when there is no expense.
    ``actual_months`` / ``projected_months`` split the columns at the
    current period (all columns are actual when it is unknown).
    """

    total_income: float
    total_expense: float
    net_total: float
    opening_balance: float
    final_balance: float
    months: int
    average_income: float
    average_expense: float
    coverage: Optional[float]
    actual_months: int
    projected_months: int


@dataclass(frozen=True)
class Alert:
    level: str  # "danger" | "warning" | "success" | "info"
    message: str


@dataclass(frozen=True)
class MonthComparison:
    previous: Period
    current: Period
    variation: float
    percent: Optional[float]


@dataclass(frozen=True)
class Trend:
    """Direction is "up", "down", "flat", or None with fewer than 6 months."""

    direction: Optional[str]
    first_average: Optional[float]
    last_average: Optional[float]
    average_net: float
    average_income: float
    average_expense: float


@dataclass(frozen=True)
class Projection:
    last_balance: float
    average_net: float
    values: tuple[float, ...]
    months_to_depletion: Optional[int]


def _mean(values) -> float:
    values = list(values)
    return sum(values) / len(values) if values else 0.0


def compute_kpis(series: SummarySeries, current_key: Optional[int] = None) -> KpiSummary:
    """Compute the KPI summary of a series. An empty series gives zeros."""
    months = len(series.columns)
    total_income = sum(series.income, 0.0)
    total_expense = abs(sum(series.expense, 0.0))

    actual = months
    projected = 0
    if current_key is not None:
        keys = [p.key for p in series.columns]
        if current_key in keys:
            actual = keys.index(current_key) + 1
            projected = max(0, months - actual)

    return KpiSummary(
        total_income=total_income,
        total_expense=total_expense,
        net_total=sum(series.net, 0.0),
        opening_balance=series.opening[0] if series.opening else 0.0,
        final_balance=series.final_balance,
        months=months,
        average_income=total_income / months if months else 0.0,
        average_expense=total_expense / months if months else 0.0,
        coverage=None if total_expense == 0 else total_income / total_expense,
        actual_months=actual,
        projected_months=projected,
    )


def month_over_month(series: SummarySeries) -> list[MonthComparison]:
    """
    Net variation between consecutive months.

    The percentage is relative to the absolute previous net, and None when
    the previous net is zero.
    """
    out: list[MonthComparison] = []
    for i in range(1, len(series.columns)):
        prev_net = series.net[i - 1]
        variation = series.net[i] - prev_net
        percent = None if prev_net == 0 else variation / abs(prev_net) * 100.0
        out.append(
            MonthComparison(
                previous=series.columns[i - 1],
                current=series.columns[i],
                variation=variation,
                percent=percent,
            )
        )
    return out


def average_variation(series: SummarySeries) -> float:
    """Mean month-over-month percentage (undefined percentages skipped)."""
    return _mean(c.percent for c in month_over_month(series) if c.percent is not None)


def trend(series: SummarySeries) -> Trend:
    """Compare the mean net of the first three months with the last three."""
    net = list(series.net)
    average_net = _mean(net)
    average_income = _mean(series.income)
    average_expense = abs(_mean(series.expense))

    if len(net) < 2 * TREND_WINDOW:
        return Trend(None, None, None, average_net, average_income, average_expense)

    first = _mean(net[:TREND_WINDOW])
    last = _mean(net[-TREND_WINDOW:])
    if last > first:
        direction = "up"
    elif last < first:
        direction = "down"
    else:
        direction = "flat"
    return Trend(direction, first, last, average_net, average_income, average_expense)


def projection(series: SummarySeries, months: int = 3) -> Projection:
    """
    Extrapolate the running balance ``months`` months ahead.

    values[i - 1] = last balance + average net * i. When the average net is
    negative and the balance positive, ``months_to_depletion`` is the number
    of months before the balance reaches zero (rounded up).
    """
    average_net = _mean(series.net)
    last_balance = series.final_balance
    values = tuple(last_balance + average_net * i for i in range(1, months + 1))

    depletion: Optional[int] = None
    if average_net < 0 and last_balance > 0:
        depletion = math.ceil(last_balance / abs(average_net))

    return Projection(
        last_balance=last_balance,
        average_net=average_net,
        values=values,
        months_to_depletion=depletion,
    )


def build_alerts(kpis: KpiSummary, series: SummarySeries) -> list[Alert]:
    """Evaluate the alert rules. There is always at least one alert."""
    alerts: list[Alert] = []
    coverage = kpis.coverage
    variation = average_variation(series)

    if coverage is not None and coverage < COVERAGE_DANGER:
        alerts.append(
            Alert("danger", f"Critical coverage: expenses exceed income ({coverage:.2f}x)")
        )
    elif coverage is not None and coverage < COVERAGE_WARNING:
        alerts.append(
            Alert("warning", f"Tight coverage: narrow margin between income and expenses ({coverage:.2f}x)")
        )

    if kpis.final_balance < 0:
        alerts.append(Alert("danger", f"Negative running balance: {kpis.final_balance:,.0f}"))

    if variation < VARIATION_WARNING:
        alerts.append(
            Alert("warning", f"Negative trend: average variation of {variation:.1f}%")
        )

    negative = sum(1 for n in series.net if n < 0)
    if negative > len(series.net) / 2:
        alerts.append(
            Alert("warning", f"{negative} of {len(series.net)} months with negative net flow")
        )

    if coverage is not None and coverage >= COVERAGE_HEALTHY and variation >= 0:
        alerts.append(Alert("success", f"Healthy cash flow with {coverage:.2f}x coverage"))

    if not alerts:
        alerts.append(Alert("info", "No critical alerts for the analysed period"))
    return alerts


def critical_count(alerts: list[Alert]) -> int:
    """Number of danger and warning alerts."""
    return sum(1 for a in alerts if a.level in ("danger", "warning"))
