# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Dashboard orchestration for Flowboard.

compute_dashboard() runs one full, synchronous recomputation pass from the
movement store and the application state:

    store → filter → period columns → summary series → hierarchy
          → KPI series → KPIs and alerts → rankings

Every call starts from scratch; nothing is cached between passes.

KPI range
---------
With ``kpi_use_full_range`` (the default), KPIs, the expense Pareto and the
top expense categories cover every month from the start of the data up to
the current period, for the selected entity, whatever period range is
displayed. Otherwise they cover exactly the displayed range.
"""

from dataclasses import dataclass, replace
from typing import Optional

from .config import AppConfig
from .engine import SummarySeries, aggregate
from .filters import Page, apply_filters, apply_filters_indexed, paginate
from .hierarchy import (
    ExpansionState,
    HierarchyNode,
    HierarchyRow,
    build_hierarchy,
    flatten_hierarchy,
)
from .kpis import (
    Alert,
    KpiSummary,
    MonthComparison,
    Projection,
    Trend,
    build_alerts,
    compute_kpis,
    month_over_month,
    projection,
    trend,
)
from .logging_setup import get_logger
from .normalizer import Movement
from .periods import Period, build_period_axis
from .ranking import RankedItem, pareto_prefix, rank, top_n
from .state import AppState
from .store import MovementStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class Dashboard:
    """Everything the presentation layer needs for one dashboard render."""

    columns: tuple[Period, ...]
    filtered: tuple[Movement, ...]
    summary: SummarySeries
    tree: tuple[HierarchyNode, ...]
    rows: tuple[HierarchyRow, ...]
    expansion: ExpansionState
    kpi_series: SummarySeries
    kpis: KpiSummary
    alerts: tuple[Alert, ...]
    comparisons: tuple[MonthComparison, ...]
    trend: Trend
    projection: Projection
    expense_ranking: tuple[RankedItem, ...]
    pareto: tuple[RankedItem, ...]
    top_expenses: tuple[RankedItem, ...]
    income_ranking: tuple[RankedItem, ...]
    current_period: Optional[int]
    pareto_threshold: float = 0.8

    @property
    def is_empty(self) -> bool:
        return not self.filtered or self.summary.is_empty


@dataclass(frozen=True)
class DatabaseView:
    """Raw-row view: filtered ``(index, movement)`` pairs and the current page."""

    rows: tuple[tuple[int, Movement], ...]
    page: Page
    total_count: int
    filtered_count: int
    selected_count: int

    @property
    def filtered_movements(self) -> list[Movement]:
        return [m for _, m in self.rows]


def _kpi_scope(
    movements: list[Movement],
    state: AppState,
    config: AppConfig,
    current: Optional[int],
) -> tuple[list[Movement], list[Period]]:
    """Movements and columns covering the start of the data to ``current``."""
    entity_rows = apply_filters(movements, state.entity_filter())
    if current is not None:
        entity_rows = apply_filters(entity_rows, replace(state.entity_filter(), period_to=current))
    columns = build_period_axis(
        (m.period for m in movements),
        end_key=current,
        fixed_range=config.periods.fixed_range,
    )
    return entity_rows, columns


def compute_dashboard(
    store: MovementStore,
    state: AppState,
    config: Optional[AppConfig] = None,
) -> Dashboard:
    """Recompute the whole dashboard for the given state."""
    if config is None:
        config = AppConfig()
    tags = config.types
    movements = list(store)
    current = state.current_period if state.current_period is not None else config.periods.current

    # 1) Filter and period columns
    filtered = apply_filters(movements, state.dashboard_filter())
    columns = build_period_axis(
        (m.period for m in movements),
        start_key=state.period_from,
        end_key=state.period_to,
        fixed_range=config.periods.fixed_range,
    )

    # 2) Summary series and hierarchy
    summary = aggregate(filtered, columns, tags, scope=state.entity)
    tree = build_hierarchy(filtered, columns)
    rows = flatten_hierarchy(tree, state.levels)

    # 3) KPI series: full range up to the current period, or the displayed range
    if state.kpi_use_full_range:
        kpi_rows, kpi_columns = _kpi_scope(movements, state, config, current)
        kpi_series = aggregate(kpi_rows, kpi_columns, tags, scope=state.entity)
    else:
        kpi_rows = filtered
        kpi_series = summary

    kpis = compute_kpis(kpi_series, current)
    alerts = build_alerts(kpis, kpi_series)

    # 4) Rankings
    expense_ranking = rank(m for m in kpi_rows if m.type == tags.expense)
    income_ranking = rank(m for m in filtered if m.type == tags.income)

    logger.debug(
        "Dashboard: %d movement(s), %d filtered, %d column(s), %d hierarchy row(s)",
        len(movements),
        len(filtered),
        len(columns),
        len(rows),
    )

    return Dashboard(
        columns=tuple(columns),
        filtered=tuple(filtered),
        summary=summary,
        tree=tuple(tree),
        rows=tuple(rows),
        expansion=ExpansionState.default(rows),
        kpi_series=kpi_series,
        kpis=kpis,
        alerts=tuple(alerts),
        comparisons=tuple(month_over_month(summary)),
        trend=trend(summary),
        projection=projection(summary),
        expense_ranking=tuple(expense_ranking),
        pareto=tuple(pareto_prefix(expense_ranking, state.pareto_threshold)),
        top_expenses=tuple(top_n(expense_ranking, config.dashboard.top_n)),
        income_ranking=tuple(income_ranking),
        current_period=current,
        pareto_threshold=state.pareto_threshold,
    )


def compute_database_view(store: MovementStore, state: AppState) -> DatabaseView:
    """Filter, paginate and count the raw rows for the database view."""
    db = state.db
    indexed = apply_filters_indexed(store, db.effective_filter())
    page = paginate(indexed, db.page, db.page_size)
    return DatabaseView(
        rows=tuple(indexed),
        page=page,
        total_count=len(store),
        filtered_count=len(indexed),
        selected_count=len(db.selected),
    )
