# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for Flowboard.

This module wires together the building blocks of Flowboard:

- configuration (field mapping, period format, type tags, display options),
- CSV import and export,
- the snapshot database holding the session dataset,
- the dashboard computation (summary, hierarchy, KPIs, rankings),
- view helpers (tables and number formatting).

The CLI is intentionally thin: it does not compute anything itself. It
orchestrates the underlying modules based on command-line arguments and the
configuration file.


High-level pipeline
-------------------

1) Load the TOML configuration (``flowboard_config.toml`` by default, or
   built-in defaults when there is none).

2) Restore the movement collection from the snapshot database.

3) Optionally clear the dataset (``--clear``) and/or import a CSV file
   (``--import``). A successful import replaces the dataset and is saved
   immediately; a failed import leaves it unchanged.

4) Either run a ``movements`` subcommand (list, edit, bulk-edit, add,
   export), or compute the dashboard for the selected entity and period
   range and render the requested scope as console tables and/or CSV files.


Periods on the command line
---------------------------

``--from``, ``--to`` and ``--current`` accept either a "MM-YY" token
(e.g. ``03-25``) or a period key (e.g. ``202503``).


Scopes: what to render
----------------------

- ``summary``:   summary series (opening, income, expense, net, balance).
- ``hierarchy``: Type → Group → Category → Subcategory table.
- ``kpis``:      KPIs and alerts.
- ``pareto``:    expense Pareto and top expense categories.
- ``analysis``:  month-over-month comparison, trend and projection.
- ``charts``:    chart series (cash flow, net flow, balance waterfall,
  income by category, top expenses, Pareto) as tables with text bars.
- ``all`` (default): everything above.


Watching the input file
-----------------------

With ``--import FILE --watch`` the CLI keeps running after the first render
and re-imports FILE whenever it is saved again. A burst of writes is
collapsed into a single reload once the file has been unchanged for
``dashboard.debounce_seconds``.
"""

import argparse
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .config import AppConfig, load_app_config
from .dashboard import Dashboard, compute_dashboard, compute_database_view
from .db import clear_snapshot, init_database, load_snapshot, save_snapshot
from .filters import MovementFilter
from .hierarchy import GroupLevels
from .io import ImportFailedError, import_movements, select_export_rows, write_movements_csv
from .logging_setup import configure_logging, get_logger
from .normalizer import normalize_row
from .periods import format_period, parse_period
from .state import AppState, DatabaseViewState, Debouncer
from .store import MovementPatch, MovementStore
from .views import (
    alerts_to_dataframe,
    chart_to_dataframe,
    donut_chart,
    format_currency,
    format_number,
    format_percent,
    format_ratio,
    hierarchy_to_dataframe,
    horizontal_bar_chart,
    kpis_to_dataframe,
    line_chart,
    movements_to_dataframe,
    net_flow_chart,
    pareto_chart,
    pareto_to_dataframe,
    summary_to_dataframe,
    text_bar,
    waterfall_chart,
)
from .watch import watch_file

logger = get_logger(__name__)

SCOPES = ["summary", "hierarchy", "kpis", "pareto", "analysis", "charts", "all"]

CHART_CURRENCY_COLUMNS = ("income", "expense", "balance", "value", "start", "end", "delta")
CHART_PERCENT_COLUMNS = ("pct", "cumulative_pct", "threshold_pct")


def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    """Column filters shared by 'movements list' and 'movements export'."""
    parser.add_argument("--search", help="Free-text search across the text columns.")
    parser.add_argument("--entity", dest="entity_filter", help="Exact entity (company / cost-center).")
    parser.add_argument("--type", dest="movement_type", help="Exact movement type.")
    parser.add_argument("--group", help="Exact group.")
    parser.add_argument("--category", help="Exact category.")
    parser.add_argument(
        "--month",
        help="Exact raw period token, as it appears in the CSV (e.g. 03-25).",
    )
    parser.add_argument("--detail", help="Substring of the detail column.")
    parser.add_argument("--subcategory", help="Substring of the subcategory.")
    parser.add_argument("--code", help="Substring of the reference code.")
    parser.add_argument("--min-amount", dest="min_amount", type=float)
    parser.add_argument("--max-amount", dest="max_amount", type=float)


def _add_patch_arguments(parser: argparse.ArgumentParser, *, bulk: bool = False) -> None:
    parser.add_argument("--entity", dest="new_entity", help="New entity.")
    parser.add_argument("--type", dest="movement_type", help="New movement type.")
    parser.add_argument("--group", help="New group.")
    parser.add_argument("--category", help="New category.")
    parser.add_argument("--subcategory", help="New subcategory.")
    if bulk:
        return
    parser.add_argument("--detail", help="New detail text.")
    parser.add_argument("--code", help="New reference code.")
    parser.add_argument(
        "--period",
        help="New period token, in the configured period format.",
    )
    parser.add_argument("--amount", help="New amount.")


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="flowboard",
        description=(
            "Flowboard - Cash-flow Dashboard & Analysis engine. "
            "Imports a semicolon-delimited CSV of cash-flow movements and renders "
            "a multi-level summary, running balance, KPIs and rankings."
        ),
    )

    # Generic options
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of flowboard and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. If omitted, "
            "'flowboard_config.toml' in the current directory is used when present."
        ),
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        help="Logging level (DEBUG, INFO, WARNING...). Defaults to FLOWBOARD_LOG_LEVEL or WARNING.",
    )

    # Dataset management
    ap.add_argument(
        "--import",
        dest="import_path",
        metavar="CSV_PATH",
        help="Import movements from the given CSV file, replacing the current dataset.",
    )
    ap.add_argument(
        "--clear",
        action="store_true",
        help="Delete the saved dataset before doing anything else.",
    )
    ap.add_argument(
        "--watch",
        action="store_true",
        help=(
            "With --import: keep running and re-import the file each time it "
            "changes, then render the dashboard again (Ctrl+C to stop)."
        ),
    )

    # Dashboard selection
    ap.add_argument(
        "--entity",
        default="all",
        help="Entity to show, or 'all' for the consolidated view (default).",
    )
    ap.add_argument("--from", dest="period_from", help="First period shown (MM-YY or YYYYMM).")
    ap.add_argument("--to", dest="period_to", help="Last period shown (MM-YY or YYYYMM).")
    ap.add_argument(
        "--current",
        dest="current_period",
        help=(
            "Current period (MM-YY or YYYYMM). Months after it count as "
            "projected. Overrides periods.current from the configuration."
        ),
    )
    ap.add_argument(
        "--levels",
        default="type,group,category",
        help=(
            "Comma-separated hierarchy levels to show among type, group, category. "
            "Subcategory rows are always shown."
        ),
    )
    ap.add_argument(
        "--expand-all",
        dest="expand_all",
        action="store_true",
        help="Show every hierarchy row instead of the default collapsed view.",
    )
    ap.add_argument(
        "--threshold",
        type=float,
        help="Pareto threshold as a fraction (e.g. 0.8). Overrides the configuration.",
    )
    ap.add_argument(
        "--range",
        dest="kpi_range",
        choices=["full", "selected"],
        help=(
            "KPI range: 'full' = from the start of the data to the current period; "
            "'selected' = the displayed period range."
        ),
    )
    ap.add_argument(
        "--scope",
        choices=SCOPES,
        default="all",
        help="Select what to render: " + ", ".join(SCOPES) + ".",
    )

    # Display options
    ap.add_argument(
        "--display-mode",
        dest="display_mode",
        choices=["table", "csv", "both"],
        help=(
            "Override the display.mode setting from the configuration file. "
            "'table' prints results to stdout, 'csv' writes CSV files only, "
            "'both' does both."
        ),
    )
    ap.add_argument(
        "--output",
        dest="output_dir",
        help="Output directory for CSV files. Defaults to display.output_dir.",
    )

    # ------------------------------------------------------------------
    # Subcommands: movements
    # ------------------------------------------------------------------
    subparsers = ap.add_subparsers(
        dest="command",
        metavar="command",
        help="Optional subcommands (e.g. 'movements') for inspecting and editing data.",
    )

    movements_parser = subparsers.add_parser(
        "movements",
        help="List, edit and export the raw movements of the dataset.",
    )
    movements_sub = movements_parser.add_subparsers(
        dest="movements_command",
        metavar="movements-command",
        help="Movements subcommands.",
    )

    m_list = movements_sub.add_parser("list", help="List movements with filters and pagination.")
    _add_filter_arguments(m_list)
    m_list.add_argument("--page", type=int, default=1, help="Page number (default 1).")
    m_list.add_argument(
        "--page-size",
        dest="page_size",
        help="Rows per page, or 'all'. Defaults to dashboard.page_size.",
    )

    m_edit = movements_sub.add_parser("edit", help="Edit one movement by its row index.")
    m_edit.add_argument("index", type=int, help="Row index, as shown by 'movements list'.")
    _add_patch_arguments(m_edit)

    m_bulk = movements_sub.add_parser(
        "bulk-edit",
        help="Set entity, type, group, category or subcategory on several rows.",
    )
    m_bulk.add_argument("indices", type=int, nargs="+", help="Row indices.")
    _add_patch_arguments(m_bulk, bulk=True)

    m_add = movements_sub.add_parser("add", help="Append a new movement.")
    _add_patch_arguments(m_add)

    m_export = movements_sub.add_parser(
        "export",
        help=(
            "Export movements to CSV: the selected rows if any, otherwise the "
            "filtered rows, otherwise everything."
        ),
    )
    _add_filter_arguments(m_export)
    m_export.add_argument(
        "--select",
        type=int,
        nargs="+",
        default=[],
        help="Row indices to export (takes precedence over filters).",
    )
    m_export.add_argument("--file", dest="export_file", help="Target CSV file.")

    return ap


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


def _parse_period_arg(value: Optional[str], config: AppConfig) -> Optional[int]:
    """
    Parse a CLI period (MM-YY, YYYYMM, or the configured token format).

    Raises
    ------
    SystemExit
        If the value cannot be parsed.
    """
    if value is None:
        return None

    text = value.strip()
    if text.isdigit() and len(text) == 6 and 1 <= int(text[4:]) <= 12:
        return int(text)

    period = parse_period(text, "mm-yy")
    if period is None:
        period = parse_period(
            text,
            config.fields.period_format,
            serial_day_offset=config.fields.serial_day_offset,
        )
    if period is None:
        raise SystemExit(f"Invalid period: {value!r}. Expected MM-YY or YYYYMM.")
    return period.key


def _parse_page_size(value: Optional[str], default: Optional[int]) -> Optional[int]:
    if value is None:
        return default
    if value.strip().lower() == "all":
        return None
    try:
        size = int(value)
    except ValueError as exc:
        raise SystemExit(f"Invalid page size: {value!r}. Expected a number or 'all'.") from exc
    return size if size > 0 else None


def _filter_from_args(args: argparse.Namespace) -> MovementFilter:
    return MovementFilter(
        entity=args.entity_filter,
        type=args.movement_type,
        group=args.group,
        category=args.category,
        period_token=args.month,
        detail_contains=args.detail,
        subcategory_contains=args.subcategory,
        code_contains=args.code,
        min_amount=args.min_amount,
        max_amount=args.max_amount,
    )


def _patch_from_args(args: argparse.Namespace) -> MovementPatch:
    return MovementPatch(
        type=args.movement_type,
        entity=args.new_entity,
        group=args.group,
        category=args.category,
        subcategory=args.subcategory,
        detail=getattr(args, "detail", None),
        code=getattr(args, "code", None),
        period_token=getattr(args, "period", None),
        amount=getattr(args, "amount", None),
    )


def _save(config: AppConfig, store: MovementStore) -> None:
    count = save_snapshot(config.database, store)
    print(f"Saved dataset ({count} movements).")


# ---------------------------------------------------------------------------
# movements subcommands
# ---------------------------------------------------------------------------


def _handle_movements_list(
    args: argparse.Namespace, config: AppConfig, store: MovementStore
) -> None:
    """
    Handle 'movements list': filter, paginate and print raw movements.

    Row indices are positions in the full dataset, so they can be passed to
    'movements edit', 'bulk-edit' and 'export --select'.
    """
    db_state = DatabaseViewState(
        search=args.search or "",
        filters=_filter_from_args(args),
        page=args.page,
        page_size=_parse_page_size(args.page_size, config.dashboard.page_size),
    )
    view = compute_database_view(store, AppState(db=db_state))

    if view.filtered_count == 0:
        print("No movements found for the given criteria.")
        return

    df = movements_to_dataframe(view.page.items)
    df["amount"] = df["amount"].map(format_number)
    print(df.to_string(index=False))
    print()
    total_amount = sum(m.amount for _, m in view.rows)
    print(
        f"Page {view.page.page}/{view.page.total_pages} | "
        f"{view.filtered_count} of {view.total_count} movements | "
        f"Total amount: {format_currency(total_amount)}"
    )


def _handle_movements_edit(
    args: argparse.Namespace, config: AppConfig, store: MovementStore
) -> None:
    patch = _patch_from_args(args)
    if patch.is_empty():
        raise SystemExit("Nothing to edit: pass at least one field option.")
    try:
        updated = store.update_row(args.index, patch, config.fields)
    except (IndexError, ValueError) as exc:
        raise SystemExit(str(exc)) from exc
    print(f"Updated movement #{args.index}.")
    _save(config, updated)


def _handle_movements_bulk_edit(
    args: argparse.Namespace, config: AppConfig, store: MovementStore
) -> None:
    patch = _patch_from_args(args)
    if patch.is_empty():
        raise SystemExit("Nothing to edit: pass at least one field option.")
    try:
        updated = store.bulk_update(args.indices, patch, config.fields)
    except (IndexError, ValueError) as exc:
        raise SystemExit(str(exc)) from exc
    print(f"Updated {len(set(args.indices))} movements.")
    _save(config, updated)


def _handle_movements_add(
    args: argparse.Namespace, config: AppConfig, store: MovementStore
) -> None:
    """Handle 'movements add': build a raw row and normalize it like an import."""
    fields = config.fields
    raw = {
        fields.type: args.movement_type or "",
        fields.entity: args.new_entity or "",
        fields.group: args.group or "",
        fields.category: args.category or "",
        fields.subcategory: args.subcategory or "",
        fields.detail: args.detail or "",
        fields.code: args.code or "",
        fields.period: args.period or "",
        fields.amount: args.amount or "",
    }
    movement = normalize_row(raw, fields)
    if movement is None:
        raise SystemExit(
            "A new movement needs --type and a valid --period "
            f"(format {fields.period_format!r})."
        )
    updated = store.add(movement)
    print(f"Added movement #{len(updated) - 1} ({movement.type}, {format_period(movement.period)}).")
    _save(config, updated)


def _handle_movements_export(
    args: argparse.Namespace, config: AppConfig, store: MovementStore
) -> None:
    db_state = DatabaseViewState(search=args.search or "", filters=_filter_from_args(args))
    view = compute_database_view(store, AppState(db=db_state))

    invalid = [i for i in args.select if not 0 <= i < len(store)]
    if invalid:
        raise SystemExit(f"Row index out of range: {', '.join(map(str, invalid))}")

    rows = select_export_rows(list(store), args.select, view.filtered_movements)
    if args.export_file:
        path = Path(args.export_file)
    else:
        output_dir = Path(args.output_dir) if args.output_dir else config.output_dir
        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        path = output_dir / f"flujo_caja_{timestamp}.csv"

    write_movements_csv(rows, path, config.fields, config.import_options.delimiter)
    print(f"Wrote {path} ({len(rows)} movements)")


def _handle_movements_command(
    args: argparse.Namespace, config: AppConfig, store: MovementStore
) -> None:
    """Dispatch function for the 'movements' subcommands."""
    subcmd = getattr(args, "movements_command", None)

    if subcmd == "list":
        _handle_movements_list(args, config, store)
    elif subcmd == "edit":
        _handle_movements_edit(args, config, store)
    elif subcmd == "bulk-edit":
        _handle_movements_bulk_edit(args, config, store)
    elif subcmd == "add":
        _handle_movements_add(args, config, store)
    elif subcmd == "export":
        _handle_movements_export(args, config, store)
    else:
        print(
            "No movements subcommand specified. "
            "Available subcommands are: 'list', 'edit', 'bulk-edit', 'add', 'export'."
        )


# ---------------------------------------------------------------------------
# Dashboard rendering
# ---------------------------------------------------------------------------


def _format_amount_columns(df: pd.DataFrame, skip: Sequence[str]) -> pd.DataFrame:
    out = df.copy()
    for col in out.columns:
        if col not in skip:
            out[col] = out[col].map(format_number)
    return out


def _analysis_lines(dashboard: Dashboard) -> list[str]:
    lines = []
    for c in dashboard.comparisons:
        arrow = "↑" if c.variation >= 0 else "↓"
        lines.append(
            f"{format_period(c.previous)} → {format_period(c.current)}: "
            f"{arrow} {format_currency(c.variation)} ({format_percent(c.percent)})"
        )

    t = dashboard.trend
    if t.direction is None:
        lines.append("Trend: not enough months (6 needed)")
    else:
        lines.append(
            f"Trend: {t.direction} (first 3 months {format_currency(t.first_average)}, "
            f"last 3 months {format_currency(t.last_average)})"
        )
    lines.append(
        f"Averages: net {format_currency(t.average_net)}, income "
        f"{format_currency(t.average_income)}, expense {format_currency(t.average_expense)}"
    )

    p = dashboard.projection
    for i, value in enumerate(p.values, start=1):
        lines.append(f"Projection +{i} month(s): {format_currency(value)}")
    if p.months_to_depletion is not None:
        lines.append(f"At the current pace the balance runs out in ~{p.months_to_depletion} months.")
    return lines


def _chart_tables(dashboard: Dashboard) -> list[tuple[str, str, pd.DataFrame, str]]:
    """(title, file stem, table, column drawn as a bar) for every chart."""
    summary = dashboard.summary
    top = dashboard.top_expenses
    return [
        (
            "Cash flow chart",
            "chart_cashflow",
            chart_to_dataframe(line_chart(summary, dashboard.current_period)),
            "balance",
        ),
        ("Net flow chart", "chart_net", chart_to_dataframe(net_flow_chart(summary)), "value"),
        ("Balance waterfall", "chart_waterfall", chart_to_dataframe(waterfall_chart(summary)), "delta"),
        (
            "Income by category",
            "chart_income",
            chart_to_dataframe(donut_chart(dashboard.income_ranking)),
            "value",
        ),
        (
            "Top expense categories",
            "chart_top_expenses",
            chart_to_dataframe(horizontal_bar_chart(top, len(top))),
            "value",
        ),
        (
            "Expense Pareto chart",
            "chart_pareto",
            chart_to_dataframe(pareto_chart(dashboard.expense_ranking, dashboard.pareto_threshold)),
            "value",
        ),
    ]


def _format_chart(df: pd.DataFrame, bar_column: str) -> pd.DataFrame:
    shown = df.copy()
    scale = max((abs(v) for v in df[bar_column]), default=0.0)
    shown["bar"] = [text_bar(v, scale) for v in df[bar_column]]
    for col in shown.columns:
        if col in CHART_CURRENCY_COLUMNS:
            shown[col] = shown[col].map(format_currency)
        elif col in CHART_PERCENT_COLUMNS:
            shown[col] = shown[col].map(lambda v: format_percent(None if pd.isna(v) else v))
        elif col == "actual":
            shown[col] = shown[col].map(lambda a: "actual" if a else "projected")
    return shown


def _render_dashboard(
    dashboard: Dashboard,
    scope: str,
    display_mode: str,
    output_dir: Path,
    expand_all: bool,
) -> None:
    def want(part: str) -> bool:
        return scope in (part, "all")

    tables: list[tuple[str, str, pd.DataFrame, Sequence[str]]] = []
    if want("summary"):
        tables.append(("Summary", "summary", summary_to_dataframe(dashboard.summary), ["line"]))
    if want("hierarchy"):
        df = hierarchy_to_dataframe(
            dashboard.rows,
            dashboard.columns,
            None if expand_all else dashboard.expansion,
        )
        tables.append(
            (
                "Movements by type, group, category and subcategory",
                "hierarchy",
                df,
                ["row_id", "parent_id", "depth", "type", "group", "category", "subcategory", "has_children"],
            )
        )
    if want("kpis"):
        kpis_df = kpis_to_dataframe(dashboard.kpis)
        tables.append(("KPIs", "kpis", kpis_df, ["key", "label"]))
        tables.append(("Alerts", "alerts", alerts_to_dataframe(dashboard.alerts), ["level", "message"]))
    if want("pareto"):
        tables.append(
            (
                "Expense Pareto",
                "pareto",
                pareto_to_dataframe(dashboard.pareto, dashboard.expense_ranking),
                ["rank", "label", "cumulative_pct"],
            )
        )
    charts = _chart_tables(dashboard) if want("charts") else []

    # Render to console (table mode).
    if display_mode in {"table", "both"}:
        for title, _, df, skip in tables:
            print()
            print(f"=== {title} ===")
            if df.empty:
                print("No data.")
                continue
            if title == "KPIs":
                shown = df.copy()
                shown["value"] = [
                    format_ratio(v) if k == "coverage"
                    else str(v) if k in ("months", "actual_months", "projected_months")
                    else format_currency(v)
                    for k, v in zip(df["key"], df["value"])
                ]
            elif title == "Expense Pareto":
                shown = df.copy()
                shown["value"] = shown["value"].map(format_currency)
                shown["cumulative_pct"] = shown["cumulative_pct"].map(format_percent)
            else:
                shown = _format_amount_columns(df, skip)
            print(shown.to_string(index=False))

        if want("analysis"):
            print()
            print("=== Analysis ===")
            for line in _analysis_lines(dashboard):
                print(line)

        for title, _, df, bar_column in charts:
            print()
            print(f"=== {title} ===")
            if df.empty:
                print("No data.")
                continue
            print(_format_chart(df, bar_column).to_string(index=False))

    # Render to CSV files (csv mode).
    if display_mode in {"csv", "both"}:
        output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y-%m-%d-%H-%M-%S")
        outputs = [(stem, df) for _, stem, df, _ in tables]
        outputs += [(stem, df) for _, stem, df, _ in charts]
        for stem, df in outputs:
            path = output_dir / f"{stem}_{timestamp}.csv"
            df.to_csv(path, index=False)
            print(f"Wrote {path} ({len(df)} rows)")


def _import_csv(csv_path: Path, config: AppConfig, store: MovementStore) -> MovementStore:
    """Import ``csv_path`` and save it; on failure, return ``store`` unchanged."""
    print(f"Importing movements from {csv_path}...")
    try:
        result = import_movements(
            csv_path,
            config.fields,
            config.import_options.encodings,
            config.import_options.delimiter,
        )
    except (ImportFailedError, FileNotFoundError) as exc:
        print(f"Import failed: {exc}")
        print(f"The current dataset ({len(store)} movements) was left unchanged.")
        return store

    updated = store.replace_all(result.movements)
    print(
        f"Imported {result.accepted} movements "
        f"({result.rejected} rows rejected, encoding {result.encoding})."
    )
    _save(config, updated)
    return updated


def _state_from_args(
    args: argparse.Namespace, config: AppConfig, parser: argparse.ArgumentParser
) -> AppState:
    try:
        levels = GroupLevels.from_names(args.levels.split(","))
    except ValueError as exc:
        parser.error(str(exc))

    threshold = args.threshold if args.threshold is not None else config.dashboard.pareto_threshold
    if not 0.0 < threshold <= 1.0:
        parser.error("--threshold must be in the range (0, 1].")

    kpi_use_full_range = config.dashboard.kpi_use_full_range
    if args.kpi_range is not None:
        kpi_use_full_range = args.kpi_range == "full"

    return AppState(
        entity=args.entity,
        period_from=_parse_period_arg(args.period_from, config),
        period_to=_parse_period_arg(args.period_to, config),
        current_period=_parse_period_arg(args.current_period, config),
        levels=levels,
        pareto_threshold=threshold,
        kpi_use_full_range=kpi_use_full_range,
    )


def _show_dashboard(
    store: MovementStore, state: AppState, config: AppConfig, args: argparse.Namespace
) -> None:
    if store.is_empty:
        print("Warning: the dataset is empty. Use --import to load a CSV file.")
        return

    dashboard = compute_dashboard(store, state, config)
    print(
        f"Entity: {'all (consolidated)' if state.is_consolidated else state.entity} | "
        f"{len(dashboard.filtered)} of {len(store)} movements | "
        f"{len(dashboard.columns)} period(s)"
    )
    if dashboard.is_empty:
        print("No data for the selected filters.")
        return

    display_mode = args.display_mode or config.display_mode
    output_dir = Path(args.output_dir) if args.output_dir else config.output_dir
    _render_dashboard(dashboard, args.scope, display_mode, output_dir, args.expand_all)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point for the Flowboard CLI.

    This function parses command-line arguments, loads the configuration,
    restores the saved dataset, optionally clears it or imports a CSV file,
    then runs a 'movements' subcommand or computes and renders the dashboard.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # --version: short-circuit and exit early.
    if args.version:
        print(f"flowboard version {__version__}")
        return

    if args.watch and not args.import_path:
        parser.error("--watch requires --import.")
    if args.watch and getattr(args, "command", None) == "movements":
        parser.error("--watch cannot be combined with the 'movements' subcommands.")

    try:
        configure_logging(args.log_level)
    except ValueError as exc:
        parser.error(str(exc))

    # 1) Load application configuration
    try:
        config = load_app_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        parser.error(str(exc))

    # 2) Restore the saved dataset
    init_database(config.database)
    store = MovementStore.from_movements(load_snapshot(config.database))

    # 3) Optional clear, then optional import
    if args.clear:
        clear_snapshot(config.database)
        store = store.clear()
        print("Dataset cleared.")

    csv_path: Optional[Path] = None
    if args.import_path:
        csv_path = Path(args.import_path)
        if not csv_path.is_file():
            parser.error(f"CSV file for --import not found: {csv_path}")
        store = _import_csv(csv_path, config, store)

    # If a 'movements' subcommand was requested, handle it now and exit early.
    if getattr(args, "command", None) == "movements":
        _handle_movements_command(args, config, store)
        return

    # 4) Build the application state from CLI arguments and configuration
    state = _state_from_args(args, config, parser)

    # 5) Compute and render the dashboard
    _show_dashboard(store, state, config, args)

    # 6) Optional watch loop: re-import and re-render on every settled change
    if args.watch and csv_path is not None:

        def _reload(path: Path) -> None:
            nonlocal store
            print()
            store = _import_csv(path, config, store)
            _show_dashboard(store, state, config, args)

        print()
        print(f"Watching {csv_path} for changes (Ctrl+C to stop)...")
        try:
            watch_file(csv_path, _reload, Debouncer(config.dashboard.debounce_seconds))
        except KeyboardInterrupt:
            print("Stopped watching.")


if __name__ == "__main__":
    main()
