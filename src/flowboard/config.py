# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for Flowboard.

This module is responsible for:
- loading the application configuration from a TOML file,
- exposing typed dataclasses used by the rest of the application,
- providing built-in defaults so that the engine also works without any
  configuration file (the defaults match the reference cash-flow CSV layout).

The several CSV layouts seen in practice ("Abonos/Empresa" vs "Centro de
costos/Item" columns, "MM-YY" vs spreadsheet serial vs date periods) are all
expressed as configuration of the same engine: the [fields] table maps raw
column names to Movement fields and [periods] selects the period parser.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .db import SNAPSHOT_KEY, DatabaseConfig
from .periods import PERIOD_FORMATS, period_from_key

DEFAULT_CONFIG_FILENAME = "flowboard_config.toml"


@dataclass(frozen=True)
class FieldMapping:
    """
    Mapping between raw CSV columns and Movement fields.

    The attribute values are the raw header names. The same mapping drives
    both import (normalization) and export, so that an exported file can be
    re-imported without loss.

    ``period_format`` and ``serial_day_offset`` select the period parser
    (see periods.parse_period). The ``default_*`` values are the
    placeholders used when a dimension column is blank.
    """

    detail: str = "Abonos"
    entity: str = "Empresa"
    type: str = "Tipo de movimiento"
    group: str = "Grupo"
    category: str = "Categoría"
    subcategory: str = "Subcategoría"
    code: str = "Codigo"
    period: str = "Mes"
    amount: str = "Valor"

    period_format: str = "mm-yy"
    serial_day_offset: int = 1

    default_group: str = "-"
    default_category: str = "Sin categoría"
    default_subcategory: str = "-"

    def columns(self) -> list[str]:
        """Raw header names in export order."""
        return [
            self.detail,
            self.entity,
            self.type,
            self.group,
            self.category,
            self.subcategory,
            self.code,
            self.period,
            self.amount,
        ]


@dataclass(frozen=True)
class TypeTags:
    """Movement type tags with a special meaning for the aggregator."""

    opening: str = "00_Saldos"
    income: str = "01_Ingreso"
    expense: str = "02_Egreso"
    internal: str = "03_Movimiento interno"


@dataclass(frozen=True)
class PeriodAxisConfig:
    """
    Period axis options.

    Attributes
    ----------
    axis_start, axis_end:
        Optional fixed axis (period keys, e.g. 202503 and 202612). When both
        are set, every month of the range becomes a column regardless of
        the data; otherwise the axis is the set of periods found in the data.
    current:
        Optional "current month" key separating actual from projected months.
    """

    axis_start: Optional[int] = None
    axis_end: Optional[int] = None
    current: Optional[int] = None

    @property
    def fixed_range(self) -> Optional[tuple[int, int]]:
        if self.axis_start is None or self.axis_end is None:
            return None
        return (self.axis_start, self.axis_end)


@dataclass(frozen=True)
class ImportOptions:
    """CSV import options: delimiter and encodings tried in order."""

    delimiter: str = ";"
    encodings: tuple[str, ...] = ("utf-8-sig", "latin-1")


@dataclass(frozen=True)
class DashboardOptions:
    """Default dashboard parameters (may be overridden by the CLI)."""

    pareto_threshold: float = 0.8
    top_n: int = 8
    kpi_use_full_range: bool = True
    debounce_seconds: float = 0.3  # quiet time before a watched CSV is re-imported
    page_size: Optional[int] = 50


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for Flowboard.

    This aggregates:
    - the CSV field mapping and period parser,
    - the movement type tags,
    - the period axis options,
    - the import options,
    - the snapshot database configuration,
    - dashboard defaults and display options.
    """

    fields: FieldMapping = field(default_factory=FieldMapping)
    types: TypeTags = field(default_factory=TypeTags)
    periods: PeriodAxisConfig = field(default_factory=PeriodAxisConfig)
    import_options: ImportOptions = field(default_factory=ImportOptions)
    database: DatabaseConfig = field(
        default_factory=lambda: DatabaseConfig(
            engine="sqlite",
            path=Path("data/db/flowboard.sqlite").resolve(),
            snapshot_key=SNAPSHOT_KEY,
        )
    )
    dashboard: DashboardOptions = field(default_factory=DashboardOptions)
    display_mode: str = "table"
    output_dir: Path = Path("data/output")


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


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    """Return a sub-table, or an empty mapping when absent or malformed."""
    value = raw.get(name) or {}
    if not isinstance(value, Mapping):
        return {}
    return value


def _optional_period_key(value: Any, setting: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        key = int(value)
        period_from_key(key)
    except (TypeError, ValueError) as exc:
        raise ValueError(
            f"Invalid period key for '{setting}': {value!r}. Expected YYYYMM."
        ) from exc
    return key


def _parse_fields(raw: Mapping[str, Any]) -> FieldMapping:
    """
    Build the FieldMapping from the [fields], [periods] and [defaults] tables.

    Raises:
        ValueError: if the configured period format is not supported.
    """
    base = FieldMapping()
    fields_section = _section(raw, "fields")
    periods_section = _section(raw, "periods")
    defaults_section = _section(raw, "defaults")

    def col(name: str) -> str:
        return str(fields_section.get(name) or getattr(base, name))

    period_format = str(periods_section.get("format") or base.period_format)
    if period_format not in PERIOD_FORMATS:
        raise ValueError(
            f"Invalid value for 'periods.format': {period_format!r}. "
            f"Expected one of {', '.join(PERIOD_FORMATS)}."
        )

    try:
        serial_day_offset = int(
            periods_section.get("serial_day_offset", base.serial_day_offset)
        )
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'periods.serial_day_offset'. Expected an integer."
        ) from exc

    return FieldMapping(
        detail=col("detail"),
        entity=col("entity"),
        type=col("type"),
        group=col("group"),
        category=col("category"),
        subcategory=col("subcategory"),
        code=col("code"),
        period=col("period"),
        amount=col("amount"),
        period_format=period_format,
        serial_day_offset=serial_day_offset,
        default_group=str(defaults_section.get("group", base.default_group)),
        default_category=str(
            defaults_section.get("category", base.default_category)
        ),
        default_subcategory=str(
            defaults_section.get("subcategory", base.default_subcategory)
        ),
    )


def _parse_types(raw: Mapping[str, Any]) -> TypeTags:
    base = TypeTags()
    section = _section(raw, "types")
    return TypeTags(
        opening=str(section.get("opening") or base.opening),
        income=str(section.get("income") or base.income),
        expense=str(section.get("expense") or base.expense),
        internal=str(section.get("internal") or base.internal),
    )


def _parse_period_axis(raw: Mapping[str, Any]) -> PeriodAxisConfig:
    section = _section(raw, "periods")
    axis_start = _optional_period_key(section.get("axis_start"), "periods.axis_start")
    axis_end = _optional_period_key(section.get("axis_end"), "periods.axis_end")
    if axis_start is not None and axis_end is not None and axis_end < axis_start:
        raise ValueError("periods.axis_end cannot be before periods.axis_start.")
    return PeriodAxisConfig(
        axis_start=axis_start,
        axis_end=axis_end,
        current=_optional_period_key(section.get("current"), "periods.current"),
    )


def _parse_import_options(raw: Mapping[str, Any]) -> ImportOptions:
    base = ImportOptions()
    section = _section(raw, "import")
    delimiter = str(section.get("delimiter") or base.delimiter)
    encodings_raw = section.get("encodings")
    if encodings_raw is None:
        encodings = base.encodings
    elif isinstance(encodings_raw, str):
        encodings = (encodings_raw,)
    else:
        encodings = tuple(str(e) for e in encodings_raw) or base.encodings
    return ImportOptions(delimiter=delimiter, encodings=encodings)


def _parse_dashboard(raw: Mapping[str, Any]) -> DashboardOptions:
    base = DashboardOptions()
    section = _section(raw, "dashboard")

    try:
        threshold = float(section.get("pareto_threshold", base.pareto_threshold))
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'dashboard.pareto_threshold'. Expected a number."
        ) from exc
    if not 0.0 < threshold <= 1.0:
        raise ValueError("dashboard.pareto_threshold must be in the range (0, 1].")

    try:
        top_n = int(section.get("top_n", base.top_n))
    except (TypeError, ValueError):
        top_n = base.top_n

    try:
        debounce_seconds = float(section.get("debounce_seconds", base.debounce_seconds))
    except (TypeError, ValueError) as exc:
        raise ValueError(
            "Invalid value for 'dashboard.debounce_seconds'. Expected a number."
        ) from exc
    if debounce_seconds < 0:
        raise ValueError("dashboard.debounce_seconds must be >= 0.")

    kpi_use_full_range = section.get("kpi_use_full_range", base.kpi_use_full_range)
    if not isinstance(kpi_use_full_range, bool):
        raise ValueError(
            "Invalid value for 'dashboard.kpi_use_full_range'. Expected true or false."
        )

    raw_page_size = section.get("page_size", base.page_size)
    page_size: Optional[int]
    if raw_page_size in (None, "all", 0):
        page_size = None
    else:
        try:
            page_size = int(raw_page_size)
        except (TypeError, ValueError):
            page_size = base.page_size

    return DashboardOptions(
        pareto_threshold=threshold,
        top_n=top_n,
        kpi_use_full_range=kpi_use_full_range,
        debounce_seconds=debounce_seconds,
        page_size=page_size,
    )


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the Flowboard application configuration from a TOML file.

    Expected top-level sections in the TOML file (all optional)
    -----------------------------------------------------------
    [fields]
        Raw CSV column names for detail, entity, type, group, category,
        subcategory, code, period and amount.

    [periods]
        format ("mm-yy", "excel-serial", "dd/mm/yyyy", "iso"),
        serial_day_offset, axis_start / axis_end (fixed axis, YYYYMM keys),
        current (YYYYMM key of the current month).

    [types]
        Tags for opening balances, income, expense and internal transfers.

    [defaults]
        Placeholders for blank group, category and subcategory values.

    [import]
        CSV delimiter and the list of encodings to try, in order.

    [database]
        Snapshot database engine, SQLite path and snapshot key.

    [dashboard]
        pareto_threshold, top_n, kpi_use_full_range, debounce_seconds,
        page_size.

    [display]
        mode ("table", "csv", "both") and output_dir.

    Notes
    -----
    - All file paths in the TOML are resolved relative to the directory of
      the TOML file itself.
    - When ``config_path`` is None and no ``flowboard_config.toml`` exists
      in the current directory, built-in defaults are returned.

    Raises
    ------
    FileNotFoundError
        If an explicit ``config_path`` does not exist.
    ValueError
        If the file cannot be parsed or contains invalid values.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILENAME).resolve()
        if not config_file.is_file():
            return AppConfig()
    else:
        config_file = Path(config_path).resolve()

    raw = _load_toml(config_file)
    base_dir = config_file.parent

    # 1) Field mapping and period parser
    fields = _parse_fields(raw)

    # 2) Type tags and period axis
    types = _parse_types(raw)
    periods = _parse_period_axis(raw)

    # 3) Import options
    import_options = _parse_import_options(raw)

    # 4) Database section
    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or "data/db/flowboard.sqlite"
    db_path = (base_dir / str(db_path_raw)).resolve()
    snapshot_key = str(database_section.get("snapshot_key") or SNAPSHOT_KEY)
    database = DatabaseConfig(engine=db_engine, path=db_path, snapshot_key=snapshot_key)

    # 5) Dashboard options
    dashboard = _parse_dashboard(raw)

    # 6) Display options
    display_section = _section(raw, "display")
    display_mode = str(display_section.get("mode", "table"))
    if display_mode not in {"table", "csv", "both"}:
        raise ValueError(
            f"Invalid value for 'display.mode': {display_mode!r}. "
            "Expected 'table', 'csv' or 'both'."
        )
    output_dir = (base_dir / str(display_section.get("output_dir", "data/output"))).resolve()

    return AppConfig(
        fields=fields,
        types=types,
        periods=periods,
        import_options=import_options,
        database=database,
        dashboard=dashboard,
        display_mode=display_mode,
        output_dir=output_dir,
    )
