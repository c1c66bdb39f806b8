# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Period helpers for Flowboard.

This module defines the Period value object (a reporting month) and the
helpers used everywhere else to turn raw period tokens into sortable keys
and display labels.

Supported token formats
-----------------------
The period column of the CSV can be encoded in several ways depending on
the spreadsheet that produced it. The format is a deployment setting
(``[periods].format`` in the TOML configuration):

- ``"mm-yy"``:        "03-25" → March 2025. Two-digit years pivot at 50:
                      00–50 → 2000+yy, 51–99 → 1900+yy.
- ``"excel-serial"``: spreadsheet day count, e.g. "45000".
- ``"dd/mm/yyyy"``:   "15/03/2025".
- ``"iso"``:          "2025-03-15" (a trailing time part is ignored).

Period keys
-----------
Every period maps to an integer key ``year * 100 + month`` (e.g. 202503).
Keys compare exactly like the periods they represent, so range filtering
and sorting never need date objects.
"""

import math
import re
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional

PERIOD_FORMATS: tuple[str, ...] = ("mm-yy", "excel-serial", "dd/mm/yyyy", "iso")

SHORT_MONTH_LABELS: tuple[str, ...] = (
    "ene",
    "feb",
    "mar",
    "abr",
    "may",
    "jun",
    "jul",
    "ago",
    "sept",
    "oct",
    "nov",
    "dic",
)

LONG_MONTH_LABELS: tuple[str, ...] = (
    "Enero",
    "Febrero",
    "Marzo",
    "Abril",
    "Mayo",
    "Junio",
    "Julio",
    "Agosto",
    "Septiembre",
    "Octubre",
    "Noviembre",
    "Diciembre",
)

# Day zero of the spreadsheet serial calendar.
EXCEL_EPOCH = datetime(1899, 12, 30, tzinfo=timezone.utc)

_MM_YY_RE = re.compile(r"^(\d{2})-(\d{2})$")
_DD_MM_YYYY_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ].*)?$")


@dataclass(frozen=True, order=True)
class Period:
    """A reporting month.

    Attributes:
        year: Four-digit calendar year.
        month_index: Month index, 0 (January) to 11 (December).
    """

    year: int
    month_index: int

    @property
    def key(self) -> int:
        """Integer sort key, e.g. 202503 for March 2025."""
        return period_key(self)


def period_key(period: Period) -> int:
    """Return ``year * 100 + (month_index + 1)``."""
    return period.year * 100 + (period.month_index + 1)


def period_from_key(key: int) -> Period:
    """Rebuild a Period from its integer key.

    Raises:
        ValueError: if the month part of the key is outside 1..12.
    """
    year, month = divmod(int(key), 100)
    if month < 1 or month > 12:
        raise ValueError(f"Invalid period key: {key!r}")
    return Period(year=year, month_index=month - 1)


def _pivot_two_digit_year(yy: int) -> int:
    return 2000 + yy if 0 <= yy <= 50 else 1900 + yy


def excel_serial_to_date(serial: float, offset: int = 1) -> date:
    """Convert a spreadsheet serial day count to a calendar date.

    The conversion is ``1899-12-30 + (serial + offset)`` days, computed on
    a UTC datetime so that no local timezone can shift the result. The
    default ``offset=1`` is the correction used by the deployments that
    export serials this way; ``offset=0`` gives the plain epoch arithmetic.

    Fixtures:
        offset=1: serial 1 → 1900-01-01, serial 45000 → 2023-03-16
        offset=0: serial 1 → 1899-12-31, serial 45000 → 2023-03-15
    """
    days = int(serial) + int(offset)
    return (EXCEL_EPOCH + timedelta(days=days)).date()


def _parse_mm_yy(token: str) -> Optional[Period]:
    m = _MM_YY_RE.match(token)
    if not m:
        return None
    month = int(m.group(1))
    if month < 1 or month > 12:
        return None
    return Period(year=_pivot_two_digit_year(int(m.group(2))), month_index=month - 1)


def _parse_excel_serial(token: str, offset: int) -> Optional[Period]:
    try:
        serial = float(token.replace(",", "."))
    except ValueError:
        return None
    if not math.isfinite(serial):
        return None
    try:
        d = excel_serial_to_date(serial, offset)
    except OverflowError:
        return None
    return Period(year=d.year, month_index=d.month - 1)


def _parse_dd_mm_yyyy(token: str) -> Optional[Period]:
    m = _DD_MM_YYYY_RE.match(token)
    if not m:
        return None
    try:
        d = date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
    except ValueError:
        return None
    return Period(year=d.year, month_index=d.month - 1)


def _parse_iso(token: str) -> Optional[Period]:
    m = _ISO_RE.match(token)
    if not m:
        return None
    try:
        d = date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None
    return Period(year=d.year, month_index=d.month - 1)


def parse_period(
    token: Optional[str],
    fmt: str = "mm-yy",
    *,
    serial_day_offset: int = 1,
) -> Optional[Period]:
    """Parse a raw period token according to the configured format.

    Args:
        token: Raw value of the period column (may be None or blank).
        fmt: One of PERIOD_FORMATS.
        serial_day_offset: Day correction for the "excel-serial" format.

    Returns:
        A Period, or None when the token is empty, does not match the
        format, or encodes an impossible month/date.

    Raises:
        ValueError: if ``fmt`` is not a supported format.
    """
    if fmt not in PERIOD_FORMATS:
        raise ValueError(
            f"Unknown period format: {fmt!r}. Expected one of {PERIOD_FORMATS}."
        )
    if token is None:
        return None
    text = str(token).strip()
    if not text:
        return None

    if fmt == "mm-yy":
        return _parse_mm_yy(text)
    if fmt == "excel-serial":
        return _parse_excel_serial(text, serial_day_offset)
    if fmt == "dd/mm/yyyy":
        return _parse_dd_mm_yyyy(text)
    return _parse_iso(text)


def format_period(period: Period, style: str = "short") -> str:
    """Return a display label for a period.

    - "short": "mar-25"
    - "long":  "Marzo 2025"
    """
    if style == "short":
        return f"{SHORT_MONTH_LABELS[period.month_index]}-{str(period.year)[-2:]}"
    if style == "long":
        return f"{LONG_MONTH_LABELS[period.month_index]} {period.year}"
    raise ValueError(f"Unknown period label style: {style!r}")


def format_period_token(
    period: Period, fmt: str = "mm-yy", *, serial_day_offset: int = 1
) -> str:
    """Encode a period back into a raw token (first day of the month).

    ``parse_period(format_period_token(p, fmt), fmt) == p`` for every format.
    """
    month = period.month_index + 1
    if fmt == "mm-yy":
        return f"{month:02d}-{period.year % 100:02d}"
    if fmt == "dd/mm/yyyy":
        return f"01/{month:02d}/{period.year:04d}"
    if fmt == "iso":
        return f"{period.year:04d}-{month:02d}-01"
    if fmt == "excel-serial":
        first = datetime(period.year, month, 1, tzinfo=timezone.utc)
        return str((first - EXCEL_EPOCH).days - int(serial_day_offset))
    raise ValueError(f"Unknown period format: {fmt!r}")


def month_range(start_key: int, end_key: int) -> list[Period]:
    """Every month from ``start_key`` to ``end_key`` inclusive."""
    current = period_from_key(start_key)
    end = period_from_key(end_key)
    out: list[Period] = []
    while current <= end:
        out.append(current)
        if current.month_index == 11:
            current = Period(year=current.year + 1, month_index=0)
        else:
            current = Period(year=current.year, month_index=current.month_index + 1)
    return out


def build_period_axis(
    periods: Iterable[Period],
    start_key: Optional[int] = None,
    end_key: Optional[int] = None,
    fixed_range: Optional[tuple[int, int]] = None,
) -> list[Period]:
    """Build the ordered period axis (the columns of every table/series).

    By default the axis is the sorted set of *distinct* periods observed in
    the data. When ``fixed_range`` is configured (start_key, end_key), every
    month of that range is used instead, whether or not data exists for it.
    ``start_key`` / ``end_key`` then trim the axis to the user's selection
    (inclusive bounds).
    """
    if fixed_range is not None:
        axis = month_range(fixed_range[0], fixed_range[1])
    else:
        axis = sorted(set(periods))

    if start_key is not None:
        axis = [p for p in axis if p.key >= start_key]
    if end_key is not None:
        axis = [p for p in axis if p.key <= end_key]
    return axis
