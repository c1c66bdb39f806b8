# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
CSV I/O module for Flowboard.

This module reads cash-flow movements from a semicolon-delimited CSV file
and writes them back with the same layout.

Expected input format
---------------------
One header row, ``;`` delimiter. The column names come from the field
mapping (``[fields]`` in the TOML configuration). With the defaults:

    Abonos;Empresa;Tipo de movimiento;Grupo;Categoría;Subcategoría;Codigo;Mes;Valor

Every value is read as a string; typing is the job of the normalizer.
Columns that are not part of the mapping are ignored. Lines with more fields
than the header (an unquoted delimiter inside a text) are skipped.

Encodings
---------
Files come either as UTF-8 (with or without BOM) or in a legacy single-byte
charset. The configured encodings are tried in order: the next one is used
when the current one fails to decode or yields no row with a movement type.

Output format
-------------
Exports use the same header layout, the ``;`` delimiter, every field quoted,
and UTF-8 with a BOM so that spreadsheet tools detect the encoding. An
exported file can be re-imported without loss.
"""

import csv
import os
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .config import FieldMapping
from .logging_setup import get_logger
from .normalizer import Movement, normalize_rows

logger = get_logger(__name__)

DEFAULT_ENCODINGS: tuple[str, ...] = ("utf-8-sig", "latin-1")

PathLike = Union[str, "os.PathLike[str]"]


class ImportFailedError(ValueError):
    """Raised when a CSV file yields no valid movement with any encoding."""


@dataclass(frozen=True)
class ImportResult:
    """
    Outcome of a CSV import.

    Attributes
    ----------
    movements:
        Accepted movements, in file order.
    accepted, rejected:
        Row counts after normalization.
    encoding:
        Encoding that produced the rows.
    """

    movements: list[Movement]
    accepted: int
    rejected: int
    encoding: str


def _read_csv(path: PathLike, encoding: str, delimiter: str) -> pd.DataFrame:
    skipped: list[list[str]] = []

    def _skip_bad_line(fields: list[str]) -> None:
        skipped.append(fields)

    try:
        df = pd.read_csv(
            path,
            sep=delimiter,
            dtype=str,
            keep_default_na=False,
            encoding=encoding,
            engine="python",
            on_bad_lines=_skip_bad_line,
        )
    except pd.errors.EmptyDataError:
        return pd.DataFrame()
    if skipped:
        logger.info("Skipped %d malformed line(s) in %s", len(skipped), path)
    df.columns = [str(c).strip() for c in df.columns]
    return df


def _count_typed_rows(rows: list[dict[str, str]], mapping: FieldMapping) -> int:
    count = 0
    for row in rows:
        value = row.get(mapping.type)
        if isinstance(value, str) and value.strip():
            count += 1
    return count


def read_raw_rows(
    path: PathLike,
    mapping: Optional[FieldMapping] = None,
    encodings: Sequence[str] = DEFAULT_ENCODINGS,
    delimiter: str = ";",
) -> tuple[list[dict[str, str]], str]:
    """
    Read a CSV file into raw header → string rows.

    Parameters
    ----------
    path:
        CSV file to read.
    mapping:
        Field mapping used to locate the movement type column.
    encodings:
        Encodings to try, in order.
    delimiter:
        Column delimiter.

    Returns
    -------
    (rows, encoding)
        The raw rows and the encoding that produced them. When no encoding
        yields a typed row, the rows of the last attempt are returned.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ImportFailedError
        If the file cannot be tokenized as CSV. Lines with more fields than
        the header are skipped, not reported.
    """
    if mapping is None:
        mapping = FieldMapping()
    if not Path(path).is_file():
        raise FileNotFoundError(f"CSV file not found: {path}")

    rows: list[dict[str, str]] = []
    used = encodings[-1] if encodings else "utf-8"
    for encoding in encodings:
        try:
            df = _read_csv(path, encoding, delimiter)
        except UnicodeDecodeError:
            logger.info("Could not decode %s as %s, trying next encoding", path, encoding)
            continue
        except pd.errors.ParserError as exc:
            raise ImportFailedError(f"Could not parse {path} as CSV: {exc}") from exc

        rows = df.to_dict(orient="records")
        used = encoding
        if _count_typed_rows(rows, mapping) > 0:
            return rows, encoding
        logger.info("No typed rows in %s with %s, trying next encoding", path, encoding)

    return rows, used


def import_movements(
    path: PathLike,
    mapping: Optional[FieldMapping] = None,
    encodings: Sequence[str] = DEFAULT_ENCODINGS,
    delimiter: str = ";",
) -> ImportResult:
    """
    Read and normalize a CSV file of movements.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ImportFailedError
        If no row is accepted after every encoding was tried. Callers keep
        their current dataset unchanged in that case.
    """
    if mapping is None:
        mapping = FieldMapping()

    rows, encoding = read_raw_rows(path, mapping, encodings, delimiter)
    result = normalize_rows(rows, mapping)
    if result.accepted == 0:
        raise ImportFailedError(
            f"No valid movement found in {path}. Check the delimiter ({delimiter!r}), "
            f"the '{mapping.type}' and '{mapping.period}' columns and the period format "
            f"({mapping.period_format!r})."
        )

    logger.info(
        "Imported %d movement(s) from %s (%s), %d row(s) rejected",
        result.accepted,
        path,
        encoding,
        result.rejected,
    )
    return ImportResult(
        movements=result.movements,
        accepted=result.accepted,
        rejected=result.rejected,
        encoding=encoding,
    )


def _format_amount(amount: float) -> str:
    if float(amount).is_integer():
        return str(int(amount))
    return repr(float(amount))


def export_rows(
    movements: Iterable[Movement], mapping: Optional[FieldMapping] = None
) -> pd.DataFrame:
    """
    Build the export table of movements, one column per mapped field.

    All values are strings; the amount is written without a trailing ".0"
    for whole numbers.
    """
    if mapping is None:
        mapping = FieldMapping()

    records = [
        {
            mapping.detail: m.detail,
            mapping.entity: m.entity,
            mapping.type: m.type,
            mapping.group: m.group,
            mapping.category: m.category,
            mapping.subcategory: m.subcategory,
            mapping.code: m.code,
            mapping.period: m.period_token,
            mapping.amount: _format_amount(m.amount),
        }
        for m in movements
    ]
    return pd.DataFrame(records, columns=mapping.columns(), dtype=str)


def write_movements_csv(
    movements: Iterable[Movement],
    path: PathLike,
    mapping: Optional[FieldMapping] = None,
    delimiter: str = ";",
) -> Path:
    """
    Write movements to a CSV file (quoted fields, UTF-8 with BOM).

    Returns the path written. Parent directories are created as needed.
    """
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    df = export_rows(movements, mapping)
    df.to_csv(
        out,
        sep=delimiter,
        index=False,
        quoting=csv.QUOTE_ALL,
        encoding="utf-8-sig",
    )
    logger.info("Exported %d movement(s) to %s", len(df), out)
    return out


def select_export_rows(
    movements: Sequence[Movement],
    selected: Iterable[int] = (),
    filtered: Optional[Sequence[Movement]] = None,
) -> list[Movement]:
    """
    Choose which movements an export contains.

    Priority: the selected row indices when any are selected, otherwise the
    filtered view when it is a strict subset of the collection, otherwise
    the whole collection.
    """
    chosen = set(selected)
    if chosen:
        return [m for i, m in enumerate(movements) if i in chosen]
    if filtered is not None and len(filtered) < len(movements):
        return list(filtered)
    return list(movements)
