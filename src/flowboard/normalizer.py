# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Row normalization for Flowboard.

A raw CSV row is a mapping from header name to string. This module turns it
into a typed, immutable Movement, or rejects it.

Rules
-----
- A non-empty movement type and a parseable period token are required.
  Rows missing either are dropped (only an aggregate count is reported).
- The amount is coerced to a float. Blank, non-numeric or non-finite values
  become 0.0: a row with a blank amount is a valid zero movement.
- Every string dimension is trimmed. Blank group, category and subcategory
  values are replaced by the configured placeholders so that grouping keys
  are never None.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from .logging_setup import get_logger
from .periods import Period, parse_period, period_key

if TYPE_CHECKING:
    from .config import FieldMapping

logger = get_logger(__name__)


@dataclass(frozen=True)
class Movement:
    """
    One normalized cash-flow movement.

    Attributes
    ----------
    type:
        Movement type tag (e.g. "01_Ingreso").
    entity:
        Company or cost-center; may be empty.
    group, category, subcategory:
        Dimension labels of the hierarchy, never None.
    detail:
        Free text ("Abonos" column in the reference layout).
    code:
        Free-text reference code.
    period_token:
        Raw period token as it appeared in the file.
    amount:
        Signed amount.
    period:
        Reporting month.
    """

    type: str
    entity: str
    group: str
    category: str
    subcategory: str
    detail: str
    code: str
    period_token: str
    amount: float
    period: Period

    @property
    def period_key(self) -> int:
        return period_key(self.period)


@dataclass(frozen=True)
class NormalizationResult:
    """Outcome of a batch normalization."""

    movements: list[Movement]
    accepted: int
    rejected: int


def _text(raw: Mapping[str, Any], column: str) -> str:
    value = raw.get(column)
    if value is None:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    return str(value).strip()


def parse_amount(value: Any) -> float:
    """
    Coerce a raw amount to a float.

    Returns 0.0 for None, blank, non-numeric, NaN and infinite inputs. Text
    with "_" digit separators counts as non-numeric.
    """
    if value is None:
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text or "_" in text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def normalize_row(raw: Mapping[str, Any], mapping: FieldMapping) -> Optional[Movement]:
    """
    Normalize one raw row.

    Returns None when the row has no movement type or no parseable period.
    """
    movement_type = _text(raw, mapping.type)
    if not movement_type:
        return None

    period_token = _text(raw, mapping.period)
    period = parse_period(
        period_token,
        mapping.period_format,
        serial_day_offset=mapping.serial_day_offset,
    )
    if period is None:
        return None

    return Movement(
        type=movement_type,
        entity=_text(raw, mapping.entity),
        group=_text(raw, mapping.group) or mapping.default_group,
        category=_text(raw, mapping.category) or mapping.default_category,
        subcategory=_text(raw, mapping.subcategory) or mapping.default_subcategory,
        detail=_text(raw, mapping.detail),
        code=_text(raw, mapping.code),
        period_token=period_token,
        amount=parse_amount(raw.get(mapping.amount)),
        period=period,
    )


def normalize_rows(
    raws: Iterable[Mapping[str, Any]], mapping: FieldMapping
) -> NormalizationResult:
    """Normalize a batch of raw rows, keeping their order."""
    movements: list[Movement] = []
    rejected = 0
    for raw in raws:
        movement = normalize_row(raw, mapping)
        if movement is None:
            rejected += 1
        else:
            movements.append(movement)

    if rejected:
        logger.info(
            "Normalization: %d row(s) accepted, %d row(s) rejected",
            len(movements),
            rejected,
        )
    return NormalizationResult(
        movements=movements, accepted=len(movements), rejected=rejected
    )
