# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Filter engine for Flowboard.

A MovementFilter is a set of optional, independent criteria combined with a
logical AND. Filtering is stable (the relative order of movements is kept),
an empty filter is the identity, and re-applying the same filter to its own
output changes nothing.

Criteria
--------
- entity, type, group, category, period_token: exact match.
- period_from / period_to: inclusive bounds on the period key (YYYYMM).
- detail_contains, subcategory_contains, code_contains: case-insensitive
  substring match.
- min_amount / max_amount: inclusive bounds on the signed amount.
- search: case-insensitive substring match against the concatenation of
  detail, entity, type, group, category, subcategory and code.

This module also provides pagination for the raw-row view and the text
collation key shared by every sorted label list.
"""

import math
import unicodedata
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, fields, replace
from typing import Optional, TypeVar

from .normalizer import Movement

T = TypeVar("T")

FILTERABLE_FIELDS: tuple[str, ...] = (
    "entity",
    "type",
    "group",
    "category",
    "subcategory",
    "detail",
    "code",
    "period_token",
)


def collation_key(label: str) -> tuple[str, str]:
    """
    Locale-aware sort key for labels.

    Accents and case are ignored at the first level ("Égout" sorts with
    "egout", between "Depósito" and "Fondo"); the original label breaks ties
    so that the order stays deterministic.
    """
    decomposed = unicodedata.normalize("NFKD", label)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (base.casefold(), label)


@dataclass(frozen=True)
class MovementFilter:
    """Filter criteria. ``None`` (or an empty string) means "not filtered"."""

    entity: Optional[str] = None
    period_from: Optional[int] = None
    period_to: Optional[int] = None
    type: Optional[str] = None
    group: Optional[str] = None
    category: Optional[str] = None
    period_token: Optional[str] = None
    detail_contains: Optional[str] = None
    subcategory_contains: Optional[str] = None
    code_contains: Optional[str] = None
    min_amount: Optional[float] = None
    max_amount: Optional[float] = None
    search: Optional[str] = None

    def is_empty(self) -> bool:
        return all(not _active(getattr(self, f.name)) for f in fields(self))


def _active(value: object) -> bool:
    return value is not None and value != ""


def search_text(movement: Movement) -> str:
    """Lower-cased text matched by the global search."""
    return " ".join(
        (
            movement.detail,
            movement.entity,
            movement.type,
            movement.group,
            movement.category,
            movement.subcategory,
            movement.code,
        )
    ).lower()


def matches(movement: Movement, criteria: MovementFilter) -> bool:
    """Return True if the movement satisfies every active criterion."""
    c = criteria

    if _active(c.search) and c.search.lower() not in search_text(movement):
        return False

    if _active(c.entity) and movement.entity != c.entity:
        return False
    if _active(c.type) and movement.type != c.type:
        return False
    if _active(c.group) and movement.group != c.group:
        return False
    if _active(c.category) and movement.category != c.category:
        return False
    if _active(c.period_token) and movement.period_token != c.period_token:
        return False

    if c.period_from is not None and movement.period_key < c.period_from:
        return False
    if c.period_to is not None and movement.period_key > c.period_to:
        return False

    if _active(c.detail_contains) and (
        c.detail_contains.lower() not in movement.detail.lower()
    ):
        return False
    if _active(c.subcategory_contains) and (
        c.subcategory_contains.lower() not in movement.subcategory.lower()
    ):
        return False
    if _active(c.code_contains) and c.code_contains.lower() not in movement.code.lower():
        return False

    if c.min_amount is not None and movement.amount < c.min_amount:
        return False
    if c.max_amount is not None and movement.amount > c.max_amount:
        return False

    return True


def apply_filters(
    movements: Iterable[Movement], criteria: Optional[MovementFilter] = None
) -> list[Movement]:
    """Return the movements matching ``criteria``, in their original order."""
    if criteria is None or criteria.is_empty():
        return list(movements)
    return [m for m in movements if matches(m, criteria)]


def apply_filters_indexed(
    movements: Iterable[Movement], criteria: Optional[MovementFilter] = None
) -> list[tuple[int, Movement]]:
    """
    Like apply_filters, but return ``(index, movement)`` pairs.

    The index is the position of the movement in the full collection, so
    that edits and selections made on a filtered view address the right row.
    """
    pairs = list(enumerate(movements))
    if criteria is None or criteria.is_empty():
        return pairs
    return [(i, m) for i, m in pairs if matches(m, criteria)]


def merge_filters(base: MovementFilter, override: MovementFilter) -> MovementFilter:
    """Combine two filters; values set in ``override`` win."""
    changes = {
        f.name: getattr(override, f.name)
        for f in fields(override)
        if _active(getattr(override, f.name))
    }
    return replace(base, **changes)


def distinct_values(movements: Iterable[Movement], field: str) -> list[str]:
    """
    Sorted distinct non-empty values of a text field (filter option lists).

    Raises
    ------
    ValueError
        If ``field`` is not a filterable text field.
    """
    if field not in FILTERABLE_FIELDS:
        raise ValueError(
            f"Unknown movement field: {field!r}. "
            f"Expected one of {', '.join(FILTERABLE_FIELDS)}."
        )
    values = {getattr(m, field) for m in movements}
    values.discard("")
    return sorted(values, key=collation_key)


@dataclass(frozen=True)
class Page:
    """One page of a paginated sequence (pages are numbered from 1)."""

    items: list
    page: int
    total_pages: int
    total_items: int


def paginate(items: Sequence[T], page: int = 1, page_size: Optional[int] = 50) -> Page:
    """
    Slice ``items`` into a page.

    ``page_size=None`` means "all" (a single page). The requested page is
    clamped to ``[1, total_pages]`` and there is always at least one page.
    """
    total = len(items)
    if page_size is None or page_size <= 0:
        size = max(total, 1)
    else:
        size = page_size

    total_pages = max(1, math.ceil(total / size))
    current = min(max(int(page), 1), total_pages)
    start = (current - 1) * size
    return Page(
        items=list(items[start : start + size]),
        page=current,
        total_pages=total_pages,
        total_items=total,
    )
