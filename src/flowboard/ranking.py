# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Pareto / Top-N ranking for Flowboard.

Movements are grouped by a dimension (category by default) and ranked by
the sum of the absolute amounts, largest first. The Pareto prefix is the
shortest head of that ranking whose running sum reaches a threshold share
of the total: an item is added while the running sum before it is strictly
below ``threshold * total``, so the item crossing the threshold is included.

Example: values [50, 30, 15, 5], threshold 0.8 → running sums 50, 80 →
prefix [50, 30].
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Optional

from .normalizer import Movement

_PREFIX_RE = re.compile(r"^\d{2}_")

RANKABLE_DIMENSIONS: tuple[str, ...] = (
    "type",
    "entity",
    "group",
    "category",
    "subcategory",
)


@dataclass(frozen=True)
class RankedItem:
    label: str
    value: float


def strip_prefix(label: str) -> str:
    """Remove a leading two-digit ordering prefix ("02_Egreso" → "Egreso")."""
    return _PREFIX_RE.sub("", label)


def rank(
    rows: Iterable[Movement], dimension: str = "category", strip_prefix_labels: bool = True
) -> list[RankedItem]:
    """
    Rank the values of ``dimension`` by the sum of ``abs(amount)``.

    Ties keep the order in which labels first appear. Returns an empty list
    when the total is zero.

    Raises
    ------
    ValueError
        If ``dimension`` is not a rankable movement field.
    """
    if dimension not in RANKABLE_DIMENSIONS:
        raise ValueError(
            f"Unknown ranking dimension: {dimension!r}. "
            f"Expected one of {', '.join(RANKABLE_DIMENSIONS)}."
        )

    sums: dict[str, float] = {}
    for r in rows:
        key = getattr(r, dimension)
        sums[key] = sums.get(key, 0.0) + abs(r.amount)

    if sum(sums.values()) == 0:
        return []

    ranked = sorted(sums.items(), key=lambda kv: -kv[1])
    return [
        RankedItem(label=strip_prefix(label) if strip_prefix_labels else label, value=value)
        for label, value in ranked
    ]


def ranking_total(ranked: Sequence[RankedItem]) -> float:
    return sum((item.value for item in ranked), 0.0)


def pareto_prefix(ranked: Sequence[RankedItem], threshold: float = 0.8) -> list[RankedItem]:
    """
    Head of the ranking that covers ``threshold`` of the total.

    Raises
    ------
    ValueError
        If ``threshold`` is outside (0, 1].
    """
    if not 0.0 < threshold <= 1.0:
        raise ValueError("threshold must be in the range (0, 1].")

    total = ranking_total(ranked)
    if total == 0:
        return []

    limit = total * threshold
    running = 0.0
    out: list[RankedItem] = []
    for item in ranked:
        if running >= limit:
            break
        out.append(item)
        running += item.value
    return out


def share(value: float, total: float) -> Optional[float]:
    """``value / total``, or None when the total is zero."""
    if total == 0:
        return None
    return value / total


def cumulative_percentages(ranked: Sequence[RankedItem]) -> list[Optional[float]]:
    """Running share of the total after each item, in percent."""
    total = ranking_total(ranked)
    out: list[Optional[float]] = []
    running = 0.0
    for item in ranked:
        running += item.value
        ratio = share(running, total)
        out.append(None if ratio is None else ratio * 100.0)
    return out


def top_n(ranked: Sequence[RankedItem], n: int = 8) -> list[RankedItem]:
    """First ``n`` items of the ranking (all of them when n <= 0)."""
    if n <= 0:
        return list(ranked)
    return list(ranked[:n])
