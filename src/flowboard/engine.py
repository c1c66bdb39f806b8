# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Core aggregation engine for Flowboard.

Given a (filtered) collection of movements and the period columns, this
module computes:

- the per-type series (opening balances, income, expense, internal
  transfers), one value per period column,
- the net series,
- the running balance (accumulated) series.

Net and entity scope
--------------------
The net of a period depends on the entity scope:

- consolidated scope (``"all"``): net = income + expense. Internal
  transfers between entities cancel out at group level and are excluded.
- single-entity scope: net = income + expense + internal transfers, since
  a transfer is a real cash movement for that entity.

Running balance
---------------
Opening balances are summed per period like any other type, but they enter
the running balance only once, at the first column:

    acc[0] = opening[0] + net[0]
    acc[i] = acc[i - 1] + net[i]

Every series is aligned 1:1 with the period columns. A length mismatch is a
programming error and raises ValueError.
"""

from collections import defaultdict
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Optional

from .config import TypeTags
from .normalizer import Movement
from .periods import Period

CONSOLIDATED_SCOPE = "all"


@dataclass(frozen=True)
class SummarySeries:
    """
    Per-period summary of a movement collection.

    All tuples have the same length as ``columns``. ``scope`` is the entity
    the series was computed for, or "all" for the consolidated view.
    """

    columns: tuple[Period, ...]
    opening: tuple[float, ...]
    income: tuple[float, ...]
    expense: tuple[float, ...]
    internal: tuple[float, ...]
    net: tuple[float, ...]
    cumulative: tuple[float, ...]
    scope: str = CONSOLIDATED_SCOPE

    @property
    def is_empty(self) -> bool:
        return not self.columns

    @property
    def is_consolidated(self) -> bool:
        return self.scope == CONSOLIDATED_SCOPE

    @property
    def final_balance(self) -> float:
        return self.cumulative[-1] if self.cumulative else 0.0


def _check_aligned(columns: Sequence[Period], **series: Sequence[float]) -> None:
    for name, values in series.items():
        if len(values) != len(columns):
            raise ValueError(
                f"Series '{name}' has {len(values)} value(s) "
                f"for {len(columns)} period column(s)."
            )


def sum_by_type_and_period(
    rows: Iterable[Movement], movement_type: str, period: Period
) -> float:
    """Sum of the amounts of the rows matching both the type and the period."""
    return sum(
        (r.amount for r in rows if r.type == movement_type and r.period == period),
        0.0,
    )


def calc_totals(rows: Iterable[Movement], columns: Sequence[Period]) -> list[float]:
    """
    Per-period sum of amounts, aligned with ``columns``.

    Rows whose period is not one of the columns are ignored.
    """
    buckets: dict[int, float] = defaultdict(float)
    for r in rows:
        buckets[r.period_key] += r.amount
    return [buckets.get(p.key, 0.0) for p in columns]


def _totals_for_type(
    rows: Sequence[Movement], movement_type: str, columns: Sequence[Period]
) -> list[float]:
    return calc_totals((r for r in rows if r.type == movement_type), columns)


def net_series(
    income: Sequence[float],
    expense: Sequence[float],
    internal: Sequence[float],
    scope: str = CONSOLIDATED_SCOPE,
) -> list[float]:
    """
    Net per period for the given entity scope.

    Raises
    ------
    ValueError
        If the three series do not have the same length.
    """
    if not (len(income) == len(expense) == len(internal)):
        raise ValueError("income, expense and internal series must have equal length.")

    if scope == CONSOLIDATED_SCOPE:
        return [i + e for i, e in zip(income, expense)]
    return [i + e + t for i, e, t in zip(income, expense, internal)]


def cumulative_series(opening: Sequence[float], net: Sequence[float]) -> list[float]:
    """
    Running balance: the first opening balance plus the cumulated net.

    Raises
    ------
    ValueError
        If the two series do not have the same length.
    """
    if len(opening) != len(net):
        raise ValueError("opening and net series must have equal length.")

    out: list[float] = []
    acc = 0.0
    for i, value in enumerate(net):
        acc = (opening[0] + value) if i == 0 else acc + value
        out.append(acc)
    return out


def aggregate(
    rows: Iterable[Movement],
    columns: Sequence[Period],
    tags: TypeTags = TypeTags(),
    scope: str = CONSOLIDATED_SCOPE,
    predicate: Optional[Callable[[Movement], bool]] = None,
) -> SummarySeries:
    """Aggregate movements into the per-period summary series.

    Steps:
        0. Keep the rows accepted by ``predicate``, if any.
        1. Sum each special movement type per period column.
        2. Compute the net series for the entity scope.
        3. Compute the running balance from the first opening balance.
        4. Check that every series is aligned with the columns.

    Args:
        rows: Movements to aggregate (usually already filtered).
        columns: Period columns, in display order.
        tags: Type tags for opening, income, expense and internal movements.
        scope: ``"all"`` for the consolidated view, or an entity name.
        predicate: Optional dimension filter applied before summing, e.g.
            ``lambda m: m.group == "Operación"``.

    Returns:
        A SummarySeries. With no columns, every series is empty.
    """
    cols = tuple(columns)
    if not cols:
        return SummarySeries((), (), (), (), (), (), (), scope)

    data = list(rows)
    if predicate is not None:
        data = [m for m in data if predicate(m)]

    # 1) Per-type series
    opening = _totals_for_type(data, tags.opening, cols)
    income = _totals_for_type(data, tags.income, cols)
    expense = _totals_for_type(data, tags.expense, cols)
    internal = _totals_for_type(data, tags.internal, cols)

    # 2) Net for the entity scope
    net = net_series(income, expense, internal, scope)

    # 3) Running balance
    cumulative = cumulative_series(opening, net)

    # 4) Alignment contract
    _check_aligned(
        cols,
        opening=opening,
        income=income,
        expense=expense,
        internal=internal,
        net=net,
        cumulative=cumulative,
    )

    return SummarySeries(
        columns=cols,
        opening=tuple(opening),
        income=tuple(income),
        expense=tuple(expense),
        internal=tuple(internal),
        net=tuple(net),
        cumulative=tuple(cumulative),
        scope=scope,
    )
