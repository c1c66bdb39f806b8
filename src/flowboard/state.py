# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Application state for Flowboard.

The whole UI state (dashboard selection and raw-row view state) is an
explicit, serializable value passed to the computation functions, instead
of a shared global object. States are frozen dataclasses: an interaction
produces a new state through ``dataclasses.replace`` or the helpers below.

The module also provides Debouncer, a small synchronous quiescence gate
used at the input boundary (search-as-you-type, numeric filter fields) so
that a burst of inputs triggers a single recomputation.
"""

import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Generic, Optional, TypeVar

from .engine import CONSOLIDATED_SCOPE
from .filters import MovementFilter
from .hierarchy import GroupLevels

T = TypeVar("T")


@dataclass(frozen=True)
class DatabaseViewState:
    """
    State of the raw-row ("database") view.

    Attributes
    ----------
    search:
        Global free-text search term.
    filters:
        Column filters.
    page:
        Current page (1-based; clamped when the view is computed).
    page_size:
        Rows per page, None for "all".
    selected:
        Indices (in the full collection) of the selected rows.
    edit_mode:
        Whether inline editing is enabled.
    """

    search: str = ""
    filters: MovementFilter = field(default_factory=MovementFilter)
    page: int = 1
    page_size: Optional[int] = 50
    selected: frozenset[int] = frozenset()
    edit_mode: bool = False

    def effective_filter(self) -> MovementFilter:
        """Column filters combined with the global search term."""
        term = self.search.strip()
        return replace(self.filters, search=term or None)

    def with_search(self, term: str) -> "DatabaseViewState":
        return replace(self, search=term, page=1)

    def with_filters(self, filters: MovementFilter) -> "DatabaseViewState":
        return replace(self, filters=filters, page=1)

    def reset_filters(self) -> "DatabaseViewState":
        return replace(self, search="", filters=MovementFilter(), page=1)

    def toggle_selected(self, index: int) -> "DatabaseViewState":
        return replace(self, selected=self.selected ^ {index})

    def select(self, indices: Iterable[int]) -> "DatabaseViewState":
        return replace(self, selected=self.selected | frozenset(indices))

    def clear_selection(self) -> "DatabaseViewState":
        return replace(self, selected=frozenset())


@dataclass(frozen=True)
class AppState:
    """
    Dashboard state.

    ``entity`` is ``"all"`` for the consolidated view. Period bounds and the
    current period are period keys (YYYYMM).
    """

    entity: str = CONSOLIDATED_SCOPE
    period_from: Optional[int] = None
    period_to: Optional[int] = None
    current_period: Optional[int] = None
    levels: GroupLevels = field(default_factory=GroupLevels)
    pareto_threshold: float = 0.8
    kpi_use_full_range: bool = True
    db: DatabaseViewState = field(default_factory=DatabaseViewState)

    @property
    def is_consolidated(self) -> bool:
        return self.entity == CONSOLIDATED_SCOPE

    def entity_filter(self) -> MovementFilter:
        """Filter on the selected entity only (no period bounds)."""
        return MovementFilter(entity=None if self.is_consolidated else self.entity)

    def dashboard_filter(self) -> MovementFilter:
        """Filter applied to the movements shown on the dashboard."""
        return replace(
            self.entity_filter(),
            period_from=self.period_from,
            period_to=self.period_to,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["db"]["selected"] = sorted(self.db.selected)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AppState":
        """Rebuild a state from ``to_dict`` output; missing keys use defaults."""
        base = cls()
        db_raw = dict(data.get("db") or {})
        levels_raw = data.get("levels") or {}
        filters_raw = db_raw.get("filters") or {}

        db = DatabaseViewState(
            search=str(db_raw.get("search", "")),
            filters=MovementFilter(**filters_raw),
            page=int(db_raw.get("page", 1)),
            page_size=db_raw.get("page_size", base.db.page_size),
            selected=frozenset(int(i) for i in db_raw.get("selected", ())),
            edit_mode=bool(db_raw.get("edit_mode", False)),
        )
        return cls(
            entity=str(data.get("entity", base.entity)),
            period_from=data.get("period_from"),
            period_to=data.get("period_to"),
            current_period=data.get("current_period"),
            levels=GroupLevels(**levels_raw),
            pareto_threshold=float(data.get("pareto_threshold", base.pareto_threshold)),
            kpi_use_full_range=bool(data.get("kpi_use_full_range", base.kpi_use_full_range)),
            db=db,
        )


class Debouncer(Generic[T]):
    """
    Synchronous debounce gate.

    ``submit`` records the latest value; ``poll`` releases it once ``delay``
    seconds have elapsed since the last submit, then forgets it. Times come
    from ``clock`` unless passed explicitly, which keeps tests deterministic.
    """

    def __init__(self, delay: float = 0.3, clock: Callable[[], float] = time.monotonic):
        if delay < 0:
            raise ValueError("delay must be >= 0")
        self.delay = delay
        self._clock = clock
        self._pending: Optional[T] = None
        self._has_pending = False
        self._last_submit = 0.0

    @property
    def pending(self) -> bool:
        return self._has_pending

    def submit(self, value: T, now: Optional[float] = None) -> None:
        self._pending = value
        self._has_pending = True
        self._last_submit = self._clock() if now is None else now

    def poll(self, now: Optional[float] = None) -> Optional[T]:
        """Return the pending value if the input has been quiet long enough."""
        if not self._has_pending:
            return None
        current = self._clock() if now is None else now
        if current - self._last_submit < self.delay:
            return None
        value = self._pending
        self._pending = None
        self._has_pending = False
        return value

    def cancel(self) -> None:
        self._pending = None
        self._has_pending = False
