# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Hierarchy builder for Flowboard.

Movements are grouped into a fixed 4-level tree:

    Type → Group → Category → Subcategory

Each node carries a totals vector aligned with the period columns. Leaves sum
their rows; every other node sums its children, so its totals are exactly the
sum of its children's totals, period by period. Labels are sorted at every
level with a locale-aware collation key (accents and case ignored).

The tree is always computed down to the subcategory leaves. Hiding a level
(GroupLevels) is a presentation decision applied when flattening the tree
into rows; it never changes the aggregation.

Expand/collapse is view state, kept separately in ExpansionState as a set of
collapsed row ids.
"""

from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Optional

from .engine import calc_totals
from .filters import collation_key
from .normalizer import Movement
from .periods import Period

LEVEL_NAMES: tuple[str, ...] = ("type", "group", "category", "subcategory")


@dataclass(frozen=True)
class HierarchyNode:
    """One node of the hierarchy (level 0 = type ... level 3 = subcategory)."""

    label: str
    level: int
    totals: tuple[float, ...]
    children: tuple["HierarchyNode", ...] = ()

    @property
    def has_children(self) -> bool:
        return len(self.children) > 0


@dataclass(frozen=True)
class GroupLevels:
    """Which of the collapsible levels are emitted as rows."""

    type: bool = True
    group: bool = True
    category: bool = True

    def enabled(self, level: int) -> bool:
        """Subcategory rows (level 3) are always emitted."""
        if level == 0:
            return self.type
        if level == 1:
            return self.group
        if level == 2:
            return self.category
        return True

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "GroupLevels":
        """
        Build from level names, e.g. ``["type", "category"]``.

        Raises
        ------
        ValueError
            If a name is not one of type, group, category (subcategory is
            accepted and ignored since it is always shown).
        """
        wanted = {n.strip().lower() for n in names if n.strip()}
        unknown = wanted.difference(LEVEL_NAMES)
        if unknown:
            raise ValueError(
                f"Unknown hierarchy level(s): {', '.join(sorted(unknown))}. "
                f"Expected any of {', '.join(LEVEL_NAMES[:3])}."
            )
        return cls(
            type="type" in wanted,
            group="group" in wanted,
            category="category" in wanted,
        )


def _label_for(movement: Movement, level: int) -> str:
    return getattr(movement, LEVEL_NAMES[level])


def _build_level(
    rows: Sequence[Movement], columns: Sequence[Period], level: int
) -> tuple[HierarchyNode, ...]:
    buckets: dict[str, list[Movement]] = defaultdict(list)
    for r in rows:
        buckets[_label_for(r, level)].append(r)

    nodes = []
    for label in sorted(buckets, key=collation_key):
        subset = buckets[label]
        if level < 3:
            children = _build_level(subset, columns, level + 1)
            totals = tuple(
                sum(child.totals[idx] for child in children) for idx in range(len(columns))
            )
        else:
            children = ()
            totals = tuple(calc_totals(subset, columns))
        nodes.append(HierarchyNode(label=label, level=level, totals=totals, children=children))
    return tuple(nodes)


def build_hierarchy(
    rows: Iterable[Movement], columns: Sequence[Period]
) -> list[HierarchyNode]:
    """
    Build the full Type → Group → Category → Subcategory tree.

    Returns an empty list when there are no rows or no columns.
    """
    data = list(rows)
    if not data or not columns:
        return []
    return list(_build_level(data, columns, 0))


@dataclass(frozen=True)
class HierarchyRow:
    """
    One presentation row of the flattened hierarchy.

    Attributes
    ----------
    row_id, parent_id:
        Row identifiers ("row-N"); parent_id is the nearest emitted ancestor.
    depth:
        Indentation depth (number of emitted ancestors).
    level:
        Hierarchy level of the node (0 = type ... 3 = subcategory).
    type_label, group_label, category_label, subcategory_label:
        Labels shown in the four label columns. A hidden level's label is
        carried by the rows below it.
    """

    row_id: str
    parent_id: Optional[str]
    depth: int
    level: int
    type_label: str
    group_label: str
    category_label: str
    subcategory_label: str
    totals: tuple[float, ...]
    has_children: bool

    @property
    def label(self) -> str:
        return (self.type_label, self.group_label, self.category_label, self.subcategory_label)[
            self.level
        ]


def _shows_label(ancestor_level: int, row_level: int, levels: GroupLevels) -> bool:
    if ancestor_level == row_level:
        return True
    if levels.enabled(ancestor_level):
        return False
    if row_level == 3:
        return True
    return all(not levels.enabled(lv) for lv in range(ancestor_level, row_level))


def flatten_hierarchy(
    tree: Sequence[HierarchyNode], levels: GroupLevels = GroupLevels()
) -> list[HierarchyRow]:
    """
    Flatten the tree into presentation rows, depth first.

    Every node consumes one row id, emitted or not, so that ids stay stable
    for a given tree whatever levels are shown.
    """
    out: list[HierarchyRow] = []
    counter = 0

    def walk(
        node: HierarchyNode,
        path: tuple[str, ...],
        parent_id: Optional[str],
        depth: int,
    ) -> None:
        nonlocal counter
        row_id = f"row-{counter}"
        counter += 1
        labels = path + (node.label,)

        emitted = levels.enabled(node.level)
        if emitted:
            shown = [
                labels[lv] if lv < len(labels) and _shows_label(lv, node.level, levels) else ""
                for lv in range(4)
            ]
            out.append(
                HierarchyRow(
                    row_id=row_id,
                    parent_id=parent_id,
                    depth=depth,
                    level=node.level,
                    type_label=shown[0],
                    group_label=shown[1],
                    category_label=shown[2],
                    subcategory_label=shown[3],
                    totals=node.totals,
                    has_children=node.has_children,
                )
            )

        child_parent = row_id if emitted else parent_id
        child_depth = depth + 1 if emitted else depth
        for child in node.children:
            walk(child, labels, child_parent, child_depth)

    for root in tree:
        walk(root, (), None, 0)
    return out


@dataclass
class ExpansionState:
    """
    Expand/collapse view state: the set of collapsed row ids.

    A row is visible when none of its ancestors is collapsed.
    """

    collapsed: set[str] = field(default_factory=set)

    @classmethod
    def default(cls, rows: Sequence[HierarchyRow]) -> "ExpansionState":
        """
        Default policy: top rows expanded, rows of depth 1 and deeper that
        have children start collapsed (so depth 2 and below start hidden).
        """
        return cls({r.row_id for r in rows if r.depth >= 1 and r.has_children})

    def toggle(self, row_id: str) -> None:
        if row_id in self.collapsed:
            self.collapsed.discard(row_id)
        else:
            self.collapsed.add(row_id)

    def expand_all(self) -> None:
        self.collapsed.clear()

    def collapse_all(self, rows: Sequence[HierarchyRow]) -> None:
        self.collapsed = {r.row_id for r in rows if r.has_children}

    def is_collapsed(self, row_id: str) -> bool:
        return row_id in self.collapsed

    def is_visible(self, row: HierarchyRow, rows: Sequence[HierarchyRow]) -> bool:
        by_id = {r.row_id: r for r in rows}
        parent_id = row.parent_id
        while parent_id is not None:
            if parent_id in self.collapsed:
                return False
            parent = by_id.get(parent_id)
            parent_id = parent.parent_id if parent is not None else None
        return True

    def visible_rows(self, rows: Sequence[HierarchyRow]) -> list[HierarchyRow]:
        hidden: set[str] = set()
        out = []
        for r in rows:
            if r.parent_id is not None and (
                r.parent_id in hidden or r.parent_id in self.collapsed
            ):
                hidden.add(r.row_id)
                continue
            out.append(r)
        return out
