# Flowboard - Cash-flow Dashboard & Analysis engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
In-memory movement store for Flowboard.

The session dataset is one flat, order-preserving collection of movements.
MovementStore is an immutable value: every operation (add, single edit,
bulk edit, replace, clear) returns a new store and leaves the previous one
untouched. Edits are applied in call order with no conflict detection, so
the last write wins.

When an edit changes the period, the Period value is re-derived from the
new token (or the token is re-encoded from a new Period), so a movement
never carries a token and a period that disagree.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, fields, replace
from typing import Any, Optional, Union

from .config import FieldMapping
from .normalizer import Movement, parse_amount
from .periods import Period, format_period_token, parse_period

# Fields a bulk edit may change.
BULK_EDITABLE_FIELDS: tuple[str, ...] = ("entity", "type", "group", "category", "subcategory")


@dataclass(frozen=True)
class MovementPatch:
    """
    Partial update of a movement. Only non-None fields are applied.

    ``amount`` may be a number or raw text (re-parsed, 0.0 when invalid).
    ``period_token`` is parsed with the configured period format;
    ``period`` sets the period directly and re-encodes the token.
    """

    type: Optional[str] = None
    entity: Optional[str] = None
    group: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    detail: Optional[str] = None
    code: Optional[str] = None
    period_token: Optional[str] = None
    period: Optional[Period] = None
    amount: Optional[Union[float, str]] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def restricted_to(self, names: Iterable[str]) -> "MovementPatch":
        """Copy of the patch keeping only the given fields."""
        keep = set(names)
        return MovementPatch(
            **{f.name: getattr(self, f.name) for f in fields(self) if f.name in keep}
        )


def apply_patch(
    movement: Movement, patch: MovementPatch, mapping: Optional[FieldMapping] = None
) -> Movement:
    """
    Return a new movement with the patch applied.

    Raises
    ------
    ValueError
        If the patch blanks the movement type or sets an unparseable period.
    """
    if mapping is None:
        mapping = FieldMapping()

    changes: dict[str, Any] = {}

    if patch.type is not None:
        movement_type = patch.type.strip()
        if not movement_type:
            raise ValueError("Movement type cannot be empty.")
        changes["type"] = movement_type

    placeholders = {
        "group": mapping.default_group,
        "category": mapping.default_category,
        "subcategory": mapping.default_subcategory,
    }
    for name in ("entity", "group", "category", "subcategory", "detail", "code"):
        value = getattr(patch, name)
        if value is not None:
            changes[name] = value.strip() or placeholders.get(name, "")

    if patch.period_token is not None:
        token = patch.period_token.strip()
        period = parse_period(
            token, mapping.period_format, serial_day_offset=mapping.serial_day_offset
        )
        if period is None:
            raise ValueError(
                f"Invalid period {patch.period_token!r} for format {mapping.period_format!r}."
            )
        changes["period_token"] = token
        changes["period"] = period
    elif patch.period is not None:
        changes["period"] = patch.period
        changes["period_token"] = format_period_token(
            patch.period,
            mapping.period_format,
            serial_day_offset=mapping.serial_day_offset,
        )

    if patch.amount is not None:
        changes["amount"] = parse_amount(patch.amount)

    return replace(movement, **changes)


@dataclass(frozen=True)
class MovementStore:
    """Immutable, ordered collection of movements."""

    movements: tuple[Movement, ...] = ()

    @classmethod
    def from_movements(cls, movements: Iterable[Movement]) -> "MovementStore":
        return cls(tuple(movements))

    def __len__(self) -> int:
        return len(self.movements)

    def __iter__(self) -> Iterator[Movement]:
        return iter(self.movements)

    def __getitem__(self, index: int) -> Movement:
        return self.movements[index]

    @property
    def is_empty(self) -> bool:
        return not self.movements

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.movements):
            raise IndexError(
                f"Row index {index} out of range (store has {len(self.movements)} row(s))."
            )

    def add(self, movement: Movement) -> "MovementStore":
        """Append a movement at the end of the collection."""
        return MovementStore(self.movements + (movement,))

    def update_row(
        self,
        index: int,
        patch: MovementPatch,
        mapping: Optional[FieldMapping] = None,
    ) -> "MovementStore":
        """
        Apply a patch to one row.

        Raises
        ------
        IndexError
            If ``index`` does not address a row.
        ValueError
            If the patch is invalid (see apply_patch).
        """
        self._check_index(index)
        rows = list(self.movements)
        rows[index] = apply_patch(rows[index], patch, mapping)
        return MovementStore(tuple(rows))

    def bulk_update(
        self,
        indices: Iterable[int],
        patch: MovementPatch,
        mapping: Optional[FieldMapping] = None,
    ) -> "MovementStore":
        """
        Apply the same patch to several rows.

        Only the bulk-editable fields (entity, type, group, category,
        subcategory) of the patch are used. Every index is checked before
        any row is changed.
        """
        targets = sorted(set(indices))
        for index in targets:
            self._check_index(index)

        restricted = patch.restricted_to(BULK_EDITABLE_FIELDS)
        rows = list(self.movements)
        for index in targets:
            rows[index] = apply_patch(rows[index], restricted, mapping)
        return MovementStore(tuple(rows))

    def replace_all(self, movements: Iterable[Movement]) -> "MovementStore":
        return MovementStore(tuple(movements))

    def clear(self) -> "MovementStore":
        return MovementStore()
