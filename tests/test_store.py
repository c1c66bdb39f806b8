import pytest

from flowboard.config import FieldMapping
from flowboard.normalizer import Movement
from flowboard.periods import Period, parse_period
from flowboard.store import MovementPatch, MovementStore, apply_patch


def _mv(detail: str, token: str = "03-25", amount: float = -100.0, entity: str = "ACME") -> Movement:
    return Movement(
        type="02_Egreso",
        entity=entity,
        group="Operación",
        category="01_Sueldos",
        subcategory="-",
        detail=detail,
        code="",
        period_token=token,
        amount=amount,
        period=parse_period(token),
    )


def _store() -> MovementStore:
    return MovementStore.from_movements([_mv("a"), _mv("b"), _mv("c")])


def test_update_row_returns_new_store() -> None:
    store = _store()
    updated = store.update_row(1, MovementPatch(detail="  Sueldo abril ", amount="-250.5"))

    assert updated[1].detail == "Sueldo abril"
    assert updated[1].amount == pytest.approx(-250.5)
    # The original store is untouched.
    assert store[1].detail == "b"
    assert store[1].amount == pytest.approx(-100.0)
    assert len(updated) == 3


def test_period_token_edit_rederives_period() -> None:
    updated = _store().update_row(0, MovementPatch(period_token="11-25"))
    assert updated[0].period_token == "11-25"
    assert updated[0].period == Period(2025, 10)
    assert updated[0].period_key == 202511


def test_period_edit_reencodes_token() -> None:
    mapping = FieldMapping(period_format="dd/mm/yyyy")
    updated = _store().update_row(0, MovementPatch(period=Period(2025, 3)), mapping)
    assert updated[0].period_token == "01/04/2025"
    assert updated[0].period == Period(2025, 3)


def test_invalid_edits_raise() -> None:
    store = _store()
    with pytest.raises(ValueError):
        store.update_row(0, MovementPatch(period_token="2025-04"))
    with pytest.raises(ValueError):
        store.update_row(0, MovementPatch(type="   "))
    with pytest.raises(IndexError):
        store.update_row(3, MovementPatch(detail="x"))
    with pytest.raises(IndexError):
        store.update_row(-1, MovementPatch(detail="x"))


def test_blank_dimensions_get_placeholders() -> None:
    updated = apply_patch(_mv("a"), MovementPatch(group="", category=" ", entity=""))
    assert updated.group == "-"
    assert updated.category == "Sin categoría"
    assert updated.entity == ""


def test_invalid_amount_text_becomes_zero() -> None:
    updated = apply_patch(_mv("a"), MovementPatch(amount="n/a"))
    assert updated.amount == 0.0


def test_bulk_update_only_changes_bulk_fields() -> None:
    store = _store()
    patch = MovementPatch(category="02_Arriendo", entity="Beta", detail="ignored", amount=1.0)

    updated = store.bulk_update([0, 2, 2], patch)

    assert [m.category for m in updated] == ["02_Arriendo", "01_Sueldos", "02_Arriendo"]
    assert [m.entity for m in updated] == ["Beta", "ACME", "Beta"]
    assert [m.detail for m in updated] == ["a", "b", "c"]
    assert all(m.amount == pytest.approx(-100.0) for m in updated)


def test_bulk_update_checks_every_index_first() -> None:
    store = _store()
    with pytest.raises(IndexError):
        store.bulk_update([0, 7], MovementPatch(entity="Beta"))
    assert store[0].entity == "ACME"


def test_last_write_wins() -> None:
    store = _store()
    store = store.update_row(0, MovementPatch(detail="first"))
    store = store.update_row(0, MovementPatch(detail="second"))
    assert store[0].detail == "second"


def test_add_replace_and_clear() -> None:
    store = MovementStore()
    assert store.is_empty

    store = store.add(_mv("x")).add(_mv("y"))
    assert [m.detail for m in store] == ["x", "y"]

    replaced = store.replace_all([_mv("z")])
    assert [m.detail for m in replaced] == ["z"]
    assert replaced.clear().is_empty


def test_patch_helpers() -> None:
    assert MovementPatch().is_empty()
    patch = MovementPatch(entity="Beta", detail="x")
    assert patch.restricted_to(["entity"]) == MovementPatch(entity="Beta")
