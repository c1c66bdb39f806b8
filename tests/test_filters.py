import pytest

from flowboard.filters import (
    MovementFilter,
    apply_filters,
    apply_filters_indexed,
    collation_key,
    distinct_values,
    merge_filters,
    paginate,
)
from flowboard.normalizer import Movement
from flowboard.periods import parse_period


def _mv(
    entity="ACME",
    type="02_Egreso",
    group="Operación",
    category="04_Varios",
    subcategory="-",
    detail="",
    code="",
    token="03-25",
    amount=-100.0,
) -> Movement:
    """Build a movement with the default "mm-yy" period format."""
    return Movement(
        type=type,
        entity=entity,
        group=group,
        category=category,
        subcategory=subcategory,
        detail=detail,
        code=code,
        period_token=token,
        amount=amount,
        period=parse_period(token),
    )


def _sample() -> list[Movement]:
    return [
        _mv(type="01_Ingreso", category="01_Servicios", detail="Factura 12", code="F-12", amount=1000.0),
        _mv(entity="Beta", detail="Sueldo marzo", token="03-25", amount=-400.0),
        _mv(entity="Beta", category="02_Arriendo", detail="Arriendo oficina", token="04-25", amount=-250.0),
        _mv(type="03_Movimiento interno", detail="Traspaso", token="04-25", amount=50.0),
        _mv(category="02_Arriendo", subcategory="Bodega Sur", code="AR-9", token="05-25", amount=-120.0),
    ]


def test_empty_filter_is_identity() -> None:
    movements = _sample()
    assert apply_filters(movements) == movements
    assert apply_filters(movements, MovementFilter()) == movements
    assert MovementFilter(entity="", search="").is_empty()


def test_filtering_is_stable_and_idempotent() -> None:
    movements = _sample()
    criteria = MovementFilter(type="02_Egreso", period_from=202503, period_to=202504)

    once = apply_filters(movements, criteria)
    twice = apply_filters(once, criteria)

    assert once == [movements[1], movements[2]]
    assert twice == once


def test_exact_filters_combine_with_and() -> None:
    movements = _sample()
    result = apply_filters(movements, MovementFilter(entity="Beta", category="02_Arriendo"))
    assert result == [movements[2]]

    by_token = apply_filters(movements, MovementFilter(period_token="04-25"))
    assert by_token == [movements[2], movements[3]]


def test_search_is_case_insensitive_over_text_fields() -> None:
    movements = _sample()

    assert apply_filters(movements, MovementFilter(search="SUELDO")) == [movements[1]]
    # Code and subcategory take part in the search too.
    assert apply_filters(movements, MovementFilter(search="ar-9")) == [movements[4]]
    assert apply_filters(movements, MovementFilter(search="bodega")) == [movements[4]]
    assert apply_filters(movements, MovementFilter(search="nothing like this")) == []


def test_substring_and_amount_filters() -> None:
    movements = _sample()

    assert apply_filters(movements, MovementFilter(detail_contains="arriendo")) == [movements[2]]
    assert apply_filters(movements, MovementFilter(subcategory_contains="SUR")) == [movements[4]]
    assert apply_filters(movements, MovementFilter(code_contains="f-")) == [movements[0]]

    bounded = apply_filters(movements, MovementFilter(min_amount=-250.0, max_amount=50.0))
    assert bounded == [movements[2], movements[3], movements[4]]


def test_apply_filters_indexed_keeps_original_positions() -> None:
    movements = _sample()
    pairs = apply_filters_indexed(movements, MovementFilter(entity="Beta"))
    assert [i for i, _ in pairs] == [1, 2]
    assert [m for _, m in pairs] == [movements[1], movements[2]]


def test_merge_filters_override_wins() -> None:
    base = MovementFilter(entity="ACME", period_from=202501)
    override = MovementFilter(entity="Beta", search="sueldo", category="")

    merged = merge_filters(base, override)

    assert merged.entity == "Beta"
    assert merged.period_from == 202501
    assert merged.search == "sueldo"
    assert merged.category is None


def test_collation_ignores_accents_and_case() -> None:
    labels = ["Zeta", "agua", "Árbol", "banco"]
    assert sorted(labels, key=collation_key) == ["agua", "Árbol", "banco", "Zeta"]


def test_distinct_values_sorted_without_blanks() -> None:
    movements = _sample() + [_mv(entity="")]
    assert distinct_values(movements, "entity") == ["ACME", "Beta"]
    assert distinct_values(movements, "category") == ["01_Servicios", "02_Arriendo", "04_Varios"]
    with pytest.raises(ValueError):
        distinct_values(movements, "amount")


def test_paginate_clamps_page_number() -> None:
    items = list(range(120))

    first = paginate(items, page=1, page_size=50)
    assert first.items == list(range(50))
    assert first.total_pages == 3
    assert first.total_items == 120

    last = paginate(items, page=5, page_size=50)
    assert last.page == 3
    assert last.items == list(range(100, 120))

    assert paginate(items, page=0, page_size=50).page == 1


def test_paginate_all_and_empty() -> None:
    items = list(range(7))
    everything = paginate(items, page=3, page_size=None)
    assert everything.page == 1
    assert everything.total_pages == 1
    assert everything.items == items

    empty = paginate([], page=2, page_size=50)
    assert empty.page == 1
    assert empty.total_pages == 1
    assert empty.items == []
