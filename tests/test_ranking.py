import pytest

from flowboard.normalizer import Movement
from flowboard.periods import parse_period
from flowboard.ranking import (
    RankedItem,
    cumulative_percentages,
    pareto_prefix,
    rank,
    share,
    strip_prefix,
    top_n,
)


def _items(*values: float) -> list[RankedItem]:
    return [RankedItem(f"c{i}", v) for i, v in enumerate(values)]


def _expense(category: str, amount: float, entity: str = "ACME") -> Movement:
    return Movement(
        type="02_Egreso",
        entity=entity,
        group="-",
        category=category,
        subcategory="-",
        detail="",
        code="",
        period_token="03-25",
        amount=amount,
        period=parse_period("03-25"),
    )


def test_pareto_prefix_includes_item_crossing_threshold() -> None:
    ranked = _items(50, 30, 15, 5)
    assert [i.value for i in pareto_prefix(ranked, 0.8)] == [50, 30]
    assert [i.value for i in pareto_prefix(ranked, 0.5)] == [50]
    assert [i.value for i in pareto_prefix(ranked, 0.81)] == [50, 30, 15]
    assert len(pareto_prefix(ranked, 1.0)) == 4


def test_pareto_prefix_zero_total_and_bad_threshold() -> None:
    assert pareto_prefix([], 0.8) == []
    assert pareto_prefix(_items(0, 0), 0.8) == []
    with pytest.raises(ValueError):
        pareto_prefix(_items(1), 0.0)
    with pytest.raises(ValueError):
        pareto_prefix(_items(1), 1.5)


def test_rank_sums_absolute_amounts_and_strips_prefix() -> None:
    rows = [
        _expense("02_Arriendo", -300.0),
        _expense("01_Sueldos", -500.0),
        _expense("02_Arriendo", -250.0),
        _expense("03_Comisiones", 20.0),
    ]

    ranked = rank(rows)

    assert ranked == [
        RankedItem("Arriendo", 550.0),
        RankedItem("Sueldos", 500.0),
        RankedItem("Comisiones", 20.0),
    ]
    raw = rank(rows, strip_prefix_labels=False)
    assert raw[0].label == "02_Arriendo"


def test_rank_ties_keep_first_appearance_order() -> None:
    rows = [_expense("B", -10.0), _expense("A", -10.0), _expense("C", -30.0)]
    assert [i.label for i in rank(rows)] == ["C", "B", "A"]


def test_rank_other_dimension_and_zero_total() -> None:
    rows = [_expense("X", -10.0, entity="Beta"), _expense("X", -40.0, entity="ACME")]
    assert [i.label for i in rank(rows, "entity")] == ["ACME", "Beta"]
    assert rank([_expense("X", 0.0)]) == []
    with pytest.raises(ValueError):
        rank(rows, "amount")


def test_strip_prefix_only_removes_two_digit_prefix() -> None:
    assert strip_prefix("02_Egreso") == "Egreso"
    assert strip_prefix("Sin categoría") == "Sin categoría"
    assert strip_prefix("123_Otro") == "123_Otro"


def test_cumulative_percentages_share_and_top_n() -> None:
    ranked = _items(50, 30, 15, 5)
    assert cumulative_percentages(ranked) == pytest.approx([50.0, 80.0, 95.0, 100.0])
    assert share(1.0, 0.0) is None
    assert share(25.0, 100.0) == pytest.approx(0.25)

    many = _items(*range(10, 0, -1))
    assert len(top_n(many)) == 8
    assert top_n(many, 3) == many[:3]
    assert top_n(many, 0) == many
