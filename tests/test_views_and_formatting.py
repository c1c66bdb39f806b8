import pytest

from flowboard.engine import aggregate
from flowboard.hierarchy import ExpansionState, build_hierarchy, flatten_hierarchy
from flowboard.kpis import Alert, compute_kpis
from flowboard.normalizer import Movement
from flowboard.periods import Period, parse_period
from flowboard.ranking import RankedItem, pareto_prefix
from flowboard.views import (
    MOVEMENT_COLUMNS,
    alerts_to_dataframe,
    chart_to_dataframe,
    donut_chart,
    format_compact,
    format_currency,
    format_number,
    format_percent,
    format_ratio,
    hierarchy_to_dataframe,
    horizontal_bar_chart,
    kpis_to_dataframe,
    line_chart,
    movements_to_dataframe,
    net_flow_chart,
    pareto_chart,
    pareto_to_dataframe,
    summary_to_dataframe,
    text_bar,
    waterfall_chart,
)

COLUMNS = [Period(2025, 0), Period(2025, 1)]


def _mv(type, token, amount, group="Ventas", category="01_Servicios") -> Movement:
    return Movement(
        type=type,
        entity="ACME",
        group=group,
        category=category,
        subcategory="-",
        detail="",
        code="",
        period_token=token,
        amount=amount,
        period=parse_period(token),
    )


def _rows() -> list[Movement]:
    return [
        _mv("00_Saldos", "01-25", 1000.0),
        _mv("01_Ingreso", "01-25", 500.0),
        _mv("02_Egreso", "01-25", -800.0, "Operación", "01_Sueldos"),
        _mv("01_Ingreso", "02-25", 700.0),
        _mv("02_Egreso", "02-25", -200.0, "Operación", "02_Arriendo"),
    ]


def test_format_number() -> None:
    assert format_number(1234567) == "1.234.567"
    assert format_number(-1234.4) == "(1.234)"
    assert format_number(999.5) == "1.000"
    assert format_number(0) == ""
    assert format_number(0.2) == ""
    assert format_number(None) == "—"


def test_format_currency_and_compact() -> None:
    assert format_currency(1234567) == "$1.234.567"
    assert format_currency(-1500) == "-$1.500"
    assert format_currency(None) == "—"

    assert format_compact(1_200_000_000) == "$1,2MM"
    assert format_compact(2_500_000) == "$2,5M"
    assert format_compact(-12_345) == "-$12K"
    assert format_compact(950) == "$950"


def test_format_ratio_and_percent() -> None:
    assert format_ratio(1.25) == "1.25x"
    assert format_ratio(None) == "—"
    assert format_percent(80.0) == "80.0%"
    assert format_percent(None) == "—"


def test_summary_to_dataframe() -> None:
    df = summary_to_dataframe(aggregate(_rows(), COLUMNS))

    assert list(df.columns) == ["line", "ene-25", "feb-25"]
    assert list(df["line"]) == [
        "Opening balance",
        "Income",
        "Expense",
        "Net",
        "Running balance",
    ]
    balance = df.set_index("line").loc["Running balance"]
    assert balance["ene-25"] == pytest.approx(700.0)
    assert balance["feb-25"] == pytest.approx(1200.0)


def test_summary_shows_internal_transfers_for_one_entity() -> None:
    rows = _rows() + [_mv("03_Movimiento interno", "02-25", -100.0)]
    df = summary_to_dataframe(aggregate(rows, COLUMNS, scope="ACME"))

    assert list(df["line"]) == [
        "Opening balance",
        "Income",
        "Expense",
        "Internal transfers",
        "Net",
        "Running balance",
    ]
    by_line = df.set_index("line")
    assert by_line.loc["Internal transfers", "feb-25"] == pytest.approx(-100.0)
    assert by_line.loc["Running balance", "feb-25"] == pytest.approx(1100.0)


def test_hierarchy_to_dataframe_respects_expansion() -> None:
    rows = flatten_hierarchy(build_hierarchy(_rows(), COLUMNS))
    full = hierarchy_to_dataframe(rows, COLUMNS)
    collapsed = hierarchy_to_dataframe(rows, COLUMNS, ExpansionState.default(rows))

    assert len(full) == len(rows)
    assert len(collapsed) < len(full)
    assert list(full.columns)[-2:] == ["ene-25", "feb-25"]
    assert full.loc[0, "type"] == "00_Saldos"
    assert full.loc[0, "parent_id"] == ""


def test_pareto_and_kpi_tables() -> None:
    ranking = [RankedItem("Sueldos", 800.0), RankedItem("Arriendo", 200.0)]
    df = pareto_to_dataframe(pareto_prefix(ranking, 0.8), ranking)

    assert list(df["label"]) == ["Sueldos"]
    assert df.loc[0, "cumulative_pct"] == pytest.approx(80.0)

    kpis = kpis_to_dataframe(compute_kpis(aggregate([], COLUMNS)))
    coverage = kpis.set_index("key").loc["coverage", "value"]
    assert coverage is None

    alerts = alerts_to_dataframe([Alert("info", "ok")])
    assert alerts.to_dict(orient="records") == [{"level": "info", "message": "ok"}]


def test_movements_to_dataframe_keeps_indices() -> None:
    rows = _rows()
    df = movements_to_dataframe([(4, rows[4]), (1, rows[1])])

    assert list(df.columns) == MOVEMENT_COLUMNS
    assert list(df["index"]) == [4, 1]
    assert df.loc[0, "period"] == "feb-25"

    plain = movements_to_dataframe(rows[:2])
    assert list(plain["index"]) == [0, 1]


def test_line_and_net_flow_charts() -> None:
    series = aggregate(_rows(), COLUMNS)

    chart = line_chart(series, current_key=202501)
    assert chart.labels == ("ene-25", "feb-25")
    assert chart.expense == pytest.approx((800.0, 200.0))
    assert chart.actual == (True, False)

    assert net_flow_chart(series).values == pytest.approx((-300.0, 500.0))


def test_waterfall_chart_bridges_opening_to_closing() -> None:
    steps = waterfall_chart(aggregate(_rows(), COLUMNS))

    assert [s.kind for s in steps] == ["opening", "decrease", "increase", "closing"]
    assert steps[0].end == pytest.approx(1000.0)
    assert steps[1].start == pytest.approx(1000.0)
    assert steps[1].delta == pytest.approx(-300.0)
    assert steps[2].end == pytest.approx(1200.0)
    assert steps[-1].end == pytest.approx(1200.0)

    assert waterfall_chart(aggregate(_rows(), [])) == []


def test_donut_bar_and_pareto_charts() -> None:
    ranking = [RankedItem(f"c{i}", float(v)) for i, v in enumerate([50, 30, 10, 5, 2, 1, 1, 0.5, 0.5])]

    donut = donut_chart(ranking[:2])
    assert donut.percentages == pytest.approx((62.5, 37.5))

    bars = horizontal_bar_chart(ranking)
    assert len(bars.labels) == 8
    assert bars.values[0] == 50

    pareto = pareto_chart(ranking, 0.8)
    assert pareto.threshold_pct == pytest.approx(80.0)
    assert pareto.cumulative_pct[-1] == pytest.approx(100.0)


def test_chart_to_dataframe_for_each_chart_kind() -> None:
    series = aggregate(_rows(), COLUMNS)

    line = chart_to_dataframe(line_chart(series, current_key=202501))
    assert list(line.columns) == ["label", "income", "expense", "balance", "actual"]
    assert list(line["actual"]) == [True, False]

    net = chart_to_dataframe(net_flow_chart(series))
    assert list(net["value"]) == pytest.approx([-300.0, 500.0])

    waterfall = chart_to_dataframe(waterfall_chart(series))
    assert list(waterfall["label"]) == ["Opening", "ene-25", "feb-25", "Closing"]
    assert list(waterfall["delta"]) == pytest.approx([1000.0, -300.0, 500.0, 1200.0])

    ranking = [RankedItem("Sueldos", 60.0), RankedItem("Arriendo", 40.0)]
    donut = chart_to_dataframe(donut_chart(ranking))
    assert list(donut["pct"]) == pytest.approx([60.0, 40.0])

    pareto = chart_to_dataframe(pareto_chart(ranking, 0.5))
    assert list(pareto.columns) == ["label", "value", "cumulative_pct", "threshold_pct"]
    assert list(pareto["cumulative_pct"]) == pytest.approx([60.0, 100.0])
    assert list(pareto["threshold_pct"]) == pytest.approx([50.0, 50.0])

    assert chart_to_dataframe(waterfall_chart(aggregate(_rows(), []))).empty


def test_text_bar_scales_to_width() -> None:
    assert text_bar(50.0, 100.0, width=10) == "#####"
    assert text_bar(-100.0, 100.0, width=10) == "----------"
    assert text_bar(0.0, 100.0) == ""
    assert text_bar(10.0, 0.0) == ""
