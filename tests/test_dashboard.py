import pytest

from flowboard.config import AppConfig, PeriodAxisConfig
from flowboard.dashboard import compute_dashboard, compute_database_view
from flowboard.filters import MovementFilter
from flowboard.normalizer import Movement
from flowboard.periods import parse_period
from flowboard.ranking import RankedItem
from flowboard.state import AppState, DatabaseViewState
from flowboard.store import MovementStore


def _mv(entity, type, token, amount, category="Sin categoría", detail="") -> Movement:
    return Movement(
        type=type,
        entity=entity,
        group="Operación",
        category=category,
        subcategory="-",
        detail=detail,
        code="",
        period_token=token,
        amount=amount,
        period=parse_period(token),
    )


def _store() -> MovementStore:
    return MovementStore.from_movements(
        [
            _mv("ACME", "00_Saldos", "03-25", 1000.0),
            _mv("ACME", "01_Ingreso", "03-25", 500.0, "01_Ventas"),
            _mv("ACME", "02_Egreso", "03-25", -300.0, "01_Sueldos", "Sueldo marzo"),
            _mv("ACME", "01_Ingreso", "04-25", 400.0, "01_Ventas"),
            _mv("ACME", "02_Egreso", "04-25", -200.0, "02_Arriendo"),
            _mv("ACME", "03_Movimiento interno", "04-25", 50.0),
            _mv("Beta", "00_Saldos", "03-25", 200.0),
            _mv("Beta", "02_Egreso", "03-25", -100.0, "01_Sueldos", "Sueldo Beta"),
            _mv("Beta", "03_Movimiento interno", "04-25", -50.0),
            _mv("Beta", "02_Egreso", "05-25", -80.0, "03_Luz"),
        ]
    )


def test_consolidated_dashboard() -> None:
    dashboard = compute_dashboard(_store(), AppState())

    assert [p.key for p in dashboard.columns] == [202503, 202504, 202505]
    summary = dashboard.summary
    assert summary.opening == pytest.approx((1200.0, 0.0, 0.0))
    assert summary.internal == pytest.approx((0.0, 0.0, 0.0))
    assert summary.net == pytest.approx((100.0, 200.0, -80.0))
    assert summary.cumulative == pytest.approx((1300.0, 1500.0, 1420.0))

    assert dashboard.kpis.total_income == pytest.approx(900.0)
    assert dashboard.kpis.final_balance == pytest.approx(1420.0)
    assert dashboard.expense_ranking == (
        RankedItem("Sueldos", 400.0),
        RankedItem("Arriendo", 200.0),
        RankedItem("Luz", 80.0),
    )
    assert [i.label for i in dashboard.pareto] == ["Sueldos", "Arriendo"]
    assert [i.label for i in dashboard.income_ranking] == ["Ventas"]
    assert len(dashboard.comparisons) == 2
    assert dashboard.alerts
    assert not dashboard.is_empty


def test_single_entity_includes_internal_transfers() -> None:
    dashboard = compute_dashboard(_store(), AppState(entity="Beta"))

    assert [p.key for p in dashboard.columns] == [202503, 202504, 202505]
    assert dashboard.summary.net == pytest.approx((-100.0, -50.0, -80.0))
    assert dashboard.summary.cumulative == pytest.approx((100.0, 50.0, -30.0))
    assert all(m.entity == "Beta" for m in dashboard.filtered)
    assert any(a.level == "danger" for a in dashboard.alerts)


def test_full_range_kpis_ignore_displayed_period() -> None:
    state = AppState(period_from=202504)
    dashboard = compute_dashboard(_store(), state)

    assert [p.key for p in dashboard.columns] == [202504, 202505]
    assert dashboard.summary.net == pytest.approx((200.0, -80.0))
    # KPIs still cover the whole dataset.
    assert dashboard.kpis.total_income == pytest.approx(900.0)
    assert dashboard.kpis.months == 3

    selected = compute_dashboard(_store(), AppState(period_from=202504, kpi_use_full_range=False))
    assert selected.kpis.total_income == pytest.approx(400.0)
    assert selected.kpis.months == 2
    assert [i.label for i in selected.expense_ranking] == ["Arriendo", "Luz"]


def test_current_period_from_config_splits_months() -> None:
    config = AppConfig(periods=PeriodAxisConfig(current=202504))

    full = compute_dashboard(_store(), AppState(), config)
    assert full.current_period == 202504
    assert [p.key for p in full.kpi_series.columns] == [202503, 202504]
    assert full.kpis.total_expense == pytest.approx(600.0)

    selected = compute_dashboard(_store(), AppState(kpi_use_full_range=False), config)
    assert (selected.kpis.actual_months, selected.kpis.projected_months) == (2, 1)

    overridden = compute_dashboard(_store(), AppState(current_period=202503), config)
    assert overridden.current_period == 202503


def test_fixed_axis_adds_empty_months() -> None:
    config = AppConfig(periods=PeriodAxisConfig(axis_start=202502, axis_end=202506))
    dashboard = compute_dashboard(_store(), AppState(), config)

    assert [p.key for p in dashboard.columns] == [202502, 202503, 202504, 202505, 202506]
    assert dashboard.summary.net == pytest.approx((0.0, 100.0, 200.0, -80.0, 0.0))


def test_hierarchy_rows_follow_levels() -> None:
    dashboard = compute_dashboard(_store(), AppState())
    top = [r for r in dashboard.rows if r.depth == 0]
    assert [r.label for r in top] == ["00_Saldos", "01_Ingreso", "02_Egreso", "03_Movimiento interno"]
    visible = dashboard.expansion.visible_rows(dashboard.rows)
    assert all(r.depth <= 1 for r in visible)


def test_empty_selection_gives_empty_dashboard() -> None:
    dashboard = compute_dashboard(_store(), AppState(period_from=202601))
    assert dashboard.is_empty
    assert dashboard.rows == ()
    assert compute_dashboard(MovementStore(), AppState()).is_empty


def test_database_view_filters_and_paginates() -> None:
    store = _store()
    state = AppState(db=DatabaseViewState(search="sueldo", page=2, page_size=1))

    view = compute_database_view(store, state)

    assert view.total_count == 10
    assert view.filtered_count == 2
    assert view.page.total_pages == 2
    assert view.page.items == [(7, store[7])]
    assert [m.detail for m in view.filtered_movements] == ["Sueldo marzo", "Sueldo Beta"]


def test_database_view_counts_selection() -> None:
    db = DatabaseViewState(filters=MovementFilter(entity="Beta")).select([6, 7])
    view = compute_database_view(_store(), AppState(db=db))
    assert view.filtered_count == 4
    assert view.selected_count == 2
