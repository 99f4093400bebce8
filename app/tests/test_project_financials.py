from decimal import Decimal

from app.services.finance_service import ProjectSnapshot, compute_project_financials


def test_empty_project_has_zero_ratios_instead_of_dividing_by_zero():
    f = compute_project_financials(ProjectSnapshot())

    assert f.profit_loss == Decimal("0.00")
    assert f.profit_loss_percentage == Decimal("0.00")
    assert f.cost_performance_index == Decimal("0.00")
    assert f.schedule_performance_index == Decimal("0.00")
    assert f.hours_utilization == Decimal("0.00")
    assert f.budget_utilization == Decimal("0.00")
    assert f.allocation_utilization == Decimal("0.00")
    for variance in f.variances.values():
        assert variance.percentage == Decimal("0.00")
        assert variance.status == "on-track"


def test_indices_are_zero_when_nothing_has_been_spent_yet():
    f = compute_project_financials(
        ProjectSnapshot(
            budget=Decimal("10000"),
            rate=Decimal("50"),
            estimated_hours=Decimal("100"),
            estimated_materials=Decimal("500"),
        )
    )

    assert f.estimated_total_cost == Decimal("5500.00")
    assert f.actual_total_cost == Decimal("0.00")
    assert f.cost_performance_index == Decimal("0.00")
    assert f.schedule_performance_index == Decimal("0.00")
    assert f.profit_loss == Decimal("10000.00")
    assert f.profit_loss_percentage == Decimal("100.00")


def test_costs_variances_and_utilization():
    f = compute_project_financials(
        ProjectSnapshot(
            budget=Decimal("10000"),
            allocated_amount=Decimal("2500"),
            rate=Decimal("50"),
            estimated_hours=Decimal("100"),
            actual_hours=Decimal("120"),
            estimated_consumables=Decimal("300"),
            actual_consumables=Decimal("200"),
            estimated_materials=Decimal("1000"),
            actual_materials=Decimal("1000"),
            paid_amount=Decimal("750"),
            pending_amount=Decimal("250"),
        )
    )

    assert f.estimated_hours_cost == Decimal("5000.00")
    assert f.actual_hours_cost == Decimal("6000.00")
    assert f.estimated_total_cost == Decimal("6300.00")
    assert f.actual_total_cost == Decimal("7200.00")
    assert f.profit_loss == Decimal("2800.00")
    assert f.profit_loss_percentage == Decimal("28.00")
    assert f.remaining_budget == Decimal("7500.00")
    assert f.cost_performance_index == Decimal("0.88")
    assert f.schedule_performance_index == Decimal("0.83")
    assert f.hours_utilization == Decimal("120.00")
    assert f.budget_utilization == Decimal("72.00")
    assert f.allocation_utilization == Decimal("25.00")
    assert f.paid_amount == Decimal("750.00")
    assert f.pending_amount == Decimal("250.00")

    hours = f.variances["hours_cost"]
    assert hours.variance == Decimal("1000.00")
    assert hours.percentage == Decimal("20.00")
    assert hours.status == "over"

    consumables = f.variances["consumables"]
    assert consumables.variance == Decimal("-100.00")
    assert consumables.status == "under"

    assert f.variances["materials"].status == "on-track"
    assert f.variances["total"].variance == Decimal("900.00")


def test_loss_making_project_has_negative_profit():
    f = compute_project_financials(
        ProjectSnapshot(budget=Decimal("1000"), rate=Decimal("100"), actual_hours=Decimal("15"))
    )

    assert f.profit_loss == Decimal("-500.00")
    assert f.profit_loss_percentage == Decimal("-50.00")
    assert f.budget_utilization == Decimal("150.00")


def test_to_dict_is_flat_except_for_variances():
    data = compute_project_financials(ProjectSnapshot(budget=Decimal("100"))).to_dict()

    assert data["budget"] == Decimal("100.00")
    assert set(data["variances"]) == {"hours_cost", "consumables", "materials", "total"}
    assert data["variances"]["total"]["status"] == "on-track"
