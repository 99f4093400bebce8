from decimal import Decimal

from fastapi.testclient import TestClient

from app.main import app
from app.services import assignment_service, payment_service

client = TestClient(app)


def _auth_headers(user) -> dict:
    resp = client.post("/auth/token", json={"user_id": user.id, "company_id": user.company_id})
    assert resp.status_code == 200, f"token request failed: {resp.status_code} {resp.text}"
    return {"X-Company-Id": str(user.company_id), "Authorization": f"Bearer {resp.json()['access_token']}"}


def _d(value) -> Decimal:
    return Decimal(str(value))


def test_project_financials_include_payment_breakdown(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    e1 = user_factory(role="EMPLOYEE")
    e2 = user_factory(role="EMPLOYEE")
    project = project_factory(
        created_by=manager,
        budget="10000",
        rate=Decimal("50"),
        estimated_hours=Decimal("100"),
        actual_hours=Decimal("80"),
    )

    a1 = assignment_service.create_assignment(1, project.id, e1.id, "1000", assigned_by=manager.id)
    a2 = assignment_service.create_assignment(1, project.id, e2.id, "500", assigned_by=manager.id)
    for assignment, employee in ((a1, e1), (a2, e2)):
        assignment_service.accept_assignment(1, assignment.id, actor_id=employee.id)
        assignment_service.submit_work(1, assignment.id, actor_id=employee.id)
        assignment_service.verify_work(1, assignment.id, actor_id=manager.id)

    p1 = payment_service.request_payment(1, a1.id, actor_id=e1.id)
    payment_service.approve_payment_request(1, p1.id, actor_id=manager.id)
    payment_service.mark_payment_paid(1, p1.id, actor_id=manager.id, transaction_id="TX-1")
    payment_service.request_payment(1, a2.id, actor_id=e2.id)

    resp = client.get(f"/finance/projects/{project.id}", headers=_auth_headers(manager))
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]

    assert data["project_id"] == project.id
    assert _d(data["budget"]) == Decimal("10000.00")
    assert _d(data["allocated_amount"]) == Decimal("1500.00")
    assert _d(data["remaining_budget"]) == Decimal("8500.00")
    assert _d(data["paid_amount"]) == Decimal("1000.00")
    assert _d(data["pending_amount"]) == Decimal("500.00")
    assert _d(data["actual_total_cost"]) == Decimal("4000.00")
    assert _d(data["profit_loss"]) == Decimal("6000.00")
    assert data["payment_breakdown"]["paid_count"] == 1
    assert data["payment_breakdown"]["pending_count"] == 1

    pl = client.get(f"/finance/projects/{project.id}/profit-loss", headers=_auth_headers(manager))
    assert pl.status_code == 200
    assert "payment_breakdown" not in pl.json()["data"]
    assert _d(pl.json()["data"]["profit_loss_percentage"]) == Decimal("60.00")


def test_overview_counts_projects_by_status_and_sums_budgets(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    other_manager = user_factory(role="MANAGER")
    project_factory(created_by=manager, budget="1000", status="in-progress")
    project_factory(created_by=manager, budget="2000", status="completed")
    project_factory(created_by=other_manager, budget="4000")

    resp = client.get("/finance/overview", headers=_auth_headers(manager))
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["summary"]["total_projects"] == 3
    assert _d(data["summary"]["total_budget"]) == Decimal("7000.00")
    assert data["by_status"]["in-progress"] == 1
    assert data["by_status"]["completed"] == 1
    assert data["by_status"]["pending"] == 1

    mine = client.get("/finance/overview?mine=true", headers=_auth_headers(manager)).json()["data"]
    assert mine["summary"]["total_projects"] == 2
    assert _d(mine["summary"]["total_budget"]) == Decimal("3000.00")


def test_overview_with_no_projects_is_all_zero(user_factory):
    manager = user_factory(role="MANAGER")

    data = client.get("/finance/overview", headers=_auth_headers(manager)).json()["data"]
    assert data["summary"]["total_projects"] == 0
    assert _d(data["summary"]["overall_profit_loss_percentage"]) == Decimal("0.00")
    assert data["projects"] == []


def test_resource_comparison_and_employee_allocations(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE", full_name="Dana")
    project = project_factory(created_by=manager, budget="3000", actual_hours=Decimal("10"))

    assignment = assignment_service.create_assignment(1, project.id, employee.id, "1200", assigned_by=manager.id)
    assignment_service.update_assignment_tracking(1, assignment.id, changes={"actual_hours": "6"})

    comparison = client.get(f"/finance/projects/{project.id}/resource-comparison", headers=_auth_headers(manager))
    assert comparison.status_code == 200, comparison.text
    data = comparison.json()["data"]
    assert _d(data["project_level"]["actual_hours"]) == Decimal("10.00")
    assert _d(data["assignment_totals"]["actual_hours"]) == Decimal("6.00")
    assert _d(data["difference"]["actual_hours"]) == Decimal("-4.00")

    allocations = client.get("/finance/employee-allocations", headers=_auth_headers(manager))
    assert allocations.status_code == 200, allocations.text
    data = allocations.json()["data"]
    assert data["summary"]["total_employees"] == 1
    assert _d(data["summary"]["remaining_to_allocate"]) == Decimal("1800.00")
    assert data["employees"][0]["employee_name"] == "Dana"
    assert _d(data["employees"][0]["total_allocated"]) == Decimal("1200.00")


def test_income_summary_groups_by_type(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    project_factory(created_by=manager, budget="1000", project_type="quoted")
    project_factory(created_by=manager, budget="3000", project_type="quoted")
    project_factory(created_by=manager, budget="500", project_type="time_and_materials")

    resp = client.get("/finance/income-summary", headers=_auth_headers(manager))
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["summary"]["total_projects"] == 3
    assert _d(data["summary"]["total_revenue"]) == Decimal("4500.00")
    assert _d(data["summary"]["average_project_budget"]) == Decimal("1500.00")
    assert data["by_project_type"]["quoted"]["count"] == 2
    assert _d(data["by_project_type"]["time_and_materials"]["revenue"]) == Decimal("500.00")

    quoted = client.get("/finance/income-summary?project_type=quoted", headers=_auth_headers(manager)).json()["data"]
    assert quoted["summary"]["total_projects"] == 2


def test_finance_is_manager_only(user_factory, project_factory):
    employee = user_factory(role="EMPLOYEE")

    resp = client.get("/finance/overview", headers=_auth_headers(employee))
    assert resp.status_code == 403
