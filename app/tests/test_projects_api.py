from decimal import Decimal

from fastapi.testclient import TestClient

from app.main import app
from app.services import assignment_service

client = TestClient(app)


def _auth_headers(user) -> dict:
    resp = client.post("/auth/token", json={"user_id": user.id, "company_id": user.company_id})
    assert resp.status_code == 200, f"token request failed: {resp.status_code} {resp.text}"
    return {"X-Company-Id": str(user.company_id), "Authorization": f"Bearer {resp.json()['access_token']}"}


def test_projects_create_list_get_and_cross_company_isolation(user_factory):
    manager_1 = user_factory(company_id=12001, role="MANAGER")
    manager_2 = user_factory(company_id=12002, role="MANAGER")

    create = client.post(
        "/projects",
        headers=_auth_headers(manager_1),
        json={"name": "Project A", "budget": "2500.50", "project_type": "quoted"},
    )
    assert create.status_code == 201, create.text
    created = create.json()["data"]
    project_id = created["id"]
    assert created["company_id"] == 12001
    assert created["name"] == "Project A"
    assert created["status"] == "pending"
    assert created["currency"] == "USD"
    assert created["created_by"] == manager_1.id
    assert Decimal(str(created["budget"])) == Decimal("2500.50")
    assert Decimal(str(created["allocated_amount"])) == Decimal("0")

    listing = client.get("/projects", headers=_auth_headers(manager_1))
    assert listing.status_code == 200
    assert [row["id"] for row in listing.json()["data"]] == [project_id]

    assert client.get(f"/projects/{project_id}", headers=_auth_headers(manager_1)).status_code == 200
    assert client.get(f"/projects/{project_id}", headers=_auth_headers(manager_2)).status_code == 404


def test_invalid_project_values_are_refused(user_factory):
    manager = user_factory(role="MANAGER")

    bad_status = client.post("/projects", headers=_auth_headers(manager), json={"name": "X", "status": "done"})
    assert bad_status.status_code == 400
    assert bad_status.json()["message"] == "Invalid project status: done"

    negative = client.post("/projects", headers=_auth_headers(manager), json={"name": "X", "budget": "-1"})
    assert negative.status_code == 400


def test_budget_cannot_drop_below_allocations(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE")
    project = project_factory(created_by=manager, budget="1000")
    assignment_service.create_assignment(1, project.id, employee.id, "700", assigned_by=manager.id)

    too_low = client.patch(f"/projects/{project.id}", headers=_auth_headers(manager), json={"budget": "500"})
    assert too_low.status_code == 400
    assert too_low.json()["message"] == "Budget cannot be lower than the allocated amount (700.00)"

    ok = client.patch(
        f"/projects/{project.id}",
        headers=_auth_headers(manager),
        json={"budget": "1500", "status": "in-progress"},
    )
    assert ok.status_code == 200, ok.text
    assert Decimal(str(ok.json()["data"]["budget"])) == Decimal("1500")
    assert ok.json()["data"]["status"] == "in-progress"


def test_employees_only_see_assigned_projects(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE")
    assigned = project_factory(created_by=manager)
    hidden = project_factory(created_by=manager)
    assignment_service.create_assignment(1, assigned.id, employee.id, "100", assigned_by=manager.id)

    listing = client.get("/projects", headers=_auth_headers(employee))
    assert listing.status_code == 200
    assert [row["id"] for row in listing.json()["data"]] == [assigned.id]

    assert client.get(f"/projects/{assigned.id}", headers=_auth_headers(employee)).status_code == 200
    assert client.get(f"/projects/{hidden.id}", headers=_auth_headers(employee)).status_code == 403

    create = client.post("/projects", headers=_auth_headers(employee), json={"name": "Nope"})
    assert create.status_code == 403
