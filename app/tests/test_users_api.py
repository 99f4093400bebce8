from decimal import Decimal

from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)


def _auth_headers(user) -> dict:
    resp = client.post("/auth/token", json={"user_id": user.id, "company_id": user.company_id})
    assert resp.status_code == 200, f"token request failed: {resp.status_code} {resp.text}"
    data = resp.json()
    assert isinstance(data, dict), f"token response not a JSON object: {data}"
    assert "access_token" in data, f"token response missing access_token: {data}"
    return {"X-Company-Id": str(user.company_id), "Authorization": f"Bearer {data['access_token']}"}


def test_users_create_list_get_and_cross_company_isolation(user_factory):
    manager_1 = user_factory(company_id=11001, role="MANAGER")
    manager_2 = user_factory(company_id=11002, role="MANAGER")

    create = client.post(
        "/users",
        headers=_auth_headers(manager_1),
        json={"email": "Alice@Example.com", "full_name": "Alice", "position": "Surveyor"},
    )
    assert create.status_code == 201, create.text
    created = create.json()["data"]
    user_id = created["id"]
    assert created["company_id"] == 11001
    assert created["email"] == "alice@example.com"
    assert created["role"] == "EMPLOYEE"
    assert created["is_active"] is True

    listing = client.get("/users?role=employee", headers=_auth_headers(manager_1))
    assert listing.status_code == 200
    assert [row["id"] for row in listing.json()["data"]] == [user_id]

    get_own = client.get(f"/users/{user_id}", headers=_auth_headers(manager_1))
    assert get_own.status_code == 200
    assert get_own.json()["data"]["id"] == user_id

    get_other = client.get(f"/users/{user_id}", headers=_auth_headers(manager_2))
    assert get_other.status_code == 404


def test_duplicate_email_is_refused(user_factory):
    manager = user_factory(role="MANAGER")
    body = {"email": "dup@example.com"}

    assert client.post("/users", headers=_auth_headers(manager), json=body).status_code == 201
    again = client.post("/users", headers=_auth_headers(manager), json=body)
    assert again.status_code == 400
    assert again.json()["message"] == "A user with this email already exists"


def test_only_admins_create_managers(user_factory):
    admin = user_factory(role="ADMIN")
    manager = user_factory(role="MANAGER")

    denied = client.post(
        "/users",
        headers=_auth_headers(manager),
        json={"email": "boss@example.com", "role": "MANAGER"},
    )
    assert denied.status_code == 403

    allowed = client.post(
        "/users",
        headers=_auth_headers(admin),
        json={"email": "boss@example.com", "role": "MANAGER"},
    )
    assert allowed.status_code == 201, allowed.text
    assert allowed.json()["data"]["role"] == "MANAGER"


def test_employee_sees_only_own_profile(user_factory):
    employee = user_factory(role="EMPLOYEE")
    other = user_factory(role="EMPLOYEE")

    me = client.get("/users/me", headers=_auth_headers(employee))
    assert me.status_code == 200
    assert me.json()["data"]["id"] == employee.id
    assert Decimal(str(me.json()["data"]["total_earnings"])) == Decimal("0")

    assert client.get(f"/users/{employee.id}", headers=_auth_headers(employee)).status_code == 200
    assert client.get(f"/users/{other.id}", headers=_auth_headers(employee)).status_code == 403
    assert client.get("/users", headers=_auth_headers(employee)).status_code == 403
