import warnings
from decimal import Decimal
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.core.errors import ValidationError
from app.database import SessionLocal
from app.main import app
from app.models.earnings_entry import EarningsEntry
from app.models.notification import Notification
from app.models.project import Project
from app.models.user import User
from app.services import assignment_service, payment_service

client = TestClient(app)


def _auth_headers(user) -> dict:
    resp = client.post("/auth/token", json={"user_id": user.id, "company_id": user.company_id})
    assert resp.status_code == 200, f"token request failed: {resp.status_code} {resp.text}"
    return {"X-Company-Id": str(user.company_id), "Authorization": f"Bearer {resp.json()['access_token']}"}


def _verified_assignment(manager, employee, project, amount="750"):
    company_id = manager.company_id
    assignment = assignment_service.create_assignment(company_id, project.id, employee.id, amount, assigned_by=manager.id)
    assignment_service.accept_assignment(company_id, assignment.id, actor_id=employee.id)
    assignment_service.submit_work(company_id, assignment.id, actor_id=employee.id)
    assignment_service.verify_work(company_id, assignment.id, actor_id=manager.id)
    return assignment


def _earnings(user_id: int):
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.id == user_id).one()
        return Decimal(str(user.pending_earnings)), Decimal(str(user.total_earnings))
    finally:
        db.close()


def test_request_approve_pay_confirm_moves_earnings(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE")
    project = project_factory(created_by=manager, budget="2000")
    assignment = _verified_assignment(manager, employee, project)

    requested = client.post(
        "/payments/request",
        headers=_auth_headers(employee),
        json={"assignment_id": assignment.id, "notes": "milestone 1"},
    )
    assert requested.status_code == 201, requested.text
    payment = requested.json()["payment"]
    assert payment["request_status"] == "requested"
    assert payment["status"] == "pending"
    assert Decimal(payment["amount"]) == Decimal("750.00")
    assert _earnings(employee.id) == (Decimal("750.00"), Decimal("0.00"))

    approved = client.post(
        f"/payments/{payment['id']}/approve",
        headers=_auth_headers(manager),
        json={"notes": "ok", "scheduled_date": "2026-11-01"},
    )
    assert approved.status_code == 200, approved.text
    assert approved.json()["payment"]["request_status"] == "approved"
    assert approved.json()["payment"]["status"] == "processing"
    assert approved.json()["payment"]["scheduled_date"] == "2026-11-01"

    paid = client.post(
        f"/payments/{payment['id']}/mark-paid",
        headers=_auth_headers(manager),
        json={"transaction_id": "TX-1001"},
    )
    assert paid.status_code == 200, paid.text
    assert paid.json()["payment"]["request_status"] == "paid"
    assert paid.json()["payment"]["status"] == "completed"
    assert paid.json()["payment"]["transaction_id"] == "TX-1001"

    db = SessionLocal()
    try:
        assert Decimal(str(db.query(Project).filter(Project.id == project.id).one().spent_amount)) == Decimal("750.00")
    finally:
        db.close()

    confirmed = client.post(
        f"/payments/{payment['id']}/confirm",
        headers=_auth_headers(employee),
        json={"notes": "received"},
    )
    assert confirmed.status_code == 200, confirmed.text
    body = confirmed.json()
    assert body["payment"]["request_status"] == "confirmed"
    assert body["payment"]["employee_confirmation"] is True
    assert Decimal(str(body["earnings"]["total_earnings"])) == Decimal("750.00")
    assert Decimal(str(body["earnings"]["pending_earnings"])) == Decimal("0.00")
    assert _earnings(employee.id) == (Decimal("0.00"), Decimal("750.00"))

    db = SessionLocal()
    try:
        entries = db.query(EarningsEntry).filter(EarningsEntry.user_id == employee.id).all()
        assert len(entries) == 1
        assert Decimal(str(entries[0].amount)) == Decimal("750.00")
        assert entries[0].payment_id == payment["id"]
    finally:
        db.close()

    twice = client.post(f"/payments/{payment['id']}/confirm", headers=_auth_headers(employee), json={})
    assert twice.status_code == 400
    assert twice.json()["message"] == "Payment already confirmed"
    assert _earnings(employee.id) == (Decimal("0.00"), Decimal("750.00"))


def test_rejected_payment_restores_pending_and_notifies_with_reason(
    user_factory, project_factory, deliver_notifications
):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE")
    project = project_factory(created_by=manager, budget="2000", name="Harbor Bridge")
    assignment = _verified_assignment(manager, employee, project, amount="400")

    payment = client.post(
        "/payments/request",
        headers=_auth_headers(employee),
        json={"assignment_id": assignment.id},
    ).json()["payment"]
    assert _earnings(employee.id)[0] == Decimal("400.00")

    no_reason = client.post(f"/payments/{payment['id']}/reject", headers=_auth_headers(manager), json={})
    assert no_reason.status_code == 400
    assert no_reason.json()["message"] == "Rejection reason is required"

    rejected = client.post(
        f"/payments/{payment['id']}/reject",
        headers=_auth_headers(manager),
        json={"reason": "Invoice missing"},
    )
    assert rejected.status_code == 200, rejected.text
    assert rejected.json()["payment"]["request_status"] == "rejected"
    assert rejected.json()["payment"]["rejected_reason"] == "Invoice missing"
    assert _earnings(employee.id) == (Decimal("0.00"), Decimal("0.00"))

    deliver_notifications()

    db = SessionLocal()
    try:
        notes = (
            db.query(Notification)
            .filter(Notification.user_id == employee.id, Notification.related_type == "payment")
            .all()
        )
        rejection = [n for n in notes if n.title == "Payment Rejected"]
        assert len(rejection) == 1
        assert "Invoice missing" in rejection[0].message
        assert "Harbor Bridge" in rejection[0].message
    finally:
        db.close()

    approve_after_reject = client.post(
        f"/payments/{payment['id']}/approve", headers=_auth_headers(manager), json={}
    )
    assert approve_after_reject.status_code == 400


def test_duplicate_request_for_same_assignment_is_refused(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE")
    project = project_factory(created_by=manager)
    assignment = _verified_assignment(manager, employee, project)

    first = client.post("/payments/request", headers=_auth_headers(employee), json={"assignment_id": assignment.id})
    assert first.status_code == 201

    second = client.post("/payments/request", headers=_auth_headers(employee), json={"assignment_id": assignment.id})
    assert second.status_code == 400
    assert second.json()["message"] == "Payment already exists with status: requested"
    assert _earnings(employee.id)[0] == Decimal("750.00")


def test_request_for_someone_elses_assignment_is_forbidden(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE")
    other = user_factory(role="EMPLOYEE")
    project = project_factory(created_by=manager)
    assignment = _verified_assignment(manager, employee, project)

    resp = client.post("/payments/request", headers=_auth_headers(other), json={"assignment_id": assignment.id})
    assert resp.status_code == 403


def test_confirm_before_paid_is_refused(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE")
    project = project_factory(created_by=manager)
    assignment = _verified_assignment(manager, employee, project)

    payment = client.post(
        "/payments/request", headers=_auth_headers(employee), json={"assignment_id": assignment.id}
    ).json()["payment"]

    resp = client.post(f"/payments/{payment['id']}/confirm", headers=_auth_headers(employee), json={})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Payment has not been processed yet"


def test_direct_payment_then_confirm_nets_pending_to_zero(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE")
    project = project_factory(created_by=manager, budget="5000")

    missing_proof = client.post(
        "/payments",
        headers=_auth_headers(manager),
        json={"employee_id": employee.id, "amount": "120.00", "project_id": project.id},
    )
    assert missing_proof.status_code == 400
    assert "Transaction proof is required" in missing_proof.json()["message"]

    created = client.post(
        "/payments",
        headers=_auth_headers(manager),
        json={
            "employee_id": employee.id,
            "amount": "120.00",
            "project_id": project.id,
            "payment_type": "bonus",
            "transaction_proof_link": "https://bank.example.com/tx/77",
        },
    )
    assert created.status_code == 201, created.text
    payment = created.json()["payment"]
    assert payment["request_status"] == "paid"
    assert payment["assignment_id"] is None
    assert _earnings(employee.id) == (Decimal("120.00"), Decimal("0.00"))

    confirmed = client.post(f"/payments/{payment['id']}/confirm", headers=_auth_headers(employee), json={})
    assert confirmed.status_code == 200, confirmed.text
    assert _earnings(employee.id) == (Decimal("0.00"), Decimal("120.00"))

    mine = client.get("/payments/mine", headers=_auth_headers(employee))
    assert mine.status_code == 200
    data = mine.json()["data"]
    assert [p["id"] for p in data["payments"]] == [payment["id"]]
    assert Decimal(str(data["total_earnings"])) == Decimal("120.00")


def test_payment_visibility_and_listing(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE")
    other = user_factory(role="EMPLOYEE")
    project = project_factory(created_by=manager)
    assignment = _verified_assignment(manager, employee, project)

    payment = client.post(
        "/payments/request", headers=_auth_headers(employee), json={"assignment_id": assignment.id}
    ).json()["payment"]

    assert client.get(f"/payments/{payment['id']}", headers=_auth_headers(employee)).status_code == 200
    assert client.get(f"/payments/{payment['id']}", headers=_auth_headers(manager)).status_code == 200
    assert client.get(f"/payments/{payment['id']}", headers=_auth_headers(other)).status_code == 403

    listing = client.get("/payments?request_status=requested", headers=_auth_headers(manager))
    assert listing.status_code == 200
    assert [p["id"] for p in listing.json()["data"]] == [payment["id"]]

    empty = client.get("/payments?request_status=confirmed", headers=_auth_headers(manager))
    assert empty.json()["data"] == []

    assert client.get("/payments", headers=_auth_headers(employee)).status_code == 403

    edited = client.patch(
        f"/payments/{payment['id']}",
        headers=_auth_headers(manager),
        json={"description": "Milestone 1", "payment_method": "cash"},
    )
    assert edited.status_code == 200, edited.text
    assert edited.json()["payment"]["description"] == "Milestone 1"
    assert edited.json()["payment"]["payment_method"] == "cash"


def test_request_requires_accepted_and_verified_work(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE")
    project = project_factory(created_by=manager)
    assignment = assignment_service.create_assignment(1, project.id, employee.id, "300", assigned_by=manager.id)

    def _request():
        return client.post("/payments/request", headers=_auth_headers(employee), json={"assignment_id": assignment.id})

    pending = _request()
    assert pending.status_code == 400
    assert "not_started" in pending.json()["message"]

    assignment_service.accept_assignment(1, assignment.id, actor_id=employee.id)
    in_progress = _request()
    assert in_progress.status_code == 400
    assert "in_progress" in in_progress.json()["message"]

    assignment_service.submit_work(1, assignment.id, actor_id=employee.id)
    submitted = _request()
    assert submitted.status_code == 400
    assert _earnings(employee.id) == (Decimal("0.00"), Decimal("0.00"))

    assignment_service.verify_work(1, assignment.id, actor_id=manager.id)
    verified = _request()
    assert verified.status_code == 201, verified.text
    assert _earnings(employee.id) == (Decimal("300.00"), Decimal("0.00"))


def test_request_status_never_moves_backwards(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE")
    project = project_factory(created_by=manager)
    assignment = _verified_assignment(manager, employee, project)
    pid = client.post(
        "/payments/request", headers=_auth_headers(employee), json={"assignment_id": assignment.id}
    ).json()["payment"]["id"]

    def _status() -> str:
        return client.get(f"/payments/{pid}", headers=_auth_headers(manager)).json()["payment"]["request_status"]

    def _refused(path: str, user, body: dict) -> None:
        before = _status()
        resp = client.post(f"/payments/{pid}/{path}", headers=_auth_headers(user), json=body)
        assert resp.status_code == 400, f"{path} from {before}: {resp.text}"
        assert resp.json()["success"] is False
        assert _status() == before

    _refused("mark-paid", manager, {"transaction_id": "TX-EARLY"})

    assert client.post(f"/payments/{pid}/approve", headers=_auth_headers(manager), json={}).status_code == 200
    _refused("approve", manager, {})
    _refused("reject", manager, {"reason": "too late"})

    paid = client.post(f"/payments/{pid}/mark-paid", headers=_auth_headers(manager), json={"transaction_id": "TX-2"})
    assert paid.status_code == 200
    _refused("approve", manager, {})
    _refused("mark-paid", manager, {"transaction_id": "TX-3"})

    assert client.post(f"/payments/{pid}/confirm", headers=_auth_headers(employee), json={}).status_code == 200
    _refused("approve", manager, {})
    _refused("reject", manager, {"reason": "reversal"})
    _refused("mark-paid", manager, {"transaction_id": "TX-4"})
    assert _earnings(employee.id) == (Decimal("0.00"), Decimal("750.00"))


def test_oversized_amounts_are_refused_as_bad_requests(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE")
    project = project_factory(created_by=manager)

    assign = client.post(
        "/assignments",
        headers=_auth_headers(manager),
        json={"project_id": project.id, "employee_id": employee.id, "allocated_amount": "1e30"},
    )
    assert assign.status_code == 400
    assert assign.json()["success"] is False

    direct = client.post(
        "/payments",
        headers=_auth_headers(manager),
        json={"employee_id": employee.id, "amount": "1e30", "transaction_id": "TX-BIG"},
    )
    assert direct.status_code == 400
    assert direct.json()["success"] is False

    with pytest.raises(ValidationError):
        payment_service.create_direct_payment(
            1, actor_id=manager.id, employee_id=employee.id, amount="1e30", transaction_id="TX-BIG"
        )
    assert _earnings(employee.id) == (Decimal("0.00"), Decimal("0.00"))


def test_direct_payment_without_project_uses_default_currency(user_factory, monkeypatch):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE")
    monkeypatch.setenv("DEFAULT_CURRENCY", "EUR")

    payment = payment_service.create_direct_payment(
        1, actor_id=manager.id, employee_id=employee.id, amount="50", payment_type="bonus", transaction_id="TX-EUR"
    )
    assert payment.currency == "EUR"
    assert payment.project_id is None


def test_payment_service_source_compiles_without_warnings():
    source = Path(payment_service.__file__).read_text()
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        compile(source, payment_service.__file__, "exec")
