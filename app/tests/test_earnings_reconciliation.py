from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.database import SessionLocal
from app.main import app
from app.models.user import User
from app.services import assignment_service, payment_service
from app.services.reconciliation_service import ReconciliationError, reconcile_employee_earnings

client = TestClient(app)


def _auth_headers(user) -> dict:
    resp = client.post("/auth/token", json={"user_id": user.id, "company_id": user.company_id})
    assert resp.status_code == 200, f"token request failed: {resp.status_code} {resp.text}"
    return {"X-Company-Id": str(user.company_id), "Authorization": f"Bearer {resp.json()['access_token']}"}


def _paid_and_pending(manager, employee, project_factory):
    confirmed_project = project_factory(created_by=manager, budget="5000")
    pending_project = project_factory(created_by=manager, budget="5000")

    a1 = assignment_service.create_assignment(1, confirmed_project.id, employee.id, "600", assigned_by=manager.id)
    a2 = assignment_service.create_assignment(1, pending_project.id, employee.id, "250", assigned_by=manager.id)
    for a in (a1, a2):
        assignment_service.accept_assignment(1, a.id, actor_id=employee.id)
        assignment_service.submit_work(1, a.id, actor_id=employee.id)
        assignment_service.verify_work(1, a.id, actor_id=manager.id)

    p1 = payment_service.request_payment(1, a1.id, actor_id=employee.id)
    payment_service.approve_payment_request(1, p1.id, actor_id=manager.id)
    payment_service.mark_payment_paid(1, p1.id, actor_id=manager.id, transaction_id="TX-9")
    payment_service.confirm_payment_received(1, p1.id, actor_id=employee.id)

    p2 = payment_service.request_payment(1, a2.id, actor_id=employee.id)
    payment_service.approve_payment_request(1, p2.id, actor_id=manager.id)


def test_reconciliation_passes_after_normal_lifecycle(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE")
    _paid_and_pending(manager, employee, project_factory)

    db = SessionLocal()
    try:
        report = reconcile_employee_earnings(company_id=1, employee_id=employee.id, db=db)
    finally:
        db.close()

    assert report["ok"] is True
    assert report["stored_total"] == Decimal("600.00")
    assert report["ledger_total"] == Decimal("600.00")
    assert report["stored_pending"] == Decimal("250.00")
    assert report["pending_delta"] == Decimal("0.00")


def test_reconciliation_detects_drift(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE")
    _paid_and_pending(manager, employee, project_factory)

    db = SessionLocal()
    try:
        row = db.query(User).filter(User.id == employee.id).one()
        row.pending_earnings = Decimal("999.00")
        db.commit()
    finally:
        db.close()

    db = SessionLocal()
    try:
        with pytest.raises(ReconciliationError) as exc:
            reconcile_employee_earnings(company_id=1, employee_id=employee.id, db=db)
    finally:
        db.close()

    assert exc.value.report["ok"] is False
    assert exc.value.report["pending_delta"] == Decimal("749.00")

    resp = client.get(f"/payments/reconciliation/{employee.id}", headers=_auth_headers(manager))
    assert resp.status_code == 200
    body = resp.json()
    assert body["ok"] is False
    assert "Earnings reconciliation failed" in body["detail"]


def test_reconciliation_endpoint_reports_ok(user_factory, project_factory):
    manager = user_factory(role="MANAGER")
    employee = user_factory(role="EMPLOYEE")
    _paid_and_pending(manager, employee, project_factory)

    resp = client.get(f"/payments/reconciliation/{employee.id}", headers=_auth_headers(manager))
    assert resp.status_code == 200, resp.text
    assert resp.json()["ok"] is True

    denied = client.get(f"/payments/reconciliation/{employee.id}", headers=_auth_headers(employee))
    assert denied.status_code == 403
