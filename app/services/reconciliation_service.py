from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.earnings_entry import EarningsEntry
from app.models.payment import Payment
from app.services.lookups import get_user, money

# Payments whose amount currently sits in pending_earnings.
PENDING_REQUEST_STATUSES = ("requested", "approved", "paid")


class ReconciliationError(ValueError):
    def __init__(self, message: str, report: dict):
        super().__init__(message)
        self.report = report


def _sum_payments(db: Session, company_id: int, employee_id: int, statuses) -> object:
    return (
        db.query(func.coalesce(func.sum(Payment.amount), 0))
        .filter(Payment.company_id == int(company_id))
        .filter(Payment.employee_id == int(employee_id))
        .filter(Payment.request_status.in_(tuple(statuses)))
        .scalar()
    )


def reconcile_employee_earnings(*, company_id: int, employee_id: int, db: Session) -> dict:
    """
    Enforce invariants for one employee:
      users.pending_earnings == SUM(payments.amount) where request_status in (requested, approved, paid)
      users.total_earnings   == SUM(payments.amount) where request_status = confirmed
                             == SUM(earnings_entries.amount)
    """
    employee = get_user(db, company_id, employee_id)

    expected_pending = money(_sum_payments(db, company_id, employee_id, PENDING_REQUEST_STATUSES))
    expected_total = money(_sum_payments(db, company_id, employee_id, ("confirmed",)))

    ledger_total = money(
        db.query(func.coalesce(func.sum(EarningsEntry.amount), 0))
        .filter(EarningsEntry.company_id == int(company_id))
        .filter(EarningsEntry.user_id == int(employee_id))
        .scalar()
    )

    stored_pending = money(employee.pending_earnings)
    stored_total = money(employee.total_earnings)

    report = {
        "employee_id": employee.id,
        "stored_pending": stored_pending,
        "expected_pending": expected_pending,
        "stored_total": stored_total,
        "expected_total": expected_total,
        "ledger_total": ledger_total,
        "pending_delta": stored_pending - expected_pending,
        "total_delta": stored_total - expected_total,
        "ok": True,
    }

    if stored_pending != expected_pending or stored_total != expected_total or ledger_total != expected_total:
        report["ok"] = False
        raise ReconciliationError(
            f"Earnings reconciliation failed: pending={stored_pending} (expected {expected_pending}), "
            f"total={stored_total} (expected {expected_total}), ledger_total={ledger_total}",
            report,
        )

    return report
