"""
Payment lifecycle and employee earnings bookkeeping.

    not_requested -> requested -> approved -> paid -> confirmed
    requested -> rejected
    direct payments are created at paid

request_status never moves backwards. Money moves on three edges only:
  request / direct create : employee.pending_earnings += amount
  reject                  : employee.pending_earnings -= amount
  confirm                 : pending -= amount, total += amount, EarningsEntry appended
Marking a payment paid (and creating a direct payment) adds to project.spent_amount.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import default_currency
from app.core.errors import AuthorizationError, ConflictError, ValidationError
from app.database import session_scope
from app.models.earnings_entry import EarningsEntry
from app.models.payment import PAYMENT_METHODS, PAYMENT_TYPES, REQUEST_STATUS_RANK, Payment
from app.models.project import Project
from app.models.user import User
from app.services.lookups import (
    fmt_money,
    get_assignment,
    get_payment,
    get_project,
    get_user,
    money,
    utcnow,
)
from app.services.notification_service import NotificationEvent, emit

logger = logging.getLogger(__name__)

# Fields a manager may edit after creation. Status fields move only through transitions.
EDITABLE_FIELDS = ("description", "due_date", "payment_method")


@dataclass(frozen=True)
class EmployeePayments:
    payments: List[Payment]
    total_confirmed: Decimal


def _advance(payment: Payment, new_status: str) -> None:
    old_rank = REQUEST_STATUS_RANK[payment.request_status]
    if REQUEST_STATUS_RANK[new_status] <= old_rank:
        raise ConflictError(f"Payment is already {payment.request_status}")
    payment.request_status = new_status


def _require_status(payment: Payment, expected: str) -> None:
    if payment.request_status != expected:
        raise ConflictError(f"Payment is already {payment.request_status}")


def _project_name(db: Session, payment: Payment) -> str:
    if payment.project_id is None:
        return "general"
    project = db.query(Project).filter(Project.id == payment.project_id).first()
    return project.name if project is not None else "general"


def _notify(db: Session, payment: Payment, recipient_id: Optional[int], template: str, context: Dict[str, Any]) -> None:
    if recipient_id is None:
        return
    emit(
        db,
        NotificationEvent(
            company_id=int(payment.company_id),
            recipient_id=int(recipient_id),
            template=template,
            related_id=int(payment.id),
            related_type="payment",
            context=context,
        ),
    )


def _project_creator(db: Session, payment: Payment) -> Optional[int]:
    if payment.project_id is None:
        return payment.approved_by
    project = db.query(Project).filter(Project.id == payment.project_id).first()
    return None if project is None else int(project.created_by)


def _log_transition(payment: Payment, action: str, actor_id: int) -> None:
    logger.info(
        "Payment transition",
        extra={
            "action": action,
            "payment_id": payment.id,
            "employee_id": payment.employee_id,
            "project_id": payment.project_id,
            "actor_id": int(actor_id),
            "request_status": payment.request_status,
            "status": payment.status,
            "amount": str(payment.amount),
        },
    )


def request_payment(
    company_id: int,
    assignment_id: int,
    *,
    actor_id: int,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> Payment:
    if now is None:
        now = utcnow()

    with session_scope(db) as db:
        assignment = get_assignment(db, company_id, assignment_id, lock=True)
        if int(assignment.employee_id) != int(actor_id):
            raise AuthorizationError("You can only request payment for your own assignments")

        if not assignment.is_active or assignment.assignment_status == "rejected":
            raise ConflictError("Payment cannot be requested for an inactive or rejected assignment")

        if assignment.assignment_status != "accepted" or assignment.work_status != "verified":
            raise ConflictError(
                f"Payment request not allowed. Your work status is '{assignment.work_status}'. "
                "Only verified work can request payment."
            )

        existing = db.query(Payment).filter(Payment.assignment_id == assignment.id).first()
        if existing is not None:
            raise ConflictError(f"Payment already exists with status: {existing.request_status}")

        employee = get_user(db, company_id, assignment.employee_id, lock=True)

        payment = Payment(
            company_id=int(company_id),
            employee_id=employee.id,
            project_id=assignment.project_id,
            assignment_id=assignment.id,
            amount=money(assignment.allocated_amount),
            currency=assignment.currency,
            payment_type="project_payment",
            request_status="not_requested",
            status="pending",
            employee_confirmation=False,
            description=f"Payment for assignment #{assignment.id}",
            request_notes=notes,
        )
        _advance(payment, "requested")
        payment.requested_at = now
        payment.requested_by = int(actor_id)
        db.add(payment)

        employee.pending_earnings = money(employee.pending_earnings) + money(payment.amount)
        db.flush()

        project = get_project(db, company_id, assignment.project_id)
        _notify(
            db,
            payment,
            project.created_by,
            "payment_requested",
            {
                "employee_name": employee.display_name,
                "amount": fmt_money(payment.amount),
                "currency": payment.currency,
                "project_name": project.name,
            },
        )
        _log_transition(payment, "request", actor_id)
        return payment


def approve_payment_request(
    company_id: int,
    payment_id: int,
    *,
    actor_id: int,
    notes: Optional[str] = None,
    scheduled_date: Optional[date] = None,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> Payment:
    if now is None:
        now = utcnow()

    with session_scope(db) as db:
        payment = get_payment(db, company_id, payment_id, lock=True)
        _require_status(payment, "requested")

        _advance(payment, "approved")
        payment.status = "processing"
        payment.approved_at = now
        payment.approved_by = int(actor_id)
        payment.approval_notes = notes
        payment.scheduled_date = scheduled_date
        db.flush()

        _notify(
            db,
            payment,
            payment.employee_id,
            "payment_approved",
            {
                "amount": fmt_money(payment.amount),
                "currency": payment.currency,
                "project_name": _project_name(db, payment),
                "scheduled_date": scheduled_date.isoformat() if scheduled_date is not None else None,
            },
        )
        _log_transition(payment, "approve", actor_id)
        return payment


def reject_payment_request(
    company_id: int,
    payment_id: int,
    *,
    actor_id: int,
    reason: Optional[str],
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> Payment:
    if not reason or not reason.strip():
        raise ValidationError("Rejection reason is required")

    if now is None:
        now = utcnow()

    with session_scope(db) as db:
        payment = get_payment(db, company_id, payment_id, lock=True)
        _require_status(payment, "requested")

        employee = get_user(db, company_id, payment.employee_id, lock=True)

        _advance(payment, "rejected")
        payment.status = "cancelled"
        payment.rejected_at = now
        payment.rejected_by = int(actor_id)
        payment.rejected_reason = reason.strip()
        employee.pending_earnings = money(employee.pending_earnings) - money(payment.amount)
        db.flush()

        _notify(
            db,
            payment,
            payment.employee_id,
            "payment_rejected",
            {"project_name": _project_name(db, payment), "reason": payment.rejected_reason},
        )
        _log_transition(payment, "reject", actor_id)
        return payment


def mark_payment_paid(
    company_id: int,
    payment_id: int,
    *,
    actor_id: int,
    transaction_id: Optional[str] = None,
    transaction_proof_link: Optional[str] = None,
    proof_of_payment: Optional[str] = None,
    payment_date: Optional[date] = None,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> Payment:
    if now is None:
        now = utcnow()

    with session_scope(db) as db:
        payment = get_payment(db, company_id, payment_id, lock=True)
        _require_status(payment, "approved")

        _advance(payment, "paid")
        payment.status = "completed"
        payment.paid_at = now
        payment.payment_date = payment_date or now.date()
        if transaction_id is not None:
            payment.transaction_id = transaction_id
        if transaction_proof_link is not None:
            payment.transaction_proof_link = transaction_proof_link
        if proof_of_payment is not None:
            payment.proof_of_payment = proof_of_payment

        if payment.project_id is not None:
            project = get_project(db, company_id, payment.project_id, lock=True)
            project.spent_amount = money(project.spent_amount) + money(payment.amount)
        db.flush()

        _notify(
            db,
            payment,
            payment.employee_id,
            "payment_processed",
            {
                "amount": fmt_money(payment.amount),
                "currency": payment.currency,
                "project_name": _project_name(db, payment),
            },
        )
        _log_transition(payment, "mark_paid", actor_id)
        return payment


def confirm_payment_received(
    company_id: int,
    payment_id: int,
    *,
    actor_id: int,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> Payment:
    if now is None:
        now = utcnow()

    with session_scope(db) as db:
        payment = get_payment(db, company_id, payment_id, lock=True)
        if int(payment.employee_id) != int(actor_id):
            raise AuthorizationError("You can only confirm your own payments")

        if payment.employee_confirmation:
            raise ConflictError("Payment already confirmed")
        if payment.request_status != "paid":
            raise ConflictError("Payment has not been processed yet")

        employee = get_user(db, company_id, payment.employee_id, lock=True)
        amount = money(payment.amount)

        _advance(payment, "confirmed")
        payment.employee_confirmation = True
        payment.confirmed_at = now
        payment.confirmation_notes = notes

        employee.pending_earnings = money(employee.pending_earnings) - amount
        employee.total_earnings = money(employee.total_earnings) + amount
        employee.last_payment_date = now
        employee.last_payment_amount = amount

        db.add(
            EarningsEntry(
                company_id=int(company_id),
                user_id=employee.id,
                project_id=payment.project_id,
                payment_id=payment.id,
                amount=amount,
                currency=payment.currency,
                confirmed_at=now,
            )
        )
        db.flush()

        _notify(
            db,
            payment,
            _project_creator(db, payment),
            "payment_confirmed",
            {"employee_name": employee.display_name, "project_name": _project_name(db, payment)},
        )
        _log_transition(payment, "confirm", actor_id)
        return payment


def create_direct_payment(
    company_id: int,
    *,
    actor_id: int,
    employee_id: int,
    amount: Any,
    project_id: Optional[int] = None,
    currency: Optional[str] = None,
    payment_type: str = "project_payment",
    payment_method: str = "bank_transfer",
    description: Optional[str] = None,
    transaction_id: Optional[str] = None,
    transaction_proof_link: Optional[str] = None,
    proof_of_payment: Optional[str] = None,
    payment_date: Optional[date] = None,
    now: Optional[datetime] = None,
    db: Optional[Session] = None,
) -> Payment:
    if not (transaction_id or transaction_proof_link or proof_of_payment):
        raise ValidationError(
            "Transaction proof is required (provide transactionId, transactionProofLink or proofOfPayment)"
        )
    if amount is None or money(amount) <= 0:
        raise ValidationError("Amount must be greater than 0")
    if payment_type not in PAYMENT_TYPES:
        raise ValidationError(f"Invalid payment type: {payment_type}")
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method: {payment_method}")

    if now is None:
        now = utcnow()

    with session_scope(db) as db:
        employee = get_user(db, company_id, employee_id, role="EMPLOYEE", lock=True)

        project = None
        if project_id is not None:
            project = get_project(db, company_id, project_id, lock=True)

        payment = Payment(
            company_id=int(company_id),
            employee_id=employee.id,
            project_id=None if project is None else project.id,
            assignment_id=None,
            amount=money(amount),
            currency=currency or (project.currency if project is not None else default_currency()),
            payment_type=payment_type,
            payment_method=payment_method,
            request_status="paid",
            status="completed",
            employee_confirmation=False,
            description=description,
            transaction_id=transaction_id,
            transaction_proof_link=transaction_proof_link,
            proof_of_payment=proof_of_payment,
            payment_date=payment_date or now.date(),
            approved_at=now,
            approved_by=int(actor_id),
            paid_at=now,
        )
        db.add(payment)

        employee.pending_earnings = money(employee.pending_earnings) + money(payment.amount)
        if project is not None:
            project.spent_amount = money(project.spent_amount) + money(payment.amount)
        db.flush()

        _notify(
            db,
            payment,
            employee.id,
            "payment_processed",
            {
                "amount": fmt_money(payment.amount),
                "currency": payment.currency,
                "project_name": "general" if project is None else project.name,
            },
        )
        _log_transition(payment, "direct_create", actor_id)
        return payment


def update_payment_details(
    company_id: int,
    payment_id: int,
    *,
    changes: Dict[str, Any],
    db: Optional[Session] = None,
) -> Payment:
    unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
    if unknown:
        raise ValidationError(f"Fields cannot be edited: {', '.join(unknown)}")
    if "payment_method" in changes and changes["payment_method"] not in PAYMENT_METHODS:
        raise ValidationError(f"Invalid payment method: {changes['payment_method']}")

    with session_scope(db) as db:
        payment = get_payment(db, company_id, payment_id)
        for name, value in changes.items():
            setattr(payment, name, value)
        db.flush()
        return payment


def list_payments(
    db: Session,
    company_id: int,
    *,
    employee_id: Optional[int] = None,
    project_id: Optional[int] = None,
    request_status: Optional[str] = None,
    status: Optional[str] = None,
    payment_type: Optional[str] = None,
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    limit: int = 100,
    offset: int = 0,
) -> List[Payment]:
    q = db.query(Payment).filter(Payment.company_id == int(company_id))

    if employee_id is not None:
        q = q.filter(Payment.employee_id == int(employee_id))
    if project_id is not None:
        q = q.filter(Payment.project_id == int(project_id))
    if request_status is not None:
        q = q.filter(Payment.request_status == request_status)
    if status is not None:
        q = q.filter(Payment.status == status)
    if payment_type is not None:
        q = q.filter(Payment.payment_type == payment_type)
    if created_from is not None:
        q = q.filter(Payment.created_at >= created_from)
    if created_to is not None:
        q = q.filter(Payment.created_at <= created_to)

    return (
        q.order_by(Payment.created_at.desc(), Payment.id.desc())
        .offset(int(offset))
        .limit(int(limit))
        .all()
    )


def get_payment_for(db: Session, company_id: int, payment_id: int, *, viewer_id: int, is_manager: bool) -> Payment:
    payment = get_payment(db, company_id, payment_id)
    if not is_manager and int(payment.employee_id) != int(viewer_id):
        raise AuthorizationError("You can only view your own payment records")
    return payment


def employee_payments(db: Session, company_id: int, employee_id: int) -> EmployeePayments:
    payments = list_payments(db, company_id, employee_id=employee_id, limit=1000)
    total = (
        db.query(func.coalesce(func.sum(Payment.amount), 0))
        .filter(
            Payment.company_id == int(company_id),
            Payment.employee_id == int(employee_id),
            Payment.request_status == "confirmed",
        )
        .scalar()
    )
    return EmployeePayments(payments=payments, total_confirmed=money(total))


def earnings_snapshot(db: Session, company_id: int, employee_id: int) -> Dict[str, Decimal]:
    employee: User = get_user(db, company_id, employee_id)
    return {
        "total_earnings": money(employee.total_earnings),
        "pending_earnings": money(employee.pending_earnings),
    }
