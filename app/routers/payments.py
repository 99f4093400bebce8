from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.authorization import Principal, Role, require_role
from app.core.errors import ValidationError
from app.database import SessionLocal
from app.schemas.common import Envelope
from app.schemas.payment import (
    DirectPaymentCreate,
    PaymentApprove,
    PaymentConfirm,
    PaymentMarkPaid,
    PaymentReject,
    PaymentRequestCreate,
    PaymentResponse,
    PaymentUpdate,
)
from app.services import payment_service
from app.services.reconciliation_service import ReconciliationError, reconcile_employee_earnings

router = APIRouter(prefix="/payments", tags=["Payments"])


def _payment_response(message: str, row, **extra) -> dict:
    return {"success": True, "message": message, "payment": PaymentResponse.model_validate(row), **extra}


@router.post("/request", status_code=201)
def request_payment(
    payload: PaymentRequestCreate,
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    db = SessionLocal()
    try:
        row = payment_service.request_payment(
            principal.company_id,
            payload.assignment_id,
            actor_id=principal.user_id,
            notes=payload.notes,
            db=db,
        )
        db.commit()
        return _payment_response("Payment requested successfully. Waiting for manager approval.", row)
    finally:
        db.close()


@router.post("", status_code=201)
def create_direct_payment(
    payload: DirectPaymentCreate,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        row = payment_service.create_direct_payment(
            principal.company_id,
            actor_id=principal.user_id,
            employee_id=payload.employee_id,
            amount=payload.amount,
            project_id=payload.project_id,
            currency=payload.currency,
            payment_type=payload.payment_type,
            payment_method=payload.payment_method,
            description=payload.description,
            transaction_id=payload.transaction_id,
            transaction_proof_link=payload.transaction_proof_link,
            proof_of_payment=payload.proof_of_payment,
            payment_date=payload.payment_date,
            db=db,
        )
        db.commit()
        return _payment_response("Payment created successfully. Waiting for employee confirmation.", row)
    finally:
        db.close()


@router.get("", response_model=Envelope)
def list_payments(
    employee_id: Optional[int] = None,
    project_id: Optional[int] = None,
    request_status: Optional[str] = None,
    status: Optional[str] = None,
    payment_type: Optional[str] = None,
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0, le=1_000_000),
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        rows = payment_service.list_payments(
            db,
            principal.company_id,
            employee_id=employee_id,
            project_id=project_id,
            request_status=request_status,
            status=status,
            payment_type=payment_type,
            created_from=created_from,
            created_to=created_to,
            limit=limit,
            offset=offset,
        )
        return {
            "success": True,
            "message": "Payments retrieved successfully",
            "data": [PaymentResponse.model_validate(r) for r in rows],
        }
    finally:
        db.close()


@router.get("/mine", response_model=Envelope)
def list_my_payments(principal: Principal = Depends(require_role(Role.EMPLOYEE))):
    db = SessionLocal()
    try:
        result = payment_service.employee_payments(db, principal.company_id, principal.user_id)
        return {
            "success": True,
            "message": "Your payments retrieved successfully",
            "data": {
                "payments": [PaymentResponse.model_validate(r) for r in result.payments],
                "total_earnings": result.total_confirmed,
            },
        }
    finally:
        db.close()


@router.get("/reconciliation/{employee_id}")
def reconcile_earnings(
    employee_id: int,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        try:
            report = reconcile_employee_earnings(
                company_id=principal.company_id,
                employee_id=employee_id,
                db=db,
            )
        except ReconciliationError as exc:
            return {"ok": False, "detail": str(exc), "report": exc.report}
        return report
    finally:
        db.close()


@router.get("/{payment_id}")
def get_payment(
    payment_id: int,
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    db = SessionLocal()
    try:
        row = payment_service.get_payment_for(
            db,
            principal.company_id,
            payment_id,
            viewer_id=principal.user_id,
            is_manager=principal.is_manager,
        )
        return _payment_response("Payment retrieved successfully", row)
    finally:
        db.close()


@router.patch("/{payment_id}")
def update_payment(
    payment_id: int,
    payload: PaymentUpdate,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields provided")

    db = SessionLocal()
    try:
        row = payment_service.update_payment_details(principal.company_id, payment_id, changes=changes, db=db)
        db.commit()
        return _payment_response("Payment updated successfully", row)
    finally:
        db.close()


@router.post("/{payment_id}/approve")
def approve_payment(
    payment_id: int,
    payload: PaymentApprove,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        row = payment_service.approve_payment_request(
            principal.company_id,
            payment_id,
            actor_id=principal.user_id,
            notes=payload.notes,
            scheduled_date=payload.scheduled_date,
            db=db,
        )
        db.commit()
        return _payment_response("Payment request approved", row)
    finally:
        db.close()


@router.post("/{payment_id}/reject")
def reject_payment(
    payment_id: int,
    payload: PaymentReject,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        row = payment_service.reject_payment_request(
            principal.company_id,
            payment_id,
            actor_id=principal.user_id,
            reason=payload.reason,
            db=db,
        )
        db.commit()
        return _payment_response("Payment request rejected", row)
    finally:
        db.close()


@router.post("/{payment_id}/mark-paid")
def mark_paid(
    payment_id: int,
    payload: PaymentMarkPaid,
    principal: Principal = Depends(require_role(Role.MANAGER)),
):
    db = SessionLocal()
    try:
        row = payment_service.mark_payment_paid(
            principal.company_id,
            payment_id,
            actor_id=principal.user_id,
            transaction_id=payload.transaction_id,
            transaction_proof_link=payload.transaction_proof_link,
            proof_of_payment=payload.proof_of_payment,
            payment_date=payload.payment_date,
            db=db,
        )
        db.commit()
        return _payment_response("Payment marked as paid. Waiting for employee confirmation.", row)
    finally:
        db.close()


@router.post("/{payment_id}/confirm")
def confirm_payment(
    payment_id: int,
    payload: PaymentConfirm,
    principal: Principal = Depends(require_role(Role.EMPLOYEE)),
):
    db = SessionLocal()
    try:
        row = payment_service.confirm_payment_received(
            principal.company_id,
            payment_id,
            actor_id=principal.user_id,
            notes=payload.notes,
            db=db,
        )
        db.commit()
        earnings = payment_service.earnings_snapshot(db, principal.company_id, principal.user_id)
        return _payment_response(
            "Payment confirmed successfully. Your earnings have been updated.",
            row,
            earnings=earnings,
        )
    finally:
        db.close()
