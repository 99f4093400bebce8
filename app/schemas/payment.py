from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict

from app.schemas.common import MoneyAmount


class PaymentRequestCreate(BaseModel):
    assignment_id: int
    notes: Optional[str] = None


class PaymentApprove(BaseModel):
    notes: Optional[str] = None
    scheduled_date: Optional[date] = None


class PaymentReject(BaseModel):
    reason: Optional[str] = None


class PaymentMarkPaid(BaseModel):
    transaction_id: Optional[str] = None
    transaction_proof_link: Optional[str] = None
    proof_of_payment: Optional[str] = None
    payment_date: Optional[date] = None


class PaymentConfirm(BaseModel):
    notes: Optional[str] = None


class DirectPaymentCreate(BaseModel):
    employee_id: int
    amount: Optional[MoneyAmount] = None
    project_id: Optional[int] = None
    currency: Optional[str] = None
    payment_type: str = "project_payment"
    payment_method: str = "bank_transfer"
    description: Optional[str] = None
    transaction_id: Optional[str] = None
    transaction_proof_link: Optional[str] = None
    proof_of_payment: Optional[str] = None
    payment_date: Optional[date] = None


class PaymentUpdate(BaseModel):
    """Descriptive fields only; statuses change through the transition endpoints."""

    description: Optional[str] = None
    due_date: Optional[date] = None
    payment_method: Optional[str] = None


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    company_id: int
    employee_id: int
    project_id: Optional[int]
    assignment_id: Optional[int]
    amount: Decimal
    currency: str
    payment_type: str
    payment_method: str
    request_status: str
    status: str
    employee_confirmation: bool
    description: Optional[str]
    request_notes: Optional[str]
    approval_notes: Optional[str]
    rejected_reason: Optional[str]
    confirmation_notes: Optional[str]
    transaction_id: Optional[str]
    transaction_proof_link: Optional[str]
    proof_of_payment: Optional[str]
    scheduled_date: Optional[date]
    payment_date: Optional[date]
    due_date: Optional[date]
    requested_at: Optional[datetime]
    requested_by: Optional[int]
    approved_at: Optional[datetime]
    approved_by: Optional[int]
    rejected_at: Optional[datetime]
    rejected_by: Optional[int]
    paid_at: Optional[datetime]
    confirmed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
