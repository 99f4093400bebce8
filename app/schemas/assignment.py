from datetime import datetime
from decimal import Decimal
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict

from app.schemas.common import HoursAmount, MoneyAmount


class AssignmentCreate(BaseModel):
    project_id: int
    employee_id: int
    allocated_amount: Optional[MoneyAmount] = None
    role: str = "team_member"
    payment_terms: Optional[str] = None
    payment_schedule: str = "project_completion"
    responsibilities: Optional[List[Any]] = None
    deliverables: Optional[List[Any]] = None


class ReasonBody(BaseModel):
    reason: Optional[str] = None


class WorkSubmit(BaseModel):
    notes: Optional[str] = None
    deliverables: Optional[List[Any]] = None


class WorkVerify(BaseModel):
    notes: Optional[str] = None
    feedback: Optional[str] = None


class RevisionRequest(BaseModel):
    notes: Optional[str] = None
    deadline: Optional[datetime] = None


class RoleUpdate(BaseModel):
    role: Optional[str] = None


class TrackingUpdate(BaseModel):
    """Partial update of the per-assignment tracking figures."""

    rate: Optional[MoneyAmount] = None
    estimated_hours: Optional[HoursAmount] = None
    actual_hours: Optional[HoursAmount] = None
    estimated_consumables: Optional[MoneyAmount] = None
    actual_consumables: Optional[MoneyAmount] = None
    estimated_materials: Optional[MoneyAmount] = None
    actual_materials: Optional[MoneyAmount] = None


Bucket = Literal["pending", "ongoing", "completed", "accepted"]


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    company_id: int
    project_id: int
    employee_id: int
    assigned_by: int
    role: str
    is_active: bool
    allocated_amount: Decimal
    currency: str
    payment_terms: Optional[str]
    payment_schedule: str
    responsibilities: Optional[List[Any]]
    deliverables: Optional[List[Any]]
    actual_deliverables: Optional[List[Any]]
    assignment_status: str
    work_status: str
    response_deadline: Optional[datetime]
    accepted_at: Optional[datetime]
    rejected_at: Optional[datetime]
    rejection_reason: Optional[str]
    work_started_at: Optional[datetime]
    work_submitted_at: Optional[datetime]
    submission_notes: Optional[str]
    work_verified_at: Optional[datetime]
    work_verified_by: Optional[int]
    verification_notes: Optional[str]
    feedback: Optional[str]
    work_rejected_at: Optional[datetime]
    work_rejection_reason: Optional[str]
    revision_requested_at: Optional[datetime]
    revision_deadline: Optional[datetime]
    revision_notes: Optional[str]
    rate: Decimal
    estimated_hours: Decimal
    actual_hours: Decimal
    estimated_consumables: Decimal
    actual_consumables: Decimal
    estimated_materials: Decimal
    actual_materials: Decimal
    created_at: datetime
    updated_at: datetime
