from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from app.database import Base

REQUEST_STATUSES = ("not_requested", "requested", "approved", "rejected", "paid", "confirmed")
PAYMENT_STATUSES = ("pending", "processing", "completed", "failed", "cancelled")
PAYMENT_TYPES = ("salary", "bonus", "project_payment", "overtime")
PAYMENT_METHODS = ("bank_transfer", "cash", "check", "digital_wallet")

# Position of each request_status along its workflow branch. A transition
# must never move a payment to a lower rank.
REQUEST_STATUS_RANK = {
    "not_requested": 0,
    "requested": 1,
    "approved": 2,
    "rejected": 2,
    "paid": 3,
    "confirmed": 4,
}


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)

    employee_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="RESTRICT"), nullable=True, index=True)
    # Lookup back-reference only; the payment outlives changes to the assignment.
    assignment_id = Column(
        Integer,
        ForeignKey("project_assignments.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )

    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(10), nullable=False, default="USD")
    payment_type = Column(String(32), nullable=False, default="project_payment")
    payment_method = Column(String(32), nullable=False, default="bank_transfer")

    request_status = Column(String(16), nullable=False, default="not_requested", index=True)
    status = Column(String(16), nullable=False, default="pending", index=True)
    employee_confirmation = Column(Boolean, nullable=False, default=False)

    description = Column(Text, nullable=True)
    request_notes = Column(Text, nullable=True)
    approval_notes = Column(Text, nullable=True)
    rejected_reason = Column(Text, nullable=True)
    confirmation_notes = Column(Text, nullable=True)

    transaction_id = Column(String(100), nullable=True)
    transaction_proof_link = Column(String(500), nullable=True)
    proof_of_payment = Column(String(500), nullable=True)

    scheduled_date = Column(Date, nullable=True)
    payment_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)

    requested_at = Column(DateTime(timezone=True), nullable=True)
    requested_by = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejected_by = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project", backref="payments")
    employee = relationship("User", foreign_keys=[employee_id])

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        CheckConstraint(
            "request_status in ('not_requested','requested','approved','rejected','paid','confirmed')",
            name="ck_payments_request_status_valid",
        ),
        CheckConstraint(
            "status in ('pending','processing','completed','failed','cancelled')",
            name="ck_payments_status_valid",
        ),
        CheckConstraint(
            "(request_status = 'confirmed' AND employee_confirmation) "
            "OR (request_status <> 'confirmed' AND NOT employee_confirmation)",
            name="ck_payments_confirmation_consistent",
        ),
    )
