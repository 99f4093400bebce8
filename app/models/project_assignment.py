from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship

from app.database import Base, JSONType

ASSIGNMENT_STATUSES = ("pending", "accepted", "rejected")
WORK_STATUSES = (
    "not_started",
    "in_progress",
    "submitted",
    "verified",
    "rejected",
    "revision_required",
)
PAYMENT_SCHEDULES = ("project_completion", "milestone_based", "hourly", "monthly", "custom")


class ProjectAssignment(Base):
    __tablename__ = "project_assignments"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)

    project_id = Column(Integer, ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    assigned_by = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False)

    role = Column(String(50), nullable=False, default="team_member")
    is_active = Column(Boolean, nullable=False, default=True)

    allocated_amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(10), nullable=False, default="USD")
    payment_terms = Column(Text, nullable=True)
    payment_schedule = Column(String(32), nullable=False, default="project_completion")

    responsibilities = Column(JSONType, nullable=True)
    deliverables = Column(JSONType, nullable=True)
    actual_deliverables = Column(JSONType, nullable=True)

    assignment_status = Column(String(16), nullable=False, default="pending", index=True)
    work_status = Column(String(32), nullable=False, default="not_started", index=True)

    response_deadline = Column(DateTime(timezone=True), nullable=True)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)

    work_started_at = Column(DateTime(timezone=True), nullable=True)
    work_submitted_at = Column(DateTime(timezone=True), nullable=True)
    submission_notes = Column(Text, nullable=True)
    work_verified_at = Column(DateTime(timezone=True), nullable=True)
    work_verified_by = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=True)
    verification_notes = Column(Text, nullable=True)
    feedback = Column(Text, nullable=True)
    work_rejected_at = Column(DateTime(timezone=True), nullable=True)
    work_rejection_reason = Column(Text, nullable=True)
    revision_requested_at = Column(DateTime(timezone=True), nullable=True)
    revision_deadline = Column(DateTime(timezone=True), nullable=True)
    revision_notes = Column(Text, nullable=True)

    # Per-assignment tracking, independent of the project-level fields.
    rate = Column(Numeric(12, 2), nullable=False, default=0)
    estimated_hours = Column(Numeric(10, 2), nullable=False, default=0)
    actual_hours = Column(Numeric(10, 2), nullable=False, default=0)
    estimated_consumables = Column(Numeric(12, 2), nullable=False, default=0)
    actual_consumables = Column(Numeric(12, 2), nullable=False, default=0)
    estimated_materials = Column(Numeric(12, 2), nullable=False, default=0)
    actual_materials = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project", backref="assignments")
    employee = relationship("User", foreign_keys=[employee_id])

    __table_args__ = (
        CheckConstraint("allocated_amount > 0", name="ck_project_assignments_allocated_positive"),
        CheckConstraint(
            "assignment_status in ('pending','accepted','rejected')",
            name="ck_project_assignments_status_valid",
        ),
        CheckConstraint(
            "work_status in ('not_started','in_progress','submitted','verified','rejected','revision_required')",
            name="ck_project_assignments_work_status_valid",
        ),
        Index("ix_project_assignments_project_employee", "project_id", "employee_id"),
        # At most one active assignment per (project, employee).
        Index(
            "uq_project_assignments_active_pair",
            "project_id",
            "employee_id",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )
