"""create project_assignments and payments

Revision ID: 8b42e6d1c5a7
Revises: 3f1c7a9d2b10
Create Date: 2026-10-05 09:40:18.552170
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "8b42e6d1c5a7"
down_revision: Union[str, Sequence[str], None] = "3f1c7a9d2b10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _money(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Numeric(12, 2), server_default=None if nullable else sa.text("0"), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "project_assignments",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("assigned_by", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(length=50), server_default="team_member", nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("allocated_amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=10), server_default="USD", nullable=False),
        sa.Column("payment_terms", sa.Text(), nullable=True),
        sa.Column("payment_schedule", sa.String(length=32), server_default="project_completion", nullable=False),
        sa.Column("responsibilities", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("deliverables", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("actual_deliverables", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("assignment_status", sa.String(length=16), server_default="pending", nullable=False),
        sa.Column("work_status", sa.String(length=32), server_default="not_started", nullable=False),
        sa.Column("response_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("work_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("work_submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("submission_notes", sa.Text(), nullable=True),
        sa.Column("work_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("work_verified_by", sa.Integer(), nullable=True),
        sa.Column("verification_notes", sa.Text(), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("work_rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("work_rejection_reason", sa.Text(), nullable=True),
        sa.Column("revision_requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revision_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revision_notes", sa.Text(), nullable=True),
        _money("rate"),
        sa.Column("estimated_hours", sa.Numeric(10, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("actual_hours", sa.Numeric(10, 2), server_default=sa.text("0"), nullable=False),
        _money("estimated_consumables"),
        _money("actual_consumables"),
        _money("estimated_materials"),
        _money("actual_materials"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], name="fk_project_assignments_project", ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["employee_id"], ["users.id"], name="fk_project_assignments_employee", ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["assigned_by"], ["users.id"], name="fk_project_assignments_assigned_by", ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(
            ["work_verified_by"], ["users.id"], name="fk_project_assignments_verified_by", ondelete="RESTRICT"
        ),
        sa.CheckConstraint("allocated_amount > 0", name="ck_project_assignments_allocated_positive"),
        sa.CheckConstraint(
            "assignment_status in ('pending','accepted','rejected')",
            name="ck_project_assignments_status_valid",
        ),
        sa.CheckConstraint(
            "work_status in ('not_started','in_progress','submitted','verified','rejected','revision_required')",
            name="ck_project_assignments_work_status_valid",
        ),
    )
    op.create_index(op.f("ix_project_assignments_id"), "project_assignments", ["id"], unique=False)
    op.create_index(op.f("ix_project_assignments_company_id"), "project_assignments", ["company_id"], unique=False)
    op.create_index(op.f("ix_project_assignments_project_id"), "project_assignments", ["project_id"], unique=False)
    op.create_index(op.f("ix_project_assignments_employee_id"), "project_assignments", ["employee_id"], unique=False)
    op.create_index(
        op.f("ix_project_assignments_assignment_status"), "project_assignments", ["assignment_status"], unique=False
    )
    op.create_index(op.f("ix_project_assignments_work_status"), "project_assignments", ["work_status"], unique=False)
    op.create_index(
        "ix_project_assignments_project_employee",
        "project_assignments",
        ["project_id", "employee_id"],
        unique=False,
    )

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=True),
        sa.Column("assignment_id", sa.Integer(), nullable=True),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=10), server_default="USD", nullable=False),
        sa.Column("payment_type", sa.String(length=32), server_default="project_payment", nullable=False),
        sa.Column("payment_method", sa.String(length=32), server_default="bank_transfer", nullable=False),
        sa.Column("request_status", sa.String(length=16), server_default="not_requested", nullable=False),
        sa.Column("status", sa.String(length=16), server_default="pending", nullable=False),
        sa.Column("employee_confirmation", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("request_notes", sa.Text(), nullable=True),
        sa.Column("approval_notes", sa.Text(), nullable=True),
        sa.Column("rejected_reason", sa.Text(), nullable=True),
        sa.Column("confirmation_notes", sa.Text(), nullable=True),
        sa.Column("transaction_id", sa.String(length=100), nullable=True),
        sa.Column("transaction_proof_link", sa.String(length=500), nullable=True),
        sa.Column("proof_of_payment", sa.String(length=500), nullable=True),
        sa.Column("scheduled_date", sa.Date(), nullable=True),
        sa.Column("payment_date", sa.Date(), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("requested_by", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_by", sa.Integer(), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["employee_id"], ["users.id"], name="fk_payments_employee", ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], name="fk_payments_project", ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(
            ["assignment_id"], ["project_assignments.id"], name="fk_payments_assignment", ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(["requested_by"], ["users.id"], name="fk_payments_requested_by", ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["approved_by"], ["users.id"], name="fk_payments_approved_by", ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["rejected_by"], ["users.id"], name="fk_payments_rejected_by", ondelete="RESTRICT"),
        sa.UniqueConstraint("assignment_id", name="uq_payments_assignment_id"),
        sa.CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        sa.CheckConstraint(
            "request_status in ('not_requested','requested','approved','rejected','paid','confirmed')",
            name="ck_payments_request_status_valid",
        ),
        sa.CheckConstraint(
            "status in ('pending','processing','completed','failed','cancelled')",
            name="ck_payments_status_valid",
        ),
    )
    op.create_index(op.f("ix_payments_id"), "payments", ["id"], unique=False)
    op.create_index(op.f("ix_payments_company_id"), "payments", ["company_id"], unique=False)
    op.create_index(op.f("ix_payments_employee_id"), "payments", ["employee_id"], unique=False)
    op.create_index(op.f("ix_payments_project_id"), "payments", ["project_id"], unique=False)
    op.create_index(op.f("ix_payments_request_status"), "payments", ["request_status"], unique=False)
    op.create_index(op.f("ix_payments_status"), "payments", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_payments_status"), table_name="payments")
    op.drop_index(op.f("ix_payments_request_status"), table_name="payments")
    op.drop_index(op.f("ix_payments_project_id"), table_name="payments")
    op.drop_index(op.f("ix_payments_employee_id"), table_name="payments")
    op.drop_index(op.f("ix_payments_company_id"), table_name="payments")
    op.drop_index(op.f("ix_payments_id"), table_name="payments")
    op.drop_table("payments")

    op.drop_index("ix_project_assignments_project_employee", table_name="project_assignments")
    op.drop_index(op.f("ix_project_assignments_work_status"), table_name="project_assignments")
    op.drop_index(op.f("ix_project_assignments_assignment_status"), table_name="project_assignments")
    op.drop_index(op.f("ix_project_assignments_employee_id"), table_name="project_assignments")
    op.drop_index(op.f("ix_project_assignments_project_id"), table_name="project_assignments")
    op.drop_index(op.f("ix_project_assignments_company_id"), table_name="project_assignments")
    op.drop_index(op.f("ix_project_assignments_id"), table_name="project_assignments")
    op.drop_table("project_assignments")
