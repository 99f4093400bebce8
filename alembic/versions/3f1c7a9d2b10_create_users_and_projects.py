"""create users and projects

Revision ID: 3f1c7a9d2b10
Revises:
Create Date: 2026-10-05 09:12:44.301822
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "3f1c7a9d2b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=100), nullable=False),
        sa.Column("full_name", sa.String(length=100), nullable=True),
        sa.Column("role", sa.String(length=16), nullable=False),
        sa.Column("position", sa.String(length=100), nullable=True),
        sa.Column("department", sa.String(length=100), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("total_earnings", sa.Numeric(12, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("pending_earnings", sa.Numeric(12, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("last_payment_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_payment_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("completed_projects_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("company_id", "email", name="uq_users_company_email"),
        sa.CheckConstraint("role in ('ADMIN','MANAGER','EMPLOYEE')", name="ck_users_role_valid"),
    )
    op.create_index(op.f("ix_users_id"), "users", ["id"], unique=False)
    op.create_index(op.f("ix_users_company_id"), "users", ["company_id"], unique=False)

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("project_type", sa.String(length=32), server_default="other", nullable=False),
        sa.Column("status", sa.String(length=16), server_default="pending", nullable=False),
        sa.Column("priority", sa.String(length=16), server_default="medium", nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("deadline", sa.Date(), nullable=True),
        sa.Column("currency", sa.String(length=10), server_default="USD", nullable=False),
        sa.Column("budget", sa.Numeric(12, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("allocated_amount", sa.Numeric(12, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("spent_amount", sa.Numeric(12, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("rate", sa.Numeric(12, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("estimated_hours", sa.Numeric(10, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("actual_hours", sa.Numeric(10, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("estimated_consumables", sa.Numeric(12, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("actual_consumables", sa.Numeric(12, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("estimated_materials", sa.Numeric(12, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("actual_materials", sa.Numeric(12, 2), server_default=sa.text("0"), nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], name="fk_projects_created_by_users", ondelete="RESTRICT"),
        sa.CheckConstraint(
            "status in ('pending','in-progress','completed','on-hold','cancelled')",
            name="ck_projects_status_valid",
        ),
        sa.CheckConstraint("budget >= 0", name="ck_projects_budget_nonnegative"),
        sa.CheckConstraint("allocated_amount >= 0", name="ck_projects_allocated_nonnegative"),
    )
    op.create_index(op.f("ix_projects_id"), "projects", ["id"], unique=False)
    op.create_index(op.f("ix_projects_company_id"), "projects", ["company_id"], unique=False)
    op.create_index(op.f("ix_projects_status"), "projects", ["status"], unique=False)
    op.create_index(op.f("ix_projects_created_by"), "projects", ["created_by"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_projects_created_by"), table_name="projects")
    op.drop_index(op.f("ix_projects_status"), table_name="projects")
    op.drop_index(op.f("ix_projects_company_id"), table_name="projects")
    op.drop_index(op.f("ix_projects_id"), table_name="projects")
    op.drop_table("projects")

    op.drop_index(op.f("ix_users_company_id"), table_name="users")
    op.drop_index(op.f("ix_users_id"), table_name="users")
    op.drop_table("users")
