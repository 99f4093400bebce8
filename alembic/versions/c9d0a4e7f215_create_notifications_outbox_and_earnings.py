"""create notifications, event_outbox and earnings_entries

Revision ID: c9d0a4e7f215
Revises: 8b42e6d1c5a7
Create Date: 2026-10-06 14:03:51.918407
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "c9d0a4e7f215"
down_revision: Union[str, Sequence[str], None] = "8b42e6d1c5a7"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "event_outbox",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(), nullable=False),
        sa.Column("idempotency_key", sa.String(), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("processed", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("retry_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("last_error", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("company_id", "event_type", "idempotency_key", name="uq_event_outbox_idempotency"),
    )
    op.create_index("ix_event_outbox_company_event", "event_outbox", ["company_id", "event_type"], unique=False)
    op.create_index("ix_event_outbox_processed", "event_outbox", ["processed", "created_at"], unique=False)
    op.create_index(op.f("ix_event_outbox_company_id"), "event_outbox", ["company_id"], unique=False)
    op.create_index(op.f("ix_event_outbox_event_type"), "event_outbox", ["event_type"], unique=False)

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("type", sa.String(length=32), server_default="general", nullable=False),
        sa.Column("related_id", sa.Integer(), nullable=True),
        sa.Column("related_type", sa.String(length=16), nullable=True),
        sa.Column("priority", sa.String(length=8), server_default="medium", nullable=False),
        sa.Column("is_read", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("source_event_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint("source_event_id", name="uq_notifications_source_event_id"),
    )
    op.create_index(op.f("ix_notifications_company_id"), "notifications", ["company_id"], unique=False)
    op.create_index(op.f("ix_notifications_user_id"), "notifications", ["user_id"], unique=False)
    op.create_index(
        "ix_notifications_user_unread",
        "notifications",
        ["company_id", "user_id", "is_read"],
        unique=False,
    )

    op.create_table(
        "earnings_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("project_id", sa.Integer(), nullable=True),
        sa.Column("payment_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("currency", sa.String(length=10), server_default="USD", nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_earnings_entries_user", ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], name="fk_earnings_entries_project", ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["payment_id"], ["payments.id"], name="fk_earnings_entries_payment", ondelete="RESTRICT"),
        sa.UniqueConstraint("payment_id", name="uq_earnings_entries_payment"),
        sa.CheckConstraint("amount > 0", name="ck_earnings_entries_amount_positive"),
    )
    op.create_index(op.f("ix_earnings_entries_company_id"), "earnings_entries", ["company_id"], unique=False)
    op.create_index(op.f("ix_earnings_entries_user_id"), "earnings_entries", ["user_id"], unique=False)
    op.create_index(op.f("ix_earnings_entries_project_id"), "earnings_entries", ["project_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_earnings_entries_project_id"), table_name="earnings_entries")
    op.drop_index(op.f("ix_earnings_entries_user_id"), table_name="earnings_entries")
    op.drop_index(op.f("ix_earnings_entries_company_id"), table_name="earnings_entries")
    op.drop_table("earnings_entries")

    op.drop_index("ix_notifications_user_unread", table_name="notifications")
    op.drop_index(op.f("ix_notifications_user_id"), table_name="notifications")
    op.drop_index(op.f("ix_notifications_company_id"), table_name="notifications")
    op.drop_table("notifications")

    op.drop_index(op.f("ix_event_outbox_event_type"), table_name="event_outbox")
    op.drop_index(op.f("ix_event_outbox_company_id"), table_name="event_outbox")
    op.drop_index("ix_event_outbox_processed", table_name="event_outbox")
    op.drop_index("ix_event_outbox_company_event", table_name="event_outbox")
    op.drop_table("event_outbox")
