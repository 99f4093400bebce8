"""assignment and payment integrity constraints

Revision ID: e1f3b8a62c94
Revises: c9d0a4e7f215
Create Date: 2026-10-07 11:27:09.640215

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa  # noqa: F401


# revision identifiers, used by Alembic.
revision: str = "e1f3b8a62c94"
down_revision: Union[str, Sequence[str], None] = "c9d0a4e7f215"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # One active assignment per (project, employee); removed ones don't count.
    op.execute(
        """
        CREATE UNIQUE INDEX IF NOT EXISTS uq_project_assignments_active_pair
        ON project_assignments(project_id, employee_id)
        WHERE is_active;
        """
    )

    # confirmed <=> employee_confirmation
    op.create_check_constraint(
        "ck_payments_confirmation_consistent",
        "payments",
        "(request_status = 'confirmed' AND employee_confirmation) "
        "OR (request_status <> 'confirmed' AND NOT employee_confirmation)",
    )

    op.create_check_constraint(
        "ck_users_earnings_nonnegative",
        "users",
        "total_earnings >= 0",
    )

    # earnings_entries is append-only.
    op.execute(
        """
        CREATE OR REPLACE FUNCTION earnings_entries_block_mutation()
        RETURNS trigger AS $$
        BEGIN
            RAISE EXCEPTION 'earnings_entries is immutable';
        END;
        $$ LANGUAGE plpgsql;

        DROP TRIGGER IF EXISTS trg_earnings_entries_block_update ON earnings_entries;
        CREATE TRIGGER trg_earnings_entries_block_update
        BEFORE UPDATE ON earnings_entries
        FOR EACH ROW
        EXECUTE FUNCTION earnings_entries_block_mutation();

        DROP TRIGGER IF EXISTS trg_earnings_entries_block_delete ON earnings_entries;
        CREATE TRIGGER trg_earnings_entries_block_delete
        BEFORE DELETE ON earnings_entries
        FOR EACH ROW
        EXECUTE FUNCTION earnings_entries_block_mutation();
        """
    )


def downgrade() -> None:
    op.execute("DROP TRIGGER IF EXISTS trg_earnings_entries_block_delete ON earnings_entries;")
    op.execute("DROP TRIGGER IF EXISTS trg_earnings_entries_block_update ON earnings_entries;")
    op.execute("DROP FUNCTION IF EXISTS earnings_entries_block_mutation();")
    op.drop_constraint("ck_users_earnings_nonnegative", "users", type_="check")
    op.drop_constraint("ck_payments_confirmation_consistent", "payments", type_="check")
    op.execute("DROP INDEX IF EXISTS uq_project_assignments_active_pair;")
