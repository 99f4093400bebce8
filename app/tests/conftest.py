import os
_default_test_secret = "test-jwt-secret-for-pytest-only-0000000000000000"
if len(os.environ.get("JWT_SECRET", "")) < 32:
    os.environ["JWT_SECRET"] = _default_test_secret
os.environ["ENV"] = "test"

import subprocess
import tempfile
import uuid
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url

_default_sqlite_url = "sqlite:///" + str(Path(tempfile.gettempdir()) / "project_ledger_test.db")
TEST_DATABASE_URL = os.getenv("DATABASE_URL", _default_sqlite_url)
os.environ["DATABASE_URL"] = TEST_DATABASE_URL

from app import database
from app import models  # noqa: F401
from app.models.project import Project
from app.models.user import User
from app.services.outbox_processor import process_outbox_batch


def _is_postgres_url(database_url: str) -> bool:
    return make_url(database_url).drivername.startswith("postgresql")


def _ensure_database_exists(database_url: str) -> None:
    url = make_url(database_url)

    if not url.drivername.startswith("postgresql"):
        return

    db_name = url.database
    admin_url = url.set(database="postgres")
    admin_engine = create_engine(admin_url, isolation_level="AUTOCOMMIT")

    try:
        with admin_engine.connect() as conn:
            exists = conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": db_name},
            ).scalar()
            if not exists:
                safe_db_name = db_name.replace('"', '""')
                conn.execute(text(f'CREATE DATABASE "{safe_db_name}"'))
    finally:
        admin_engine.dispose()


@pytest.fixture(scope="session", autouse=True)
def _prepare_test_database() -> None:
    database.configure_database()

    if _is_postgres_url(TEST_DATABASE_URL):
        _ensure_database_exists(TEST_DATABASE_URL)

        env = os.environ.copy()
        env["DATABASE_URL"] = TEST_DATABASE_URL

        subprocess.run(
            ["alembic", "upgrade", "head"],
            check=True,
            cwd=Path(__file__).resolve().parents[2],
            env=env,
        )
        return

    database.Base.metadata.drop_all(bind=database.engine)
    database.Base.metadata.create_all(bind=database.engine)


def _clear_tables() -> None:
    with database.engine.begin() as conn:
        if _is_postgres_url(TEST_DATABASE_URL):
            rows = conn.execute(
                text(
                    """
                    SELECT tablename
                    FROM pg_tables
                    WHERE schemaname = 'public'
                      AND tablename <> 'alembic_version'
                    """
                )
            ).fetchall()

            table_names = [row[0] for row in rows]
            if table_names:
                quoted = ", ".join([f'"public"."{name}"' for name in table_names])
                conn.execute(text(f"TRUNCATE TABLE {quoted} RESTART IDENTITY CASCADE"))
            return

        for table in reversed(database.Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope="function", autouse=True)
def _truncate_tables_between_tests():
    _clear_tables()
    yield
    _clear_tables()


@pytest.fixture
def user_factory():
    def _make(*, company_id: int = 1, role: str = "EMPLOYEE", email=None, full_name=None, **fields) -> User:
        db = database.SessionLocal()
        try:
            values = {
                "is_active": True,
                "total_earnings": Decimal("0"),
                "pending_earnings": Decimal("0"),
                "completed_projects_count": 0,
                **fields,
            }
            row = User(
                company_id=company_id,
                email=email or f"{role.lower()}-{uuid.uuid4().hex[:10]}@example.com",
                full_name=full_name or f"{role.title()} {uuid.uuid4().hex[:4]}",
                role=role,
                **values,
            )
            db.add(row)
            db.commit()
            return row
        finally:
            db.close()

    return _make


@pytest.fixture
def project_factory():
    def _make(*, created_by: User, budget="10000", name=None, **fields) -> Project:
        db = database.SessionLocal()
        try:
            row = Project(
                company_id=created_by.company_id,
                created_by=created_by.id,
                name=name or f"Project {uuid.uuid4().hex[:6]}",
                budget=Decimal(str(budget)),
                allocated_amount=Decimal("0"),
                spent_amount=Decimal("0"),
                **fields,
            )
            db.add(row)
            db.commit()
            return row
        finally:
            db.close()

    return _make


@pytest.fixture
def deliver_notifications():
    def _run():
        return process_outbox_batch(batch_size=500)

    return _run
