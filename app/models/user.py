from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)

from app.database import Base

USER_ROLES = ("ADMIN", "MANAGER", "EMPLOYEE")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)

    email = Column(String(100), nullable=False)
    full_name = Column(String(100), nullable=True)
    role = Column(String(16), nullable=False, default="EMPLOYEE")
    position = Column(String(100), nullable=True)
    department = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Running totals, mutated only by payment transitions.
    total_earnings = Column(Numeric(12, 2), nullable=False, default=0)
    pending_earnings = Column(Numeric(12, 2), nullable=False, default=0)
    last_payment_date = Column(DateTime(timezone=True), nullable=True)
    last_payment_amount = Column(Numeric(12, 2), nullable=True)
    completed_projects_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("company_id", "email", name="uq_users_company_email"),
        CheckConstraint(
            "role in ('ADMIN','MANAGER','EMPLOYEE')",
            name="ck_users_role_valid",
        ),
        CheckConstraint("total_earnings >= 0", name="ck_users_earnings_nonnegative"),
    )

    @property
    def display_name(self) -> str:
        return self.full_name or self.email
