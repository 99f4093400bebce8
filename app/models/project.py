from datetime import datetime

from sqlalchemy import (
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

from app.database import Base

PROJECT_STATUSES = ("pending", "in-progress", "completed", "on-hold", "cancelled")
PROJECT_TYPES = ("quoted", "time_and_materials", "other")
PROJECT_PRIORITIES = ("low", "medium", "high", "urgent")


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, nullable=False, index=True)

    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    project_type = Column(String(32), nullable=False, default="other")
    status = Column(String(16), nullable=False, default="pending", index=True)
    priority = Column(String(16), nullable=False, default="medium")
    start_date = Column(Date, nullable=True)
    deadline = Column(Date, nullable=True)

    currency = Column(String(10), nullable=False, default="USD")
    budget = Column(Numeric(12, 2), nullable=False, default=0)
    # Sum of active assignment allocations; adjusted by assignment transitions.
    allocated_amount = Column(Numeric(12, 2), nullable=False, default=0)
    spent_amount = Column(Numeric(12, 2), nullable=False, default=0)

    rate = Column(Numeric(12, 2), nullable=False, default=0)
    estimated_hours = Column(Numeric(10, 2), nullable=False, default=0)
    actual_hours = Column(Numeric(10, 2), nullable=False, default=0)
    estimated_consumables = Column(Numeric(12, 2), nullable=False, default=0)
    actual_consumables = Column(Numeric(12, 2), nullable=False, default=0)
    estimated_materials = Column(Numeric(12, 2), nullable=False, default=0)
    actual_materials = Column(Numeric(12, 2), nullable=False, default=0)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint(
            "status in ('pending','in-progress','completed','on-hold','cancelled')",
            name="ck_projects_status_valid",
        ),
        CheckConstraint("budget >= 0", name="ck_projects_budget_nonnegative"),
        CheckConstraint("allocated_amount >= 0", name="ck_projects_allocated_nonnegative"),
    )
