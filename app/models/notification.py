from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, func

from app.database import Base

NOTIFICATION_TYPES = (
    "task_assignment",
    "project_assignment",
    "deadline_reminder",
    "payment",
    "general",
    "system",
)
RELATED_TYPES = ("project", "task", "payment", "user", "assignment")
PRIORITIES = ("low", "medium", "high")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    company_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)

    title = Column(String(100), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(32), nullable=False, default="general")

    # Polymorphic back-reference, lookup only.
    related_id = Column(Integer, nullable=True)
    related_type = Column(String(16), nullable=True)

    priority = Column(String(8), nullable=False, default="medium")
    is_read = Column(Boolean, nullable=False, default=False)
    read_at = Column(DateTime(timezone=True), nullable=True)

    source_event_id = Column(Integer, nullable=True, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_notifications_user_unread", "company_id", "user_id", "is_read"),
    )
