from app.models.earnings_entry import EarningsEntry
from app.models.event_outbox import EventOutbox
from app.models.notification import Notification
from app.models.payment import Payment
from app.models.project import Project
from app.models.project_assignment import ProjectAssignment
from app.models.user import User

__all__ = [
    "EarningsEntry",
    "EventOutbox",
    "Notification",
    "Payment",
    "Project",
    "ProjectAssignment",
    "User",
]
