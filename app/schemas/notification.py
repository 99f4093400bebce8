from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class NotificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    title: str
    message: str
    type: str
    related_id: Optional[int]
    related_type: Optional[str]
    priority: str
    is_read: bool
    read_at: Optional[datetime]
    created_at: datetime
