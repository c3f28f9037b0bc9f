# schemas/notification.py
from typing import Optional
from datetime import datetime

from pydantic import BaseModel

from models.notification import NotificationType


class NotificationRead(BaseModel):
    id: int
    type: NotificationType
    title: str
    message: str
    reference_id: Optional[int] = None
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True
