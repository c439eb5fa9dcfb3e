# clinic_app/schemas/notification.py
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from clinic_app.config.constants import AppointmentEvent, NotificationType


class NotificationDraft(BaseModel):
    """
    A notification queued by a service operation.

    * `event`   - the appointment event that produced it
    * `user_id` - recipient
    * `type`    - inbox category shown to the recipient
    * `data`    - structured payload (appointment id, dates, reasons …)
    """
    model_config = ConfigDict(frozen=True)

    event: AppointmentEvent
    user_id: int
    type: NotificationType
    title: str
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)


class NotificationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    type: NotificationType
    title: str
    message: str
    data: Optional[Dict[str, Any]] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class NotificationPage(BaseModel):
    items: List[NotificationOut]
    total: int
    unread_count: int
