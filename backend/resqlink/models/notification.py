"""
Notification Models
===================
Toasts: the short messages the dashboard pops up after a refresh,
an alert or a failure.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from enum import Enum


class NotificationVariant(str, Enum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    title: str
    description: str
    variant: NotificationVariant = NotificationVariant.DEFAULT
    created_at: datetime


class NotificationListResponse(BaseModel):
    notifications: list[Notification] = Field(..., description="Newest first")
    total: int
