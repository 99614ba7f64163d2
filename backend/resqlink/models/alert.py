"""
Alert Models
============
Request/response shapes for the emergency alert buttons.

The actual calling/SMS/siren workflow lives behind a webhook we don't
own. We just POST to it and report whether it accepted.
"""

from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum


class AlertTarget(str, Enum):
    """Who gets notified."""
    CITIZEN = "citizen"
    REPRESENTATIVE = "representative"

    @property
    def audience(self) -> str:
        """Plural label used in toast messages."""
        return "Citizens" if self is AlertTarget.CITIZEN else "Representatives"


class AlertPayload(BaseModel):
    """
    JSON body sent to the notification webhook.

    Serialized by alias so the webhook sees `userType`.
    """
    user_type: AlertTarget = Field(..., alias="userType")
    timestamp: str = Field(..., description="ISO-8601 UTC time the alert was raised")
    source: str = Field(..., description="Which panel raised the alert")

    model_config = {"populate_by_name": True}


class AlertResult(BaseModel):
    """Outcome of one alert trigger, in toast form."""
    success: bool
    target: AlertTarget
    title: str
    description: str
    http_status: Optional[int] = None
    triggered_at: str
