"""
Emergency Models
================
The chat feed (`messages` table) and SOS locations (`users` table).

Author: ResQlink Team
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from enum import Enum


class MessagePriority(str, Enum):
    """Feed items with HIGH priority get highlighted."""
    HIGH = "high"
    MEDIUM = "medium"


class EmergencyMessage(BaseModel):
    """
    One item in the mesh chat feed.

    Rows come in from the field nodes as:
        {id, username, message, from_node, created_at}

    `timestamp` is already formatted for display ("10:30 AM").
    """
    id: int = Field(..., description="Message id")
    username: str = Field(..., description="Who sent it")
    message: str = Field(..., description="Message text")
    node: str = Field(..., description="Mesh node the message came through")
    timestamp: str = Field(..., description="Display time")
    priority: MessagePriority = Field(default=MessagePriority.MEDIUM)


class MessageListResponse(BaseModel):
    """Messages for the chat widget, newest first."""
    messages: list[EmergencyMessage]
    total: int
    is_fallback: bool = Field(False, description="True when showing default system messages")
    last_update: Optional[datetime] = None


class SOSLocation(BaseModel):
    """A user who shared their position."""
    id: str = Field(..., description="User id")
    latitude: float
    longitude: float
    name: Optional[str] = None
    phone: Optional[str] = None


class SOSLocationListResponse(BaseModel):
    locations: list[SOSLocation]
    total: int
    last_update: Optional[datetime] = None
