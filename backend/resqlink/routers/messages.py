"""
Messages API Router
===================

The mesh chat feed.

GET    /api/messages          - Feed, newest first
POST   /api/messages/refresh  - Re-read the messages table now

When the table is empty (or can't be read) the feed shows default
system messages and `is_fallback` is true.
"""

from fastapi import APIRouter, Depends

from resqlink.models import MessageListResponse
from resqlink.routers.sensors import get_dashboard_manager


router = APIRouter(prefix="/api/messages", tags=["messages"])


@router.get("", response_model=MessageListResponse)
async def get_messages(manager=Depends(get_dashboard_manager)):
    return manager.messages()


@router.post("/refresh", response_model=MessageListResponse)
async def refresh_messages(manager=Depends(get_dashboard_manager)):
    return await manager.refresh_messages()
