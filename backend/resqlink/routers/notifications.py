"""
Notifications API Router
========================

Recent toasts (refreshes, alerts, failures).

GET    /api/notifications?limit=20  - Newest first
DELETE /api/notifications           - Clear them all
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from resqlink.models import NotificationListResponse
from resqlink.routers.sensors import get_dashboard_manager


router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def get_notifications(
    limit: Optional[int] = Query(None, ge=1, le=100),
    manager=Depends(get_dashboard_manager),
):
    notifications = manager.notification_service.recent(limit)
    return NotificationListResponse(notifications=notifications, total=len(notifications))


@router.delete("")
async def clear_notifications(manager=Depends(get_dashboard_manager)):
    cleared = manager.notification_service.clear()
    return {"status": "cleared", "cleared": cleared}
