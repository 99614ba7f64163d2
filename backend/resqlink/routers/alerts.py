"""
Alerts API Router
=================

The two big red buttons.

POST   /api/alerts/citizen         - Notify citizens
POST   /api/alerts/representative  - Notify representatives

200 = the workflow accepted it (body has the toast text)
409 = that button is already sending
502 = the workflow didn't accept it (detail has the toast text)
"""

from fastapi import APIRouter, HTTPException, Depends

from resqlink.models import AlertTarget, AlertResult
from resqlink.routers.sensors import get_dashboard_manager
from resqlink.services.alert_service import AlertInProgressError


router = APIRouter(prefix="/api/alerts", tags=["alerts"])


@router.post("/{target}", response_model=AlertResult)
async def trigger_alert(target: AlertTarget, manager=Depends(get_dashboard_manager)):
    """
    Trigger an alert. No retries: if it fails, press it again.
    """
    try:
        result = await manager.trigger_alert(target)
    except AlertInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if not result.success:
        raise HTTPException(
            status_code=502,
            detail={"title": result.title, "description": result.description},
        )
    return result
