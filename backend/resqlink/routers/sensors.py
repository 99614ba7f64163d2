"""
Sensors API Router
==================

Endpoints behind the sensor widget: readings, the status cards,
the charts and the range selector.

HOW IT WORKS:
------------
1. Frontend sends an HTTP request (GET, PUT, POST)
2. FastAPI routes it to the right function here
3. We ask the DashboardManager for the widget's cached state
4. We send back JSON

ALL ENDPOINTS:
-------------
GET    /api/sensors/readings  - Cached readings (oldest first)
GET    /api/sensors/summary   - Averages and risk level
GET    /api/sensors/chart     - Chart points with HH:MM labels
PUT    /api/sensors/range     - Switch between last 10 / last 100 / all
POST   /api/sensors/refresh   - Re-read the table right now

Author: ResQlink Team
"""

from fastapi import APIRouter, HTTPException, Depends

from resqlink.models import (
    SensorDataResponse,
    SensorSummary,
    ChartPoint,
    SetDataRangeRequest,
)


router = APIRouter(prefix="/api/sensors", tags=["sensors"])


# =============================================================================
# DEPENDENCY INJECTION
# =============================================================================
# Every router gets the DashboardManager from here

_dashboard_manager = None  # This gets set when the app starts


def set_dashboard_manager(manager):
    """
    Called when the app starts to give the routers the dashboard manager.
    """
    global _dashboard_manager
    _dashboard_manager = manager


def get_dashboard_manager():
    """
    Get the dashboard manager for use in endpoints.
    """
    if _dashboard_manager is None:
        raise HTTPException(status_code=500, detail="Server not fully started yet")
    return _dashboard_manager


# =============================================================================
# SENSOR WIDGET ENDPOINTS
# =============================================================================

@router.get("/readings", response_model=SensorDataResponse)
async def get_readings(manager=Depends(get_dashboard_manager)):
    """Cached readings for the current range, oldest first."""
    return manager.sensor_data()


@router.get("/summary", response_model=SensorSummary)
async def get_summary(manager=Depends(get_dashboard_manager)):
    """
    Numbers for the status cards.

    Averages skip readings that don't report a column. The risk level comes
    from the newest reading: danger flag = high, alert flag = medium.
    """
    return manager.sensor_summary()


@router.get("/chart", response_model=list[ChartPoint])
async def get_chart(manager=Depends(get_dashboard_manager)):
    return manager.chart_data()


@router.put("/range", response_model=SensorDataResponse)
async def set_range(
    request: SetDataRangeRequest,
    manager=Depends(get_dashboard_manager),
):
    """
    Change how many readings the widget loads ("10", "100" or "all").

    The table is re-read straight away. If that read fails the old
    readings stay and a toast says so.
    """
    return await manager.set_data_range(request.data_range)


@router.post("/refresh", response_model=SensorDataResponse)
async def refresh_readings(manager=Depends(get_dashboard_manager)):
    """Re-read sensor_data now instead of waiting for the change feed."""
    return await manager.refresh_sensor_data()
