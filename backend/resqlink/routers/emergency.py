"""
Emergency Map API Router
========================

People who pressed SOS and shared their location.

GET    /api/emergency/sos-locations          - Shared locations
POST   /api/emergency/sos-locations/refresh  - Re-read the users table now
GET    /api/emergency/map                    - Map view with one marker per location
"""

from fastapi import APIRouter, Depends

from resqlink.models import SOSLocationListResponse, MapView
from resqlink.routers.sensors import get_dashboard_manager


router = APIRouter(prefix="/api/emergency", tags=["emergency"])


@router.get("/sos-locations", response_model=SOSLocationListResponse)
async def get_sos_locations(manager=Depends(get_dashboard_manager)):
    return manager.sos_locations()


@router.post("/sos-locations/refresh", response_model=SOSLocationListResponse)
async def refresh_sos_locations(manager=Depends(get_dashboard_manager)):
    """A failed read keeps the previous markers."""
    return await manager.refresh_sos_locations()


@router.get("/map", response_model=MapView)
async def get_emergency_map(manager=Depends(get_dashboard_manager)):
    return manager.emergency_map()
