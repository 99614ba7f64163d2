"""
Weather API Router
==================

Weather map endpoints, backed by OpenWeatherMap.

ALL ENDPOINTS:
-------------
GET    /api/weather/current?lat=..&lon=..  - Weather at a clicked point
GET    /api/weather/city/{name}            - Weather for a place name
GET    /api/weather/monitored              - All monitored locations
GET    /api/weather/map                    - Layers and monitored markers

ERRORS:
------
400 = bad coordinates or place name (we don't even call the API)
502 = the weather API said no (its message is passed through)

Author: ResQlink Team
"""

from fastapi import APIRouter, HTTPException, Depends

from resqlink.models import WeatherData, MonitoredWeatherResponse, MapView
from resqlink.routers.sensors import get_dashboard_manager
from resqlink.services.weather_service import WeatherServiceError
from resqlink.utils.validation import validate_coordinates, validate_place_name


router = APIRouter(prefix="/api/weather", tags=["weather"])


@router.get("/current", response_model=WeatherData)
async def get_current_weather(
    lat: float,
    lon: float,
    manager=Depends(get_dashboard_manager),
):
    """
    Weather at a point on the map.

    Send us:
    - lat: -90..90
    - lon: -180..180
    """
    if not validate_coordinates(lat, lon):
        raise HTTPException(
            status_code=400,
            detail=f"Invalid coordinates: lat={lat}, lon={lon}",
        )

    try:
        return await manager.weather_at(lat, lon)
    except WeatherServiceError as e:
        raise HTTPException(status_code=502, detail=e.message)


@router.get("/city/{name}", response_model=WeatherData)
async def get_city_weather(name: str, manager=Depends(get_dashboard_manager)):
    """Weather by place name, e.g. /api/weather/city/Wayanad"""
    if not validate_place_name(name):
        raise HTTPException(status_code=400, detail=f"Invalid place name: {name!r}")

    try:
        return await manager.weather_for_city(name)
    except WeatherServiceError as e:
        raise HTTPException(status_code=502, detail=e.message)


@router.get("/monitored", response_model=MonitoredWeatherResponse)
async def get_monitored_weather(manager=Depends(get_dashboard_manager)):
    """
    Weather for every monitored location.

    Locations that fail are left out; `succeeded` tells you how many made it.
    """
    return await manager.weather_service.get_monitored_locations()


@router.get("/map", response_model=MapView)
async def get_weather_map(manager=Depends(get_dashboard_manager)):
    monitored = await manager.weather_service.get_monitored_locations()
    return manager.weather_service.map_view(monitored)
