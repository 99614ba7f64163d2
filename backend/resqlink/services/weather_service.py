"""
Weather Service
===============

Current conditions from OpenWeatherMap, for the weather map page.

WHAT THIS DOES:
--------------
1. Looks up the weather at a clicked point (lat/lon)
2. Looks up the weather by place name ("Wayanad")
3. Keeps a list of disaster-prone places we always show widgets for
4. Tells the client which tile layers to draw (base map + overlays)

API Documentation: https://openweathermap.org/current

Author: ResQlink Team
"""

import asyncio
import math
import httpx
import logging
from typing import Optional

from resqlink.models import (
    WeatherData,
    MonitoredLocation,
    MonitoredWeather,
    MonitoredWeatherResponse,
    MapLayer,
    MapMarker,
    MapView,
)

logger = logging.getLogger(__name__)


COMPASS_POINTS = [
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
]


def deg_to_compass(deg: Optional[float]) -> str:
    """
    Convert a wind direction in degrees to a 16-point compass label.

    Each point covers 22.5°, centred on its heading, so 11.25° is
    already NNE. None gives an empty string.
    """
    if deg is None:
        return ""
    index = math.floor(deg / 22.5 + 0.5)
    return COMPASS_POINTS[index % 16]


# Disaster-prone and significant weather monitoring locations worldwide
MONITORED_LOCATIONS = [
    MonitoredLocation(lat=10.8505, lng=76.2711, name="Kerala, India"),    # Landslide prone
    MonitoredLocation(lat=-33.8688, lng=151.2093, name="Sydney"),         # Bushfire prone
    MonitoredLocation(lat=35.6762, lng=139.6503, name="Tokyo"),           # Earthquake prone
    MonitoredLocation(lat=25.7617, lng=-80.1918, name="Miami"),           # Hurricane prone
    MonitoredLocation(lat=-6.2088, lng=106.8456, name="Jakarta"),         # Flood prone
    MonitoredLocation(lat=19.4326, lng=-99.1332, name="Mexico City"),     # Earthquake zone
    MonitoredLocation(lat=14.5995, lng=120.9842, name="Manila"),          # Typhoon prone
    MonitoredLocation(lat=-22.9068, lng=-43.1729, name="Rio"),            # Landslide risk
    MonitoredLocation(lat=31.2304, lng=121.4737, name="Shanghai"),        # Flood prone
    MonitoredLocation(lat=37.7749, lng=-122.4194, name="San Francisco"),  # Seismic zone
]


class WeatherServiceError(Exception):
    """The weather API didn't give us usable data."""

    def __init__(self, message: str, http_status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.http_status = http_status


class WeatherService:
    """
    Talks to OpenWeatherMap.

    HOW TO USE:
    ----------
    service = WeatherService(api_key="...")

    weather = await service.get_by_coordinates(10.85, 76.27)
    print(weather.main.temp, weather.wind_compass)

    Failures raise WeatherServiceError with the API's own message
    when it sent one (e.g. "city not found").
    """

    API_URL = "https://api.openweathermap.org/data/2.5/weather"
    TILE_URL = "https://tile.openweathermap.org/map/{layer}/{{z}}/{{x}}/{{y}}.png?appid={key}"
    OSM_TILE_URL = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
    OSM_ATTRIBUTION = "© OpenStreetMap contributors"

    # Weather map opens centred on South India (Kerala)
    MAP_CENTER = (10.8505, 76.2711)
    MAP_ZOOM = 6
    OVERLAY_OPACITY = 0.3

    def __init__(
        self,
        api_key: str,
        request_timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key or ""
        self.http_client = http_client or httpx.AsyncClient(timeout=request_timeout)

        self.is_configured = bool(self.api_key)
        if not self.is_configured:
            logger.warning(
                "Weather service not configured. Set OPENWEATHER_API_KEY "
                "environment variable to enable weather lookups."
            )

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def get_by_coordinates(self, lat: float, lon: float) -> WeatherData:
        """Current weather at a point."""
        return await self._fetch({"lat": lat, "lon": lon})

    async def get_by_city(self, name: str) -> WeatherData:
        """Current weather for a place name."""
        return await self._fetch({"q": name})

    async def _fetch(self, query: dict) -> WeatherData:
        if not self.is_configured:
            raise WeatherServiceError("Weather API key is not configured")

        params = {**query, "appid": self.api_key, "units": "metric"}

        try:
            response = await self.http_client.get(self.API_URL, params=params)
        except httpx.TimeoutException as e:
            raise WeatherServiceError("Weather API request timed out") from e
        except httpx.HTTPError as e:
            raise WeatherServiceError(f"Weather API request failed: {e}") from e

        if response.status_code >= 400:
            message = "Weather API request failed"
            try:
                body = response.json()
                if isinstance(body, dict) and body.get("message"):
                    message = str(body["message"])
            except ValueError:
                pass
            raise WeatherServiceError(message, http_status=response.status_code)

        try:
            weather = WeatherData.model_validate(response.json())
        except ValueError as e:
            raise WeatherServiceError(f"Unexpected weather response: {e}") from e

        weather.wind_compass = deg_to_compass(weather.wind.deg)
        logger.debug(f"Weather data fetched for {weather.name or query}")
        return weather

    async def get_monitored_locations(
        self,
        locations: Optional[list[MonitoredLocation]] = None,
    ) -> MonitoredWeatherResponse:
        """
        Weather for every monitored location, fetched in parallel.

        A location that fails is logged and left out, the rest still show.
        """
        locations = locations if locations is not None else MONITORED_LOCATIONS

        async def fetch_one(location: MonitoredLocation) -> Optional[MonitoredWeather]:
            try:
                weather = await self.get_by_coordinates(location.lat, location.lng)
                return MonitoredWeather(location=location, weather=weather)
            except WeatherServiceError as e:
                logger.error(f"Error fetching weather for {location.name}: {e.message}")
                return None

        results = await asyncio.gather(*(fetch_one(loc) for loc in locations))
        succeeded = [r for r in results if r is not None]

        return MonitoredWeatherResponse(
            results=succeeded,
            requested=len(locations),
            succeeded=len(succeeded),
        )

    # =========================================================================
    # MAP
    # =========================================================================

    def overlay_url(self, layer: str) -> str:
        """Tile URL template for an OpenWeatherMap layer (temp_new, precipitation_new, ...)."""
        return self.TILE_URL.format(layer=layer, key=self.api_key)

    def map_layers(self) -> list[MapLayer]:
        """OpenStreetMap base plus temperature (on) and precipitation (off) overlays."""
        return [
            MapLayer(
                name="OpenStreetMap",
                url=self.OSM_TILE_URL,
                attribution=self.OSM_ATTRIBUTION,
            ),
            MapLayer(
                name="Temperature",
                url=self.overlay_url("temp_new"),
                opacity=self.OVERLAY_OPACITY,
                overlay=True,
                enabled=True,
            ),
            MapLayer(
                name="Precipitation",
                url=self.overlay_url("precipitation_new"),
                opacity=self.OVERLAY_OPACITY,
                overlay=True,
                enabled=False,
            ),
        ]

    def map_view(self, monitored: Optional[MonitoredWeatherResponse] = None) -> MapView:
        """
        The weather map: view, layers and one marker per monitored location
        that answered.
        """
        markers = []
        if monitored is not None:
            for item in monitored.results:
                w = item.weather
                condition = w.weather[0].main if w.weather else ""
                markers.append(MapMarker(
                    lat=item.location.lat,
                    lng=item.location.lng,
                    label=item.location.name,
                    popup=f"{w.main.temp:.1f}°C {condition} | {w.wind.speed} m/s {w.wind_compass}".strip(),
                    kind="weather",
                ))

        return MapView(
            center_lat=self.MAP_CENTER[0],
            center_lng=self.MAP_CENTER[1],
            zoom=self.MAP_ZOOM,
            layers=self.map_layers(),
            markers=markers,
        )

    async def close(self):
        await self.http_client.aclose()
