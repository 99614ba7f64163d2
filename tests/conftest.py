"""
Shared fixtures.

Every outside HTTP API (Supabase REST, OpenWeatherMap, the alert webhook)
is served by one FakeBackend through httpx.MockTransport, so no test
touches the network.
"""

import asyncio
import random

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from resqlink.services import (
    SupabaseService,
    RealtimeService,
    WeatherService,
    AlertService,
    PredictionService,
    NotificationService,
    DashboardManager,
)

SUPABASE_URL = "https://test-project.supabase.co"
SUPABASE_KEY = "test-anon-key"
WEATHER_KEY = "test-weather-key"
WEBHOOK_URL = "https://hooks.example.org/webhook/landslide-alert"


SENSOR_ROWS = [
    {
        "id": 1,
        "timestamp": "2025-07-11T08:00:00+00:00",
        "rainfall": 10.0,
        "vibration": 1.0,
        "temperature": 25.0,
        "moisture": 40.0,
        "location": "Sensor 1",
    },
    {
        "id": 2,
        "timestamp": "2025-07-11T09:00:00+00:00",
        "soil_moisture": 60.0,
        "pore_water_pressure": 12.5,
    },
    {
        "id": 3,
        "timestamp": "2025-07-11T10:00:00+00:00",
        "rainfall": 30.0,
        "vibration": 3.0,
        "temperature": 27.0,
        "moisture": 50.0,
        "alert": True,
    },
]

MESSAGE_ROWS = [
    {
        "id": 7,
        "username": "ranger_anu",
        "message": "Cracks on the road near Meppadi",
        "from_node": "Node 3",
        "created_at": "2025-07-11T10:30:00+00:00",
    },
    {
        "id": 8,
        "username": None,
        "message": "Water level rising",
        "from_node": None,
        "created_at": "2025-07-11T14:05:00+00:00",
    },
]

USER_ROWS = [
    {"id": "u1", "latitude": 11.6854, "longitude": 76.1320, "name": "Anu", "phone": "+91 90000 00001"},
    {"id": "u2", "latitude": None, "longitude": None, "name": "No Location", "phone": None},
    {"id": "u3", "latitude": 11.5, "longitude": 76.0, "name": None, "phone": None},
]


def weather_payload(name: str = "Wayanad", temp: float = 24.3, deg: float = 225) -> dict:
    """A trimmed OpenWeatherMap current-weather response."""
    return {
        "coord": {"lon": 76.13, "lat": 11.68},
        "weather": [{"id": 501, "main": "Rain", "description": "moderate rain", "icon": "10d"}],
        "main": {"temp": temp, "feels_like": 25.1, "pressure": 1008, "humidity": 91},
        "visibility": 6000,
        "wind": {"speed": 4.6, "deg": deg, "gust": 8.2},
        "name": name,
        "cod": 200,
    }


class FakeBackend:
    """Routes requests by host to a fake Supabase, weather API or webhook."""

    def __init__(self):
        self.tables: dict[str, list[dict]] = {
            "sensor_data": [],
            "messages": [],
            "users": [],
        }
        # table -> (status, body) to fail reads
        self.table_errors: dict[str, tuple[int, dict]] = {}
        # table -> raw 200 body that isn't JSON (proxy or maintenance page)
        self.table_pages: dict[str, str] = {}
        # "q" value or "lat,lon" -> (status, body)
        self.weather_errors: dict[str, tuple[int, dict]] = {}
        self.webhook_status = 200
        self.requests: list[httpx.Request] = []

    def requests_to(self, host: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.host == host]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        host = request.url.host

        if host == "test-project.supabase.co":
            return self._rest(request)
        if host == "api.openweathermap.org":
            return self._weather(request)
        if host == "hooks.example.org":
            return httpx.Response(self.webhook_status, json={"received": True})
        return httpx.Response(404, text="not found")

    def _rest(self, request: httpx.Request) -> httpx.Response:
        table = request.url.path.rsplit("/", 1)[-1]
        if table in self.table_errors:
            status, body = self.table_errors[table]
            return httpx.Response(status, json=body)
        if table in self.table_pages:
            return httpx.Response(200, text=self.table_pages[table])
        if table not in self.tables:
            return httpx.Response(404, json={
                "code": "42P01",
                "message": f'relation "public.{table}" does not exist',
                "details": None,
                "hint": None,
            })

        params = request.url.params
        rows = [dict(r) for r in self.tables[table]]

        for column, value in params.items():
            if value == "not.is.null":
                rows = [r for r in rows if r.get(column) is not None]

        order = params.get("order")
        if order:
            column, direction = order.rsplit(".", 1)
            rows.sort(key=lambda r: r[column], reverse=direction == "desc")

        if "limit" in params:
            rows = rows[:int(params["limit"])]

        return httpx.Response(200, json=rows)

    def _weather(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        key = params.get("q") or f"{params.get('lat')},{params.get('lon')}"
        if key in self.weather_errors:
            status, body = self.weather_errors[key]
            return httpx.Response(status, json=body)
        return httpx.Response(200, json=weather_payload(name=params.get("q", "Wayanad")))


class SequenceRandom(random.Random):
    """random() returns the given values in order."""

    def __init__(self, values):
        super().__init__(0)
        self._values = list(values)

    def random(self):
        return self._values.pop(0)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def backend():
    return FakeBackend()


@pytest_asyncio.fixture
async def http_client(backend):
    client = httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))
    yield client
    await client.aclose()


@pytest.fixture
def supabase_service(http_client):
    return SupabaseService(url=SUPABASE_URL, key=SUPABASE_KEY, http_client=http_client)


@pytest.fixture
def weather_service(http_client):
    return WeatherService(api_key=WEATHER_KEY, http_client=http_client)


@pytest.fixture
def alert_service(http_client):
    return AlertService(webhook_url=WEBHOOK_URL, http_client=http_client)


@pytest.fixture
def realtime_service():
    return RealtimeService(url=SUPABASE_URL, key=SUPABASE_KEY)


@pytest.fixture
def prediction_service():
    # First draw < 0.6, so every simulated prediction is "danger"
    return PredictionService(rng=SequenceRandom([0.1] * 50))


@pytest_asyncio.fixture
async def manager(
    supabase_service,
    realtime_service,
    weather_service,
    alert_service,
    prediction_service,
):
    dashboard = DashboardManager(
        supabase_service=supabase_service,
        realtime_service=realtime_service,
        weather_service=weather_service,
        alert_service=alert_service,
        prediction_service=prediction_service,
        notification_service=NotificationService(),
        realtime_enabled=False,
        demo_data=False,
        rng=random.Random(42),
    )
    yield dashboard
    # Tests that already called shutdown() leave nothing running
    if dashboard.scheduler.running:
        dashboard.scheduler.shutdown(wait=False)
        await asyncio.sleep(0)


@pytest_asyncio.fixture
async def client(manager):
    """API client with the manager injected (ASGITransport skips the lifespan)."""
    from resqlink.main import app
    from resqlink.routers import set_dashboard_manager

    set_dashboard_manager(manager)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    set_dashboard_manager(None)
