"""Tests for WeatherService (OpenWeatherMap)."""

import pytest

from resqlink.models import MonitoredLocation
from resqlink.services.weather_service import (
    WeatherService,
    WeatherServiceError,
    MONITORED_LOCATIONS,
    deg_to_compass,
)

from conftest import WEATHER_KEY


@pytest.mark.parametrize("deg, expected", [
    (0, "N"),
    (11.24, "N"),
    (11.25, "NNE"),
    (45, "NE"),
    (90, "E"),
    (180, "S"),
    (225, "SW"),
    (348.75, "N"),
    (359, "N"),
    (360, "N"),
    (None, ""),
])
def test_deg_to_compass(deg, expected):
    assert deg_to_compass(deg) == expected


async def test_get_by_coordinates(backend, weather_service):
    weather = await weather_service.get_by_coordinates(11.68, 76.13)

    assert weather.name == "Wayanad"
    assert weather.main.temp == 24.3
    assert weather.main.humidity == 91
    assert weather.weather[0].description == "moderate rain"
    assert weather.wind.speed == 4.6
    assert weather.wind_compass == "SW"

    params = backend.requests[-1].url.params
    assert params["lat"] == "11.68"
    assert params["lon"] == "76.13"
    assert params["appid"] == WEATHER_KEY
    assert params["units"] == "metric"


async def test_get_by_city(backend, weather_service):
    weather = await weather_service.get_by_city("Munnar")

    assert weather.name == "Munnar"
    assert backend.requests[-1].url.params["q"] == "Munnar"


async def test_api_error_message_is_passed_through(backend, weather_service):
    backend.weather_errors["Atlantis"] = (404, {"cod": "404", "message": "city not found"})

    with pytest.raises(WeatherServiceError) as exc_info:
        await weather_service.get_by_city("Atlantis")

    assert exc_info.value.message == "city not found"
    assert exc_info.value.http_status == 404


async def test_api_error_without_message(backend, weather_service):
    backend.weather_errors["Nowhere"] = (500, {})

    with pytest.raises(WeatherServiceError) as exc_info:
        await weather_service.get_by_city("Nowhere")

    assert exc_info.value.message == "Weather API request failed"


async def test_not_configured(backend, http_client):
    service = WeatherService(api_key="", http_client=http_client)

    with pytest.raises(WeatherServiceError, match="not configured"):
        await service.get_by_coordinates(0, 0)
    assert backend.requests == []


async def test_monitored_locations_skip_failures(backend, weather_service):
    locations = [
        MonitoredLocation(lat=10.8505, lng=76.2711, name="Kerala, India"),
        MonitoredLocation(lat=35.6762, lng=139.6503, name="Tokyo"),
        MonitoredLocation(lat=25.7617, lng=-80.1918, name="Miami"),
    ]
    backend.weather_errors["35.6762,139.6503"] = (429, {"message": "rate limited"})

    response = await weather_service.get_monitored_locations(locations)

    assert response.requested == 3
    assert response.succeeded == 2
    assert [r.location.name for r in response.results] == ["Kerala, India", "Miami"]


def test_ten_monitored_locations():
    assert len(MONITORED_LOCATIONS) == 10
    assert MONITORED_LOCATIONS[0].name == "Kerala, India"


async def test_map_view_layers(weather_service):
    view = weather_service.map_view()

    assert (view.center_lat, view.center_lng, view.zoom) == (10.8505, 76.2711, 6)
    base, temperature, precipitation = view.layers

    assert base.overlay is False
    assert base.url == "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
    assert temperature.enabled is True
    assert temperature.opacity == 0.3
    assert temperature.url == (
        f"https://tile.openweathermap.org/map/temp_new/{{z}}/{{x}}/{{y}}.png?appid={WEATHER_KEY}"
    )
    assert precipitation.enabled is False
    assert "precipitation_new" in precipitation.url
    assert view.markers == []


async def test_map_view_with_monitored_markers(weather_service):
    monitored = await weather_service.get_monitored_locations(MONITORED_LOCATIONS[:2])
    view = weather_service.map_view(monitored)

    assert [m.label for m in view.markers] == ["Kerala, India", "Sydney"]
    assert view.markers[0].kind == "weather"
    assert "24.3°C" in view.markers[0].popup
