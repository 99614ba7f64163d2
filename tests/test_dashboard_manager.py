"""Tests for DashboardManager (widget state, fallbacks, toasts, live updates)."""

import asyncio
import random
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from resqlink.models import (
    DataRange,
    RiskLevel,
    AlertTarget,
    PredictionSource,
    PredictionStatus,
    NotificationVariant,
)
from resqlink.services import PredictionService
from resqlink.services.realtime_service import ChangeEvent
from resqlink.services.weather_service import WeatherServiceError
from resqlink.services.dashboard_manager import (
    DEFAULT_MESSAGES,
    WEATHER_ERROR_FALLBACK,
    generate_demo_readings,
    message_from_row,
)

from conftest import SENSOR_ROWS, MESSAGE_ROWS, USER_ROWS


def latest_toast(manager):
    return manager.notification_service.recent(1)[0]


# =============================================================================
# SENSOR WIDGET
# =============================================================================

class TestSensorWidget:
    async def test_refresh_loads_oldest_first(self, backend, manager):
        backend.tables["sensor_data"] = SENSOR_ROWS

        response = await manager.refresh_sensor_data()

        assert [r.id for r in response.readings] == ["1", "2", "3"]
        assert response.total == 3
        assert response.data_range == DataRange.LAST_10
        assert response.last_update is not None
        assert backend.requests[-1].url.params["limit"] == "10"

        toast = latest_toast(manager)
        assert toast.title == "Sensor Data Updated"
        assert toast.description == "Loaded 3 readings from the database."
        assert toast.variant == NotificationVariant.DEFAULT

    async def test_empty_table_keeps_cache(self, backend, manager):
        backend.tables["sensor_data"] = SENSOR_ROWS
        await manager.refresh_sensor_data()
        backend.tables["sensor_data"] = []

        response = await manager.refresh_sensor_data()

        assert response.total == 3
        toast = latest_toast(manager)
        assert toast.title == "No Data Found"
        assert toast.description == "No sensor readings available in the database."
        assert toast.variant == NotificationVariant.DESTRUCTIVE

    async def test_fetch_error_keeps_cache(self, backend, manager):
        backend.tables["sensor_data"] = SENSOR_ROWS
        await manager.refresh_sensor_data()
        backend.table_errors["sensor_data"] = (500, {"message": "boom", "code": "XX000"})

        response = await manager.refresh_sensor_data()

        assert [r.id for r in response.readings] == ["1", "2", "3"]
        toast = latest_toast(manager)
        assert toast.title == "Data Fetch Error"
        assert toast.description == "Unable to load sensor data. Using cached data."
        assert toast.variant == NotificationVariant.DESTRUCTIVE

    async def test_non_json_reply_keeps_cache(self, backend, manager):
        backend.tables["sensor_data"] = SENSOR_ROWS
        await manager.refresh_sensor_data()
        backend.table_pages["sensor_data"] = "<html>maintenance</html>"

        response = await manager.refresh_sensor_data()

        assert [r.id for r in response.readings] == ["1", "2", "3"]
        toast = latest_toast(manager)
        assert toast.title == "Data Fetch Error"
        assert toast.variant == NotificationVariant.DESTRUCTIVE

    async def test_set_data_range(self, backend, manager):
        backend.tables["sensor_data"] = SENSOR_ROWS

        response = await manager.set_data_range(DataRange.ALL)

        assert response.data_range == DataRange.ALL
        assert "limit" not in backend.requests[-1].url.params

    async def test_summary_averages_only_numbers(self, backend, manager):
        backend.tables["sensor_data"] = SENSOR_ROWS
        await manager.refresh_sensor_data()

        summary = manager.sensor_summary()

        assert summary.avg_rainfall == pytest.approx(20.0)
        assert summary.avg_vibration == pytest.approx(2.0)
        assert summary.avg_temperature == pytest.approx(26.0)
        assert summary.avg_moisture == pytest.approx(50.0)
        assert summary.avg_pore_water_pressure == pytest.approx(12.5)
        assert summary.reading_count == 3
        # Newest reading has the alert flag
        assert summary.risk_level == RiskLevel.MEDIUM

    async def test_summary_empty(self, manager):
        summary = manager.sensor_summary()

        assert summary.avg_rainfall == 0.0
        assert summary.reading_count == 0
        assert summary.risk_level == RiskLevel.LOW

    async def test_danger_flag_is_high_risk(self, backend, manager):
        backend.tables["sensor_data"] = SENSOR_ROWS + [
            {"id": 4, "timestamp": "2025-07-11T11:00:00+00:00", "danger": True, "alert": True}
        ]
        await manager.refresh_sensor_data()

        assert manager.sensor_summary().risk_level == RiskLevel.HIGH

    async def test_chart_data(self, backend, manager):
        backend.tables["sensor_data"] = SENSOR_ROWS
        await manager.refresh_sensor_data()

        points = manager.chart_data()

        assert [p.time for p in points] == ["08:00", "09:00", "10:00"]
        assert points[1].moisture == 60.0
        assert points[1].pore_water_pressure == 12.5
        assert points[1].rainfall is None

    async def test_change_event_refreshes(self, backend, manager):
        backend.tables["sensor_data"] = SENSOR_ROWS

        await manager._on_sensor_change(
            ChangeEvent(channel="sensor_updates", type="INSERT", table="sensor_data")
        )

        assert manager.sensor_data().total == 3


def test_demo_readings():
    now = datetime(2025, 7, 11, 12, 0, tzinfo=timezone.utc)
    readings = generate_demo_readings(rng=random.Random(1), now=now)

    assert len(readings) == 24
    # Oldest first, newest is "now"
    assert readings[-1].timestamp == now
    assert readings[0].timestamp < readings[-1].timestamp
    assert readings[-1].id == "sensor_0"
    assert readings[-1].location == "Sensor 1"

    for r in readings:
        assert 20 <= r.temperature <= 35
        assert 30 <= r.moisture <= 70

    # Last five hours have the extra rain
    assert all(r.rainfall >= 20 for r in readings[-5:])
    assert all(r.vibration >= 5 for r in readings[-3:])


async def test_seed_demo_data(manager):
    manager.seed_demo_data()
    assert manager.sensor_data().total == 24


# =============================================================================
# CHAT FEED
# =============================================================================

class TestMessages:
    def test_row_mapping(self):
        message = message_from_row(MESSAGE_ROWS[0])

        assert message.id == 7
        assert message.username == "ranger_anu"
        assert message.node == "Node 3"
        assert message.timestamp == "10:30:00 AM"
        assert message.priority.value == "medium"

    def test_row_defaults(self):
        message = message_from_row({"id": 8})

        assert message.username == "Unknown"
        assert message.message == ""
        assert message.node == ""
        assert message.timestamp == ""

    async def test_refresh(self, backend, manager):
        backend.tables["messages"] = MESSAGE_ROWS

        response = await manager.refresh_messages()

        assert [m.id for m in response.messages] == [8, 7]
        assert response.messages[0].username == "Unknown"
        assert response.messages[0].timestamp == "2:05:00 PM"
        assert response.is_fallback is False

    async def test_empty_table_shows_four_defaults(self, manager):
        response = await manager.refresh_messages()

        assert response.messages == DEFAULT_MESSAGES
        assert response.total == 4
        assert response.is_fallback is True

    async def test_error_shows_two_defaults(self, backend, manager):
        backend.table_errors["messages"] = (401, {"message": "JWT expired"})

        response = await manager.refresh_messages()

        assert response.messages == DEFAULT_MESSAGES[:2]
        assert response.is_fallback is True


# =============================================================================
# SOS MAP
# =============================================================================

class TestSOS:
    async def test_refresh(self, backend, manager):
        backend.tables["users"] = USER_ROWS

        response = await manager.refresh_sos_locations()

        assert [loc.id for loc in response.locations] == ["u1", "u3"]

    async def test_error_keeps_previous(self, backend, manager):
        backend.tables["users"] = USER_ROWS
        await manager.refresh_sos_locations()
        backend.table_errors["users"] = (500, {"message": "down"})

        response = await manager.refresh_sos_locations()

        assert response.total == 2

    async def test_emergency_map(self, backend, manager):
        backend.tables["users"] = USER_ROWS
        await manager.refresh_sos_locations()

        view = manager.emergency_map()

        assert (view.center_lat, view.center_lng, view.zoom) == (10.8505, 76.2711, 7)
        assert [m.label for m in view.markers] == ["Anu", "Unknown"]
        assert view.markers[0].kind == "sos"
        assert view.markers[0].popup == "Phone: +91 90000 00001"
        assert view.markers[1].popup is None


# =============================================================================
# RISK CARD, ALERTS, WEATHER
# =============================================================================

async def test_refresh_prediction(manager):
    prediction = await manager.refresh_prediction()

    assert prediction.prediction == PredictionStatus.DANGER
    assert manager.prediction is prediction


async def test_prediction_failure_keeps_previous(backend, manager, supabase_service):
    first = await manager.refresh_prediction()
    manager.prediction_service = PredictionService(
        source=PredictionSource.TABLE, supabase_service=supabase_service, table="ml_predictions"
    )
    backend.tables["ml_predictions"] = []

    result = await manager.refresh_prediction()

    assert result is first
    assert latest_toast(manager).title == "Prediction Unavailable"


async def test_trigger_alert_toasts(backend, manager):
    result = await manager.trigger_alert(AlertTarget.CITIZEN)
    assert result.success
    assert latest_toast(manager).title == "Alert Triggered Successfully"

    backend.webhook_status = 503
    result = await manager.trigger_alert(AlertTarget.REPRESENTATIVE)
    assert not result.success
    toast = latest_toast(manager)
    assert toast.title == "Alert Failed"
    assert toast.variant == NotificationVariant.DESTRUCTIVE


async def test_weather_at_toasts(manager):
    weather = await manager.weather_at(11.68, 76.13)

    assert weather.name == "Wayanad"
    toast = latest_toast(manager)
    assert toast.title == "Location Selected"
    assert toast.description == "Weather data loaded for Wayanad"


async def test_weather_at_failure_toasts(backend, manager):
    backend.weather_errors["11.68,76.13"] = (401, {"cod": 401, "message": "Invalid API key"})

    with pytest.raises(WeatherServiceError):
        await manager.weather_at(11.68, 76.13)

    toast = latest_toast(manager)
    assert toast.title == "Weather Data Error"
    assert toast.description == "Invalid API key"
    assert toast.variant == NotificationVariant.DESTRUCTIVE


async def test_weather_for_city(manager):
    weather = await manager.weather_for_city("Munnar")

    assert weather.name == "Munnar"


async def test_weather_for_city_failure_toasts(backend, manager):
    backend.weather_errors["Atlantis"] = (404, {"cod": "404", "message": "city not found"})

    with pytest.raises(WeatherServiceError):
        await manager.weather_for_city("Atlantis")

    toast = latest_toast(manager)
    assert toast.title == "Weather Data Error"
    assert toast.description == "city not found"
    assert toast.variant == NotificationVariant.DESTRUCTIVE


async def test_weather_failure_without_message_uses_fallback_text(manager):
    manager.weather_service.get_by_city = AsyncMock(side_effect=WeatherServiceError("", 500))

    with pytest.raises(WeatherServiceError):
        await manager.weather_for_city("Nowhere")

    assert latest_toast(manager).description == WEATHER_ERROR_FALLBACK


# =============================================================================
# LIVE UPDATES
# =============================================================================

async def test_listeners_get_widget_events(backend, manager):
    queue = manager.listen()
    backend.tables["messages"] = MESSAGE_ROWS

    await manager.refresh_messages()

    event = queue.get_nowait()
    assert event["widget"] == "messages"
    assert event["updated_at"]

    manager.unlisten(queue)
    assert manager.listener_count == 0


async def test_full_queue_drops_events(manager):
    queue = manager.listen()
    for _ in range(manager.LISTENER_QUEUE_SIZE + 5):
        manager._publish("sensors")

    assert queue.qsize() == manager.LISTENER_QUEUE_SIZE


async def test_failed_sensor_refresh_publishes_nothing(backend, manager):
    queue = manager.listen()
    backend.table_errors["sensor_data"] = (500, {"message": "down"})

    await manager.refresh_sensor_data()

    assert queue.empty()


# =============================================================================
# STARTUP / SHUTDOWN
# =============================================================================

async def test_start_fetches_every_widget(backend, manager):
    backend.tables["sensor_data"] = SENSOR_ROWS
    backend.tables["messages"] = MESSAGE_ROWS
    backend.tables["users"] = USER_ROWS

    await manager.start()

    assert manager.sensor_data().total == 3
    assert manager.messages().total == 2
    assert manager.sos_locations().total == 2
    assert manager.prediction is not None
    job = manager.scheduler.get_job(manager.PREDICTION_JOB_ID)
    assert job is not None
    assert job.trigger.interval.total_seconds() == 30


async def test_start_subscribes_change_feeds(manager):
    manager.realtime_enabled = True
    manager.realtime_service.start = MagicMock()

    await manager.start()

    assert sorted(manager.realtime_service.channels()) == [
        "messages-channel", "sensor_updates", "users_sos"
    ]
    manager.realtime_service.start.assert_called_once()


async def test_start_demo_mode(backend, manager):
    manager.supabase_service.url = ""
    manager.supabase_service.is_configured = False
    manager.demo_data = True

    await manager.start()

    assert manager.sensor_data().total == 24
    assert backend.requests_to("test-project.supabase.co") == []


async def test_shutdown(manager):
    await manager.start()
    await manager.shutdown()
    # AsyncIOScheduler finishes stopping on the next loop iteration
    await asyncio.sleep(0)

    assert manager.scheduler.running is False
    assert manager.supabase_service.http_client.is_closed
