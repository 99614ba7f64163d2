"""Tests for the pydantic models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from resqlink.models import (
    DataRange,
    SensorReading,
    AlertTarget,
    AlertPayload,
    MLPrediction,
    MapLayer,
    LANDSLIDE_DOCUMENTS,
)


class TestSensorReadingFromRow:
    def test_field_kit_row(self):
        reading = SensorReading.from_row({
            "id": 12,
            "timestamp": "2025-07-11T08:30:00Z",
            "rainfall": 12.5,
            "vibration": "3.2",
            "temperature": 24,
            "moisture": 41.0,
            "location": "Sensor 2",
        })

        assert reading.id == "12"
        assert reading.timestamp == datetime(2025, 7, 11, 8, 30, tzinfo=timezone.utc)
        assert reading.rainfall == 12.5
        assert reading.vibration == 3.2
        assert reading.temperature == 24.0
        assert reading.moisture == 41.0
        assert reading.location == "Sensor 2"
        assert reading.pore_water_pressure is None
        assert reading.alert is False
        assert reading.danger is False

    def test_soil_probe_row_maps_soil_moisture(self):
        reading = SensorReading.from_row({
            "id": 5,
            "timestamp": "2025-07-11T08:30:00+00:00",
            "soil_moisture": 63.1,
            "pore_water_pressure": 14.2,
        })

        assert reading.moisture == 63.1
        assert reading.pore_water_pressure == 14.2
        assert reading.rainfall is None

    def test_soil_moisture_wins_over_moisture(self):
        reading = SensorReading.from_row({"id": 1, "moisture": 10, "soil_moisture": 20})
        assert reading.moisture == 20.0

    def test_flags_and_unknown_columns(self):
        reading = SensorReading.from_row({
            "id": 9,
            "created_at": "2025-07-11T08:30:00",
            "danger": True,
            "alert": 1,
            "battery": 3.7,
        })

        assert reading.danger is True
        assert reading.alert is True
        assert reading.timestamp.tzinfo is not None

    def test_non_numeric_values_become_none(self):
        reading = SensorReading.from_row({"id": 1, "rainfall": "n/a", "vibration": True})
        assert reading.rainfall is None
        assert reading.vibration is None

    def test_missing_timestamp_uses_now(self):
        before = datetime.now(timezone.utc)
        reading = SensorReading.from_row({"id": 1})
        assert reading.timestamp >= before


@pytest.mark.parametrize("data_range, limit", [
    (DataRange.LAST_10, 10),
    (DataRange.LAST_100, 100),
    (DataRange.ALL, None),
])
def test_data_range_limit(data_range, limit):
    assert data_range.limit == limit


def test_alert_target_audience():
    assert AlertTarget.CITIZEN.audience == "Citizens"
    assert AlertTarget.REPRESENTATIVE.audience == "Representatives"


def test_alert_payload_serializes_camel_case():
    payload = AlertPayload(
        user_type=AlertTarget.CITIZEN,
        timestamp="2025-07-11T08:30:00+00:00",
        source="ResQlink_Admin_Panel",
    )
    assert payload.model_dump(mode="json", by_alias=True) == {
        "userType": "citizen",
        "timestamp": "2025-07-11T08:30:00+00:00",
        "source": "ResQlink_Admin_Panel",
    }


def test_prediction_confidence_is_bounded():
    with pytest.raises(ValidationError):
        MLPrediction(
            prediction="danger",
            confidence=140,
            recommendation="",
            timestamp=datetime.now(timezone.utc),
        )


def test_map_layer_opacity_is_bounded():
    with pytest.raises(ValidationError):
        MapLayer(name="x", url="https://tiles/{z}/{x}/{y}.png", opacity=1.5)


def test_documents_are_indexed_in_order():
    assert [d.index for d in LANDSLIDE_DOCUMENTS] == [0, 1, 2, 3]
    assert LANDSLIDE_DOCUMENTS[3].title == "Kerala Landslide Map"
