"""
Sensor Models
=============
Pydantic models for landslide sensor readings and the sensor widget.

The `sensor_data` table has changed shape several times. Rows seen so far:

1. Field kit:       rainfall, vibration, temperature, moisture, location
2. Soil probe:      soil_moisture, pore_water_pressure
3. Flagged rows:    any of the above plus alert / danger booleans
4. Demo generator:  shape 1 with generated ids

`SensorReading.from_row()` accepts all of them. Columns we don't know
are ignored, numeric columns that are missing stay None.

Author: ResQlink Team
"""

from pydantic import BaseModel, Field
from typing import Any, Optional
from datetime import datetime, timezone
from enum import Enum


# =============================================================================
# ENUMS
# =============================================================================

class DataRange(str, Enum):
    """
    How many rows the sensor widget loads.

    The values are what the frontend's range selector sends.
    """
    LAST_10 = "10"
    LAST_100 = "100"
    ALL = "all"

    @property
    def limit(self) -> Optional[int]:
        """Row limit for the query, None means no limit."""
        if self is DataRange.ALL:
            return None
        return int(self.value)


class RiskLevel(str, Enum):
    """
    Risk level shown on the status card.

    Derived from the flags on the most recent reading:
    - HIGH:   danger flag set
    - MEDIUM: alert flag set
    - LOW:    neither
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# READINGS
# =============================================================================

# Numeric columns we average on the status cards
NUMERIC_FIELDS = ("rainfall", "vibration", "temperature", "moisture", "pore_water_pressure")


def _to_float(value: Any) -> Optional[float]:
    """Coerce a column value to float, None if it isn't a number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _parse_timestamp(value: Any) -> datetime:
    """Parse an ISO timestamp from the database, falling back to now."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value:
        try:
            # Postgres sends "2025-07-11T08:30:00+00:00" or a trailing Z
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        except ValueError:
            pass
    return datetime.now(timezone.utc)


class SensorReading(BaseModel):
    """
    One row from the `sensor_data` table, normalized.

    Units follow what the field kit reports:
        rainfall            mm
        vibration           unitless (accelerometer magnitude)
        temperature         °C
        moisture            % volumetric soil moisture
        pore_water_pressure kPa
    """
    id: str = Field(..., description="Row id as a string")
    timestamp: datetime = Field(..., description="When the reading was taken")
    rainfall: Optional[float] = Field(None, description="Rainfall (mm)")
    vibration: Optional[float] = Field(None, description="Ground vibration")
    temperature: Optional[float] = Field(None, description="Temperature (°C)")
    moisture: Optional[float] = Field(None, description="Soil moisture (%)")
    pore_water_pressure: Optional[float] = Field(None, description="Pore water pressure (kPa)")
    location: Optional[str] = Field(None, description="Sensor location label")
    alert: bool = Field(default=False, description="Row flagged as elevated risk")
    danger: bool = Field(default=False, description="Row flagged as landslide danger")

    @classmethod
    def from_row(cls, row: dict) -> "SensorReading":
        """
        Build a reading from any known row shape.

        `soil_moisture` wins over `moisture` when both are present
        since the soil probes are the newer hardware.
        """
        moisture = row.get("soil_moisture")
        if moisture is None:
            moisture = row.get("moisture")

        return cls(
            id=str(row.get("id", "")),
            timestamp=_parse_timestamp(row.get("timestamp") or row.get("created_at")),
            rainfall=_to_float(row.get("rainfall")),
            vibration=_to_float(row.get("vibration")),
            temperature=_to_float(row.get("temperature")),
            moisture=_to_float(moisture),
            pore_water_pressure=_to_float(row.get("pore_water_pressure")),
            location=row.get("location"),
            alert=bool(row.get("alert")),
            danger=bool(row.get("danger")),
        )


# =============================================================================
# RESPONSE MODELS - What the sensor widget gets
# =============================================================================

class SensorDataResponse(BaseModel):
    """Readings currently cached for the sensor widget, oldest first."""
    readings: list[SensorReading] = Field(..., description="Readings, oldest to newest")
    total: int = Field(..., description="Number of readings")
    data_range: DataRange = Field(..., description="Active range selection")
    last_update: Optional[datetime] = Field(None, description="Last successful fetch")


class SensorSummary(BaseModel):
    """
    The four status cards at the top of the sensor page.

    Averages only count readings where the column is a number.
    An empty set averages to 0.0.
    """
    avg_rainfall: float = Field(0.0, description="Average rainfall (mm)")
    avg_vibration: float = Field(0.0, description="Average vibration")
    avg_temperature: float = Field(0.0, description="Average temperature (°C)")
    avg_moisture: float = Field(0.0, description="Average soil moisture (%)")
    avg_pore_water_pressure: float = Field(0.0, description="Average pore water pressure (kPa)")
    risk_level: RiskLevel = Field(default=RiskLevel.LOW)
    reading_count: int = Field(0, description="Readings the averages are based on")
    last_update: Optional[datetime] = Field(None, description="Last successful fetch")


class ChartPoint(BaseModel):
    """One x-axis point for the sensor charts."""
    time: str = Field(..., description="Time label, HH:MM")
    moisture: Optional[float] = None
    pore_water_pressure: Optional[float] = None
    rainfall: Optional[float] = None
    vibration: Optional[float] = None


class SetDataRangeRequest(BaseModel):
    """Request body for changing the range selector."""
    data_range: DataRange = Field(..., description="'10', '100' or 'all'")
