"""
Models Package
==============

This is where all our data models live.
Import from here instead of the individual files.

Example:
    from resqlink.models import SensorReading, DataRange
"""

from .sensor import (
    # Sensor widget
    DataRange,
    RiskLevel,
    SensorReading,
    SensorDataResponse,
    SensorSummary,
    ChartPoint,
    SetDataRangeRequest,
    NUMERIC_FIELDS,
)
from .emergency import (
    # Chat feed and SOS map
    MessagePriority,
    EmergencyMessage,
    MessageListResponse,
    SOSLocation,
    SOSLocationListResponse,
)
from .map import MapLayer, MapMarker, MapView
from .weather import (
    WeatherMain,
    WeatherCondition,
    Wind,
    WeatherData,
    MonitoredLocation,
    MonitoredWeather,
    MonitoredWeatherResponse,
)
from .alert import AlertTarget, AlertPayload, AlertResult
from .prediction import (
    PredictionStatus,
    PredictionSource,
    MLPrediction,
    DataSource,
    ModelInfo,
)
from .notification import Notification, NotificationVariant, NotificationListResponse
from .document import LandslideDocument, DocumentListResponse, LANDSLIDE_DOCUMENTS

__all__ = [
    "DataRange",
    "RiskLevel",
    "SensorReading",
    "SensorDataResponse",
    "SensorSummary",
    "ChartPoint",
    "SetDataRangeRequest",
    "NUMERIC_FIELDS",
    "MessagePriority",
    "EmergencyMessage",
    "MessageListResponse",
    "SOSLocation",
    "SOSLocationListResponse",
    "MapLayer",
    "MapMarker",
    "MapView",
    "WeatherMain",
    "WeatherCondition",
    "Wind",
    "WeatherData",
    "MonitoredLocation",
    "MonitoredWeather",
    "MonitoredWeatherResponse",
    "AlertTarget",
    "AlertPayload",
    "AlertResult",
    "PredictionStatus",
    "PredictionSource",
    "MLPrediction",
    "DataSource",
    "ModelInfo",
    "Notification",
    "NotificationVariant",
    "NotificationListResponse",
    "LandslideDocument",
    "DocumentListResponse",
    "LANDSLIDE_DOCUMENTS",
]
