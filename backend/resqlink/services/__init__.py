"""
Services Package
================

These are the "workers" that do the actual work.

- SupabaseService: Reads tables through the REST API
- RealtimeService: Follows table change feeds over one WebSocket
- WeatherService: Talks to OpenWeatherMap
- AlertService: Fires the citizen/representative alert webhook
- PredictionService: Produces the risk card prediction
- NotificationService: Keeps recent toasts
- DashboardManager: The boss that keeps every widget fresh
"""

from .supabase_service import SupabaseService, SupabaseError
from .realtime_service import RealtimeService, ChangeEvent
from .weather_service import WeatherService, WeatherServiceError, MONITORED_LOCATIONS
from .alert_service import AlertService, AlertInProgressError
from .prediction_service import PredictionService, PredictionError
from .notification_service import NotificationService
from .dashboard_manager import DashboardManager

__all__ = [
    "SupabaseService",
    "SupabaseError",
    "RealtimeService",
    "ChangeEvent",
    "WeatherService",
    "WeatherServiceError",
    "MONITORED_LOCATIONS",
    "AlertService",
    "AlertInProgressError",
    "PredictionService",
    "PredictionError",
    "NotificationService",
    "DashboardManager",
]
