"""
Routers Package
===============

Routers are like the reception desk - they direct incoming requests
to the right place. One router per dashboard widget.
"""

from .sensors import router as sensors_router, set_dashboard_manager, get_dashboard_manager
from .messages import router as messages_router
from .emergency import router as emergency_router
from .weather import router as weather_router
from .alerts import router as alerts_router
from .predictions import router as predictions_router
from .notifications import router as notifications_router
from .documents import router as documents_router
from .live import router as live_router

__all__ = [
    "sensors_router",
    "messages_router",
    "emergency_router",
    "weather_router",
    "alerts_router",
    "predictions_router",
    "notifications_router",
    "documents_router",
    "live_router",
    "set_dashboard_manager",
    "get_dashboard_manager",
]
