"""
ResQlink Dashboard - Backend API
================================
FastAPI application behind the ResQlink landslide early-warning dashboard.

ARCHITECTURE:
    The browser dashboard never talks to the database or the weather API
    directly. It asks this backend, which keeps every widget's state fresh
    by reading tables and following their change feeds.

    [Browser Dashboard] --HTTP/WS--> [This Backend] --REST/WS--> [Supabase]
                                           |
                                           +--HTTPS--> [OpenWeatherMap]
                                           |
                                           +--HTTPS--> [Alert Webhook (n8n)]

WIDGETS:
    1. Sensor data  - readings, status cards, charts (sensor_data table)
    2. Chat feed    - mesh network messages (messages table)
    3. SOS map      - users who shared their location (users table)
    4. Weather map  - OpenWeatherMap overlays and monitored locations
    5. Alerts       - citizen / representative alert buttons
    6. Risk card    - simulated or precomputed landslide prediction
    7. Documents    - reference maps

HOW TO RUN:
    # Install
    pip install -e ".[test]"

    # Configure (.env in the working directory is picked up)
    SUPABASE_URL=https://<project>.supabase.co
    SUPABASE_KEY=<anon key>
    OPENWEATHER_API_KEY=<key>
    ALERT_WEBHOOK_URL=<workflow webhook>

    # Run the server
    cd backend
    uvicorn resqlink.main:app --reload --port 8000

API DOCUMENTATION:
    After starting the server, visit:
    - Swagger UI: http://localhost:8000/docs
    - ReDoc: http://localhost:8000/redoc
    - OpenAPI JSON: http://localhost:8000/openapi.json

Author: ResQlink Team
"""

import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from resqlink.models import PredictionSource
from resqlink.routers import (
    sensors_router,
    messages_router,
    emergency_router,
    weather_router,
    alerts_router,
    predictions_router,
    notifications_router,
    documents_router,
    live_router,
    set_dashboard_manager,
)
from resqlink.services import (
    SupabaseService,
    RealtimeService,
    WeatherService,
    AlertService,
    PredictionService,
    NotificationService,
    DashboardManager,
)


# Load environment variables from .env file
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# =============================================================================
# CONFIGURATION
# =============================================================================

class Config:
    """
    Application configuration loaded from environment variables.

    Environment Variables:
        SUPABASE_URL: Project URL (https://<project>.supabase.co)
        SUPABASE_KEY: API key used for table reads and change feeds
        OPENWEATHER_API_KEY: OpenWeatherMap key
        ALERT_WEBHOOK_URL: Workflow webhook the alert buttons POST to
        ALERT_SOURCE: "source" field sent with alerts
        PREDICTION_SOURCE: "simulated" (default) or "table"
        PREDICTION_TABLE: Table read when PREDICTION_SOURCE=table
        PREDICTION_REFRESH_INTERVAL: Seconds between predictions (default: 30)
        REALTIME_ENABLED: Follow table change feeds (default: true)
        DEMO_DATA: Generated sensor readings when Supabase isn't set up (default: true)
        REQUEST_TIMEOUT: Seconds to wait on outside APIs (default: 30)
        FRONTEND_URL: URL of the frontend for CORS

    Secrets have no defaults. A service without its secret logs a
    warning at startup and its widget falls back.
    """

    # Supabase (tables + change feeds)
    SUPABASE_URL = os.getenv("SUPABASE_URL", "")
    SUPABASE_KEY = os.getenv("SUPABASE_KEY", "")

    # OpenWeatherMap
    OPENWEATHER_API_KEY = os.getenv("OPENWEATHER_API_KEY", "")

    # Alert buttons
    ALERT_WEBHOOK_URL = os.getenv("ALERT_WEBHOOK_URL", "")
    ALERT_SOURCE = os.getenv("ALERT_SOURCE", AlertService.DEFAULT_SOURCE)

    # Risk card
    PREDICTION_SOURCE = os.getenv("PREDICTION_SOURCE", PredictionSource.SIMULATED.value).strip().lower()
    PREDICTION_TABLE = os.getenv("PREDICTION_TABLE", PredictionService.DEFAULT_TABLE)
    PREDICTION_REFRESH_INTERVAL = int(os.getenv("PREDICTION_REFRESH_INTERVAL", "30"))

    # Behaviour switches
    REALTIME_ENABLED = _env_flag("REALTIME_ENABLED", "true")
    DEMO_DATA = _env_flag("DEMO_DATA", "true")

    # Timeout for outside HTTP calls
    REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "30"))

    # Frontend URL for CORS
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # Allowed CORS origins
    CORS_ORIGINS = [
        FRONTEND_URL,
        "http://localhost:5173",    # Vite dev server
        "http://localhost:8080",    # Vite (alternate port)
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:8080",
    ]


def build_dashboard_manager() -> DashboardManager:
    """Wire up every service from Config."""
    supabase_service = SupabaseService(
        url=Config.SUPABASE_URL,
        key=Config.SUPABASE_KEY,
        request_timeout=Config.REQUEST_TIMEOUT,
    )
    realtime_service = RealtimeService(url=Config.SUPABASE_URL, key=Config.SUPABASE_KEY)
    weather_service = WeatherService(
        api_key=Config.OPENWEATHER_API_KEY,
        request_timeout=Config.REQUEST_TIMEOUT,
    )
    alert_service = AlertService(
        webhook_url=Config.ALERT_WEBHOOK_URL,
        source=Config.ALERT_SOURCE,
        request_timeout=Config.REQUEST_TIMEOUT,
    )
    prediction_service = PredictionService(
        source=PredictionSource(Config.PREDICTION_SOURCE),
        supabase_service=supabase_service,
        table=Config.PREDICTION_TABLE,
        refresh_interval=Config.PREDICTION_REFRESH_INTERVAL,
    )

    return DashboardManager(
        supabase_service=supabase_service,
        realtime_service=realtime_service,
        weather_service=weather_service,
        alert_service=alert_service,
        prediction_service=prediction_service,
        notification_service=NotificationService(),
        realtime_enabled=Config.REALTIME_ENABLED,
        demo_data=Config.DEMO_DATA,
        prediction_interval=Config.PREDICTION_REFRESH_INTERVAL,
    )


# =============================================================================
# APPLICATION LIFESPAN
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    STARTUP:
        1. Initialize services (Supabase, Realtime, Weather, Alerts, Predictions)
        2. Initialize DashboardManager with services
        3. Initial fetch for every widget, subscribe to change feeds
        4. Inject manager into routers

    SHUTDOWN:
        1. Stop the prediction timer and change feed listener
        2. Close HTTP clients
    """
    # ========== STARTUP ==========
    print("=" * 60)
    print("🚀 RESQLINK DASHBOARD - Starting Backend")
    print("=" * 60)

    dashboard_manager = build_dashboard_manager()
    await dashboard_manager.start()

    # Inject into routers
    set_dashboard_manager(dashboard_manager)

    # Print configuration
    print(f"✅ Services initialized")
    print(f"   Supabase: {'configured' if Config.SUPABASE_URL and Config.SUPABASE_KEY else 'NOT configured'}")
    print(f"   Weather API: {'configured' if Config.OPENWEATHER_API_KEY else 'NOT configured'}")
    print(f"   Alert webhook: {'configured' if Config.ALERT_WEBHOOK_URL else 'NOT configured'}")
    print(f"   Predictions: {Config.PREDICTION_SOURCE} (every {Config.PREDICTION_REFRESH_INTERVAL}s)")
    print(f"   Realtime: {'on' if Config.REALTIME_ENABLED else 'off'}")
    print(f"   CORS origins: {len(Config.CORS_ORIGINS)} configured")
    print()
    print("📖 API Documentation: http://localhost:8000/docs")
    print("=" * 60)

    yield  # Application runs here

    # ========== SHUTDOWN ==========
    print()
    print("🛑 Shutting down...")
    set_dashboard_manager(None)
    await dashboard_manager.shutdown()
    print("✅ Shutdown complete")


# =============================================================================
# CREATE FASTAPI APPLICATION
# =============================================================================

app = FastAPI(
    title="ResQlink Dashboard API",
    description="""
## Overview

Backend for the ResQlink landslide early-warning admin dashboard.
Each dashboard widget has its own endpoints; the backend keeps their
state fresh from Supabase change feeds.

## Widgets

| Widget | Endpoints | Source |
|--------|-----------|--------|
| **Sensor data** | `/api/sensors/*` | `sensor_data` table |
| **Chat feed** | `/api/messages` | `messages` table |
| **SOS map** | `/api/emergency/*` | `users` table |
| **Weather map** | `/api/weather/*` | OpenWeatherMap |
| **Alerts** | `/api/alerts/{citizen,representative}` | Alert webhook |
| **Risk card** | `/api/predictions/*` | Simulated or `ml_predictions` table |
| **Documents** | `/api/documents` | Static |

## Live Updates

Connect to `ws://<host>/ws/updates`. Every time a widget changes you get
`{"widget": "...", "updated_at": "..."}` and can re-fetch that widget.

## Frontend Integration

Set the `FRONTEND_URL` environment variable to enable CORS.
    """,
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=Config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# INCLUDE ROUTERS
# =============================================================================

app.include_router(sensors_router)
app.include_router(messages_router)
app.include_router(emergency_router)
app.include_router(weather_router)
app.include_router(alerts_router)
app.include_router(predictions_router)
app.include_router(notifications_router)
app.include_router(documents_router)

# Live widget updates
app.include_router(live_router)


# =============================================================================
# ROOT ENDPOINTS
# =============================================================================

@app.get(
    "/",
    summary="API Information",
    description="Get basic API information and available endpoints."
)
async def root():
    """
    Root endpoint with API overview.

    Returns links to all available endpoints.
    """
    return {
        "name": "ResQlink Dashboard API",
        "version": "1.0.0",
        "documentation": {
            "swagger": "/docs",
            "redoc": "/redoc",
            "openapi": "/openapi.json"
        },
        "endpoints": {
            "sensors": {
                "readings": "GET /api/sensors/readings",
                "summary": "GET /api/sensors/summary",
                "chart": "GET /api/sensors/chart",
                "range": "PUT /api/sensors/range",
                "refresh": "POST /api/sensors/refresh"
            },
            "messages": {
                "list": "GET /api/messages",
                "refresh": "POST /api/messages/refresh"
            },
            "emergency": {
                "sos_locations": "GET /api/emergency/sos-locations",
                "refresh": "POST /api/emergency/sos-locations/refresh",
                "map": "GET /api/emergency/map"
            },
            "weather": {
                "current": "GET /api/weather/current?lat={lat}&lon={lon}",
                "city": "GET /api/weather/city/{name}",
                "monitored": "GET /api/weather/monitored",
                "map": "GET /api/weather/map"
            },
            "alerts": {
                "citizen": "POST /api/alerts/citizen",
                "representative": "POST /api/alerts/representative"
            },
            "predictions": {
                "latest": "GET /api/predictions/latest",
                "refresh": "POST /api/predictions/refresh",
                "model": "GET /api/predictions/model"
            },
            "notifications": {
                "list": "GET /api/notifications",
                "clear": "DELETE /api/notifications"
            },
            "documents": {
                "list": "GET /api/documents",
                "get": "GET /api/documents/{index}"
            },
            "live_updates": "WS /ws/updates"
        }
    }


@app.get(
    "/health",
    summary="Health Check",
    description="Check if the backend is running."
)
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "supabase_configured": bool(Config.SUPABASE_URL and Config.SUPABASE_KEY),
        "weather_configured": bool(Config.OPENWEATHER_API_KEY),
        "alerts_configured": bool(Config.ALERT_WEBHOOK_URL),
        "prediction_source": Config.PREDICTION_SOURCE,
        "realtime_enabled": Config.REALTIME_ENABLED
    }
