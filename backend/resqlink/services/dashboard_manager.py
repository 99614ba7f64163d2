"""
Dashboard Manager
=================

This is the BRAIN of the dashboard backend!

WHAT IT DOES:
------------
Every widget on the dashboard does the same four things:
    1. Read its table
    2. Listen to that table's change feed
    3. Update its cached state
    4. Tell the browser to re-render

This class does that for every widget:

    Widget          Table         Channel            Fallback on error
    ------          -----         -------            -----------------
    Sensor data     sensor_data   sensor_updates     keep cached readings
    Chat feed       messages      messages-channel   default system messages
    SOS map         users         users_sos          keep previous markers
    Risk card       (simulated or ml_predictions, refreshed every 30s)

Widgets don't talk to each other. A failure in one never touches another,
it just turns into a toast and a log line.

LIVE UPDATES:
------------
Whenever a widget's cache changes we push {"widget": "sensors", ...}
to every connected dashboard (see routers/live.py). The browser then
re-fetches that widget's endpoint.

DEMO MODE:
---------
No database configured and DEMO_DATA on? The sensor widget gets 24
hours of generated readings so the charts aren't empty.

Author: ResQlink Team
"""

import asyncio
import logging
import random
import sys
from datetime import datetime, timezone, timedelta
from typing import Optional
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

# Configure logging for the dashboard
logging.basicConfig(
    level=logging.INFO,
    format='[%(asctime)s] %(message)s',
    datefmt='%H:%M:%S',
    handlers=[logging.StreamHandler(sys.stderr)]
)
logger = logging.getLogger(__name__)

from resqlink.models import (
    DataRange,
    RiskLevel,
    SensorReading,
    SensorDataResponse,
    SensorSummary,
    ChartPoint,
    NUMERIC_FIELDS,
    MessagePriority,
    EmergencyMessage,
    MessageListResponse,
    SOSLocation,
    SOSLocationListResponse,
    MapLayer,
    MapMarker,
    MapView,
    AlertTarget,
    AlertResult,
    MLPrediction,
    NotificationVariant,
    WeatherData,
)
from resqlink.services.supabase_service import SupabaseService, SupabaseError
from resqlink.services.realtime_service import RealtimeService, ChangeEvent
from resqlink.services.weather_service import WeatherService, WeatherServiceError
from resqlink.services.alert_service import AlertService
from resqlink.services.prediction_service import PredictionService, PredictionError
from resqlink.services.notification_service import NotificationService


# =============================================================================
# DEFAULTS
# =============================================================================

# Shown in the chat feed when the messages table is empty or unreachable
DEFAULT_MESSAGES = [
    EmergencyMessage(
        id=1,
        username="System",
        message="⚠️ High risk of landslide detected in Wayanad region",
        node="Central Node",
        timestamp="10:30 AM",
        priority=MessagePriority.HIGH,
    ),
    EmergencyMessage(
        id=2,
        username="System",
        message="🚨 Emergency response team dispatched to affected area",
        node="Central Node",
        timestamp="10:35 AM",
        priority=MessagePriority.HIGH,
    ),
    EmergencyMessage(
        id=3,
        username="System",
        message="ℹ️ Local authorities have been notified",
        node="Central Node",
        timestamp="10:40 AM",
        priority=MessagePriority.MEDIUM,
    ),
    EmergencyMessage(
        id=4,
        username="System",
        message="📢 Evacuation procedures initiated in high-risk zones",
        node="Central Node",
        timestamp="10:45 AM",
        priority=MessagePriority.HIGH,
    ),
]

# How many defaults to show when the fetch itself failed
ERROR_FALLBACK_COUNT = 2

WEATHER_ERROR_FALLBACK = "Unable to fetch weather data for this location."


def generate_demo_readings(
    count: int = 24,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> list[SensorReading]:
    """
    Make up `count` hourly readings ending at `now`, oldest first.

    The most recent hours get extra rain and vibration so the demo
    actually looks like something is happening.
    """
    rng = rng or random.Random()
    now = now or datetime.now(timezone.utc)

    readings = []
    for i in range(count):
        # i = hours ago
        readings.append(SensorReading(
            id=f"sensor_{i}",
            timestamp=now - timedelta(hours=i),
            rainfall=rng.random() * 50 + (20 if i < 5 else 0),
            vibration=rng.random() * 10 + (5 if i < 3 else 0),
            temperature=20 + rng.random() * 15,
            moisture=30 + rng.random() * 40,
            location=f"Sensor {i % 3 + 1}",
        ))

    readings.reverse()
    return readings


def _format_message_time(value) -> str:
    """created_at -> "2:05:00 PM" like a browser clock (raw text if unparseable)."""
    if not value:
        return ""
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return str(value)
    return f"{parsed.hour % 12 or 12}:{parsed.strftime('%M:%S %p')}"


def message_from_row(row: dict) -> EmergencyMessage:
    """A `messages` row as a chat feed item."""
    try:
        message_id = int(row.get("id") or 0)
    except (TypeError, ValueError):
        message_id = 0

    return EmergencyMessage(
        id=message_id,
        username=row.get("username") or "Unknown",
        message=row.get("message") or "",
        node=row.get("from_node") or "",
        timestamp=_format_message_time(row.get("created_at")),
        priority=MessagePriority.MEDIUM,
    )


# =============================================================================
# THE MANAGER
# =============================================================================

class DashboardManager:
    """
    Holds every widget's cached state and keeps it fresh.

    One per app, created in the lifespan and handed to the routers.
    """

    SENSOR_CHANNEL = "sensor_updates"
    MESSAGES_CHANNEL = "messages-channel"
    SOS_CHANNEL = "users_sos"

    # Emergency map opens on Kerala, a bit more zoomed out than the weather map
    EMERGENCY_MAP_CENTER = (10.8505, 76.2711)
    EMERGENCY_MAP_ZOOM = 7

    PREDICTION_JOB_ID = "refresh_prediction"
    LISTENER_QUEUE_SIZE = 100

    def __init__(
        self,
        supabase_service: SupabaseService,
        realtime_service: RealtimeService,
        weather_service: WeatherService,
        alert_service: AlertService,
        prediction_service: PredictionService,
        notification_service: Optional[NotificationService] = None,
        realtime_enabled: bool = True,
        demo_data: bool = True,
        prediction_interval: int = 30,
        rng: Optional[random.Random] = None,
    ):
        """
        Set up the manager.

        Args:
            supabase_service: Table reads
            realtime_service: Change feeds
            weather_service: OpenWeatherMap lookups
            alert_service: Alert webhook
            prediction_service: Risk card source
            notification_service: Toast feed (a fresh one if not given)
            realtime_enabled: Subscribe to change feeds on start()
            demo_data: Seed generated sensor readings when no database is configured
            prediction_interval: Seconds between prediction refreshes
            rng: Random source for demo data
        """
        self.supabase_service = supabase_service
        self.realtime_service = realtime_service
        self.weather_service = weather_service
        self.alert_service = alert_service
        self.prediction_service = prediction_service
        self.notification_service = notification_service or NotificationService()
        self.realtime_enabled = realtime_enabled
        self.demo_data = demo_data
        self.prediction_interval = prediction_interval
        self.rng = rng or random.Random()

        # Sensor widget
        self.data_range = DataRange.LAST_10
        self._readings: list[SensorReading] = []
        self.sensors_last_update: Optional[datetime] = None

        # Chat feed
        self._messages: list[EmergencyMessage] = []
        self.messages_fallback = False
        self.messages_last_update: Optional[datetime] = None

        # SOS map
        self._sos_locations: list[SOSLocation] = []
        self.sos_last_update: Optional[datetime] = None

        # Risk card
        self._prediction: Optional[MLPrediction] = None

        # Connected dashboards waiting for update events
        self._listeners: set[asyncio.Queue] = set()

        # The scheduler runs the prediction refresh on a timer.
        # Started in start() since it needs the running event loop.
        self.scheduler = AsyncIOScheduler()

    # =========================================================================
    # STARTUP
    # =========================================================================

    async def start(self):
        """
        Initial fetch for every widget, then change feeds and timers.
        """
        if not self.supabase_service.is_configured and self.demo_data:
            self.seed_demo_data()
        else:
            await self.refresh_sensor_data()

        await self.refresh_messages()
        await self.refresh_sos_locations()
        await self.refresh_prediction()

        self.scheduler.add_job(
            self.refresh_prediction,
            trigger=IntervalTrigger(seconds=self.prediction_interval),
            id=self.PREDICTION_JOB_ID,
            replace_existing=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info(f"[predictions] Refreshing every {self.prediction_interval}s")

        if self.realtime_enabled:
            await self.realtime_service.subscribe(
                self.SENSOR_CHANNEL, SupabaseService.SENSOR_TABLE, self._on_sensor_change
            )
            await self.realtime_service.subscribe(
                self.MESSAGES_CHANNEL, SupabaseService.MESSAGES_TABLE, self._on_message_change
            )
            await self.realtime_service.subscribe(
                self.SOS_CHANNEL, SupabaseService.USERS_TABLE, self._on_sos_change
            )
            self.realtime_service.start()
        else:
            logger.info("Realtime disabled, widgets refresh on request only")

    def seed_demo_data(self):
        """Fill the sensor widget with generated readings."""
        self._readings = generate_demo_readings(rng=self.rng)
        self.sensors_last_update = datetime.now(timezone.utc)
        logger.info(f"[sensors] Demo mode: seeded {len(self._readings)} generated readings")
        self._publish("sensors")

    # =========================================================================
    # SENSOR WIDGET
    # =========================================================================

    async def refresh_sensor_data(self) -> SensorDataResponse:
        """
        Re-read sensor_data for the current range.

        Empty table or a failed read leaves the cached readings alone.
        """
        try:
            rows = await self.supabase_service.fetch_sensor_data(limit=self.data_range.limit)
        except SupabaseError as e:
            logger.error(f"[sensors] Error fetching sensor data: {e.message}")
            self.notification_service.notify(
                "Data Fetch Error",
                "Unable to load sensor data. Using cached data.",
                NotificationVariant.DESTRUCTIVE,
            )
            return self.sensor_data()

        if not rows:
            logger.warning("[sensors] No sensor data found in the database")
            self.notification_service.notify(
                "No Data Found",
                "No sensor readings available in the database.",
                NotificationVariant.DESTRUCTIVE,
            )
            return self.sensor_data()

        readings = [SensorReading.from_row(row) for row in rows]
        # Query is newest first, charts want oldest first
        readings.reverse()

        self._readings = readings
        self.sensors_last_update = datetime.now(timezone.utc)
        self.notification_service.notify(
            "Sensor Data Updated",
            f"Loaded {len(readings)} readings from the database.",
        )
        self._publish("sensors")
        return self.sensor_data()

    async def set_data_range(self, data_range: DataRange) -> SensorDataResponse:
        """Change the range selector and re-read."""
        self.data_range = DataRange(data_range)
        logger.info(f"[sensors] Data range set to {self.data_range.value}")
        return await self.refresh_sensor_data()

    def sensor_data(self) -> SensorDataResponse:
        return SensorDataResponse(
            readings=list(self._readings),
            total=len(self._readings),
            data_range=self.data_range,
            last_update=self.sensors_last_update,
        )

    def sensor_summary(self) -> SensorSummary:
        """
        Status card numbers.

        Each average only counts readings where that column is a number.
        Risk comes from the latest reading's flags.
        """
        averages = {}
        for field in NUMERIC_FIELDS:
            values = [getattr(r, field) for r in self._readings if getattr(r, field) is not None]
            averages[f"avg_{field}"] = sum(values) / len(values) if values else 0.0

        risk = RiskLevel.LOW
        if self._readings:
            latest = self._readings[-1]
            if latest.danger:
                risk = RiskLevel.HIGH
            elif latest.alert:
                risk = RiskLevel.MEDIUM

        return SensorSummary(
            **averages,
            risk_level=risk,
            reading_count=len(self._readings),
            last_update=self.sensors_last_update,
        )

    def chart_data(self) -> list[ChartPoint]:
        return [
            ChartPoint(
                time=r.timestamp.strftime("%H:%M"),
                moisture=r.moisture,
                pore_water_pressure=r.pore_water_pressure,
                rainfall=r.rainfall,
                vibration=r.vibration,
            )
            for r in self._readings
        ]

    async def _on_sensor_change(self, event: ChangeEvent):
        await self.refresh_sensor_data()

    # =========================================================================
    # CHAT FEED
    # =========================================================================

    async def refresh_messages(self) -> MessageListResponse:
        """
        Re-read the chat feed, newest first.

        Empty table: the four default system messages.
        Failed read: just the first two.
        """
        try:
            rows = await self.supabase_service.fetch_messages()
        except SupabaseError as e:
            logger.error(f"[messages] Error fetching messages: {e.message}")
            self._messages = DEFAULT_MESSAGES[:ERROR_FALLBACK_COUNT]
            self.messages_fallback = True
        else:
            if rows:
                self._messages = [message_from_row(row) for row in rows]
                self.messages_fallback = False
            else:
                logger.info("[messages] No messages yet, showing defaults")
                self._messages = list(DEFAULT_MESSAGES)
                self.messages_fallback = True

        self.messages_last_update = datetime.now(timezone.utc)
        self._publish("messages")
        return self.messages()

    def messages(self) -> MessageListResponse:
        return MessageListResponse(
            messages=list(self._messages),
            total=len(self._messages),
            is_fallback=self.messages_fallback,
            last_update=self.messages_last_update,
        )

    async def _on_message_change(self, event: ChangeEvent):
        await self.refresh_messages()

    # =========================================================================
    # SOS MAP
    # =========================================================================

    async def refresh_sos_locations(self) -> SOSLocationListResponse:
        """Re-read shared user locations. A failed read keeps the old markers."""
        try:
            rows = await self.supabase_service.fetch_sos_locations()
        except SupabaseError as e:
            logger.error(f"[sos] Error fetching SOS locations: {e.message}")
            return self.sos_locations()

        locations = []
        for row in rows:
            try:
                locations.append(SOSLocation(
                    id=str(row.get("id", "")),
                    latitude=row["latitude"],
                    longitude=row["longitude"],
                    name=row.get("name"),
                    phone=row.get("phone"),
                ))
            except (KeyError, ValueError) as e:
                logger.warning(f"[sos] Skipping bad location row {row.get('id')}: {e}")

        self._sos_locations = locations
        self.sos_last_update = datetime.now(timezone.utc)
        self._publish("sos")
        return self.sos_locations()

    def sos_locations(self) -> SOSLocationListResponse:
        return SOSLocationListResponse(
            locations=list(self._sos_locations),
            total=len(self._sos_locations),
            last_update=self.sos_last_update,
        )

    def emergency_map(self) -> MapView:
        """OpenStreetMap with one marker per SOS location."""
        markers = [
            MapMarker(
                lat=loc.latitude,
                lng=loc.longitude,
                label=loc.name or "Unknown",
                popup=f"Phone: {loc.phone}" if loc.phone else None,
                kind="sos",
            )
            for loc in self._sos_locations
        ]
        return MapView(
            center_lat=self.EMERGENCY_MAP_CENTER[0],
            center_lng=self.EMERGENCY_MAP_CENTER[1],
            zoom=self.EMERGENCY_MAP_ZOOM,
            layers=[
                MapLayer(
                    name="OpenStreetMap",
                    url=WeatherService.OSM_TILE_URL,
                    attribution=WeatherService.OSM_ATTRIBUTION,
                )
            ],
            markers=markers,
        )

    async def _on_sos_change(self, event: ChangeEvent):
        await self.refresh_sos_locations()

    # =========================================================================
    # RISK CARD
    # =========================================================================

    async def refresh_prediction(self) -> Optional[MLPrediction]:
        """
        Get a new prediction (scheduler job).

        On failure the card keeps showing the previous one.
        """
        try:
            prediction = await self.prediction_service.get_prediction()
        except PredictionError as e:
            logger.error(f"[predictions] {e}")
            self.notification_service.notify(
                "Prediction Unavailable",
                "Unable to load the latest risk prediction. Showing the previous one.",
                NotificationVariant.DESTRUCTIVE,
            )
            return self._prediction

        self._prediction = prediction
        logger.info(
            f"[predictions] {prediction.prediction.value} "
            f"({prediction.confidence:.0f}% confidence, {prediction.source.value})"
        )
        self._publish("predictions")
        return prediction

    @property
    def prediction(self) -> Optional[MLPrediction]:
        return self._prediction

    # =========================================================================
    # WEATHER AND ALERTS
    # =========================================================================

    async def weather_at(self, lat: float, lon: float) -> WeatherData:
        """Weather for a clicked map point. Raises WeatherServiceError."""
        try:
            weather = await self.weather_service.get_by_coordinates(lat, lon)
        except WeatherServiceError as e:
            self._weather_failed(e)
            raise

        self.notification_service.notify(
            "Location Selected",
            f"Weather data loaded for {weather.name or 'selected location'}",
        )
        return weather

    async def weather_for_city(self, name: str) -> WeatherData:
        """Weather for a place name. Raises WeatherServiceError."""
        try:
            return await self.weather_service.get_by_city(name)
        except WeatherServiceError as e:
            self._weather_failed(e)
            raise

    def _weather_failed(self, error: WeatherServiceError):
        logger.error(f"[weather] {error.message}")
        self.notification_service.notify(
            "Weather Data Error",
            error.message or WEATHER_ERROR_FALLBACK,
            NotificationVariant.DESTRUCTIVE,
        )

    async def trigger_alert(self, target: AlertTarget) -> AlertResult:
        """
        Press an alert button.

        Raises AlertInProgressError if that button is already busy.
        """
        result = await self.alert_service.trigger(target)
        variant = NotificationVariant.DEFAULT if result.success else NotificationVariant.DESTRUCTIVE
        self.notification_service.notify(result.title, result.description, variant)
        self._publish("alerts")
        return result

    # =========================================================================
    # LIVE UPDATES
    # =========================================================================

    def listen(self) -> asyncio.Queue:
        """Register a dashboard connection. Events show up on the returned queue."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.LISTENER_QUEUE_SIZE)
        self._listeners.add(queue)
        logger.debug(f"Dashboard connected ({len(self._listeners)} listening)")
        return queue

    def unlisten(self, queue: asyncio.Queue):
        self._listeners.discard(queue)
        logger.debug(f"Dashboard disconnected ({len(self._listeners)} listening)")

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def _publish(self, widget: str):
        """Tell every connected dashboard that a widget changed."""
        event = {"widget": widget, "updated_at": datetime.now(timezone.utc).isoformat()}
        for queue in list(self._listeners):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                # Slow client, it'll catch up on the next event
                logger.debug(f"Dropping {widget} update for a slow dashboard")

    # =========================================================================
    # CLEANUP
    # =========================================================================

    async def shutdown(self):
        """Clean up when the server is shutting down."""
        try:
            if self.scheduler.running:
                self.scheduler.shutdown(wait=False)
        except Exception as e:
            logger.error(f"Error shutting down scheduler: {e}", exc_info=True)

        try:
            await self.realtime_service.stop()
        except Exception as e:
            logger.error(f"Error stopping realtime listener: {e}", exc_info=True)

        # Close HTTP clients (ensure they're closed even if one fails)
        services_to_close = [
            ("supabase", self.supabase_service),
            ("weather", self.weather_service),
            ("alert", self.alert_service),
        ]

        for service_name, service in services_to_close:
            try:
                await service.close()
                logger.debug(f"Closed {service_name} service")
            except Exception as e:
                logger.error(f"Error closing {service_name} service: {e}", exc_info=True)
