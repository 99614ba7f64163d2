"""
Realtime Change Feed Service
============================

Listens to Supabase Realtime so widgets can re-fetch when a table changes.

Supabase Realtime speaks the Phoenix channel protocol over one WebSocket.
Every widget gets its own channel, all channels share the socket:

    wss://<project>.supabase.co/realtime/v1/websocket?apikey=<key>&vsn=1.0.0

    -> {"topic": "realtime:sensor_updates", "event": "phx_join",
        "payload": {"config": {"postgres_changes": [
            {"event": "*", "schema": "public", "table": "sensor_data"}]},
            "access_token": "<key>"},
        "ref": "1", "join_ref": "1"}
    <- {"topic": "realtime:sensor_updates", "event": "phx_reply",
        "payload": {"status": "ok", ...}, "ref": "1"}
    <- {"topic": "realtime:sensor_updates", "event": "postgres_changes",
        "payload": {"data": {"type": "INSERT", "table": "sensor_data",
                             "record": {...}, ...}}}
    -> {"topic": "phoenix", "event": "heartbeat", "payload": {}, "ref": "7"}
       (every 30 seconds or the server drops us)

Reconnects automatically if the connection is lost.

Author: ResQlink Team
"""

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional
from urllib.parse import urlencode

import websockets
from pydantic import BaseModel, Field

from resqlink.utils.validation import validate_channel_name, validate_table_name

logger = logging.getLogger(__name__)


PHOENIX_TOPIC = "phoenix"
TOPIC_PREFIX = "realtime:"


class ChangeEvent(BaseModel):
    """A row change delivered on a channel."""
    channel: str
    type: str = Field(..., description="INSERT, UPDATE or DELETE")
    schema_name: str = Field("public", alias="schema")
    table: str
    record: dict = Field(default_factory=dict)
    old_record: dict = Field(default_factory=dict)
    commit_timestamp: Optional[str] = None

    model_config = {"populate_by_name": True}


ChangeCallback = Callable[[ChangeEvent], Awaitable[Any]]


# =============================================================================
# WIRE FORMAT
# =============================================================================

def build_join_message(
    channel: str,
    table: str,
    ref: str,
    access_token: str,
    event: str = "*",
    schema: str = "public",
) -> dict:
    """Join a channel and ask for postgres_changes on one table."""
    return {
        "topic": f"{TOPIC_PREFIX}{channel}",
        "event": "phx_join",
        "payload": {
            "config": {
                "broadcast": {"ack": False, "self": False},
                "presence": {"key": ""},
                "postgres_changes": [
                    {"event": event, "schema": schema, "table": table}
                ],
            },
            "access_token": access_token,
        },
        "ref": ref,
        "join_ref": ref,
    }


def build_leave_message(channel: str, ref: str) -> dict:
    return {
        "topic": f"{TOPIC_PREFIX}{channel}",
        "event": "phx_leave",
        "payload": {},
        "ref": ref,
    }


def build_heartbeat(ref: str) -> dict:
    return {"topic": PHOENIX_TOPIC, "event": "heartbeat", "payload": {}, "ref": ref}


def parse_change_event(message: dict) -> Optional[ChangeEvent]:
    """
    Pull the row change out of a postgres_changes message.

    Returns None for anything that isn't a row change.
    """
    if message.get("event") != "postgres_changes":
        return None

    topic = message.get("topic", "")
    if not topic.startswith(TOPIC_PREFIX):
        return None

    data = (message.get("payload") or {}).get("data") or {}
    change_type = data.get("type") or data.get("eventType")
    table = data.get("table")
    if not change_type or not table:
        return None

    return ChangeEvent(
        channel=topic[len(TOPIC_PREFIX):],
        type=change_type,
        schema=data.get("schema", "public"),
        table=table,
        record=data.get("record") or {},
        old_record=data.get("old_record") or {},
        commit_timestamp=data.get("commit_timestamp"),
    )


def _matches(filter_event: str, change_type: str) -> bool:
    return filter_event == "*" or filter_event.upper() == change_type.upper()


class _Subscription:
    """What one channel is listening for."""

    def __init__(self, channel: str, table: str, callback: ChangeCallback, event: str, schema: str):
        self.channel = channel
        self.table = table
        self.callback = callback
        self.event = event
        self.schema = schema
        self.joined = False


# =============================================================================
# THE SERVICE
# =============================================================================

class RealtimeService:
    """
    One WebSocket, many channels.

    HOW TO USE:
    ----------
    realtime = RealtimeService(url="https://xyz.supabase.co", key="...")

    async def on_change(event: ChangeEvent):
        await refresh_sensor_data()

    realtime.subscribe("sensor_updates", "sensor_data", on_change)
    realtime.start()
    ...
    await realtime.stop()
    """

    HEARTBEAT_INTERVAL = 30   # seconds between Phoenix heartbeats
    RECONNECT_DELAY = 10      # seconds to wait after a dropped connection
    RECEIVE_TIMEOUT = 5.0     # seconds per recv() so we can check the stop flag

    def __init__(self, url: str, key: str):
        self.url = (url or "").rstrip("/")
        self.key = key or ""
        self.is_configured = bool(self.url and self.key)

        self._subscriptions: dict[str, _Subscription] = {}
        self._listener: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._ws = None
        self._ref = 0

    @property
    def websocket_url(self) -> str:
        base = self.url.replace("https://", "wss://").replace("http://", "ws://")
        query = urlencode({"apikey": self.key, "vsn": "1.0.0"})
        return f"{base}/realtime/v1/websocket?{query}"

    @property
    def is_running(self) -> bool:
        return self._listener is not None and not self._listener.done()

    @property
    def is_connected(self) -> bool:
        return self._ws is not None

    def channels(self) -> list[str]:
        return list(self._subscriptions)

    def _next_ref(self) -> str:
        self._ref += 1
        return str(self._ref)

    async def _send(self, message: dict):
        await self._ws.send(json.dumps(message))

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    async def subscribe(
        self,
        channel: str,
        table: str,
        callback: ChangeCallback,
        event: str = "*",
        schema: str = "public",
    ):
        """
        Register a channel.

        If we're already connected the join goes out right away,
        otherwise it's sent when the listener connects.
        """
        if not validate_channel_name(channel):
            raise ValueError(f"Invalid channel name: {channel!r}")
        if not validate_table_name(table):
            raise ValueError(f"Invalid table name: {table!r}")

        if channel in self._subscriptions:
            logger.warning(f"[realtime:{channel}] Already subscribed, replacing callback")

        subscription = _Subscription(channel, table, callback, event, schema)
        self._subscriptions[channel] = subscription
        logger.info(f"[realtime:{channel}] Subscribed to {schema}.{table} ({event})")

        if self.is_connected:
            await self._join(subscription)

    async def unsubscribe(self, channel: str):
        """Leave a channel and forget it."""
        subscription = self._subscriptions.pop(channel, None)
        if subscription is None:
            return

        if self.is_connected and subscription.joined:
            try:
                await self._send(build_leave_message(channel, self._next_ref()))
            except websockets.exceptions.ConnectionClosed:
                logger.debug(f"[realtime:{channel}] Socket closed before leave was sent")

        logger.info(f"[realtime:{channel}] Unsubscribed")

    async def _join(self, subscription: _Subscription):
        message = build_join_message(
            subscription.channel,
            subscription.table,
            self._next_ref(),
            self.key,
            event=subscription.event,
            schema=subscription.schema,
        )
        await self._send(message)
        subscription.joined = True
        logger.debug(f"[realtime:{subscription.channel}] Join sent")

    # =========================================================================
    # LISTENER
    # =========================================================================

    def start(self):
        """Start the listener task (needs a running event loop)."""
        if not self.is_configured:
            logger.warning("Realtime not configured, change feeds disabled")
            return

        if self.is_running:
            logger.warning("Realtime listener already running.")
            return

        logger.info("Starting realtime listener...")
        self._stop_event = asyncio.Event()
        self._listener = asyncio.create_task(self._listen(self._stop_event))

    async def stop(self):
        """Stop the listener and drop the connection."""
        if self._stop_event is not None:
            self._stop_event.set()

        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
            logger.info("Stopped realtime listener")

        self._ws = None
        self._stop_event = None

    async def _listen(self, stop_event: asyncio.Event):
        """
        Connect, join every channel, dispatch messages.

        Reconnects automatically if connection is lost.
        """
        while not stop_event.is_set():
            heartbeat = None
            try:
                logger.info("Connecting to realtime WebSocket...")

                async with websockets.connect(self.websocket_url, ping_interval=30) as ws:
                    self._ws = ws
                    logger.info(f"Realtime connected! Joining {len(self._subscriptions)} channels...")

                    for subscription in list(self._subscriptions.values()):
                        subscription.joined = False
                        await self._join(subscription)

                    heartbeat = asyncio.create_task(self._heartbeat(stop_event))

                    while not stop_event.is_set():
                        try:
                            raw = await asyncio.wait_for(ws.recv(), timeout=self.RECEIVE_TIMEOUT)
                        except asyncio.TimeoutError:
                            # Nothing arrived, loop so we notice stop_event
                            continue
                        await self.handle_message(raw)

            except asyncio.CancelledError:
                logger.info("Realtime listener cancelled")
                raise
            except websockets.exceptions.ConnectionClosed as e:
                logger.warning(f"Realtime connection closed ({e}). Reconnecting in {self.RECONNECT_DELAY}s...")
                await self._wait_before_reconnect(stop_event)
            except Exception as e:
                logger.error(f"Realtime error ({e}). Reconnecting in {self.RECONNECT_DELAY}s...")
                await self._wait_before_reconnect(stop_event)
            finally:
                if heartbeat is not None:
                    heartbeat.cancel()
                self._ws = None
                for subscription in self._subscriptions.values():
                    subscription.joined = False

        logger.info("Realtime listener stopped")

    async def _wait_before_reconnect(self, stop_event: asyncio.Event):
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=self.RECONNECT_DELAY)
        except asyncio.TimeoutError:
            pass

    async def _heartbeat(self, stop_event: asyncio.Event):
        while not stop_event.is_set():
            await asyncio.sleep(self.HEARTBEAT_INTERVAL)
            if self._ws is None:
                return
            try:
                await self._send(build_heartbeat(self._next_ref()))
            except websockets.exceptions.ConnectionClosed:
                return

    async def handle_message(self, raw: str | bytes):
        """
        Handle one frame from the server.

        Row changes go to the channel's callback. A callback that blows up
        is logged and the listener keeps going.
        """
        try:
            message = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning(f"Realtime sent a non-JSON frame: {str(raw)[:200]}")
            return
        if not isinstance(message, dict):
            logger.warning(f"Realtime sent an unexpected frame: {str(raw)[:200]}")
            return

        event = message.get("event", "")
        topic = message.get("topic", "")

        if event == "phx_reply":
            status = (message.get("payload") or {}).get("status")
            if status != "ok" and topic != PHOENIX_TOPIC:
                logger.warning(f"[{topic}] Join/leave rejected: {message.get('payload')}")
            return

        if event in ("phx_error", "phx_close"):
            logger.warning(f"[{topic}] Channel {event}")
            return

        if event == "system":
            logger.debug(f"[{topic}] System message: {message.get('payload')}")
            return

        change = parse_change_event(message)
        if change is None:
            logger.debug(f"[{topic}] Ignoring message type: {event}")
            return

        subscription = self._subscriptions.get(change.channel)
        if subscription is None or not _matches(subscription.event, change.type):
            return

        logger.info(f"[realtime:{change.channel}] {change.type} on {change.table}")
        try:
            await subscription.callback(change)
        except Exception as e:
            logger.error(f"[realtime:{change.channel}] Callback failed: {e}", exc_info=True)
