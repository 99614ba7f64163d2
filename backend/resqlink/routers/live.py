"""
Live Updates WebSocket
======================

One WebSocket per open dashboard. We push a small event whenever a
widget's cached state changes and the browser re-fetches that widget:

    {"widget": "sensors", "updated_at": "2025-07-11T08:30:00+00:00"}

Widgets: sensors, messages, sos, predictions, alerts.
Right after connecting you get {"widget": "all", ...} so the page
loads everything once.

Send "ping" any time and you get {"type": "pong"} back.
"""

import asyncio
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect

from resqlink.routers.sensors import get_dashboard_manager

logger = logging.getLogger(__name__)


router = APIRouter(tags=["live"])


@router.websocket("/ws/updates")
async def dashboard_updates(websocket: WebSocket):
    try:
        manager = get_dashboard_manager()
    except HTTPException:
        await websocket.close(code=1011, reason="Server not fully started yet")
        return

    await websocket.accept()
    queue = manager.listen()

    async def forward_events():
        while True:
            event = await queue.get()
            await websocket.send_json(event)

    async def read_client():
        while True:
            text = await websocket.receive_text()
            if text.strip().lower() == "ping":
                await websocket.send_json({"type": "pong"})

    tasks = []
    try:
        await websocket.send_json({
            "widget": "all",
            "updated_at": datetime.now(timezone.utc).isoformat(),
        })

        tasks = [
            asyncio.create_task(forward_events()),
            asyncio.create_task(read_client()),
        ]
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            # Re-raise whatever ended the connection
            task.result()
    except WebSocketDisconnect:
        logger.debug("Dashboard WebSocket disconnected")
    finally:
        for task in tasks:
            task.cancel()
        manager.unlisten(queue)
