"""WebSocket endpoints: driver position ingest and live fleet subscriptions."""

import asyncio
import contextlib
import logging

import orjson
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from vantrack.api.alerts import filter_alerts
from vantrack.api.locations import filter_locations
from vantrack.core.errors import SensorError

logger = logging.getLogger(__name__)

router = APIRouter()

# Will be set by main.py on startup
store = None
manager = None


@router.websocket("/ws/drivers/{driver_id}/positions")
async def driver_positions_ws(websocket: WebSocket, driver_id: str) -> None:
    """Receive raw position fixes from the driver's device.

    Each message is either a fix ({"coords": {...}, "timestamp": ...} or a flat
    {lat, lng, speed}) or a device error ({"error": {"code": 1, "message": ...}}).
    The server answers every message with the current trip status.
    """
    await websocket.accept()

    session = manager.find(driver_id) if manager else None
    if session is None:
        await websocket.close(code=1008, reason="No active trip")
        return

    try:
        while session.is_active:
            msg = await websocket.receive_json()
            if not isinstance(msg, dict):
                continue
            err = msg.get("error")
            if err is not None:
                if isinstance(err, dict):
                    try:
                        code = int(err.get("code", SensorError.POSITION_UNAVAILABLE))
                    except (TypeError, ValueError):
                        code = SensorError.POSITION_UNAVAILABLE
                    message = str(err.get("message", ""))
                else:
                    code, message = SensorError.POSITION_UNAVAILABLE, str(err)
                session.sampler.report_error(SensorError(code, message))
            else:
                session.sampler.feed(msg)
            await websocket.send_json(session.status().model_dump(mode="json"))
        await websocket.close(code=1000, reason="Trip ended")
    except WebSocketDisconnect:
        logger.info("Driver %s position socket disconnected", driver_id)
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.exception("Driver position WebSocket error")


async def _stream_keyspace(websocket: WebSocket, keyspace: str, select) -> None:
    """Send the current snapshot, then a fresh snapshot on every change."""
    await websocket.accept()

    if store is None:
        await websocket.close(code=1011, reason="Service not ready")
        return

    queue: asyncio.Queue = asyncio.Queue(maxsize=10)

    def on_change(snapshot: list[dict]) -> None:
        queue.put_nowait(snapshot)

    def encode(snapshot: list[dict], kind: str) -> bytes:
        return orjson.dumps({"type": kind, keyspace: select(snapshot)})

    await websocket.send_bytes(encode(store.snapshot(keyspace), "snapshot"))

    async def pump() -> None:
        while True:
            snapshot = await queue.get()
            await websocket.send_bytes(encode(snapshot, "update"))

    unsubscribe = store.subscribe(keyspace, on_change)
    pump_task = asyncio.create_task(pump())
    try:
        # Subscribers only listen; reading is how a disconnect is noticed
        while True:
            msg = await websocket.receive()
            if msg["type"] == "websocket.disconnect":
                break
    except WebSocketDisconnect:
        pass
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.exception("WebSocket error")
    finally:
        unsubscribe()
        pump_task.cancel()
        with contextlib.suppress(asyncio.CancelledError, Exception):
            await pump_task


@router.websocket("/ws/locations")
async def locations_ws(
    websocket: WebSocket,
    route_id: str | None = None,
    van_id: str | None = None,
    online: bool | None = True,
) -> None:
    """Stream live vehicle locations, filtered like GET /api/locations."""
    await _stream_keyspace(
        websocket, "locations",
        lambda records: filter_locations(records, route_id, van_id, online),
    )


@router.websocket("/ws/alerts")
async def alerts_ws(websocket: WebSocket, resolved: bool | None = False) -> None:
    """Stream stoppage alerts (unresolved by default)."""
    await _stream_keyspace(websocket, "alerts", lambda records: filter_alerts(records, resolved))
