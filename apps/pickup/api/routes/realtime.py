"""
WebSocket route handlers for realtime change signals.

Each connection subscribes to the in-process realtime hub and forwards
matching signals as JSON. Signals only tell the client to re-fetch.

Requires JWT token in query parameter: ?token=<jwt_token>
"""

import asyncio
import logging
from typing import Callable, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from pickup.services import auth_service
from pickup.services.realtime_service import (
    Subscription,
    subscribe_room_participants,
    subscribe_user_notifications,
)

logger = logging.getLogger(__name__)
router = APIRouter()

IDLE_TIMEOUT_SECONDS = 30


async def _authenticate(websocket: WebSocket) -> Optional[str]:
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=1008, reason="Missing authentication token")
        return None
    payload = auth_service.verify_token(token)
    if payload is None or not payload.get("sub"):
        await websocket.close(code=1008, reason="Invalid authentication token")
        return None
    return str(payload["sub"])


async def _send_signals(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        message = await queue.get()
        await websocket.send_json(message)


async def _receive_until_closed(websocket: WebSocket) -> None:
    """Answer client pings; send our own ping when the client goes quiet."""
    while True:
        try:
            data = await asyncio.wait_for(websocket.receive_text(), timeout=IDLE_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            await websocket.send_text("ping")
            continue
        if data == "ping":
            await websocket.send_text("pong")


async def _forward(
    websocket: WebSocket, subscribe: Callable[..., Subscription], label: str
) -> None:
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    # Hub callbacks run wherever the committing session runs
    subscription = subscribe(
        lambda signal: loop.call_soon_threadsafe(queue.put_nowait, signal.to_message())
    )
    sender = asyncio.create_task(_send_signals(websocket, queue))
    try:
        await _receive_until_closed(websocket)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for {label}")
    except Exception as e:
        logger.error(f"WebSocket error for {label}: {e}")
    finally:
        subscription.cancel()
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.warning(f"WebSocket sender for {label} failed: {e}")


@router.websocket("/api/ws/rooms/{room_id}")
async def websocket_room_participants(websocket: WebSocket, room_id: int):
    """Participant list changes for one room."""
    await websocket.accept()
    user_id = await _authenticate(websocket)
    if user_id is None:
        return
    await _forward(
        websocket,
        lambda callback: subscribe_room_participants(room_id, callback),
        f"room {room_id} (user {user_id})",
    )


@router.websocket("/api/ws/notifications")
async def websocket_notifications(websocket: WebSocket):
    """New notifications for the connected user."""
    await websocket.accept()
    user_id = await _authenticate(websocket)
    if user_id is None:
        return
    await _forward(
        websocket,
        lambda callback: subscribe_user_notifications(user_id, callback),
        f"notifications of user {user_id}",
    )
