"""
Inkwell Backend — Chat WebSocket Route
========================================

What:  WS {ws_path}/{user_id}: the live side of direct messaging.
How:   One coroutine per connection reads JSON frames and dispatches them:

    Client → Server
        {"event": "join", "channel": "<name>"}
        {"event": "send", "senderId": "...", "receiverId": "...", "content": "..."}
            senderId may be omitted; it defaults to the connection's user id

    Server → Client
        {"id", "senderId", "receiverId", "content", "timestamp"}   delivery
        {"event": "error", "error": "<code>", "message": "..."}    to sender only

Lifecycle:
    connect    → accept, register a WebSocketSession, join own channel
    frames     → handled one at a time, in arrival order
    disconnect → registry.leave(session); nothing about it is remembered
"""

import json
import logging
from typing import Any, Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.config import settings
from app.exceptions import InkwellError, ValidationError
from app.services.message_relay import MessageRelay
from app.services.session_registry import SessionRegistry, WebSocketSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix=settings.ws_path, tags=["Chat"])


def error_frame(exc: InkwellError) -> Dict[str, Any]:
    frame: Dict[str, Any] = {"event": "error", "error": exc.code, "message": exc.message}
    if isinstance(exc, ValidationError) and exc.field:
        frame["field"] = exc.field
    return frame


@router.websocket("/{user_id}")
async def chat_socket(ws: WebSocket, user_id: str):
    registry: SessionRegistry = ws.app.state.registry
    relay: MessageRelay = ws.app.state.relay

    await ws.accept()
    session = WebSocketSession(ws, user_id)
    if settings.ws_join_own_channel:
        await registry.join(session, user_id)

    logger.info("[WS] Session %s connected for user %s", session.session_id, user_id)

    try:
        while True:
            raw = await ws.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                await ws.send_json(error_frame(ValidationError("Invalid JSON")))
                continue

            try:
                await _handle_frame(session, registry, relay, frame)
            except InkwellError as e:
                await ws.send_json(error_frame(e))

    except WebSocketDisconnect:
        logger.info("[WS] Session %s disconnected", session.session_id)
    except Exception as e:
        logger.error("[WS] Error in session %s: %s: %s", session.session_id, type(e).__name__, e, exc_info=True)
    finally:
        await registry.leave(session)


async def _handle_frame(
    session: WebSocketSession,
    registry: SessionRegistry,
    relay: MessageRelay,
    frame: Any,
) -> None:
    """Dispatch one client frame."""
    if not isinstance(frame, dict):
        raise ValidationError("Frame must be a JSON object")

    event = frame.get("event", "")

    if event == "send":
        await relay.handle_send(
            frame.get("senderId", session.user_id),
            frame.get("receiverId"),
            frame.get("content"),
        )

    elif event == "join":
        channel = frame.get("channel")
        if not isinstance(channel, str) or not channel.strip():
            raise ValidationError("channel is required", field="channel")
        await registry.join(session, channel)

    else:
        raise ValidationError(f"Unknown event '{event}'", field="event")
