# backend/routes/realtime.py
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError as PayloadError

from services.cart_store import CartStore
from services.errors import ValidationError
from services.hub import RealtimeHub
from services.position_store import PositionStore
from utils.dependencies import get_cart_store, get_hub, get_position_store
from schemas.realtime import (
    CartChangedMessage,
    CartSyncEvent,
    PositionReportMessage,
    inbound_adapter,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])


async def handle_frame(
    session_id: str,
    raw: str,
    hub: RealtimeHub,
    carts: CartStore,
    positions: PositionStore,
) -> None:
    """Dispatch one inbound frame. Bad frames are logged and dropped."""
    try:
        message = inbound_adapter.validate_python(json.loads(raw))
    except json.JSONDecodeError as exc:
        logger.warning("Session %s sent malformed JSON: %s", session_id, exc)
        return
    except PayloadError as exc:
        logger.warning("Session %s sent an invalid message: %s", session_id, exc.errors(include_url=False))
        return

    if isinstance(message, PositionReportMessage):
        try:
            await positions.report_position(session_id, message.section, message.x, message.y)
        except ValidationError as exc:
            logger.warning("Session %s position rejected: %s", session_id, exc.message)
    elif isinstance(message, CartChangedMessage):
        # Clients no longer own the cart; answer with what the store holds
        logger.warning("Session %s used deprecated %s message", session_id, message.type)
        summary = await carts.get_summary(session_id)
        await hub.send_to(session_id, CartSyncEvent(session_id=session_id, summary=summary))


@router.websocket("/ws")
async def realtime_channel(
    websocket: WebSocket,
    session_id: Optional[str] = Query(None, alias="sessionId"),
    hub: RealtimeHub = Depends(get_hub),
    carts: CartStore = Depends(get_cart_store),
    positions: PositionStore = Depends(get_position_store),
):
    if not session_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="sessionId is required")
        return

    await websocket.accept()
    await hub.connect(session_id, websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE), message.get("reason"))
            raw = message.get("text")
            if raw is None:
                logger.warning("Session %s sent a non-text frame, dropped", session_id)
                continue
            await handle_frame(session_id, raw, hub, carts, positions)
    except WebSocketDisconnect as exc:
        logger.debug("Session %s socket closed (%s)", session_id, exc.code)
    finally:
        hub.disconnect(session_id, websocket)
