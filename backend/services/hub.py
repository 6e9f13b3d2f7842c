# backend/services/hub.py
"""Routing of real-time events to WebSocket connections.

The hub maps each session id to exactly one live channel. It owns only that
mapping: cart and position data live in the stores, which call the
``publish_*`` methods after a successful mutation.

Delivery is best effort. A channel that is not open is skipped, a failed
send is logged and dropped, and nothing is buffered for later replay. A
client that reconnects re-reads its cart and position over REST.
"""
import logging
from typing import Any, Dict, List, Protocol

from starlette.websockets import WebSocketState

from schemas.cart import CartLine, CartSummary
from schemas.position import Position
from schemas.realtime import (
    CartSyncEvent,
    ConnectedEvent,
    ItemAddedEvent,
    OutboundEvent,
    PositionUpdatedEvent,
    dump_event,
)
from services.errors import TransportError, ValidationError

logger = logging.getLogger(__name__)


class Channel(Protocol):
    """What the hub needs from a connection; Starlette's WebSocket fits."""

    client_state: WebSocketState
    application_state: WebSocketState

    async def send_json(self, data: Any) -> None: ...


def is_open(channel: Channel) -> bool:
    return (
        channel.client_state == WebSocketState.CONNECTED
        and channel.application_state == WebSocketState.CONNECTED
    )


class RealtimeHub:
    def __init__(self):
        self._connections: Dict[str, Channel] = {}

    # ---- connection lifecycle ----
    async def connect(self, session_id: str, channel: Channel) -> None:
        """Register ``channel`` for the session and greet it.

        A previous channel for the same session is replaced, not closed;
        closing it is up to the transport.
        """
        if not session_id:
            raise ValidationError("Session id must not be empty", field="sessionId")

        previous = self._connections.get(session_id)
        self._connections[session_id] = channel
        if previous is not None and previous is not channel:
            logger.info("Session %s reconnected, replacing previous channel", session_id)
        else:
            logger.info("Session %s connected", session_id)

        await self._deliver(session_id, channel, ConnectedEvent(session_id=session_id))

    def disconnect(self, session_id: str, channel: Channel) -> bool:
        # Only drop the entry if it is still ours; a newer connection may have replaced it
        if self._connections.get(session_id) is channel:
            del self._connections[session_id]
            logger.info("Session %s disconnected", session_id)
            return True
        return False

    def is_connected(self, session_id: str) -> bool:
        return session_id in self._connections

    def connected_sessions(self) -> List[str]:
        return list(self._connections)

    # ---- routing ----
    async def send_to(self, session_id: str, event: OutboundEvent) -> bool:
        channel = self._connections.get(session_id)
        if channel is None:
            return False
        return await self._deliver(session_id, channel, event)

    async def broadcast(self, event: OutboundEvent) -> int:
        delivered = 0
        # Snapshot: connections may come and go while we await sends
        for session_id, channel in list(self._connections.items()):
            if await self._deliver(session_id, channel, event):
                delivered += 1
        return delivered

    # ---- store notifications ----
    async def publish_cart(self, summary: CartSummary) -> bool:
        return await self.send_to(
            summary.session_id, CartSyncEvent(session_id=summary.session_id, summary=summary)
        )

    async def publish_item_added(self, line: CartLine) -> bool:
        return await self.send_to(line.session_id, ItemAddedEvent(cart_line=line))

    async def publish_position(self, position: Position) -> int:
        return await self.broadcast(
            PositionUpdatedEvent(session_id=position.session_id, position=position)
        )

    # ---- delivery ----
    async def _send(self, session_id: str, channel: Channel, event: OutboundEvent) -> None:
        if not is_open(channel):
            raise TransportError(session_id, "channel is not open")
        try:
            await channel.send_json(dump_event(event))
        except Exception as exc:
            raise TransportError(session_id, str(exc) or type(exc).__name__) from exc

    async def _deliver(self, session_id: str, channel: Channel, event: OutboundEvent) -> bool:
        try:
            await self._send(session_id, channel, event)
        except TransportError as exc:
            logger.warning("Skipped %s event: %s", event.type, exc.message)
            return False
        return True
