# backend/schemas/realtime.py
"""Message envelope for the ``/ws`` channel.

Every frame is a JSON object tagged by ``type``. Inbound frames are parsed
through :data:`inbound_adapter`; an unknown tag fails validation instead of
being silently accepted. Outbound events are serialised with
:func:`dump_event`.
"""
from decimal import Decimal
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import AliasChoices, Field, TypeAdapter

from schemas.cart import CamelModel, CartLine, CartSummary
from schemas.position import Position


# ---- inbound ----
class PositionReportMessage(CamelModel):
    # "lifi_position" is the name older clients send
    type: Literal["position_report", "lifi_position"]
    section: str
    x: Decimal
    y: Decimal


class CartChangedMessage(CamelModel):
    # Deprecated: the store pushes cart_sync on every mutation
    type: Literal["cart_changed", "cart_updated"]
    summary: Optional[Dict[str, Any]] = Field(
        default=None, validation_alias=AliasChoices("summary", "cart")
    )


InboundMessage = Annotated[
    Union[PositionReportMessage, CartChangedMessage],
    Field(discriminator="type"),
]

inbound_adapter = TypeAdapter(InboundMessage)


# ---- outbound ----
class ConnectedEvent(CamelModel):
    type: Literal["connected"] = "connected"
    session_id: str
    message: str = "Li-Fi tracking active"


class PositionUpdatedEvent(CamelModel):
    type: Literal["position_updated"] = "position_updated"
    session_id: str
    position: Position


class CartSyncEvent(CamelModel):
    type: Literal["cart_sync"] = "cart_sync"
    session_id: str
    summary: CartSummary


class ItemAddedEvent(CamelModel):
    type: Literal["item_added"] = "item_added"
    cart_line: CartLine


OutboundEvent = Union[ConnectedEvent, PositionUpdatedEvent, CartSyncEvent, ItemAddedEvent]


def dump_event(event: OutboundEvent) -> Dict[str, Any]:
    return event.model_dump(mode="json", by_alias=True)
