from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from decimal import Decimal
from typing import List, Optional


# Base configuration: ORM compatibility and camelCase on the wire
class CamelModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# A single cart line as stored and returned to clients
class CartLine(CamelModel):
    id: int
    session_id: str
    product_id: int
    quantity: Decimal
    weight: Optional[Decimal] = None
    unit_price: Decimal
    total_price: Decimal
    created_at: datetime


# Derived view of a session's cart, recomputed on every read
class CartSummary(CamelModel):
    session_id: str
    items: List[CartLine]
    item_count: int
    subtotal: Decimal
    tax: Decimal
    discount: Decimal
    total: Decimal


# Request schema for adding a line to a cart
class CartLineCreate(CamelModel):
    session_id: str = Field(min_length=1)
    product_id: int
    quantity: Optional[Decimal] = None
    weight: Optional[Decimal] = None
    # Falls back to the catalog price when omitted
    unit_price: Optional[Decimal] = None


# Request schema for changing a line's quantity; zero or less removes the line
class CartLineUpdate(CamelModel):
    quantity: Decimal


class CartLineUpdateResult(CamelModel):
    removed: bool
    line: Optional[CartLine] = None


class CartLineRemoveResult(CamelModel):
    removed: bool


class MessageResponse(CamelModel):
    message: str
