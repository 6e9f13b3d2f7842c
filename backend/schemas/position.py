from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import Field

from schemas.cart import CamelModel


# Latest known indoor position of a session
class Position(CamelModel):
    session_id: str
    section: str
    x: Decimal
    y: Decimal
    timestamp: datetime


# Request schema for reporting a position over REST
class PositionReport(CamelModel):
    session_id: str = Field(min_length=1)
    # Checked against the store sections by PositionStore
    section: str
    x: Decimal
    y: Decimal


# One section of the store floor plan
class StoreSectionOut(CamelModel):
    id: str
    name: str
    name_hindi: str
    x: int
    y: int
    width: int
    height: int
    color: str


# A Li-Fi beacon: the section it marks, its position and reach in floor units
class LiFiZoneOut(CamelModel):
    section: str
    x: float
    y: float
    range: float


class StoreLayoutOut(CamelModel):
    sections: List[StoreSectionOut]
    lifi_zones: List[LiFiZoneOut]
