# backend/routes/position.py
from typing import List, Optional
from fastapi import APIRouter, Depends

from services.catalog import LIFI_ZONES, STORE_SECTIONS
from services.position_store import PositionStore
from utils.dependencies import get_position_store
from schemas.position import Position, PositionReport, StoreLayoutOut, StoreSectionOut

router = APIRouter(tags=["Position"])


@router.get("/api/position/{session_id}", response_model=Optional[Position])
async def get_position(session_id: str, positions: PositionStore = Depends(get_position_store)):
    # null until the session reports for the first time
    return await positions.get_position(session_id)


@router.post("/api/position", response_model=Position)
async def report_position(
    payload: PositionReport,
    positions: PositionStore = Depends(get_position_store),
):
    return await positions.report_position(payload.session_id, payload.section, payload.x, payload.y)


@router.get("/api/store/sections", response_model=List[StoreSectionOut])
def list_sections():
    return STORE_SECTIONS


@router.get("/api/store/layout", response_model=StoreLayoutOut)
def store_layout():
    return StoreLayoutOut(sections=STORE_SECTIONS, lifi_zones=LIFI_ZONES)
