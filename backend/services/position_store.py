# backend/services/position_store.py
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from starlette.concurrency import run_in_threadpool

from schemas.position import Position
from services.backends import PositionBackend
from services.catalog import SECTION_IDS
from services.errors import ErrorCode, ValidationError
from services.hub import RealtimeHub

logger = logging.getLogger(__name__)


class PositionStore:
    """Latest indoor position per session, last write wins, no history."""

    def __init__(self, backend: PositionBackend, hub: RealtimeHub):
        self._backend = backend
        self._hub = hub

    async def report_position(self, session_id: str, section: str, x: Decimal, y: Decimal) -> Position:
        if not session_id:
            raise ValidationError("Session id must not be empty", field="sessionId")
        if section not in SECTION_IDS:
            raise ValidationError(
                f"Unknown store section: {section}",
                code=ErrorCode.UNKNOWN_SECTION,
                field="section",
                allowed=sorted(SECTION_IDS),
            )

        position = await run_in_threadpool(
            self._backend.put,
            Position(
                session_id=session_id,
                section=section,
                x=Decimal(x),
                y=Decimal(y),
                timestamp=datetime.now(timezone.utc),
            ),
        )
        logger.debug("Session %s now in %s (%s, %s)", session_id, section, x, y)

        # Every connected session sees every position update
        await self._hub.publish_position(position)
        return position

    async def get_position(self, session_id: str) -> Optional[Position]:
        return await run_in_threadpool(self._backend.get, session_id)
