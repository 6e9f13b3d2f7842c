# backend/services/cart_store.py
import asyncio
import logging
from collections import Counter
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import AsyncIterator, Dict, Optional

from starlette.concurrency import run_in_threadpool

from schemas.cart import CartLine, CartSummary
from services.backends import CartBackend
from services.errors import ErrorCode, NotFoundError, ValidationError
from services.hub import RealtimeHub
from services.pricing import SummaryCalculator, line_total

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class CartStore:
    """Session-scoped cart lines; the single source of truth for carts.

    Mutations of one session are serialised by a per-session lock, different
    sessions proceed independently. A session's lock lives only while a call
    holds or waits on it. Backend calls run in the threadpool so a database
    backend never blocks the event loop. Every successful mutation is pushed to
    the session's connection as a ``cart_sync`` event before the call returns.
    """

    def __init__(
        self,
        backend: CartBackend,
        hub: RealtimeHub,
        calculator: Optional[SummaryCalculator] = None,
    ):
        self._backend = backend
        self._hub = hub
        self._calculator = calculator or SummaryCalculator()
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Counter = Counter()

    @asynccontextmanager
    async def _session_lock(self, session_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = self._locks[session_id] = asyncio.Lock()
        self._lock_users[session_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[session_id] -= 1
            if not self._lock_users[session_id]:
                del self._lock_users[session_id]
                del self._locks[session_id]

    async def add_line(
        self,
        session_id: str,
        product_id: int,
        quantity: Optional[Decimal],
        weight: Optional[Decimal],
        unit_price: Decimal,
    ) -> CartLine:
        """Add a new line. Lines are never merged, even for the same product."""
        if not session_id:
            raise ValidationError("Session id must not be empty", field="sessionId")
        if unit_price is None or unit_price < ZERO:
            raise ValidationError("Unit price must not be negative", field="unitPrice", value=str(unit_price))
        if quantity is not None and quantity < ZERO:
            raise ValidationError("Quantity must not be negative", field="quantity", value=str(quantity))
        if weight is not None and weight < ZERO:
            raise ValidationError("Weight must not be negative", field="weight", value=str(weight))

        has_quantity = quantity is not None and quantity > ZERO
        has_weight = weight is not None and weight > ZERO
        if not has_quantity and not has_weight:
            raise ValidationError(
                "Either a quantity or a weight is required",
                code=ErrorCode.MISSING_QUANTITY,
                field="quantity",
            )
        if not has_weight:
            weight = None
        if not has_quantity:
            # Weighed goods added without a count are one item
            quantity = Decimal("1")

        async with self._session_lock(session_id):
            line = await run_in_threadpool(
                self._backend.insert,
                session_id=session_id,
                product_id=product_id,
                quantity=quantity,
                weight=weight,
                unit_price=unit_price,
                total_price=line_total(unit_price, quantity, weight),
                created_at=datetime.now(timezone.utc),
            )
            logger.info(
                "Cart %s: added line %s (product %s, total %s)",
                session_id, line.id, product_id, line.total_price,
            )
            await self._hub.publish_item_added(line)
            await self._publish(session_id)
        return line

    async def update_quantity(self, line_id: int, new_quantity: Decimal) -> Optional[CartLine]:
        """Set a line's quantity. Zero or less removes the line and returns None."""
        current = await run_in_threadpool(self._backend.get, line_id)
        if current is None:
            raise NotFoundError("Cart item not found", line_id=line_id)

        if new_quantity <= ZERO:
            await self.remove_line(line_id)
            return None

        session_id = current.session_id
        async with self._session_lock(session_id):
            # The new quantity supersedes any weighed amount
            line = await run_in_threadpool(
                self._backend.update,
                line_id,
                quantity=new_quantity,
                weight=None,
                total_price=line_total(current.unit_price, new_quantity),
            )
            if line is None:
                # Removed by a concurrent call while we waited for the lock
                raise NotFoundError("Cart item not found", line_id=line_id)
            logger.info("Cart %s: line %s quantity set to %s", session_id, line_id, new_quantity)
            await self._publish(session_id)
        return line

    async def remove_line(self, line_id: int) -> bool:
        """Idempotent: returns whether a line was removed, never raises for unknown ids."""
        current = await run_in_threadpool(self._backend.get, line_id)
        if current is None:
            return False

        session_id = current.session_id
        async with self._session_lock(session_id):
            removed = await run_in_threadpool(self._backend.delete, line_id)
            if removed is None:
                return False
            logger.info("Cart %s: removed line %s", session_id, line_id)
            await self._publish(session_id)
        return True

    async def clear_session(self, session_id: str) -> None:
        async with self._session_lock(session_id):
            count = await run_in_threadpool(self._backend.delete_session, session_id)
            logger.info("Cart %s: cleared %d line(s)", session_id, count)
            await self._publish(session_id)

    async def get_summary(self, session_id: str) -> CartSummary:
        lines = await run_in_threadpool(self._backend.list_session, session_id)
        return self._calculator.summarize(session_id, lines)

    async def get_line(self, line_id: int) -> Optional[CartLine]:
        return await run_in_threadpool(self._backend.get, line_id)

    async def _publish(self, session_id: str) -> None:
        await self._hub.publish_cart(await self.get_summary(session_id))
