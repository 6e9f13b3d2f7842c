# backend/services/backends.py
"""Storage backends for cart lines and positions.

The stores only talk to these interfaces. ``memory`` keeps everything in
process; ``database`` persists through SQLAlchemy using the tables in
``models/``.
"""
import itertools
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from models.cart import CartLineRecord
from models.position import PositionRecord
from schemas.cart import CartLine
from schemas.position import Position


class CartBackend(ABC):
    @abstractmethod
    def insert(
        self,
        session_id: str,
        product_id: int,
        quantity: Decimal,
        weight: Optional[Decimal],
        unit_price: Decimal,
        total_price: Decimal,
        created_at: datetime,
    ) -> CartLine:
        """Store a new line under a freshly allocated, unique id."""

    @abstractmethod
    def get(self, line_id: int) -> Optional[CartLine]: ...

    @abstractmethod
    def update(
        self, line_id: int, quantity: Decimal, weight: Optional[Decimal], total_price: Decimal
    ) -> Optional[CartLine]: ...

    @abstractmethod
    def delete(self, line_id: int) -> Optional[CartLine]:
        """Remove a line, returning it, or None if it did not exist."""

    @abstractmethod
    def delete_session(self, session_id: str) -> int: ...

    @abstractmethod
    def list_session(self, session_id: str) -> List[CartLine]:
        """Lines of a session in insertion order."""


class PositionBackend(ABC):
    @abstractmethod
    def put(self, position: Position) -> Position: ...

    @abstractmethod
    def get(self, session_id: str) -> Optional[Position]: ...


# =========================
# IN-MEMORY
# =========================
class MemoryCartBackend(CartBackend):
    def __init__(self):
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._lines: Dict[int, CartLine] = {}
        # session id -> line ids, dict keeps insertion order
        self._sessions: Dict[str, Dict[int, None]] = {}

    def insert(self, session_id, product_id, quantity, weight, unit_price, total_price, created_at):
        with self._lock:
            line = CartLine(
                id=next(self._ids),
                session_id=session_id,
                product_id=product_id,
                quantity=quantity,
                weight=weight,
                unit_price=unit_price,
                total_price=total_price,
                created_at=created_at,
            )
            self._lines[line.id] = line
            self._sessions.setdefault(session_id, {})[line.id] = None
            return line

    def get(self, line_id):
        with self._lock:
            return self._lines.get(line_id)

    def update(self, line_id, quantity, weight, total_price):
        with self._lock:
            line = self._lines.get(line_id)
            if line is None:
                return None
            line = line.model_copy(update={"quantity": quantity, "weight": weight, "total_price": total_price})
            self._lines[line_id] = line
            return line

    def delete(self, line_id):
        with self._lock:
            line = self._lines.pop(line_id, None)
            if line is not None:
                ids = self._sessions.get(line.session_id, {})
                ids.pop(line_id, None)
                if not ids:
                    self._sessions.pop(line.session_id, None)
            return line

    def delete_session(self, session_id):
        with self._lock:
            ids = self._sessions.pop(session_id, {})
            for line_id in ids:
                self._lines.pop(line_id, None)
            return len(ids)

    def list_session(self, session_id):
        with self._lock:
            return [self._lines[i] for i in self._sessions.get(session_id, {})]


class MemoryPositionBackend(PositionBackend):
    def __init__(self):
        self._lock = threading.Lock()
        self._positions: Dict[str, Position] = {}

    def put(self, position):
        with self._lock:
            self._positions[position.session_id] = position
            return position

    def get(self, session_id):
        with self._lock:
            return self._positions.get(session_id)


# =========================
# SQLALCHEMY
# =========================
def _aware(value: datetime) -> datetime:
    # SQLite drops tzinfo; everything is stored in UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _to_line(record: CartLineRecord) -> CartLine:
    line = CartLine.model_validate(record)
    return line.model_copy(update={"created_at": _aware(line.created_at)})


def _to_position(record: PositionRecord) -> Position:
    position = Position.model_validate(record)
    return position.model_copy(update={"timestamp": _aware(position.timestamp)})


class SqlCartBackend(CartBackend):
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def insert(self, session_id, product_id, quantity, weight, unit_price, total_price, created_at):
        with self._session_factory() as db:
            record = CartLineRecord(
                session_id=session_id,
                product_id=product_id,
                quantity=quantity,
                weight=weight,
                unit_price=unit_price,
                total_price=total_price,
                created_at=created_at,
            )
            db.add(record)
            db.commit()
            db.refresh(record)
            return _to_line(record)

    def get(self, line_id):
        with self._session_factory() as db:
            record = db.get(CartLineRecord, line_id)
            return _to_line(record) if record else None

    def update(self, line_id, quantity, weight, total_price):
        with self._session_factory() as db:
            record = db.get(CartLineRecord, line_id)
            if record is None:
                return None
            record.quantity = quantity
            record.weight = weight
            record.total_price = total_price
            db.commit()
            db.refresh(record)
            return _to_line(record)

    def delete(self, line_id):
        with self._session_factory() as db:
            record = db.get(CartLineRecord, line_id)
            if record is None:
                return None
            line = _to_line(record)
            db.delete(record)
            db.commit()
            return line

    def delete_session(self, session_id):
        with self._session_factory() as db:
            count = (
                db.query(CartLineRecord)
                .filter(CartLineRecord.session_id == session_id)
                .delete(synchronize_session=False)
            )
            db.commit()
            return count

    def list_session(self, session_id):
        with self._session_factory() as db:
            records = (
                db.query(CartLineRecord)
                .filter(CartLineRecord.session_id == session_id)
                .order_by(CartLineRecord.id.asc())
                .all()
            )
            return [_to_line(r) for r in records]


class SqlPositionBackend(PositionBackend):
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def put(self, position):
        with self._session_factory() as db:
            record = db.get(PositionRecord, position.session_id)
            if record is None:
                record = PositionRecord(session_id=position.session_id)
                db.add(record)
            record.section = position.section
            record.x = position.x
            record.y = position.y
            record.timestamp = position.timestamp
            db.commit()
            db.refresh(record)
            return _to_position(record)

    def get(self, session_id):
        with self._session_factory() as db:
            record = db.get(PositionRecord, session_id)
            return _to_position(record) if record else None


def build_backends(kind: str, session_factory: Optional[sessionmaker] = None):
    """Return ``(cart_backend, position_backend)`` for the configured store kind."""
    if kind == "memory":
        return MemoryCartBackend(), MemoryPositionBackend()
    if kind == "database":
        if session_factory is None:
            raise ValueError("database backend needs a session factory")
        return SqlCartBackend(session_factory), SqlPositionBackend(session_factory)
    raise ValueError(f"Unknown store backend: {kind}")
