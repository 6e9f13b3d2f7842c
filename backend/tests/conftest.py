import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from starlette.websockets import WebSocketState

from database import init_db
from main import create_app
from services.backends import MemoryCartBackend, MemoryPositionBackend
from services.cart_store import CartStore
from services.hub import RealtimeHub
from services.position_store import PositionStore


class FakeChannel:
    """Stands in for a WebSocket: records what the hub sends."""

    def __init__(self, fail=False):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.fail = fail
        self.sent = []

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(data)

    def close(self):
        self.client_state = WebSocketState.DISCONNECTED

    def types(self):
        return [m["type"] for m in self.sent]

    def of_type(self, type_):
        return [m for m in self.sent if m["type"] == type_]


@pytest.fixture
def hub():
    return RealtimeHub()


@pytest.fixture
def cart_store(hub):
    return CartStore(MemoryCartBackend(), hub)


@pytest.fixture
def position_store(hub):
    return PositionStore(MemoryPositionBackend(), hub)


@pytest.fixture
def sql_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def client():
    app = create_app(store_backend="memory")
    with TestClient(app) as c:
        yield c


@pytest.fixture
def sql_client(sql_session_factory):
    app = create_app(store_backend="database", session_factory=sql_session_factory)
    with TestClient(app) as c:
        yield c
