# utils/dependencies.py
from starlette.requests import HTTPConnection

from services.cart_store import CartStore
from services.catalog import ProductCatalog
from services.hub import RealtimeHub
from services.position_store import PositionStore

# Stores are created in the app lifespan and kept on app.state;
# HTTPConnection covers both HTTP requests and WebSocket connections.

def get_catalog(conn: HTTPConnection) -> ProductCatalog:
    return conn.app.state.catalog

def get_cart_store(conn: HTTPConnection) -> CartStore:
    return conn.app.state.cart_store

def get_position_store(conn: HTTPConnection) -> PositionStore:
    return conn.app.state.position_store

def get_hub(conn: HTTPConnection) -> RealtimeHub:
    return conn.app.state.hub
