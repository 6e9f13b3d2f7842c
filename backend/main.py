# backend/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import sessionmaker

load_dotenv()

from config import settings
from database import SessionLocal, init_db
from services.backends import build_backends
from services.cart_store import CartStore
from services.catalog import ProductCatalog
from services.hub import RealtimeHub
from services.position_store import PositionStore
from utils.error_handlers import setup_error_handlers

# Routers
from routes.products import router as products_router
from routes.cart import router as cart_router
from routes.position import router as position_router
from routes.realtime import router as realtime_router

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app(
    store_backend: Optional[str] = None,
    session_factory: Optional[sessionmaker] = None,
    catalog_path: Optional[str] = None,
) -> FastAPI:
    backend_kind = store_backend or settings.STORE_BACKEND

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        factory = session_factory
        if backend_kind == "database" and factory is None:
            init_db()
            factory = SessionLocal

        cart_backend, position_backend = build_backends(backend_kind, factory)
        hub = RealtimeHub()
        app.state.hub = hub
        app.state.catalog = ProductCatalog.from_csv(catalog_path or settings.CATALOG_PATH)
        app.state.cart_store = CartStore(cart_backend, hub)
        app.state.position_store = PositionStore(position_backend, hub)
        logger.info("Smart cart API started with %s store backend", backend_kind)
        yield
        logger.info("Smart cart API shutting down")

    app = FastAPI(title=settings.APP_TITLE, version=settings.APP_VERSION, lifespan=lifespan)

    setup_error_handlers(app)

    # CORS Configuration
    origins = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    if settings.FRONTEND_URL:
        origins.append(settings.FRONTEND_URL)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Router registration
    app.include_router(products_router)
    app.include_router(cart_router)
    app.include_router(position_router)
    app.include_router(realtime_router)

    @app.get("/", tags=["Health"])
    def read_root():
        return {"message": "Smart Cart API is running"}

    @app.get("/health", tags=["Health"])
    def health():
        return {"status": "healthy", "store_backend": backend_kind, "version": settings.APP_VERSION}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, log_level=settings.LOG_LEVEL.lower())
