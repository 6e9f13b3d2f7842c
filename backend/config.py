# backend/config.py
from decimal import Decimal
from pydantic_settings import BaseSettings
from typing import ClassVar, Literal, Optional
from pathlib import Path

# Resolve absolute paths so the app works regardless of the working directory
env_path = Path(__file__).parent.parent / ".env"
data_dir = Path(__file__).parent / "data"

class Settings(BaseSettings):
    APP_TITLE: str = "Smart Cart API"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # "memory" keeps carts in process, "database" stores them through SQLAlchemy
    STORE_BACKEND: Literal["memory", "database"] = "memory"
    DATABASE_URL: str = "sqlite:///./smart_cart.db"

    # Cart summary rules
    TAX_RATE: Decimal = Decimal("0.05")
    DISCOUNT_RATE: Decimal = Decimal("0.15")
    DISCOUNT_THRESHOLD: Decimal = Decimal("500")

    CATALOG_PATH: str = str(data_dir / "products.csv")

    FRONTEND_URL: Optional[str] = None

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()
