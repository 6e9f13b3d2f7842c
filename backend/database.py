# backend/database.py
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import settings

# Heroku/Azure style URLs use postgres://, SQLAlchemy requires postgresql://
SQLALCHEMY_DATABASE_URL = settings.DATABASE_URL
if SQLALCHEMY_DATABASE_URL.startswith("postgres://"):
    SQLALCHEMY_DATABASE_URL = SQLALCHEMY_DATABASE_URL.replace("postgres://", "postgresql://", 1)

def make_engine(url: str = SQLALCHEMY_DATABASE_URL, **kwargs):
    if "sqlite" in url:
        kwargs.setdefault("connect_args", {"check_same_thread": False})  # SQLite only
    return create_engine(url, **kwargs)

engine = make_engine()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def init_db(bind=None):
    # Import table definitions so they register on Base.metadata
    import models.cart  # noqa: F401
    import models.position  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
