from urllib.parse import urlparse

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import get_settings


class Base(DeclarativeBase):
    pass


settings = get_settings()

LOCAL_DB_HOSTS = {"localhost", "127.0.0.1", "db"}


def normalize_database_url(database_url: str) -> str:
    """Plain ``postgresql://`` URLs are served by psycopg 3."""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return database_url


def engine_options(database_url: str) -> dict:
    scheme = urlparse(database_url).scheme
    if scheme.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url:
            # Every session must see the same in-memory database.
            options["poolclass"] = StaticPool
        return options
    if not scheme.startswith("postgresql"):
        return {}

    connect_args = {"keepalives": 1, "keepalives_idle": 30}
    if urlparse(database_url).hostname not in LOCAL_DB_HOSTS:
        connect_args["sslmode"] = "require"
    return {
        "connect_args": connect_args,
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": settings.db_pool_recycle,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout,
    }


database_url = normalize_database_url(str(settings.database_url))
engine = create_engine(database_url, **engine_options(database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
