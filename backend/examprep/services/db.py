# examprep/services/db.py
import logging
from contextlib import contextmanager
from typing import Iterator, Union

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from examprep.config import Settings

logger = logging.getLogger(__name__)

# ---- Single source of truth for Base (models must import from here)
Base = declarative_base()


def build_url(settings: Settings) -> URL:
    """DATABASE_URL wins; otherwise build a psycopg URL from the DB_* parts."""
    if settings.DATABASE_URL:
        return make_url(settings.DATABASE_URL)

    # Fail fast if host is blank
    if not settings.DB_HOST:
        raise RuntimeError("[DB] DB_HOST is empty! Check backend/.env")

    # Build URL safely (handles '@' in password)
    return URL.create(
        drivername="postgresql+psycopg",   # psycopg3
        username=settings.DB_USER,
        password=settings.DB_PASSWORD,
        host=settings.DB_HOST,
        port=settings.DB_PORT,
        database=settings.DB_NAME,
    )


def _mask(u: URL) -> str:
    user = (u.username or "") + (":" if u.username else "")
    host = u.host or ""
    port = f":{u.port}" if u.port else ""
    db = f"/{u.database}" if u.database else ""
    at = "****@" if u.username else ""
    return f"{u.drivername}://{user}{at}{host}{port}{db}"


def make_engine(url: Union[URL, str]) -> Engine:
    url = make_url(url)
    logger.info("[DB] Using %s", _mask(url))
    if url.get_backend_name() == "sqlite":
        # one shared connection so in-memory databases survive across sessions
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            future=True,
        )
    return create_engine(url, pool_pre_ping=True, future=True)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """Yield a SQLAlchemy session as a context manager."""
    s = factory()
    try:
        yield s
    finally:
        s.close()


def init_db(engine: Engine) -> None:
    """Ping DB, import models to register metadata, then create tables."""
    logger.info("[DB] init_db: starting connection test…")
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    logger.info("[DB] init_db: connection OK, creating tables if missing…")

    # IMPORTANT: import models INSIDE this function to avoid circular imports
    import examprep.models.mock_test  # noqa: F401
    import examprep.models.attempt  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info("[DB] init_db: tables ensured.")


def ping(engine: Engine) -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
