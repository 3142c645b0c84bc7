"""Async SQLAlchemy engine construction and schema bootstrap.

The engine is built once per application from settings and shared by every
request through the metadata store:

    engine = create_engine(settings)
    await init_db(engine)
    store = MetadataStore(engine)
"""
import logging
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from file_server.config import Settings
from file_server.models import Base

logger = logging.getLogger(__name__)


def _configure_sqlite(dbapi_conn, _connection_record):
    """WAL lets readers proceed while the single writer commits."""
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def is_sqlite(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def create_engine(settings: Settings) -> AsyncEngine:
    """Build the async engine for DATABASE_URL (SQLite or PostgreSQL)."""
    if is_sqlite(settings.DATABASE_URL):
        database = make_url(settings.DATABASE_URL).database
        if database and database != ":memory:":
            Path(database).parent.mkdir(parents=True, exist_ok=True)
        engine = create_async_engine(settings.DATABASE_URL, echo=False)
        event.listen(engine.sync_engine, "connect", _configure_sqlite)
        return engine

    return create_async_engine(
        settings.DATABASE_URL,
        echo=False,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
    )


def masked_url(url: str) -> str:
    return make_url(url).render_as_string(hide_password=True)


async def init_db(engine: AsyncEngine) -> None:
    """Create the files table if it does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created/verified")
