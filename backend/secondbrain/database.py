"""
SecondBrain Database Configuration

SQLAlchemy async engine with SQLite for development.
Thoughts, sources and conversation transcripts live here.
"""
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy import event
from .config import settings


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    SQLite connections get lock timeouts, foreign keys and WAL enabled.
    """
    is_sqlite = database_url.startswith("sqlite")
    connect_args = {}
    if is_sqlite:
        connect_args = {
            "timeout": 30,  # Wait up to 30 seconds for locks
            "check_same_thread": False,
        }

    new_engine = create_async_engine(
        database_url,
        echo=echo,
        future=True,
        connect_args=connect_args,
    )

    if is_sqlite:
        @event.listens_for(new_engine.sync_engine, "connect")
        def configure_sqlite(dbapi_connection, connection_record):
            """Configure SQLite for better concurrency."""
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA journal_mode=WAL")  # Enable WAL for better concurrency
            cursor.execute("PRAGMA busy_timeout=30000")
            cursor.close()

    return new_engine


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to an engine."""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# Default engine and session factory
engine = build_engine(settings.database_url, echo=settings.debug)
async_session = build_session_factory(engine)


async def init_db(bind: AsyncEngine = None) -> None:
    """Initialize database tables."""
    # Register the mapped classes on Base.metadata
    from . import models  # noqa: F401

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db(bind: AsyncEngine = None) -> None:
    """Close database connections."""
    await (bind or engine).dispose()
