"""
Database session management with async SQLAlchemy 2.0.
Handles connection pooling and session lifecycle.
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from typing import AsyncGenerator

from consultrack.core.config import settings
from consultrack.core.logging import get_logger

logger = get_logger(__name__)

# Global engine and sessionmaker
engine: AsyncEngine = None
async_session_maker: async_sessionmaker[AsyncSession] = None


def enable_sqlite_savepoints(async_engine: AsyncEngine) -> None:
    """
    Let SQLAlchemy own BEGIN on SQLite so SAVEPOINT (begin_nested) works.
    The sqlite3/aiosqlite drivers otherwise emit their own BEGIN and break nesting.
    """
    @event.listens_for(async_engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(async_engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_engine() -> AsyncEngine:
    """Create async SQLAlchemy engine with connection pooling."""
    global engine
    
    if settings.DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(settings.DATABASE_URL, echo=False)
        enable_sqlite_savepoints(engine)
        logger.info("Database engine created", extra={"backend": "sqlite"})
        return engine
    
    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=False,  # Set to True for SQL query logging
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,  # Verify connections before using
    )
    
    logger.info(
        "Database engine created",
        extra={
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
        },
    )
    
    return engine


def create_sessionmaker() -> async_sessionmaker[AsyncSession]:
    """Create async sessionmaker."""
    global async_session_maker
    
    if engine is None:
        create_engine()
    
    async_session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    
    logger.info("Sessionmaker created")
    return async_session_maker


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting database session.
    Yields a session and ensures it's closed after use.
    """
    if async_session_maker is None:
        create_sessionmaker()
    
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Initialize database connection."""
    if engine is None:
        create_engine()
    
    if async_session_maker is None:
        create_sessionmaker()
    
    logger.info("Database initialized")


async def close_db() -> None:
    """Close database connections."""
    global engine, async_session_maker
    
    if engine:
        await engine.dispose()
        engine = None
        async_session_maker = None
        logger.info("Database connections closed")
