"""
Database initialization and bootstrapping.
"""

from consultrack.db import session as db_session
from consultrack.db.base import Base
from consultrack.core.logging import get_logger

# Registers every model with Base.metadata
import consultrack.models  # noqa: F401

logger = get_logger(__name__)


async def create_tables() -> None:
    """
    Create all database tables from model metadata.
    Intended for local development and tests; production schemas are migrated.
    """
    if db_session.engine is None:
        db_session.create_engine()
    
    async with db_session.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    logger.info("Database tables initialized", extra={"tables": sorted(Base.metadata.tables)})


if __name__ == "__main__":
    import asyncio

    asyncio.run(create_tables())
