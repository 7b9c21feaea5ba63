"""Initialize the database schema."""

from sqlalchemy.ext.asyncio import AsyncEngine

from aify.core.logging import logger
from aify.models import Base


async def create_schema(engine: AsyncEngine) -> None:
    """Create the account and ledger tables if they don't exist yet.

    Existing tables are left untouched, so this is safe on every startup.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema verified")
