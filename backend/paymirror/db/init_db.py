"""Create the mirror tables."""

from sqlalchemy.ext.asyncio import AsyncEngine

from paymirror.core.logging import logger
from paymirror.models import Base


async def init_db(engine: AsyncEngine) -> None:
    """Create every mirror table that does not exist yet.

    Args:
    ----
        engine (AsyncEngine): The engine to create the tables on.

    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Mirror tables ready")
