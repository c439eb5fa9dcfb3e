# clinic_app/db/session.py
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import sessionmaker

logger = logging.getLogger(__name__)

# Set once by the app lifespan or a script's main(); used outside request scope
_session_factory: Optional[sessionmaker] = None


def set_global_session_factory(factory: sessionmaker) -> None:
    global _session_factory
    _session_factory = factory
    logger.info("Scheduling session factory registered.")


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """One session per request, taken from the factory stored on app.state."""
    async with request.app.state.session_factory() as session:
        yield session


@asynccontextmanager
async def script_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Session for cron jobs and maintenance scripts (reminders, seeding).

    Uncommitted work is rolled back if the block raises.
    """
    if _session_factory is None:
        logger.error("script_db_session used before set_global_session_factory")
        raise RuntimeError("Database session factory not initialized globally.")

    async with _session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            logger.exception("Script session rolled back after an error")
            raise
