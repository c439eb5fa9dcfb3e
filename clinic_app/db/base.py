# clinic_app/db/base.py
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()


async def get_engine(database_url: str, **engine_kwargs):
    """Async engine for the scheduling database; kwargs go straight to SQLAlchemy."""
    return create_async_engine(database_url, **engine_kwargs)


async def get_session_factory(engine):
    # expire_on_commit=False keeps returned appointments readable after commit
    return sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
