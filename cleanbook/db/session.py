# cleanbook/db/session.py

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from cleanbook.core.config import Settings


# Declarative Base: all models inherit from this
class Base(DeclarativeBase):
    pass


def create_engine(settings: Settings) -> AsyncEngine:
    """One engine per process, owned by the store context."""
    kwargs = {}
    if settings.async_db_uri.startswith("postgresql"):
        kwargs["pool_pre_ping"] = True  # avoids stale connection errors
    return create_async_engine(settings.async_db_uri, **kwargs)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory: creates short-lived sessions per store call."""
    return async_sessionmaker(
        engine,
        expire_on_commit=False,  # keep objects usable after commit
        class_=AsyncSession,
    )
