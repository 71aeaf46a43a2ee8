import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from src.pm_common.errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models across modules."""

    pass


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create the process-wide async engine (called once from the app lifespan)."""
    return create_async_engine(
        database_url,
        echo=echo,
        pool_size=20,
        max_overflow=10,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@asynccontextmanager
async def unit_of_work(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Commit on success, roll back on any error.

    Driver/SQL failures are surfaced as StoreUnavailableError so callers never
    see a half-applied multi-statement write.
    """
    try:
        yield db
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("Store error, transaction rolled back", exc_info=True)
        raise StoreUnavailableError() from exc
    except Exception:
        await db.rollback()
        raise
