"""Async SQLAlchemy engine, session factory, and declarative base."""

import logging
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from equimarket.config import settings
from equimarket.errors import PersistenceError

logger = logging.getLogger(__name__)


def build_engine(url: str, **overrides: Any) -> AsyncEngine:
    """Create an async engine, applying pool sizing only where the dialect supports it."""
    options: dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        options.update(pool_size=10, max_overflow=20)
    options.update(overrides)
    return create_async_engine(url, **options)


engine = build_engine(settings.database_url)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class TimestampMixin:
    """Mixin that adds created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        onupdate=func.now(),
    )


class UUIDPrimaryKeyMixin:
    """Mixin that adds a UUID primary key column."""

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)


async def flush_or_fail(db: AsyncSession, action: str) -> None:
    """Flush pending changes, surfacing driver failures as PersistenceError."""
    try:
        await db.flush()
    except SQLAlchemyError as e:
        logger.error("Persistence failure while trying to %s: %s", action, e)
        raise PersistenceError(f"Could not {action}") from e


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async database session for FastAPI dependency injection.

    The session commits once the request handler returns; any exception rolls
    the whole unit of work back so no partial state is persisted.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise PersistenceError("Database commit failed") from e
        except Exception:
            await session.rollback()
            raise
