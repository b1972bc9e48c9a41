# app/db/sql.py
from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings

logger = logging.getLogger(__name__)


def build_engine(dsn: str, *, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine. Pool sizing only applies to server databases;
    SQLite (aiosqlite) uses its own pool class.
    """
    kwargs: Dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
    if make_url(dsn).get_backend_name() != "sqlite":
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
        )
    return create_async_engine(dsn, **kwargs)


engine = build_engine(settings.SQL_DSN, echo=settings.DB_ECHO)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
    class_=AsyncSession,
)


async def get_session() -> AsyncIterator[AsyncSession]:
    """
    Provide a DB session for each request.
    Commits when the handler returns, rolls back and re-raises otherwise.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def ping_db(session: AsyncSession) -> str:
    """
    Run SELECT 1 and return the backend name.
    """
    await session.execute(text("SELECT 1"))
    return session.get_bind().dialect.name


async def create_all(bind: AsyncEngine = engine) -> None:
    """
    Create every table known to Base.metadata (dev/test only; prod uses alembic).
    """
    from app.db.base import Base
    from app.models import load_models

    load_models()
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ensured on %s", bind.url.render_as_string(hide_password=True))
