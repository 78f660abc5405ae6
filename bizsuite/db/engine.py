"""PostgreSQL wiring for the tenant store and notification inbox.

``engine`` and ``async_session_factory`` exist only when DATABASE_URL is
set; otherwise both are None and bizsuite.api.stores picks the in-memory
implementations.  Each PgTenantStore transaction takes its own session,
so sessions never outlive a single lifecycle procedure.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from bizsuite.core.config import SETTINGS

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


engine = (
    create_async_engine(
        SETTINGS.database_url,
        echo=SETTINGS.is_dev,
        pool_size=5,
        max_overflow=10,
        # Redemptions hold row locks; drop connections the server has closed.
        pool_pre_ping=True,
    )
    if SETTINGS.database_url
    else None
)

async_session_factory: async_sessionmaker[AsyncSession] | None = (
    async_sessionmaker(engine, expire_on_commit=False) if engine is not None else None
)


@asynccontextmanager
async def lifespan_db():
    if engine is None:
        logger.info("DATABASE_URL not set; tenant data lives in process memory")
        yield
        return

    logger.info("Connected tenant store to %s", engine.url.render_as_string())
    try:
        yield
    finally:
        await engine.dispose()
        logger.info("Database pool closed")


async def ping_database() -> bool:
    """True when a trivial query round-trips; used by /health and /ready."""
    if engine is None:
        return False
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("Database ping failed", exc_info=True)
        return False
    return True
