# src/dontdrop/db/session.py

"""Database engine and session factory."""
import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)

from dontdrop.config import Settings, settings

from .models import Base

logger = logging.getLogger(__name__)


def create_engine_from_settings(cfg: Settings) -> AsyncEngine:
    """Create the async engine with appropriate configuration.

    SQLite doesn't support connection pooling, so we only configure
    pool settings for other databases like PostgreSQL.
    """
    url = cfg.database_url

    if url.startswith("sqlite"):
        return create_async_engine(url, echo=cfg.db_echo)

    return create_async_engine(
        url,
        pool_size=cfg.db_pool_size,
        max_overflow=cfg.db_max_overflow,
        pool_pre_ping=True,  # Verify connections before use
        pool_recycle=cfg.db_pool_recycle,
        echo=cfg.db_echo,
    )


def create_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    # expire_on_commit=False: rows stay readable after the store commits.
    return async_sessionmaker(
        bind=bind, autocommit=False, autoflush=False, expire_on_commit=False
    )


async def create_tables(bind: AsyncEngine) -> None:
    """Create missing tables. Production deployments run the Alembic revisions."""
    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Leaderboard tables ensured", extra={"url": str(bind.url)})


engine = create_engine_from_settings(settings)

AsyncSessionLocal = create_session_factory(engine)
