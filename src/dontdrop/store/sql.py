# src/dontdrop/store/sql.py

"""SQLAlchemy-backed ranking store (SQLite via aiosqlite, or PostgreSQL)."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from dontdrop.db.models import PlayerIdentity, ScoreEntry, utcnow
from dontdrop.db.session import create_session_factory
from dontdrop.exceptions import StoreUnavailableError

from .base import RankingStore

logger = logging.getLogger(__name__)


class SqlRankingStore(RankingStore):
    """Ranking store over the ``score_entries`` and ``player_identities`` tables.

    Every operation runs in its own short transaction. The conditional score
    write is a single ``INSERT ... ON CONFLICT DO UPDATE ... WHERE`` statement,
    so the comparison and the write happen atomically inside the database.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker | None = None,
    ) -> None:
        self._engine = engine
        self._sessions = session_factory or create_session_factory(engine)
        dialect = engine.dialect.name
        if dialect == "postgresql":
            self._insert = postgresql.insert
        elif dialect == "sqlite":
            self._insert = sqlite.insert
        else:
            raise ValueError(f"Unsupported database dialect for ranking store: {dialect}")

    @asynccontextmanager
    async def _guard(self, operation: str) -> AsyncIterator[None]:
        try:
            yield
        except SQLAlchemyError as e:
            logger.error(
                "Ranking store operation failed",
                extra={"operation": operation, "error": str(e)},
                exc_info=True,
            )
            raise StoreUnavailableError(operation, str(e)) from e

    # ----- scores -----

    async def get_score(self, stable_id: str) -> int | None:
        async with self._guard("get_score"):
            async with self._sessions() as session:
                result = await session.execute(
                    select(ScoreEntry.score).where(ScoreEntry.stable_id == stable_id)
                )
                return result.scalar_one_or_none()

    async def set_score_if_greater(self, stable_id: str, score: int) -> bool:
        stmt = self._insert(ScoreEntry).values(
            stable_id=stable_id, score=int(score), achieved_at=utcnow()
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ScoreEntry.stable_id],
            set_={
                "score": stmt.excluded.score,
                "achieved_at": stmt.excluded.achieved_at,
            },
            # Evaluated against the existing row: equal or lower never wins.
            where=ScoreEntry.score < stmt.excluded.score,
        ).returning(ScoreEntry.score)

        async with self._guard("set_score_if_greater"):
            async with self._sessions() as session, session.begin():
                result = await session.execute(stmt)
                written = result.scalar_one_or_none()

        logger.debug(
            "Conditional score write",
            extra={"stable_id": stable_id, "score": score, "applied": written is not None},
        )
        return written is not None

    async def top_scores(self, count: int) -> list[tuple[str, int]]:
        if count <= 0:
            return []
        query = (
            select(ScoreEntry.stable_id, ScoreEntry.score)
            .order_by(
                ScoreEntry.score.desc(),
                ScoreEntry.achieved_at.asc(),
                ScoreEntry.stable_id.asc(),
            )
            .limit(count)
        )
        async with self._guard("top_scores"):
            async with self._sessions() as session:
                result = await session.execute(query)
                return [(row.stable_id, row.score) for row in result]

    async def clear_scores(self) -> None:
        async with self._guard("clear_scores"):
            async with self._sessions() as session, session.begin():
                await session.execute(delete(ScoreEntry))

    # ----- identities -----

    async def set_display_name(self, stable_id: str, display_name: str) -> None:
        stmt = self._insert(PlayerIdentity).values(
            stable_id=stable_id, display_name=display_name, updated_at=utcnow()
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[PlayerIdentity.stable_id],
            set_={
                "display_name": stmt.excluded.display_name,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        async with self._guard("set_display_name"):
            async with self._sessions() as session, session.begin():
                await session.execute(stmt)

    async def get_display_names(
        self, stable_ids: Sequence[str]
    ) -> list[str | None]:
        if not stable_ids:
            return []
        query = select(PlayerIdentity.stable_id, PlayerIdentity.display_name).where(
            PlayerIdentity.stable_id.in_(set(stable_ids))
        )
        async with self._guard("get_display_names"):
            async with self._sessions() as session:
                result = await session.execute(query)
                names = {row.stable_id: row.display_name for row in result}
        return [names.get(sid) for sid in stable_ids]

    async def clear_display_names(self) -> None:
        async with self._guard("clear_display_names"):
            async with self._sessions() as session, session.begin():
                await session.execute(delete(PlayerIdentity))

    # ----- health -----

    async def ping(self) -> bool:
        async with self._guard("ping"):
            async with self._sessions() as session:
                result = await session.execute(select(1))
                return result.scalar_one() == 1

    async def close(self) -> None:
        await self._engine.dispose()
