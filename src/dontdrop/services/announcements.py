# src/dontdrop/services/announcements.py

"""Deferred announcement jobs and the weekly leaderboard digest."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from dontdrop.config import TOP_PLAYERS_COUNT
from dontdrop.exceptions import AnnouncementSchedulingError
from dontdrop.schemas.announcement import AnnouncementPayload, WeeklyDigest

if TYPE_CHECKING:
    from .leaderboard_service import LeaderboardService

logger = logging.getLogger(__name__)

AnnouncementPublisher = Callable[[AnnouncementPayload], Awaitable[None]]
DigestPublisher = Callable[[WeeklyDigest], Awaitable[None]]

# Weekly digest slot: Monday 00:00 UTC.
DIGEST_WEEKDAY = 0
DIGEST_HOUR = 0


# ===============================================
# Formatting
# ===============================================


def format_announcement(payload: AnnouncementPayload) -> str:
    """Render an announcement as the text posted to the community."""
    text = (
        f"{payload.display_name} just claimed #{payload.rank} on the "
        f"Don't Drop leaderboard with {payload.score} points"
    )
    displaced = payload.displaced_player
    if displaced is not None:
        text += (
            f", knocking {displaced.display_name} ({displaced.score}) "
            "out of the spot!"
        )
    else:
        text += "!"
    return text


def format_weekly_digest(digest: WeeklyDigest) -> str:
    lines = [f"Don't Drop weekly top {len(digest.entries)}"]
    if not digest.entries:
        lines.append("No scores yet this week. Be the first!")
    for entry in digest.entries:
        lines.append(f"#{entry.rank} {entry.display_name}: {entry.score}")
    return "\n".join(lines)


async def log_announcement(payload: AnnouncementPayload) -> None:
    """Default publisher: write the announcement to the log."""
    logger.info(
        format_announcement(payload),
        extra={"rank": payload.rank, "score": payload.score},
    )


async def log_weekly_digest(digest: WeeklyDigest) -> None:
    logger.info(format_weekly_digest(digest), extra={"entries": len(digest.entries)})


# ===============================================
# Weekly digest
# ===============================================


def next_weekly_run(
    now: datetime, weekday: int = DIGEST_WEEKDAY, hour: int = DIGEST_HOUR
) -> datetime:
    """Return the first weekly slot strictly after ``now`` (UTC)."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)

    days_ahead = (weekday - now.weekday()) % 7
    candidate = (now + timedelta(days=days_ahead)).replace(
        hour=hour, minute=0, second=0, microsecond=0
    )
    if candidate <= now:
        candidate += timedelta(days=7)
    return candidate


async def build_weekly_digest(
    service: "LeaderboardService", count: int = TOP_PLAYERS_COUNT
) -> WeeklyDigest:
    entries = await service.get_top_k(count)
    return WeeklyDigest(generated_at=datetime.now(timezone.utc), entries=entries)


async def run_weekly_digest(
    service: "LeaderboardService",
    publish: DigestPublisher = log_weekly_digest,
    count: int = TOP_PLAYERS_COUNT,
) -> WeeklyDigest:
    """Build and publish the digest. Safe to run repeatedly: it only reads."""
    digest = await build_weekly_digest(service, count)
    await publish(digest)
    logger.info("Weekly digest published", extra={"entries": len(digest.entries)})
    return digest


# ===============================================
# Schedulers
# ===============================================


class AnnouncementScheduler(ABC):
    """One-way dispatch of announcement jobs.

    ``run_now`` must return without waiting for the job. It raises
    ``AnnouncementSchedulingError`` only when the job is refused outright.
    """

    @abstractmethod
    def run_now(self, payload: AnnouncementPayload) -> None:
        """Queue ``payload`` for immediate asynchronous publication."""


class AsyncioAnnouncementScheduler(AnnouncementScheduler):
    """Runs jobs as tasks on the current event loop.

    Publisher failures are logged here and never reach the caller of
    ``run_now``.
    """

    def __init__(
        self,
        publisher: AnnouncementPublisher = log_announcement,
        max_pending: int = 100,
    ) -> None:
        self._publisher = publisher
        self._max_pending = max_pending
        self._tasks: set[asyncio.Task] = set()
        self._weekly_task: asyncio.Task | None = None

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def run_now(self, payload: AnnouncementPayload) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as e:
            raise AnnouncementSchedulingError("no running event loop") from e

        if len(self._tasks) >= self._max_pending:
            raise AnnouncementSchedulingError(
                "too many pending announcements",
                details={"pending": len(self._tasks)},
            )

        task = loop.create_task(self._run(payload))
        # Hold a reference until the task finishes.
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, payload: AnnouncementPayload) -> None:
        try:
            await self._publisher(payload)
        except Exception as e:
            logger.error(
                "Announcement job failed",
                extra={"rank": payload.rank, "error": str(e)},
                exc_info=True,
            )

    def start_weekly_digest(
        self,
        job: Callable[[], Awaitable[object]],
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        """Run ``job`` at every weekly slot until ``stop`` is called."""
        if self._weekly_task is not None and not self._weekly_task.done():
            return
        self._weekly_task = asyncio.get_running_loop().create_task(
            self._weekly_loop(job, clock)
        )

    async def _weekly_loop(
        self,
        job: Callable[[], Awaitable[object]],
        clock: Callable[[], datetime],
    ) -> None:
        while True:
            now = clock()
            delay = (next_weekly_run(now) - now).total_seconds()
            logger.debug("Next weekly digest", extra={"delay_s": round(delay)})
            await asyncio.sleep(delay)
            try:
                await job()
            except Exception as e:
                logger.error(
                    "Weekly digest failed", extra={"error": str(e)}, exc_info=True
                )

    async def drain(self) -> None:
        """Wait for every queued announcement to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def stop(self) -> None:
        if self._weekly_task is not None:
            self._weekly_task.cancel()
            try:
                await self._weekly_task
            except asyncio.CancelledError:
                pass
            self._weekly_task = None
        await self.drain()
