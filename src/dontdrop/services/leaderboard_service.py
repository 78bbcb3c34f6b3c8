# src/dontdrop/services/leaderboard_service.py

"""Business logic for reading and mutating the global leaderboard."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from dontdrop.config import ANNOUNCE_TOP_COUNT, TOP_PLAYERS_COUNT
from dontdrop.exceptions import AnnouncementSchedulingError, InvalidScoreError
from dontdrop.schemas.announcement import AnnouncementPayload, DisplacedPlayer
from dontdrop.schemas.leaderboard import LeaderboardEntry
from dontdrop.store.base import RankingStore

from .announcements import AnnouncementScheduler
from .identity_service import IdentityResolver

logger = logging.getLogger(__name__)


class SubmitOutcome(str, Enum):
    UPDATED = "updated"
    NOT_HIGHER = "not_higher"


@dataclass
class SubmissionResult:
    """What happened to a submitted score."""

    outcome: SubmitOutcome
    stable_id: str
    display_name: str
    score: int
    previous_score: int | None = None
    announcement: AnnouncementPayload | None = None

    @property
    def updated(self) -> bool:
        return self.outcome is SubmitOutcome.UPDATED


def build_announcement(
    stable_id: str,
    previous_top: list[LeaderboardEntry],
    new_top: list[LeaderboardEntry],
) -> AnnouncementPayload | None:
    """
    Decide whether a player's new position is worth announcing.

    Returns None when the player is not in ``new_top``. Otherwise the
    payload names the player who held that rank in ``previous_top``, or
    ``displaced_player=None`` when the rank was empty or already theirs.
    """
    mine = next((e for e in new_top if e.stable_id == stable_id), None)
    if mine is None:
        return None

    previous = next((e for e in previous_top if e.rank == mine.rank), None)
    displaced = None
    if previous is not None and previous.stable_id != stable_id:
        displaced = DisplacedPlayer(
            display_name=previous.display_name, score=previous.score
        )

    return AnnouncementPayload(
        display_name=mine.display_name,
        score=mine.score,
        rank=mine.rank,
        displaced_player=displaced,
    )


class LeaderboardService:
    """The single authority over the global ranking.

    Enforces "only a player's best score counts": scores are written only
    through the store's conditional compare-and-set, never lowered, and the
    identity mapping is refreshed on every submission.
    """

    def __init__(
        self,
        store: RankingStore,
        scheduler: AnnouncementScheduler | None = None,
        identities: IdentityResolver | None = None,
        announce_top: int = ANNOUNCE_TOP_COUNT,
    ) -> None:
        self.store = store
        self.identities = identities or IdentityResolver(store)
        self.scheduler = scheduler
        self.announce_top = announce_top

    async def submit_score(
        self, stable_id: str, display_name: str, candidate_score: int
    ) -> SubmissionResult:
        """
        Submit a finished session's score.

        1. Records the identity (always, even if the score is not a best)
        2. Skips the write when the score does not beat the stored one
        3. Captures the top ranks, applies the conditional write, captures
           them again and schedules an announcement if the player entered
           the announced ranks

        Raises:
            InvalidScoreError: If the score is not a non-negative integer
            InvalidIdentityError: If the id or name is blank
            StoreUnavailableError: If any store read or write fails. The
                identity may already be recorded at that point.
        """
        if (
            isinstance(candidate_score, bool)
            or not isinstance(candidate_score, int)
            or candidate_score < 0
        ):
            raise InvalidScoreError(candidate_score)

        logger.info(
            "Processing score submission",
            extra={"stable_id": stable_id, "score": candidate_score},
        )

        await self.identities.record_identity(stable_id, display_name)

        current = await self.store.get_score(stable_id)
        if current is not None and candidate_score <= current:
            logger.info(
                "Score is not a new best",
                extra={"stable_id": stable_id, "score": candidate_score, "best": current},
            )
            return SubmissionResult(
                outcome=SubmitOutcome.NOT_HIGHER,
                stable_id=stable_id,
                display_name=display_name,
                score=candidate_score,
                previous_score=current,
            )

        previous_top = await self.get_top_k(self.announce_top)

        if not await self.store.set_score_if_greater(stable_id, candidate_score):
            # Another submission for the same player landed first.
            logger.info(
                "Conditional write not applied",
                extra={"stable_id": stable_id, "score": candidate_score},
            )
            return SubmissionResult(
                outcome=SubmitOutcome.NOT_HIGHER,
                stable_id=stable_id,
                display_name=display_name,
                score=candidate_score,
                previous_score=current,
            )

        logger.info(
            "High score updated",
            extra={"stable_id": stable_id, "score": candidate_score, "previous": current},
        )

        new_top = await self.get_top_k(self.announce_top)
        announcement = build_announcement(stable_id, previous_top, new_top)
        if announcement is not None:
            self._schedule(announcement)

        return SubmissionResult(
            outcome=SubmitOutcome.UPDATED,
            stable_id=stable_id,
            display_name=display_name,
            score=candidate_score,
            previous_score=current,
            announcement=announcement,
        )

    def _schedule(self, announcement: AnnouncementPayload) -> None:
        if self.scheduler is None:
            return
        try:
            self.scheduler.run_now(announcement)
        except AnnouncementSchedulingError as e:
            # The score is already applied; a lost announcement is acceptable.
            logger.warning(
                "Announcement dropped: %s",
                e.message,
                extra={"rank": announcement.rank, **e.details},
            )
        else:
            logger.info(
                "Announcement scheduled",
                extra={"rank": announcement.rank, "score": announcement.score},
            )

    async def get_top_k(self, k: int = TOP_PLAYERS_COUNT) -> list[LeaderboardEntry]:
        """
        Build a fresh leaderboard snapshot of at most ``k`` entries.

        Ranks follow the store order. Entries whose display name cannot be
        resolved are dropped and the ranks after them keep their numbers,
        so no rank numeral is ever shown for the wrong player.

        Raises:
            StoreUnavailableError: If the range query or name lookup fails
        """
        if k <= 0:
            return []

        top = await self.store.top_scores(k)
        if not top:
            return []

        names = await self.identities.resolve_display_names([sid for sid, _ in top])

        entries: list[LeaderboardEntry] = []
        for rank, ((sid, score), name) in enumerate(zip(top, names), start=1):
            if name is None:
                continue
            entries.append(
                LeaderboardEntry(
                    rank=rank, display_name=name, score=int(score), stable_id=sid
                )
            )
        return entries

    async def get_player_score(self, stable_id: str) -> int:
        """Return the player's best score, 0 if they have none."""
        score = await self.store.get_score(stable_id)
        return score or 0

    async def reset_leaderboard(self) -> None:
        """Administrative reset: delete all scores and identity mappings."""
        logger.warning("Clearing global leaderboard data")
        await self.store.clear_scores()
        await self.store.clear_display_names()
