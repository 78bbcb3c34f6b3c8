# tests/test_leaderboard_service.py

"""
Tests for the leaderboard service.

Covers:
- Best-score-only submissions and idempotent resubmission
- Identity refresh on every submission
- Snapshot ranking, including unresolved names
- Top-rank announcements and their failure handling
- Concurrent submissions against both store backends
"""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest
from dontdrop.exceptions import (
    AnnouncementSchedulingError,
    InvalidScoreError,
    StoreUnavailableError,
)
from dontdrop.schemas.announcement import AnnouncementPayload
from dontdrop.schemas.leaderboard import LeaderboardEntry
from dontdrop.services.announcements import (
    AnnouncementScheduler,
    AsyncioAnnouncementScheduler,
)
from dontdrop.services.leaderboard_service import (
    LeaderboardService,
    SubmitOutcome,
    build_announcement,
)
from dontdrop.store.memory import MemoryRankingStore

# =============================================================================
# Helper Functions
# =============================================================================


async def seed(service: LeaderboardService, rows):
    """Submit (stable_id, name, score) rows one after another."""
    for stable_id, name, score in rows:
        await service.submit_score(stable_id, name, score)


TOP_FIVE = [
    ("a", "A", 100),
    ("b", "B", 90),
    ("c", "C", 80),
    ("d", "D", 70),
    ("e", "E", 60),
]


class RefusingScheduler(AnnouncementScheduler):
    def __init__(self) -> None:
        self.attempts = 0

    def run_now(self, payload: AnnouncementPayload) -> None:
        self.attempts += 1
        raise AnnouncementSchedulingError("queue full")


# =============================================================================
# Submissions
# =============================================================================


@pytest.mark.asyncio
async def test_first_submission_is_an_update(service: LeaderboardService):
    result = await service.submit_score("t2_abc", "Alice", 50)

    assert result.outcome is SubmitOutcome.UPDATED
    assert result.previous_score is None
    assert await service.get_player_score("t2_abc") == 50


@pytest.mark.asyncio
async def test_stored_score_is_the_maximum_submitted(service: LeaderboardService):
    outcomes = []
    for score in [30, 10, 50, 20, 50]:
        result = await service.submit_score("t2_abc", "Alice", score)
        outcomes.append(result.outcome)

    assert await service.get_player_score("t2_abc") == 50
    assert outcomes == [
        SubmitOutcome.UPDATED,
        SubmitOutcome.NOT_HIGHER,
        SubmitOutcome.UPDATED,
        SubmitOutcome.NOT_HIGHER,
        SubmitOutcome.NOT_HIGHER,
    ]


@pytest.mark.asyncio
async def test_duplicate_submission_reports_not_higher(service: LeaderboardService):
    first = await service.submit_score("t2_abc", "Alice", 75)
    second = await service.submit_score("t2_abc", "Alice", 75)

    assert first.updated is True
    assert second.updated is False
    assert second.previous_score == 75


@pytest.mark.asyncio
async def test_zero_score_counts_as_first_entry(service: LeaderboardService):
    result = await service.submit_score("t2_abc", "Alice", 0)

    assert result.updated
    entries = await service.get_top_k()
    assert [(e.display_name, e.score) for e in entries] == [("Alice", 0)]


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_score", [-1, 1.5, True, "10", None])
async def test_invalid_scores_are_rejected(service: LeaderboardService, bad_score):
    with pytest.raises(InvalidScoreError):
        await service.submit_score("t2_abc", "Alice", bad_score)

    assert await service.get_player_score("t2_abc") == 0


@pytest.mark.asyncio
async def test_rename_relabels_existing_score(service: LeaderboardService):
    """A lower score under a new name still updates the name."""
    await service.submit_score("t2_abc", "Alice", 40)

    result = await service.submit_score("t2_abc", "Bob", 10)
    entries = await service.get_top_k()

    assert result.outcome is SubmitOutcome.NOT_HIGHER
    assert [(e.display_name, e.score) for e in entries] == [("Bob", 40)]


# =============================================================================
# Snapshots
# =============================================================================


@pytest.mark.asyncio
async def test_top_k_is_ranked_best_first(service: LeaderboardService):
    await seed(service, [("x", "X", 10), ("y", "Y", 30), ("z", "Z", 20)])

    entries = await service.get_top_k(2)

    assert [(e.rank, e.display_name, e.score) for e in entries] == [
        (1, "Y", 30),
        (2, "Z", 20),
    ]


@pytest.mark.asyncio
async def test_unresolved_name_leaves_a_rank_gap(service: LeaderboardService):
    await seed(service, [("a", "A", 100), ("c", "C", 80)])
    # A score without any identity mapping.
    await service.store.set_score_if_greater("ghost", 90)

    entries = await service.get_top_k(3)

    assert [(e.rank, e.display_name) for e in entries] == [(1, "A"), (3, "C")]


@pytest.mark.asyncio
async def test_top_k_of_zero_or_empty(service: LeaderboardService):
    assert await service.get_top_k(5) == []
    await service.submit_score("a", "A", 1)
    assert await service.get_top_k(0) == []


@pytest.mark.asyncio
async def test_stable_id_is_not_serialized(service: LeaderboardService):
    await service.submit_score("t2_secret", "Alice", 10)

    entry = (await service.get_top_k())[0]

    assert entry.stable_id == "t2_secret"
    assert entry.model_dump(by_alias=True) == {
        "rank": 1,
        "displayName": "Alice",
        "score": 10,
    }


@pytest.mark.asyncio
async def test_reset_clears_scores_and_names(service: LeaderboardService):
    await seed(service, TOP_FIVE)

    await service.reset_leaderboard()

    assert await service.get_top_k() == []
    assert await service.store.get_display_names(["a"]) == [None]


# =============================================================================
# Announcements
# =============================================================================


@pytest.mark.asyncio
async def test_entry_into_top_five_displaces_previous_holder(
    service: LeaderboardService, scheduler, publisher
):
    await seed(service, TOP_FIVE)
    await scheduler.drain()
    publisher.published.clear()

    result = await service.submit_score("f", "F", 85)
    await scheduler.drain()

    assert result.announcement is not None
    assert result.announcement.rank == 3
    assert result.announcement.displaced_player.display_name == "C"
    assert result.announcement.displaced_player.score == 80
    assert publisher.published == [result.announcement]


@pytest.mark.asyncio
async def test_first_entry_into_empty_board_is_announced(
    service: LeaderboardService, scheduler, publisher
):
    await service.submit_score("a", "A", 10)
    await scheduler.drain()

    assert len(publisher.published) == 1
    payload = publisher.published[0]
    assert (payload.rank, payload.display_name, payload.score) == (1, "A", 10)
    assert payload.displaced_player is None


@pytest.mark.asyncio
async def test_improving_own_rank_is_announced_without_displacement(
    service: LeaderboardService, scheduler, publisher
):
    await seed(service, TOP_FIVE)
    await scheduler.drain()
    publisher.published.clear()

    await service.submit_score("a", "A", 150)
    await scheduler.drain()

    assert len(publisher.published) == 1
    assert publisher.published[0].rank == 1
    assert publisher.published[0].displaced_player is None


@pytest.mark.asyncio
async def test_no_announcement_below_top_five(
    service: LeaderboardService, scheduler, publisher
):
    await seed(service, TOP_FIVE)
    await scheduler.drain()
    publisher.published.clear()

    result = await service.submit_score("f", "F", 50)
    await scheduler.drain()

    assert result.updated
    assert result.announcement is None
    assert publisher.published == []


@pytest.mark.asyncio
async def test_no_announcement_when_score_not_higher(
    service: LeaderboardService, scheduler, publisher
):
    await service.submit_score("a", "A", 10)
    await scheduler.drain()
    publisher.published.clear()

    await service.submit_score("a", "A", 5)
    await scheduler.drain()

    assert publisher.published == []


@pytest.mark.asyncio
async def test_refused_announcement_does_not_fail_submission(
    memory_store: MemoryRankingStore, caplog
):
    scheduler = RefusingScheduler()
    service = LeaderboardService(memory_store, scheduler=scheduler)

    with caplog.at_level(logging.WARNING):
        result = await service.submit_score("a", "A", 10)

    assert result.updated
    assert scheduler.attempts == 1
    assert await service.get_player_score("a") == 10
    assert "Announcement dropped" in caplog.text


@pytest.mark.asyncio
async def test_failing_publisher_does_not_reach_the_service(
    memory_store: MemoryRankingStore, caplog
):
    scheduler = AsyncioAnnouncementScheduler(
        publisher=AsyncMock(side_effect=RuntimeError("webhook down"))
    )
    service = LeaderboardService(memory_store, scheduler=scheduler)

    result = await service.submit_score("a", "A", 10)
    await scheduler.drain()

    assert result.updated
    assert "Announcement job failed" in caplog.text


@pytest.mark.asyncio
async def test_configurable_announced_ranks(memory_store: MemoryRankingStore):
    service = LeaderboardService(memory_store, announce_top=1)
    await service.submit_score("a", "A", 100)

    result = await service.submit_score("b", "B", 90)

    assert result.announcement is None


def test_build_announcement_matches_by_rank_number():
    previous = [
        LeaderboardEntry(rank=1, display_name="A", score=100, stable_id="a"),
        LeaderboardEntry(rank=3, display_name="C", score=80, stable_id="c"),
    ]
    new = [
        LeaderboardEntry(rank=1, display_name="A", score=100, stable_id="a"),
        LeaderboardEntry(rank=2, display_name="F", score=95, stable_id="f"),
        LeaderboardEntry(rank=4, display_name="C", score=80, stable_id="c"),
    ]

    payload = build_announcement("f", previous, new)

    # Rank 2 was an unresolved entry before, so nobody is named as displaced.
    assert payload.rank == 2
    assert payload.displaced_player is None


# =============================================================================
# Store Failures
# =============================================================================


@pytest.mark.asyncio
async def test_failed_write_surfaces_after_identity_is_recorded(
    memory_store: MemoryRankingStore,
):
    memory_store.set_score_if_greater = AsyncMock(
        side_effect=StoreUnavailableError("set_score_if_greater", "connection reset")
    )
    service = LeaderboardService(memory_store)

    with pytest.raises(StoreUnavailableError) as exc_info:
        await service.submit_score("a", "A", 10)

    assert exc_info.value.operation == "set_score_if_greater"
    assert await memory_store.get_display_names(["a"]) == ["A"]
    assert await memory_store.get_score("a") is None


@pytest.mark.asyncio
async def test_failed_read_surfaces_from_top_k(memory_store: MemoryRankingStore):
    memory_store.top_scores = AsyncMock(
        side_effect=StoreUnavailableError("top_scores", "timeout")
    )
    service = LeaderboardService(memory_store)

    with pytest.raises(StoreUnavailableError):
        await service.get_top_k()


@pytest.mark.asyncio
async def test_lost_race_reports_not_higher(memory_store: MemoryRankingStore):
    """The read said higher but the conditional write was refused."""
    memory_store.set_score_if_greater = AsyncMock(return_value=False)
    service = LeaderboardService(memory_store)

    result = await service.submit_score("a", "A", 10)

    assert result.outcome is SubmitOutcome.NOT_HIGHER
    assert result.announcement is None


# =============================================================================
# Concurrency
# =============================================================================


@pytest.mark.asyncio
async def test_concurrent_players_rank_by_score(service: LeaderboardService):
    """Submission order does not affect the resulting ranking."""
    await asyncio.gather(
        service.submit_score("low", "Low", 50),
        service.submit_score("high", "High", 200),
    )

    entries = await service.get_top_k(2)

    assert [(e.rank, e.score) for e in entries] == [(1, 200), (2, 50)]


@pytest.mark.asyncio
async def test_concurrent_duplicates_update_once(service: LeaderboardService):
    """Retried submissions of the same score apply exactly once."""
    results = await asyncio.gather(
        *(service.submit_score("t2_abc", "Alice", 100) for _ in range(5))
    )

    assert sum(r.updated for r in results) == 1
    assert await service.get_player_score("t2_abc") == 100


@pytest.mark.asyncio
async def test_concurrent_mixed_scores_keep_the_best(service: LeaderboardService):
    scores = [40, 120, 80, 120, 10]

    await asyncio.gather(
        *(service.submit_score("t2_abc", "Alice", s) for s in scores)
    )

    assert await service.get_player_score("t2_abc") == 120
