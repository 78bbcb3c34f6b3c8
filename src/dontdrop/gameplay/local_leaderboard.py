# src/dontdrop/gameplay/local_leaderboard.py

"""Session-side leaderboard cache with optimistic local results.

The server snapshot is never edited in place. A session's own unconfirmed
result is kept beside it with a status tag and merged only when rendering,
so a rejected or failed write cannot corrupt what the server reported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from dontdrop.config import TOP_PLAYERS_COUNT
from dontdrop.schemas.leaderboard import LeaderboardEntry


class EntryStatus(str, Enum):
    CONFIRMED = "confirmed"  # came from the server
    PENDING = "pending"  # submitted, waiting for the server
    UNSYNCED = "unsynced"  # the write failed; kept for display only


@dataclass
class CachedEntry:
    stable_id: str
    display_name: str
    score: int
    status: EntryStatus
    rank: int | None = None


@dataclass
class LocalLeaderboard:
    capacity: int = TOP_PLAYERS_COUNT
    confirmed: list[LeaderboardEntry] = field(default_factory=list)
    local: CachedEntry | None = None

    def apply_snapshot(self, entries: list[LeaderboardEntry]) -> None:
        """Replace the confirmed view with a fresh server snapshot."""
        self.confirmed = list(entries)[: self.capacity]
        if self.local is None or self.local.status is not EntryStatus.PENDING:
            return
        best = self._confirmed_score(self.local.stable_id)
        if best is not None and best >= self.local.score:
            self.local = None

    def record_local_score(
        self, stable_id: str, display_name: str, score: int
    ) -> CachedEntry | None:
        """Track a just-finished session's score until the server answers.

        Rows are matched on the player's stable id, so a rename replaces the
        player's own confirmed row and namesakes stay separate.

        Returns the pending entry, or None when the score would not change
        the player's standing. A lower score never touches an existing local
        entry, pending or unsynced.
        """
        best = self._confirmed_score(stable_id)
        if best is not None and score <= best:
            return None
        if (
            self.local is not None
            and self.local.stable_id == stable_id
            and score <= self.local.score
        ):
            return None
        self.local = CachedEntry(
            stable_id=stable_id,
            display_name=display_name,
            score=score,
            status=EntryStatus.PENDING,
        )
        return self.local

    def acknowledge(self, score: int, high_score_updated: bool) -> None:
        """The server processed the submission of ``score``.

        An update is followed by a broadcast snapshot, which is what
        confirms the entry; a non-update means the pending entry was stale.
        Only a pending entry for that same score is affected.
        """
        if not self._is_pending(score):
            return
        if not high_score_updated:
            self.local = None

    def mark_unsynced(self, score: int) -> None:
        """The write of ``score`` failed; keep showing it, flagged as unsynced."""
        if self._is_pending(score):
            self.local.status = EntryStatus.UNSYNCED

    @property
    def has_unsynced(self) -> bool:
        return self.local is not None and self.local.status is EntryStatus.UNSYNCED

    def view(self) -> list[CachedEntry]:
        """Merged rows for display, best first.

        Confirmed rows keep their server rank. The local row gets no rank
        number; it is placed by score.
        """
        rows = [
            CachedEntry(
                stable_id=e.stable_id,
                display_name=e.display_name,
                score=e.score,
                status=EntryStatus.CONFIRMED,
                rank=e.rank,
            )
            for e in self.confirmed
        ]
        if self.local is None:
            return rows

        rows = [r for r in rows if r.stable_id != self.local.stable_id]
        position = next(
            (i for i, r in enumerate(rows) if r.score < self.local.score), len(rows)
        )
        rows.insert(position, self.local)
        return rows[: self.capacity]

    def _is_pending(self, score: int) -> bool:
        return (
            self.local is not None
            and self.local.status is EntryStatus.PENDING
            and self.local.score == score
        )

    def _confirmed_score(self, stable_id: str) -> int | None:
        for entry in self.confirmed:
            if entry.stable_id == stable_id:
                return entry.score
        return None
