# src/dontdrop/store/base.py

"""The ranking store interface consumed by the leaderboard services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence


class RankingStore(ABC):
    """An ordered stable id -> score collection plus an id -> name namespace.

    Implementations must make ``set_score_if_greater`` a single atomic
    compare-and-set per stable id. Any failure to reach the backend is
    raised as ``StoreUnavailableError``.
    """

    # ----- scores -----

    @abstractmethod
    async def get_score(self, stable_id: str) -> int | None:
        """Return the stored score, or None when the player has none."""

    @abstractmethod
    async def set_score_if_greater(self, stable_id: str, score: int) -> bool:
        """Store ``score`` only if it beats the current one. Returns True on write."""

    @abstractmethod
    async def top_scores(self, count: int) -> list[tuple[str, int]]:
        """Return up to ``count`` (stable_id, score) pairs, best first.

        Equal scores keep the store's stable order: whoever reached the
        score first sorts first.
        """

    @abstractmethod
    async def clear_scores(self) -> None:
        """Delete every score entry."""

    # ----- identities -----

    @abstractmethod
    async def set_display_name(self, stable_id: str, display_name: str) -> None:
        """Unconditionally upsert the display name for ``stable_id``."""

    @abstractmethod
    async def get_display_names(
        self, stable_ids: Sequence[str]
    ) -> list[str | None]:
        """Multi-key read, one result per requested id in the same order."""

    @abstractmethod
    async def clear_display_names(self) -> None:
        """Delete every identity mapping."""

    # ----- health -----

    @abstractmethod
    async def ping(self) -> bool:
        """Check that the backend answers."""

    async def close(self) -> None:
        """Release backend resources. Optional."""
        return None
