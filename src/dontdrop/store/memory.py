# src/dontdrop/store/memory.py

"""In-process ranking store."""

from __future__ import annotations

import itertools
from collections.abc import Sequence

from .base import RankingStore


class MemoryRankingStore(RankingStore):
    """Dictionary-backed store for local play, replays and tests.

    None of the methods await between reading and writing, so each call is
    atomic with respect to other coroutines on the same event loop.
    """

    def __init__(self) -> None:
        # stable_id -> (score, write sequence)
        self._scores: dict[str, tuple[int, int]] = {}
        self._names: dict[str, str] = {}
        self._seq = itertools.count(1)

    async def get_score(self, stable_id: str) -> int | None:
        cur = self._scores.get(stable_id)
        return cur[0] if cur else None

    async def set_score_if_greater(self, stable_id: str, score: int) -> bool:
        cur = self._scores.get(stable_id)
        if cur is not None and score <= cur[0]:
            return False
        self._scores[stable_id] = (int(score), next(self._seq))
        return True

    async def top_scores(self, count: int) -> list[tuple[str, int]]:
        if count <= 0:
            return []
        ranked = sorted(self._scores.items(), key=lambda kv: (-kv[1][0], kv[1][1]))
        return [(sid, score) for sid, (score, _) in ranked[:count]]

    async def clear_scores(self) -> None:
        self._scores.clear()

    async def set_display_name(self, stable_id: str, display_name: str) -> None:
        self._names[stable_id] = display_name

    async def get_display_names(
        self, stable_ids: Sequence[str]
    ) -> list[str | None]:
        return [self._names.get(sid) for sid in stable_ids]

    async def clear_display_names(self) -> None:
        self._names.clear()

    async def ping(self) -> bool:
        return True
