# src/dontdrop/services/identity_service.py

"""Maps volatile display names onto stable ranking ids."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from dontdrop.exceptions import InvalidIdentityError
from dontdrop.store.base import RankingStore

logger = logging.getLogger(__name__)


class IdentityResolver:
    """Keeps the stable id -> display name mapping current.

    Scores are always keyed by stable id, so a rename never orphans a
    player's history; the mapping is consulted only to render names.
    """

    def __init__(self, store: RankingStore) -> None:
        self._store = store

    async def record_identity(self, stable_id: str, display_name: str) -> None:
        """Upsert the latest display name for ``stable_id``.

        Idempotent. Called on every score submission before the ranking
        write, so the name is never older than the score it labels.

        Raises:
            InvalidIdentityError: If either field is blank
            StoreUnavailableError: If the store write fails
        """
        if not stable_id or not stable_id.strip():
            raise InvalidIdentityError("stable_id")
        if not display_name or not display_name.strip():
            raise InvalidIdentityError("display_name")

        await self._store.set_display_name(stable_id, display_name)
        logger.debug(
            "Recorded identity",
            extra={"stable_id": stable_id, "display_name": display_name},
        )

    async def resolve_display_names(
        self, stable_ids: Sequence[str]
    ) -> list[str | None]:
        """
        Resolve many ids with a single store round trip.

        Returns one entry per id, in order. ``None`` marks an id whose name
        could not be resolved; callers drop that entry rather than failing
        the whole read.
        """
        if not stable_ids:
            return []

        names = await self._store.get_display_names(list(stable_ids))

        for sid, name in zip(stable_ids, names):
            if name is None:
                logger.warning(
                    "Identity resolution failed", extra={"stable_id": sid}
                )
        return names
