# src/dontdrop/api/deps.py

"""FastAPI dependencies: the service singleton and the caller's identity."""

import logging
import secrets
from dataclasses import dataclass

from fastapi import Header

from dontdrop.config import Settings, settings
from dontdrop.db.session import AsyncSessionLocal, engine
from dontdrop.exceptions import MissingPlayerIdentityError, PermissionDeniedError
from dontdrop.services.announcements import AsyncioAnnouncementScheduler
from dontdrop.services.leaderboard_service import LeaderboardService
from dontdrop.store.base import RankingStore
from dontdrop.store.memory import MemoryRankingStore
from dontdrop.store.sql import SqlRankingStore

from .realtime import publish_announcement

logger = logging.getLogger(__name__)

PLAYER_ID_HEADER = "X-Player-Id"
PLAYER_NAME_HEADER = "X-Player-Name"

_service: LeaderboardService | None = None


@dataclass(frozen=True)
class PlayerContext:
    """Identity supplied by the hosting platform for the current request."""

    stable_id: str
    display_name: str


def build_store(cfg: Settings) -> RankingStore:
    if cfg.store_backend == "memory":
        logger.warning("Using in-memory ranking store; scores will not persist")
        return MemoryRankingStore()
    if cfg.store_backend == "sql":
        return SqlRankingStore(engine, AsyncSessionLocal)
    raise ValueError(f"Unknown ranking store backend: {cfg.store_backend!r}")


def build_service(cfg: Settings) -> LeaderboardService:
    return LeaderboardService(
        store=build_store(cfg),
        scheduler=AsyncioAnnouncementScheduler(publisher=publish_announcement),
        announce_top=cfg.announce_top,
    )


def get_leaderboard_service() -> LeaderboardService:
    """FastAPI dependency that provides the process-wide leaderboard service."""
    global _service
    if _service is None:
        _service = build_service(settings)
    return _service


def resolve_player(stable_id: str | None, display_name: str | None) -> PlayerContext:
    if not stable_id or not stable_id.strip():
        raise MissingPlayerIdentityError(PLAYER_ID_HEADER)
    if not display_name or not display_name.strip():
        raise MissingPlayerIdentityError(PLAYER_NAME_HEADER)
    return PlayerContext(stable_id=stable_id.strip(), display_name=display_name.strip())


async def get_current_player(
    x_player_id: str | None = Header(None, alias=PLAYER_ID_HEADER),
    x_player_name: str | None = Header(None, alias=PLAYER_NAME_HEADER),
) -> PlayerContext:
    """FastAPI dependency that reads the platform identity headers."""
    return resolve_player(x_player_id, x_player_name)


async def require_admin(
    x_admin_token: str | None = Header(None, alias="X-Admin-Token"),
) -> None:
    """Admin actions are disabled unless DONTDROP_ADMIN_TOKEN is set."""
    expected = settings.admin_token
    if not expected or not x_admin_token:
        raise PermissionDeniedError("reset_leaderboard")
    if not secrets.compare_digest(expected, x_admin_token):
        raise PermissionDeniedError("reset_leaderboard")
