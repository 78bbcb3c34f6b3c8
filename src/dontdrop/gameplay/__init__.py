# src/dontdrop/gameplay/__init__.py

"""Session-side rules: anti-cheat filtering, scoring and the local leaderboard cache."""

from .anticheat import HitDecision, HitLocation, RejectReason, ValidatorState
from .local_leaderboard import CachedEntry, EntryStatus, LocalLeaderboard
from .scoring import ScoreSession, replay

__all__ = [
    "HitDecision",
    "HitLocation",
    "RejectReason",
    "ValidatorState",
    "CachedEntry",
    "EntryStatus",
    "LocalLeaderboard",
    "ScoreSession",
    "replay",
]
