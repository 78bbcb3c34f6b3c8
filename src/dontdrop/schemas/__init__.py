# src/dontdrop/schemas/__init__.py

"""Pydantic schemas for the message contract."""

from .announcement import AnnouncementPayload, DisplacedPlayer, WeeklyDigest
from .common import CamelModel
from .leaderboard import (
    InitialData,
    LeaderboardData,
    LeaderboardEntry,
    LeaderboardUpdate,
)
from .messages import (
    ClientMessage,
    ErrorMessage,
    GameOver,
    GameOverAck,
    GetLeaderboard,
    ServerMessage,
)

__all__ = [
    # Common
    "CamelModel",
    # Leaderboard
    "InitialData",
    "LeaderboardData",
    "LeaderboardEntry",
    "LeaderboardUpdate",
    # Messages
    "ClientMessage",
    "ErrorMessage",
    "GameOver",
    "GameOverAck",
    "GetLeaderboard",
    "ServerMessage",
    # Announcements
    "AnnouncementPayload",
    "DisplacedPlayer",
    "WeeklyDigest",
]
