# src/dontdrop/schemas/announcement.py

"""Payloads handed to the announcement scheduler."""

from datetime import datetime

from pydantic import Field

from .common import CamelModel
from .leaderboard import LeaderboardEntry


class DisplacedPlayer(CamelModel):
    """Previous occupant of the rank a new entrant just claimed."""

    display_name: str
    score: int


class AnnouncementPayload(CamelModel):
    """A player entered one of the announced top ranks."""

    display_name: str
    score: int = Field(..., ge=0)
    rank: int = Field(..., ge=1)
    displaced_player: DisplacedPlayer | None = None


class WeeklyDigest(CamelModel):
    """Recurring summary of the global leaderboard."""

    generated_at: datetime
    entries: list[LeaderboardEntry] = Field(default_factory=list)
