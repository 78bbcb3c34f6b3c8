# src/dontdrop/schemas/leaderboard.py

"""Leaderboard schemas."""

from pydantic import Field

from .common import CamelModel


class LeaderboardEntry(CamelModel):
    """Single row of a leaderboard snapshot.

    Attributes:
        rank: Position by descending score (1-indexed). Ranks of entries
            whose display name could not be resolved are skipped, not reused.
        display_name: The player's most recent display name
        score: The player's best score
        stable_id: Internal ranking key, never serialized
    """

    rank: int = Field(..., ge=1, description="Position in leaderboard (1-indexed)")
    display_name: str
    score: int = Field(..., ge=0)
    stable_id: str = Field(default="", exclude=True, repr=False)


class LeaderboardData(CamelModel):
    """Response to a leaderboard request."""

    entries: list[LeaderboardEntry] = Field(default_factory=list)


class LeaderboardUpdate(CamelModel):
    """Pushed to every connected session after a high score lands."""

    entries: list[LeaderboardEntry] = Field(default_factory=list)


class InitialData(CamelModel):
    """What a session needs when the game view loads."""

    display_name: str
    high_score: int = Field(0, ge=0)
