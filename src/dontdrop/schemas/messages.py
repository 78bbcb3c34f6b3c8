# src/dontdrop/schemas/messages.py

"""Request/response messages exchanged with a play session."""

from typing import Any, Literal

from pydantic import Field

from .common import CamelModel

# ===============================================
# Session -> server
# ===============================================


class GameOver(CamelModel):
    """Final score of a finished session."""

    final_score: int = Field(..., ge=0, description="Final integer score")


class GetLeaderboard(CamelModel):
    """Request for the current leaderboard."""

    limit: int | None = Field(None, ge=1, le=100)


ClientMessageType = Literal["webViewReady", "gameOver", "getLeaderboard"]


class ClientMessage(CamelModel):
    """Envelope for messages arriving over the WebSocket."""

    type: ClientMessageType
    data: dict[str, Any] = Field(default_factory=dict)


# ===============================================
# Server -> session
# ===============================================


class GameOverAck(CamelModel):
    """Acknowledges a GameOver.

    ``success`` is True whenever the submission was processed, including
    when the score did not beat the player's best. A LeaderboardUpdate
    broadcast follows only when ``high_score_updated`` is True.
    """

    success: bool
    display_name: str
    high_score_updated: bool = False


class ErrorMessage(CamelModel):
    message: str


ServerMessageType = Literal[
    "initialData",
    "gameOverAck",
    "leaderboardData",
    "leaderboardUpdate",
    "announcement",
    "error",
]


class ServerMessage(CamelModel):
    """Envelope for messages sent over the WebSocket."""

    type: ServerMessageType
    data: dict[str, Any] = Field(default_factory=dict)
