# src/dontdrop/api/leaderboard.py

"""HTTP endpoints for score submission and leaderboard reads."""

from fastapi import APIRouter, Depends, Query, status

from dontdrop.config import MAX_LEADERBOARD_SIZE, settings
from dontdrop.schemas.leaderboard import InitialData, LeaderboardData
from dontdrop.schemas.messages import GameOver, GameOverAck
from dontdrop.services.leaderboard_service import LeaderboardService

from .deps import PlayerContext, get_current_player, get_leaderboard_service, require_admin
from .realtime import handle_game_over

router = APIRouter(tags=["Leaderboard"])


@router.post("/game-over", response_model=GameOverAck)
async def game_over(
    message: GameOver,
    player: PlayerContext = Depends(get_current_player),
    service: LeaderboardService = Depends(get_leaderboard_service),
) -> GameOverAck:
    """
    Submit the final score of a finished session.

    - **finalScore**: Non-negative integer score

    Only the player's best score is kept. On a new best, every connected
    session receives a `leaderboardUpdate`.

    Raises:
        401 Unauthorized: If the platform identity headers are missing.
        503 Service Unavailable: If the score could not be stored.
    """
    return await handle_game_over(
        service, player.stable_id, player.display_name, message.final_score
    )


@router.get("/leaderboard", response_model=LeaderboardData)
async def get_leaderboard(
    limit: int | None = Query(
        None, ge=1, le=MAX_LEADERBOARD_SIZE, description="Max entries to return"
    ),
    service: LeaderboardService = Depends(get_leaderboard_service),
) -> LeaderboardData:
    """
    Retrieve the global leaderboard, best score first.

    - **limit**: Maximum number of entries (defaults to the configured size)
    """
    entries = await service.get_top_k(limit or settings.leaderboard_size)
    return LeaderboardData(entries=entries)


@router.get("/me", response_model=InitialData)
async def read_me(
    player: PlayerContext = Depends(get_current_player),
    service: LeaderboardService = Depends(get_leaderboard_service),
) -> InitialData:
    """Return the caller's display name and best score."""
    high_score = await service.get_player_score(player.stable_id)
    return InitialData(display_name=player.display_name, high_score=high_score)


@router.delete(
    "/leaderboard",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def reset_leaderboard(
    service: LeaderboardService = Depends(get_leaderboard_service),
) -> None:
    """
    Delete every score and identity mapping.

    Requires the `X-Admin-Token` header to match `DONTDROP_ADMIN_TOKEN`.
    """
    await service.reset_leaderboard()
    return None
