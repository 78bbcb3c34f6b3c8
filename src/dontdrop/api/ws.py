# src/dontdrop/api/ws.py

"""WebSocket endpoint carrying the session message contract."""

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError

from dontdrop.config import settings
from dontdrop.exceptions import DontDropError, StoreUnavailableError
from dontdrop.schemas.leaderboard import InitialData, LeaderboardData
from dontdrop.schemas.messages import (
    ClientMessage,
    ErrorMessage,
    GameOver,
    GetLeaderboard,
)
from dontdrop.services.leaderboard_service import LeaderboardService

from .deps import (
    PLAYER_ID_HEADER,
    PLAYER_NAME_HEADER,
    PlayerContext,
    get_leaderboard_service,
    resolve_player,
)
from .realtime import envelope, handle_game_over, hub

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Realtime"])

SUBMIT_FAILED_MESSAGE = (
    "Failed to update score. Your score will be saved when connection is restored."
)
READ_FAILED_MESSAGE = "Game service currently unavailable. Please try again later."


def _player_from_socket(ws: WebSocket) -> PlayerContext:
    # Browsers cannot set headers on a WebSocket handshake; accept query params too.
    return resolve_player(
        ws.headers.get(PLAYER_ID_HEADER) or ws.query_params.get("playerId"),
        ws.headers.get(PLAYER_NAME_HEADER) or ws.query_params.get("playerName"),
    )


async def _send_error(ws: WebSocket, message: str) -> None:
    await hub.send(ws, envelope("error", ErrorMessage(message=message)))


async def _dispatch(
    ws: WebSocket, message: ClientMessage, service: LeaderboardService
) -> None:
    if message.type == "getLeaderboard":
        request = GetLeaderboard.model_validate(message.data)
        entries = await service.get_top_k(request.limit or settings.leaderboard_size)
        await hub.send(ws, envelope("leaderboardData", LeaderboardData(entries=entries)))
        return

    player = _player_from_socket(ws)

    if message.type == "webViewReady":
        high_score = await service.get_player_score(player.stable_id)
        initial = InitialData(display_name=player.display_name, high_score=high_score)
        await hub.send(ws, envelope("initialData", initial))
        return

    # gameOver
    game_over = GameOver.model_validate(message.data)
    try:
        ack = await handle_game_over(
            service, player.stable_id, player.display_name, game_over.final_score
        )
    except StoreUnavailableError:
        await _send_error(ws, SUBMIT_FAILED_MESSAGE)
        return
    await hub.send(ws, envelope("gameOverAck", ack))


@router.websocket("/ws")
async def session_socket(
    websocket: WebSocket,
    service: LeaderboardService = Depends(get_leaderboard_service),
) -> None:
    """
    Bidirectional session channel.

    Client messages: `webViewReady`, `gameOver`, `getLeaderboard`.
    Server messages: `initialData`, `gameOverAck`, `leaderboardData`,
    `leaderboardUpdate`, `announcement`, `error`.
    """
    conn_id = await hub.connect(websocket)
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = ClientMessage.model_validate_json(raw)
                await _dispatch(websocket, message, service)
            except PydanticValidationError as e:
                logger.warning(
                    "Malformed session message",
                    extra={"conn_id": conn_id, "error": str(e)},
                )
                await _send_error(websocket, "Invalid message")
            except StoreUnavailableError as e:
                logger.warning(
                    "Store unavailable for session message",
                    extra={"conn_id": conn_id, "operation": e.operation},
                )
                await _send_error(websocket, READ_FAILED_MESSAGE)
            except DontDropError as e:
                await _send_error(websocket, e.message)
    except WebSocketDisconnect:
        pass
    finally:
        hub.disconnect(conn_id)
