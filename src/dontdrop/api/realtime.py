# src/dontdrop/api/realtime.py

"""Connected sessions and the messages pushed to them."""

from __future__ import annotations

import logging
import uuid

from fastapi import WebSocket

from dontdrop.config import settings
from dontdrop.exceptions import StoreUnavailableError
from dontdrop.schemas.announcement import AnnouncementPayload
from dontdrop.schemas.leaderboard import LeaderboardUpdate
from dontdrop.schemas.messages import GameOverAck, ServerMessage
from dontdrop.services.announcements import log_announcement
from dontdrop.services.leaderboard_service import LeaderboardService

logger = logging.getLogger(__name__)


def envelope(type_: str, payload) -> ServerMessage:
    """Wrap a schema in the ``{type, data}`` WebSocket envelope."""
    return ServerMessage(type=type_, data=payload.model_dump(mode="json", by_alias=True))


class ConnectionHub:
    """Tracks open WebSocket sessions for out-of-band broadcasts."""

    def __init__(self) -> None:
        self._conns: dict[str, WebSocket] = {}

    def __len__(self) -> int:
        return len(self._conns)

    async def connect(self, ws: WebSocket) -> str:
        await ws.accept()
        conn_id = uuid.uuid4().hex
        self._conns[conn_id] = ws
        logger.info("Session connected", extra={"conn_id": conn_id, "sessions": len(self)})
        return conn_id

    def disconnect(self, conn_id: str) -> None:
        if self._conns.pop(conn_id, None) is not None:
            logger.info(
                "Session disconnected", extra={"conn_id": conn_id, "sessions": len(self)}
            )

    async def send(self, ws: WebSocket, message: ServerMessage) -> None:
        await ws.send_json(message.model_dump(mode="json", by_alias=True))

    async def broadcast(self, message: ServerMessage) -> int:
        """Send to every session; drops the ones that fail. Returns deliveries."""
        data = message.model_dump(mode="json", by_alias=True)
        dead: list[str] = []
        delivered = 0
        for conn_id, ws in list(self._conns.items()):
            try:
                await ws.send_json(data)
                delivered += 1
            except Exception as e:
                logger.warning(
                    "Broadcast failed, dropping session",
                    extra={"conn_id": conn_id, "error": str(e)},
                )
                dead.append(conn_id)
        for conn_id in dead:
            self.disconnect(conn_id)
        return delivered


hub = ConnectionHub()


async def publish_announcement(payload: AnnouncementPayload) -> None:
    """Announcement publisher used by the app: log it and tell every session."""
    await log_announcement(payload)
    await hub.broadcast(envelope("announcement", payload))


async def broadcast_leaderboard(service: LeaderboardService) -> None:
    entries = await service.get_top_k(settings.leaderboard_size)
    delivered = await hub.broadcast(
        envelope("leaderboardUpdate", LeaderboardUpdate(entries=entries))
    )
    logger.debug("Leaderboard update broadcast", extra={"delivered": delivered})


async def handle_game_over(
    service: LeaderboardService,
    stable_id: str,
    display_name: str,
    final_score: int,
) -> GameOverAck:
    """
    Submit a session's final score and push the new leaderboard on a new best.

    A failed broadcast does not fail the submission: the score is already
    stored and the next read will show it.

    Raises:
        StoreUnavailableError: If the submission itself could not be stored
    """
    result = await service.submit_score(stable_id, display_name, final_score)

    if result.updated:
        try:
            await broadcast_leaderboard(service)
        except StoreUnavailableError as e:
            logger.warning(
                "Skipped leaderboard broadcast after update",
                extra={"stable_id": stable_id, "error": e.message},
            )

    return GameOverAck(
        success=True,
        display_name=display_name,
        high_score_updated=result.updated,
    )
