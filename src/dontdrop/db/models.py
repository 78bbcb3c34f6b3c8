# src/dontdrop/db/models.py

"""Database models for the Don't Drop leaderboard."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, String
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ===============================================
# Ranking: one score per stable id
# ===============================================


class ScoreEntry(Base):
    """A player's best score on the global leaderboard.

    The score only ever increases; writes go through the conditional
    upsert in ``SqlRankingStore.set_score_if_greater``.

    Attributes:
        stable_id: Platform account id, never the display name
        score: Highest score the player has achieved
        achieved_at: When the current score was written. Ties on score are
            ordered by this column, so the first player to reach a score
            keeps the higher rank.
    """

    __tablename__ = "score_entries"

    stable_id: Mapped[str] = mapped_column(String, primary_key=True)
    score: Mapped[int] = mapped_column(nullable=False)
    achieved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_score_entries_rank_order", "score", "achieved_at"),
    )


# ===============================================
# Identity: stable id -> latest display name
# ===============================================


class PlayerIdentity(Base):
    """Most recently observed display name for a stable id."""

    __tablename__ = "player_identities"

    stable_id: Mapped[str] = mapped_column(String, primary_key=True)
    display_name: Mapped[str] = mapped_column(String, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
