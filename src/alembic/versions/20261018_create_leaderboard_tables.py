"""Create score_entries and player_identities tables

Revision ID: 20261018_leaderboard
Revises:
Create Date: 2026-10-18

This migration creates the global leaderboard (one best score per stable
player id) and the stable id -> display name mapping used to render it.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261018_leaderboard"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the ranking and identity tables."""
    op.create_table(
        "score_entries",
        sa.Column("stable_id", sa.String(), primary_key=True),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("achieved_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_score_entries_rank_order", "score_entries", ["score", "achieved_at"]
    )

    op.create_table(
        "player_identities",
        sa.Column("stable_id", sa.String(), primary_key=True),
        sa.Column("display_name", sa.String(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    """Drop the ranking and identity tables."""
    op.drop_table("player_identities")
    op.drop_index("ix_score_entries_rank_order", "score_entries")
    op.drop_table("score_entries")
