# src/dontdrop/config.py

"""Runtime settings, read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass

# Number of players shown on the global leaderboard.
TOP_PLAYERS_COUNT = 10

# Ranks that trigger a one-time announcement when newly claimed.
ANNOUNCE_TOP_COUNT = 5

# Upper bound for a single leaderboard read.
MAX_LEADERBOARD_SIZE = 100


@dataclass
class Settings:
    # Persistence
    database_url: str = "sqlite+aiosqlite:///./dontdrop.db"
    db_echo: bool = False
    db_pool_size: int = 20
    db_max_overflow: int = 10
    db_pool_recycle: int = 3600
    store_backend: str = "sql"  # sql | memory
    create_tables: bool = True

    # Leaderboard
    leaderboard_size: int = TOP_PLAYERS_COUNT
    announce_top: int = ANNOUNCE_TOP_COUNT

    # Jobs
    weekly_digest_enabled: bool = False

    # Admin
    admin_token: str | None = None

    log_level: str = "INFO"

    @staticmethod
    def _parse_bool(v: str | None, default: bool) -> bool:
        if v is None:
            return default
        return v.strip().lower() in ("1", "true", "yes", "on")

    @classmethod
    def from_env(cls) -> "Settings":
        cfg = cls()
        cfg.database_url = os.environ.get("DATABASE_URL", cfg.database_url)
        cfg.db_echo = cls._parse_bool(os.environ.get("DB_ECHO"), cfg.db_echo)
        cfg.db_pool_size = int(os.environ.get("DB_POOL_SIZE", cfg.db_pool_size))
        cfg.db_max_overflow = int(
            os.environ.get("DB_MAX_OVERFLOW", cfg.db_max_overflow)
        )
        cfg.db_pool_recycle = int(
            os.environ.get("DB_POOL_RECYCLE", cfg.db_pool_recycle)
        )
        cfg.store_backend = (
            os.environ.get("DONTDROP_STORE", cfg.store_backend).strip().lower()
        )
        cfg.create_tables = cls._parse_bool(
            os.environ.get("DONTDROP_CREATE_TABLES"), cfg.create_tables
        )
        cfg.leaderboard_size = max(
            1,
            min(
                MAX_LEADERBOARD_SIZE,
                int(os.environ.get("DONTDROP_LEADERBOARD_SIZE", cfg.leaderboard_size)),
            ),
        )
        cfg.announce_top = max(
            1, int(os.environ.get("DONTDROP_ANNOUNCE_TOP", cfg.announce_top))
        )
        cfg.weekly_digest_enabled = cls._parse_bool(
            os.environ.get("DONTDROP_WEEKLY_DIGEST"), cfg.weekly_digest_enabled
        )
        cfg.admin_token = os.environ.get("DONTDROP_ADMIN_TOKEN") or None
        cfg.log_level = os.environ.get("DONTDROP_LOG_LEVEL", cfg.log_level).upper()
        return cfg


settings = Settings.from_env()
