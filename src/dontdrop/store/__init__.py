# src/dontdrop/store/__init__.py

"""Ranking store backends."""

from .base import RankingStore
from .memory import MemoryRankingStore
from .sql import SqlRankingStore

__all__ = ["RankingStore", "MemoryRankingStore", "SqlRankingStore"]
