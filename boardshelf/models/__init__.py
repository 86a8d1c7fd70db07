"""Data models for the board game collection pipeline."""

from .config import AppConfig
from .game import CollectionSnapshot, EnrichmentData, GameRecord
from .progress import EnrichmentProgress, EnrichmentStatus
from .view import (
    ALL_PLAYER_COUNTS,
    OPEN_ENDED_PLAYER_COUNT,
    TWO_PLAYER_ONLY,
    ChallengeSummary,
    CollectionStats,
    CollectionView,
    FilterState,
    PlayTimeRange,
    SortKey,
)

__all__ = [
    "ALL_PLAYER_COUNTS",
    "AppConfig",
    "ChallengeSummary",
    "CollectionSnapshot",
    "CollectionStats",
    "CollectionView",
    "EnrichmentData",
    "EnrichmentProgress",
    "EnrichmentStatus",
    "FilterState",
    "GameRecord",
    "OPEN_ENDED_PLAYER_COUNT",
    "PlayTimeRange",
    "SortKey",
    "TWO_PLAYER_ONLY",
]
