"""Game-related data models."""

from dataclasses import dataclass, field
from datetime import datetime

UNKNOWN_GAME_NAME = "Unknown Game"


@dataclass
class GameRecord:
    """One owned game, normalized from the collection export.

    ``None`` marks an unknown year or player count. Ratings and complexity use
    0 for "unrated"; ``enrichment_pending`` tells a fetched near-zero
    complexity apart from one that was never fetched.
    """
    id: str
    name: str = UNKNOWN_GAME_NAME
    year_published: int | None = None
    thumbnail_url: str = ""
    min_players: int | None = None
    max_players: int | None = None
    playing_time_minutes: int = 0
    play_count: int = 0
    community_rating: float = 0.0  # 0-10 scale, 0 = unrated
    personal_rating: float = 0.0  # 0-10 scale, 0 = unrated
    complexity_weight: float = 0.0  # 0-5 scale
    best_at_player_counts: frozenset[int] = field(default_factory=frozenset)
    enrichment_pending: bool = True

    @property
    def is_played(self) -> bool:
        return self.play_count > 0

    @property
    def supports_solo(self) -> bool:
        return self.min_players == 1


@dataclass(frozen=True)
class EnrichmentData:
    """Supplemental attributes for one game from a batch lookup.

    A field the lookup did not supply is None and leaves the record's value alone.
    """
    id: str
    complexity_weight: float | None = None
    community_rating: float | None = None
    best_at_player_counts: frozenset[int] | None = None


@dataclass(frozen=True)
class CollectionSnapshot:
    """Records produced by one fetch-and-parse cycle.

    The tuple itself never changes; enrichment only updates record fields.
    """
    records: tuple[GameRecord, ...]
    fetched_at: datetime
    source: str = ""

    def __len__(self) -> int:
        return len(self.records)

    def by_id(self) -> dict[str, GameRecord]:
        return {record.id: record for record in self.records}
