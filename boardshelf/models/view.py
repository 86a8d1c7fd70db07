"""Filter state, sort keys and the pure values derived from a record set."""

from dataclasses import dataclass
from enum import Enum

from .game import GameRecord

ALL_PLAYER_COUNTS = "all"
TWO_PLAYER_ONLY = "2-only"
OPEN_ENDED_PLAYER_COUNT = 5  # the "5" option means "5 or more"


class SortKey(Enum):
    """Orderings offered for a record set."""
    NAME = "name"
    YEAR_ASC = "year-asc"
    YEAR_DESC = "year-desc"
    PLAYS_ASC = "plays-asc"
    PLAYS_DESC = "plays-desc"
    RATING_ASC = "rating-asc"
    RATING_DESC = "rating-desc"
    PERSONAL_RATING_ASC = "personalRating-asc"
    PERSONAL_RATING_DESC = "personalRating-desc"
    COMPLEXITY_ASC = "complexity-asc"
    COMPLEXITY_DESC = "complexity-desc"


@dataclass(frozen=True)
class PlayTimeRange:
    """Inclusive play-time window in minutes; ``maximum=None`` is unbounded."""
    minimum: int = 0
    maximum: int | None = None

    @classmethod
    def parse(cls, label: str) -> "PlayTimeRange":
        """Build a range from a bucket label such as ``"61-90"`` or ``"180+"``."""
        text = label.strip()
        if text.endswith("+"):
            return cls(minimum=int(text[:-1]), maximum=None)
        low, sep, high = text.partition("-")
        if not sep:
            raise ValueError(f"Invalid play time range: {label!r}")
        return cls(minimum=int(low), maximum=int(high))

    def contains(self, minutes: int) -> bool:
        if minutes < self.minimum:
            return False
        return self.maximum is None or minutes <= self.maximum


@dataclass(frozen=True)
class FilterState:
    """Active filter options. Every set option must match (logical AND)."""
    search_text: str = ""
    player_count: str = ALL_PLAYER_COUNTS
    play_time: PlayTimeRange | None = None
    min_rating: float | None = None
    unplayed_only: bool = False
    solo_only: bool = False
    best_at_count: int | None = None


@dataclass(frozen=True)
class CollectionStats:
    """Summary statistics for a record set."""
    total_games: int
    total_plays: int
    unplayed_count: int
    solo_count: int
    highly_rated_count: int
    recent_count: int
    average_rating: float
    average_personal_rating: float
    average_play_time: float
    decade_histogram: dict[int, int]
    play_time_histogram: dict[str, int]
    rating_histogram: dict[str, int]
    player_count_histogram: dict[int, int]
    top_played: tuple[GameRecord, ...] | None  # None = no play data
    most_played: GameRecord | None


@dataclass(frozen=True)
class ChallengeSummary:
    """Play-through progress and personal bests for a record set."""
    unplayed: tuple[GameRecord, ...]
    played_percentage: int
    unplayed_percentage: int
    highest_personal_rated: GameRecord | None
    oldest: GameRecord | None
    newest: GameRecord | None


@dataclass(frozen=True)
class CollectionView:
    """Filtered and sorted records with statistics over the filtered set."""
    records: tuple[GameRecord, ...]
    stats: CollectionStats
    challenges: ChallengeSummary
    filter_state: FilterState
    sort_key: SortKey
