"""Filter engine: derive the records matching a ``FilterState``."""

from collections.abc import Callable, Iterable

from ..models.game import GameRecord
from ..models.view import (
    ALL_PLAYER_COUNTS,
    OPEN_ENDED_PLAYER_COUNT,
    TWO_PLAYER_ONLY,
    FilterState,
)
from .errors import ValidationError

Predicate = Callable[[GameRecord], bool]


def filter_records(records: Iterable[GameRecord], state: FilterState) -> list[GameRecord]:
    """Return the records matching every active option of ``state``.

    The result is a new list preserving input order; records are not copied
    or modified.

    Raises:
        ValidationError: If ``state`` holds an unknown player count mode or a
            negative rating floor
    """
    predicates = build_predicates(state)
    return [record for record in records if all(p(record) for p in predicates)]


def validate_filter_state(state: FilterState) -> None:
    """Reject option values no record could be matched against.

    Raises:
        ValidationError: On an unknown player count mode or a negative rating floor
    """
    mode = state.player_count
    if mode not in (ALL_PLAYER_COUNTS, TWO_PLAYER_ONLY) and not (mode.isdecimal() and int(mode) >= 1):
        raise ValidationError(
            f"Unknown player count filter: {mode!r}",
            field="player_count",
            value=mode,
            constraints=["'all', '2-only' or a positive player count"],
        )

    # A negative floor would let unrated (0) games through
    if state.min_rating is not None and state.min_rating < 0:
        raise ValidationError(
            f"Rating floor must not be negative: {state.min_rating}",
            field="min_rating",
            value=state.min_rating,
            constraints=["0 <= min_rating <= 10"],
        )


def build_predicates(state: FilterState) -> list[Predicate]:
    """One predicate per active filter option."""
    validate_filter_state(state)
    predicates: list[Predicate] = []

    query = state.search_text.strip().casefold()
    if query:
        predicates.append(lambda record: query in record.name.casefold())

    if state.player_count != ALL_PLAYER_COUNTS:
        mode = state.player_count
        predicates.append(lambda record: matches_player_count(record, mode))

    if state.play_time is not None:
        play_time = state.play_time
        predicates.append(lambda record: play_time.contains(record.playing_time_minutes))

    if state.min_rating is not None:
        floor = state.min_rating
        predicates.append(lambda record: record.community_rating >= floor)

    if state.unplayed_only:
        predicates.append(lambda record: record.play_count == 0)

    if state.solo_only:
        predicates.append(lambda record: record.supports_solo)

    if state.best_at_count is not None:
        count = state.best_at_count
        predicates.append(lambda record: count in record.best_at_player_counts)

    return predicates


def matches_player_count(record: GameRecord, mode: str) -> bool:
    """Player count test for one record.

    ``"2-only"`` means exactly two players. A count N means the game supports
    N players, except 5 which stands for "5 or more". Unknown player counts
    never match.
    """
    low, high = record.min_players, record.max_players
    if mode == ALL_PLAYER_COUNTS:
        return True
    if low is None or high is None:
        return False
    if mode == TWO_PLAYER_ONLY:
        return low == 2 and high == 2

    count = int(mode)
    if count == OPEN_ENDED_PLAYER_COUNT:
        return high >= OPEN_ENDED_PLAYER_COUNT
    return low <= count <= high
