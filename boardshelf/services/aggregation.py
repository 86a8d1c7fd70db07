"""Summary statistics over a record set.

Every function here is total: an empty record set yields zero counts, 0.0
averages and ``None`` for "no such game".
"""

import math
from collections.abc import Iterable, Sequence

from ..models.game import GameRecord
from ..models.view import ChallengeSummary, CollectionStats

HIGHLY_RATED_THRESHOLD = 7.5
RECENT_YEAR = 2020
TOP_PLAYED_LIMIT = 10

# (label, inclusive upper bound); the last bucket is open-ended
PLAY_TIME_BUCKETS: tuple[tuple[str, float], ...] = (
    ("0-30", 30),
    ("31-60", 60),
    ("61-90", 90),
    ("91-120", 120),
    ("121-180", 180),
    ("180+", float("inf")),
)

RATING_BUCKETS: tuple[tuple[str, float], ...] = (
    ("0-5.0", 5.0),
    ("5.1-6.0", 6.0),
    ("6.1-7.0", 7.0),
    ("7.1-8.0", 8.0),
    ("8.1-9.0", 9.0),
    ("9.1-10", float("inf")),
)


def summarize(records: Iterable[GameRecord]) -> CollectionStats:
    """Compute counts, averages, histograms and the most played games."""
    games = list(records)
    top_played = most_played_records(games)

    return CollectionStats(
        total_games=len(games),
        total_plays=sum(g.play_count for g in games),
        unplayed_count=sum(1 for g in games if g.play_count == 0),
        solo_count=sum(1 for g in games if g.supports_solo),
        highly_rated_count=sum(1 for g in games if g.community_rating >= HIGHLY_RATED_THRESHOLD),
        recent_count=sum(
            1 for g in games if g.year_published is not None and g.year_published >= RECENT_YEAR
        ),
        average_rating=average_of_rated([g.community_rating for g in games]),
        average_personal_rating=average_of_rated([g.personal_rating for g in games]),
        average_play_time=average_of_rated([g.playing_time_minutes for g in games]),
        decade_histogram=decade_histogram(games),
        play_time_histogram=bucket_histogram([g.playing_time_minutes for g in games], PLAY_TIME_BUCKETS),
        rating_histogram=bucket_histogram([g.community_rating for g in games], RATING_BUCKETS),
        player_count_histogram=player_count_histogram(games),
        top_played=tuple(top_played) if top_played else None,
        most_played=top_played[0] if top_played else None,
    )


def average_of_rated(values: Sequence[float]) -> float:
    """Mean of the non-zero values; zero means "no value" and is left out."""
    rated = [v for v in values if v > 0]
    if not rated:
        return 0.0
    return sum(rated) / len(rated)


def decade_histogram(games: Iterable[GameRecord]) -> dict[int, int]:
    """Games per decade of publication, ascending; empty decades are omitted."""
    counts: dict[int, int] = {}
    for game in games:
        if game.year_published is None:
            continue
        decade = game.year_published // 10 * 10
        counts[decade] = counts.get(decade, 0) + 1
    return dict(sorted(counts.items()))


def bucket_histogram(values: Iterable[float], buckets: Sequence[tuple[str, float]]) -> dict[str, int]:
    """Count values into fixed buckets; every bucket is reported."""
    counts = {label: 0 for label, _ in buckets}
    for value in values:
        for label, upper in buckets:
            if value <= upper:
                counts[label] += 1
                break
    return counts


def player_count_histogram(games: Iterable[GameRecord]) -> dict[int, int]:
    """Games per known minimum player count, ascending."""
    counts: dict[int, int] = {}
    for game in games:
        if game.min_players is not None:
            counts[game.min_players] = counts.get(game.min_players, 0) + 1
    return dict(sorted(counts.items()))


def most_played_records(games: Sequence[GameRecord], limit: int = TOP_PLAYED_LIMIT) -> list[GameRecord]:
    """Played games by descending play count, ties in input order."""
    played = [g for g in games if g.play_count > 0]
    return sorted(played, key=lambda g: g.play_count, reverse=True)[:limit]


def summarize_challenges(records: Iterable[GameRecord]) -> ChallengeSummary:
    """Unplayed games, play-through percentage and personal bests."""
    games = list(records)
    unplayed = tuple(g for g in games if g.play_count == 0)

    if games:
        played_percentage = _percentage(len(games) - len(unplayed), len(games))
        unplayed_percentage = _percentage(len(unplayed), len(games))
    else:
        played_percentage, unplayed_percentage = 100, 0

    highest_rated = None
    for game in games:
        if game.personal_rating > 0 and (
            highest_rated is None or game.personal_rating > highest_rated.personal_rating
        ):
            highest_rated = game

    oldest = newest = None
    for game in games:
        year = game.year_published
        if year is None:
            continue
        if oldest is None or year < oldest.year_published:
            oldest = game
        if newest is None or year > newest.year_published:
            newest = game

    return ChallengeSummary(
        unplayed=unplayed,
        played_percentage=played_percentage,
        unplayed_percentage=unplayed_percentage,
        highest_personal_rated=highest_rated,
        oldest=oldest,
        newest=newest,
    )


def _percentage(part: int, whole: int) -> int:
    # Halves round up
    return math.floor(part / whole * 100 + 0.5)
