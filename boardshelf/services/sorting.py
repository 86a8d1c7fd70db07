"""Sort engine: stable orderings of a record set."""

import math
import unicodedata
from collections.abc import Callable, Iterable
from typing import Any

from ..models.game import GameRecord
from ..models.view import SortKey


def name_sort_key(name: str) -> tuple[str, str]:
    """Accent- and case-insensitive key, raw name as tie-break."""
    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(c for c in decomposed if not unicodedata.combining(c))
    return (base.casefold(), name)


def _year_ascending(record: GameRecord) -> float:
    return math.inf if record.year_published is None else record.year_published


def _year_descending(record: GameRecord) -> float:
    return -math.inf if record.year_published is None else record.year_published


# key -> (key function, descending)
_SORTS: dict[SortKey, tuple[Callable[[GameRecord], Any], bool]] = {
    SortKey.NAME: (lambda r: name_sort_key(r.name), False),
    # Unknown years sink to the end in both directions
    SortKey.YEAR_ASC: (_year_ascending, False),
    SortKey.YEAR_DESC: (_year_descending, True),
    SortKey.PLAYS_ASC: (lambda r: r.play_count, False),
    SortKey.PLAYS_DESC: (lambda r: r.play_count, True),
    SortKey.RATING_ASC: (lambda r: r.community_rating, False),
    SortKey.RATING_DESC: (lambda r: r.community_rating, True),
    SortKey.PERSONAL_RATING_ASC: (lambda r: r.personal_rating, False),
    SortKey.PERSONAL_RATING_DESC: (lambda r: r.personal_rating, True),
    SortKey.COMPLEXITY_ASC: (lambda r: r.complexity_weight, False),
    SortKey.COMPLEXITY_DESC: (lambda r: r.complexity_weight, True),
}


def sort_records(records: Iterable[GameRecord], key: SortKey | str) -> list[GameRecord]:
    """Return a new list ordered by ``key``; equal keys keep input order.

    Raises:
        ValueError: If ``key`` is a string that names no sort order
    """
    sort_key = SortKey(key)
    key_func, descending = _SORTS[sort_key]
    # sorted() stays stable with reverse=True
    return sorted(records, key=key_func, reverse=descending)
