"""Normalization of collection and lookup XML documents into records.

Collection export shape::

    <items>
      <item objectid="13">
        <name>Catan</name>
        <yearpublished>1995</yearpublished>
        <image>...</image><thumbnail>...</thumbnail>
        <stats minplayers="3" maxplayers="4" playingtime="120">
          <rating value="8"><average value="7.1"/></rating>
        </stats>
        <numplays>5</numplays>
      </item>
    </items>

Lookup ("thing") documents key items by ``id`` and carry the ratings under
``statistics/ratings`` together with the ``suggested_numplayers`` poll.

A missing or unparsable field never raises; it falls back to its default or
to ``None`` for unknown years and player counts.
"""

import math
from typing import TYPE_CHECKING

import structlog
from defusedxml import DefusedXmlException, ElementTree

from ..models.game import UNKNOWN_GAME_NAME, EnrichmentData, GameRecord
from .errors import ApiError, EmptyCollectionError, MalformedDocumentError

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element as XmlElement  # noqa: S405

log = structlog.stdlib.get_logger()

PLAYER_COUNT_POLL = "suggested_numplayers"
BEST_VOTE = "Best"
RECOMMENDED_VOTE = "Recommended"
NOT_RECOMMENDED_VOTE = "Not Recommended"

MAX_RATING = 10.0
MAX_WEIGHT = 5.0


def parse_collection_document(text: str) -> list[GameRecord]:
    """Parse a collection export into records, in document order.

    Raises:
        MalformedDocumentError: If ``text`` is not well-formed XML
        ApiError: If the service answered with an error message
        EmptyCollectionError: If the document holds no games
    """
    root = _parse_root(text)
    items = root.findall("item")
    if not items:
        raise EmptyCollectionError()

    records = [_collection_item_to_record(item) for item in items]
    log.debug("Collection document parsed", games=len(records))
    return records


def parse_enrichment_document(text: str) -> list[EnrichmentData]:
    """Parse a batch lookup response. An empty response is not an error.

    Raises:
        MalformedDocumentError: If ``text`` is not well-formed XML
        ApiError: If the service answered with an error message
    """
    root = _parse_root(text)
    results = []
    for item in root.findall("item"):
        game_id = item.get("id") or item.get("objectid")
        if not game_id:
            continue
        results.append(
            EnrichmentData(
                id=game_id,
                complexity_weight=_optional_rating(
                    _attr(item, "statistics/ratings/averageweight", "value"), MAX_WEIGHT
                ),
                community_rating=_optional_rating(
                    _attr(item, "statistics/ratings/average", "value"), MAX_RATING
                ),
                best_at_player_counts=_optional_best_player_counts(_player_count_poll(item)),
            )
        )
    log.debug("Lookup document parsed", items=len(results))
    return results


def qualifies_as_best(best: int, recommended: int, not_recommended: int) -> bool:
    """Whether "Best" votes beat both other categories outright."""
    total = best + recommended + not_recommended
    return total > 0 and best > recommended and best > not_recommended


def best_player_counts(poll: "XmlElement | None") -> frozenset[int]:
    """Player counts from a ``suggested_numplayers`` poll voted "Best".

    Buckets with a non-integer count, such as ``"4+"``, are skipped.
    """
    if poll is None:
        return frozenset()

    counts = set()
    for results in poll.findall("results"):
        player_count = _parse_int(results.get("numplayers"))
        if player_count is None or player_count < 1:
            continue
        votes = {BEST_VOTE: 0, RECOMMENDED_VOTE: 0, NOT_RECOMMENDED_VOTE: 0}
        for result in results.findall("result"):
            category = result.get("value")
            if category in votes:
                votes[category] = max(_parse_int(result.get("numvotes")) or 0, 0)
        if qualifies_as_best(votes[BEST_VOTE], votes[RECOMMENDED_VOTE], votes[NOT_RECOMMENDED_VOTE]):
            counts.add(player_count)
    return frozenset(counts)


def _parse_root(text: str) -> "XmlElement":
    try:
        root = ElementTree.fromstring(text)
    except (ElementTree.ParseError, DefusedXmlException) as e:
        log.warning("Document is not well-formed XML", error=str(e))
        raise MalformedDocumentError(e) from e

    # Error messages are passed on verbatim
    if root.tag == "message":
        raise ApiError(root.text or "")
    if root.tag == "errors":
        message = root.find(".//message")
        raise ApiError((message.text or "") if message is not None else "Unknown error")
    return root


def _collection_item_to_record(item: "XmlElement") -> GameRecord:
    image = _text(item, "image")
    thumbnail = _text(item, "thumbnail")
    average_weight = _attr(item, "stats/rating/averageweight", "value")

    return GameRecord(
        id=item.get("objectid") or item.get("id") or "",
        name=_text(item, "name") or UNKNOWN_GAME_NAME,
        year_published=_parse_int(_text(item, "yearpublished")),
        thumbnail_url=image or thumbnail or "",
        min_players=_player_count(_attr(item, "stats", "minplayers")),
        max_players=_player_count(_attr(item, "stats", "maxplayers")),
        playing_time_minutes=_non_negative(_parse_int(_attr(item, "stats", "playingtime"))),
        play_count=_non_negative(_parse_int(_text(item, "numplays"))),
        community_rating=_rating(_attr(item, "stats/rating/average", "value"), MAX_RATING),
        personal_rating=_rating(_attr(item, "stats/rating", "value"), MAX_RATING),
        complexity_weight=_rating(average_weight, MAX_WEIGHT),
        best_at_player_counts=best_player_counts(_player_count_poll(item)),
    )


def _player_count_poll(item: "XmlElement") -> "XmlElement | None":
    return item.find(f".//poll[@name='{PLAYER_COUNT_POLL}']")


def _text(item: "XmlElement", path: str) -> str | None:
    element = item.find(path)
    if element is None or element.text is None:
        return None
    return element.text.strip() or None


def _attr(item: "XmlElement", path: str, name: str) -> str | None:
    element = item.find(path)
    if element is None:
        return None
    return element.get(name)


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        pass
    try:
        return int(float(value))
    except (ValueError, OverflowError):
        return None


def _parse_float(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _player_count(value: str | None) -> int | None:
    # The service reports 0 when a player count was never entered
    count = _parse_int(value)
    if count is None or count <= 0:
        return None
    return count


def _non_negative(value: int | None) -> int:
    if value is None or value < 0:
        return 0
    return value


def _rating(value: str | None, upper: float) -> float:
    number = _parse_float(value)
    if number is None or not 0.0 <= number <= upper:
        return 0.0
    return number


# A section missing from a lookup item parses as None, not as unrated
def _optional_rating(value: str | None, upper: float) -> float | None:
    if value is None:
        return None
    return _rating(value, upper)


def _optional_best_player_counts(poll: "XmlElement | None") -> frozenset[int] | None:
    if poll is None:
        return None
    return best_player_counts(poll)
