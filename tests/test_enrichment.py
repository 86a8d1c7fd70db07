"""Tests for batched enrichment."""

import asyncio

import pytest
from hypothesis import given, strategies as st

from boardshelf.models import EnrichmentData, EnrichmentProgress, EnrichmentStatus, GameRecord
from boardshelf.services.enrichment import (
    EnrichmentFetcher,
    merge_enrichment,
    partition,
)


class RecordingSleep:
    """Stands in for asyncio.sleep and remembers every requested pause."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


def make_records(count: int) -> list[GameRecord]:
    return [
        GameRecord(id=str(i), name=f"Game {i}", community_rating=6.0)
        for i in range(1, count + 1)
    ]


def enrichment_for(ids: list[str]) -> list[EnrichmentData]:
    return [
        EnrichmentData(
            id=game_id,
            complexity_weight=2.5,
            community_rating=7.8,
            best_at_player_counts=frozenset({3}),
        )
        for game_id in ids
    ]


async def collect(fetcher: EnrichmentFetcher, records: list[GameRecord], lookup) -> list[EnrichmentProgress]:
    return [progress async for progress in fetcher.enrich(records, lookup)]


@pytest.mark.asyncio
async def test_failed_batch_is_skipped_and_later_batches_run() -> None:
    """
    **Feature: boardshelf, Property 6: Enrichment resilience**

    With three batches where the second lookup fails, the first and third
    batches are merged, the second keeps its collection values, and
    processing reaches the last batch.
    """
    records = make_records(50)
    requested: list[list[str]] = []

    async def lookup(ids: list[str]) -> list[EnrichmentData]:
        requested.append(ids)
        if len(requested) == 2:
            raise ConnectionError("lookup service unreachable")
        return enrichment_for(ids)

    sleep = RecordingSleep()
    fetcher = EnrichmentFetcher(sleep=sleep)

    progress = await collect(fetcher, records, lookup)

    assert [len(ids) for ids in requested] == [20, 20, 10]
    assert [p.batch_index for p in progress] == [0, 1, 2]
    assert [p.succeeded for p in progress] == [True, False, True]
    assert progress[-1].is_last

    for record in records[:20] + records[40:]:
        assert record.enrichment_pending is False
        assert record.complexity_weight == 2.5
        assert record.community_rating == 7.8
        assert record.best_at_player_counts == frozenset({3})
    for record in records[20:40]:
        assert record.enrichment_pending is True
        assert record.complexity_weight == 0.0
        assert record.community_rating == 6.0
        assert record.best_at_player_counts == frozenset()

    assert fetcher.state is not None
    assert fetcher.state.status == EnrichmentStatus.COMPLETED
    assert len(fetcher.state.errors) == 1
    assert fetcher.state.errors[0].batch_index == 1
    assert fetcher.state.errors[0].game_ids == [str(i) for i in range(21, 41)]


@pytest.mark.asyncio
async def test_pause_between_batches_but_not_after_the_last() -> None:
    sleep = RecordingSleep()
    fetcher = EnrichmentFetcher(batch_size=20, batch_delay=0.1, sleep=sleep)

    async def lookup(ids: list[str]) -> list[EnrichmentData]:
        return enrichment_for(ids)

    await collect(fetcher, make_records(50), lookup)

    assert sleep.calls == [0.1, 0.1]


@pytest.mark.asyncio
async def test_batches_never_overlap() -> None:
    in_flight = 0
    peak = 0

    async def lookup(ids: list[str]) -> list[EnrichmentData]:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0)
        in_flight -= 1
        return enrichment_for(ids)

    fetcher = EnrichmentFetcher(batch_size=3, batch_delay=0)
    await collect(fetcher, make_records(10), lookup)

    assert peak == 1


@pytest.mark.asyncio
async def test_missing_and_unknown_ids_in_response() -> None:
    records = make_records(3)

    async def lookup(ids: list[str]) -> list[EnrichmentData]:
        return enrichment_for(["1", "404"])

    fetcher = EnrichmentFetcher(sleep=RecordingSleep())
    progress = await collect(fetcher, records, lookup)

    assert progress[0].updated_ids == ("1",)
    assert progress[0].batch_ids == ("1", "2", "3")
    assert records[0].enrichment_pending is False
    assert records[1].enrichment_pending is True
    assert records[2].enrichment_pending is True


@pytest.mark.asyncio
async def test_hung_batch_times_out_when_limit_set() -> None:
    never = asyncio.Event()
    calls = 0

    async def lookup(ids: list[str]) -> list[EnrichmentData]:
        nonlocal calls
        calls += 1
        if calls == 1:
            await never.wait()
        return enrichment_for(ids)

    records = make_records(4)
    fetcher = EnrichmentFetcher(batch_size=2, batch_timeout=0.01, sleep=RecordingSleep())

    progress = await collect(fetcher, records, lookup)

    assert [p.succeeded for p in progress] == [False, True]
    assert isinstance(fetcher.state.errors[0].original_error, asyncio.TimeoutError)
    assert [r.enrichment_pending for r in records] == [True, True, False, False]


@pytest.mark.asyncio
async def test_cancel_stops_at_next_batch_boundary() -> None:
    records = make_records(6)

    async def lookup(ids: list[str]) -> list[EnrichmentData]:
        return enrichment_for(ids)

    fetcher = EnrichmentFetcher(batch_size=2, sleep=RecordingSleep())
    progress = []
    async for item in fetcher.enrich(records, lookup):
        progress.append(item)
        fetcher.cancel()

    assert len(progress) == 1
    assert fetcher.state.status == EnrichmentStatus.CANCELLED
    assert fetcher.state.finished
    assert [r.enrichment_pending for r in records] == [False, False, True, True, True, True]


@pytest.mark.asyncio
async def test_cancel_before_first_batch_runs_no_lookups() -> None:
    records = make_records(4)

    async def lookup(ids: list[str]) -> list[EnrichmentData]:
        raise AssertionError("no lookup expected")

    fetcher = EnrichmentFetcher(batch_size=2, sleep=RecordingSleep())
    progress = fetcher.enrich(records, lookup)
    assert fetcher.state.status == EnrichmentStatus.PENDING
    fetcher.cancel()

    assert [item async for item in progress] == []
    assert fetcher.state.status == EnrichmentStatus.CANCELLED
    assert all(r.enrichment_pending for r in records)


@pytest.mark.asyncio
async def test_cancel_does_not_carry_over_to_the_next_run() -> None:
    async def lookup(ids: list[str]) -> list[EnrichmentData]:
        return enrichment_for(ids)

    fetcher = EnrichmentFetcher(batch_size=2, sleep=RecordingSleep())
    first = fetcher.enrich(make_records(4), lookup)
    fetcher.cancel()
    assert [item async for item in first] == []

    records = make_records(4)
    progress = await collect(fetcher, records, lookup)

    assert len(progress) == 2
    assert fetcher.state.status == EnrichmentStatus.COMPLETED
    assert not any(r.enrichment_pending for r in records)


@pytest.mark.asyncio
async def test_empty_collection_completes_without_lookups() -> None:
    async def lookup(ids: list[str]) -> list[EnrichmentData]:
        raise AssertionError("no lookup expected")

    sleep = RecordingSleep()
    fetcher = EnrichmentFetcher(sleep=sleep)

    assert await collect(fetcher, [], lookup) == []
    assert fetcher.state.status == EnrichmentStatus.COMPLETED
    assert sleep.calls == []


def test_invalid_batch_size_is_rejected() -> None:
    with pytest.raises(ValueError):
        EnrichmentFetcher(batch_size=0)
    with pytest.raises(ValueError):
        partition([], 0)


def test_merge_enrichment_ignores_unknown_ids() -> None:
    records = make_records(2)

    updated = merge_enrichment({r.id: r for r in records}, enrichment_for(["2", "99"]))

    assert updated == ["2"]
    assert records[0].enrichment_pending is True
    assert records[1].complexity_weight == 2.5


def test_partial_lookup_keeps_known_values() -> None:
    record = GameRecord(
        id="7",
        name="Brass: Birmingham",
        community_rating=7.4,
        best_at_player_counts=frozenset({3, 4}),
    )

    updated = merge_enrichment({"7": record}, [EnrichmentData(id="7", complexity_weight=3.87)])

    assert updated == ["7"]
    assert record.complexity_weight == 3.87
    assert record.community_rating == 7.4
    assert record.best_at_player_counts == frozenset({3, 4})
    assert record.enrichment_pending is False


@pytest.mark.asyncio
async def test_result_for_a_record_in_a_later_batch_is_merged() -> None:
    records = make_records(4)
    requested: list[list[str]] = []

    async def lookup(ids: list[str]) -> list[EnrichmentData]:
        requested.append(ids)
        if len(requested) == 1:
            return enrichment_for(ids + ["3"])
        return []

    fetcher = EnrichmentFetcher(batch_size=2, sleep=RecordingSleep())
    progress = await collect(fetcher, records, lookup)

    assert requested == [["1", "2"], ["3", "4"]]
    assert progress[0].updated_ids == ("1", "2", "3")
    assert records[2].complexity_weight == 2.5
    assert [r.enrichment_pending for r in records] == [False, False, False, True]


@given(st.integers(min_value=0, max_value=120), st.integers(min_value=1, max_value=40))
def test_partition_covers_records_in_order(count: int, batch_size: int) -> None:
    """
    **Feature: boardshelf, Property 7: Batch partitioning**

    Batches are consecutive, hold at most ``batch_size`` records, and
    together hold every record exactly once.
    """
    records = make_records(count)
    batches = partition(records, batch_size)

    assert [r for batch in batches for r in batch] == records
    assert all(1 <= len(batch) <= batch_size for batch in batches)
    assert len(batches) == -(-count // batch_size)


def test_every_batch_failing_leaves_records_untouched() -> None:
    records = make_records(5)

    async def lookup(ids: list[str]) -> list[EnrichmentData]:
        raise RuntimeError("boom")

    async def run() -> list[EnrichmentProgress]:
        return await collect(EnrichmentFetcher(batch_size=2, sleep=RecordingSleep()), records, lookup)

    progress = asyncio.run(run())

    assert len(progress) == 3
    assert not any(p.succeeded for p in progress)
    assert all(r.enrichment_pending for r in records)
