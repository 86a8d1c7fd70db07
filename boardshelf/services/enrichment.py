"""Batched enrichment of records with complexity, rating and poll data.

Batches run one at a time with a fixed pause after each, so the lookup
service never sees more than one request in flight from us. A failing batch
is logged and skipped; its records keep their collection values.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field

import structlog

from ..models.game import EnrichmentData, GameRecord
from ..models.progress import EnrichmentProgress, EnrichmentStatus
from .errors import EnrichmentBatchError

log = structlog.stdlib.get_logger()

LookupBatch = Callable[[list[str]], Awaitable[list[EnrichmentData]]]
Sleep = Callable[[float], Awaitable[None]]

DEFAULT_BATCH_SIZE = 20
DEFAULT_BATCH_DELAY = 0.1


def partition(records: Sequence[GameRecord], batch_size: int) -> list[tuple[GameRecord, ...]]:
    """Split records into consecutive batches of ``batch_size``."""
    if batch_size < 1:
        raise ValueError("batch_size must be a positive integer")
    return [tuple(records[i:i + batch_size]) for i in range(0, len(records), batch_size)]


def merge_enrichment(records_by_id: Mapping[str, GameRecord], results: Sequence[EnrichmentData]) -> list[str]:
    """Apply lookup results to the matching records in place.

    Unknown ids are ignored. Fields a result leaves as None keep the record's
    current value. Returns the updated ids.
    """
    updated = []
    for data in results:
        record = records_by_id.get(data.id)
        if record is None:
            log.debug("Ignoring lookup result for unknown game", game_id=data.id)
            continue
        if data.complexity_weight is not None:
            record.complexity_weight = data.complexity_weight
        if data.community_rating is not None:
            record.community_rating = data.community_rating
        if data.best_at_player_counts is not None:
            record.best_at_player_counts = data.best_at_player_counts
        record.enrichment_pending = False
        updated.append(record.id)
    return updated


@dataclass
class EnrichmentState:
    """Where an enrichment run stands: the batches, the next index and the last outcome."""
    batches: list[tuple[GameRecord, ...]]
    index: int = 0
    last_result: EnrichmentProgress | None = None
    status: EnrichmentStatus = EnrichmentStatus.PENDING
    errors: list[EnrichmentBatchError] = field(default_factory=list)
    records_by_id: dict[str, GameRecord] = field(default_factory=dict)
    cancel_requested: bool = False

    @property
    def total_batches(self) -> int:
        return len(self.batches)

    @property
    def batches_remaining(self) -> int:
        return self.total_batches - self.index

    @property
    def finished(self) -> bool:
        return self.status in (EnrichmentStatus.COMPLETED, EnrichmentStatus.CANCELLED)


class EnrichmentFetcher:
    """Runs batch lookups sequentially, pacing between batches."""

    def __init__(
        self,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        batch_timeout: float | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize the fetcher.

        Args:
            batch_size: Records per lookup request
            batch_delay: Pause in seconds after each batch before the next
            batch_timeout: Per-batch limit in seconds; None waits as long as
                the lookup does, so a hung request stalls later batches
            sleep: Coroutine used for the pause
        """
        if batch_size < 1:
            raise ValueError("batch_size must be a positive integer")
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.batch_timeout = batch_timeout
        self._sleep = sleep
        self._state: EnrichmentState | None = None

    @property
    def state(self) -> EnrichmentState | None:
        return self._state

    def cancel(self) -> None:
        """Stop the current run before its next batch; merged data stays in place."""
        if self._state is None or self._state.finished:
            return
        self._state.cancel_requested = True
        log.info("Enrichment cancellation requested", completed_batches=self._state.index)

    def enrich(
        self,
        records: Sequence[GameRecord],
        lookup_batch: LookupBatch,
    ) -> AsyncIterator[EnrichmentProgress]:
        """Enrich ``records`` in place, yielding progress after every batch.

        The run is registered before this returns, so ``cancel()`` applies to
        it even when called before the first progress is awaited.

        Args:
            records: Records to enrich, in the order batches are formed
            lookup_batch: Fetches enrichment data for a list of ids; raises on failure

        Returns:
            An async iterator of one EnrichmentProgress per attempted batch
        """
        state = EnrichmentState(
            batches=partition(records, self.batch_size),
            records_by_id={record.id: record for record in records},
        )
        self._state = state
        return self._run(state, lookup_batch)

    async def _run(self, state: EnrichmentState, lookup_batch: LookupBatch) -> AsyncIterator[EnrichmentProgress]:
        state.status = EnrichmentStatus.RUNNING
        log.info(
            "Starting enrichment",
            games=len(state.records_by_id),
            total_batches=state.total_batches,
            batch_size=self.batch_size,
        )

        while state.batches_remaining > 0:
            if state.cancel_requested:
                state.status = EnrichmentStatus.CANCELLED
                log.info("Enrichment cancelled", completed_batches=state.index)
                return

            progress = await self._run_batch(state, lookup_batch)
            state.last_result = progress
            state.index += 1
            yield progress

            if state.batches_remaining > 0:
                await self._sleep(self.batch_delay)

        state.status = EnrichmentStatus.COMPLETED
        log.info(
            "Enrichment completed",
            total_batches=state.total_batches,
            failed_batches=len(state.errors),
        )

    async def _run_batch(self, state: EnrichmentState, lookup_batch: LookupBatch) -> EnrichmentProgress:
        batch = state.batches[state.index]
        ids = [record.id for record in batch]
        log.debug("Fetching enrichment batch", batch_index=state.index, games=len(ids))

        try:
            if self.batch_timeout is None:
                results = await lookup_batch(ids)
            else:
                results = await asyncio.wait_for(lookup_batch(ids), self.batch_timeout)
        except Exception as e:
            error = EnrichmentBatchError(
                f"Enrichment batch {state.index + 1} of {state.total_batches} failed",
                batch_index=state.index,
                game_ids=ids,
                original_error=e,
            )
            state.errors.append(error)
            log.warning(
                "Enrichment batch failed, skipping",
                batch_index=state.index,
                error=str(e),
                error_type=type(e).__name__,
            )
            return EnrichmentProgress(
                batch_index=state.index,
                total_batches=state.total_batches,
                batch_ids=tuple(ids),
                updated_ids=(),
                error=error.message,
            )

        updated = merge_enrichment(state.records_by_id, results)
        log.info(
            "Enrichment batch merged",
            batch_index=state.index,
            requested=len(ids),
            updated=len(updated),
        )
        return EnrichmentProgress(
            batch_index=state.index,
            total_batches=state.total_batches,
            batch_ids=tuple(ids),
            updated_ids=tuple(updated),
        )
