"""Derived views over a collection snapshot.

``derive_view`` is the whole read side: filter, then sort, then summarize.
``CollectionSession`` keeps the current snapshot, filter and sort key and
re-derives the view whenever one of them changes or an enrichment batch lands.
"""

from collections.abc import AsyncIterator, Iterable

import structlog

from ..models import CollectionSnapshot, CollectionView, EnrichmentProgress, FilterState, GameRecord, SortKey
from .aggregation import summarize, summarize_challenges
from .collection_client import CollectionClient
from .enrichment import EnrichmentFetcher
from .errors import ErrorHandlingService, UserFriendlyError, get_error_service
from .filtering import filter_records, validate_filter_state
from .sorting import sort_records

log = structlog.stdlib.get_logger()


def derive_view(
    records: CollectionSnapshot | Iterable[GameRecord],
    filter_state: FilterState | None = None,
    sort_key: SortKey | str = SortKey.NAME,
) -> CollectionView:
    """Filter, sort and summarize ``records``. Statistics cover the filtered set."""
    if isinstance(records, CollectionSnapshot):
        records = records.records
    filter_state = filter_state or FilterState()
    sort_key = SortKey(sort_key)

    visible = sort_records(filter_records(records, filter_state), sort_key)
    return CollectionView(
        records=tuple(visible),
        stats=summarize(visible),
        challenges=summarize_challenges(visible),
        filter_state=filter_state,
        sort_key=sort_key,
    )


class CollectionSession:
    """Current snapshot plus view settings for a single user session."""

    def __init__(
        self,
        client: CollectionClient,
        fetcher: EnrichmentFetcher | None = None,
        filter_state: FilterState | None = None,
        sort_key: SortKey = SortKey.NAME,
        error_service: ErrorHandlingService | None = None,
    ) -> None:
        self._client = client
        self._fetcher = fetcher or EnrichmentFetcher()
        self._error_service = error_service or get_error_service()
        self._snapshot: CollectionSnapshot | None = None
        self._filter_state = filter_state or FilterState()
        validate_filter_state(self._filter_state)
        self._sort_key = sort_key
        self._view: CollectionView | None = None
        self._last_error: UserFriendlyError | None = None

    @property
    def snapshot(self) -> CollectionSnapshot | None:
        return self._snapshot

    @property
    def filter_state(self) -> FilterState:
        return self._filter_state

    @property
    def sort_key(self) -> SortKey:
        return self._sort_key

    @property
    def view(self) -> CollectionView | None:
        """The current derived view, or None before the first load."""
        return self._view

    @property
    def last_error(self) -> UserFriendlyError | None:
        """The user-facing form of the most recent failed load, cleared by a successful one."""
        return self._last_error

    def error_message(self) -> str | None:
        if self._last_error is None:
            return None
        return self._error_service.create_user_message(self._last_error)

    async def load(self) -> CollectionView:
        """Fetch a new snapshot, replacing the previous one.

        Fetch and parse errors are recorded in ``last_error`` and re-raised;
        the previous snapshot stays in place.
        """
        try:
            snapshot = await self._client.fetch_collection()
        except Exception as e:
            self._last_error = self._error_service.handle_error(
                e,
                operation="load_collection",
                component="collection_session",
                context={"had_snapshot": self._snapshot is not None},
            )
            raise

        self._last_error = None
        self._snapshot = snapshot
        log.info("Collection snapshot replaced", games=len(snapshot))
        return self._refresh()

    def set_filter(self, filter_state: FilterState) -> CollectionView | None:
        """Apply new filter options.

        Raises:
            ValidationError: If the options cannot be applied; the current
                filter stays in place
        """
        validate_filter_state(filter_state)
        self._filter_state = filter_state
        return self._refresh()

    def set_sort(self, sort_key: SortKey | str) -> CollectionView | None:
        self._sort_key = SortKey(sort_key)
        return self._refresh()

    def enrich(self) -> AsyncIterator[CollectionView]:
        """Enrich the current snapshot, yielding a fresh view after each batch.

        The run starts being tracked immediately, so ``cancel_enrichment``
        stops it even before the first view is awaited.

        Raises:
            RuntimeError: If no collection has been loaded
        """
        if self._snapshot is None:
            raise RuntimeError("No collection loaded")
        progress = self._fetcher.enrich(self._snapshot.records, self._client.lookup_batch)
        return self._views_for(progress)

    async def _views_for(self, progress_items: AsyncIterator[EnrichmentProgress]) -> AsyncIterator[CollectionView]:
        async for progress in progress_items:
            log.debug(
                "Refreshing view after enrichment batch",
                batch_index=progress.batch_index,
                succeeded=progress.succeeded,
            )
            view = self._refresh()
            if view is not None:
                yield view

    def cancel_enrichment(self) -> None:
        self._fetcher.cancel()

    def _refresh(self) -> CollectionView | None:
        if self._snapshot is None:
            return None
        self._view = derive_view(self._snapshot, self._filter_state, self._sort_key)
        return self._view
