"""Fetches the collection export and enrichment batches from the remote service."""

from datetime import datetime

import structlog

from ..models import AppConfig, CollectionSnapshot, EnrichmentData
from .collection_parser import parse_collection_document, parse_enrichment_document
from .http_client import HttpClientService

log = structlog.stdlib.get_logger()


class CollectionClient:
    """Remote access for one configured user."""

    def __init__(self, http_client: HttpClientService, config: AppConfig) -> None:
        self.http_client: HttpClientService = http_client
        self.config: AppConfig = config

    @property
    def collection_url(self) -> str:
        return self.config.collection_url.format(username=self.config.username)

    async def fetch_collection(self) -> CollectionSnapshot:
        """Fetch and normalize the collection export.

        Raises:
            TransportError: If the document cannot be fetched
            CollectionParseError: If the document holds no usable collection
        """
        url = self.collection_url
        log.info("Fetching collection", username=self.config.username)
        text = await self.http_client.get_text(url)
        records = parse_collection_document(text)
        log.info("Collection fetched", games=len(records))
        return CollectionSnapshot(records=tuple(records), fetched_at=datetime.now(), source=url)

    async def lookup_batch(self, ids: list[str]) -> list[EnrichmentData]:
        """Fetch enrichment data for ``ids`` in a single request."""
        params = {"id": ",".join(ids), "stats": "1"}
        text = await self.http_client.get_text(self.config.thing_url, params=params)
        return parse_enrichment_document(text)
