"""Application context wiring the collection services together.

This module provides:
- Lazy construction of configuration, HTTP client, collection client and session
- A shared error handling service for failures the session reports
- Logging setup from the loaded configuration
- Resource cleanup for the HTTP client
"""

from pathlib import Path
from typing import Any

import structlog

from boardshelf.models import AppConfig
from boardshelf.services.collection_client import CollectionClient
from boardshelf.services.collection_view import CollectionSession
from boardshelf.services.config import ConfigurationService
from boardshelf.services.enrichment import EnrichmentFetcher
from boardshelf.services.errors import ErrorHandlingService, get_error_service
from boardshelf.services.http_client import HttpClientService
from boardshelf.services.logging import LoggingService, setup_logging

log = structlog.stdlib.get_logger()


class ApplicationContext:
    """Container for application services and state.

    Services are created on first access so a caller can override the
    configuration before anything touches the network.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        config: AppConfig | None = None,
        log_dir: Path | None = None,
    ) -> None:
        """Initialize the application context.

        Args:
            config_path: Path to configuration file
            config: Explicit configuration; skips loading the file
            log_dir: Directory for log files (None for console only)
        """
        self._config_path: Path | None = config_path
        self._log_dir: Path | None = log_dir

        self._config_service: ConfigurationService | None = None
        self._http_client: HttpClientService | None = None
        self._collection_client: CollectionClient | None = None
        self._session: CollectionSession | None = None
        self._error_service: ErrorHandlingService | None = None
        self._logging: LoggingService | None = None

        self._config: AppConfig | None = config

    @property
    def config_service(self) -> ConfigurationService:
        if self._config_service is None:
            self._config_service = ConfigurationService(config_path=self._config_path)
        return self._config_service

    @property
    def config(self) -> AppConfig:
        """The current configuration, loaded on first access."""
        if self._config is None:
            self._config = self.config_service.load_config()
        return self._config

    def configure_logging(self) -> LoggingService:
        """Set up logging at the configured level."""
        if self._logging is None:
            self._logging = setup_logging(log_level=self.config.log_level, log_dir=self._log_dir)
        return self._logging

    @property
    def http_client(self) -> HttpClientService:
        if self._http_client is None:
            self._http_client = HttpClientService(
                timeout=self.config.request_timeout,
                max_retries=self.config.max_retries,
            )
        return self._http_client

    @property
    def collection_client(self) -> CollectionClient:
        if self._collection_client is None:
            self._collection_client = CollectionClient(self.http_client, self.config)
        return self._collection_client

    def create_fetcher(self) -> EnrichmentFetcher:
        return EnrichmentFetcher(
            batch_size=self.config.batch_size,
            batch_delay=self.config.batch_delay,
            batch_timeout=self.config.batch_timeout,
        )

    @property
    def error_service(self) -> ErrorHandlingService:
        if self._error_service is None:
            self._error_service = get_error_service()
        return self._error_service

    @property
    def session(self) -> CollectionSession:
        if self._session is None:
            self._session = CollectionSession(
                self.collection_client,
                fetcher=self.create_fetcher(),
                error_service=self.error_service,
            )
        return self._session

    async def cleanup(self) -> None:
        """Stop enrichment and close connections."""
        log.info("Cleaning up application resources")

        if self._session is not None:
            self._session.cancel_enrichment()

        if self._http_client is not None:
            await self._http_client.close()
            self._http_client = None

        log.info("Application cleanup complete")

    async def __aenter__(self) -> "ApplicationContext":
        return self

    async def __aexit__(self, exc_type: type[Exception] | None, exc_val: Exception | None, exc_tb: Any) -> None:
        await self.cleanup()
