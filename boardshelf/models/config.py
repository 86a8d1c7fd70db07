"""Configuration data models."""

from dataclasses import dataclass

DEFAULT_COLLECTION_URL = (
    "https://boardgamegeek.com/xmlapi2/collection?username={username}&own=1&stats=1"
)
DEFAULT_THING_URL = "https://boardgamegeek.com/xmlapi2/thing"


@dataclass(frozen=True)
class AppConfig:
    """Application configuration settings."""
    username: str
    collection_url: str = DEFAULT_COLLECTION_URL
    thing_url: str = DEFAULT_THING_URL
    batch_size: int = 20
    batch_delay: float = 0.1  # seconds between enrichment batches
    batch_timeout: float | None = None  # None = wait as long as the transport does
    request_timeout: float = 30.0
    max_retries: int = 3
    log_level: str = "INFO"
