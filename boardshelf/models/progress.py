"""Progress tracking data models."""

from dataclasses import dataclass
from enum import Enum


class EnrichmentStatus(Enum):
    """Lifecycle of an enrichment run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class EnrichmentProgress:
    """Outcome of one enrichment batch."""
    batch_index: int
    total_batches: int
    batch_ids: tuple[str, ...]
    updated_ids: tuple[str, ...]
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    @property
    def is_last(self) -> bool:
        return self.batch_index == self.total_batches - 1
