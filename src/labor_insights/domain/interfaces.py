"""Domain-level interfaces defining contracts for cache collaborators."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict

from .models import Partition, PartitionKey, Record

Clock = Callable[[], datetime]


class ImportResult(BaseModel):
    """Outcome of merging a backup snapshot into a store."""

    model_config = ConfigDict(frozen=True)

    imported: int = 0
    skipped: int = 0


class IPartitionFetcher(Protocol):
    """Pluggable capability that produces the records of one partition."""

    def fetch_partition(self, key: PartitionKey) -> Sequence[Record]:
        """Return the records for ``key`` or raise FetchError."""


class IPartitionStore(Protocol):
    """Keyed persistence of whole-partition record batches."""

    def open(self) -> None:
        """Prepare the store for use."""

    def close(self) -> None:
        """Release underlying resources."""

    def put(self, key: PartitionKey, records: Sequence[Record]) -> Partition:
        """Replace the partition at ``key`` and stamp it with the current time."""

    def get(self, key: PartitionKey) -> Optional[Partition]:
        """Return the partition at ``key`` or None on a miss."""

    def list_keys(self, entity_scope: str) -> List[PartitionKey]:
        """Return every key stored for the scope."""

    def partitions(self, entity_scope: Optional[str] = None) -> List[Partition]:
        """Return a consistent snapshot of stored partitions."""

    def clear(self) -> None:
        """Remove all partitions atomically."""

    def export_all(self) -> Dict[str, Any]:
        """Serialize the whole store to a versioned snapshot."""

    def import_all(self, snapshot: Mapping[str, Any]) -> ImportResult:
        """Merge a snapshot without regressing fresher partitions."""


class IStalenessPolicy(Protocol):
    """Decides whether a partition must be re-fetched."""

    def needs_fetch(self, key: PartitionKey) -> bool:
        """Return True when the partition is missing or stale."""
