"""Process-local partition store backed by an immutable mapping swap."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import List, Mapping, Optional, Sequence

from labor_insights.cache.base import BasePartitionStore
from labor_insights.domain.interfaces import Clock
from labor_insights.domain.models import Partition, PartitionKey


class InMemoryPartitionStore(BasePartitionStore):
    """Keeps partitions in a dict that is replaced, never mutated, on write."""

    def __init__(
        self,
        *,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(clock=clock, logger=logger)
        self._partitions: Mapping[str, Partition] = MappingProxyType({})

    def _read(self, key: PartitionKey) -> Optional[Partition]:
        return self._partitions.get(key.encode())

    def _write(self, partitions: Sequence[Partition]) -> None:
        updated = dict(self._partitions)
        for partition in partitions:
            updated[partition.key.encode()] = partition
        self._partitions = MappingProxyType(updated)

    def _scan(self, entity_scope: Optional[str]) -> List[Partition]:
        current = self._partitions
        return [
            partition
            for partition in current.values()
            if entity_scope is None or partition.key.entity_scope == entity_scope
        ]

    def _clear(self) -> None:
        self._partitions = MappingProxyType({})

    def __len__(self) -> int:
        return len(self._partitions)
