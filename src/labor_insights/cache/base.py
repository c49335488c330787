"""Store abstractions and shared behavior for partition backends."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence

from labor_insights.cache.snapshot import decode_snapshot, encode_snapshot
from labor_insights.domain.exceptions import StoreUnavailableError
from labor_insights.domain.interfaces import Clock, ImportResult
from labor_insights.domain.models import Partition, PartitionKey, Record
from labor_insights.utils.dates import local_now


class BasePartitionStore(ABC):
    """Template-method base class that handles locking, stamping and merging.

    Subclasses supply the raw persistence primitives. Every mutation runs under
    one store-level lock so ``list_keys``, ``clear`` and ``export_all`` always
    observe whole partitions.
    """

    def __init__(
        self,
        *,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._clock = clock or local_now
        self._lock = threading.RLock()
        self._is_open = False
        self.logger = logger or logging.getLogger(
            f"{__name__}.{self.__class__.__name__}"
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def open(self) -> None:
        with self._lock:
            if self._is_open:
                return
            self._open()
            self._is_open = True
        self.logger.debug("store_opened", extra={"store": self.__class__.__name__})

    def close(self) -> None:
        with self._lock:
            if not self._is_open:
                return
            self._close()
            self._is_open = False
        self.logger.debug("store_closed", extra={"store": self.__class__.__name__})

    @property
    def is_open(self) -> bool:
        return self._is_open

    def __enter__(self) -> "BasePartitionStore":
        self.open()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def put(self, key: PartitionKey, records: Sequence[Record]) -> Partition:
        """Replace the partition at ``key`` wholesale."""

        self._ensure_open()
        partition = Partition.create(key, records, self._clock())
        with self._lock:
            self._write([partition])
        self.logger.debug(
            "partition_stored",
            extra={"key": key.encode(), "record_count": partition.record_count},
        )
        return partition

    def get(self, key: PartitionKey) -> Optional[Partition]:
        self._ensure_open()
        return self._read(key)

    def list_keys(self, entity_scope: str) -> List[PartitionKey]:
        return [partition.key for partition in self.partitions(entity_scope)]

    def partitions(self, entity_scope: Optional[str] = None) -> List[Partition]:
        """Stored partitions ordered by scope, date and shift."""

        self._ensure_open()
        return sorted(
            self._scan(entity_scope),
            key=lambda p: (p.key.entity_scope, p.key.date, p.key.shift_tag.value),
        )

    def clear(self) -> None:
        self._ensure_open()
        with self._lock:
            self._clear()
        self.logger.info("store_cleared", extra={"store": self.__class__.__name__})

    def export_all(self) -> Dict[str, Any]:
        self._ensure_open()
        with self._lock:
            partitions = self._scan(None)
        return encode_snapshot(partitions, self._clock())

    def import_all(self, snapshot: Mapping[str, Any]) -> ImportResult:
        """Merge a snapshot, keeping whichever partition was fetched most recently."""

        self._ensure_open()
        incoming = decode_snapshot(snapshot)
        accepted: List[Partition] = []
        skipped = 0
        with self._lock:
            for partition in incoming:
                existing = self._read(partition.key)
                if existing is None or partition.fetched_at > existing.fetched_at:
                    accepted.append(partition)
                else:
                    skipped += 1
            if accepted:
                self._write(accepted)
        result = ImportResult(imported=len(accepted), skipped=skipped)
        self.logger.info(
            "snapshot_imported",
            extra={"imported": result.imported, "skipped": result.skipped},
        )
        return result

    # ------------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------------
    def _open(self) -> None:
        """Hook for backends that hold resources."""

    def _close(self) -> None:
        """Hook for backends that hold resources."""

    @abstractmethod
    def _read(self, key: PartitionKey) -> Optional[Partition]:
        """Return the stored partition or None."""

    @abstractmethod
    def _write(self, partitions: Sequence[Partition]) -> None:
        """Persist complete partitions in one atomic step, replacing same keys."""

    @abstractmethod
    def _scan(self, entity_scope: Optional[str]) -> List[Partition]:
        """Return all partitions, optionally restricted to one scope."""

    @abstractmethod
    def _clear(self) -> None:
        """Remove every partition in one atomic step."""

    def _ensure_open(self) -> None:
        if not self._is_open:
            raise StoreUnavailableError(
                "Partition store is not open",
                context={"store": self.__class__.__name__},
            )
