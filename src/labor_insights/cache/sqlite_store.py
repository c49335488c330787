"""SQLite-backed partition store."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Tuple

from pydantic import TypeAdapter

from labor_insights.cache.base import BasePartitionStore
from labor_insights.domain.exceptions import StoreUnavailableError
from labor_insights.domain.interfaces import Clock
from labor_insights.domain.models import Partition, PartitionKey, Record

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS partitions (
    cache_key TEXT PRIMARY KEY,
    entity_scope TEXT NOT NULL,
    date TEXT NOT NULL,
    shift TEXT NOT NULL,
    fetched_at TEXT NOT NULL,
    record_count INTEGER NOT NULL,
    records TEXT NOT NULL
);
"""

_CREATE_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS idx_partitions_scope_date
ON partitions (entity_scope, date);
"""

_UPSERT_SQL = """
INSERT INTO partitions (cache_key, entity_scope, date, shift, fetched_at, record_count, records)
VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(cache_key) DO UPDATE SET
    entity_scope=excluded.entity_scope,
    date=excluded.date,
    shift=excluded.shift,
    fetched_at=excluded.fetched_at,
    record_count=excluded.record_count,
    records=excluded.records;
"""

_SELECT_BY_KEY_SQL = """
SELECT entity_scope, date, shift, fetched_at, record_count, records
FROM partitions
WHERE cache_key = ?;
"""

_SELECT_ALL_SQL = """
SELECT entity_scope, date, shift, fetched_at, record_count, records
FROM partitions
ORDER BY entity_scope ASC, date ASC, shift ASC;
"""

_SELECT_BY_SCOPE_SQL = """
SELECT entity_scope, date, shift, fetched_at, record_count, records
FROM partitions
WHERE entity_scope = ?
ORDER BY date ASC, shift ASC;
"""

_DELETE_ALL_SQL = "DELETE FROM partitions;"

_Row = Tuple[str, str, str, str, int, str]

_RECORDS = TypeAdapter(Tuple[Record, ...])


class SQLitePartitionStore(BasePartitionStore):
    """Persists one row per partition; records are held as a JSON column."""

    def __init__(
        self,
        db_path: str | Path,
        *,
        timeout: float = 5.0,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(clock=clock, logger=logger)
        self._db_path = str(db_path)
        self._timeout = timeout

    @property
    def db_path(self) -> str:
        return self._db_path

    def _open(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_TABLE_SQL)
            conn.execute(_CREATE_INDEX_SQL)

    def _read(self, key: PartitionKey) -> Optional[Partition]:
        with self._connect() as conn:
            row = conn.execute(_SELECT_BY_KEY_SQL, (key.encode(),)).fetchone()
        return self._row_to_partition(row) if row else None

    def _write(self, partitions: Sequence[Partition]) -> None:
        rows = [
            (
                partition.key.encode(),
                partition.key.entity_scope,
                partition.key.date,
                partition.key.shift_tag.value,
                partition.fetched_at.isoformat(),
                partition.record_count,
                _RECORDS.dump_json(partition.records).decode(),
            )
            for partition in partitions
        ]
        with self._connect() as conn:
            conn.executemany(_UPSERT_SQL, rows)

    def _scan(self, entity_scope: Optional[str]) -> List[Partition]:
        with self._connect() as conn:
            if entity_scope is None:
                rows = conn.execute(_SELECT_ALL_SQL).fetchall()
            else:
                rows = conn.execute(_SELECT_BY_SCOPE_SQL, (entity_scope,)).fetchall()
        return [self._row_to_partition(row) for row in rows]

    def _clear(self) -> None:
        with self._connect() as conn:
            conn.execute(_DELETE_ALL_SQL)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection whose block commits as one transaction."""

        try:
            conn = sqlite3.connect(self._db_path, timeout=self._timeout)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(
                "Could not open partition database", context={"path": self._db_path}
            ) from exc
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise StoreUnavailableError(
                "Partition database operation failed",
                context={"path": self._db_path, "error": str(exc)},
            ) from exc
        finally:
            conn.close()

    @staticmethod
    def _row_to_partition(row: _Row) -> Partition:
        entity_scope, date, shift, fetched_at, record_count, records = row
        return Partition(
            key=PartitionKey.build(entity_scope, date, shift),
            records=_RECORDS.validate_json(records),
            fetched_at=datetime.fromisoformat(fetched_at),
            record_count=record_count,
        )
