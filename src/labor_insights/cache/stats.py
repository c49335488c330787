"""Read-only summaries of what the cache currently holds."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from labor_insights.domain.interfaces import IPartitionStore
from labor_insights.domain.models import Partition


class CacheStats(BaseModel):
    """Totals across every stored partition."""

    model_config = ConfigDict(frozen=True)

    total_partitions: int = 0
    total_records: int = 0
    earliest_date: Optional[str] = None
    latest_date: Optional[str] = None
    records_by_shift: Dict[str, int] = Field(default_factory=dict)


class CachedDate(BaseModel):
    """Which shifts are cached for one day of a scope."""

    model_config = ConfigDict(frozen=True)

    date: str
    shifts: List[str]
    total_records: int
    fetched_at: datetime


def cache_stats(
    store: IPartitionStore, entity_scope: Optional[str] = None
) -> CacheStats:
    partitions = store.partitions(entity_scope)
    if not partitions:
        return CacheStats()
    by_shift: Dict[str, int] = {}
    for partition in partitions:
        shift = partition.key.shift_tag.value
        by_shift[shift] = by_shift.get(shift, 0) + partition.record_count
    dates = [partition.key.date for partition in partitions]
    return CacheStats(
        total_partitions=len(partitions),
        total_records=sum(partition.record_count for partition in partitions),
        earliest_date=min(dates),
        latest_date=max(dates),
        records_by_shift=by_shift,
    )


def cached_dates(store: IPartitionStore, entity_scope: str) -> List[CachedDate]:
    """Per-day summary for a scope, newest day first."""

    by_date: Dict[str, List[Partition]] = {}
    for partition in store.partitions(entity_scope):
        by_date.setdefault(partition.key.date, []).append(partition)
    return [
        CachedDate(
            date=day,
            shifts=sorted(p.key.shift_tag.value for p in group),
            total_records=sum(p.record_count for p in group),
            fetched_at=max(p.fetched_at for p in group),
        )
        for day, group in sorted(by_date.items(), reverse=True)
    ]
