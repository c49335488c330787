"""Range queries over cached partitions with dedup and shift attribution."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from labor_insights.domain.interfaces import Clock, IPartitionStore
from labor_insights.domain.models import Partition, Record, ShiftSchedule, ShiftTag
from labor_insights.query.dedup import resolve_partitions
from labor_insights.utils.dates import DateLike, ensure_aware, local_now, to_day


class QueryResult(BaseModel):
    """Records matched by a range query and the dates that contributed them."""

    model_config = ConfigDict(frozen=True)

    records: Tuple[Record, ...] = Field(default_factory=tuple)
    dates_matched: Tuple[str, ...] = Field(default_factory=tuple)
    shift_filter: ShiftTag = ShiftTag.ALL


class RangeQueryEngine:
    """Reads a scope's partitions and returns the deduplicated records in range."""

    def __init__(
        self,
        store: IPartitionStore,
        *,
        schedule: Optional[ShiftSchedule] = None,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._store = store
        self._schedule = schedule or ShiftSchedule()
        self._clock = clock or local_now
        self._logger = logger or logging.getLogger(__name__)

    def query_range(
        self,
        entity_scope: str,
        start_date: DateLike,
        end_date: DateLike,
        shift_filter: ShiftTag | str = ShiftTag.ALL,
    ) -> QueryResult:
        start = to_day(start_date)
        end = to_day(end_date)
        shift = ShiftTag(shift_filter)
        now = ensure_aware(self._clock())

        partitions = resolve_partitions(self._store.partitions(entity_scope))

        records: List[Record] = []
        dates = set()
        for partition in partitions:
            if not start <= partition.key.day <= end:
                continue
            if not self._matches_shift(partition, shift, now):
                continue
            if partition.records:
                records.extend(partition.records)
                dates.add(partition.key.date)

        result = QueryResult(
            records=tuple(records),
            dates_matched=tuple(sorted(dates)),
            shift_filter=shift,
        )
        self._logger.debug(
            "range_query",
            extra={
                "entity_scope": entity_scope,
                "start": start.isoformat(),
                "end": end.isoformat(),
                "shift": shift.value,
                "records": len(result.records),
                "dates": len(result.dates_matched),
            },
        )
        return result

    def query_all(
        self, entity_scope: str, shift_filter: ShiftTag | str = ShiftTag.ALL
    ) -> QueryResult:
        """Every cached record for the scope, with the same dedup rules."""

        return self.query_range(entity_scope, date.min, date.max, shift_filter)

    def current_shift(self) -> ShiftTag:
        return self._schedule.shift_at(self._clock())

    def _matches_shift(
        self, partition: Partition, shift: ShiftTag, now: datetime
    ) -> bool:
        if shift is ShiftTag.ALL:
            return True
        tag = partition.key.shift_tag
        if tag is not ShiftTag.ALL:
            return tag is shift
        # an undifferentiated snapshot of today reflects the active shift only
        return (
            partition.key.day == now.date()
            and self._schedule.shift_at(now) is shift
        )
