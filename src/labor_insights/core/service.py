"""High-level facade coordinating cache refresh, queries and peer analytics."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from labor_insights.analytics.interfaces import (
    AnalyticsResult,
    IntradaySnapshots,
    IPeerAnalyticsEngine,
)
from labor_insights.cache.stats import CachedDate, CacheStats, cache_stats, cached_dates
from labor_insights.core.config import InsightsConfig
from labor_insights.domain.interfaces import Clock, ImportResult, IPartitionStore
from labor_insights.domain.models import ShiftTag
from labor_insights.query.engine import QueryResult, RangeQueryEngine
from labor_insights.query.periods import resolve_period
from labor_insights.sync.synchronizer import CacheSynchronizer, SyncReport
from labor_insights.utils.dates import DateLike, local_now


class InsightsService:
    """API for presentation layers: refresh, query, analyze, back up."""

    def __init__(
        self,
        config: InsightsConfig,
        store: IPartitionStore,
        query_engine: RangeQueryEngine,
        analytics: IPeerAnalyticsEngine,
        *,
        synchronizer: Optional[CacheSynchronizer] = None,
        clock: Optional[Clock] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._config = config
        self._store = store
        self._query_engine = query_engine
        self._analytics = analytics
        self._synchronizer = synchronizer
        self._clock = clock or local_now
        self._logger = logger or logging.getLogger(__name__)

    @property
    def config(self) -> InsightsConfig:
        return self._config

    @property
    def store(self) -> IPartitionStore:
        return self._store

    @property
    def synchronizer(self) -> CacheSynchronizer:
        if not self._synchronizer:
            raise RuntimeError("No fetcher configured; cache refresh is unavailable")
        return self._synchronizer

    def refresh(
        self,
        entity_scope: str,
        *,
        shifts: Sequence[ShiftTag | str] = (ShiftTag.ALL,),
        days: Optional[int] = None,
    ) -> SyncReport:
        return self.synchronizer.sync(
            entity_scope,
            shifts=shifts,
            days=days or self._config.days_to_cache,
        )

    def query(
        self,
        entity_scope: str,
        *,
        period: str = "today",
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None,
        shift: ShiftTag | str = ShiftTag.ALL,
    ) -> QueryResult:
        """Records for an explicit ``start``/``end`` range or a named period."""

        first, last = self._resolve_range(period, start, end)
        return self._query_engine.query_range(entity_scope, first, last, shift)

    def analyze(
        self,
        entity_scope: str,
        entity_id: str,
        *,
        period: str = "today",
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None,
        shift: ShiftTag | str = ShiftTag.ALL,
        category_filter: Optional[Sequence[str]] = None,
        snapshots: Optional[IntradaySnapshots] = None,
    ) -> AnalyticsResult:
        """Peer analytics for the period; consistency uses all cached history."""

        period_result = self.query(
            entity_scope, period=period, start=start, end=end, shift=shift
        )
        history = self._query_engine.query_all(entity_scope)
        return self._analytics.compute(
            entity_id,
            period_result.records,
            period_result.records,
            category_filter,
            history=history.records,
            snapshots=snapshots,
        )

    def backup(self) -> Dict[str, Any]:
        return self._store.export_all()

    def restore(self, snapshot: Mapping[str, Any]) -> ImportResult:
        return self._store.import_all(snapshot)

    def reset(self) -> None:
        self._store.clear()

    def stats(self, entity_scope: Optional[str] = None) -> CacheStats:
        return cache_stats(self._store, entity_scope)

    def cached_dates(self, entity_scope: str) -> Sequence[CachedDate]:
        return cached_dates(self._store, entity_scope)

    def close(self) -> None:
        self._store.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _resolve_range(
        self,
        period: str,
        start: Optional[DateLike],
        end: Optional[DateLike],
    ) -> Tuple[DateLike, DateLike]:
        if start is not None or end is not None:
            if start is None or end is None:
                raise ValueError("start and end must be supplied together")
            return start, end
        return resolve_period(period, self._clock().date())
